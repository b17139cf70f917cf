"""Event form: fields, row factories and validation."""

from typing import Callable

from parish_admin.domain.eligibility import RuleCodes, required_prereq_type, school_year_bounds
from parish_admin.forms.fields import (
    ApiMapping,
    Computed,
    FieldContext,
    FieldDescriptor,
    FieldType,
    build_from_fields,
)
from parish_admin.forms.mapping import FormSchema
from parish_admin.forms.options import Options
from parish_admin.utils.helpers import (
    date_string_to_iso,
    get_current_school_year,
    is_non_negative_number,
    make_id,
    to_number,
)


def event_option(event: dict) -> dict:
    """Option for an event select, e.g. ``TNTT_REG_2025 Registration``."""
    return {
        "value": event.get("id"),
        "label": f"{event.get('programId')}_{event.get('eventType')}_{event.get('year')} {event.get('title')}",
    }


class EventForm:
    """Field schema and form helpers for events.

    Args:
        options: Live option lists.
        available_prerequisites: ``ctx -> events`` selectable in the
            prerequisite row described by ``ctx``.
    """

    def __init__(
        self,
        options: Options,
        available_prerequisites: Callable[[FieldContext], list[dict]] | None = None,
    ):
        self.options = options
        self._available_prerequisites = available_prerequisites or (lambda ctx: [])

        opts = options
        self.main = [
            FieldDescriptor(
                "id",
                "Event ID",
                placeholder="Self Generated",
                default=Computed(lambda ctx: make_id("E")),
                disabled=True,
            ),
            FieldDescriptor(
                "programId", "Program Code", FieldType.SELECT, default="",
                sel_opt=Computed(lambda f, ctx: opts.program_options),
            ),
            FieldDescriptor(
                "eventType", "Event Type", FieldType.SELECT, default="",
                sel_opt=Computed(lambda f, ctx: opts.event_types),
            ),
            FieldDescriptor("title", "Description", default="", placeholder="Event Description"),
            FieldDescriptor(
                "year",
                "School Year",
                FieldType.SELECT,
                default=Computed(lambda ctx: get_current_school_year()),
                sel_opt=Computed(lambda f, ctx: opts.year_options),
                api=ApiMapping(to_api=lambda v, obj: to_number(v)),
            ),
            FieldDescriptor(
                "level", "Scope Level", FieldType.SELECT, default="",
                sel_opt=Computed(lambda f, ctx: opts.level_options),
            ),
            FieldDescriptor("openDate", "Open Date", FieldType.DATE, default=""),
            FieldDescriptor("endDate", "End Date", FieldType.DATE, default=""),
        ]
        self.fee_row = [
            FieldDescriptor(
                "code", "Fee Type", FieldType.SELECT, default="",
                sel_opt=Computed(lambda f, ctx: opts.fee_codes),
            ),
            FieldDescriptor(
                "amount",
                "Fee Amount",
                FieldType.NUMBER,
                default=0,
                api=ApiMapping(
                    to_api=lambda v, obj: to_number(v),
                    from_api=lambda v, obj: to_number(v),
                ),
            ),
        ]
        self.prerequisite_row = [
            FieldDescriptor(
                "eventId",
                "Prerequisite Event",
                FieldType.SELECT,
                default="",
                sel_opt=Computed(lambda f, ctx: [event_option(e) for e in self._available_prerequisites(ctx)]),
            ),
        ]
        self.schema = FormSchema(
            main=self.main,
            rows={"fees": self.fee_row, "prerequisites": self.prerequisite_row},
        )

    @property
    def codes(self) -> RuleCodes:
        return RuleCodes.from_options(self.options)

    def new(self, overrides: dict | None = None) -> dict:
        form = build_from_fields(self.main, overrides=overrides)
        form.update({"prerequisites": [], "fees": []})
        return form

    def new_fee(self, overrides: dict | None = None) -> dict:
        return build_from_fields(self.fee_row, overrides=overrides)

    def new_prerequisite(self, overrides: dict | None = None) -> dict:
        return build_from_fields(self.prerequisite_row, overrides=overrides)

    def validate(self, form: dict, event_rows: list[dict]) -> dict[str, str]:
        """Check an event form.

        Args:
            form: UI-shaped event.
            event_rows: Known events, used to resolve prerequisite ids.

        Returns:
            ``{column: message}``; ``fees`` and ``prerequisites`` carry one
            message for the whole row array.
        """
        opts = self.options
        errors: dict[str, str] = {}

        def known(value, options) -> bool:
            return any(o.get("value") == value for o in options)

        year_known = any(to_number(o.get("value")) == to_number(form.get("year")) for o in opts.year_options)

        if not known(form.get("programId"), opts.program_options):
            errors["programId"] = "required"
        if not known(form.get("eventType"), opts.event_types):
            errors["eventType"] = "required"
        if not str(form.get("title") or "").strip():
            errors["title"] = "required"
        if not year_known:
            errors["year"] = "year required"
        if not known(form.get("level"), opts.level_options):
            errors["level"] = "invalid"
        if not form.get("openDate"):
            errors["openDate"] = "required"
        if not form.get("endDate"):
            errors["endDate"] = "required"

        if year_known and form.get("openDate") and form.get("endDate"):
            start = date_string_to_iso(form["openDate"])
            end = date_string_to_iso(form["endDate"])
            bound_start, bound_end = school_year_bounds(form.get("year"))
            if start > end:
                errors["openDate"] = "Must <= End Date"
            if start < bound_start:
                errors["openDate"] = "Not in School Year"
            if end > bound_end:
                errors["endDate"] = "Not in School Year"

        fees = form.get("fees")
        if not isinstance(fees, list) or not fees:
            errors["fees"] = "at least one fee"
        else:
            for fee in fees:
                if not known(fee.get("code"), opts.fee_codes):
                    errors["fees"] = "invalid fee code"
                    break
                if not is_non_negative_number(fee.get("amount")):
                    errors["fees"] = "fee amount ≥ 0"
                    break

        message = self._prerequisite_error(form, event_rows)
        if message:
            errors["prerequisites"] = message
        return errors

    def _prerequisite_error(self, form: dict, event_rows: list[dict]) -> str | None:
        needed = required_prereq_type(form.get("eventType"), self.codes)
        if not needed:
            return None
        rows = form.get("prerequisites")
        if not isinstance(rows, list) or not rows:
            return "at least one prerequisite"
        by_id = {e.get("id"): e for e in event_rows or []}
        seen = set()
        for row in rows:
            chosen = str((row or {}).get("eventId") or "").strip()
            if not chosen:
                return "every prerequisite must select an event"
            if chosen == form.get("id"):
                return "cannot include itself"
            candidate = by_id.get(chosen)
            if candidate is None:
                return "unknown event"
            if (candidate.get("eventType") or "") != needed:
                return f"must be {needed} type"
            if to_number(candidate.get("year")) != to_number(form.get("year")):
                return "must match selected year"
            if chosen in seen:
                return "no duplicates"
            seen.add(chosen)
        return None
