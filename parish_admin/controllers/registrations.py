"""Registrations section.

The controller is also the ``RegistrationHooks`` of its form: option lists
for events, children, signers, receivers and age groups are computed from
the events, families and registrations it can see, and changing the family,
event or a child re-hydrates the snapshots and payment rows.

Events and families belong to their own controllers; this one reads them
through the ``get_event_rows`` / ``get_family_rows`` accessors.
"""

import logging
from datetime import date
from typing import Any, Callable

from parish_admin.api.resources import RegistrationsClient
from parish_admin.config import Settings
from parish_admin.controllers.base import AppState, FormController, Mode, Section
from parish_admin.domain.eligibility import (
    RuleCodes,
    age_group_options as age_group_choices,
    already_registered,
    build_payments,
    compute_quantity,
    family_met_prereqs,
    is_current_school_year,
    is_open_event,
    prerequisite_ids,
)
from parish_admin.forms.fields import FieldContext, FieldDescriptor
from parish_admin.forms.mapping import FormSchema
from parish_admin.forms.options import Options
from parish_admin.forms.registrations import RegistrationForm, RegistrationHooks
from parish_admin.utils.filters import FilterDefinition
from parish_admin.utils.helpers import (
    digits_only,
    display_child_name_and_age,
    format_phone,
    full_name,
    is_yes,
    to_number,
)
from parish_admin.utils.status import StatusLevel

logger = logging.getLogger(__name__)

ADMIN_FIRST_MESSAGE = "Must already register for ADMIN event first"

_RELATIONSHIP_RANK = {"father": 1, "mother": 2, "guardian": 3}


def relationship_rank(relationship: Any) -> int:
    """Sort key for parent contacts: father, mother, guardian, then everyone else."""
    return _RELATIONSHIP_RANK.get(str(relationship or "").strip().lower(), 99)


def pick_two_parents(family: dict | None, parents: set[str]) -> list[dict]:
    """The two contacts snapshotted onto a registration.

    Parent contacts come first in rank order; other contacts fill in when
    fewer than two parents are on file.
    """
    contacts = list((family or {}).get("contacts") or [])
    is_parent = [c for c in contacts if str(c.get("relationship") or "").strip() in parents]
    others = [c for c in contacts if str(c.get("relationship") or "").strip() not in parents]
    ranked = sorted(is_parent, key=lambda c: relationship_rank(c.get("relationship")))
    ranked += sorted(others, key=lambda c: relationship_rank(c.get("relationship")))
    return ranked[:2]


def _contact_name(contact: dict) -> str:
    return full_name(contact.get("lastName"), contact.get("firstName"), contact.get("middle"))


class RegistrationsController(FormController, RegistrationHooks):
    """Registrations list and form.

    Args:
        get_event_rows: Accessor for the events list.
        get_family_rows: Accessor for the families list.
    """

    section = Section.REGISTRATIONS
    noun = "registration"
    stamp_times = True

    def __init__(
        self,
        app: AppState,
        options: Options,
        api: RegistrationsClient | None = None,
        config: Settings | None = None,
        get_event_rows: Callable[[], list[dict]] | None = None,
        get_family_rows: Callable[[], list[dict]] | None = None,
    ):
        self.get_event_rows = get_event_rows or (lambda: [])
        self.get_family_rows = get_family_rows or (lambda: [])
        self.forms = RegistrationForm(options, hooks=self)
        super().__init__(app, options, api, config)
        self.form = self.forms.new()

    @property
    def codes(self) -> RuleCodes:
        return self.forms.codes

    @property
    def schema(self) -> FormSchema:
        return self.forms.schema

    def new_form(self) -> dict:
        return self.forms.new()

    def validate(self) -> dict:
        return self.forms.validate(self.form, self.selected_event, self.rows)

    # --- lookups ---

    def event_by_id(self, event_id: Any) -> dict | None:
        if not event_id:
            return None
        return next((e for e in self.get_event_rows() or [] if e.get("id") == event_id), None)

    def family_by_id(self, family_id: Any) -> dict | None:
        if not family_id:
            return None
        return next((f for f in self.get_family_rows() or [] if f.get("id") == family_id), None)

    @property
    def selected_event(self) -> dict | None:
        return self.event_by_id(self.form.get("eventId"))

    def registration_for(self, family_id: str, event_id: str) -> dict | None:
        return next(
            (r for r in self.rows if r.get("familyId") == family_id and r.get("eventId") == event_id),
            None,
        )

    # --- list ---

    def filter_definitions(self) -> list[FilterDefinition]:
        opts = self.options
        return [
            FilterDefinition("programId", "Program", field="event.programId", options=lambda: opts.program_options),
            FilterDefinition("eventType", "Event Type", field="event.eventType", options=lambda: opts.event_types),
            FilterDefinition("year", "School Year", field="event.year", options=lambda: opts.year_options),
        ]

    def haystack(self, row: dict) -> Any:
        parts = [row.get("id"), row.get("familyId"), (row.get("event") or {}).get("title")]
        for c in row.get("contacts") or []:
            parts += [c.get("name"), digits_only(c.get("phone"))]
        parts += [p.get("receiptNo") for p in row.get("payments") or []]
        parts += [c.get("fullName") for c in row.get("children") or []]
        return parts

    # =========================================================================
    # Form hooks
    # =========================================================================

    def is_create(self) -> bool:
        return self.mode == Mode.CREATE

    def is_edit(self) -> bool:
        return self.mode == Mode.EDIT

    def event_options(self, descriptor: FieldDescriptor, ctx: FieldContext) -> list[dict]:
        """Events offered for the form's family.

        When creating, only open events of the current school year that the
        family has not registered for and whose prerequisites it has met.
        When editing, every event (the field is locked anyway).
        """
        form = ctx.form or self.form
        family_id = str(form.get("familyId") or "").strip()
        events = self.get_event_rows() or []
        if not self.is_create():
            return [{"value": e.get("id"), "label": e.get("title")} for e in events]
        if not family_id:
            return []
        offered = [
            e
            for e in events
            if is_open_event(e)
            and is_current_school_year(e)
            and not already_registered(self.rows, family_id, year=e.get("year"), event_id=e.get("id"))
            and family_met_prereqs(e, family_id, self.rows)
        ]
        return [{"value": e.get("id"), "label": e.get("title")} for e in offered]

    def signer_options(self, descriptor: FieldDescriptor, ctx: FieldContext) -> list[dict]:
        family = self.family_by_id((ctx.form or self.form).get("familyId"))
        options = []
        for c in (family or {}).get("contacts") or []:
            name = _contact_name(c)
            options.append({"value": name, "label": f"{name} ({c.get('relationship')})"})
        return options

    def child_options(self, descriptor: FieldDescriptor | None, ctx: FieldContext) -> list[dict]:
        """Children selectable in row ``ctx.index``.

        Only per-child events offer children. When the event has a per-child
        prerequisite, only children registered for that prerequisite this
        school year qualify. Children picked in other rows are excluded.
        """
        form = ctx.form or self.form
        family_id = str(form.get("familyId") or "").strip()
        event = self.selected_event
        family = self.family_by_id(family_id)
        if not family_id or not event or event.get("level") != self.codes.per_child or not family:
            return []

        index = ctx.index if ctx.index is not None else -1
        chosen_elsewhere = {
            str(c.get("childId")) for i, c in enumerate(form.get("children") or []) if i != index and c.get("childId")
        }
        prereqs = [e for e in (self.event_by_id(pid) for pid in prerequisite_ids(event)) if e]
        per_child_prereqs = {e.get("id") for e in prereqs if e.get("level") == self.codes.per_child}

        children = family.get("children") or []
        if per_child_prereqs:
            eligible = {
                str(ch.get("childId"))
                for r in self.rows
                if r.get("familyId") == family_id
                and r.get("eventId") in per_child_prereqs
                and is_current_school_year(r.get("event"))
                for ch in r.get("children") or []
                if ch.get("childId")
            }
            children = [c for c in children if str(c.get("childId")) in eligible]
        return [
            {"value": str(c.get("childId")), "label": display_child_name_and_age(c)}
            for c in children
            if str(c.get("childId")) not in chosen_elsewhere
        ]

    def available_child_options(self) -> list[dict]:
        """Children still selectable anywhere on the form."""
        return self.child_options(None, self.context())

    def age_group_options(
        self, descriptor: FieldDescriptor, ctx: FieldContext, today: date | None = None
    ) -> list[dict]:
        row = ctx.row or ctx.form or {}
        program_id = (self.selected_event or {}).get("programId")
        return age_group_choices(row.get("dob"), program_id, self.codes, today)

    def receiver_options(self, descriptor: FieldDescriptor, ctx: FieldContext) -> list[dict]:
        form = ctx.form or self.form
        program_id = (self.selected_event or {}).get("programId") or (form.get("event") or {}).get("programId") or ""
        return self.options.volunteers_for(program_id)

    def on_family_change(self, descriptor: FieldDescriptor, ctx: FieldContext) -> None:
        form = ctx.form or self.form
        # rebuilt from the new family's fees
        form["payments"] = []
        self.hydrate_family(form)

    def on_event_change(self, descriptor: FieldDescriptor, ctx: FieldContext) -> None:
        form = ctx.form or self.form
        form["payments"] = []
        self.hydrate_event(form)

    def on_child_change(self, descriptor: FieldDescriptor, ctx: FieldContext) -> None:
        if ctx.row is not None:
            self.hydrate_child(ctx.row, ctx.form or self.form)
        self.recompute_payments(ctx.form or self.form)

    # =========================================================================
    # Hydration
    # =========================================================================

    def hydrate_family(self, form: dict) -> None:
        """Snapshot contacts and membership; drop children of another family."""
        family = self.family_by_id(form.get("familyId"))
        form["contacts"] = [
            self.forms.new_contact(
                {
                    "name": _contact_name(c),
                    "relationship": c.get("relationship") or "",
                    "phone": format_phone(c.get("phone")),
                }
            )
            for c in pick_two_parents(family, self.options.parents)
        ]
        form["parishMember"] = is_yes((family or {}).get("parishMember"))

        own = {str(c.get("childId")) for c in (family or {}).get("children") or []}
        rows = form.get("children") or []
        if any(r.get("childId") and str(r.get("childId")) not in own for r in rows):
            logger.debug(
                "Clearing children not in family %s", form.get("familyId"), extra={"section": self.section.value}
            )
            form["children"] = [self.forms.new_child()]
        else:
            form["children"] = rows
        self.hydrate_payments(form)

    def hydrate_event(self, form: dict) -> None:
        """Snapshot the event, seed a child row for per-child events, rebuild payments."""
        event = self.event_by_id(form.get("eventId"))
        snapshot = form.setdefault("event", {})
        for key in ("title", "year", "programId", "eventType"):
            snapshot[key] = (event or {}).get(key, "")
        if event and event.get("level") == self.codes.per_child and not form.get("children"):
            form["children"] = [self.forms.new_child()]
        self.hydrate_payments(form)

    def hydrate_payments(self, form: dict) -> None:
        event = self.event_by_id(form.get("eventId"))
        if not event:
            return
        family = self.family_by_id(form.get("familyId"))
        form["payments"] = build_payments(event, family, form.get("children"), form.get("payments"), self.codes)
        self._zero_waived(form)

    def hydrate_child(self, row: dict, form: dict) -> None:
        """Copy name, saint name, birth date and allergies of the picked child into ``row``."""
        family = self.family_by_id(form.get("familyId"))
        child = next(
            (c for c in (family or {}).get("children") or [] if str(c.get("childId")) == str(row.get("childId"))),
            None,
        )
        if child is None:
            return
        row["fullName"] = full_name(child.get("lastName"), child.get("firstName"), child.get("middle"))
        row["saintName"] = child.get("saintName", "")
        row["dob"] = child.get("dob", "")
        allergies = child.get("allergies")
        row["allergies"] = list(allergies) if isinstance(allergies, list) else []

    def recompute_payments(self, form: dict) -> None:
        """Refresh quantity and amount of every payment row."""
        quantity = compute_quantity(self.event_by_id(form.get("eventId")), form.get("children"), self.codes)
        for p in form.get("payments") or []:
            p["quantity"] = quantity
            p["amount"] = round(to_number(p.get("unitAmount")) * quantity, 2)
        self._zero_waived(form)

    def _zero_waived(self, form: dict) -> None:
        waived = self.options.code("METHOD", "WAIVED")
        if not waived:
            return
        for p in form.get("payments") or []:
            if p.get("method") == waived:
                p["amount"] = 0

    def after_change(self, col: str, row_name: str | None) -> None:
        if row_name in ("children", "payments"):
            self.recompute_payments(self.form)

    def after_edit_loaded(self) -> None:
        self.hydrate_family(self.form)
        self.hydrate_event(self.form)

    # --- rows ---

    def add_child(self) -> dict | None:
        return self.add_row("children")

    def remove_child(self, index: int) -> None:
        self.remove_row("children", index)

    def add_payment(self) -> dict | None:
        return self.add_row("payments")

    def remove_payment(self, index: int) -> None:
        self.remove_row("payments", index)

    def add_note(self) -> dict | None:
        return self.add_row("notes")

    def remove_note(self, index: int) -> None:
        self.remove_row("notes", index)

    # =========================================================================
    # Quick register
    # =========================================================================

    def _open_event(self, program_id: str, event_type: str, today: date | None = None) -> dict | None:
        return next(
            (
                e
                for e in self.get_event_rows() or []
                if e.get("programId") == program_id and e.get("eventType") == event_type and is_open_event(e, today)
            ),
            None,
        )

    def admin_registration_event(self, today: date | None = None) -> dict | None:
        """The open parent-association ADMIN event, if any."""
        return self._open_event(self.codes.program_bph, self.codes.admin, today)

    def tntt_registration_event(self, today: date | None = None) -> dict | None:
        """The open TNTT REGISTRATION event, if any."""
        return self._open_event(self.codes.program_tntt, self.codes.registration, today)

    def _start_for(self, family_id: str, event: dict) -> None:
        self.begin_create()
        self.set_value("familyId", family_id)
        self.set_value("eventId", event["id"])

    def register_admin_for_family(self, family: dict | None) -> bool:
        """Open the family's ADMIN registration, creating one when none exists."""
        event = self.admin_registration_event()
        if not family or not family.get("id") or event is None:
            return False
        codes = self.codes
        if already_registered(self.rows, family["id"], program_id=codes.program_bph, event_type=codes.admin):
            existing = self.registration_for(family["id"], event["id"])
            return self.begin_edit(existing) if existing else False
        self._start_for(family["id"], event)
        return True

    def register_tntt_for_family(self, family: dict | None) -> bool:
        """Open the family's TNTT registration; requires the ADMIN registration first."""
        event = self.tntt_registration_event()
        if not family or not family.get("id") or event is None:
            return False
        codes = self.codes
        family_id = family["id"]
        if already_registered(self.rows, family_id, program_id=codes.program_tntt, event_type=codes.registration):
            existing = self.registration_for(family_id, event["id"])
            return self.begin_edit(existing) if existing else False
        if not already_registered(self.rows, family_id, program_id=codes.program_bph, event_type=codes.admin):
            self.app.set_status(ADMIN_FIRST_MESSAGE, StatusLevel.ERROR, 3000)
            return False
        self._start_for(family_id, event)
        return True
