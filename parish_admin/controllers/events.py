"""Events section: list, filters and the event form."""

import logging
from datetime import date
from typing import Any

from parish_admin.api.resources import EventsClient
from parish_admin.config import Settings
from parish_admin.controllers.base import AppState, FormController, Section
from parish_admin.domain.eligibility import (
    RuleCodes,
    can_have_prereqs,
    event_open_status,
    filter_available_prereq_events,
    is_valid_prereq_selection,
)
from parish_admin.forms.events import EventForm
from parish_admin.forms.fields import FieldContext
from parish_admin.forms.mapping import FormSchema
from parish_admin.forms.options import Options
from parish_admin.utils.filters import FilterDefinition

logger = logging.getLogger(__name__)

# Changing any of these can invalidate chosen prerequisites
_PREREQ_KEYS = ("year", "id", "eventType")


def _amount_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_fees(event: dict) -> str:
    """``"REGF-$50 / EVTF-$20"``, or an em dash placeholder when there are no fees."""
    fees = event.get("fees") or []
    if not fees:
        return "—"
    return " / ".join(f"{fee.get('code')}-${_amount_text(fee.get('amount'))}" for fee in fees)


class EventsController(FormController):
    section = Section.EVENTS
    noun = "event"

    def __init__(
        self,
        app: AppState,
        options: Options,
        api: EventsClient | None = None,
        config: Settings | None = None,
    ):
        self.forms = EventForm(options, available_prerequisites=self.available_prerequisites)
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
        return self.forms.validate(self.form, self.rows)

    # --- list ---

    def filter_definitions(self) -> list[FilterDefinition]:
        opts = self.options
        return [
            FilterDefinition("programId", "Program", options=lambda: opts.program_options),
            FilterDefinition("year", "School Year", options=lambda: opts.year_options),
            FilterDefinition("level", "Level Scope", options=lambda: opts.level_options),
            FilterDefinition("eventType", "Event Type", options=lambda: opts.event_types),
        ]

    def haystack(self, row: dict) -> Any:
        return [row.get("id"), row.get("title"), event_open_status(row)]

    def open_status(self, event: dict, today: date | None = None) -> str:
        return event_open_status(event, today)

    def display_fees(self, event: dict) -> str:
        return format_fees(event)

    # --- prerequisites ---

    def available_prerequisites(self, ctx: FieldContext) -> list[dict]:
        """Events selectable in the prerequisite row described by ``ctx``."""
        form = ctx.form or self.form
        index = ctx.index if ctx.index is not None else -1
        return filter_available_prereq_events(self.rows, form, index, self.codes)

    @property
    def show_prerequisites(self) -> bool:
        return can_have_prereqs(self.form.get("eventType"), self.codes)

    def prune_prerequisites(self) -> None:
        """Drop prerequisite picks that no longer fit the event's year, id or type.

        Empty rows are kept; when nothing is left a blank row is added so the
        volunteer has somewhere to pick.
        """
        if not self.show_prerequisites:
            self.form["prerequisites"] = []
            return
        by_id = {e.get("id"): e for e in self.rows}
        kept = []
        for row in self.form.get("prerequisites") or []:
            chosen = str(row.get("eventId") or "").strip()
            if not chosen or is_valid_prereq_selection(by_id.get(chosen), self.form, self.codes):
                kept.append(row)
        dropped = len(self.form.get("prerequisites") or []) - len(kept)
        if dropped:
            logger.debug("Dropped %d prerequisite picks", dropped, extra={"section": self.section.value})
        self.form["prerequisites"] = kept
        if not kept:
            self.add_prerequisite()

    def after_change(self, col: str, row_name: str | None) -> None:
        if row_name is None and col in _PREREQ_KEYS:
            self.prune_prerequisites()

    # --- rows ---

    def add_fee(self) -> dict | None:
        return self.add_row("fees")

    def remove_fee(self, index: int) -> None:
        self.remove_row("fees", index)

    def add_prerequisite(self) -> dict | None:
        return self.add_row("prerequisites")

    def remove_prerequisite(self, index: int) -> None:
        self.remove_row("prerequisites", index)
        if self.show_prerequisites and not self.form.get("prerequisites"):
            self.add_prerequisite()
