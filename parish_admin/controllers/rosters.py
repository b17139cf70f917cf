"""Rosters: paid registrations listed one row per enrolled child."""

import logging
from datetime import date
from typing import Any, Callable

from parish_admin.config import Settings
from parish_admin.controllers.base import AppState, ListController, Section
from parish_admin.domain.eligibility import RuleCodes, age_group_label, same_number
from parish_admin.forms.options import Options
from parish_admin.utils.filters import FilterDefinition
from parish_admin.utils.helpers import code_to_label, compute_age_by_year, format_phone, full_name
from parish_admin.utils.status import StatusLevel

logger = logging.getLogger(__name__)

PAID_STATUS = "paid"
AGE_RANGE = range(7, 18)
ALLERGY_OPTIONS = [
    {"value": "yes", "label": "Has Food Allergies"},
    {"value": "no", "label": "No Allergies"},
]


def _matches_age(row: dict, selected: Any, state: dict) -> bool:
    return same_number(row.get("age"), selected)


def _matches_allergies(row: dict, selected: Any, state: dict) -> bool:
    has = bool(str(row.get("allergies") or "").strip())
    return has if selected == "yes" else not has


class RostersController(ListController):
    """Read-only roster built from the registrations list.

    Args:
        get_registration_rows: Accessor for registrations.
        get_event_rows: Accessor for events, used by the event filter.
        get_family_rows: Accessor for families, used by the contacts view.
    """

    section = Section.ROSTERS
    noun = "roster"

    def __init__(
        self,
        app: AppState,
        options: Options,
        config: Settings | None = None,
        get_registration_rows: Callable[[], list[dict]] | None = None,
        get_event_rows: Callable[[], list[dict]] | None = None,
        get_family_rows: Callable[[], list[dict]] | None = None,
    ):
        self.get_registration_rows = get_registration_rows or (lambda: [])
        self.get_event_rows = get_event_rows or (lambda: [])
        self.get_family_rows = get_family_rows or (lambda: [])
        super().__init__(app, options, api=None, config=config)
        self.show_contacts = False
        self.contacts_view: dict = {}

    @property
    def codes(self) -> RuleCodes:
        return RuleCodes.from_options(self.options)

    # --- rows ---

    def build_rows(self, today: date | None = None) -> list[dict]:
        """One row per child of every paid registration."""
        codes = self.codes
        rows = []
        for reg in self.get_registration_rows() or []:
            if reg.get("status") != PAID_STATUS:
                continue
            event = reg.get("event") or {}
            for child in reg.get("children") or []:
                age = compute_age_by_year(child.get("dob"), today)
                allergies = child.get("allergies")
                rows.append(
                    {
                        "registrationId": reg.get("id"),
                        "eventId": reg.get("eventId"),
                        "eventType": event.get("eventType"),
                        "eventTitle": event.get("title"),
                        "programId": event.get("programId"),
                        "year": event.get("year"),
                        "familyId": reg.get("familyId"),
                        "childId": child.get("childId"),
                        "saintName": child.get("saintName"),
                        "fullName": child.get("fullName"),
                        "dob": child.get("dob"),
                        "age": age,
                        "grade": age_group_label(age) if event.get("programId") == codes.program_tntt else "-",
                        "allergies": ", ".join(allergies) if isinstance(allergies, list) else "",
                    }
                )
        return rows

    async def load(self, show_status: bool = False, today: date | None = None) -> list[dict]:
        """Rebuild the roster from the current registrations."""
        self.rows = self.build_rows(today)
        logger.debug("Built %d roster rows", len(self.rows), extra={"section": self.section.value})
        if show_status:
            self.app.set_status("Roster loaded.", StatusLevel.INFO, 1200)
        return self.rows

    # --- filters ---

    def program_options(self) -> list[dict]:
        return [p for p in self.options.program_options if p.get("value") != self.codes.program_bph]

    def event_type_options(self) -> list[dict]:
        return [t for t in self.options.event_types if t.get("value") != self.codes.admin]

    def event_options(self) -> list[dict]:
        """Per-child events narrowed by the selected program, year and type."""
        state = self.filter_menu.state
        program_id, year, event_type = state.get("programId"), state.get("year"), state.get("eventType")
        return [
            {"value": e.get("id"), "label": e.get("title")}
            for e in self.get_event_rows() or []
            if (not program_id or e.get("programId") == program_id)
            and (not year or same_number(e.get("year"), year))
            and (not event_type or e.get("eventType") == event_type)
            and e.get("level") == self.codes.per_child
        ]

    def filter_definitions(self) -> list[FilterDefinition]:
        return [
            FilterDefinition("programId", "Program", options=self.program_options),
            FilterDefinition("eventType", "Event Type", options=self.event_type_options),
            FilterDefinition("year", "School Year", options=lambda: self.options.year_options),
            FilterDefinition("eventId", "Event", options=self.event_options),
            FilterDefinition(
                "age", "Age", options=lambda: [{"value": i, "label": i} for i in AGE_RANGE], matches=_matches_age
            ),
            FilterDefinition("allergies", "Allergies", options=lambda: ALLERGY_OPTIONS, matches=_matches_allergies),
        ]

    def haystack(self, row: dict) -> Any:
        return [row.get("fullName"), row.get("saintName")]

    def heading(self) -> dict[str, str]:
        """Title and filter summary printed above a roster."""
        state = self.filter_menu.state
        opts = self.options
        title = "Enrollment Roster"
        if state.get("eventId"):
            event = next((e for e in self.get_event_rows() or [] if e.get("id") == state["eventId"]), None)
            if event and event.get("title"):
                title = f"{title} — {event['title']}"
        summary = {
            "title": title,
            "program": code_to_label(state.get("programId"), opts.program_options, fallback="All Programs"),
            "year": code_to_label(state.get("year"), opts.year_options, fallback="All Years"),
            "eventType": code_to_label(state.get("eventType"), opts.event_types, fallback="All Types"),
        }
        if state.get("age"):
            if state.get("programId") == self.codes.program_tntt:
                summary["group"] = age_group_label(int(state["age"]))
            else:
                summary["age"] = str(state["age"])
        if state.get("allergies"):
            summary["allergies"] = "Yes" if state["allergies"] == "yes" else "No"
        return summary

    # --- contacts view ---

    def primary_contacts(self, family: dict | None) -> list[dict]:
        """Up to three contacts, parents first."""
        contacts = (family or {}).get("contacts") or []
        parents = self.options.parents
        ranked = [c for c in contacts if str(c.get("relationship") or "").strip() in parents]
        ranked += [c for c in contacts if str(c.get("relationship") or "").strip() not in parents]
        return [
            {
                "name": full_name(c.get("lastName"), c.get("firstName"), c.get("middle")),
                "relationship": c.get("relationship") or "",
                "phone": format_phone(c.get("phone")),
            }
            for c in ranked[:3]
        ]

    def open_child_contacts(self, row: dict) -> dict:
        family = next((f for f in self.get_family_rows() or [] if f.get("id") == row.get("familyId")), None)
        age = row.get("age") if row.get("grade") == "-" else f"{row.get('age')} - {row.get('grade')}"
        self.contacts_view = {
            "familyId": row.get("familyId"),
            "childName": row.get("fullName"),
            "allergies": row.get("allergies") or "None",
            "age": age,
            "contacts": self.primary_contacts(family),
        }
        self.show_contacts = True
        return self.contacts_view

    def close_child_contacts(self) -> None:
        self.show_contacts = False
