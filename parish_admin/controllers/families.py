"""Families section: household list, registration-state filter and the family form."""

from typing import Any, Callable

from parish_admin.api.resources import FamiliesClient
from parish_admin.config import Settings
from parish_admin.controllers.base import AppState, FormController, Section
from parish_admin.domain.eligibility import same_number
from parish_admin.forms.families import FamilyForm
from parish_admin.forms.mapping import FormSchema
from parish_admin.forms.options import YES_NO_OPTIONS, Options
from parish_admin.utils.filters import FilterDefinition
from parish_admin.utils.helpers import digits_only, full_name, mask_last4

REG_MODE_OPTIONS = [
    {"value": "registered", "label": "Registered (matches filters)"},
    {"value": "not-registered", "label": "Not registered (matches filters)"},
]


def _always(row: dict, value: Any, state: dict) -> bool:
    return True


class FamiliesController(FormController):
    """Families list and form.

    Args:
        get_registration_rows: Accessor for the registrations list, used by
            the registration-state filter.
    """

    section = Section.FAMILIES
    noun = "family"
    stamp_times = True

    def __init__(
        self,
        app: AppState,
        options: Options,
        api: FamiliesClient | None = None,
        config: Settings | None = None,
        get_registration_rows: Callable[[], list[dict]] | None = None,
    ):
        self.forms = FamilyForm(options)
        self.get_registration_rows = get_registration_rows or (lambda: [])
        super().__init__(app, options, api, config)
        self.form = self.forms.new()

    @property
    def schema(self) -> FormSchema:
        return self.forms.schema

    def new_form(self) -> dict:
        return self.forms.new()

    def validate(self) -> dict:
        return self.forms.validate(self.form)

    def after_change(self, col: str, row_name: str | None) -> None:
        self.forms.normalize_name_exceptions(self.form)

    def after_edit_loaded(self) -> None:
        self.forms.normalize_name_exceptions(self.form)

    def parent_last_names(self) -> set[str]:
        return self.forms.parent_last_names(self.form)

    # --- list ---

    def has_registration_for(self, family_id: str, state: dict) -> bool:
        """Does the family hold a registration matching the menu's program/type/year?"""
        for reg in self.get_registration_rows() or []:
            if reg.get("familyId") != family_id:
                continue
            snapshot = reg.get("event") or {}
            if state.get("programId") and snapshot.get("programId") != state["programId"]:
                continue
            if state.get("eventType") and snapshot.get("eventType") != state["eventType"]:
                continue
            if state.get("year") and not same_number(snapshot.get("year"), state["year"]):
                continue
            return True
        return False

    def _matches_reg_mode(self, row: dict, mode: str, state: dict) -> bool:
        has = self.has_registration_for(row.get("id"), state)
        return has if mode == "registered" else not has

    def filter_definitions(self) -> list[FilterDefinition]:
        opts = self.options
        # programId/eventType/year only narrow the regMode check
        return [
            FilterDefinition("parishMember", "Parish Member", options=lambda: YES_NO_OPTIONS),
            FilterDefinition("programId", "Program", options=lambda: opts.program_options, matches=_always),
            FilterDefinition("eventType", "Event Type", options=lambda: opts.event_types, matches=_always),
            FilterDefinition("year", "School Year", options=lambda: opts.year_options, matches=_always),
            FilterDefinition(
                "regMode", "Registration", options=lambda: REG_MODE_OPTIONS, matches=self._matches_reg_mode
            ),
        ]

    def haystack(self, row: dict) -> Any:
        parts = [row.get("id"), row.get("parishNumber"), (row.get("address") or {}).get("city")]
        for c in row.get("contacts") or []:
            parts += [c.get(k) for k in ("lastName", "firstName", "middle", "email")]
            parts.append(digits_only(c.get("phone")))
        return parts

    def contact_display(self, family: dict | None, one: bool = False) -> str:
        """Up to two contacts, parents first, with masked phones.

        Returns:
            ``"Nguyen, An •4567 / Nguyen, Binh •7654"``; only the first when
            ``one``; an em dash when the family has no contacts.
        """
        contacts = (family or {}).get("contacts") or []
        if not contacts:
            return "—"
        parents = self.options.parents
        ranked = [c for c in contacts if str(c.get("relationship") or "").strip() in parents]
        ranked += [c for c in contacts if str(c.get("relationship") or "").strip() not in parents]
        shown = []
        for c in ranked[:2]:
            if "lastName" in c:
                name = full_name(c.get("lastName"), c.get("firstName"), c.get("middle"))
            else:
                name = c.get("name", "")
            shown.append(f"{name} {mask_last4(c.get('phone'))}")
        return shown[0] if one else " / ".join(shown)

    def datalist_options(self) -> list[dict]:
        """Family picker options: id plus contacts and city."""
        options = []
        for family in self.rows:
            parts = [self.contact_display(family), (family.get("address") or {}).get("city")]
            options.append({"value": family.get("id"), "label": " — ".join(p for p in parts if p)})
        return options

    # --- rows ---

    def add_contact(self) -> dict | None:
        return self.add_row("contacts")

    def remove_contact(self, index: int) -> None:
        self.remove_row("contacts", index)

    def add_child(self) -> dict | None:
        return self.add_row("children")

    def remove_child(self, index: int) -> None:
        self.remove_row("children", index)

    def add_note(self) -> dict | None:
        return self.add_row("notes")

    def remove_note(self, index: int) -> None:
        self.remove_row("notes", index)
