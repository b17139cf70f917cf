"""Pydantic schemas for the application settings document.

The settings document lives at ``/settings/app`` and holds every option list
the forms offer: programs, relationships, fee codes, event types, levels,
payment methods and volunteers.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SETUP_DEFAULT_ID = "app"


class OptionItem(BaseModel):
    """One selectable option.

    ``key`` is the symbolic name used by code (``"ADMIN"``), ``value`` the
    stored code (``"ADM"``) and ``label`` the text shown to volunteers.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    key: str | None = None
    value: Any
    label: str = ""
    is_parent: bool | None = Field(
        default=None,
        alias="isParent",
        description="Relationships only: counts as a parent contact",
    )
    program: str | None = Field(
        default=None,
        description="Volunteers only: program the volunteer collects for ('' = any)",
    )


class SetupDocument(BaseModel):
    """Option lists backing every select field."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    programs: list[OptionItem] = Field(default_factory=list)
    relationships: list[OptionItem] = Field(default_factory=list)
    fee_codes: list[OptionItem] = Field(default_factory=list, alias="feeCodes")
    event_types: list[OptionItem] = Field(default_factory=list, alias="eventTypes")
    levels: list[OptionItem] = Field(default_factory=list)
    payment_methods: list[OptionItem] = Field(default_factory=list, alias="paymentMethods")
    volunteers: list[OptionItem] = Field(default_factory=list)

    def to_api(self) -> dict[str, Any]:
        """JSON body as stored by the backend (camelCase, no empty extras)."""
        return self.model_dump(by_alias=True, exclude_none=True)


# Seed used when /settings/app does not exist yet
FALLBACK_SETUP: dict[str, list[dict[str, Any]]] = {
    "programs": [
        {"key": "BPH", "value": "BPH", "label": "Ban Phu Huynh"},
        {"key": "TNTT", "value": "TNTT", "label": "Thieu Nhi Thanh The"},
    ],
    "relationships": [
        {"value": "Mother", "label": "Mother", "isParent": True},
        {"value": "Father", "label": "Father", "isParent": True},
        {"value": "Guardian", "label": "Guardian", "isParent": True},
        {"value": "Grandparent", "label": "Grandparent"},
        {"value": "Aunt", "label": "Aunt"},
        {"value": "Uncle", "label": "Uncle"},
        {"value": "Sibling", "label": "Sibling"},
    ],
    "feeCodes": [
        {"key": "REG_FEE", "value": "REGF", "label": "Registration Fee"},
        {"key": "EVT_FEE", "value": "EVTF", "label": "Event Fee"},
        {"key": "SEC_FEE", "value": "SECF", "label": "Security Fee"},
        {"key": "NPM_FEE", "value": "NPMF", "label": "NonParish Fee"},
    ],
    "eventTypes": [
        {"key": "ADMIN", "value": "ADM", "label": "Security"},
        {"key": "REGISTRATION", "value": "REG", "label": "Registration"},
        {"key": "EVENT", "value": "EVT", "label": "Event"},
    ],
    "levels": [
        {"key": "PER_FAMILY", "value": "PF", "label": "Per Family"},
        {"key": "PER_CHILD", "value": "PC", "label": "Per Child"},
    ],
    "paymentMethods": [
        {"key": "CASH", "value": "cash", "label": "Cash"},
        {"key": "CHECK", "value": "check", "label": "Check"},
        {"key": "ZELLE", "value": "zelle", "label": "Zelle"},
    ],
    "volunteers": [{"program": "", "value": "Huy", "label": "Huy"}],
}


def strip_id(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        return {}
    return {k: v for k, v in data.items() if k != "id"}


def merge_setup_with_fallback(remote: Any) -> dict[str, Any]:
    """Overlay a remote settings document on the fallback seed.

    Top level lists present remotely replace the fallback ones; missing
    lists keep the seed so the shape is always complete. ``id`` is dropped.
    """
    merged = {key: [dict(item) for item in items] for key, items in FALLBACK_SETUP.items()}
    merged.update(strip_id(remote))
    return merged
