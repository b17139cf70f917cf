"""Option lists and code enums derived from the settings document.

``Options`` is created once at startup and handed to every schema factory
and controller. Calling ``update()`` swaps the underlying settings in place,
so everything holding the same instance sees new lists on the next read.
"""

import logging
from datetime import date
from typing import Any

from parish_admin.schemas.setup import FALLBACK_SETUP, SetupDocument, merge_setup_with_fallback
from parish_admin.utils.helpers import get_current_school_year, school_year_label

logger = logging.getLogger(__name__)

YES_NO_OPTIONS = [
    {"value": True, "label": "Yes"},
    {"value": False, "label": "No"},
]

REG_STATUS_OPTIONS = [
    {"value": "paid", "label": "Paid"},
    {"value": "cancelled", "label": "Cancelled"},
]

# Enum name -> settings list it is built from
ENUM_SOURCES = {
    "PROGRAM": "programs",
    "EVENT": "eventTypes",
    "LEVEL": "levels",
    "METHOD": "paymentMethods",
    "FEE": "feeCodes",
}


def build_enum_map(items: list[dict] | None) -> dict[str, Any]:
    """``[{key: "ADMIN", value: "ADM"}]`` -> ``{"ADMIN": "ADM"}``; keyless items are skipped."""
    result = {}
    for item in items or []:
        if isinstance(item, dict) and item.get("key") is not None and item.get("value") is not None:
            result[item["key"]] = item["value"]
    return result


def get_year_options(before: int = 2, after: int = 2, today: date | None = None) -> list[dict]:
    """School year choices around the current one, e.g. ``{value: 2024, label: "2024-25"}``."""
    base = get_current_school_year(today)
    return [{"value": y, "label": school_year_label(y)} for y in range(base - before, base + after + 1)]


class Options:
    """Live view over the settings document.

    Args:
        setup: Settings document (dict or ``SetupDocument``); missing lists
            fall back to the seed.
    """

    def __init__(self, setup: SetupDocument | dict | None = None):
        self._setup: dict[str, list[dict]] = {}
        self._enums: dict[str, dict[str, Any]] = {}
        self.update(setup if setup is not None else FALLBACK_SETUP)

    def update(self, setup: SetupDocument | dict) -> None:
        """Replace the settings this instance reads from."""
        if isinstance(setup, SetupDocument):
            setup = setup.to_api()
        document = SetupDocument.model_validate(merge_setup_with_fallback(setup))
        self._setup = document.to_api()
        self._enums = {name: build_enum_map(self._setup.get(src)) for name, src in ENUM_SOURCES.items()}
        logger.debug("Options updated: %s", {k: len(v) for k, v in self._setup.items() if isinstance(v, list)})

    @property
    def setup(self) -> dict[str, list[dict]]:
        return self._setup

    def _list(self, name: str) -> list[dict]:
        value = self._setup.get(name)
        return value if isinstance(value, list) else []

    # --- option lists ---

    @property
    def program_options(self) -> list[dict]:
        return self._list("programs")

    @property
    def relationship_options(self) -> list[dict]:
        return self._list("relationships")

    @property
    def fee_codes(self) -> list[dict]:
        return self._list("feeCodes")

    @property
    def event_types(self) -> list[dict]:
        return self._list("eventTypes")

    @property
    def level_options(self) -> list[dict]:
        return self._list("levels")

    @property
    def payment_method_options(self) -> list[dict]:
        return self._list("paymentMethods")

    @property
    def volunteers_options(self) -> list[dict]:
        return self._list("volunteers")

    @property
    def year_options(self) -> list[dict]:
        return get_year_options()

    yes_no_options = YES_NO_OPTIONS
    reg_status_options = REG_STATUS_OPTIONS

    @property
    def parents(self) -> set[str]:
        """Relationship values flagged ``isParent``."""
        return {
            str(rel.get("value", "")).strip()
            for rel in self.relationship_options
            if rel.get("isParent") is True and str(rel.get("value", "")).strip()
        }

    # --- enums ---

    @property
    def enums(self) -> dict[str, dict[str, Any]]:
        return self._enums

    def code(self, enum: str, key: str) -> Any:
        """Stored code for a symbolic key, e.g. ``code("EVENT", "ADMIN") -> "ADM"``."""
        return self._enums.get(enum, {}).get(key)

    def volunteers_for(self, program_id: str | None) -> list[dict]:
        """Volunteers who collect for ``program_id``; volunteers without a program collect for all."""
        wanted = str(program_id or "")
        return [v for v in self.volunteers_options if not v.get("program") or str(v.get("program")) == wanted]
