"""Shared formatting and data helpers.

Small pure functions used across schemas, controllers and rules.
All functions handle missing/malformed input without raising.
"""

import copy
import math
import re
import secrets
from datetime import date, datetime
from typing import Any, Iterable

_NON_DIGITS = re.compile(r"\D+")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_YEAR_PREFIX = re.compile(r"^(\d{4})")


# =============================================================================
# Identifiers
# =============================================================================


def group_digits(digits: str, group_size: int = 4) -> str:
    """Join a digit string into dash separated groups ("123456" -> "1234-56")."""
    if not group_size or group_size <= 0:
        return digits
    return "-".join(digits[i : i + group_size] for i in range(0, len(digits), group_size))


def make_id(prefix: str, length: int = 12, group_size: int = 4) -> str:
    """Generate a random record id such as ``F:1234-5678-9012``.

    The first digit is never zero so ids keep their width when treated
    as numbers by spreadsheets.

    Args:
        prefix: Record kind prefix ("F" family, "S" student, "E" event, "R" registration).
        length: Number of random digits.
        group_size: Digits per dash separated group.

    Returns:
        Formatted id string.
    """
    length = max(1, length)
    digits = str(1 + secrets.randbelow(9)) + "".join(str(secrets.randbelow(10)) for _ in range(length - 1))
    return f"{prefix}:{group_digits(digits, group_size)}"


# =============================================================================
# Phones, money, names
# =============================================================================


def digits_only(value: Any) -> str:
    return _NON_DIGITS.sub("", str(value or ""))


def format_phone(raw: Any) -> str:
    """Format up to ten digits as ``(714) 123-4567``, tolerating partial input."""
    d = digits_only(raw)[:10]
    if not d:
        return ""
    if len(d) < 4:
        return f"({d}"
    if len(d) < 7:
        return f"({d[:3]}) {d[3:]}"
    return f"({d[:3]}) {d[3:6]}-{d[6:]}"


def mask_last4(raw: Any) -> str:
    d = digits_only(raw)
    return f"•{d[-4:]}" if d else ""


def format_money(amount: Any) -> str:
    return f"${to_number(amount):.2f}"


def full_name(last: str | None, first: str | None, middle: str | None = None) -> str:
    """Display name in "Last, First Middle" order, skipping blank parts."""
    given = " ".join(p for p in (first or "", middle or "") if p.strip())
    return ", ".join(p for p in ((last or "").strip(), given.strip()) if p)


def display_child_name_and_age(child: dict | None, today: date | None = None) -> str:
    if not isinstance(child, dict):
        return ""
    name = full_name(child.get("lastName"), child.get("firstName"), child.get("middle"))
    age = compute_age_by_year(child.get("dob"), today)
    return name if age is None else f"{name} - {age} yo"


# =============================================================================
# Paths into nested dicts
# =============================================================================


def get_by_path(obj: Any, path: str | None) -> Any:
    """Read ``a.b.c`` from nested dicts, returning None on any missing hop."""
    if obj is None or not path:
        return None
    current = obj
    for key in str(path).split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def set_default(target: dict, path: str, value: Any) -> None:
    """Write ``value`` at dotted ``path``, creating intermediate dicts."""
    keys = str(path).split(".")
    node = target
    for key in keys[:-1]:
        if not isinstance(node.get(key), dict):
            node[key] = {}
        node = node[key]
    node[keys[-1]] = value


def clone(value: Any) -> Any:
    """Deep copy containers, return scalars unchanged."""
    return copy.deepcopy(value) if isinstance(value, (dict, list)) else value


# =============================================================================
# Numbers and lists
# =============================================================================


def to_number(value: Any) -> float | int:
    """Coerce form input to a number; blanks become 0, garbage becomes 0.

    Integral results are returned as ``int`` so JSON payloads keep ``2025``
    rather than ``2025.0``.
    """
    if isinstance(value, bool):
        return int(value)
    if value is None or value == "":
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number) if number.is_integer() else number


def is_non_negative_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    return False


def is_yes(value: Any) -> bool:
    """Truthiness for stored yes/no flags: True, 1, "Y", "yes", "true" and "1" count as yes."""
    if isinstance(value, str):
        return value.strip().lower() in {"y", "yes", "true", "1"}
    return value is True or (isinstance(value, (int, float)) and value == 1)


def is_missing(value: Any) -> bool:
    """True for None and NaN, the values the mapper replaces with defaults."""
    return value is None or (isinstance(value, float) and math.isnan(value))


def list_to_string(value: Any, sep: str = ",") -> str:
    if isinstance(value, list):
        return sep.join(str(v) for v in value)
    return value if isinstance(value, str) else ""


def string_to_list(value: Any, sep: str = ",") -> list:
    if isinstance(value, list):
        return value
    return [part.strip() for part in str(value or "").split(sep) if part.strip()]


# =============================================================================
# Dates
# =============================================================================


def get_current_school_year(today: date | None = None) -> int:
    """School years start in July: 2025-08-01 and 2026-06-30 are both 2025."""
    today = today or date.today()
    return today.year if today.month >= 7 else today.year - 1


def school_year_label(year: int) -> str:
    return f"{year}-{str(year + 1)[-2:]}"


def date_string_to_iso(value: Any) -> str:
    """Normalize ``MM/DD/YYYY`` or ISO input to ``YYYY-MM-DD``; blank on failure."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value or "").strip()
    if not text:
        return ""
    match = _ISO_DATE.match(text)
    if match:
        y, m, d = (int(g) for g in match.groups())
    else:
        match = _US_DATE.match(text)
        if not match:
            return ""
        m, d, y = (int(g) for g in match.groups())
    try:
        return date(y, m, d).isoformat()
    except ValueError:
        return ""


def iso_to_date_string(value: Any) -> str:
    """Render an ISO date as ``MM/DD/YYYY``; unparseable input passes through."""
    iso = date_string_to_iso(value)
    if not iso:
        return str(value or "")
    y, m, d = iso.split("-")
    return f"{m}/{d}/{y}"


def parse_date(value: Any) -> date | None:
    iso = date_string_to_iso(value)
    return date.fromisoformat(iso) if iso else None


def is_valid_date(value: Any) -> bool:
    return parse_date(value) is not None


def iso_now_local(now: datetime | None = None) -> str:
    """Local timestamp with milliseconds and UTC offset."""
    now = (now or datetime.now()).astimezone()
    return now.isoformat(timespec="milliseconds")


def get_year_part(value: Any) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, (date, datetime)):
        return value.year
    match = _YEAR_PREFIX.match(str(value))
    if match:
        return int(match.group(1))
    parsed = parse_date(value)
    return parsed.year if parsed else None


def compute_age_by_year(dob: Any, today: date | None = None) -> int | None:
    """Age as of the current school year, counted by birth year only."""
    birth_year = get_year_part(dob)
    if birth_year is None:
        return None
    return max(0, get_current_school_year(today) - birth_year)


# =============================================================================
# Option lists
# =============================================================================


def format_option_label(option: dict | None, with_value: bool = False) -> str:
    if not option:
        return ""
    label = str(option.get("label", option.get("value", "")))
    return f"{label} ({option.get('value')})" if with_value else label


def code_to_label(value: Any, options: Iterable[dict] | None, with_code: bool = False, fallback: str = "") -> str:
    """Look up the label of an option value.

    Args:
        value: The stored code.
        options: Option dicts with ``value``/``label`` keys.
        with_code: Append the code in parentheses.
        fallback: Returned when no option matches.

    Returns:
        Label text, or ``fallback``.
    """
    for option in options or []:
        if option and option.get("value") == value:
            return format_option_label(option, with_code)
    return fallback
