"""Event eligibility and fee rules.

Pure functions over API-shaped dicts: the prerequisite chain between event
types (ADMIN -> REGISTRATION -> EVENT), which fees a family pays for an
event, how many units of each fee, and the age group labels used on rosters.
None of these raise on malformed input; a missing piece simply fails the
check.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

from parish_admin.utils.helpers import (
    compute_age_by_year,
    date_string_to_iso,
    get_current_school_year,
    is_yes,
    to_number,
)

PREREQ_NOT_MET_MESSAGE = "Prerequisite not met for this family/year."

# Payment fields a volunteer types in; kept when fees are recomputed
USER_PAYMENT_FIELDS = ("method", "txnRef", "receiptNo", "receivedBy")


@dataclass(frozen=True)
class RuleCodes:
    """Stored codes the rules compare against.

    Defaults are the seed settings codes; ``from_options`` reads the live
    settings instead.
    """

    admin: str = "ADM"
    registration: str = "REG"
    event: str = "EVT"
    per_family: str = "PF"
    per_child: str = "PC"
    security_fee: str = "SECF"
    non_parish_fee: str = "NPMF"
    cash: str = "cash"
    program_bph: str = "BPH"
    program_tntt: str = "TNTT"

    @classmethod
    def from_options(cls, options) -> "RuleCodes":
        default = cls()

        def pick(enum: str, key: str, fallback: str) -> str:
            return options.code(enum, key) or fallback

        return cls(
            admin=pick("EVENT", "ADMIN", default.admin),
            registration=pick("EVENT", "REGISTRATION", default.registration),
            event=pick("EVENT", "EVENT", default.event),
            per_family=pick("LEVEL", "PER_FAMILY", default.per_family),
            per_child=pick("LEVEL", "PER_CHILD", default.per_child),
            security_fee=pick("FEE", "SEC_FEE", default.security_fee),
            non_parish_fee=pick("FEE", "NPM_FEE", default.non_parish_fee),
            cash=pick("METHOD", "CASH", default.cash),
            program_bph=pick("PROGRAM", "BPH", default.program_bph),
            program_tntt=pick("PROGRAM", "TNTT", default.program_tntt),
        )


DEFAULT_CODES = RuleCodes()


# =============================================================================
# Prerequisite chain
# =============================================================================


def required_prereq_type(event_type: str | None, codes: RuleCodes = DEFAULT_CODES) -> str | None:
    """Event type that must be completed before ``event_type``.

    REGISTRATION requires ADMIN, EVENT requires REGISTRATION, ADMIN requires none.
    """
    if event_type == codes.registration:
        return codes.admin
    if event_type == codes.event:
        return codes.registration
    return None


def can_have_prereqs(event_type: str | None, codes: RuleCodes = DEFAULT_CODES) -> bool:
    return required_prereq_type(event_type, codes) is not None


def same_number(a: Any, b: Any) -> bool:
    try:
        return float(a) == float(b)
    except (TypeError, ValueError):
        return False


def is_valid_prereq_selection(candidate: dict | None, form: dict | None, codes: RuleCodes = DEFAULT_CODES) -> bool:
    """Can ``candidate`` be listed as a prerequisite of the event in ``form``?

    Requires the same school year, a different event, the type demanded by
    the form's event type, and a candidate that opens no later than the form.
    """
    if not candidate or not form:
        return False
    needed = required_prereq_type(form.get("eventType"), codes)
    if not needed:
        return False
    if str(candidate.get("id")) == str(form.get("id")):
        return False
    if not same_number(candidate.get("year"), form.get("year")):
        return False
    if date_string_to_iso(form.get("openDate")) < date_string_to_iso(candidate.get("openDate")):
        return False
    return (candidate.get("eventType") or "") == needed


def filter_available_prereq_events(
    all_events: Iterable[dict] | None,
    form: dict | None,
    row_index: int = -1,
    codes: RuleCodes = DEFAULT_CODES,
) -> list[dict]:
    """Events selectable in prerequisite row ``row_index``.

    Events already picked in other rows are excluded; the row's own pick
    stays available.
    """
    rows = (form or {}).get("prerequisites") or []
    selected_elsewhere = {
        p.get("eventId") for i, p in enumerate(rows) if i != row_index and isinstance(p, dict) and p.get("eventId")
    }
    return [
        ev
        for ev in all_events or []
        if is_valid_prereq_selection(ev, form, codes) and ev.get("id") not in selected_elsewhere
    ]


def prerequisite_ids(event: dict | None) -> list[str]:
    """Prerequisite event ids; rows may be ``{"eventId": ...}`` dicts or bare ids."""
    ids = []
    for p in (event or {}).get("prerequisites") or []:
        value = p if isinstance(p, str) else (p or {}).get("eventId")
        if value:
            ids.append(value)
    return ids


# =============================================================================
# Registration history
# =============================================================================


def already_registered(
    registrations: Iterable[dict],
    family_id: str | None,
    year: Any = None,
    event_id: str | None = None,
    program_id: str | None = None,
    event_type: str | None = None,
    today: date | None = None,
) -> bool:
    """Does the family hold a registration matching every given criterion?

    ``year`` defaults to the current school year.
    """
    year = get_current_school_year(today) if year is None else year
    if not family_id:
        return False
    for reg in registrations or []:
        snapshot = reg.get("event") or {}
        if reg.get("familyId") != family_id:
            continue
        if not same_number(snapshot.get("year"), year):
            continue
        if event_id is not None and reg.get("eventId") != event_id:
            continue
        if program_id is not None and snapshot.get("programId") != program_id:
            continue
        if event_type is not None and snapshot.get("eventType") != event_type:
            continue
        return True
    return False


def family_met_prereqs(event: dict | None, family_id: str | None, registrations: Iterable[dict]) -> bool:
    """True when the family registered for every prerequisite of ``event``."""
    required = prerequisite_ids(event)
    if not required:
        return True
    if not family_id:
        return False
    done = {r.get("eventId") for r in registrations or [] if r.get("familyId") == family_id}
    return all(event_id in done for event_id in required)


def check_prerequisites(
    event: dict | None, family_id: str | None, registrations: Iterable[dict]
) -> tuple[bool, str | None]:
    if family_met_prereqs(event, family_id, registrations):
        return True, None
    return False, PREREQ_NOT_MET_MESSAGE


# =============================================================================
# Open windows
# =============================================================================


def event_open_status(event: dict | None, today: date | None = None) -> str:
    """"Open", "Closed" or "Future" relative to ``today``."""
    event = event or {}
    now = (today or date.today()).isoformat()
    start = date_string_to_iso(event.get("openDate"))
    end = date_string_to_iso(event.get("endDate"))
    if now > end:
        return "Closed"
    if now < start:
        return "Future"
    return "Open"


def is_open_event(event: dict | None, today: date | None = None) -> bool:
    if not event:
        return False
    now = (today or date.today()).isoformat()
    start = date_string_to_iso(event.get("openDate"))
    end = date_string_to_iso(event.get("endDate"))
    return start <= now <= end


def is_current_school_year(event: dict | None, today: date | None = None) -> bool:
    return same_number((event or {}).get("year"), get_current_school_year(today))


def school_year_bounds(year: Any) -> tuple[str, str] | None:
    """ISO dates of July 1 and June 30 bounding school year ``year``."""
    try:
        y = int(float(year))
    except (TypeError, ValueError):
        return None
    return f"{y:04d}-07-01", f"{y + 1:04d}-06-30"


# =============================================================================
# Fees and payments
# =============================================================================


def fees_for_event_and_family(event: dict | None, family: dict | None, codes: RuleCodes = DEFAULT_CODES) -> list[dict]:
    """Fee rows a family pays for ``event``.

    ADMIN events charge the security fee to parish members and the security
    plus non-parish fees to everyone else. Other event types charge every
    listed fee.
    """
    fees = [f for f in (event or {}).get("fees") or [] if isinstance(f, dict)]
    if (event or {}).get("eventType") != codes.admin:
        return fees
    if is_yes((family or {}).get("parishMember")):
        allowed = {codes.security_fee}
    else:
        allowed = {codes.security_fee, codes.non_parish_fee}
    return [f for f in fees if f.get("code") in allowed]


def compute_quantity(event: dict | None, children: Iterable[dict] | None, codes: RuleCodes = DEFAULT_CODES) -> int:
    """Units per fee: 1 for per-family events, selected children for per-child ones."""
    if (event or {}).get("level") != codes.per_child:
        return 1
    return sum(1 for c in children or [] if isinstance(c, dict) and str(c.get("childId") or "").strip())


def build_payments(
    event: dict | None,
    family: dict | None,
    children: Iterable[dict] | None,
    existing: list[dict] | None = None,
    codes: RuleCodes = DEFAULT_CODES,
) -> list[dict]:
    """Payment rows for a registration.

    Each applicable fee becomes one row with ``unitAmount``, ``quantity`` and
    ``amount = unitAmount * quantity``. Fields the volunteer typed
    (method, txnRef, receiptNo, receivedBy) are carried over from
    ``existing`` by position, and rows beyond the fee list (payments added by
    hand) are kept unchanged.
    """
    existing = existing or []
    quantity = compute_quantity(event, children, codes)
    payments = []
    for i, fee in enumerate(fees_for_event_and_family(event, family, codes)):
        unit = to_number(fee.get("amount"))
        row = {
            "code": fee.get("code", ""),
            "unitAmount": unit,
            "quantity": quantity,
            "amount": round(unit * quantity, 2),
        }
        previous = existing[i] if i < len(existing) and isinstance(existing[i], dict) else {}
        for key in USER_PAYMENT_FIELDS:
            row[key] = previous.get(key, "")
        payments.append(row)
    payments.extend(dict(p) for p in existing[len(payments):] if isinstance(p, dict))
    return payments


# =============================================================================
# Age groups
# =============================================================================


def age_group_label(age: int | None) -> str | None:
    """TNTT grade for an age: Ấu Nhi 7-9, Thiếu Nhi 10-12, Nghĩa Sĩ 13-15, Hiệp Sĩ 16+."""
    if age is None:
        return None
    if age < 7:
        return "Under Age"
    if age <= 9:
        return f"Ấu Nhi Cấp {age - 6}"
    if age <= 12:
        return f"Thiếu Nhi Cấp {age - 9}"
    if age <= 15:
        return f"Nghĩa Sĩ Cấp {age - 12}"
    return "Hiệp Sĩ"


def age_group_options(
    dob: Any, program_id: str | None, codes: RuleCodes = DEFAULT_CODES, today: date | None = None
) -> list[dict]:
    """Single ``{value: dob, label: grade}`` option for TNTT events, else []."""
    age = compute_age_by_year(dob, today)
    if age is None or program_id != codes.program_tntt:
        return []
    return [{"value": dob, "label": age_group_label(age)}]
