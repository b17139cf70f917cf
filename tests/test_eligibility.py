"""Tests for prerequisite, fee and age group rules."""

from datetime import date

from parish_admin.domain.eligibility import (
    PREREQ_NOT_MET_MESSAGE,
    RuleCodes,
    age_group_label,
    age_group_options,
    already_registered,
    build_payments,
    can_have_prereqs,
    check_prerequisites,
    compute_quantity,
    event_open_status,
    family_met_prereqs,
    fees_for_event_and_family,
    filter_available_prereq_events,
    is_open_event,
    is_valid_prereq_selection,
    prerequisite_ids,
    required_prereq_type,
    school_year_bounds,
)
from parish_admin.forms.options import Options


class TestPrerequisiteChain:
    def test_required_types(self):
        assert required_prereq_type("REG") == "ADM"
        assert required_prereq_type("EVT") == "REG"
        assert required_prereq_type("ADM") is None
        assert not can_have_prereqs("ADM")
        assert can_have_prereqs("EVT")

    def test_valid_selection(self):
        form = {"id": "E:2", "eventType": "REG", "year": 2025, "openDate": "2025-08-01"}
        candidate = {"id": "E:1", "eventType": "ADM", "year": "2025", "openDate": "2025-07-15"}
        assert is_valid_prereq_selection(candidate, form)

    def test_invalid_selections(self):
        form = {"id": "E:2", "eventType": "REG", "year": 2025, "openDate": "2025-08-01"}
        base = {"id": "E:1", "eventType": "ADM", "year": 2025, "openDate": "2025-07-15"}
        assert not is_valid_prereq_selection({**base, "year": 2024}, form)
        assert not is_valid_prereq_selection({**base, "id": "E:2"}, form)
        assert not is_valid_prereq_selection({**base, "eventType": "EVT"}, form)
        assert not is_valid_prereq_selection({**base, "openDate": "2025-09-01"}, form)
        assert not is_valid_prereq_selection(base, {**form, "eventType": "ADM"})
        assert not is_valid_prereq_selection(None, form)

    def test_filter_excludes_other_rows(self):
        form = {
            "id": "E:9",
            "eventType": "REG",
            "year": 2025,
            "openDate": "2025-08-01",
            "prerequisites": [{"eventId": "E:1"}, {"eventId": ""}],
        }
        events = [
            {"id": "E:1", "eventType": "ADM", "year": 2025, "openDate": "2025-07-01"},
            {"id": "E:2", "eventType": "ADM", "year": 2025, "openDate": "2025-07-02"},
        ]
        assert [e["id"] for e in filter_available_prereq_events(events, form, row_index=1)] == ["E:2"]
        assert [e["id"] for e in filter_available_prereq_events(events, form, row_index=0)] == ["E:1", "E:2"]

    def test_prerequisite_ids(self):
        assert prerequisite_ids({"prerequisites": [{"eventId": "E:1"}, "E:2", {"eventId": ""}]}) == ["E:1", "E:2"]
        assert prerequisite_ids(None) == []


class TestRegistrationHistory:
    def test_family_met_prereqs(self, tntt_event, admin_registration, family):
        assert family_met_prereqs(tntt_event, family["id"], [admin_registration])
        assert not family_met_prereqs(tntt_event, family["id"], [])
        assert not family_met_prereqs(tntt_event, "", [admin_registration])
        assert family_met_prereqs({"prerequisites": []}, "", [])

    def test_check_prerequisites_message(self, tntt_event, family):
        assert check_prerequisites(tntt_event, family["id"], []) == (False, PREREQ_NOT_MET_MESSAGE)

    def test_already_registered(self, admin_registration, family, school_year):
        regs = [admin_registration]
        assert already_registered(regs, family["id"], school_year, program_id="BPH", event_type="ADM")
        assert not already_registered(regs, family["id"], school_year - 1)
        assert not already_registered(regs, family["id"], school_year, event_id="E:OTHER")
        assert not already_registered(regs, None, school_year)


class TestOpenWindow:
    event = {"openDate": "2025-08-01", "endDate": "2025-09-30"}

    def test_open_status(self):
        assert event_open_status(self.event, today=date(2025, 7, 31)) == "Future"
        assert event_open_status(self.event, today=date(2025, 8, 1)) == "Open"
        assert event_open_status(self.event, today=date(2025, 9, 30)) == "Open"
        assert event_open_status(self.event, today=date(2025, 10, 1)) == "Closed"

    def test_is_open(self):
        assert is_open_event(self.event, today=date(2025, 8, 15))
        assert not is_open_event(None)

    def test_school_year_bounds(self):
        assert school_year_bounds("2025") == ("2025-07-01", "2026-06-30")
        assert school_year_bounds("x") is None


class TestFees:
    def test_admin_fees_for_parish_member(self, admin_event, family):
        fees = fees_for_event_and_family(admin_event, family)
        assert [f["code"] for f in fees] == ["SECF"]

    def test_admin_fees_for_non_member(self, admin_event, family):
        fees = fees_for_event_and_family(admin_event, {**family, "parishMember": False})
        assert [f["code"] for f in fees] == ["SECF", "NPMF"]

    def test_legacy_yes_flag_counts_as_member(self, admin_event, family):
        assert [f["code"] for f in fees_for_event_and_family(admin_event, {**family, "parishMember": "Y"})] == ["SECF"]
        assert len(fees_for_event_and_family(admin_event, {**family, "parishMember": "N"})) == 2

    def test_other_events_charge_every_fee(self, tntt_event, family):
        assert fees_for_event_and_family(tntt_event, family) == tntt_event["fees"]

    def test_quantity(self, admin_event, tntt_event):
        children = [{"childId": "S:1"}, {"childId": " "}, {"childId": "S:2"}]
        assert compute_quantity(admin_event, children) == 1
        assert compute_quantity(tntt_event, children) == 2
        assert compute_quantity(tntt_event, []) == 0

    def test_build_payments_keeps_user_fields(self, tntt_event, family):
        existing = [{"code": "REGF", "method": "cash", "receiptNo": "R-1", "receivedBy": "Huy"}]
        payments = build_payments(tntt_event, family, [{"childId": "S:1"}, {"childId": "S:2"}], existing)
        assert payments == [
            {
                "code": "REGF",
                "unitAmount": 50,
                "quantity": 2,
                "amount": 100,
                "method": "cash",
                "txnRef": "",
                "receiptNo": "R-1",
                "receivedBy": "Huy",
            }
        ]

    def test_build_payments_keeps_rows_added_by_hand(self, tntt_event, family):
        manual = {"code": "EVTF", "unitAmount": 15, "quantity": 1, "amount": 15, "method": "check"}
        existing = [{"code": "REGF", "method": "cash"}, manual]

        payments = build_payments(tntt_event, family, [{"childId": "S:1"}], existing)

        assert [p["code"] for p in payments] == ["REGF", "EVTF"]
        assert payments[0]["method"] == "cash"
        assert payments[1] == manual

    def test_rule_codes_follow_settings(self):
        setup = {"eventTypes": [{"key": "ADMIN", "value": "SEC"}, {"key": "REGISTRATION", "value": "REG"}]}
        codes = RuleCodes.from_options(Options(setup))
        assert codes.admin == "SEC"
        assert codes.event == "EVT"
        assert required_prereq_type("REG", codes) == "SEC"


class TestAgeGroups:
    def test_labels(self):
        assert age_group_label(None) is None
        assert age_group_label(6) == "Under Age"
        assert age_group_label(7) == "Ấu Nhi Cấp 1"
        assert age_group_label(12) == "Thiếu Nhi Cấp 3"
        assert age_group_label(13) == "Nghĩa Sĩ Cấp 1"
        assert age_group_label(17) == "Hiệp Sĩ"

    def test_options_only_for_tntt(self):
        today = date(2025, 9, 1)
        assert age_group_options("2015-03-04", "TNTT", today=today) == [
            {"value": "2015-03-04", "label": "Thiếu Nhi Cấp 1"}
        ]
        assert age_group_options("2015-03-04", "BPH", today=today) == []
        assert age_group_options("", "TNTT", today=today) == []
