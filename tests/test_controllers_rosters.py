"""Tests for the roster view built from paid registrations."""

import pytest
import pytest_asyncio

from parish_admin.controllers import RostersController


@pytest.fixture
def tntt_registration(family, tntt_event, school_year):
    return {
        "id": "R:TNTT",
        "familyId": family["id"],
        "eventId": tntt_event["id"],
        "status": "paid",
        "event": {"title": "TNTT Registration", "year": school_year, "programId": "TNTT", "eventType": "REG"},
        "children": [
            {
                "childId": "S:1",
                "fullName": "Nguyen, An",
                "saintName": "Teresa",
                "dob": f"{school_year - 10}-03-04",
                "allergies": ["peanut", "milk"],
            },
            {
                "childId": "S:2",
                "fullName": "Nguyen, Bao",
                "saintName": "Peter",
                "dob": f"{school_year - 8}-11-20",
                "allergies": [],
            },
        ],
    }


@pytest.fixture
def cancelled_registration(tntt_registration):
    return {**tntt_registration, "id": "R:X", "status": "cancelled"}


@pytest_asyncio.fixture
async def controller(
    options,
    app_state,
    test_settings,
    admin_event,
    tntt_event,
    family,
    admin_registration,
    tntt_registration,
    cancelled_registration,
):
    registrations = [admin_registration, tntt_registration, cancelled_registration]
    rosters = RostersController(
        app_state,
        options,
        test_settings,
        get_registration_rows=lambda: registrations,
        get_event_rows=lambda: [admin_event, tntt_event],
        get_family_rows=lambda: [family],
    )
    await rosters.load()
    return rosters


class TestRosterRows:
    @pytest.mark.asyncio
    async def test_one_row_per_child_of_paid_registrations(self, controller):
        rows = controller.rows
        assert [r["childId"] for r in rows] == ["S:1", "S:2"]
        assert rows[0]["age"] == 10
        assert rows[0]["grade"] == "Thiếu Nhi Cấp 1"
        assert rows[0]["allergies"] == "peanut, milk"
        assert rows[1]["grade"] == "Ấu Nhi Cấp 2"
        assert rows[1]["allergies"] == ""

    @pytest.mark.asyncio
    async def test_non_tntt_programs_have_no_grade(self, options, app_state, tntt_registration):
        registration = {**tntt_registration, "event": {**tntt_registration["event"], "programId": "BPH"}}
        rosters = RostersController(app_state, options, get_registration_rows=lambda: [registration])
        await rosters.load()
        assert {r["grade"] for r in rosters.rows} == {"-"}

    @pytest.mark.asyncio
    async def test_rows_are_stable_between_reads(self, controller):
        controller.pager.page_size = 1
        controller.pager.page = 2
        assert controller.pager.page == 2
        assert controller.pager.items[0]["childId"] == "S:2"


class TestRosterFilters:
    @pytest.mark.asyncio
    async def test_age_and_allergy_filters(self, controller):
        controller.filter_menu.set("age", "8")
        assert [r["childId"] for r in controller.filtered_rows] == ["S:2"]

        controller.filter_menu.set("age", "")
        controller.filter_menu.set("allergies", "yes")
        assert [r["childId"] for r in controller.filtered_rows] == ["S:1"]
        controller.filter_menu.set("allergies", "no")
        assert [r["childId"] for r in controller.filtered_rows] == ["S:2"]

    @pytest.mark.asyncio
    async def test_search_by_saint_name(self, controller):
        controller.set_query("peter")
        controller.flush_query()
        assert [r["childId"] for r in controller.filtered_rows] == ["S:2"]

    @pytest.mark.asyncio
    async def test_option_sources(self, controller):
        assert [p["value"] for p in controller.program_options()] == ["TNTT"]
        assert "ADM" not in [t["value"] for t in controller.event_type_options()]
        assert [e["value"] for e in controller.event_options()] == ["E:TNTT"]

        controller.filter_menu.set("programId", "BPH")
        assert controller.event_options() == []

    @pytest.mark.asyncio
    async def test_heading(self, controller, school_year):
        menu = controller.filter_menu
        menu.set("programId", "TNTT")
        menu.set("year", school_year)
        menu.set("eventId", "E:TNTT")
        menu.set("age", "10")
        menu.set("allergies", "yes")

        heading = controller.heading()

        assert heading["title"] == "Enrollment Roster — TNTT Registration"
        assert heading["program"] == "Thieu Nhi Thanh The"
        assert heading["year"].startswith(str(school_year))
        assert heading["eventType"] == "All Types"
        assert heading["group"] == "Thiếu Nhi Cấp 1"
        assert heading["allergies"] == "Yes"

    @pytest.mark.asyncio
    async def test_heading_defaults(self, controller):
        assert controller.heading() == {
            "title": "Enrollment Roster",
            "program": "All Programs",
            "year": "All Years",
            "eventType": "All Types",
        }


class TestContactsView:
    @pytest.mark.asyncio
    async def test_open_and_close(self, controller, family):
        view = controller.open_child_contacts(controller.rows[0])

        assert controller.show_contacts
        assert view["familyId"] == family["id"]
        assert view["age"] == "10 - Thiếu Nhi Cấp 1"
        assert view["allergies"] == "peanut, milk"
        assert view["contacts"] == [
            {"name": "Nguyen, Mai", "relationship": "Mother", "phone": "(714) 123-4567"},
            {"name": "Nguyen, Binh Van", "relationship": "Father", "phone": "(714) 765-4321"},
        ]

        controller.close_child_contacts()
        assert not controller.show_contacts

    @pytest.mark.asyncio
    async def test_unknown_family(self, controller):
        view = controller.open_child_contacts({**controller.rows[1], "familyId": "F:missing"})
        assert view["contacts"] == []
        assert view["allergies"] == "None"
