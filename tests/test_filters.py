"""Tests for filter menus, text search and debounce."""

import asyncio

import pytest

from parish_admin.utils.filters import Debouncer, FilterDefinition, FilterMenu, TextFilter

ROWS = [
    {"id": "E:1", "year": 2025, "programId": "TNTT", "member": True, "event": {"title": "Camp"}},
    {"id": "E:2", "year": 2024, "programId": "BPH", "member": False, "event": {"title": "Retreat"}},
    {"id": "E:3", "year": 2025, "programId": "BPH", "member": True, "event": {"title": "Camp Out"}},
]


class TestFilterMenu:
    def make_menu(self, **initial):
        return FilterMenu(
            [
                FilterDefinition("year"),
                FilterDefinition("programId", default="BPH"),
                FilterDefinition("title", type="text", field="event.title"),
                FilterDefinition("member", type="checkbox", empty_value=False),
            ],
            initial_state=initial,
        )

    def test_initial_state(self):
        menu = self.make_menu()
        assert menu.state == {"year": "", "programId": "BPH", "title": "", "member": False}
        assert menu.active_count == 1

    def test_select_compares_as_strings(self):
        menu = self.make_menu(programId="")
        menu.set("year", "2025")
        assert [r["id"] for r in menu.apply_to(ROWS)] == ["E:1", "E:3"]

    def test_text_and_checkbox(self):
        menu = self.make_menu(programId="")
        menu.set("title", " CAMP ")
        menu.set("member", True)
        assert [r["id"] for r in menu.apply_to(ROWS)] == ["E:1", "E:3"]

    def test_custom_matcher(self):
        menu = FilterMenu([FilterDefinition("even", matches=lambda row, v, state: row["id"].endswith(v))])
        menu.set("even", "2")
        assert [r["id"] for r in menu.apply_to(ROWS)] == ["E:2"]

    def test_clear_and_reset(self):
        menu = self.make_menu()
        menu.set("year", "2024")
        menu.clear()
        assert menu.active_count == 0
        menu.reset()
        assert menu.state["programId"] == "BPH"
        assert menu.state["year"] == ""

    def test_unknown_key(self):
        with pytest.raises(KeyError):
            self.make_menu().set("nope", 1)

    def test_non_list_rows(self):
        assert self.make_menu().apply_to(None) == []


class TestTextFilter:
    text = TextFilter(lambda row: [row["id"], row["programId"], row["event"]["title"]])

    def test_every_token_must_match(self):
        assert [r["id"] for r in self.text.apply_to(ROWS, "camp bph")] == ["E:3"]

    def test_blank_query_returns_rows(self):
        assert self.text.apply_to(ROWS, "   ") is ROWS


class TestDebouncer:
    def test_applies_immediately_without_loop(self):
        seen = []
        Debouncer(seen.append).push("a")
        assert seen == ["a"]

    @pytest.mark.asyncio
    async def test_trailing_edge(self):
        seen = []
        debouncer = Debouncer(seen.append, delay_ms=10)
        debouncer.push("a")
        debouncer.push("ab")
        assert debouncer.pending
        await asyncio.sleep(0.05)
        assert seen == ["ab"]
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_flush_and_cancel(self):
        seen = []
        debouncer = Debouncer(seen.append, delay_ms=1000)
        debouncer.push("x")
        debouncer.flush()
        debouncer.push("y")
        debouncer.cancel()
        await asyncio.sleep(0)
        assert seen == ["x"]
