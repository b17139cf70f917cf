"""Tests for API <-> UI mapping and patch computation."""

import copy

import pytest

from parish_admin.forms.events import EventForm
from parish_admin.forms.families import FamilyForm
from parish_admin.forms.fields import ApiMapping, FieldDescriptor
from parish_admin.forms.mapping import (
    MISSING,
    FormSchema,
    diff_deep,
    make_patch_from_schema,
    map_fields_to_api,
    map_fields_to_ui,
)
from parish_admin.forms.registrations import RegistrationForm
from parish_admin.utils.helpers import to_number


class TestFieldMapping:
    fields = [
        FieldDescriptor("id", default=""),
        FieldDescriptor("year", default=2025, api=ApiMapping(to_api=lambda v, obj: to_number(v))),
        FieldDescriptor("label", default="", api=ApiMapping(key="title")),
    ]

    def test_missing_values_take_defaults(self):
        ui = map_fields_to_ui({"id": "E:1", "year": None, "title": float("nan")}, self.fields)
        assert ui == {"id": "E:1", "year": 2025, "label": ""}

    def test_non_dict_source(self):
        assert map_fields_to_ui("junk", self.fields) == {"id": "", "year": 2025, "label": ""}

    def test_to_api_renames_and_converts(self):
        api = map_fields_to_api({"id": "E:1", "year": "2026", "label": "Camp"}, self.fields)
        assert api == {"id": "E:1", "year": 2026, "title": "Camp"}

    def test_missing_output_is_omitted(self):
        fields = [FieldDescriptor("secret", api=ApiMapping(to_api=lambda v, obj: MISSING))]
        assert map_fields_to_api({"secret": "x"}, fields) == {}


class TestDiff:
    def test_identical_values(self):
        value = {"a": 1, "rows": [{"b": 2}]}
        assert diff_deep(value, copy.deepcopy(value)) is MISSING

    def test_changed_keys_only(self):
        prev = {"a": 1, "b": {"c": 2, "d": 3}}
        nxt = {"a": 1, "b": {"c": 2, "d": 4}, "e": 5}
        assert diff_deep(prev, nxt) == {"b": {"d": 4}, "e": 5}

    def test_arrays_replaced_wholesale(self):
        prev = {"rows": [{"x": 1}, {"x": 2}]}
        nxt = {"rows": [{"x": 1}, {"x": 3}]}
        assert diff_deep(prev, nxt) == {"rows": [{"x": 1}, {"x": 3}]}

    def test_type_change(self):
        assert diff_deep({"a": "1"}, {"a": 1}) == {"a": 1}
        assert diff_deep({"a": 1}, {"a": True}) == {"a": True}
        assert diff_deep({"a": 1}, {"a": 1.0}) is MISSING

    def test_removed_keys_are_not_reported(self):
        assert diff_deep({"a": 1, "b": 2}, {"a": 1}) is MISSING

    def test_result_is_detached(self):
        nxt = {"rows": [{"x": 1}]}
        delta = diff_deep({"rows": []}, nxt)
        delta["rows"][0]["x"] = 99
        assert nxt["rows"][0]["x"] == 1


class TestSchema:
    @pytest.mark.parametrize("form_class", [FamilyForm, EventForm, RegistrationForm])
    def test_new_form_survives_api_round_trip(self, options, form_class):
        form = form_class(options)
        new = form.new()
        assert form.schema.to_ui(form.schema.to_api(new)) == new

    def test_family_round_trip(self, options, family):
        schema = FamilyForm(options).schema
        ui = schema.to_ui(family)
        assert ui["children"][0]["dob"].count("/") == 2
        assert ui["children"][0]["allergies"] == "peanut"
        assert schema.to_api(ui) == schema.to_api(schema.to_ui(schema.to_api(ui)))
        assert schema.to_api(ui)["children"][0]["allergies"] == ["peanut"]

    def test_patch_empty_when_unchanged(self, options, family):
        schema = FamilyForm(options).schema
        ui = schema.to_ui(family)
        snapshot = schema.to_api(ui)
        assert make_patch_from_schema(schema, snapshot, ui) == {}

    def test_patch_carries_changes(self, options, family):
        schema = FamilyForm(options).schema
        ui = schema.to_ui(family)
        snapshot = schema.to_api(ui)
        ui["address"]["city"] = "Westminster"
        assert make_patch_from_schema(schema, snapshot, ui) == {"address": {"city": "Westminster"}}

    def test_new_row(self):
        schema = FormSchema(rows={"fees": [FieldDescriptor("code", default=""), FieldDescriptor("amount", default=0)]})
        assert schema.new_row("fees", overrides={"code": "REGF"}) == {"code": "REGF", "amount": 0}
