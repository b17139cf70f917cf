"""Mapping between API records and UI forms, plus patch computation.

Forms are plain dicts shaped by field descriptors. ``FormSchema`` groups the
descriptor lists of one resource (top level fields, nested objects, row
arrays) and converts whole records in both directions. ``diff_deep`` and
``make_patch_from_schema`` compute the minimal update sent to the backend.

Everything here is pure: no I/O and no mutation of the inputs.
"""

from dataclasses import dataclass, field
from typing import Any

from parish_admin.forms.fields import FieldContext, FieldDescriptor, build_from_fields, default_value
from parish_admin.utils.helpers import clone, is_missing


class _Missing:
    """Marker for "no value": an absent key, or no difference in a diff."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __deepcopy__(self, memo):
        return self


MISSING: Any = _Missing()


# =============================================================================
# Field level mapping
# =============================================================================


def map_fields_to_ui(api_obj: Any, fields: list[FieldDescriptor]) -> dict:
    """API -> UI for one object.

    Missing, None and NaN values fall back to the field default, computed
    fresh for every call.
    """
    source = api_obj if isinstance(api_obj, dict) else {}
    ui: dict = {}
    for descriptor in fields:
        value = source.get(descriptor.api_key)
        if descriptor.api.from_api is not None:
            value = descriptor.api.from_api(value, source)
        ui[descriptor.col] = default_value(descriptor) if is_missing(value) else value
    return ui


def map_rows_to_ui(api_rows: Any, fields: list[FieldDescriptor]) -> list[dict]:
    if not isinstance(api_rows, list):
        return []
    return [map_fields_to_ui(row, fields) for row in api_rows]


def map_fields_to_api(ui_obj: Any, fields: list[FieldDescriptor]) -> dict:
    """UI -> API for one object. Values that come out as MISSING are omitted."""
    source = ui_obj if isinstance(ui_obj, dict) else {}
    api: dict = {}
    for descriptor in fields:
        value = source.get(descriptor.col, MISSING)
        if descriptor.api.to_api is not None and value is not MISSING:
            value = descriptor.api.to_api(value, source)
        if value is not MISSING:
            api[descriptor.api_key] = value
    return api


def map_rows_to_api(ui_rows: Any, fields: list[FieldDescriptor]) -> list[dict]:
    if not isinstance(ui_rows, list):
        return []
    return [map_fields_to_api(row, fields) for row in ui_rows]


# =============================================================================
# Diff
# =============================================================================


def _type_tag(value: Any) -> str:
    # Mirrors JSON value kinds; bool is checked before int on purpose
    if value is MISSING:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def diff_deep(prev: Any, nxt: Any) -> Any:
    """Structural diff of two API-shaped values.

    Returns MISSING when there is no difference. Lists are replaced
    wholesale when their length or any element differs; dicts are diffed
    key by key over the union of keys and only changed keys are returned.
    A key present in ``prev`` but absent from ``nxt`` is not reported.
    """
    if prev is nxt:
        return MISSING

    prev_tag, next_tag = _type_tag(prev), _type_tag(nxt)
    if prev_tag != next_tag:
        return clone(nxt)

    if next_tag == "array":
        if len(prev) != len(nxt):
            return clone(list(nxt))
        for before, after in zip(prev, nxt):
            if diff_deep(before, after) is not MISSING:
                return clone(list(nxt))
        return MISSING

    if next_tag == "object":
        changes = {}
        for key in list(prev.keys()) + [k for k in nxt.keys() if k not in prev]:
            delta = diff_deep(prev.get(key, MISSING), nxt.get(key, MISSING))
            if delta is not MISSING:
                changes[key] = delta
        return changes if changes else MISSING

    if prev == nxt:
        return MISSING
    return clone(nxt)


# =============================================================================
# Schemas
# =============================================================================


@dataclass
class FormSchema:
    """Descriptor lists for one resource.

    Args:
        main: Fields stored at the top level of the record.
        objects: Nested single objects, e.g. ``{"address": [...]}``.
        rows: Row arrays, e.g. ``{"contacts": [...], "children": [...]}``.
    """

    main: list[FieldDescriptor] = field(default_factory=list)
    objects: dict[str, list[FieldDescriptor]] = field(default_factory=dict)
    rows: dict[str, list[FieldDescriptor]] = field(default_factory=dict)

    def to_ui(self, api_obj: Any) -> dict:
        source = api_obj if isinstance(api_obj, dict) else {}
        ui = map_fields_to_ui(source, self.main)
        for name, fields in self.objects.items():
            ui[name] = map_fields_to_ui(source.get(name), fields)
        for name, fields in self.rows.items():
            ui[name] = map_rows_to_ui(source.get(name), fields)
        return ui

    def to_api(self, ui_obj: Any) -> dict:
        source = ui_obj if isinstance(ui_obj, dict) else {}
        api = map_fields_to_api(source, self.main)
        for name, fields in self.objects.items():
            api[name] = map_fields_to_api(source.get(name), fields)
        for name, fields in self.rows.items():
            api[name] = map_rows_to_api(source.get(name), fields)
        return api

    def new_row(self, name: str, ctx: FieldContext | None = None, overrides: dict | None = None) -> dict:
        """Zero-valued row for the row array ``name``."""
        return build_from_fields(self.rows[name], ctx, overrides)

    def new_object(self, name: str, ctx: FieldContext | None = None, overrides: dict | None = None) -> dict:
        return build_from_fields(self.objects[name], ctx, overrides)


def make_patch_from_schema(schema: FormSchema, original_api: dict | None, updated_ui: dict | None) -> dict:
    """Minimal patch turning ``original_api`` into ``to_api(updated_ui)``.

    Always returns a dict; ``{}`` means nothing changed.
    """
    delta = diff_deep(original_api or {}, schema.to_api(updated_ui or {}))
    return delta if isinstance(delta, dict) else {}
