"""Declarative form field descriptors.

A form is described by lists of ``FieldDescriptor``. Each descriptor names a
column (a dot path into the UI object), how it is rendered, its default, and
optional dynamic attributes. Dynamic attributes are either plain literals or
``Computed`` wrappers, evaluated through the single ``resolve`` function so
callers never need to check what kind of value they hold.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from parish_admin.utils.helpers import clone, is_empty, set_default


class FieldType(str, Enum):
    """Input widget kinds."""

    TEXT = "text"
    SELECT = "select"
    CHECKBOX = "checkbox"
    DATE = "date"
    NUMBER = "number"
    TEL = "tel"
    DATALIST = "datalist"


@dataclass(frozen=True)
class Computed:
    """A field attribute evaluated on demand instead of stored as a literal."""

    fn: Callable[..., Any]


def resolve(value: Any, *args: Any) -> Any:
    """Evaluate a literal-or-computed attribute."""
    if isinstance(value, Computed):
        return value.fn(*args)
    return value


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass
class FieldContext:
    """What a dynamic attribute can see while it is evaluated.

    Args:
        form: The whole UI form being edited.
        row: The row dict when the field belongs to a row array, else the
            object the field lives in.
        index: Row position, or None outside row arrays.
        is_read_only: Application wide read-only flag; disables every field.
    """

    form: dict = field(default_factory=dict)
    row: dict | None = None
    index: int | None = None
    is_read_only: bool = False

    def for_row(self, row: dict, index: int | None = None) -> "FieldContext":
        return FieldContext(form=self.form, row=row, index=index, is_read_only=self.is_read_only)


@dataclass
class ApiMapping:
    """How a UI column is stored on the API side.

    ``to_api(ui_value, ui_object)`` and ``from_api(api_value, api_object)``
    convert values; ``key`` renames the column. Returning ``MISSING`` from
    ``to_api`` drops the key from the payload.
    """

    key: str | None = None
    to_api: Callable[[Any, dict], Any] | None = None
    from_api: Callable[[Any, dict], Any] | None = None


@dataclass
class FieldDescriptor:
    """One editable (or display-only) field of a form."""

    col: str
    label: str = ""
    type: FieldType = FieldType.TEXT
    default: Any = UNSET
    show: Any = None
    disabled: Any = False
    sel_opt: Any = None
    required: bool = False
    required_message: str | None = None
    validate: Callable[[Any, FieldContext], str | None] | None = None
    on_change: Callable[["FieldDescriptor", FieldContext], None] | None = None
    placeholder: str = ""
    api: ApiMapping = field(default_factory=ApiMapping)

    @property
    def api_key(self) -> str:
        return self.api.key or self.col


def default_value(descriptor: FieldDescriptor, ctx: FieldContext | None = None) -> Any:
    """Fresh default for a field: declared default, else False for checkboxes, else ''."""
    if descriptor.default is UNSET:
        return False if descriptor.type == FieldType.CHECKBOX else ""
    return clone(resolve(descriptor.default, ctx or FieldContext()))


def is_visible(descriptor: FieldDescriptor, ctx: FieldContext) -> bool:
    if descriptor.show is None:
        return True
    return bool(resolve(descriptor.show, ctx))


def get_field_disabled(descriptor: FieldDescriptor, ctx: FieldContext) -> bool:
    if ctx.is_read_only:
        return True
    return bool(resolve(descriptor.disabled, ctx))


def get_options(descriptor: FieldDescriptor, ctx: FieldContext) -> list[dict]:
    """Option list for select/datalist fields.

    Accepts a literal list, a ``Computed`` of ``(field, ctx)``, or any object
    exposing a list ``.value`` (a live reference). Anything else yields [].
    """
    source = descriptor.sel_opt
    if isinstance(source, Computed):
        return list(source.fn(descriptor, ctx) or [])
    if isinstance(source, list):
        return source
    holder_value = getattr(source, "value", None)
    if isinstance(holder_value, list):
        return holder_value
    return []


def build_from_fields(
    fields: list[FieldDescriptor],
    ctx: FieldContext | None = None,
    overrides: dict[str, Any] | None = None,
) -> dict:
    """Build a zero-valued object from field defaults.

    Args:
        fields: Field descriptors; ``col`` may be a dot path.
        ctx: Context handed to computed defaults.
        overrides: ``{path: value}`` written after the defaults.

    Returns:
        New dict with nested dicts created for dotted columns.
    """
    ctx = ctx or FieldContext()
    out: dict = {}
    for descriptor in fields:
        set_default(out, descriptor.col, default_value(descriptor, ctx))
    for path, value in (overrides or {}).items():
        set_default(out, path, value)
    return out


def fire_change(descriptor: FieldDescriptor, ctx: FieldContext) -> None:
    if descriptor.on_change is not None:
        descriptor.on_change(descriptor, ctx)


def find_field(fields: list[FieldDescriptor], col: str) -> FieldDescriptor | None:
    return next((f for f in fields if f.col == col), None)


# =============================================================================
# Validation
# =============================================================================


def _should_skip(descriptor: FieldDescriptor, ctx: FieldContext) -> bool:
    if resolve(descriptor.disabled, ctx):
        return True
    return not is_visible(descriptor, ctx)


def validate_fields(
    fields: list[FieldDescriptor], data: dict | None, ctx: FieldContext | None = None
) -> dict[str, str]:
    """Validate one object against its fields.

    Disabled and hidden fields are skipped. ``required`` fields report
    ``required_message`` (or "Required") when empty; otherwise the field's
    ``validate`` callback may return a message.

    Returns:
        ``{col: message}`` for failing fields; empty when valid.
    """
    data = data or {}
    base = ctx or FieldContext(form=data)
    scope = FieldContext(
        form=base.form if base.form else data,
        row=data,
        index=base.index,
        is_read_only=base.is_read_only,
    )
    errors: dict[str, str] = {}
    for descriptor in fields:
        if not descriptor.col or _should_skip(descriptor, scope):
            continue
        value = data.get(descriptor.col)
        if descriptor.required and is_empty(value):
            errors[descriptor.col] = descriptor.required_message or "Required"
            continue
        if descriptor.validate is not None:
            message = descriptor.validate(value, scope)
            if message:
                errors[descriptor.col] = message
    return errors


def validate_row_array(
    fields: list[FieldDescriptor], rows: Any, ctx: FieldContext | None = None
) -> list[dict[str, str]]:
    if not isinstance(rows, list):
        return []
    base = ctx or FieldContext()
    return [validate_fields(fields, row, FieldContext(form=base.form, index=i)) for i, row in enumerate(rows)]


def has_errors(errors: Any) -> bool:
    """True when a nested error bag holds any message."""
    if isinstance(errors, dict):
        return any(has_errors(v) for v in errors.values())
    if isinstance(errors, list):
        return any(has_errors(v) for v in errors)
    return bool(errors)


def first_error(errors: Any, prefix: str = "") -> tuple[str, str] | None:
    """First ``(path, message)`` in an error bag, depth first."""
    if isinstance(errors, dict):
        items = errors.items()
    elif isinstance(errors, list):
        items = ((str(i), v) for i, v in enumerate(errors))
    else:
        return (prefix, str(errors)) if errors else None
    for key, value in items:
        path = f"{prefix}.{key}" if prefix else str(key)
        found = first_error(value, path)
        if found:
            return found
    return None
