"""List filtering: structured filter menus, token text search and debounce."""

import asyncio
import copy
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from parish_admin.utils.helpers import get_by_path


DEFAULT_DEBOUNCE_MS = 200


@dataclass
class FilterDefinition:
    """One control of a filter menu.

    Args:
        key: State key for the control.
        label: Display label.
        type: "select", "text", "multiselect" or "checkbox".
        options: Callable returning the option list for the control.
        empty_value: Value meaning "no filter".
        default: Initial value, or a callable producing it.
        field: Dot path read from each row instead of ``row[key]``.
        get: ``(row, state) -> value`` read instead of ``field``.
        matches: ``(row, value, state) -> bool`` replacing the built-in comparison.
    """

    key: str
    label: str = ""
    type: str = "select"
    options: Callable[[], list[dict]] | None = None
    empty_value: Any = ""
    default: Any = None
    field: str | None = None
    get: Callable[[dict, dict], Any] | None = None
    matches: Callable[[dict, Any, dict], bool] | None = None

    def initial_value(self) -> Any:
        if callable(self.default):
            return self.default()
        if self.default is not None:
            return self.default
        return self.empty_value if self.empty_value is not None else ""

    def is_unset(self, value: Any) -> bool:
        if isinstance(value, list):
            return not value
        return value is None or value == "" or value == self.empty_value

    def row_value(self, row: dict, state: dict) -> Any:
        if self.get is not None:
            return self.get(row, state)
        if self.field:
            return get_by_path(row, self.field)
        return row.get(self.key)

    def accepts(self, row: dict, value: Any, state: dict) -> bool:
        if self.is_unset(value):
            return True
        if self.matches is not None:
            return bool(self.matches(row, value, state))
        row_value = self.row_value(row, state)
        if self.type == "text":
            return str(value).lower().strip() in str("" if row_value is None else row_value).lower()
        if self.type == "select":
            return _js_str(row_value) == _js_str(value)
        if self.type == "multiselect":
            return row_value in value if isinstance(value, list) else True
        if self.type == "checkbox":
            return bool(row_value) == bool(value)
        return True

    def option_list(self) -> list[dict]:
        return list(self.options() or []) if self.options else []


def _js_str(value: Any) -> str:
    # Select controls hold strings while rows hold numbers/bools
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class FilterMenu:
    """Mutable filter state over a set of definitions.

    Args:
        definitions: The controls.
        initial_state: Values overriding each definition's default.
    """

    def __init__(self, definitions: list[FilterDefinition], initial_state: dict[str, Any] | None = None):
        self.definitions = definitions
        self.is_open = False
        initial_state = initial_state or {}
        self.state: dict[str, Any] = {
            d.key: initial_state[d.key] if d.key in initial_state else d.initial_value() for d in definitions
        }
        self._snapshot = copy.deepcopy(self.state)

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def toggle(self) -> None:
        self.is_open = not self.is_open

    def set(self, key: str, value: Any) -> None:
        if key not in self.state:
            raise KeyError(f"Unknown filter: {key}")
        self.state[key] = value

    def clear(self) -> None:
        """Every control back to its empty value ([] for list-valued ones)."""
        for d in self.definitions:
            empty = d.empty_value if d.empty_value is not None else ""
            self.state[d.key] = [] if isinstance(self.state.get(d.key), list) else empty

    def reset(self) -> None:
        """Restore the values the menu was created with."""
        self.state.update(copy.deepcopy(self._snapshot))

    @property
    def active_count(self) -> int:
        return sum(1 for d in self.definitions if not d.is_unset(self.state.get(d.key)))

    def apply_to(self, rows: Any) -> list[dict]:
        if not isinstance(rows, list):
            return []
        return [row for row in rows if all(d.accepts(row, self.state.get(d.key), self.state) for d in self.definitions)]


def normalize_text(value: Any) -> str:
    return " ".join(str(value or "").lower().split())


def tokenize(query: Any) -> list[str]:
    return str(query or "").lower().split()


class TextFilter:
    """Whitespace token search; every token must appear in the row haystack.

    Args:
        haystack: ``row -> str | iterable`` producing searchable text; falsy
            parts are skipped.
    """

    def __init__(self, haystack: Callable[[dict], Any]):
        self._haystack = haystack
        self.query = ""

    def haystack_of(self, row: dict) -> str:
        parts = self._haystack(row)
        if isinstance(parts, str):
            return normalize_text(parts)
        return normalize_text(" ".join(str(p) for p in parts if p not in (None, "")))

    def matches(self, row: dict, terms: Iterable[str]) -> bool:
        text = self.haystack_of(row)
        return all(term in text for term in terms)

    def apply_to(self, rows: Any, query: str | None = None) -> list[dict]:
        """Filter ``rows`` by ``query`` (or the live query); a blank query returns rows unchanged."""
        if not isinstance(rows, list):
            return []
        terms = tokenize(self.query if query is None else query)
        if not terms:
            return rows
        return [row for row in rows if self.matches(row, terms)]

    def clear(self) -> None:
        self.query = ""


class Debouncer:
    """Trailing-edge debounce on the running event loop.

    ``push`` schedules ``apply(value)`` after ``delay_ms`` of quiet; a new
    push cancels the pending one. Without a running loop the value is applied
    immediately.
    """

    def __init__(self, apply: Callable[[Any], None], delay_ms: int = DEFAULT_DEBOUNCE_MS):
        self._apply = apply
        self.delay_ms = delay_ms
        self._handle: asyncio.TimerHandle | None = None
        self._pending: Any = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: Any) -> None:
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._apply(value)
            return
        self._pending = value
        self._handle = loop.call_later(self.delay_ms / 1000, self._fire)

    def _fire(self) -> None:
        value, self._pending, self._handle = self._pending, None, None
        self._apply(value)

    def flush(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending = None
