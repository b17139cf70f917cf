"""Shared controller machinery.

``AppState`` holds what every section sees (current section and mode, the
read-only flag, the status bus). ``ListController`` owns a row list with a
filter menu, a debounced text search and a pager. ``FormController`` adds
the edit form: create/edit transitions, user edits with ``on_change`` hooks,
dirty tracking against an API snapshot, validation and save.
"""

import logging
from enum import Enum
from typing import Any

import httpx

from parish_admin.api.http import ApiError
from parish_admin.api.resources import ResourceClient
from parish_admin.config import Settings, settings as default_settings
from parish_admin.forms.fields import (
    FieldContext,
    FieldDescriptor,
    find_field,
    fire_change,
    first_error,
    has_errors,
)
from parish_admin.forms.mapping import FormSchema, make_patch_from_schema
from parish_admin.forms.options import Options
from parish_admin.utils.filters import Debouncer, FilterDefinition, FilterMenu, TextFilter
from parish_admin.utils.helpers import clone, iso_now_local, set_default
from parish_admin.utils.pagination import Pager
from parish_admin.utils.status import StatusBus, StatusLevel

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    LIST = "list"
    CREATE = "create"
    EDIT = "edit"


class Section(str, Enum):
    FAMILIES = "families"
    EVENTS = "events"
    REGISTRATIONS = "registrations"
    ROSTERS = "rosters"


class AppState:
    """Navigation and status shared by every controller.

    Args:
        status: Status bus; a private one is created when omitted.
        read_only: Blocks saves and row edits everywhere.
    """

    def __init__(self, status: StatusBus | None = None, read_only: bool = False):
        self.status = status or StatusBus()
        self.read_only = read_only
        self.section = Section.FAMILIES
        self.mode = Mode.LIST
        self.history: list[tuple[Section, Mode]] = []

    def switch_section(self, section: Section, mode: Mode = Mode.LIST) -> None:
        current = (self.section, self.mode)
        if current != (section, mode):
            self.history.append(current)
        self.section, self.mode = section, mode

    def go_back(self) -> None:
        """Return to the previous screen, or to the current section's list."""
        if self.history:
            self.section, self.mode = self.history.pop()
        else:
            self.mode = Mode.LIST

    def set_status(self, message: str, level: StatusLevel | str = StatusLevel.INFO, ms: int = 1500) -> None:
        self.status.set_status(message, level, ms)


# =============================================================================
# Lists
# =============================================================================


class ListController:
    """Rows plus filter menu, debounced text search and pager.

    Subclasses provide ``filter_definitions()`` and ``haystack(row)``.
    """

    section: Section
    noun = "records"

    def __init__(
        self,
        app: AppState,
        options: Options,
        api: ResourceClient | None = None,
        config: Settings | None = None,
    ):
        self.app = app
        self.options = options
        self.api = api
        self.config = config or default_settings
        self.rows: list[dict] = []

        self.filter_menu = FilterMenu(self.filter_definitions())
        self.text_filter = TextFilter(self.haystack)
        self.debounced_query = ""
        self._debouncer = Debouncer(self._apply_query, self.config.search_debounce_ms)
        self.pager = Pager(
            lambda: self.filtered_rows,
            page_size_options=self.config.page_size_options,
            initial_page_size=self.config.default_page_size,
        )

    # --- subclass hooks ---

    def filter_definitions(self) -> list[FilterDefinition]:
        return []

    def haystack(self, row: dict) -> Any:
        return [row.get("id")]

    # --- loading ---

    async def load(self, show_status: bool = False) -> list[dict]:
        """Fetch every row from the API, replacing the current list.

        On failure the previous rows stay in place and an error status is
        published.
        """
        try:
            rows = await self.api.list()
        except (ApiError, httpx.HTTPError):
            logger.exception("Loading %s failed", self.noun, extra={"section": self.section.value})
            self.app.set_status(f"Failed to load {self.noun}.", StatusLevel.ERROR, 3000)
            return self.rows
        self.rows = rows if isinstance(rows, list) else []
        logger.debug("Loaded %d %s", len(self.rows), self.noun, extra={"section": self.section.value})
        if show_status:
            self.app.set_status(f"{self.noun.capitalize()} loaded.", StatusLevel.INFO, 1200)
        return self.rows

    # --- search ---

    def set_query(self, query: str) -> None:
        """Update the search box; the filtered rows follow after the debounce delay."""
        self.text_filter.query = query or ""
        self._debouncer.push(self.text_filter.query)

    def flush_query(self) -> None:
        self._debouncer.flush()

    def _apply_query(self, query: Any) -> None:
        self.debounced_query = str(query or "")

    @property
    def filtered_rows(self) -> list[dict]:
        return self.text_filter.apply_to(self.filter_menu.apply_to(self.rows), self.debounced_query)

    def find(self, record_id: Any) -> dict | None:
        return next((row for row in self.rows if row.get("id") == record_id), None)


# =============================================================================
# Forms
# =============================================================================


class FormController(ListController):
    """List controller with a create/edit form backed by a ``FormSchema``.

    Subclasses provide ``schema``, ``new_form()`` and ``validate()``.
    """

    noun = "record"
    # Write createdAt/updatedAt on save
    stamp_times = False

    def __init__(
        self,
        app: AppState,
        options: Options,
        api: ResourceClient | None = None,
        config: Settings | None = None,
    ):
        super().__init__(app, options, api, config)
        self.mode = Mode.LIST
        self.editing_id: str | None = None
        self.form: dict = {}
        self.errors: dict = {}
        self._snapshot: dict = {}

    # --- subclass hooks ---

    @property
    def schema(self) -> FormSchema:
        raise NotImplementedError

    def new_form(self) -> dict:
        raise NotImplementedError

    def validate(self) -> dict:
        raise NotImplementedError

    def after_change(self, col: str, row_name: str | None) -> None:
        """Called after every ``set_value``."""

    def after_edit_loaded(self) -> None:
        """Called once an API record has been mapped into the form."""

    def prepare_create(self, payload: dict) -> dict:
        if self.stamp_times:
            now = iso_now_local()
            payload["createdAt"] = self.form.get("createdAt") or now
            payload["updatedAt"] = now
        return payload

    def prepare_update(self, patch: dict) -> dict:
        if self.stamp_times:
            patch["updatedAt"] = iso_now_local()
        return patch

    # --- state ---

    @property
    def is_read_only(self) -> bool:
        return self.app.read_only

    def context(self, row: dict | None = None, index: int | None = None) -> FieldContext:
        return FieldContext(form=self.form, row=row, index=index, is_read_only=self.is_read_only)

    @property
    def patch(self) -> dict:
        return make_patch_from_schema(self.schema, self._snapshot, self.form)

    @property
    def is_dirty(self) -> bool:
        return bool(self.patch)

    def snapshot(self) -> None:
        self._snapshot = self.schema.to_api(self.form)

    def revalidate(self) -> dict:
        self.errors = self.validate()
        return self.errors

    def _enter(self, mode: Mode) -> None:
        self.mode = mode
        self.app.switch_section(self.section, mode)

    # --- transitions ---

    def begin_create(self) -> dict:
        self.form = self.new_form()
        self.editing_id = None
        self.errors = {}
        self.snapshot()
        self._enter(Mode.CREATE)
        self.app.set_status(f"Creating new {self.noun}…", StatusLevel.INFO, 1200)
        return self.form

    def begin_edit(self, api_record: dict | None) -> bool:
        """Load ``api_record`` into the form; returns False when there is nothing to edit."""
        if not api_record or not api_record.get("id"):
            self.app.set_status("Nothing to edit.", StatusLevel.WARN, 1500)
            return False
        self.editing_id = api_record["id"]
        self.form = self.schema.to_ui(api_record)
        self.after_edit_loaded()
        self.revalidate()
        self.snapshot()
        self._enter(Mode.EDIT)
        self.app.set_status(f"Editing {self.editing_id}", StatusLevel.INFO, 1200)
        return True

    def cancel(self) -> None:
        self.mode = Mode.LIST
        self.app.go_back()

    # --- edits ---

    def _fields_for(self, row_name: str | None) -> list[FieldDescriptor]:
        if row_name is None:
            return self.schema.main
        if row_name in self.schema.rows:
            return self.schema.rows[row_name]
        return self.schema.objects[row_name]

    def set_value(self, col: str, value: Any, row_name: str | None = None, index: int | None = None) -> None:
        """Apply a user edit and run the field's change hook.

        Args:
            col: Column name within the target object.
            value: New value.
            row_name: Row array (``index`` required) or nested object name;
                None for top level fields.
            index: Row position inside ``row_name``.
        """
        if row_name is None:
            target = self.form
        elif index is None:
            target = self.form.setdefault(row_name, {})
        else:
            target = self.form[row_name][index]
        set_default(target, col, value)

        descriptor = find_field(self._fields_for(row_name), col)
        if descriptor is not None:
            fire_change(descriptor, self.context(target, index))
        self.after_change(col, row_name)
        self.revalidate()

    def add_row(self, row_name: str, overrides: dict | None = None) -> dict | None:
        if self.is_read_only:
            return None
        row = self.schema.new_row(row_name, self.context(), overrides)
        self.form.setdefault(row_name, []).append(row)
        self.revalidate()
        return row

    def remove_row(self, row_name: str, index: int) -> None:
        if self.is_read_only:
            return
        rows = self.form.get(row_name)
        if isinstance(rows, list) and 0 <= index < len(rows):
            rows.pop(index)
            self.after_change(row_name, row_name)
            self.revalidate()

    # --- save ---

    async def submit(self) -> dict | None:
        """Validate and save the form.

        Returns:
            The API response, or None when nothing was saved.
        """
        if self.is_read_only:
            self.app.set_status("Read-only mode: cannot save.", StatusLevel.WARN, 1800)
            return None
        patch = self.patch
        if not patch:
            self.app.set_status("No changes to save.", StatusLevel.WARN, 1500)
            return None
        found = first_error(self.revalidate())
        if found:
            path, message = found
            logger.info("Validation failed at %s: %s", path, message, extra={"section": self.section.value})
            self.app.set_status(f"Please fix errors before saving: {message}", StatusLevel.ERROR, 2500)
            return None

        creating = self.mode == Mode.CREATE
        try:
            if creating:
                result = await self.api.create(self.prepare_create(self.schema.to_api(self.form)))
            else:
                body = clone(patch)
                body.pop("id", None)
                result = await self.api.update(self.editing_id, self.prepare_update(body))
        except (ApiError, httpx.HTTPError):
            logger.exception("Saving %s failed", self.noun, extra={"section": self.section.value})
            self.app.set_status(f"Failed to save {self.noun}.", StatusLevel.ERROR, 3000)
            return None

        verb = "created" if creating else "updated"
        self.app.set_status(f"{self.noun.capitalize()} {verb}.", StatusLevel.SUCCESS, 1500)
        await self.load()
        self.mode = Mode.LIST
        self.app.go_back()
        return result

    @property
    def has_errors(self) -> bool:
        return has_errors(self.errors)
