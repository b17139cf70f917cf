"""Pagination over a derived row list.

The pager pulls its rows from a callable on every read instead of being
notified of changes. It remembers which rows it saw last; when the set of
rows or the page size changes the page goes back to 1, and a page past the
end is clamped down to the last page.
"""

import math
from typing import Any, Callable

from parish_admin.config import PAGE_SIZE_ALL


class Pager:
    """Page through ``source()``.

    Args:
        source: Callable returning the current (filtered) row list.
        page_size_options: Sizes offered to the user; ``all_sentinel`` means "All".
        initial_page_size: Starting size, also used when an invalid size is set.
        all_sentinel: Page size value that shows every row on one page.
    """

    def __init__(
        self,
        source: Callable[[], Any],
        page_size_options: list[int] | None = None,
        initial_page_size: int = 10,
        all_sentinel: int = PAGE_SIZE_ALL,
    ):
        self._source = source
        self.options = list(page_size_options) if page_size_options is not None else [5, 10, 15, PAGE_SIZE_ALL]
        self.initial_page_size = initial_page_size
        self.all_sentinel = all_sentinel
        self._page = 1
        self._page_size = initial_page_size
        self._signature: tuple[int, ...] | None = None

    # --- derived state ---

    def _rows(self) -> list:
        rows = self._source()
        rows = rows if isinstance(rows, list) else []
        signature = tuple(id(row) for row in rows)
        if self._signature is not None and signature != self._signature:
            self._page = 1
        self._signature = signature
        pages = self._total_pages(len(rows))
        if self._page > pages:
            self._page = pages
        return rows

    def _total_pages(self, total_rows: int) -> int:
        if self.is_all:
            return 1
        return max(1, math.ceil(total_rows / max(1, self._page_size)))

    @property
    def is_all(self) -> bool:
        return self._page_size == self.all_sentinel

    @property
    def total_rows(self) -> int:
        return len(self._rows())

    @property
    def total_pages(self) -> int:
        return self._total_pages(len(self._rows()))

    @property
    def page(self) -> int:
        self._rows()
        return self._page

    @page.setter
    def page(self, value: Any) -> None:
        self.set_page(value)

    @property
    def page_size(self) -> int:
        return self._page_size

    @page_size.setter
    def page_size(self, value: Any) -> None:
        self.set_page_size(value)

    @property
    def page_start(self) -> int:
        self._rows()
        return 0 if self.is_all else (self._page - 1) * self._page_size

    @property
    def page_end(self) -> int:
        rows = self._rows()
        return len(rows) if self.is_all else self.page_start + self._page_size

    @property
    def items(self) -> list:
        rows = self._rows()
        if self.is_all:
            return rows
        start = (self._page - 1) * self._page_size
        return rows[start : start + self._page_size]

    # --- navigation ---

    def go_first(self) -> None:
        self._rows()
        self._page = 1

    def go_prev(self) -> None:
        self._rows()
        self._page = max(1, self._page - 1)

    def go_next(self) -> None:
        self._page = min(self.total_pages, self._page + 1)

    def go_last(self) -> None:
        self._page = self.total_pages

    def set_page(self, value: Any) -> None:
        """Jump to ``value``, clamped to ``[1, total_pages]``; junk means page 1."""
        try:
            number = int(value or 1)
        except (TypeError, ValueError):
            number = 1
        pages = self.total_pages
        self._page = min(max(1, number), pages)

    def set_page_size(self, value: Any) -> None:
        """Change the page size (invalid input restores the initial size) and go to page 1."""
        try:
            size = int(value)
        except (TypeError, ValueError):
            size = self.initial_page_size
        if size < 0:
            size = self.initial_page_size
        if size != self._page_size:
            self._page = 1
        self._page_size = size
