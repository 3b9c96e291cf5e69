"""Selection cursor and scroll window over the process table.

All inputs are clamped; there are no error paths. Moving past either end of
the list is a no-op, and an empty table simply has no selection.
"""

from __future__ import annotations

DEFAULT_PAGE_SIZE = 10


class ViewportController:
    """Keeps the selected row in bounds and on screen.

    The window scrolls minimally: it only moves when the cursor would leave
    it, and then just far enough to bring the cursor back to its nearest edge.
    """

    def __init__(
        self,
        table_length: int = 0,
        visible_height: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.selected_index = 0
        self.scroll_start = 0
        self.table_length = max(0, table_length)
        self.visible_height = max(1, visible_height)
        self.page_size = max(1, page_size)
        self._reconcile()

    # ── Derived state ──────────────────────────────────────────────────────

    @property
    def is_empty(self) -> bool:
        return self.table_length == 0

    @property
    def selected(self) -> int | None:
        """Cursor position, or None when there is nothing to select."""
        return None if self.is_empty else self.selected_index

    @property
    def scroll_end(self) -> int:
        return min(self.scroll_start + self.visible_height, self.table_length)

    @property
    def window(self) -> range:
        return range(self.scroll_start, self.scroll_end)

    # ── Navigation ─────────────────────────────────────────────────────────

    def move_up(self) -> None:
        self._select(self.selected_index - 1)

    def move_down(self) -> None:
        self._select(self.selected_index + 1)

    def page_up(self) -> None:
        self._select(self.selected_index - self.page_size)

    def page_down(self) -> None:
        self._select(self.selected_index + self.page_size)

    def home(self) -> None:
        self._select(0)

    def end(self) -> None:
        self._select(self.table_length - 1)

    # ── Reconciliation ─────────────────────────────────────────────────────

    def table_rebuilt(self, new_length: int) -> None:
        self.table_length = max(0, new_length)
        self._reconcile()

    def resize(self, visible_height: int) -> None:
        self.visible_height = max(1, visible_height)
        self._reconcile()

    def _select(self, index: int) -> None:
        if self.is_empty:
            return
        self.selected_index = index
        self._reconcile()

    def _reconcile(self) -> None:
        if self.is_empty:
            self.selected_index = 0
            self.scroll_start = 0
            return

        self.selected_index = max(0, min(self.selected_index, self.table_length - 1))

        if self.selected_index < self.scroll_start:
            self.scroll_start = self.selected_index
        elif self.selected_index >= self.scroll_start + self.visible_height:
            self.scroll_start = self.selected_index - self.visible_height + 1

        max_start = max(0, self.table_length - self.visible_height)
        self.scroll_start = max(0, min(self.scroll_start, max_start))

    def __repr__(self) -> str:
        return (
            f"ViewportController(selected={self.selected}, "
            f"window=[{self.scroll_start}, {self.scroll_end}), "
            f"length={self.table_length}, height={self.visible_height})"
        )
