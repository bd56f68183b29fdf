"""
DocHub Core — Table Model

Pure functions: (TableData, args) → TableData. Every operation returns a new,
fully consistent table:

- column ids are unique
- every row's data keys are a subset of the column ids
- no operation leaves zero columns or zero rows

TableEditor wraps these in the Viewing / Editing state machine used by the
table viewer: edits go to a local draft, Save flushes it through a persist
callback and adopts it as the new baseline, Cancel throws it away.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import replace
from enum import Enum

from engine.hub.types import Column, Row, TableData

logger = logging.getLogger(__name__)


class TableEditError(Exception):
    """Operation not allowed on the table in its current state."""

    pass


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def empty_row(columns: tuple[Column, ...]) -> Row:
    return Row(id=_new_id("row"), data={c.id: "" for c in columns})


def _require_column(table: TableData, column_id: str) -> None:
    if column_id not in table.column_ids:
        raise TableEditError(f"Unknown column '{column_id}'")


def _require_row(table: TableData, row_id: str) -> None:
    if not any(r.id == row_id for r in table.rows):
        raise TableEditError(f"Unknown row '{row_id}'")


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def editable_copy(table: TableData | None) -> TableData:
    """
    Clone saved data into an editable table.

    Drops cell keys that no longer match a column, backfills missing cells,
    and guarantees at least one column and one row.
    """
    table = table or TableData()
    columns = table.columns or (Column(id=_new_id("col"), name="Column 1"),)
    ids = [c.id for c in columns]
    rows = tuple(Row(id=r.id, data={cid: r.data.get(cid, "") for cid in ids}) for r in table.rows)
    if not rows:
        rows = (empty_row(columns),)
    return TableData(columns=columns, rows=rows)


def add_column(table: TableData, name: str) -> TableData:
    column = Column(id=_new_id("col"), name=name.strip() or f"Column {len(table.columns) + 1}")
    rows = tuple(Row(id=r.id, data={**r.data, column.id: ""}) for r in table.rows)
    return TableData(columns=(*table.columns, column), rows=rows)


def remove_column(table: TableData, column_id: str) -> TableData:
    _require_column(table, column_id)
    if len(table.columns) == 1:
        raise TableEditError("A table needs at least one column")
    columns = tuple(c for c in table.columns if c.id != column_id)
    rows = tuple(Row(id=r.id, data={k: v for k, v in r.data.items() if k != column_id}) for r in table.rows)
    return TableData(columns=columns, rows=rows)


def rename_column(table: TableData, column_id: str, name: str) -> TableData:
    _require_column(table, column_id)
    columns = tuple(replace(c, name=name) if c.id == column_id else c for c in table.columns)
    return replace(table, columns=columns)


def add_row(table: TableData) -> TableData:
    return replace(table, rows=(*table.rows, empty_row(table.columns)))


def remove_row(table: TableData, row_id: str) -> TableData:
    _require_row(table, row_id)
    rows = tuple(r for r in table.rows if r.id != row_id)
    if not rows:
        # Always keep one row for input
        rows = (empty_row(table.columns),)
    return replace(table, rows=rows)


def set_cell(table: TableData, row_id: str, column_id: str, value: str) -> TableData:
    _require_row(table, row_id)
    _require_column(table, column_id)
    rows = tuple(Row(id=r.id, data={**r.data, column_id: value}) if r.id == row_id else r for r in table.rows)
    return replace(table, rows=rows)


OPERATIONS: dict[str, Callable[..., TableData]] = {
    "add_column": add_column,
    "remove_column": remove_column,
    "rename_column": rename_column,
    "add_row": add_row,
    "remove_row": remove_row,
    "set_cell": set_cell,
}


# ---------------------------------------------------------------------------
# Editor state machine
# ---------------------------------------------------------------------------


class EditorState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"


class TableEditor:
    """
    Local edit buffer for one table resource.

    VIEWING renders the saved baseline; EDITING renders a private draft.
    The draft is replaced whole on every operation, never mutated.
    """

    def __init__(self, saved: TableData | None) -> None:
        self._saved = saved or TableData()
        self._draft: TableData | None = None
        self._closed = False
        self.error: str | None = None
        self.saving = False

    @property
    def state(self) -> EditorState:
        return EditorState.EDITING if self._draft is not None else EditorState.VIEWING

    @property
    def saved(self) -> TableData:
        return self._saved

    @property
    def current(self) -> TableData:
        return self._draft if self._draft is not None else self._saved

    @property
    def dirty(self) -> bool:
        return self._draft is not None and self._draft != self._saved

    @property
    def closed(self) -> bool:
        return self._closed

    def begin_edit(self) -> None:
        if self._draft is None:
            self._draft = editable_copy(self._saved)
            self.error = None

    def cancel(self) -> None:
        self._draft = None
        self.error = None

    def apply(self, op: str, *args: str) -> TableData:
        """Apply a named operation to the draft. Only legal while editing."""
        if self._draft is None:
            raise TableEditError("Table is not being edited")
        fn = OPERATIONS.get(op)
        if fn is None:
            raise TableEditError(f"Unknown table operation '{op}'")
        try:
            self._draft = fn(self._draft, *args)
        except TypeError as e:
            raise TableEditError(f"Bad arguments for '{op}'") from e
        return self._draft

    def rebase(self, saved: TableData | None) -> None:
        """Adopt a newer saved baseline from the stream. A pending draft is kept."""
        if not self._closed:
            self._saved = saved or TableData()

    def close(self) -> None:
        self._closed = True

    async def save(self, persist: Callable[[TableData], Awaitable[None]]) -> bool:
        """
        Flush the draft through persist().

        Success: draft becomes the baseline, state returns to VIEWING.
        Failure: stay in EDITING with the draft intact and error set.
        If the editor was closed while the write was in flight, state is left alone.
        """
        if self._draft is None:
            raise TableEditError("Table is not being edited")
        draft = self._draft
        self.saving = True
        try:
            await persist(draft)
        except Exception as e:
            if not self._closed:
                self.saving = False
                self.error = str(e) or "Failed to save changes. Please try again."
            logger.warning("table: save failed: %s", e)
            return False
        if self._closed:
            return True
        self.saving = False
        self._saved = draft
        if self._draft is draft:
            self._draft = None
        self.error = None
        return True

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "dirty": self.dirty,
            "saving": self.saving,
            "error": self.error,
            "table": self.current.to_dict(),
        }
