"""Table sink/source ports.

A sink exposes ``get_snapshot``/``set_snapshot``. Selection support is a
declared capability: sinks that implement the selected-rows methods set
``supports_selection = True`` and the orchestrator checks the flag before
dispatching a selection operation.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Any, Awaitable, Protocol, Sequence, runtime_checkable

import openpyxl
import portalocker
from openpyxl.utils.cell import get_column_letter, range_boundaries

from tablebridge.codecs import grid as grid_codec
from tablebridge.contracts.common import PortFailure
from tablebridge.contracts.options import TransferOptions
from tablebridge.contracts.table import INVALID_DATE, Column, Grid, Row, TableSnapshot
from tablebridge.io.fileops import ExportLock, atomic_write


@runtime_checkable
class TableSink(Protocol):
    """Base get/set contract every table binding satisfies."""

    supports_selection: bool

    def get_snapshot(self) -> TableSnapshot | Awaitable[TableSnapshot]: ...

    def set_snapshot(self, snapshot: TableSnapshot) -> None | Awaitable[None]: ...


@runtime_checkable
class SelectableTableSink(TableSink, Protocol):
    """A sink that can also read and write its selected rows."""

    def get_selected_snapshot(self) -> TableSnapshot | Awaitable[TableSnapshot]: ...

    def set_selected_snapshot(self, snapshot: TableSnapshot) -> None | Awaitable[None]: ...


def supports_selection(sink: object) -> bool:
    return bool(getattr(sink, "supports_selection", False))


class MemoryTableSink:
    """In-process sink holding a snapshot. Hands out copies, never its own state."""

    name = "memory"
    supports_selection = False

    def __init__(self, snapshot: TableSnapshot | None = None, columns: Sequence[Column] | None = None) -> None:
        self._snapshot = snapshot or TableSnapshot(columns=list(columns or []))
        self.writes = 0

    @property
    def snapshot(self) -> TableSnapshot:
        return self._snapshot

    def get_snapshot(self) -> TableSnapshot:
        return self._snapshot.model_copy(deep=True)

    def set_snapshot(self, snapshot: TableSnapshot) -> None:
        self._snapshot = snapshot.model_copy(deep=True)
        self.writes += 1


class SelectableMemoryTableSink(MemoryTableSink):
    """Memory sink with a set of selected row ids."""

    name = "memory-selectable"
    supports_selection = True

    def __init__(
        self,
        snapshot: TableSnapshot | None = None,
        columns: Sequence[Column] | None = None,
        selected_ids: Sequence[Any] | None = None,
    ) -> None:
        super().__init__(snapshot, columns)
        self.selected_ids: list[Any] = list(selected_ids or [])

    def _selected_positions(self) -> list[int]:
        wanted = set(self.selected_ids)
        return [i for i, row in enumerate(self._snapshot.rows) if row.id in wanted]

    def get_selected_snapshot(self) -> TableSnapshot:
        rows = [self._snapshot.rows[i].model_copy(deep=True) for i in self._selected_positions()]
        return TableSnapshot(rows=rows, columns=list(self._snapshot.columns))

    def set_selected_snapshot(self, snapshot: TableSnapshot) -> None:
        """Overwrite selected rows in selection order; surplus incoming rows are ignored."""
        positions = self._selected_positions()
        keys = {c.key for c in self._snapshot.columns}
        for position, incoming in zip(positions, snapshot.rows):
            current = self._snapshot.rows[position]
            values = dict(current.values)
            values.update({k: v for k, v in incoming.values.items() if k in keys})
            self._snapshot.rows[position] = Row(id=current.id, values=values, rejected=dict(incoming.rejected))
        self.writes += 1


def _xlsx_value(value: Any) -> Any:
    if value is INVALID_DATE:
        return str(value)
    return value


class WorkbookTableSink:
    """Binds an Excel Table (ListObject) inside an .xlsx file as a sink.

    Columns default to the table's header cells. Rows are read and written
    positionally; the table ref is resized on write.
    """

    name = "workbook"
    supports_selection = False

    def __init__(self, path: str | Path, table: str, columns: Sequence[Column] | None = None) -> None:
        self.path = Path(path).resolve()
        self.table = table
        self.columns = list(columns) if columns else None

    def _open(self, *, data_only: bool):
        if not self.path.exists():
            raise PortFailure("workbook", f"Workbook not found: {self.path}")
        try:
            return openpyxl.load_workbook(str(self.path), data_only=data_only)
        except Exception as e:
            raise PortFailure("workbook", f"Cannot open workbook {self.path}: {e}") from e

    def _find_table(self, wb):
        for ws in wb.worksheets:
            for tbl in ws.tables.values():
                if tbl.displayName == self.table:
                    return ws, tbl
        raise PortFailure("workbook", f"Table not found: {self.table}")

    def get_snapshot(self) -> TableSnapshot:
        wb = self._open(data_only=True)
        try:
            ws, tbl = self._find_table(wb)
            min_col, min_row, max_col, max_row = range_boundaries(tbl.ref)
            cells = [
                list(r)
                for r in ws.iter_rows(
                    min_row=min_row, max_row=max_row,
                    min_col=min_col, max_col=max_col, values_only=True,
                )
            ]
        finally:
            wb.close()
        columns = self.columns or [
            Column(key=str(h), title=str(h)) for h in (cells[0] if cells else []) if h is not None
        ]
        sheet = Grid(name=ws.title, cells=cells, header_row_offset=0)
        return grid_codec.deserialize(sheet, columns)

    def set_snapshot(self, snapshot: TableSnapshot) -> None:
        wb = self._open(data_only=False)
        try:
            ws, tbl = self._find_table(wb)
            min_col, min_row, max_col, max_row = range_boundaries(tbl.ref)
            body = grid_codec.serialize(snapshot, TransferOptions(include_header=False)).cells

            for r in range(min_row + 1, max_row + 1):
                for c in range(min_col, max_col + 1):
                    ws.cell(row=r, column=c, value=None)
            for offset, cells in enumerate(body, start=1):
                for ci in range(max_col - min_col + 1):
                    value = cells[ci] if ci < len(cells) else None
                    ws.cell(row=min_row + offset, column=min_col + ci, value=_xlsx_value(value))

            # A table keeps at least one data row.
            new_max_row = min_row + max(len(body), 1)
            tbl.ref = f"{get_column_letter(min_col)}{min_row}:{get_column_letter(max_col)}{new_max_row}"
            if tbl.autoFilter is not None:
                tbl.autoFilter.ref = tbl.ref

            buf = BytesIO()
            wb.save(buf)
        finally:
            wb.close()
        try:
            with ExportLock(self.path):
                atomic_write(self.path, buf.getvalue())
        except (OSError, portalocker.LockException) as e:
            raise PortFailure("workbook", f"Cannot write {self.path}: {e}") from e
