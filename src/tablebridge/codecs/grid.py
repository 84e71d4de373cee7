"""Grid codec: snapshots to and from a single spreadsheet-style sheet."""

from __future__ import annotations

from datetime import date
from typing import Any, Sequence

from tablebridge.codecs import scalar
from tablebridge.codecs.binding import bind_rows
from tablebridge.contracts.options import TransferOptions
from tablebridge.contracts.table import INVALID_DATE, Column, Grid, TableSnapshot


def _grid_cell(value: Any, column: Column, options: TransferOptions) -> Any:
    if value is None:
        return None
    if options.transform.export is not None:
        return str(options.transform.export(value, column))
    if isinstance(value, date) or value is INVALID_DATE:
        return scalar.encode(value, column.data_type)
    return value


def _is_blank(cells: Sequence[Any]) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in cells)


def first_data_row(grid: Grid, options: TransferOptions) -> int:
    """Index of the first data row in ``grid``."""
    if grid.header_row_offset is not None:
        return grid.header_row_offset + 1
    return 1 if options.include_header else 0


def serialize(snapshot: TableSnapshot, options: TransferOptions | None = None) -> Grid:
    """Lay a snapshot out as a grid; numbers and booleans stay native."""
    options = options or TransferOptions()
    cells: list[list[Any]] = []
    if options.include_header:
        cells.append([c.label() for c in snapshot.columns])
    for row in snapshot.rows:
        cells.append([_grid_cell(row.get(c.key), c, options) for c in snapshot.columns])
    return Grid(
        name=options.sheet_name,
        cells=cells,
        header_row_offset=0 if options.include_header else None,
    )


def deserialize(
    grid: Grid,
    columns: Sequence[Column],
    options: TransferOptions | None = None,
) -> TableSnapshot:
    """Bind a grid's data rows to ``columns`` by position.

    Rows that are entirely empty are skipped; short rows are padded with None.
    """
    options = options or TransferOptions()
    start = first_data_row(grid, options)
    data = [cells for cells in grid.cells[start:] if not _is_blank(cells)]
    return TableSnapshot(rows=bind_rows(data, columns, options), columns=list(columns))
