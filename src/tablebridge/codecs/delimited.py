"""Delimited text codec: snapshots to and from clipboard-style text.

Cells are joined by ``col_delimiter`` and lines by ``row_delimiter``. There
is no quoting: a delimiter embedded in cell text splits the cell on the way
back in. ``CsvFilePort`` is the quoted alternative for files.
"""

from __future__ import annotations

from html import escape
from typing import Any, Sequence

from tablebridge.codecs import grid as grid_codec
from tablebridge.codecs.binding import bind_rows, encode_cell
from tablebridge.contracts.options import TransferOptions
from tablebridge.contracts.table import ClipboardPayload, Column, TableSnapshot


def split_text(text: str, col_delimiter: str = "\t", row_delimiter: str = "\n") -> list[list[str]]:
    """Split text into trimmed cell rows, dropping blank lines."""
    if not text.strip():
        return []
    return [
        [cell.strip() for cell in line.split(col_delimiter)]
        for line in text.split(row_delimiter)
        if line.strip()
    ]


def serialize(snapshot: TableSnapshot, options: TransferOptions | None = None) -> str:
    """Render a snapshot as delimited text."""
    options = options or TransferOptions()
    lines: list[str] = []
    if options.include_header:
        lines.append(options.col_delimiter.join(c.label() for c in snapshot.columns))
    for row in snapshot.rows:
        cells = [encode_cell(row.get(c.key), c, options) for c in snapshot.columns]
        lines.append(options.col_delimiter.join(cells))
    return options.row_delimiter.join(lines)


def deserialize_cells(
    cell_rows: Sequence[Sequence[Any]],
    columns: Sequence[Column],
    options: TransferOptions | None = None,
) -> TableSnapshot:
    """Bind already-split cell rows, consuming the header row if configured."""
    options = options or TransferOptions()
    data = list(cell_rows)
    if options.include_header and data:
        data = data[1:]
    return TableSnapshot(rows=bind_rows(data, columns, options), columns=list(columns))


def deserialize(
    text: str,
    columns: Sequence[Column],
    options: TransferOptions | None = None,
) -> TableSnapshot:
    """Parse delimited text into a snapshot bound positionally to ``columns``."""
    options = options or TransferOptions()
    cell_rows = split_text(text, options.col_delimiter, options.row_delimiter)
    return deserialize_cells(cell_rows, columns, options)


def render_html(cells: Sequence[Sequence[Any]], *, header: bool = True) -> str:
    """Render cell rows as a minimal HTML table for rich clipboard targets."""
    parts = ["<table>"]
    for idx, row in enumerate(cells):
        tag = "th" if header and idx == 0 else "td"
        inner = "".join(
            f"<{tag}>{escape('' if v is None else str(v))}</{tag}>" for v in row
        )
        parts.append(f"<tr>{inner}</tr>")
    parts.append("</table>")
    return "".join(parts)


def to_payload(snapshot: TableSnapshot, options: TransferOptions | None = None) -> ClipboardPayload:
    """Build the full clipboard payload: text, structured cells and HTML."""
    options = options or TransferOptions()
    text = serialize(snapshot, options)
    sheet = grid_codec.serialize(snapshot, options)
    return ClipboardPayload(
        text=text,
        html=render_html(sheet.cells, header=options.include_header),
        structured=sheet.cells,
    )


def from_payload(
    payload: ClipboardPayload,
    columns: Sequence[Column],
    options: TransferOptions | None = None,
) -> TableSnapshot:
    """Decode a clipboard payload. ``structured`` wins over re-parsing ``text``."""
    options = options or TransferOptions()
    if payload.structured is not None:
        return deserialize_cells(payload.structured, columns, options)
    return deserialize(payload.text, columns, options)
