"""Positional binding of raw cell rows onto declared columns."""

from __future__ import annotations

from typing import Any, Sequence

from tablebridge.codecs import scalar
from tablebridge.contracts.options import TransferOptions
from tablebridge.contracts.table import Column, Row


def decode_cell(raw: Any, column: Column, options: TransferOptions) -> Any:
    """Decode one cell, honouring a caller-supplied import transform."""
    if raw is None or raw == "":
        return None
    hook = options.transform.import_
    if hook is not None:
        return hook(scalar.encode(raw), column)
    return scalar.coerce(raw, column.data_type)


def encode_cell(value: Any, column: Column, options: TransferOptions) -> str:
    """Encode one cell as text, honouring a caller-supplied export transform."""
    if value is None:
        return ""
    hook = options.transform.export
    if hook is not None:
        return str(hook(value, column))
    return scalar.encode(value, column.data_type)


def bind_rows(
    cell_rows: Sequence[Sequence[Any]],
    columns: Sequence[Column],
    options: TransferOptions,
) -> list[Row]:
    """Map each cell row onto ``columns`` by index.

    Extra cells are dropped and missing cells become None. Header titles
    are never consulted.
    """
    rows: list[Row] = []
    for position, cells in enumerate(cell_rows):
        values: dict[str, Any] = {}
        rejected: dict[str, str] = {}
        for idx, column in enumerate(columns):
            raw = cells[idx] if idx < len(cells) else None
            value = decode_cell(raw, column, options)
            if options.transform.import_ is None and scalar.rejects(raw, column.data_type, value):
                rejected[column.key] = scalar.encode(raw)
            values[column.key] = value
        rows.append(Row(id=position, values=values, rejected=rejected))
    return rows
