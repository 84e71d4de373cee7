"""Tabular data models: columns, rows, snapshots, grids and clipboard payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, field_serializer

DataType = Literal["string", "number", "boolean", "date"]


class InvalidDate:
    """Sentinel for text that was declared a date but does not parse as one."""

    _instance: "InvalidDate | None" = None

    def __new__(cls) -> "InvalidDate":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INVALID_DATE"

    def __str__(self) -> str:
        return "Invalid Date"


INVALID_DATE = InvalidDate()


def json_scalar(value: Any) -> Any:
    """Map a cell value onto something JSON can carry."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if value is INVALID_DATE:
        return str(value)
    return value


class Column(BaseModel):
    """A declared table column."""

    key: str
    title: str = ""
    data_type: DataType | None = Field(
        default=None, validation_alias=AliasChoices("data_type", "dataType")
    )
    width: int | None = None
    editable: bool | None = None

    def label(self) -> str:
        return self.title or self.key


class Row(BaseModel):
    """One row of a snapshot, keyed by column key."""

    id: str | int | None = None
    values: dict[str, Any] = Field(default_factory=dict)
    # raw tokens a typed decode could not coerce, keyed by column key
    rejected: dict[str, str] = Field(default_factory=dict)

    def get(self, key: str) -> Any:
        return self.values.get(key)

    @field_serializer("values", when_used="json")
    def _serialize_values(self, values: dict[str, Any]) -> dict[str, Any]:
        return {k: json_scalar(v) for k, v in values.items()}


class TableSnapshot(BaseModel):
    """Point-in-time capture of a table's rows and columns."""

    rows: list[Row] = Field(default_factory=list)
    columns: list[Column] = Field(default_factory=list)

    @property
    def keys(self) -> list[str]:
        return [c.key for c in self.columns]

    def records(self) -> list[dict[str, Any]]:
        """Rows as plain dicts over every column key (missing keys are None)."""
        return [{c.key: row.get(c.key) for c in self.columns} for row in self.rows]

    @classmethod
    def from_records(
        cls, records: list[dict[str, Any]], columns: list[Column]
    ) -> "TableSnapshot":
        """Build a snapshot from plain dicts, using ``id`` when a record carries one."""
        keys = {c.key for c in columns}
        rows = []
        for idx, record in enumerate(records):
            values = {k: v for k, v in record.items() if k in keys}
            rows.append(Row(id=record.get("id", idx), values=values))
        return cls(rows=rows, columns=list(columns))


class Grid(BaseModel):
    """A single sheet: a (possibly ragged) matrix of scalar cells."""

    name: str = "Sheet1"
    cells: list[list[Any]] = Field(default_factory=list)
    header_row_offset: int | None = None

    @field_serializer("cells", when_used="json")
    def _serialize_cells(self, cells: list[list[Any]]) -> list[list[Any]]:
        return [[json_scalar(v) for v in row] for row in cells]


class ClipboardPayload(BaseModel):
    """What travels through a clipboard port."""

    text: str = ""
    html: str | None = None
    structured: list[list[Any]] | None = None
