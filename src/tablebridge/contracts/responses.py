"""Operation result models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_serializer

from tablebridge.contracts.common import ValidationFailure
from tablebridge.contracts.table import ClipboardPayload, Grid, TableSnapshot, json_scalar


class CellError(BaseModel):
    """A single cell-level validation failure."""

    row_index: int
    column_key: str
    message: str
    value: Any = None

    @field_serializer("value", when_used="json")
    def _serialize_value(self, value: Any) -> Any:
        return json_scalar(value)


class ValidationReport(BaseModel):
    """Result of validating a snapshot. Purely observational."""

    valid: bool = True
    errors: list[CellError] = Field(default_factory=list)

    def raise_if_invalid(self) -> None:
        if not self.valid:
            raise ValidationFailure(self)

    def by_row(self) -> dict[int, list[CellError]]:
        grouped: dict[int, list[CellError]] = {}
        for err in self.errors:
            grouped.setdefault(err.row_index, []).append(err)
        return grouped


class TransferResult(BaseModel):
    """Outcome of one orchestrated operation."""

    operation: str
    snapshot: TableSnapshot
    report: ValidationReport | None = None
    payload: ClipboardPayload | None = None
    grid: Grid | None = None
