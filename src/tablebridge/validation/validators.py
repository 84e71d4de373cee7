"""Cell-level validation of table snapshots."""

from __future__ import annotations

import math
from datetime import date
from typing import Any, Mapping

from tablebridge.codecs.scalar import is_number_text, parse_date
from tablebridge.contracts.responses import CellError, ValidationReport
from tablebridge.contracts.table import INVALID_DATE, Column, DataType, TableSnapshot
from tablebridge.validation.rules import ValidationRule

TYPE_MESSAGES: dict[str, str] = {
    "number": "Must be a valid number",
    "boolean": "Must be a boolean",
    "date": "Must be a valid date",
}


def _is_number(value: Any) -> bool:
    if isinstance(value, (int, float)):
        return not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, str):
        return is_number_text(value)
    return False


def _is_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float, str)):
        return str(value).strip().lower() in {"true", "false", "1", "0"}
    return False


def _is_date(value: Any) -> bool:
    if value is INVALID_DATE:
        return False
    if isinstance(value, date):
        return True
    if isinstance(value, str):
        return parse_date(value) is not INVALID_DATE
    return False


_TYPE_CHECKS = {
    "number": _is_number,
    "boolean": _is_boolean,
    "date": _is_date,
}


def check_type(value: Any, data_type: DataType | None) -> str | None:
    """Return a message when a non-null value does not fit ``data_type``."""
    if value is None or data_type is None:
        return None
    checker = _TYPE_CHECKS.get(data_type)
    if checker is None or checker(value):
        return None
    return TYPE_MESSAGES[data_type]


class DataValidator:
    """Runs type checks and per-column rules over every cell.

    The rule registry is keyed by column key. It is meant to be changed
    between operations only; there is no locking.
    """

    def __init__(self) -> None:
        self._rules: dict[str, list[ValidationRule]] = {}

    def add_rule(self, column_key: str, rule: ValidationRule) -> None:
        self._rules.setdefault(column_key, []).append(rule)

    def remove_rule(self, column_key: str, rule: ValidationRule | None = None) -> None:
        """Remove the first equal rule, or every rule for the key when ``rule`` is None."""
        if rule is None:
            self._rules.pop(column_key, None)
            return
        rules = self._rules.get(column_key)
        if rules and rule in rules:
            rules.remove(rule)

    def clear_rules(self) -> None:
        self._rules.clear()

    def get_rules(self, column_key: str) -> list[ValidationRule]:
        return list(self._rules.get(column_key, []))

    def validate_cell(
        self,
        value: Any,
        column: Column,
        row_index: int = 0,
        *,
        rejected: Mapping[str, str] | None = None,
    ) -> list[CellError]:
        """Validate one value: type conformance first, then each rule in order."""
        errors: list[CellError] = []

        raw = (rejected or {}).get(column.key)
        if raw is not None and column.data_type in TYPE_MESSAGES:
            errors.append(CellError(
                row_index=row_index,
                column_key=column.key,
                message=TYPE_MESSAGES[column.data_type],
                value=raw,
            ))
        else:
            type_error = check_type(value, column.data_type)
            if type_error:
                errors.append(CellError(
                    row_index=row_index, column_key=column.key, message=type_error, value=value,
                ))

        for rule in self._rules.get(column.key, []):
            try:
                message = rule.evaluate(value, column)
            except Exception as e:
                message = f"Rule '{rule.name}' raised: {e}"
            if message is not None:
                errors.append(CellError(
                    row_index=row_index, column_key=column.key, message=message, value=value,
                ))
        return errors

    def validate(self, snapshot: TableSnapshot) -> ValidationReport:
        """Validate every row x column; never stops at the first error."""
        errors: list[CellError] = []
        for row_index, row in enumerate(snapshot.rows):
            for column in snapshot.columns:
                errors.extend(self.validate_cell(
                    row.get(column.key), column, row_index, rejected=row.rejected,
                ))
        return ValidationReport(valid=not errors, errors=errors)
