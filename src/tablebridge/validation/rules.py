"""Validation rules and the built-in rule factories."""

from __future__ import annotations

import re
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field

from tablebridge.codecs.scalar import is_number_text, parse_number
from tablebridge.contracts.table import Column

RuleCheck = Callable[[Any, Column], Any]

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^1[3-9][0-9]{9}$")


class ValidationRule(BaseModel):
    """A per-column check.

    ``check(value, column)`` returns True to pass, a string to fail with that
    message, or anything else to fail with ``message``. Two rules are equal
    when their name, parameters and message match.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = "custom"
    params: tuple[Any, ...] = ()
    message: str = "Validation failed"
    check: RuleCheck = Field(exclude=True)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationRule):
            return NotImplemented
        return (self.name, self.params, self.message) == (other.name, other.params, other.message)

    def __hash__(self) -> int:
        return hash((self.name, self.params, self.message))

    def evaluate(self, value: Any, column: Column) -> str | None:
        """Run the check. Returns the failure message, or None on success."""
        result = self.check(value, column)
        if result is True:
            return None
        if isinstance(result, str):
            return result
        return self.message


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def required(message: str = "This field is required") -> ValidationRule:
    return ValidationRule(
        name="required",
        message=message,
        check=lambda value, column: value is not None and _text(value).strip() != "",
    )


def min_length(min_len: int, message: str | None = None) -> ValidationRule:
    return ValidationRule(
        name="min_length",
        params=(min_len,),
        message=message or f"Must be at least {min_len} characters",
        check=lambda value, column: len(_text(value)) >= min_len,
    )


def max_length(max_len: int, message: str | None = None) -> ValidationRule:
    return ValidationRule(
        name="max_length",
        params=(max_len,),
        message=message or f"Must be at most {max_len} characters",
        check=lambda value, column: len(_text(value)) <= max_len,
    )


def _in_range(value: Any, low: float, high: float) -> bool:
    # null and blank read as zero
    if value is None or (isinstance(value, str) and not value.strip()):
        value = 0
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, str):
        if not is_number_text(value):
            return False
        value = parse_number(value)
    if not isinstance(value, (int, float)):
        return False
    return value == value and low <= value <= high


def value_range(low: float, high: float, message: str | None = None) -> ValidationRule:
    """Numeric range check, inclusive at both ends."""
    return ValidationRule(
        name="value_range",
        params=(low, high),
        message=message or f"Must be between {low} and {high}",
        check=lambda value, column: _in_range(value, low, high),
    )


def pattern(regex: str | re.Pattern[str], message: str = "Invalid format") -> ValidationRule:
    compiled = re.compile(regex) if isinstance(regex, str) else regex
    return ValidationRule(
        name="pattern",
        params=(compiled.pattern, compiled.flags),
        message=message,
        check=lambda value, column: compiled.search(_text(value)) is not None,
    )


def email(message: str = "Must be a valid email address") -> ValidationRule:
    return ValidationRule(
        name="email",
        message=message,
        check=lambda value, column: EMAIL_RE.match(_text(value)) is not None,
    )


def phone(message: str = "Must be a valid phone number") -> ValidationRule:
    return ValidationRule(
        name="phone",
        message=message,
        check=lambda value, column: PHONE_RE.match(_text(value)) is not None,
    )


def custom(check: RuleCheck, message: str = "Validation failed") -> ValidationRule:
    """Wrap an arbitrary predicate. Equality includes the predicate's identity."""
    return ValidationRule(name="custom", params=(check,), message=message, check=check)


RULE_FACTORIES: dict[str, Callable[..., ValidationRule]] = {
    "required": required,
    "min_length": min_length,
    "max_length": max_length,
    "value_range": value_range,
    "pattern": pattern,
    "email": email,
    "phone": phone,
}
