"""Data validation: type checks, rule factories and YAML policies."""

from tablebridge.validation.validators import DataValidator

__all__ = ["DataValidator"]
