"""Policy loading: columns, options and declarative rules from tablebridge.yaml."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from tablebridge.contracts.common import ConfigError
from tablebridge.contracts.options import TransferOptions
from tablebridge.contracts.table import Column
from tablebridge.io.fileops import read_text_safe
from tablebridge.validation import rules as rule_factories
from tablebridge.validation.rules import ValidationRule
from tablebridge.validation.validators import DataValidator

POLICY_FILENAME = "tablebridge.yaml"

_OPTION_KEYS = ("include_header", "col_delimiter", "row_delimiter", "sheet_name")


def build_rule(entry: dict[str, Any]) -> ValidationRule:
    """Build one rule from its YAML form, e.g. ``{type: value_range, min: 0, max: 9}``."""
    if not isinstance(entry, dict):
        raise ConfigError(f"Rule entries must be mappings with a 'type', got: {entry!r}")
    rule_type = entry.get("type")
    factory = rule_factories.RULE_FACTORIES.get(rule_type) if isinstance(rule_type, str) else None
    if factory is None:
        raise ConfigError(
            f"Unknown rule type: '{rule_type}'. "
            f"Supported: {', '.join(sorted(rule_factories.RULE_FACTORIES))}"
        )
    message = entry.get("message")
    try:
        if rule_type == "min_length":
            return factory(int(entry["min"]), message)
        if rule_type == "max_length":
            return factory(int(entry["max"]), message)
        if rule_type == "value_range":
            return factory(float(entry["min"]), float(entry["max"]), message)
        if rule_type == "pattern":
            regex = entry["regex"]
            if not isinstance(regex, str):
                raise TypeError(f"regex must be a string, got {regex!r}")
            return factory(regex, message) if message else factory(regex)
        return factory(message) if message else factory()
    except KeyError as e:
        raise ConfigError(f"Rule '{rule_type}' is missing parameter {e}") from e
    except (TypeError, ValueError, re.error, ValidationError) as e:
        raise ConfigError(f"Rule '{rule_type}' has an invalid parameter: {e}") from e


class TransferPolicy:
    """Represents a loaded policy configuration."""

    def __init__(self, data: dict[str, Any]) -> None:
        raw_columns = data.get("columns") or []
        if not isinstance(raw_columns, list):
            raise ConfigError("'columns' must be a list")
        try:
            self.columns: list[Column] = [Column.model_validate(c) for c in raw_columns]
        except ValidationError as e:
            raise ConfigError(f"Invalid column definition: {e}") from e
        raw_options = data.get("options") or {}
        if not isinstance(raw_options, dict):
            raise ConfigError("'options' must be a mapping")
        self.options: dict[str, Any] = {k: raw_options[k] for k in _OPTION_KEYS if k in raw_options}
        self.rules: dict[str, list[dict[str, Any]]] = data.get("rules") or {}
        if not isinstance(self.rules, dict):
            raise ConfigError("'rules' must map column keys to lists of rules")
        for column_key, entries in self.rules.items():
            if entries is not None and not isinstance(entries, list):
                raise ConfigError(f"Rules for column '{column_key}' must be a list")

    @classmethod
    def load(cls, path: str | Path) -> "TransferPolicy":
        """Load policy from a YAML file."""
        try:
            text = read_text_safe(path)
        except OSError as e:
            raise ConfigError(f"Cannot read policy {path}: {e}") from e
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Cannot parse policy {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Policy {path} must contain a mapping")
        return cls(data)

    @classmethod
    def load_from_dir(cls, directory: str | Path) -> "TransferPolicy | None":
        """Try to load tablebridge.yaml from a directory. Returns None if not found."""
        path = Path(directory) / POLICY_FILENAME
        if path.exists():
            return cls.load(path)
        return None

    def build_options(self, **overrides: Any) -> TransferOptions:
        merged = {**self.options, **{k: v for k, v in overrides.items() if v is not None}}
        try:
            return TransferOptions(**merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid options: {e}") from e

    def build_validator(self) -> DataValidator:
        validator = DataValidator()
        for column_key, entries in self.rules.items():
            for entry in entries or []:
                validator.add_rule(column_key, build_rule(entry))
        return validator
