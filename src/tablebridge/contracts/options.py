"""Transfer options and hook bundles."""

from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Hooks may be plain functions or coroutine functions.
Hook = Callable[..., Any]


class Transform(BaseModel):
    """Caller-supplied cell conversions that replace the built-in scalar rules."""

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    export: Callable[[Any, Any], str] | None = None
    import_: Callable[[str, Any], Any] | None = Field(default=None, alias="import")


class TransferOptions(BaseModel):
    """Options shared by the codecs and the orchestrator."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    include_header: bool = True
    col_delimiter: str = "\t"
    row_delimiter: str = "\n"
    sheet_name: str = "Sheet1"
    transform: Transform = Field(default_factory=Transform)

    @field_validator("col_delimiter", "row_delimiter")
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        if not v:
            raise ValueError("Delimiter must not be empty")
        return v


class TransferHooks(BaseModel):
    """Pre/post hooks around copy and paste, plus the error observer."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    before_copy: Hook | None = None
    after_copy: Hook | None = None
    before_paste: Hook | None = None
    after_paste: Hook | None = None
    on_error: Callable[[BaseException], Any] | None = None
