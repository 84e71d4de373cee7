"""Common Pydantic models and exceptions: response envelope, errors, metrics."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from tablebridge.contracts.responses import ValidationReport


class TransferError(Exception):
    """Base class for errors raised by transfer operations."""


class PortFailure(TransferError):
    """Raised when a clipboard or file port is unavailable or denied."""

    def __init__(self, port: str, message: str) -> None:
        super().__init__(f"{port}: {message}")
        self.port = port


class UnsupportedOperation(TransferError):
    """Raised when a sink lacks the capability an operation needs."""


class ValidationFailure(TransferError):
    """Raised only when a caller escalates a non-valid report."""

    def __init__(self, report: "ValidationReport") -> None:
        super().__init__(f"{len(report.errors)} validation error(s)")
        self.report = report


class ConfigError(TransferError):
    """Raised when a policy file cannot be parsed."""


class Target(BaseModel):
    """Identifies the file/sheet/table a command worked on."""

    file: str | None = None
    sheet: str | None = None
    table: str | None = None


class WarningDetail(BaseModel):
    """Structured warning."""

    code: str
    message: str
    path: str | None = None


class ErrorDetail(BaseModel):
    """Structured error."""

    code: str
    message: str
    details: dict[str, Any] | None = None


class Metrics(BaseModel):
    """Execution metrics."""

    duration_ms: int = 0


class ResponseEnvelope(BaseModel):
    """Standard response envelope returned by every command."""

    ok: bool = True
    command: str = ""
    target: Target = Field(default_factory=Target)
    result: Any = None
    warnings: list[WarningDetail] = Field(default_factory=list)
    errors: list[ErrorDetail] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)
