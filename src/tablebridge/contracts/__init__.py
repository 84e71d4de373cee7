"""Pydantic models for snapshots, grids, payloads, options and results."""

from tablebridge.contracts.common import (
    ConfigError,
    ErrorDetail,
    Metrics,
    PortFailure,
    ResponseEnvelope,
    Target,
    TransferError,
    UnsupportedOperation,
    ValidationFailure,
    WarningDetail,
)
from tablebridge.contracts.options import (
    Transform,
    TransferHooks,
    TransferOptions,
)
from tablebridge.contracts.responses import (
    CellError,
    TransferResult,
    ValidationReport,
)
from tablebridge.contracts.table import (
    INVALID_DATE,
    ClipboardPayload,
    Column,
    Grid,
    Row,
    TableSnapshot,
)

__all__ = [
    "INVALID_DATE",
    "CellError",
    "ClipboardPayload",
    "Column",
    "ConfigError",
    "ErrorDetail",
    "Grid",
    "Metrics",
    "PortFailure",
    "ResponseEnvelope",
    "Row",
    "TableSnapshot",
    "Target",
    "Transform",
    "TransferError",
    "TransferHooks",
    "TransferOptions",
    "TransferResult",
    "UnsupportedOperation",
    "ValidationFailure",
    "ValidationReport",
    "WarningDetail",
]
