"""tablebridge: copy/paste and spreadsheet interchange for typed tabular data."""

from tablebridge.contracts import (
    INVALID_DATE,
    ClipboardPayload,
    Column,
    Grid,
    Row,
    TableSnapshot,
    Transform,
    TransferHooks,
    TransferOptions,
    ValidationReport,
)
from tablebridge.engine.orchestrator import TransferOrchestrator
from tablebridge.validation import rules
from tablebridge.validation.validators import DataValidator

__version__ = "0.1.0"

__all__ = [
    "INVALID_DATE",
    "ClipboardPayload",
    "Column",
    "DataValidator",
    "Grid",
    "Row",
    "TableSnapshot",
    "Transform",
    "TransferHooks",
    "TransferOptions",
    "TransferOrchestrator",
    "ValidationReport",
    "__version__",
    "rules",
]
