"""Injected I/O ports: table sinks, clipboards and files."""

from tablebridge.ports.clipboard import (
    ClipboardPort,
    FallbackClipboard,
    MemoryClipboard,
    PromptClipboard,
    SystemClipboard,
    TextFileClipboard,
)
from tablebridge.ports.files import CsvFilePort, FilePort, SuffixFilePort, XlsxFilePort
from tablebridge.ports.sinks import (
    MemoryTableSink,
    SelectableMemoryTableSink,
    SelectableTableSink,
    TableSink,
    WorkbookTableSink,
)

__all__ = [
    "ClipboardPort",
    "CsvFilePort",
    "FallbackClipboard",
    "FilePort",
    "MemoryClipboard",
    "MemoryTableSink",
    "PromptClipboard",
    "SelectableMemoryTableSink",
    "SelectableTableSink",
    "SuffixFilePort",
    "SystemClipboard",
    "TableSink",
    "TextFileClipboard",
    "WorkbookTableSink",
    "XlsxFilePort",
]
