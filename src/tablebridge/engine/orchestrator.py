"""TransferOrchestrator: copy, paste, import and export pipelines.

Each operation runs read-port -> codec -> validate -> write-port with hook
points in between. Ports and hooks may be sync or async; the codecs and the
validator are plain synchronous calls. Any exception is observed once here
(``on_error``) and re-raised unchanged. Validation reports are returned and
emitted as events; they never fail an operation by themselves.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from tablebridge.codecs import delimited
from tablebridge.codecs import grid as grid_codec
from tablebridge.contracts.common import UnsupportedOperation
from tablebridge.contracts.options import TransferHooks, TransferOptions
from tablebridge.contracts.responses import TransferResult, ValidationReport
from tablebridge.contracts.table import Column, TableSnapshot
from tablebridge.observe.events import EventEmitter, Timer
from tablebridge.ports.base import call, maybe_await
from tablebridge.ports.clipboard import ClipboardPort, MemoryClipboard
from tablebridge.ports.files import FileHandle, FilePort, SuffixFilePort
from tablebridge.ports.sinks import TableSink, supports_selection
from tablebridge.validation.validators import DataValidator


class TransferOrchestrator:
    """Adapter-facing facade over the codecs, the validator and the ports."""

    def __init__(
        self,
        options: TransferOptions | None = None,
        hooks: TransferHooks | None = None,
        *,
        validator: DataValidator | None = None,
        clipboard: ClipboardPort | None = None,
        files: FilePort | None = None,
        events: EventEmitter | None = None,
    ) -> None:
        self.options = options or TransferOptions()
        self.hooks = hooks or TransferHooks()
        self.validator = validator or DataValidator()
        self.clipboard = clipboard or MemoryClipboard()
        self.files = files or SuffixFilePort()
        self.events = events or EventEmitter()

    # ------------------------------------------------------------------
    # Configuration (between operations only)
    # ------------------------------------------------------------------
    def update_options(self, **changes: Any) -> None:
        self.options = TransferOptions(**{**dict(self.options), **changes})

    def update_hooks(self, **changes: Any) -> None:
        self.hooks = self.hooks.model_copy(update=changes)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _fail(self, operation: str, error: BaseException) -> None:
        self.events.emit(f"{operation}.error", {"type": type(error).__name__, "message": str(error)})
        if self.hooks.on_error is None:
            return
        try:
            await call(self.hooks.on_error, error)
        except Exception as hook_error:
            # the caller still receives the original error
            self.events.emit(f"{operation}.on_error_failed", {
                "type": type(hook_error).__name__, "message": str(hook_error),
            })

    @staticmethod
    def _require_selection(sink: object, operation: str) -> None:
        if not supports_selection(sink):
            name = getattr(sink, "name", type(sink).__name__)
            raise UnsupportedOperation(f"Sink '{name}' does not support selection ({operation})")

    async def _read(self, source: TableSink, selected: bool, operation: str) -> TableSnapshot:
        if selected:
            self._require_selection(source, operation)
            return await maybe_await(source.get_selected_snapshot())  # type: ignore[attr-defined]
        return await maybe_await(source.get_snapshot())

    async def _write(self, sink: TableSink, snapshot: TableSnapshot, selected: bool, operation: str) -> None:
        if selected:
            self._require_selection(sink, operation)
            await maybe_await(sink.set_selected_snapshot(snapshot))  # type: ignore[attr-defined]
        else:
            await maybe_await(sink.set_snapshot(snapshot))

    def validate(self, snapshot: TableSnapshot) -> ValidationReport:
        """Validate and emit the report. Never raises for bad data."""
        report = self.validator.validate(snapshot)
        self.events.emit("validation.report", {
            "valid": report.valid,
            "error_count": len(report.errors),
            "errors": [e.model_dump(mode="json") for e in report.errors],
        })
        return report

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    async def paste(self, sink: TableSink, columns: Sequence[Column], *, selected: bool = False) -> TransferResult:
        """Clipboard -> snapshot -> sink."""
        operation = "paste_selected" if selected else "paste"
        self.events.emit(f"{operation}.start", {"columns": [c.key for c in columns]})
        with Timer() as t:
            try:
                if selected:
                    self._require_selection(sink, operation)
                payload = await maybe_await(self.clipboard.read())
                if self.hooks.before_paste is not None:
                    payload = await call(self.hooks.before_paste, payload)
                snapshot = delimited.from_payload(payload, columns, self.options)
                report = self.validate(snapshot)
                if self.hooks.after_paste is not None:
                    await call(self.hooks.after_paste, snapshot)
                await self._write(sink, snapshot, selected, operation)
            except Exception as e:
                await self._fail(operation, e)
                raise
        self.events.emit(f"{operation}.done", {"rows": len(snapshot.rows), "duration_ms": t.elapsed_ms})
        return TransferResult(operation=operation, snapshot=snapshot, report=report)

    async def copy(self, source: TableSink, *, selected: bool = False) -> TransferResult:
        """Source -> snapshot -> clipboard."""
        operation = "copy_selected" if selected else "copy"
        self.events.emit(f"{operation}.start")
        with Timer() as t:
            try:
                snapshot = await self._read(source, selected, operation)
                if self.hooks.before_copy is not None:
                    snapshot = await call(self.hooks.before_copy, snapshot)
                payload = delimited.to_payload(snapshot, self.options)
                await maybe_await(self.clipboard.write(payload))
                if self.hooks.after_copy is not None:
                    await call(self.hooks.after_copy, snapshot)
            except Exception as e:
                await self._fail(operation, e)
                raise
        self.events.emit(f"{operation}.done", {"rows": len(snapshot.rows), "duration_ms": t.elapsed_ms})
        return TransferResult(operation=operation, snapshot=snapshot, payload=payload)

    async def import_file(self, sink: TableSink, handle: FileHandle, columns: Sequence[Column]) -> TransferResult:
        """File -> grid -> snapshot -> sink."""
        operation = "import"
        self.events.emit(f"{operation}.start", {"file": str(getattr(handle, "name", handle))})
        with Timer() as t:
            try:
                sheet = await maybe_await(self.files.import_from(handle))
                snapshot = grid_codec.deserialize(sheet, columns, self.options)
                report = self.validate(snapshot)
                await maybe_await(sink.set_snapshot(snapshot))
            except Exception as e:
                await self._fail(operation, e)
                raise
        self.events.emit(f"{operation}.done", {"rows": len(snapshot.rows), "duration_ms": t.elapsed_ms})
        return TransferResult(operation=operation, snapshot=snapshot, report=report, grid=sheet)

    async def export_file(self, source: TableSink, filename: str | Path = "export.xlsx") -> TransferResult:
        """Source -> snapshot -> grid -> file."""
        operation = "export"
        self.events.emit(f"{operation}.start", {"file": str(filename)})
        with Timer() as t:
            try:
                snapshot = await maybe_await(source.get_snapshot())
                if self.hooks.before_copy is not None:
                    snapshot = await call(self.hooks.before_copy, snapshot)
                sheet = grid_codec.serialize(snapshot, self.options)
                await maybe_await(self.files.export_to(sheet, filename))
                if self.hooks.after_copy is not None:
                    await call(self.hooks.after_copy, snapshot)
            except Exception as e:
                await self._fail(operation, e)
                raise
        self.events.emit(f"{operation}.done", {"rows": len(snapshot.rows), "duration_ms": t.elapsed_ms})
        return TransferResult(operation=operation, snapshot=snapshot, grid=sheet)

    # Convenience wrappers mirroring the selection-aware entry points.
    async def copy_selected(self, source: TableSink) -> TransferResult:
        return await self.copy(source, selected=True)

    async def paste_selected(self, sink: TableSink, columns: Sequence[Column]) -> TransferResult:
        return await self.paste(sink, columns, selected=True)
