"""Typer CLI application: copy, paste, import, export and validate commands."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Annotated, Any, Optional

import click
import orjson
import typer
import typer.core

import tablebridge
from tablebridge.contracts.common import ConfigError, ErrorDetail, Target, TransferError
from tablebridge.contracts.table import Column, TableSnapshot
from tablebridge.engine.dispatcher import (
    error_code_for,
    error_envelope,
    exit_code_for,
    print_response,
    success_envelope,
)
from tablebridge.engine.orchestrator import TransferOrchestrator
from tablebridge.io.fileops import atomic_write, read_text_safe
from tablebridge.observe.events import EventEmitter, Timer
from tablebridge.ports.clipboard import FallbackClipboard, PromptClipboard, SystemClipboard, TextFileClipboard
from tablebridge.ports.files import SuffixFilePort
from tablebridge.ports.sinks import MemoryTableSink
from tablebridge.validation.policy import POLICY_FILENAME, TransferPolicy


def patch_typer_errors() -> None:
    """Patch TyperGroup.invoke to emit JSON envelopes for CLI usage errors."""
    _orig_invoke = typer.core.TyperGroup.invoke

    def _json_invoke(self, ctx):
        try:
            return _orig_invoke(self, ctx)
        except click.exceptions.UsageError as e:
            env = error_envelope("unknown", "ERR_USAGE", str(e.format_message()))
            print_response(env)
            raise SystemExit(exit_code_for(env)) from e

    typer.core.TyperGroup.invoke = _json_invoke


patch_typer_errors()

_MAIN_HELP = """\
Move typed tables between the clipboard, spreadsheets and JSON snapshots.

**Every command** prints a JSON `ResponseEnvelope`:
`{"ok": bool, "command": "...", "result": {...}, "errors": [...], "metrics": {"duration_ms": N}}`

Columns, options and validation rules come from `tablebridge.yaml` (or `--config`).

**Exit codes:** 0=success, 10=validation, 50=io, 70=unsupported, 90=internal
"""

app = typer.Typer(
    name="tablebridge",
    help=_MAIN_HELP,
    no_args_is_help=True,
    rich_markup_mode="markdown",
)


@app.callback(invoke_without_command=True)
def main(
    version: Annotated[
        bool, typer.Option("--version", "-V", help="Print version and exit.", is_eager=True)
    ] = False,
) -> None:
    if version:
        typer.echo(tablebridge.__version__)
        raise typer.Exit()


# Type aliases for common options
ConfigOpt = Annotated[Optional[str], typer.Option("--config", "-c", help=f"Policy YAML (default: ./{POLICY_FILENAME})")]
NoHeaderOpt = Annotated[bool, typer.Option("--no-header", help="Text/grid has no header row")]
ColDelimOpt = Annotated[Optional[str], typer.Option("--col-delimiter", help="Column delimiter, escapes allowed (e.g. '\\t', ',')")]
RowDelimOpt = Annotated[Optional[str], typer.Option("--row-delimiter", help="Row delimiter, escapes allowed (e.g. '\\n', '\\r\\n')")]
EventsOpt = Annotated[bool, typer.Option("--events", help="Emit NDJSON lifecycle events to stderr")]
StrictOpt = Annotated[bool, typer.Option("--strict", help="Fail (exit 10) when the validation report is not valid")]
SnapshotOpt = Annotated[str, typer.Option("--snapshot", help="Snapshot JSON file (snapshot object or list of records)")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _emit(envelope, code=None):
    print_response(envelope)
    raise typer.Exit(code if code is not None else exit_code_for(envelope))


_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "\\": "\\"}
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def _unescape(value: str | None) -> str | None:
    if value is None:
        return None
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(0)), value)


def _load_policy(config: str | None) -> TransferPolicy:
    if config:
        return TransferPolicy.load(config)
    return TransferPolicy.load_from_dir(Path.cwd()) or TransferPolicy({})


def _build(
    command: str,
    config: str | None,
    *,
    no_header: bool = False,
    col_delimiter: str | None = None,
    row_delimiter: str | None = None,
    events: bool = False,
    **ports: Any,
) -> tuple[TransferPolicy, TransferOrchestrator]:
    try:
        policy = _load_policy(config)
        validator = policy.build_validator()
        policy.build_options()
    except ConfigError as e:
        _emit(error_envelope(command, error_code_for(e), str(e), target=Target(file=config)))
    try:
        options = policy.build_options(
            include_header=False if no_header else None,
            col_delimiter=_unescape(col_delimiter),
            row_delimiter=_unescape(row_delimiter),
        )
    except ConfigError as e:
        _emit(error_envelope(command, "ERR_INVALID_ARGUMENT", str(e)))
    orch = TransferOrchestrator(
        options,
        validator=validator,
        events=EventEmitter(enabled=events),
        **ports,
    )
    return policy, orch


def _require_columns(command: str, columns: list[Column]) -> None:
    if not columns:
        _emit(error_envelope(
            command, "ERR_MISSING_COLUMNS",
            f"No columns declared. Add a 'columns' list to {POLICY_FILENAME} or pass --config.",
        ))


def _parse_snapshot(path: str, columns: list[Column]) -> TableSnapshot:
    data = orjson.loads(read_text_safe(path))
    if isinstance(data, dict) and "rows" in data:
        cols = [Column.model_validate(c) for c in data.get("columns") or []] or columns
        rows = data["rows"]
    elif isinstance(data, list):
        cols, rows = columns, data
    else:
        raise ValueError("expected a snapshot object or a list of records")
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise ValueError("rows must be a list of objects")
    if all("values" in r for r in rows):
        return TableSnapshot.model_validate({"rows": rows, "columns": [c.model_dump() for c in cols]})
    return TableSnapshot.from_records(rows, cols)


def _load_snapshot(command: str, path: str, columns: list[Column]) -> TableSnapshot:
    try:
        return _parse_snapshot(path, columns)
    except (OSError, ValueError) as e:
        _emit(error_envelope(
            command, "ERR_INVALID_ARGUMENT", f"Cannot load snapshot {path}: {e}", target=Target(file=path),
        ))


def _write_snapshot(command: str, path: str, snapshot: TableSnapshot) -> None:
    try:
        atomic_write(path, orjson.dumps(snapshot.model_dump(mode="json"), option=orjson.OPT_INDENT_2))
    except OSError as e:
        _emit(error_envelope(command, error_code_for(e), f"Cannot write {path}: {e}", target=Target(file=path)))


def _run_or_emit(command: str, coro, target: Target):
    try:
        return asyncio.run(coro)
    except (TransferError, OSError) as e:
        _emit(error_envelope(command, error_code_for(e), str(e), target=target))


def _report_envelope(command: str, result, target: Target, strict: bool, duration_ms: int):
    payload = {
        "rows": len(result.snapshot.rows),
        "snapshot": result.snapshot.model_dump(mode="json"),
        "report": result.report.model_dump(mode="json"),
    }
    env = success_envelope(command, payload, target=target, duration_ms=duration_ms)
    if strict and not result.report.valid:
        env.ok = False
        env.errors = [
            ErrorDetail(
                code="ERR_VALIDATION_FAILED",
                message=f"{len(result.report.errors)} cell(s) failed validation",
                details={"errors": payload["report"]["errors"]},
            )
        ]
    return env


# ---------------------------------------------------------------------------
# tablebridge version
# ---------------------------------------------------------------------------
@app.command()
def version():
    """Print the tablebridge version and whether a system clipboard tool is installed.

    Example: `tablebridge version`
    """
    _emit(success_envelope("version", {
        "version": tablebridge.__version__,
        "system_clipboard": SystemClipboard().is_available(),
    }))


# ---------------------------------------------------------------------------
# tablebridge paste
# ---------------------------------------------------------------------------
@app.command("paste")
def paste_cmd(
    config: ConfigOpt = None,
    input_file: Annotated[Optional[str], typer.Option("--input", "-i", help="Read clipboard text from this file instead of the system clipboard")] = None,
    out: Annotated[Optional[str], typer.Option("--out", help="Write the decoded snapshot JSON to this path")] = None,
    strict: StrictOpt = False,
    no_header: NoHeaderOpt = False,
    col_delimiter: ColDelimOpt = None,
    row_delimiter: RowDelimOpt = None,
    events: EventsOpt = False,
):
    """Decode clipboard text into a snapshot and validate it.

    Reads the system clipboard, falling back once to stdin when no clipboard
    tool is available. Validation errors are reported, not fatal, unless
    `--strict` is given.

    Example: `tablebridge paste -c tablebridge.yaml --out snapshot.json`

    Example: `tablebridge paste -i copied.txt --strict`
    """
    clipboard = (
        TextFileClipboard(input_file) if input_file
        else FallbackClipboard(SystemClipboard(), PromptClipboard(), events=EventEmitter(enabled=events))
    )
    policy, orch = _build(
        "paste", config, no_header=no_header, col_delimiter=col_delimiter,
        row_delimiter=row_delimiter, events=events, clipboard=clipboard,
    )
    _require_columns("paste", policy.columns)
    target = Target(file=input_file)

    with Timer() as t:
        sink = MemoryTableSink(columns=policy.columns)
        result = _run_or_emit("paste", orch.paste(sink, policy.columns), target)
        if out:
            _write_snapshot("paste", out, result.snapshot)

    _emit(_report_envelope("paste", result, target, strict, t.elapsed_ms))


# ---------------------------------------------------------------------------
# tablebridge copy
# ---------------------------------------------------------------------------
@app.command("copy")
def copy_cmd(
    snapshot: SnapshotOpt,
    config: ConfigOpt = None,
    output: Annotated[Optional[str], typer.Option("--output", "-o", help="Write clipboard text to this file instead of the system clipboard")] = None,
    no_header: NoHeaderOpt = False,
    col_delimiter: ColDelimOpt = None,
    row_delimiter: RowDelimOpt = None,
    events: EventsOpt = False,
):
    """Encode a snapshot as delimited text and put it on the clipboard.

    Writes the system clipboard, falling back once to printing the text on
    stderr for manual copying.

    Example: `tablebridge copy --snapshot snapshot.json`

    Example: `tablebridge copy --snapshot rows.json -o clip.txt --col-delimiter ','`
    """
    clipboard = (
        TextFileClipboard(output) if output
        else FallbackClipboard(SystemClipboard(), PromptClipboard(), events=EventEmitter(enabled=events))
    )
    policy, orch = _build(
        "copy", config, no_header=no_header, col_delimiter=col_delimiter,
        row_delimiter=row_delimiter, events=events, clipboard=clipboard,
    )
    source = MemoryTableSink(_load_snapshot("copy", snapshot, policy.columns))
    target = Target(file=output)

    with Timer() as t:
        result = _run_or_emit("copy", orch.copy(source), target)

    env = success_envelope(
        "copy",
        {"rows": len(result.snapshot.rows), "text": result.payload.text},
        target=target,
        duration_ms=t.elapsed_ms,
    )
    _emit(env)


# ---------------------------------------------------------------------------
# tablebridge import
# ---------------------------------------------------------------------------
@app.command("import")
def import_cmd(
    file: Annotated[str, typer.Option("--file", "-f", help="Path to .xlsx/.csv/.tsv file")],
    config: ConfigOpt = None,
    sheet: Annotated[Optional[str], typer.Option("--sheet", "-s", help="Sheet name (default: active sheet)")] = None,
    out: Annotated[Optional[str], typer.Option("--out", help="Write the decoded snapshot JSON to this path")] = None,
    strict: StrictOpt = False,
    no_header: NoHeaderOpt = False,
    events: EventsOpt = False,
):
    """Import a spreadsheet or CSV file into a snapshot and validate it.

    Example: `tablebridge import -f people.xlsx --out snapshot.json`

    Example: `tablebridge import -f people.csv --strict`
    """
    policy, orch = _build(
        "import", config, no_header=no_header, events=events, files=SuffixFilePort(sheet),
    )
    _require_columns("import", policy.columns)
    target = Target(file=file, sheet=sheet)

    with Timer() as t:
        sink = MemoryTableSink(columns=policy.columns)
        result = _run_or_emit("import", orch.import_file(sink, file, policy.columns), target)
        if out:
            _write_snapshot("import", out, result.snapshot)

    _emit(_report_envelope("import", result, target, strict, t.elapsed_ms))


# ---------------------------------------------------------------------------
# tablebridge export
# ---------------------------------------------------------------------------
@app.command("export")
def export_cmd(
    snapshot: SnapshotOpt,
    file: Annotated[str, typer.Option("--file", "-f", help="Output .xlsx/.csv/.tsv path")],
    config: ConfigOpt = None,
    sheet: Annotated[Optional[str], typer.Option("--sheet", "-s", help="Sheet name for .xlsx output")] = None,
    no_header: NoHeaderOpt = False,
    events: EventsOpt = False,
):
    """Export a snapshot to a spreadsheet or CSV file.

    The file is written atomically under an exclusive sidecar lock.

    Example: `tablebridge export --snapshot snapshot.json -f out.xlsx`
    """
    policy, orch = _build("export", config, no_header=no_header, events=events)
    if sheet:
        orch.update_options(sheet_name=sheet)
    source = MemoryTableSink(_load_snapshot("export", snapshot, policy.columns))
    target = Target(file=file, sheet=orch.options.sheet_name)

    with Timer() as t:
        result = _run_or_emit("export", orch.export_file(source, file), target)

    env = success_envelope(
        "export",
        {"rows": len(result.snapshot.rows), "path": str(Path(file).resolve())},
        target=target,
        duration_ms=t.elapsed_ms,
    )
    _emit(env)


# ---------------------------------------------------------------------------
# tablebridge validate
# ---------------------------------------------------------------------------
@app.command("validate")
def validate_cmd(
    snapshot: SnapshotOpt,
    config: ConfigOpt = None,
):
    """Validate a snapshot against column types and the policy's rules.

    Returns `ok: false` with every failing cell if validation fails.

    Example: `tablebridge validate --snapshot snapshot.json -c tablebridge.yaml`
    """
    policy, orch = _build("validate", config)
    snap = _load_snapshot("validate", snapshot, policy.columns)

    with Timer() as t:
        report = orch.validate(snap)

    env = success_envelope(
        "validate",
        report.model_dump(mode="json"),
        target=Target(file=snapshot),
        duration_ms=t.elapsed_ms,
    )
    if not report.valid:
        env.ok = False
        env.errors = [
            ErrorDetail(
                code="ERR_VALIDATION_FAILED",
                message=f"{len(report.errors)} cell(s) failed validation",
                details={"errors": env.result["errors"]},
            )
        ]
    _emit(env)
