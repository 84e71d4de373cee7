"""File ports: read a sheet into a Grid, write a Grid out as a file."""

from __future__ import annotations

import csv
from io import BytesIO, StringIO
from pathlib import Path
from typing import IO, Any, Awaitable, Protocol, Union, runtime_checkable

import openpyxl
import portalocker
from openpyxl import Workbook
from openpyxl.utils.exceptions import IllegalCharacterError

from tablebridge.codecs import scalar
from tablebridge.contracts.common import PortFailure
from tablebridge.contracts.table import INVALID_DATE, Grid
from tablebridge.io.fileops import ExportLock, atomic_write, read_text_safe

FileHandle = Union[str, Path, IO[Any]]


@runtime_checkable
class FilePort(Protocol):
    def import_from(self, handle: FileHandle) -> Grid | Awaitable[Grid]: ...

    def export_to(self, grid: Grid, filename: str | Path) -> None | Awaitable[None]: ...


def _handle_name(handle: FileHandle) -> str:
    if isinstance(handle, (str, Path)):
        return str(handle)
    return str(getattr(handle, "name", ""))


def _write_locked(filename: str | Path, data: bytes) -> None:
    try:
        with ExportLock(filename):
            atomic_write(filename, data)
    except (OSError, portalocker.LockException) as e:
        raise PortFailure("file", f"Cannot write {filename}: {e}") from e


class CsvFilePort:
    """Delimited files with CSV quoting, so embedded delimiters survive."""

    def __init__(self, delimiter: str = ",") -> None:
        self.delimiter = delimiter

    def import_from(self, handle: FileHandle) -> Grid:
        name = _handle_name(handle)
        try:
            if isinstance(handle, (str, Path)):
                text = read_text_safe(handle, keep_newlines=True)
            else:
                raw = handle.read()
                text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
            cells = [list(r) for r in csv.reader(StringIO(text), delimiter=self.delimiter)]
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise PortFailure("file", f"Cannot read {name or 'file'}: {e}") from e
        return Grid(name=Path(name).stem or "Sheet1", cells=cells)

    def export_to(self, grid: Grid, filename: str | Path) -> None:
        buf = StringIO()
        writer = csv.writer(buf, delimiter=self.delimiter, lineterminator="\n")
        for row in grid.cells:
            writer.writerow([scalar.encode(v) for v in row])
        _write_locked(filename, buf.getvalue().encode("utf-8"))


class XlsxFilePort:
    """.xlsx workbooks via openpyxl. Reads one sheet (named, or the active one)."""

    def __init__(self, sheet: str | None = None) -> None:
        self.sheet = sheet

    def import_from(self, handle: FileHandle) -> Grid:
        name = _handle_name(handle)
        source = str(handle) if isinstance(handle, (str, Path)) else handle
        try:
            wb = openpyxl.load_workbook(source, read_only=True, data_only=True)
        except Exception as e:
            raise PortFailure("file", f"Cannot open workbook {name}: {e}") from e
        try:
            if self.sheet is not None:
                if self.sheet not in wb.sheetnames:
                    raise PortFailure("file", f"Sheet not found: {self.sheet}")
                ws = wb[self.sheet]
            else:
                ws = wb.active
            cells = [list(r) for r in ws.iter_rows(values_only=True)]
            title = ws.title
        finally:
            wb.close()
        return Grid(name=title, cells=cells)

    def export_to(self, grid: Grid, filename: str | Path) -> None:
        wb = Workbook()
        try:
            ws = wb.active
            ws.title = grid.name
            for row in grid.cells:
                ws.append([str(v) if v is INVALID_DATE else v for v in row])
            buf = BytesIO()
            wb.save(buf)
        except (ValueError, IllegalCharacterError) as e:
            raise PortFailure("file", f"Cannot build workbook {filename}: {e}") from e
        finally:
            wb.close()
        _write_locked(filename, buf.getvalue())


class SuffixFilePort:
    """Dispatches to the CSV or xlsx port by file suffix."""

    def __init__(self, sheet: str | None = None) -> None:
        self.sheet = sheet

    def port_for(self, name: str) -> CsvFilePort | XlsxFilePort:
        suffix = Path(name).suffix.lower()
        if suffix in (".xlsx", ".xlsm"):
            return XlsxFilePort(self.sheet)
        if suffix == ".csv":
            return CsvFilePort(",")
        if suffix in (".tsv", ".txt"):
            return CsvFilePort("\t")
        raise PortFailure("file", f"Unsupported file type: '{suffix or name}'")

    def import_from(self, handle: FileHandle) -> Grid:
        return self.port_for(_handle_name(handle)).import_from(handle)

    def export_to(self, grid: Grid, filename: str | Path) -> None:
        self.port_for(str(filename)).export_to(grid, filename)
