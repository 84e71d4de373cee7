"""Tests for sink, clipboard and file ports."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

import openpyxl
import portalocker
import pytest

from tablebridge.contracts.common import PortFailure
from tablebridge.contracts.table import ClipboardPayload, Column, Grid, Row, TableSnapshot
from tablebridge.engine.orchestrator import TransferOrchestrator
from tablebridge.io.fileops import ExportLock
from tablebridge.ports import clipboard as clipboard_mod
from tablebridge.ports.clipboard import MemoryClipboard, SystemClipboard, TextFileClipboard
from tablebridge.ports.files import CsvFilePort, SuffixFilePort, XlsxFilePort
from tablebridge.ports.sinks import (
    MemoryTableSink,
    SelectableMemoryTableSink,
    WorkbookTableSink,
    supports_selection,
)


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class TestMemorySinks:
    def test_get_snapshot_is_a_copy(self, people_snapshot):
        sink = MemoryTableSink(people_snapshot)
        snap = sink.get_snapshot()
        snap.rows[0].values["name"] = "Mallory"
        assert sink.snapshot.rows[0].get("name") == "Alice"

    def test_selection_capability(self):
        assert supports_selection(MemoryTableSink()) is False
        assert supports_selection(SelectableMemoryTableSink()) is True

    def test_selected_snapshot_keeps_row_order(self, people_snapshot):
        sink = SelectableMemoryTableSink(people_snapshot, selected_ids=[1, 0])
        assert [r.id for r in sink.get_selected_snapshot().rows] == [0, 1]

    def test_set_selected_ignores_surplus_rows(self, people_snapshot):
        sink = SelectableMemoryTableSink(people_snapshot, selected_ids=[0])
        incoming = TableSnapshot(
            rows=[Row(values={"name": "X"}), Row(values={"name": "Y"})],
            columns=people_snapshot.columns,
        )
        sink.set_selected_snapshot(incoming)
        assert [r.get("name") for r in sink.snapshot.rows] == ["X", "Bob"]
        assert sink.snapshot.rows[0].get("age") == 30


class TestWorkbookTableSink:
    def test_get_snapshot_uses_header_as_columns(self, table_workbook: Path):
        snap = WorkbookTableSink(table_workbook, "Staff").get_snapshot()
        assert snap.keys == ["name", "age", "active"]
        assert snap.records() == [
            {"name": "Alice", "age": 30, "active": True},
            {"name": "Bob", "age": 41, "active": False},
        ]

    def test_set_snapshot_resizes_table(self, table_workbook: Path):
        sink = WorkbookTableSink(table_workbook, "Staff")
        snap = sink.get_snapshot()
        snap.rows.append(Row(id=2, values={"name": "Cy", "age": 7, "active": True}))
        sink.set_snapshot(snap)

        wb = openpyxl.load_workbook(str(table_workbook))
        ws = wb["Data"]
        assert ws.tables["Staff"].ref == "B2:D5"
        assert [ws.cell(row=5, column=c).value for c in (2, 3, 4)] == ["Cy", 7, True]
        assert ws["A1"].value == "untouched"
        wb.close()

        assert len(sink.get_snapshot().rows) == 3

    def test_set_snapshot_shrinks_and_clears(self, table_workbook: Path):
        sink = WorkbookTableSink(table_workbook, "Staff")
        snap = sink.get_snapshot()
        snap.rows = snap.rows[:1]
        sink.set_snapshot(snap)

        wb = openpyxl.load_workbook(str(table_workbook))
        ws = wb["Data"]
        assert ws.tables["Staff"].ref == "B2:D3"
        assert ws["B4"].value is None
        wb.close()

    def test_missing_table(self, table_workbook: Path):
        with pytest.raises(PortFailure, match="Table not found"):
            WorkbookTableSink(table_workbook, "Nope").get_snapshot()

    def test_missing_workbook(self, tmp_path: Path):
        with pytest.raises(PortFailure) as exc:
            WorkbookTableSink(tmp_path / "none.xlsx", "Staff").get_snapshot()
        assert exc.value.port == "workbook"

    def test_paste_into_workbook(self, table_workbook: Path):
        cols = [Column(key="name"), Column(key="age", data_type="number"), Column(key="active", data_type="boolean")]
        clip = MemoryClipboard(ClipboardPayload(text="name\tage\tactive\nZoe\t22\ttrue"))
        sink = WorkbookTableSink(table_workbook, "Staff", cols)
        asyncio.run(TransferOrchestrator(clipboard=clip).paste(sink, cols))
        assert sink.get_snapshot().records() == [{"name": "Zoe", "age": 22, "active": True}]


# ---------------------------------------------------------------------------
# Clipboards
# ---------------------------------------------------------------------------


class TestClipboards:
    def test_memory_clipboard_copies(self):
        clip = MemoryClipboard()
        payload = ClipboardPayload(text="a", structured=[["a"]])
        clip.write(payload)
        payload.structured[0][0] = "changed"
        assert clip.read().structured == [["a"]]

    def test_text_file_clipboard(self, tmp_path: Path):
        clip = TextFileClipboard(tmp_path / "clip.txt")
        clip.write(ClipboardPayload(text="x\ty"))
        assert clip.read().text == "x\ty"

    def test_text_file_clipboard_missing(self, tmp_path: Path):
        with pytest.raises(PortFailure, match="Cannot read"):
            TextFileClipboard(tmp_path / "none.txt").read()

    def test_system_clipboard_without_tools(self, monkeypatch):
        monkeypatch.setattr(clipboard_mod.shutil, "which", lambda name: None)
        with pytest.raises(PortFailure, match="No system clipboard tool"):
            SystemClipboard().read()

    def test_system_clipboard_availability(self, monkeypatch):
        monkeypatch.setattr(clipboard_mod.shutil, "which", lambda name: None)
        clip = SystemClipboard()
        assert clip.is_available() is False
        assert clip.request_access() is False

        monkeypatch.setattr(clipboard_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(clip, "_run", lambda cmd, stdin=None: "copied")
        assert clip.is_available() is True
        assert clip.request_access() is True


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class TestFilePorts:
    def test_csv_export_quotes_embedded_delimiters(self, tmp_path: Path):
        out = tmp_path / "out.csv"
        CsvFilePort().export_to(Grid(cells=[["a", "b"], ["x,y", 2.0], [None, True]]), out)
        assert out.read_text() == 'a,b\n"x,y",2\n,true\n'

    def test_csv_import_names_grid_after_file(self, tmp_path: Path):
        path = tmp_path / "people.tsv"
        path.write_text("a\tb\n1\t2\n")
        sheet = SuffixFilePort().import_from(path)
        assert sheet.name == "people"
        assert sheet.cells == [["a", "b"], ["1", "2"]]

    def test_xlsx_missing_sheet(self, people_workbook: Path):
        with pytest.raises(PortFailure, match="Sheet not found"):
            XlsxFilePort("Nope").import_from(people_workbook)

    def test_xlsx_from_file_object(self, people_workbook: Path):
        with open(people_workbook, "rb") as fh:
            sheet = XlsxFilePort().import_from(fh)
        assert sheet.cells[0] == ["Name", "Age", "Active", "Joined"]

    def test_unsupported_suffix(self, tmp_path: Path):
        with pytest.raises(PortFailure, match="Unsupported file type"):
            SuffixFilePort().export_to(Grid(), tmp_path / "out.json")

    def test_export_blocked_by_lock(self, tmp_path: Path):
        out = tmp_path / "locked.csv"
        with ExportLock(out):
            with pytest.raises(PortFailure, match="Cannot write"):
                CsvFilePort().export_to(Grid(cells=[["a"]]), out)
        assert not out.exists()


# ---------------------------------------------------------------------------
# ExportLock
# ---------------------------------------------------------------------------


class TestExportLock:
    def test_lock_path_property(self, tmp_path: Path):
        target = tmp_path / "out.xlsx"
        assert ExportLock(target).lock_path == (tmp_path / "out.xlsx.tb.lock").resolve()

    def test_lock_file_contains_pid(self, tmp_path: Path):
        target = tmp_path / "out.xlsx"
        with ExportLock(target) as lock:
            pass
        content = lock.lock_path.read_text()
        assert f"pid={os.getpid()}" in content
        assert "time=" in content

    def test_timeout_zero_fails_immediately(self, tmp_path: Path):
        target = tmp_path / "out.xlsx"
        with ExportLock(target):
            with pytest.raises(portalocker.LockException):
                with ExportLock(target, timeout=0):
                    pass

    def test_stale_sidecar_is_reacquired(self, tmp_path: Path):
        target = tmp_path / "out.xlsx"
        with ExportLock(target):
            pass
        with ExportLock(target, timeout=0.2):
            pass
