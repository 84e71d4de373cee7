"""Shared test fixtures."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import openpyxl
import pytest
from openpyxl import Workbook
from openpyxl.worksheet.table import Table, TableStyleInfo

from tablebridge.contracts.table import Column, Row, TableSnapshot


def _save_and_reload(wb: Workbook, path: Path) -> None:
    """Save workbook and reload so tableColumns get populated."""
    wb.save(str(path))
    wb2 = openpyxl.load_workbook(str(path))
    wb2.save(str(path))
    wb2.close()


@pytest.fixture()
def people_columns() -> list[Column]:
    return [
        Column(key="name", title="Name", data_type="string"),
        Column(key="age", title="Age", data_type="number"),
        Column(key="active", title="Active", data_type="boolean"),
        Column(key="joined", title="Joined", data_type="date"),
    ]


@pytest.fixture()
def people_snapshot(people_columns: list[Column]) -> TableSnapshot:
    return TableSnapshot(
        rows=[
            Row(id=0, values={"name": "Alice", "age": 30, "active": True, "joined": date(2021, 3, 14)}),
            Row(id=1, values={"name": "Bob", "age": 25.5, "active": False, "joined": date(2022, 1, 2)}),
        ],
        columns=people_columns,
    )


@pytest.fixture()
def people_workbook(tmp_path: Path) -> Path:
    """A plain workbook: header row plus two data rows on sheet 'People'."""
    wb = Workbook()
    ws = wb.active
    ws.title = "People"
    ws.append(["Name", "Age", "Active", "Joined"])
    ws.append(["Alice", 30, True, "2021-03-14"])
    ws.append(["Bob", "thirty", "yes", "not-a-date"])
    path = tmp_path / "people.xlsx"
    wb.save(str(path))
    return path


@pytest.fixture()
def table_workbook(tmp_path: Path) -> Path:
    """A workbook holding an Excel Table named 'Staff' at B2:D4."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Data"
    ws["A1"] = "untouched"
    ws["B2"] = "name"
    ws["C2"] = "age"
    ws["D2"] = "active"
    ws.append([None, "Alice", 30, True])
    ws.append([None, "Bob", 41, False])

    tab = Table(displayName="Staff", ref="B2:D4")
    tab.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9",
        showFirstColumn=False,
        showLastColumn=False,
        showRowStripes=True,
        showColumnStripes=False,
    )
    ws.add_table(tab)

    path = tmp_path / "staff.xlsx"
    _save_and_reload(wb, path)
    return path


@pytest.fixture()
def policy_file(tmp_path: Path) -> Path:
    path = tmp_path / "tablebridge.yaml"
    path.write_text(
        "columns:\n"
        "  - key: name\n"
        "    title: Name\n"
        "    dataType: string\n"
        "  - key: age\n"
        "    title: Age\n"
        "    dataType: number\n"
        "rules:\n"
        "  name:\n"
        "    - type: required\n"
        "  age:\n"
        "    - type: value_range\n"
        "      min: 0\n"
        "      max: 150\n"
    )
    return path
