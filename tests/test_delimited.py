"""Tests for the delimited text codec and positional binding."""

from __future__ import annotations

from datetime import date

from tablebridge.codecs import delimited
from tablebridge.contracts.options import Transform, TransferOptions
from tablebridge.contracts.table import ClipboardPayload, Column, Row, TableSnapshot
from tablebridge.validation.validators import DataValidator


NAME_AGE = [
    Column(key="name", title="Name", data_type="string"),
    Column(key="age", title="Age", data_type="number"),
]


def test_split_text_trims_and_drops_blank_lines():
    rows = delimited.split_text(" a \t b\n\n  \nc\td\n")
    assert rows == [["a", "b"], ["c", "d"]]


def test_split_text_blank_input():
    assert delimited.split_text("   \n  ") == []


def test_serialize_with_header(people_snapshot):
    text = delimited.serialize(people_snapshot)
    lines = text.split("\n")
    assert lines[0] == "Name\tAge\tActive\tJoined"
    assert lines[1] == "Alice\t30\ttrue\t2021-03-14"
    assert lines[2] == "Bob\t25.5\tfalse\t2022-01-02"


def test_serialize_header_falls_back_to_key():
    snap = TableSnapshot(rows=[Row(id=0, values={"a": 1})], columns=[Column(key="a")])
    assert delimited.serialize(snap) == "a\n1"


def test_serialize_without_header_custom_delimiters(people_snapshot):
    opts = TransferOptions(include_header=False, col_delimiter=",", row_delimiter="\r\n")
    text = delimited.serialize(people_snapshot, opts)
    assert text == "Alice,30,true,2021-03-14\r\nBob,25.5,false,2022-01-02"


def test_serialize_nulls_are_empty():
    snap = TableSnapshot(rows=[Row(id=0, values={"name": None})], columns=NAME_AGE)
    assert delimited.serialize(snap, TransferOptions(include_header=False)) == "\t"


def test_deserialize_end_to_end_with_validation():
    text = "Name\tAge\nAlice\t30\nBob\tthirty"
    snap = delimited.deserialize(text, NAME_AGE)
    assert snap.records() == [
        {"name": "Alice", "age": 30},
        {"name": "Bob", "age": None},
    ]
    assert [r.id for r in snap.rows] == [0, 1]

    report = DataValidator().validate(snap)
    assert report.valid is False
    assert len(report.errors) == 1
    err = report.errors[0]
    assert err.row_index == 1
    assert err.column_key == "age"
    assert err.message == "Must be a valid number"
    assert err.value == "thirty"


def test_header_titles_are_ignored_binding_is_positional():
    text = "Age\tName\nAlice\t30"
    snap = delimited.deserialize(text, NAME_AGE)
    assert snap.records() == [{"name": "Alice", "age": 30}]


def test_ragged_rows_pad_and_truncate():
    text = "Alice\nBob\t41\textra"
    snap = delimited.deserialize(text, NAME_AGE, TransferOptions(include_header=False))
    assert snap.records() == [
        {"name": "Alice", "age": None},
        {"name": "Bob", "age": 41},
    ]


def test_header_only_is_empty_snapshot():
    snap = delimited.deserialize("Name\tAge", NAME_AGE)
    assert snap.rows == []
    assert snap.keys == ["name", "age"]


def test_untyped_columns_infer():
    cols = [Column(key="a"), Column(key="b"), Column(key="c")]
    snap = delimited.deserialize("7\ttrue\tx", cols, TransferOptions(include_header=False))
    assert snap.rows[0].values == {"a": 7, "b": True, "c": "x"}


def test_embedded_delimiter_is_lossy():
    cols = [Column(key="a"), Column(key="b")]
    snap = TableSnapshot(rows=[Row(id=0, values={"a": "x\ty", "b": "z"})], columns=cols)
    opts = TransferOptions(include_header=False)
    back = delimited.deserialize(delimited.serialize(snap, opts), cols, opts)
    assert back.rows[0].values == {"a": "x", "b": "y"}


def test_transform_hooks_override_scalar_rules():
    seen = []

    def export(value, column):
        return f"<{value}>"

    def import_(token, column):
        seen.append((token, column.key))
        return token.strip("<>").upper()

    opts = TransferOptions(include_header=False, transform=Transform(export=export, import_=import_))
    snap = TableSnapshot(rows=[Row(id=0, values={"name": "ann", "age": None})], columns=NAME_AGE)
    text = delimited.serialize(snap, opts)
    assert text == "<ann>\t"

    back = delimited.deserialize(text, NAME_AGE, opts)
    assert back.rows[0].values == {"name": "ANN", "age": None}
    assert seen == [("<ann>", "name")]
    assert back.rows[0].rejected == {}


def test_transform_accepts_import_alias():
    t = Transform.model_validate({"import": str.lower})
    assert t.import_ is str.lower


def test_render_html_escapes():
    html = delimited.render_html([["A&B"], ["<x>"]])
    assert html == "<table><tr><th>A&amp;B</th></tr><tr><td>&lt;x&gt;</td></tr></table>"


def test_to_payload_carries_text_html_and_structured(people_snapshot):
    payload = delimited.to_payload(people_snapshot)
    assert payload.text.startswith("Name\tAge")
    assert payload.html.startswith("<table><tr><th>Name</th>")
    assert payload.structured[0] == ["Name", "Age", "Active", "Joined"]
    assert payload.structured[1] == ["Alice", 30, True, "2021-03-14"]


def test_from_payload_prefers_structured(people_columns):
    payload = ClipboardPayload(
        text="ignored\tignored",
        structured=[["Name", "Age", "Active", "Joined"], ["Cy", 12, False, "2020-05-05"]],
    )
    snap = delimited.from_payload(payload, people_columns)
    assert snap.records() == [
        {"name": "Cy", "age": 12, "active": False, "joined": date(2020, 5, 5)},
    ]


def test_from_payload_text_only(people_columns):
    payload = ClipboardPayload(text="Name\tAge\tActive\tJoined\nDee\t5\ttrue\t2019-12-31")
    snap = delimited.from_payload(payload, people_columns)
    assert snap.records() == [
        {"name": "Dee", "age": 5, "active": True, "joined": date(2019, 12, 31)},
    ]
