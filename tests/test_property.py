"""Property-based tests using Hypothesis for codec and validation invariants.

These tests verify invariants that must hold for *any* valid input:
- delimited text serialize/deserialize preserves typed values
- grid serialize/deserialize preserves typed values
- validation is deterministic and never raises on bad data
- decoding arbitrary text never raises
"""

from __future__ import annotations

import string
from datetime import date

from hypothesis import given, settings
from hypothesis import strategies as st

from tablebridge.codecs import delimited, scalar
from tablebridge.codecs import grid as grid_codec
from tablebridge.contracts.options import TransferOptions
from tablebridge.contracts.table import Column, Row, TableSnapshot
from tablebridge.validation import rules
from tablebridge.validation.validators import DataValidator

# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

COLUMNS = [
    Column(key="name", title="Name", data_type="string"),
    Column(key="qty", title="Qty", data_type="number"),
    Column(key="flag", title="Flag", data_type="boolean"),
    Column(key="day", title="Day", data_type="date"),
]

cell_text = st.text(alphabet=string.ascii_letters + string.digits + "-_.:!?@#/", min_size=1, max_size=20)
numbers = st.one_of(
    st.integers(min_value=-10**12, max_value=10**12),
    st.floats(allow_nan=False, allow_infinity=False, width=64),
    st.sampled_from([float("inf"), float("-inf")]),
)
days = st.dates(min_value=date(1900, 1, 1), max_value=date(2100, 12, 31))


@st.composite
def snapshots(draw):
    n = draw(st.integers(min_value=0, max_value=8))
    rows = []
    for i in range(n):
        rows.append(Row(id=i, values={
            "name": draw(cell_text),
            "qty": draw(st.none() | numbers),
            "flag": draw(st.none() | st.booleans()),
            "day": draw(st.none() | days),
        }))
    return TableSnapshot(rows=rows, columns=COLUMNS)


delimiters = st.sampled_from([("\t", "\n"), (",", "\n"), (";", "\r\n"), ("|", "\n")])


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


@given(snap=snapshots(), delims=delimiters, header=st.booleans())
@settings(max_examples=100)
def test_delimited_round_trip(snap, delims, header):
    col, row = delims
    opts = TransferOptions(include_header=header, col_delimiter=col, row_delimiter=row)
    text = delimited.serialize(snap, opts)
    back = delimited.deserialize(text, COLUMNS, opts)
    assert back.records() == snap.records()
    assert [r.id for r in back.rows] == list(range(len(snap.rows)))


@given(snap=snapshots(), header=st.booleans())
@settings(max_examples=100)
def test_grid_round_trip(snap, header):
    opts = TransferOptions(include_header=header)
    back = grid_codec.deserialize(grid_codec.serialize(snap, opts), COLUMNS, opts)
    assert back.records() == snap.records()


@given(snap=snapshots())
@settings(max_examples=50)
def test_round_tripped_snapshots_validate_clean(snap):
    back = delimited.deserialize(delimited.serialize(snap), COLUMNS)
    assert DataValidator().validate(back).valid is True


@given(text=st.text(max_size=200))
@settings(max_examples=200)
def test_deserialize_never_raises(text):
    snap = delimited.deserialize(text, COLUMNS)
    report = DataValidator().validate(snap)
    assert report.valid == (not report.errors)


@given(token=st.text(max_size=30), data_type=st.sampled_from([None, "string", "number", "boolean", "date"]))
def test_decode_never_raises(token, data_type):
    scalar.decode(token, data_type)


@given(snap=snapshots(), limit=st.integers(min_value=0, max_value=25))
@settings(max_examples=50)
def test_validation_is_deterministic(snap, limit):
    validator = DataValidator()
    validator.add_rule("name", rules.max_length(limit))
    validator.add_rule("qty", rules.value_range(-100, 100))
    first = validator.validate(snap)
    second = validator.validate(snap)
    assert first == second
    assert all(e.row_index < len(snap.rows) for e in first.errors)
