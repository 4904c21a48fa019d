import math

import pandas as pd

from casedash.data.fields import (
    MISSING,
    is_blank,
    map_values,
    resolve,
    resolve_column,
    resolve_id,
    resolve_id_column,
    resolve_text,
)


def test_resolve_returns_first_non_blank_value():
    record = {"household_id": None, "hh_id": "", "uid": "U-7", "unique_id": "U-8"}
    assert resolve(record, ["household_id", "hh_id", "uid", "unique_id"]) == "U-7"


def test_resolve_keeps_falsy_values_that_are_not_blank():
    assert resolve({"a": 0, "b": 5}, ["a", "b"]) == 0
    assert resolve({"a": False}, ["a"]) is False


def test_resolve_returns_na_sentinel_when_nothing_qualifies():
    assert resolve({"a": None, "b": ""}, ["a", "b", "c"]) == MISSING
    assert resolve({}, []) == MISSING
    assert resolve(None, ["a"]) == MISSING


def test_resolve_does_not_coerce_types():
    assert resolve({"n": 12}, ["n"]) == 12
    assert resolve({"n": 12}, ["n"]) != "12"


def test_is_blank_treats_nan_as_missing():
    assert is_blank(float("nan"))
    assert is_blank(None)
    assert is_blank("")
    assert not is_blank(" ")
    assert not is_blank(0)
    assert not is_blank([])


def test_resolve_text_strips():
    assert resolve_text({"name": "  Ruth "}, ["name"]) == "Ruth"
    assert resolve_text({}, ["name"]) == MISSING


def test_resolve_id_rejects_na_and_blank():
    assert resolve_id({"hh_id": " H1 "}, ["household_id", "hh_id"]) == "H1"
    assert resolve_id({"uid": "N/A"}, ["uid"]) is None
    assert resolve_id({"uid": "   "}, ["uid"]) is None
    assert resolve_id({}, ["uid"]) is None


def test_resolve_id_normalises_float_widened_ids():
    assert resolve_id({"uid": 42.0}, ["uid"]) == "42"


def test_resolve_column_walks_candidates_per_row():
    df = pd.DataFrame(
        {
            "household_id": ["H1", None, "", math.nan],
            "hh_id": ["X", "H2", "H3", None],
        },
        dtype=object,
    )
    assert resolve_column(df, ["household_id", "hh_id"]).tolist() == ["H1", "H2", "H3", MISSING]


def test_resolve_column_ignores_absent_columns():
    df = pd.DataFrame({"a": [1, 2]}, dtype=object)
    assert resolve_column(df, ["missing", "a"]).tolist() == [1, 2]


def test_resolve_id_column_marks_unresolvable_rows_none():
    df = pd.DataFrame({"uid": ["V1", "N/A", None]}, dtype=object)
    assert resolve_id_column(df, ["uid"]).tolist() == ["V1", None, None]


def test_resolve_id_column_keeps_none_for_text_columns():
    df = pd.DataFrame({"uid": ["V1", None, "", "N/A"], "other": [1, 2, 3, 4]})
    ids = resolve_id_column(df, ("uid",))
    assert ids.dtype == object
    assert [v is None for v in ids] == [False, True, True, True]


def test_map_values_keeps_none_results():
    out = map_values(pd.Series(["a", "b"]), lambda v: None if v == "b" else v.upper())
    assert out.dtype == object
    assert out.tolist() == ["A", None]
    assert out.iloc[1] is None
