from datetime import date, datetime

import pandas as pd

from casedash.data.dates import age_in_years, parse_date_series, parse_flexible_date, to_epoch_seconds


def test_dash_dates_are_day_first():
    assert parse_flexible_date("15-03-2021") == datetime(2021, 3, 15)
    assert parse_flexible_date("05-03-2021") == datetime(2021, 3, 5)


def test_iso_and_slash_formats():
    assert parse_flexible_date("2021-03-15") == datetime(2021, 3, 15)
    assert parse_flexible_date("2021-3-5") == datetime(2021, 3, 5)
    assert parse_flexible_date("03/15/2021") == datetime(2021, 3, 15)


def test_native_iso_fallback_is_naive():
    parsed = parse_flexible_date("2021-03-15T10:30:00Z")
    assert parsed == datetime(2021, 3, 15, 10, 30)
    assert parsed.tzinfo is None


def test_unparsable_values_return_none():
    assert parse_flexible_date("not a date") is None
    assert parse_flexible_date("") is None
    assert parse_flexible_date(None) is None
    assert parse_flexible_date("31-02-2021") is None


def test_parsed_values_pass_through():
    assert parse_flexible_date(date(2020, 1, 2)) == datetime(2020, 1, 2)
    assert parse_flexible_date(pd.Timestamp("2020-01-02")) == datetime(2020, 1, 2)


def test_age_exactly_one_year():
    assert age_in_years("2023-06-15", datetime(2024, 6, 15)) == 1


def test_age_decrements_before_birthday():
    assert age_in_years("16-06-2010", datetime(2024, 6, 15)) == 13
    assert age_in_years("15-06-2010", datetime(2024, 6, 15)) == 14


def test_age_unknown_is_zero_and_never_negative():
    assert age_in_years(None, datetime(2024, 6, 15)) == 0
    assert age_in_years("garbage", datetime(2024, 6, 15)) == 0
    assert age_in_years("2030-01-01", datetime(2024, 6, 15)) == 0


def test_epoch_sort_key_for_unparsable_is_zero():
    assert to_epoch_seconds("nope") == 0.0
    assert to_epoch_seconds("02-01-1970") == 86400.0


def test_parse_date_series_reports_failures():
    parsed, ok = parse_date_series(pd.Series(["15-03-2021", "bad", None], dtype=object))
    assert ok.tolist() == [True, False, False]
    assert parsed.iloc[0] == pd.Timestamp("2021-03-15")
