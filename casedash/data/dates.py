"""
Flexible date parsing and age calculation for hand-entered record dates.

Dash-separated dates with a leading day or month component are read day-first
(``15-03-2021`` is 15 March), slash-separated ones month-first.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Optional, Tuple

import pandas as pd

from casedash.data.fields import is_blank

LOG = logging.getLogger(__name__)

DAY_FIRST_DASH = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")
ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
MONTH_FIRST_SLASH = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

EPOCH = datetime(1970, 1, 1)


def _build(year: str, month: str, day: str) -> Optional[datetime]:
    try:
        return datetime(int(year), int(month), int(day))
    except ValueError:
        return None


def _native_fallback(text: str) -> Optional[datetime]:
    parsed = pd.to_datetime(text, errors="coerce", utc=True)
    if pd.isna(parsed):
        return None
    return parsed.tz_convert(None).to_pydatetime()


def parse_flexible_date(value: Any) -> Optional[datetime]:
    """Parse a record date, returning a naive datetime or None."""
    if is_blank(value):
        return None
    if isinstance(value, pd.Timestamp):
        if value.tzinfo is not None:
            value = value.tz_convert(None)
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value).strip()
    if not text:
        return None

    match = DAY_FIRST_DASH.match(text)
    if match:
        day, month, year = match.groups()
        parsed = _build(year, month, day)
    else:
        match = ISO_DATE.match(text)
        if match:
            year, month, day = match.groups()
            parsed = _build(year, month, day)
        else:
            match = MONTH_FIRST_SLASH.match(text)
            if match:
                month, day, year = match.groups()
                parsed = _build(year, month, day)
            else:
                parsed = _native_fallback(text)

    if parsed is None:
        LOG.debug("Unparsable date value %r", text)
    return parsed


def age_in_years(birthdate: Any, now: Optional[datetime] = None) -> int:
    """Whole years between ``birthdate`` and ``now``.

    Missing or unparsable birthdates return 0, which doubles as the "unknown"
    marker and is indistinguishable from a newborn.
    """
    born = parse_flexible_date(birthdate)
    if born is None:
        return 0
    today = parse_flexible_date(now) if now is not None else datetime.now()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return max(age, 0)


def to_epoch_seconds(value: Any) -> float:
    """Sort key for a record date; unparsable values sort as the epoch."""
    parsed = parse_flexible_date(value)
    if parsed is None:
        return 0.0
    return (parsed - EPOCH).total_seconds()


def parse_date_series(series: pd.Series, label: str = "date") -> Tuple[pd.Series, pd.Series]:
    """Parse every value of ``series``; returns (timestamps with NaT, ok mask)."""
    parsed = pd.to_datetime(series.map(parse_flexible_date), errors="coerce")
    ok = parsed.notna()
    failures = int((~ok & ~series.map(is_blank).astype(bool)).sum())
    if failures:
        LOG.warning("%d %s value(s) could not be parsed", failures, label)
    return parsed, ok
