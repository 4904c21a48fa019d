"""
Field resolution for loosely-typed records whose attributes have appeared under
several historical key names in the record store.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

import pandas as pd

MISSING = "N/A"


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float):
        return math.isnan(value)
    if value is pd.NaT or value is pd.NA:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        # list-likes make pd.isna return an array
        return False


def resolve(record: Mapping[str, Any], candidate_keys: Iterable[str], default: Any = MISSING) -> Any:
    """Return the value of the first candidate key that holds a non-blank value."""
    if record is None:
        return default
    for key in candidate_keys:
        try:
            value = record.get(key)
        except AttributeError:
            return default
        if not is_blank(value):
            return value
    return default


def resolve_text(record: Mapping[str, Any], candidate_keys: Iterable[str], default: str = MISSING) -> str:
    value = resolve(record, candidate_keys, None)
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def resolve_id(record: Mapping[str, Any], candidate_keys: Iterable[str]) -> Optional[str]:
    """Resolve an entity id; blank or "N/A" ids resolve to None."""
    value = resolve(record, candidate_keys, None)
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        # ids read through pandas may have been widened to float
        value = int(value)
    text = str(value).strip()
    if not text or text.upper() == MISSING:
        return None
    return text


def resolve_column(df: pd.DataFrame, candidate_keys: Sequence[str], default: Any = MISSING) -> pd.Series:
    """Vectorised :func:`resolve` over the columns of ``df``."""
    result = pd.Series([default] * len(df), index=df.index, dtype=object)
    unresolved = pd.Series(True, index=df.index)
    for key in candidate_keys:
        if key not in df.columns or not unresolved.any():
            continue
        column = df[key]
        present = ~column.map(is_blank).astype(bool)
        take = unresolved & present
        result.loc[take] = column[take]
        unresolved &= ~take
    return result


def map_values(series: pd.Series, func: Callable[[Any], Any]) -> pd.Series:
    """Apply ``func`` per value into an object Series; None results stay None."""
    return pd.Series([func(v) for v in series], index=series.index, dtype=object)


def resolve_id_column(df: pd.DataFrame, candidate_keys: Sequence[str]) -> pd.Series:
    """Per-row :func:`resolve_id`; unresolvable rows hold None."""
    if df.empty:
        return pd.Series([], index=df.index, dtype=object)
    raw = resolve_column(df, candidate_keys, default=None)
    return map_values(raw, lambda v: resolve_id({"id": v}, ("id",)))
