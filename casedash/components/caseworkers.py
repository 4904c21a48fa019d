"""
Caseworker workload register: service events attributed to caseworkers, with
the household's caseworker standing in when an event names none.
"""

from __future__ import annotations

from typing import Mapping, Optional

import pandas as pd

from casedash.config import DEFAULT_CONFIG, EngineConfig
from casedash.data.districts import canonical_district
from casedash.data.fields import MISSING, is_blank, map_values, resolve_column, resolve_id_column

WORKLOAD_COLUMNS = ["caseworker", "district", "services"]
UNKNOWN_CASEWORKERS = {"unknown", "n/a"}


def _clean_name(value) -> Optional[str]:
    if is_blank(value):
        return None
    text = str(value).strip()
    if not text or text.lower() in UNKNOWN_CASEWORKERS:
        return None
    return text


def attribute_caseworkers(
    events: pd.DataFrame,
    caseworkers: Optional[Mapping[str, str]] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> pd.Series:
    """Caseworker name per event; None when neither the event nor its household names one."""
    if events.empty:
        return pd.Series([], index=events.index, dtype=object)
    names = map_values(resolve_column(events, config.keys.caseworker, default=None), _clean_name)
    if not caseworkers:
        return names
    households = resolve_id_column(events, config.keys.household_id)
    resolved = []
    for name, hh_id in zip(names, households):
        if name is None and hh_id is not None:
            name = _clean_name(caseworkers.get(hh_id))
        resolved.append(name)
    return pd.Series(resolved, index=events.index, dtype=object)


def workload(
    events: pd.DataFrame,
    caseworkers: Optional[Mapping[str, str]] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    One row per caseworker with the number of services recorded, busiest first.
    ``district`` is the district of the caseworker's first event. Events with
    no attributable caseworker are left out.
    """
    names = attribute_caseworkers(events, caseworkers, config)
    if names.empty or names.isna().all():
        return pd.DataFrame(columns=WORKLOAD_COLUMNS)

    working = pd.DataFrame(
        {
            "caseworker": names,
            "district": map_values(
                resolve_column(events, config.keys.district, default=None),
                lambda v: MISSING if is_blank(v) or not str(v).strip() else str(v).strip(),
            ),
        },
        index=events.index,
    )
    working = working[working["caseworker"].notna()]
    grouped = working.groupby("caseworker", sort=False)
    out = pd.DataFrame({"district": grouped["district"].first(), "services": grouped.size()})
    out = out.reset_index().sort_values(["services", "caseworker"], ascending=[False, True])
    return out[WORKLOAD_COLUMNS].reset_index(drop=True)


def top_district(events: pd.DataFrame, config: EngineConfig = DEFAULT_CONFIG) -> Optional[str]:
    """Canonical district with the most service events; ties go to the first name alphabetically."""
    if events.empty:
        return None
    districts = map_values(
        resolve_column(events, config.keys.district, default=None),
        lambda v: None if is_blank(v) or not str(v).strip() else canonical_district(v),
    ).dropna()
    if districts.empty:
        return None
    counts = districts.value_counts()
    best = counts.max()
    return sorted(counts[counts == best].index)[0]


def top_district_events(events: pd.DataFrame, config: EngineConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    name = top_district(events, config)
    if name is None:
        return events.iloc[0:0]
    districts = resolve_column(events, config.keys.district, default=None)
    keep = map_values(districts, lambda v: not is_blank(v) and canonical_district(v) == name).astype(bool)
    return events[keep]


def search_workload(frame: pd.DataFrame, query: str) -> pd.DataFrame:
    """Case-insensitive match on caseworker name or district."""
    query = (query or "").strip().lower()
    if not query or frame.empty:
        return frame
    mask = frame["caseworker"].astype(str).str.lower().str.contains(query, regex=False) | frame[
        "district"
    ].astype(str).str.lower().str.contains(query, regex=False)
    return frame[mask]
