"""
HIV testing services (HTS) registers.

Every test record is classified against ``now``:

- ``unlinked``: positive result with no ART initiation date
- ``pending``: blank or unknown result
- ``new``: positive result created within the last
  ``hts_new_positive_days`` days
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import pandas as pd

from casedash.components.risk import is_hiv_positive
from casedash.config import DEFAULT_CONFIG, EngineConfig
from casedash.data.dates import parse_flexible_date
from casedash.data.fields import MISSING, is_blank, map_values, resolve_column

HTS_REGISTERS = ("all", "unlinked", "pending", "new")
# em dash written by the data-entry forms for an empty value
PLACEHOLDER = "\u2014"
PENDING_RESULTS = ("unknown", PLACEHOLDER, "-")

HTS_EXPORT_COLUMNS = [
    "Case ID",
    "ART Number",
    "HIV Status",
    "ART Date",
    "Testing Modality",
    "Health Facility",
    "Caseworker",
    "District",
    "Date Created",
]


@dataclass(frozen=True)
class HtsSummary:
    total: int
    positives: int
    unlinked: int
    pending: int
    new_positives: int
    active_workers: int
    positivity_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def is_pending_result(value: Any) -> bool:
    if is_blank(value):
        return True
    text = str(value).strip().lower()
    return not text or text in PENDING_RESULTS


def hts_flags(
    tests: pd.DataFrame,
    now: Optional[datetime] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """Boolean ``positive``, ``linked``, ``unlinked``, ``pending`` and ``new`` per test record."""
    columns = ["positive", "linked", "unlinked", "pending", "new"]
    if tests.empty:
        return pd.DataFrame(columns=columns)

    now = now or datetime.now()
    keys = config.keys
    cutoff = now - timedelta(days=config.thresholds.hts_new_positive_days)

    results = resolve_column(tests, keys.hts_result, default=None)
    positive = map_values(results, is_hiv_positive).astype(bool)
    art_dates = resolve_column(tests, keys.art_date, default=None)
    linked = map_values(art_dates, lambda v: not is_blank(v) and bool(str(v).strip())).astype(bool)
    created = map_values(resolve_column(tests, keys.hts_created, default=None), parse_flexible_date)
    recent = map_values(created, lambda d: d is not None and d >= cutoff).astype(bool)

    return pd.DataFrame(
        {
            "positive": positive,
            "linked": positive & linked,
            "unlinked": positive & ~linked,
            "pending": map_values(results, is_pending_result).astype(bool),
            "new": positive & recent,
        },
        index=tests.index,
    )[columns]


def hts_register(
    tests: pd.DataFrame,
    register: str,
    now: Optional[datetime] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """Rows of ``tests`` on ``register`` (``all``, ``unlinked``, ``pending`` or ``new``)."""
    if register not in HTS_REGISTERS:
        raise ValueError(f"unknown HTS register: {register}")
    if register == "all" or tests.empty:
        return tests
    return tests[hts_flags(tests, now, config)[register]]


def hts_summary(
    tests: pd.DataFrame,
    now: Optional[datetime] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> HtsSummary:
    flags = hts_flags(tests, now, config)
    total = int(len(tests))
    positives = int(flags["positive"].sum()) if total else 0
    workers = set()
    if total:
        for name in resolve_column(tests, config.keys.caseworker, default=None):
            if not is_blank(name) and str(name).strip() not in ("", PLACEHOLDER):
                workers.add(str(name).strip())
    return HtsSummary(
        total=total,
        positives=positives,
        unlinked=int(flags["unlinked"].sum()) if total else 0,
        pending=int(flags["pending"].sum()) if total else 0,
        new_positives=int(flags["new"].sum()) if total else 0,
        active_workers=len(workers),
        positivity_rate=positives / total * 100 if total else 0.0,
    )


def facility_linkage(
    tests: pd.DataFrame,
    config: EngineConfig = DEFAULT_CONFIG,
    limit: int = 10,
) -> pd.DataFrame:
    """Positives and ART-linked positives per health facility, most positives first."""
    columns = ["health_facility", "positive", "linked"]
    if tests.empty:
        return pd.DataFrame(columns=columns)
    flags = hts_flags(tests, config=config)
    flags["health_facility"] = map_values(
        resolve_column(tests, config.keys.health_facility, default=None),
        lambda v: "Unknown Facility" if is_blank(v) or not str(v).strip() else str(v).strip(),
    )
    out = flags.groupby("health_facility")[["positive", "linked"]].sum().astype(int).reset_index()
    out = out[out["positive"] > 0].sort_values(["positive", "health_facility"], ascending=[False, True])
    return out[columns].head(limit).reset_index(drop=True)


def search_tests(tests: pd.DataFrame, query: str, config: EngineConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    """Case-insensitive match on case id, ART number, district, facility or caseworker."""
    query = (query or "").strip().lower()
    if not query or tests.empty:
        return tests
    keys = config.keys
    mask = pd.Series(False, index=tests.index)
    for candidates in (keys.hts_case_id, keys.art_number, keys.district, keys.health_facility, keys.caseworker):
        for key in candidates:
            if key in tests.columns:
                text = map_values(tests[key], lambda v: "" if is_blank(v) else str(v).lower())
                mask |= text.str.contains(query, regex=False)
    return tests[mask]


def hts_export_frame(tests: pd.DataFrame, config: EngineConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    keys = config.keys
    if tests.empty:
        return pd.DataFrame(columns=HTS_EXPORT_COLUMNS)
    sources = {
        "Case ID": keys.hts_case_id,
        "ART Number": keys.art_number,
        "HIV Status": keys.hts_result,
        "ART Date": keys.art_date,
        "Testing Modality": keys.testing_modality,
        "Health Facility": keys.health_facility,
        "Caseworker": keys.caseworker,
        "District": keys.district,
        "Date Created": keys.hts_created,
    }
    out = pd.DataFrame(index=tests.index)
    for column, candidates in sources.items():
        out[column] = map_values(resolve_column(tests, candidates), lambda v: str(v).strip() or MISSING)
    return out[HTS_EXPORT_COLUMNS]
