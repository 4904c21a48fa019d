"""
Service-domain coverage per entity and across the filtered cohort.

An entity is covered in a domain when at least one of its service events has
the domain field populated with something other than a not-applicable marker.
Coverage is sticky: more events can only add domains, never remove them.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from casedash.config import DEFAULT_CONFIG, EngineConfig
from casedash.data.districts import canonical_district
from casedash.data.fields import is_blank, resolve_id_column

EMPTY_CONTAINER = re.compile(r"^(\[\s*\]|\{\s*\})$")

GAP_TYPES = {
    "health_domain": "health",
    "schooled_domain": "schooled",
    "safe_domain": "safe",
    "stable_domain": "stable",
}
GRADUATION_PATH = "graduation_path"


def is_provided(value: Any, vocabulary: Iterable[str] = DEFAULT_CONFIG.not_applicable) -> bool:
    if is_blank(value):
        return False
    text = str(value).strip()
    if not text:
        return False
    if text.lower() in set(vocabulary):
        return False
    if EMPTY_CONTAINER.match(text):
        return False
    return True


@dataclass(frozen=True)
class CoverageSummary:
    per_domain_count: Dict[str, int]
    per_domain_rate: Dict[str, float]
    all_domains_count: int
    all_domains_rate: float
    total_entities: int
    total_events: int


@dataclass(frozen=True)
class CohortStats:
    health_count: int
    health_rate: float
    schooled_count: int
    schooled_rate: float
    safe_count: int
    safe_rate: float
    stable_count: int
    stable_rate: float
    all_four_count: int
    all_four_rate: float
    total_entities: int
    total_events: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _rate(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return count / total * 100


def event_domain_flags(events: pd.DataFrame, config: EngineConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    """One boolean column per domain telling whether each event provided it."""
    flags = pd.DataFrame(index=events.index)
    vocabulary = set(config.not_applicable)
    for domain, column in config.domain_fields:
        if column in events.columns:
            flags[domain] = events[column].map(lambda v: is_provided(v, vocabulary)).astype(bool)
        else:
            flags[domain] = False
    return flags


def entity_domain_flags(
    entities: pd.DataFrame,
    events: pd.DataFrame,
    entity_id_keys,
    event_owner_keys,
    config: EngineConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Per-entity coverage frame, aligned to ``entities``' index, with columns
    ``entity_id``, ``has_<domain>``, ``domain_count``, ``all_domains`` and
    ``event_count``. Events whose owner id cannot be resolved are dropped;
    entities without a resolvable id own no events.
    """
    domains = config.domains
    has_cols = [f"has_{d}" for d in domains]
    columns = ["entity_id", *has_cols, "domain_count", "all_domains", "event_count"]
    if entities.empty:
        return pd.DataFrame(columns=columns)

    entity_ids = resolve_id_column(entities, entity_id_keys)
    result = pd.DataFrame({"entity_id": entity_ids}, index=entities.index)

    if events.empty:
        per_owner = pd.DataFrame(columns=[*domains, "event_count"])
    else:
        owner_ids = resolve_id_column(events, event_owner_keys)
        flags = event_domain_flags(events, config)
        flags["owner_id"] = owner_ids
        flags = flags[flags["owner_id"].notna()]
        grouped = flags.groupby("owner_id")
        per_owner = grouped[domains].any()
        per_owner["event_count"] = grouped.size()

    for domain in domains:
        mapped = result["entity_id"].map(per_owner[domain]) if not per_owner.empty else None
        result[f"has_{domain}"] = (
            mapped.fillna(False).astype(bool) if mapped is not None else False
        )
    if per_owner.empty:
        result["event_count"] = 0
    else:
        result["event_count"] = result["entity_id"].map(per_owner["event_count"]).fillna(0).astype(int)

    result[has_cols] = result[has_cols].astype(bool)
    result["domain_count"] = result[has_cols].sum(axis=1).astype(int)
    result["all_domains"] = result[has_cols].all(axis=1)
    # unresolvable ids never pick up events, even if some event carries a blank owner
    result.loc[result["entity_id"].isna(), [*has_cols, "all_domains"]] = False
    result.loc[result["entity_id"].isna(), ["domain_count", "event_count"]] = 0
    return result[columns]


def summarize(flags: pd.DataFrame, config: EngineConfig = DEFAULT_CONFIG) -> CoverageSummary:
    """Counts and rates over an entity coverage frame (already filtered)."""
    total = int(len(flags))
    per_domain_count = {d: int(flags[f"has_{d}"].sum()) if total else 0 for d in config.domains}
    all_count = int(flags["all_domains"].sum()) if total else 0
    total_events = int(flags["event_count"].sum()) if total else 0
    return CoverageSummary(
        per_domain_count=per_domain_count,
        per_domain_rate={d: _rate(c, total) for d, c in per_domain_count.items()},
        all_domains_count=all_count,
        all_domains_rate=_rate(all_count, total),
        total_entities=total,
        total_events=total_events,
    )


def aggregate(
    entities: pd.DataFrame,
    events: pd.DataFrame,
    entity_id_keys,
    event_owner_keys,
    config: EngineConfig = DEFAULT_CONFIG,
) -> CoverageSummary:
    """
    Coverage counts and rates for ``entities``. The caller passes the cohort
    that is already district- and sub-population-filtered, so rates are always
    relative to that cohort's size.
    """
    flags = entity_domain_flags(entities, events, entity_id_keys, event_owner_keys, config)
    return summarize(flags, config)


def to_cohort_stats(summary: CoverageSummary) -> CohortStats:
    count = summary.per_domain_count
    rate = summary.per_domain_rate
    return CohortStats(
        health_count=count.get("health", 0),
        health_rate=rate.get("health", 0.0),
        schooled_count=count.get("schooled", 0),
        schooled_rate=rate.get("schooled", 0.0),
        safe_count=count.get("safe", 0),
        safe_rate=rate.get("safe", 0.0),
        stable_count=count.get("stable", 0),
        stable_rate=rate.get("stable", 0.0),
        all_four_count=summary.all_domains_count,
        all_four_rate=summary.all_domains_rate,
        total_entities=summary.total_entities,
        total_events=summary.total_events,
    )


def domain_gap_register(flags: pd.DataFrame, gap_type: str) -> pd.DataFrame:
    """
    Rows of ``flags`` belonging to a register: entities missing a domain for the
    ``<domain>_domain`` registers, fully covered entities for ``graduation_path``.
    """
    if gap_type == GRADUATION_PATH:
        return flags[flags["all_domains"]]
    domain = GAP_TYPES.get(gap_type)
    if domain is None:
        raise ValueError(f"unknown register type: {gap_type}")
    return flags[~flags[f"has_{domain}"]]


def district_breakdown(
    flags: pd.DataFrame,
    districts: pd.Series,
    config: EngineConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """Coverage per canonical district; rates use each district's own entity count."""
    has_cols = [f"has_{d}" for d in config.domains]
    out_columns = ["district", "entities", *[f"{d}_rate" for d in config.domains], "all_domains_rate"]
    if flags.empty:
        return pd.DataFrame(columns=out_columns)
    working = flags[[*has_cols, "all_domains"]].copy()
    working["district"] = districts.reindex(flags.index).map(
        lambda v: "Unknown" if is_blank(v) or not str(v).strip() else canonical_district(v)
    )
    grouped = working.groupby("district")
    out = grouped[[*has_cols, "all_domains"]].mean().mul(100)
    out.columns = [f"{d}_rate" for d in config.domains] + ["all_domains_rate"]
    out.insert(0, "entities", grouped.size())
    return out.reset_index().sort_values("entities", ascending=False)[out_columns]


def coverage_labels(row: pd.Series, domains: Optional[List[str]] = None) -> List[str]:
    domains = domains or DEFAULT_CONFIG.domains
    return [d.title() for d in domains if bool(row.get(f"has_{d}", False))]
