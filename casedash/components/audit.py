"""
Service audit view: filtered, searched, newest-first and paginated service events.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

import pandas as pd

from casedash.config import DEFAULT_CONFIG, EngineConfig
from casedash.data.dates import parse_flexible_date, to_epoch_seconds
from casedash.data.districts import DistrictIndex
from casedash.data.fields import MISSING, is_blank, map_values, resolve_column, resolve_id_column, resolve_text
from casedash.data.filters import FilterSpec, apply_filters
from casedash.components.coverage import event_domain_flags

SEARCH_COLUMNS = ("audit_id", "audit_district", "audit_service", "audit_caseworker")


@dataclass(frozen=True)
class AuditRow:
    id: str
    district: str
    service_date: str
    provided_services: Tuple[str, ...]
    caseworker_name: str


@dataclass(frozen=True)
class Page:
    rows: pd.DataFrame
    page: int
    page_count: int
    total: int


def caseworker_lookup(households: pd.DataFrame, config: EngineConfig = DEFAULT_CONFIG) -> Dict[str, str]:
    """household id -> caseworker name, used when a service names no caseworker."""
    if households is None or households.empty:
        return {}
    ids = resolve_id_column(households, config.keys.household_id)
    names = resolve_column(households, config.keys.caseworker, default=None)
    lookup = {}
    for hh_id, name in zip(ids, names):
        if hh_id is not None and not is_blank(name) and str(name).strip():
            lookup.setdefault(hh_id, str(name).strip())
    return lookup


def _display_columns(
    events: pd.DataFrame,
    config: EngineConfig,
    caseworkers: Optional[Mapping[str, str]],
) -> pd.DataFrame:
    working = events.copy()
    keys = config.keys
    owner = resolve_id_column(working, keys.service_owner_id)
    working["audit_id"] = map_values(owner, lambda v: MISSING if v is None else v)
    working["audit_district"] = resolve_column(working, keys.district).astype(str)
    working["audit_service"] = resolve_column(working, keys.service_name).astype(str)

    caseworker = resolve_column(working, keys.caseworker, default=None)
    if caseworkers:
        households = resolve_id_column(working, keys.household_id)
        fallback = map_values(households, lambda h: None if h is None else caseworkers.get(h))
        caseworker = pd.Series(
            [f if is_blank(c) else c for c, f in zip(caseworker, fallback)], index=working.index, dtype=object
        )
    working["audit_caseworker"] = map_values(
        caseworker, lambda v: MISSING if is_blank(v) else str(v).strip() or MISSING
    )

    working["audit_date"] = resolve_column(working, keys.service_date, default=None)
    parsed = map_values(working["audit_date"], parse_flexible_date)
    working["audit_date_ok"] = parsed.map(lambda v: v is not None).astype(bool)
    working["audit_sort_key"] = working["audit_date"].map(to_epoch_seconds)
    return working


def assemble(
    events: pd.DataFrame,
    search_text: Optional[str],
    spec: FilterSpec,
    district_index: DistrictIndex,
    config: EngineConfig = DEFAULT_CONFIG,
    caseworkers: Optional[Mapping[str, str]] = None,
) -> pd.DataFrame:
    """
    District filter, cohort filter, case-insensitive search over the display
    fields, then newest service first. Events whose date cannot be parsed sort
    after every dated event, pre-1970 dates included. Order among equal dates
    is unspecified.
    """
    if events.empty:
        return events.copy()

    filtered = apply_filters(
        events,
        spec,
        district_index,
        key_map=config.key_map(),
        no_mode=config.cohort_no_mode,
    )
    if filtered.empty:
        return filtered

    working = _display_columns(filtered, config, caseworkers)

    query = (spec.search if search_text is None else search_text).strip().lower()
    if query:
        mask = pd.Series(False, index=working.index)
        for column in SEARCH_COLUMNS:
            mask |= working[column].astype(str).str.lower().str.contains(query, regex=False, na=False)
        working = working[mask]

    return working.sort_values(["audit_date_ok", "audit_sort_key"], ascending=False)


def paginate(frame: pd.DataFrame, page: int, page_size: int = DEFAULT_CONFIG.audit_page_size) -> Page:
    """Slice one page (0-based); out-of-range pages clamp to the nearest valid page."""
    total = int(len(frame))
    page_size = max(int(page_size), 1)
    page_count = max(math.ceil(total / page_size), 1)
    page = min(max(int(page), 0), page_count - 1)
    start = page * page_size
    return Page(rows=frame.iloc[start:start + page_size], page=page, page_count=page_count, total=total)


def _format_date(raw) -> str:
    parsed = parse_flexible_date(raw)
    if parsed is None:
        return MISSING if raw is None else str(raw)
    return parsed.strftime("%Y-%m-%d")


def to_audit_rows(frame: pd.DataFrame, config: EngineConfig = DEFAULT_CONFIG) -> List[AuditRow]:
    if frame.empty:
        return []
    provided = event_domain_flags(frame, config)
    rows = []
    for idx, record in zip(frame.index, frame.to_dict(orient="records")):
        rows.append(
            AuditRow(
                id=str(record.get("audit_id", MISSING)),
                district=resolve_text(record, config.keys.district),
                service_date=_format_date(record.get("audit_date")),
                provided_services=tuple(d.title() for d in config.domains if provided.at[idx, d]),
                caseworker_name=str(record.get("audit_caseworker", MISSING)),
            )
        )
    return rows
