"""
Enrichment helpers that add the resolved columns every page relies on
(entity id, display name, age, service dates) without touching the raw fields.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import pandas as pd

from casedash.config import DEFAULT_CONFIG, EngineConfig
from casedash.data.dates import age_in_years, parse_date_series, parse_flexible_date
from casedash.data.fields import MISSING, is_blank, map_values, resolve_column, resolve_id_column


def enrich_entities(
    df: pd.DataFrame,
    id_keys,
    config: EngineConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
) -> pd.DataFrame:
    """
    Add ``entity_id``, ``display_id``, ``display_name`` and ``age`` columns to an
    entity frame (households or persons).
    """
    if df.empty:
        return df.copy()

    working = df.copy()
    working["entity_id"] = resolve_id_column(working, id_keys)
    working["display_id"] = map_values(working["entity_id"], lambda v: MISSING if v is None else v)

    names = resolve_column(working, config.keys.name)
    if "first_name" in working.columns and "last_name" in working.columns:
        full = (
            working["first_name"].fillna("").astype(str).str.strip()
            + " "
            + working["last_name"].fillna("").astype(str).str.strip()
        ).str.strip()
        use_full = full.ne("") & names.eq(working["first_name"])
        names = names.where(~use_full, full)
    working["display_name"] = map_values(names, lambda v: MISSING if is_blank(v) else str(v).strip() or MISSING)

    reference = now or datetime.now()
    birthdates = resolve_column(working, config.keys.birthdate, default=None)
    working["age"] = birthdates.map(lambda v: age_in_years(v, reference)).astype(int)
    working["age_known"] = map_values(birthdates, lambda v: parse_flexible_date(v) is not None).astype(bool)

    working.attrs["diagnostics"] = {
        "rows": int(len(working)),
        "unresolved_ids": int(working["entity_id"].isna().sum()),
        "computed_at": reference.isoformat(),
    }
    return working


def enrich_services(df: pd.DataFrame, config: EngineConfig = DEFAULT_CONFIG) -> pd.DataFrame:
    """Add ``owner_id``, ``service_date_raw`` and parsed ``service_date`` columns."""
    if df.empty:
        return df.copy()

    working = df.copy()
    working["owner_id"] = resolve_id_column(working, config.keys.service_owner_id)
    working["service_date_raw"] = resolve_column(working, config.keys.service_date, default=None)
    parsed, ok = parse_date_series(working["service_date_raw"], label="service date")
    working["service_date"] = parsed
    working["service_date_parse_ok"] = ok
    return working
