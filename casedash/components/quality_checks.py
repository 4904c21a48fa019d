import pandas as pd
from typing import Dict, Any, Sequence

from casedash.config import DEFAULT_CONFIG, EngineConfig
from casedash.data.dates import parse_flexible_date
from casedash.data.fields import is_blank, resolve_column, resolve_id_column
from casedash.data.loader import RecordSnapshot


def missing_values_summary(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=["column", "missing_count", "missing_pct"])
    # None/NaN plus blank strings; "N/A"-style markers are data, not gaps
    mv_series = df.apply(lambda col: col.map(lambda v: is_blank(v) or (isinstance(v, str) and not v.strip())).sum())
    mv = mv_series.reset_index()
    mv.columns = ["column", "missing_count"]
    mv["missing_count"] = mv["missing_count"].astype(int)
    mv["missing_pct"] = mv["missing_count"] / len(df) * 100
    return mv.sort_values("missing_pct", ascending=False)


def duplicate_id_count(df: pd.DataFrame, id_keys: Sequence[str]) -> int:
    if df.empty:
        return 0
    ids = resolve_id_column(df, id_keys).dropna()
    return int(ids.duplicated().sum())


def unresolved_id_count(df: pd.DataFrame, id_keys: Sequence[str]) -> int:
    if df.empty:
        return 0
    return int(resolve_id_column(df, id_keys).isna().sum())


def date_parse_failures(df: pd.DataFrame, date_keys: Sequence[str]) -> int:
    """Rows carrying a date value that none of the accepted formats can read."""
    if df.empty:
        return 0
    raw = resolve_column(df, date_keys, default=None)
    present = raw.notna()
    failed = raw[present].map(lambda v: parse_flexible_date(v) is None)
    return int(failed.sum())


def open_flag_count(flags: pd.DataFrame, config: EngineConfig = DEFAULT_CONFIG) -> int:
    if flags.empty:
        return 0
    status = resolve_column(flags, config.keys.flag_status, default="").astype(str).str.strip().str.lower()
    return int((~status.isin({"resolved", "closed", "completed"})).sum())


def build_quality_overview(snapshot: RecordSnapshot, config: EngineConfig = DEFAULT_CONFIG) -> Dict[str, Any]:
    keys = config.keys
    return {
        "households": len(snapshot.households),
        "persons": len(snapshot.persons),
        "service_events": len(snapshot.services),
        "duplicate_household_ids": duplicate_id_count(snapshot.households, keys.household_id),
        "duplicate_person_ids": duplicate_id_count(snapshot.persons, keys.person_id),
        "unresolved_household_ids": unresolved_id_count(snapshot.households, keys.household_id),
        "unresolved_person_ids": unresolved_id_count(snapshot.persons, keys.person_id),
        "orphan_service_events": unresolved_id_count(snapshot.services, keys.service_owner_id),
        "unparsable_birthdates": date_parse_failures(snapshot.persons, keys.birthdate),
        "unparsable_service_dates": date_parse_failures(snapshot.services, keys.service_date),
        "open_flags": open_flag_count(snapshot.flags, config),
    }
