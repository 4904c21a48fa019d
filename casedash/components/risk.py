"""
Composite per-entity risk classification.

Every time window is anchored to the evaluation time ``now``, not to the dates
of the events themselves. Classification of one entity never depends on another.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from casedash.config import DEFAULT_CONFIG, EngineConfig
from casedash.data.dates import parse_flexible_date
from casedash.data.fields import is_blank, resolve, resolve_id, resolve_id_column, resolve_text
from casedash.data.filters import is_truthy_flag

NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
POSITIVE_MARKERS = ("positive", "reactive")
NEGATIVE_MARKERS = ("negative", "non-reactive", "non reactive", "nonreactive")
AFFIRMATIVE = ("yes", "y", "true", "1")
OUT_OF_SCHOOL_MARKERS = ("out of school", "out_of_school", "not in school", "dropped out")

FLAG_NAMES = (
    "hiv_positive",
    "hiv_no_recent_vl",
    "unsuppressed_vl",
    "no_service_in_window",
    "no_active_case_plan",
    "overdue_referral",
    "out_of_school",
)


@dataclass(frozen=True)
class RiskFlags:
    hiv_positive: bool = False
    hiv_no_recent_vl: bool = False
    unsuppressed_vl: bool = False
    no_service_in_window: bool = False
    no_active_case_plan: bool = False
    overdue_referral: bool = False
    out_of_school: bool = False
    is_high_risk: bool = False
    reasons: tuple = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["reasons"] = list(self.reasons)
        return data


def is_hiv_positive(value: Any) -> bool:
    """Loose positive check across the status vocabularies used over time."""
    if is_blank(value):
        return False
    if isinstance(value, bool):
        return value
    if is_truthy_flag(value):
        return True
    text = str(value).strip().lower()
    if any(marker in text for marker in NEGATIVE_MARKERS):
        return False
    if text in AFFIRMATIVE or text.startswith("yes"):
        return True
    return any(marker in text for marker in POSITIVE_MARKERS)


def parse_viral_load(value: Any) -> Optional[float]:
    """Numeric copies/ml from results such as ``"1,200"``, ``"<20"`` or ``"TND"``."""
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = NUMBER.search(str(value).replace(",", ""))
    if not match:
        return None
    return float(match.group(0))


def is_out_of_school(value: Any) -> bool:
    if is_blank(value):
        return False
    if is_truthy_flag(value):
        return True
    text = str(value).strip().lower()
    return text in AFFIRMATIVE or any(marker in text for marker in OUT_OF_SCHOOL_MARKERS)


def _latest_date(records: Iterable[Mapping[str, Any]], keys: Sequence[str]) -> Optional[datetime]:
    latest = None
    for record in records:
        parsed = parse_flexible_date(resolve(record, keys, None))
        if parsed is not None and (latest is None or parsed > latest):
            latest = parsed
    return latest


def _is_completed(referral: Mapping[str, Any], config: EngineConfig) -> bool:
    return resolve_text(referral, config.keys.referral_status, "").lower() == "completed"


def classify(
    entity: Mapping[str, Any],
    services: Iterable[Mapping[str, Any]] = (),
    case_plans: Iterable[Mapping[str, Any]] = (),
    referrals: Iterable[Mapping[str, Any]] = (),
    now: Optional[datetime] = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> RiskFlags:
    """
    Classify one entity. ``services``, ``case_plans`` and ``referrals`` are the
    records already attributed to this entity.
    """
    now = parse_flexible_date(now) if now is not None else datetime.now()
    keys = config.keys
    limits = config.thresholds

    hiv_positive = is_hiv_positive(resolve(entity, keys.hiv_status, None))

    hiv_no_recent_vl = False
    unsuppressed_vl = False
    if hiv_positive:
        vl_date = parse_flexible_date(resolve(entity, keys.last_vl_date, None))
        vl_cutoff = (pd.Timestamp(now) - pd.DateOffset(months=limits.vl_recency_months)).to_pydatetime()
        hiv_no_recent_vl = vl_date is None or vl_date < vl_cutoff
        vl_result = parse_viral_load(resolve(entity, keys.last_vl_result, None))
        unsuppressed_vl = vl_result is not None and vl_result >= limits.vl_unsuppressed_copies

    service_cutoff = now - timedelta(days=limits.service_window_days)
    last_service = _latest_date(services, keys.service_date)
    no_service_in_window = last_service is None or last_service < service_cutoff

    no_active_case_plan = not any(True for _ in case_plans)

    referral_cutoff = now - timedelta(days=limits.referral_overdue_days)
    overdue_referral = False
    for referral in referrals:
        if _is_completed(referral, config):
            continue
        referred_on = parse_flexible_date(resolve(referral, keys.referral_date, None))
        if referred_on is not None and referred_on < referral_cutoff:
            overdue_referral = True
            break

    out_of_school = is_out_of_school(resolve(entity, keys.out_of_school, None))

    is_high_risk = (
        (hiv_positive and (hiv_no_recent_vl or unsuppressed_vl))
        or no_service_in_window
        or no_active_case_plan
        or out_of_school
    )

    values = {
        "hiv_positive": hiv_positive,
        "hiv_no_recent_vl": hiv_no_recent_vl,
        "unsuppressed_vl": unsuppressed_vl,
        "no_service_in_window": no_service_in_window,
        "no_active_case_plan": no_active_case_plan,
        "overdue_referral": overdue_referral,
        "out_of_school": out_of_school,
    }
    return RiskFlags(
        **values,
        is_high_risk=bool(is_high_risk),
        reasons=tuple(name for name in FLAG_NAMES if values[name] and name != "hiv_positive"),
    )


def group_by_owner(frame: Optional[pd.DataFrame], owner_keys: Sequence[str]) -> Dict[str, List[Dict[str, Any]]]:
    """Records keyed by resolved owner id; records without one are dropped."""
    groups: Dict[str, List[Dict[str, Any]]] = {}
    if frame is None or frame.empty:
        return groups
    owners = resolve_id_column(frame, owner_keys)
    for owner, record in zip(owners, frame.to_dict(orient="records")):
        if owner is None:
            continue
        groups.setdefault(owner, []).append(record)
    return groups


def classify_cohort(
    entities: pd.DataFrame,
    entity_id_keys: Sequence[str],
    services: Optional[pd.DataFrame] = None,
    case_plans: Optional[pd.DataFrame] = None,
    referrals: Optional[pd.DataFrame] = None,
    now: Optional[datetime] = None,
    config: EngineConfig = DEFAULT_CONFIG,
    owner_keys: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Classify every entity of the (filtered) cohort; one row per entity, same index.

    ``owner_keys`` replaces the per-kind owner keys from the configuration, e.g.
    the household id keys when the cohort is made of households.
    """
    columns = ["entity_id", *FLAG_NAMES, "is_high_risk", "reasons"]
    if entities.empty:
        return pd.DataFrame(columns=columns)

    now = now or datetime.now()
    keys = config.keys
    services_by_owner = group_by_owner(services, owner_keys or keys.service_owner_id)
    plans_by_owner = group_by_owner(case_plans, owner_keys or keys.case_plan_owner_id)
    referrals_by_owner = group_by_owner(referrals, owner_keys or keys.referral_owner_id)

    rows = []
    for record in entities.to_dict(orient="records"):
        entity_id = resolve_id(record, entity_id_keys)
        if entity_id is None:
            own_services, own_plans, own_referrals = [], [], []
        else:
            own_services = services_by_owner.get(entity_id, [])
            own_plans = plans_by_owner.get(entity_id, [])
            own_referrals = referrals_by_owner.get(entity_id, [])
        flags = classify(record, own_services, own_plans, own_referrals, now, config)
        rows.append({"entity_id": entity_id, **flags.to_dict()})

    return pd.DataFrame(rows, index=entities.index, columns=columns)


def risk_summary(risk: pd.DataFrame) -> Dict[str, int]:
    """Number of entities raising each flag."""
    if risk.empty:
        return {name: 0 for name in (*FLAG_NAMES, "is_high_risk")}
    return {name: int(risk[name].sum()) for name in (*FLAG_NAMES, "is_high_risk")}
