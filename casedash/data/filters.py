"""
Filter utilities that apply the dashboard's district and sub-population
(cohort) filters to record frames.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import pandas as pd

from casedash.data.districts import ALL_DISTRICTS, DistrictIndex

CHOICE_ALL = "all"
CHOICE_YES = "yes"
CHOICE_NO = "no"
COHORT_CHOICES = (CHOICE_ALL, CHOICE_YES, CHOICE_NO)

TRUTHY_FLAGS = ("1", "true", 1, True)
FALSY_FLAGS = ("0", "false", 0, False)


@dataclass(frozen=True)
class FilterSpec:
    district: str = ALL_DISTRICTS
    cohort: Tuple[Tuple[str, str], ...] = ()
    search: str = ""

    def cohort_dict(self) -> Dict[str, str]:
        return dict(self.cohort)

    def with_cohort(self, key: str, choice: str) -> "FilterSpec":
        if choice not in COHORT_CHOICES:
            raise ValueError(f"unknown cohort choice {choice!r} for {key}")
        values = self.cohort_dict()
        values[key] = choice
        return replace(self, cohort=tuple(values.items()))

    def with_district(self, district: Optional[str]) -> "FilterSpec":
        return replace(self, district=district or ALL_DISTRICTS)

    def with_search(self, search: str) -> "FilterSpec":
        return replace(self, search=(search or "").strip())

    def cleared(self) -> "FilterSpec":
        """Reset every cohort key to "all" and drop the search text; district is kept."""
        return replace(
            self,
            cohort=tuple((key, CHOICE_ALL) for key, _ in self.cohort),
            search="",
        )

    @property
    def active_cohort(self) -> Dict[str, str]:
        return {k: v for k, v in self.cohort if v != CHOICE_ALL}


DEFAULT_FILTERS = FilterSpec()


def default_cohort(keys: Iterable[str]) -> Tuple[Tuple[str, str], ...]:
    return tuple((key, CHOICE_ALL) for key in keys)


def _is_flag(value: Any, allowed: Tuple[Any, ...]) -> bool:
    # 1.0 == 1 and True == 1, matching loose flag storage in the record store
    for candidate in allowed:
        if type(candidate) is str:
            if isinstance(value, str) and value == candidate:
                return True
        elif not isinstance(value, str):
            try:
                if value == candidate:
                    return True
            except (TypeError, ValueError):
                return False
    return False


def is_truthy_flag(value: Any) -> bool:
    return _is_flag(value, TRUTHY_FLAGS)


def is_falsy_flag(value: Any) -> bool:
    return _is_flag(value, FALSY_FLAGS)


def _choice_passes(value: Any, choice: str, no_mode: str) -> bool:
    if choice == CHOICE_YES:
        return is_truthy_flag(value)
    if no_mode == "lenient":
        return not is_truthy_flag(value)
    return is_falsy_flag(value)


def matches(
    record: Mapping[str, Any],
    spec: Mapping[str, str],
    key_map: Optional[Mapping[str, str]] = None,
    no_mode: str = "strict",
) -> bool:
    """True when ``record`` passes every active cohort filter in ``spec``."""
    key_map = key_map or {}
    for key, choice in spec.items():
        if choice == CHOICE_ALL:
            continue
        data_key = key_map.get(key, key)
        value = record.get(data_key) if record is not None else None
        if not _choice_passes(value, choice, no_mode):
            return False
    return True


def cohort_mask(
    df: pd.DataFrame,
    spec: Mapping[str, str],
    key_map: Optional[Mapping[str, str]] = None,
    no_mode: str = "strict",
) -> pd.Series:
    key_map = key_map or {}
    mask = pd.Series(True, index=df.index)
    for key, choice in spec.items():
        if choice == CHOICE_ALL:
            continue
        data_key = key_map.get(key, key)
        if data_key in df.columns:
            column = df[data_key]
        else:
            column = pd.Series([None] * len(df), index=df.index, dtype=object)
        mask &= column.map(lambda v: _choice_passes(v, choice, no_mode)).astype(bool)
    return mask


def apply_filters(
    df: pd.DataFrame,
    spec: FilterSpec,
    district_index: DistrictIndex,
    key_map: Optional[Mapping[str, str]] = None,
    no_mode: str = "strict",
    district_column: str = "district",
) -> pd.DataFrame:
    """
    Apply the district filter (raw spelling variants) and then the cohort filter.
    Search text is left to the views that define their own searchable fields.
    """
    if df.empty:
        filtered = df.copy()
        filtered.attrs["applied_filters"] = serialize_filters(spec)
        return filtered

    filtered = df
    if spec.district != ALL_DISTRICTS:
        if district_column in filtered.columns:
            filtered = filtered[district_index.mask(filtered[district_column], spec.district)]
        else:
            filtered = filtered.iloc[0:0]

    active = spec.active_cohort
    if active:
        filtered = filtered[cohort_mask(filtered, active, key_map, no_mode)]

    filtered = filtered.copy()
    filtered.attrs["applied_filters"] = serialize_filters(spec)
    return filtered


def serialize_filters(spec: FilterSpec) -> Dict[str, Any]:
    """
    Convert the FilterSpec dataclass to a JSON-serialisable dictionary to be
    stored in session_state or used for logging/debugging.
    """
    return {
        "district": spec.district,
        "cohort": spec.active_cohort,
        "search": spec.search,
    }
