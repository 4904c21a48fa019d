"""
District identity index: groups the raw district spellings found in the data
under one canonical display name.

The dataset itself is never rewritten. Filtering on a canonical name tests the
original raw strings for exact equality against that name's variants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

import pandas as pd

from casedash.data.fields import is_blank

ALL_DISTRICTS = "All"


def canonical_district(raw: object) -> str:
    text = str(raw).strip().lower()
    return " ".join(word[:1].upper() + word[1:] for word in text.split(" "))


@dataclass(frozen=True)
class DistrictIndex:
    groups: Mapping[str, FrozenSet[str]] = field(default_factory=dict)

    @classmethod
    def build(cls, values: Iterable[object]) -> "DistrictIndex":
        groups: Dict[str, set] = {}
        for raw in values:
            if is_blank(raw):
                continue
            raw_text = str(raw)
            if not raw_text.strip():
                continue
            groups.setdefault(canonical_district(raw_text), set()).add(raw_text)
        return cls({name: frozenset(variants) for name, variants in groups.items()})

    @classmethod
    def from_frames(cls, *frames: pd.DataFrame, column: str = "district") -> "DistrictIndex":
        values: List[object] = []
        for frame in frames:
            if frame is not None and column in frame.columns:
                values.extend(frame[column].tolist())
        return cls.build(values)

    @property
    def names(self) -> List[str]:
        return sorted(self.groups)

    def resolve_variants(self, name: Optional[str]) -> Optional[FrozenSet[str]]:
        """Raw spellings to match for ``name``; None means no restriction."""
        if name is None or name == ALL_DISTRICTS:
            return None
        return self.groups.get(name, frozenset({name}))

    def mask(self, series: pd.Series, name: Optional[str]) -> pd.Series:
        variants = self.resolve_variants(name)
        if variants is None:
            return pd.Series(True, index=series.index)
        raw = series.map(lambda v: "" if is_blank(v) else str(v))
        return raw.isin(variants)
