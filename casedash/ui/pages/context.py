from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

import pandas as pd

from casedash.config import EngineConfig
from casedash.data.districts import DistrictIndex
from casedash.data.filters import FilterSpec
from casedash.data.loader import RecordSnapshot


@dataclass
class PageContext:
    snapshot: RecordSnapshot
    config: EngineConfig
    filters: FilterSpec
    district_index: DistrictIndex
    now: datetime
    # "persons" or "households"
    scope: str
    entity_id_keys: Tuple[str, ...]
    # keys linking services, case plans and referrals to an entity of this scope
    owner_keys: Tuple[str, ...]
    entities: pd.DataFrame
    coverage: pd.DataFrame

    @property
    def scope_label(self) -> str:
        return "VCAs" if self.scope == "persons" else "Households"
