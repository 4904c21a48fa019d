import csv
from datetime import datetime
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from casedash.config import DEFAULT_CONFIG, EngineConfig
from casedash.data.fields import MISSING, is_blank

COHORT_EXPORT_COLUMNS = [
    "ID",
    "Name",
    "District",
    "Age",
    "Health",
    "Schooled",
    "Safe",
    "Stable",
    "Domains Covered",
]


def to_csv_text(df: pd.DataFrame, columns: Optional[Sequence[str]] = None) -> str:
    """CSV with a header row, every field double-quoted and embedded quotes doubled."""
    columns = list(columns) if columns is not None else list(df.columns)
    frame = df.reindex(columns=columns)
    return frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def cohort_export_frame(
    entities: pd.DataFrame,
    coverage: pd.DataFrame,
    config: EngineConfig = DEFAULT_CONFIG,
) -> pd.DataFrame:
    """
    Export rows for an enriched, filtered entity frame and its coverage flags
    (both sharing the same index).
    """
    if entities.empty:
        return pd.DataFrame(columns=COHORT_EXPORT_COLUMNS)

    ages = entities.get("age", pd.Series(0, index=entities.index))
    known = entities.get("age_known", ages.gt(0))
    out = pd.DataFrame(index=entities.index)
    out["ID"] = entities.get("display_id", pd.Series(MISSING, index=entities.index))
    out["Name"] = entities.get("display_name", pd.Series(MISSING, index=entities.index))
    out["District"] = entities.get("district", pd.Series(MISSING, index=entities.index)).map(
        lambda v: MISSING if is_blank(v) else v
    )
    out["Age"] = np.where(known.astype(bool), ages.astype(int).astype(str), MISSING)
    for domain in config.domains:
        out[domain.title()] = np.where(coverage[f"has_{domain}"].astype(bool), "Yes", "No")
    out["Domains Covered"] = coverage["domain_count"].map(lambda n: f"{int(n)}/{len(config.domains)}")
    return out[COHORT_EXPORT_COLUMNS]


def export_file_name(prefix: str, district: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%d")
    safe_district = "".join(c if c.isalnum() else "_" for c in district)
    return f"{prefix}_{safe_district}_{stamp}.csv"
