"""
Reusable helpers for rendering data tables with a CSV download beside them.
"""

from __future__ import annotations

from typing import Dict, Optional, List

import pandas as pd
import streamlit as st

from casedash.ui.components.formatting import format_number, format_percent
from casedash.utils.export import to_csv_text


def render_table(
    df: pd.DataFrame,
    column_config: Optional[Dict[str, Dict[str, str]]] = None,
    height: int = 400,
    export_file_name: Optional[str] = "export.csv",
    export_df: Optional[pd.DataFrame] = None,
    key: Optional[str] = None,
    empty_message: str = "No records to display.",
) -> None:
    if df.empty:
        st.info(empty_message)
        return

    formatted_df = df.copy()
    if column_config:
        for column, config in column_config.items():
            if column not in formatted_df.columns:
                continue
            fmt_type = config.get("type")
            if fmt_type == "percent":
                decimals = int(config.get("decimals", 1))
                formatted_df[column] = formatted_df[column].apply(
                    lambda v: format_percent(v, decimals=decimals)
                )
            elif fmt_type == "number":
                decimals = int(config.get("decimals", 0))
                formatted_df[column] = formatted_df[column].apply(
                    lambda v: format_number(v, decimals=decimals)
                )
            elif fmt_type == "yesno":
                formatted_df[column] = formatted_df[column].map(lambda v: "Yes" if bool(v) else "No")

    st.dataframe(
        formatted_df,
        use_container_width=True,
        height=height,
        hide_index=True,
    )

    if export_file_name:
        source = export_df if export_df is not None else df
        st.download_button(
            "Download CSV",
            data=to_csv_text(source).encode("utf-8"),
            file_name=export_file_name,
            mime="text/csv",
            key=key,
        )


def yes_no_columns(columns: List[str]) -> Dict[str, Dict[str, str]]:
    return {column: {"type": "yesno"} for column in columns}
