from __future__ import annotations

import pandas as pd
import streamlit as st

from casedash.components.coverage import GAP_TYPES, GRADUATION_PATH, domain_gap_register
from casedash.ui.components.tables import render_table
from casedash.ui.pages.context import PageContext
from casedash.utils.export import cohort_export_frame, export_file_name

REGISTER_LABELS = {
    "health_domain": "Missing Health services",
    "schooled_domain": "Missing Schooled services",
    "safe_domain": "Missing Safe services",
    "stable_domain": "Missing Stable services",
    GRADUATION_PATH: "Graduation path (all four domains)",
}


def render(df: pd.DataFrame, context: PageContext) -> None:
    st.subheader("Domain gap registers")
    if df.empty:
        st.info("No records match the current filters.")
        return

    gap_type = st.selectbox(
        "Register",
        options=[*GAP_TYPES, GRADUATION_PATH],
        format_func=REGISTER_LABELS.get,
        key="cd_gap_type",
    )
    register = domain_gap_register(context.coverage, gap_type)
    entities = df.loc[register.index]

    query = context.filters.search.lower()
    if query:
        haystack = (
            entities["display_id"].astype(str)
            + " " + entities["display_name"].astype(str)
            + " " + entities.get("district", pd.Series("", index=entities.index)).astype(str)
        ).str.lower()
        keep = haystack.str.contains(query, regex=False, na=False)
        entities = entities[keep]
        register = register.loc[entities.index]

    st.caption(f"{len(register):,} {context.scope_label.lower()} on this register.")
    export = cohort_export_frame(entities, register, context.config)
    render_table(
        export.head(100),
        export_df=export,
        export_file_name=export_file_name(gap_type, context.filters.district, context.now),
        key="cd_gap_export",
    )
