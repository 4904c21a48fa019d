from __future__ import annotations

import pandas as pd
import streamlit as st

from casedash.components.hts import (
    HTS_REGISTERS,
    facility_linkage,
    hts_export_frame,
    hts_register,
    hts_summary,
    search_tests,
)
from casedash.data.filters import FilterSpec, apply_filters
from casedash.ui.components.formatting import format_percent
from casedash.ui.components.kpi import KpiCard, render_kpi_cards
from casedash.ui.components.tables import render_table
from casedash.ui.pages.context import PageContext
from casedash.utils.export import export_file_name

REGISTER_LABELS = {
    "all": "All records",
    "unlinked": "Unlinked positives",
    "pending": "Pending outcomes",
    "new": "New positives",
}


def render(df: pd.DataFrame, context: PageContext) -> None:
    st.subheader("HTS register")
    tests = apply_filters(
        context.snapshot.hts,
        FilterSpec(district=context.filters.district),
        context.district_index,
    )
    if tests.empty:
        st.info("No HIV testing records match the current district.")
        return

    summary = hts_summary(tests, context.now, context.config)
    render_kpi_cards(
        [
            KpiCard(label="Total tests", value=summary.total),
            KpiCard(
                label="Positives",
                value=summary.positives,
                delta_display=format_percent(summary.positivity_rate),
                help_text="Positivity rate among the tests shown.",
            ),
            KpiCard(label="Unlinked positives", value=summary.unlinked, help_text="No ART initiation date."),
            KpiCard(label="Pending outcomes", value=summary.pending),
            KpiCard(
                label="New positives",
                value=summary.new_positives,
                help_text=f"Created in the last {context.config.thresholds.hts_new_positive_days} days.",
            ),
            KpiCard(label="Active caseworkers", value=summary.active_workers),
        ],
        columns=3,
    )

    st.markdown("#### Linkage by facility")
    render_table(
        facility_linkage(tests, context.config),
        export_file_name=None,
        empty_message="No positive results recorded.",
    )

    register = st.selectbox(
        "Register",
        options=list(HTS_REGISTERS),
        format_func=REGISTER_LABELS.get,
        key="cd_hts_register",
    )
    rows = search_tests(hts_register(tests, register, context.now, context.config), context.filters.search, context.config)
    st.caption(f"{len(rows):,} records on this register.")
    export = hts_export_frame(rows, context.config)
    render_table(
        export.head(500),
        export_df=export,
        export_file_name=export_file_name(f"hts_register_{register}", context.filters.district, context.now),
        key="cd_hts_export",
    )
