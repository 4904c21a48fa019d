from __future__ import annotations

import pandas as pd
import streamlit as st

from casedash.components.coverage import district_breakdown, summarize, to_cohort_stats
from casedash.ui.components.formatting import format_percent
from casedash.ui.components.kpi import KpiCard, render_kpi_cards
from casedash.ui.components.tables import render_table
from casedash.ui.pages.context import PageContext


def render(df: pd.DataFrame, context: PageContext) -> None:
    st.subheader(f"{context.scope_label} service coverage")
    if df.empty:
        st.info("No records match the current filters.")
        return

    stats = to_cohort_stats(summarize(context.coverage, context.config))
    cards = [
        KpiCard(label=f"{context.scope_label} in cohort", value=stats.total_entities),
        KpiCard(label="Service events", value=stats.total_events),
        KpiCard(
            label="Graduation ready",
            value=stats.all_four_count,
            value_display=f"{stats.all_four_count:,}",
            delta_display=format_percent(stats.all_four_rate),
            help_text="Covered in all four domains.",
        ),
        KpiCard(label="Health", value=stats.health_count, delta_display=format_percent(stats.health_rate)),
        KpiCard(label="Schooled", value=stats.schooled_count, delta_display=format_percent(stats.schooled_rate)),
        KpiCard(label="Safe", value=stats.safe_count, delta_display=format_percent(stats.safe_rate)),
        KpiCard(label="Stable", value=stats.stable_count, delta_display=format_percent(stats.stable_rate)),
    ]
    render_kpi_cards(cards, columns=4)
    st.caption("Rates are shares of the filtered cohort above.")

    st.markdown("#### Coverage by district")
    breakdown = district_breakdown(context.coverage, df.get("district", pd.Series(dtype=object)), context.config)
    rate_cols = [c for c in breakdown.columns if c.endswith("_rate")]
    render_table(
        breakdown,
        column_config={c: {"type": "percent"} for c in rate_cols},
        export_file_name="coverage_by_district.csv",
        key="cd_overview_export",
    )
