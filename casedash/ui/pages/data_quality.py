from __future__ import annotations

import pandas as pd
import streamlit as st

from casedash.components.quality_checks import build_quality_overview, missing_values_summary
from casedash.data.enrichment import enrich_services
from casedash.ui.components.kpi import KpiCard, render_kpi_cards
from casedash.ui.components.tables import render_table
from casedash.ui.pages.context import PageContext


def render(df: pd.DataFrame, context: PageContext) -> None:
    st.subheader("Data quality")
    overview = build_quality_overview(context.snapshot, context.config)
    render_kpi_cards(
        [KpiCard(label=key.replace("_", " ").capitalize(), value=value) for key, value in overview.items()],
        columns=4,
    )

    st.markdown("#### Missing values")
    render_table(
        missing_values_summary(context.entities),
        column_config={"missing_pct": {"type": "percent"}},
        export_file_name=None,
    )

    services = enrich_services(context.snapshot.services, context.config)
    if not services.empty:
        unreadable = services[~services["service_date_parse_ok"] & services["service_date_raw"].notna()]
        st.markdown(f"#### Unreadable service dates ({len(unreadable):,})")
        render_table(
            unreadable[["owner_id", "service_date_raw"]].rename(
                columns={"owner_id": "Owner", "service_date_raw": "Recorded date"}
            ),
            export_file_name=None,
            empty_message="Every service date could be read.",
        )

    st.markdown("#### Snapshot")
    for key, value in context.snapshot.diagnostics().items():
        st.write(f"- **{key.replace('_', ' ').title()}**: {value}")

    st.markdown("#### Metric definitions")
    st.write(
        """
        - **Domain coverage**: at least one service event with the domain field filled in
          (values such as "none", "n/a" or "[]" do not count).
        - **Graduation ready**: covered in all four domains.
        - **Rates**: shares of the filtered cohort, not of all records.
        - **Age 0**: birthdate missing or unreadable.
        """
    )
