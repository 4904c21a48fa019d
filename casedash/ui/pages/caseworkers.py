from __future__ import annotations

import pandas as pd
import streamlit as st

from casedash.components.audit import caseworker_lookup
from casedash.components.caseworkers import (
    attribute_caseworkers,
    search_workload,
    top_district,
    top_district_events,
    workload,
)
from casedash.data.fields import MISSING, map_values, resolve_column, resolve_id_column
from casedash.data.filters import FilterSpec, apply_filters
from casedash.ui.components.kpi import KpiCard, render_kpi_cards
from casedash.ui.components.tables import render_table
from casedash.ui.pages.context import PageContext
from casedash.utils.export import export_file_name

VIEWS = {
    "caseworkers": "Active caseworkers",
    "services": "All services",
    "district": "Top performing district",
}


def _service_rows(events: pd.DataFrame, lookup, context: PageContext) -> pd.DataFrame:
    keys = context.config.keys
    owners = resolve_id_column(events, keys.household_id)
    return pd.DataFrame(
        {
            "Household ID": map_values(owners, lambda v: MISSING if v is None else v),
            "Caseworker": map_values(attribute_caseworkers(events, lookup, context.config), lambda v: v or MISSING),
            "Service Date": resolve_column(events, keys.service_date),
            "District": resolve_column(events, keys.district),
            "Service": resolve_column(events, keys.service_name),
        },
        index=events.index,
    )


def render(df: pd.DataFrame, context: PageContext) -> None:
    st.subheader("Caseworker register")
    events = apply_filters(
        context.snapshot.services,
        FilterSpec(district=context.filters.district),
        context.district_index,
    )
    if events.empty:
        st.info("No service events match the current district.")
        return

    lookup = caseworker_lookup(context.snapshot.households, context.config)
    workers = workload(events, lookup, context.config)
    render_kpi_cards(
        [
            KpiCard(label="Service events", value=len(events)),
            KpiCard(label="Active caseworkers", value=len(workers)),
            KpiCard(label="Top district", value_display=top_district(events, context.config) or MISSING),
        ],
        columns=3,
    )

    view = st.radio("View", options=list(VIEWS), format_func=VIEWS.get, key="cd_cw_view", horizontal=True)
    query = context.filters.search
    file_name = export_file_name(f"caseworkers_{view}", context.filters.district, context.now)

    if view == "caseworkers":
        table = search_workload(workers, query).rename(
            columns={"caseworker": "Caseworker", "district": "District", "services": "Total Services"}
        )
        render_table(table, export_file_name=file_name, key="cd_cw_export")
        return

    scoped = events if view == "services" else top_district_events(events, context.config)
    rows = _service_rows(scoped, lookup, context)
    q = query.lower()
    if q:
        haystack = (rows["Household ID"] + " " + rows["Caseworker"] + " " + rows["District"].astype(str)).str.lower()
        rows = rows[haystack.str.contains(q, regex=False)]
    render_table(rows.head(500), export_df=rows, export_file_name=file_name, key="cd_cw_export")
