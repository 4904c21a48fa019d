from __future__ import annotations

from dataclasses import asdict

import pandas as pd
import streamlit as st

from casedash.components.audit import assemble, caseworker_lookup, paginate, to_audit_rows
from casedash.ui.components.tables import render_table
from casedash.ui.pages.context import PageContext


def render(df: pd.DataFrame, context: PageContext) -> None:
    st.subheader("Service audit")
    events = context.snapshot.services
    if events.empty:
        st.info("No service events in the current snapshot.")
        return

    ordered = assemble(
        events,
        context.filters.search,
        context.filters,
        context.district_index,
        context.config,
        caseworkers=caseworker_lookup(context.snapshot.households, context.config),
    )
    if ordered.empty:
        st.info("No service events match the current filters.")
        return

    page_size = context.config.audit_page_size
    page_count = max((len(ordered) + page_size - 1) // page_size, 1)
    page_number = st.number_input("Page", min_value=1, max_value=page_count, value=1, step=1, key="cd_audit_page")
    page = paginate(ordered, int(page_number) - 1, page_size)
    st.caption(f"Page {page.page + 1} of {page.page_count} · {page.total:,} service events")

    rows = pd.DataFrame([asdict(r) for r in to_audit_rows(page.rows, context.config)])
    rows["provided_services"] = rows["provided_services"].map(", ".join)
    render_table(rows, export_file_name=None)
