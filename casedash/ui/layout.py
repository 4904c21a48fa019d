"""
Layout helpers for the Streamlit application (page setup, sidebar filters).
"""

from __future__ import annotations

from typing import List, Tuple

import streamlit as st

from casedash.config import EngineConfig
from casedash.data.districts import ALL_DISTRICTS, DistrictIndex
from casedash.data.filters import COHORT_CHOICES, FilterSpec

SCOPES = {
    "VCAs": "persons",
    "Households": "households",
}


def setup_page() -> None:
    """Set Streamlit page configuration and top-level styling."""
    st.set_page_config(
        page_title="Case Management Cohort Dashboard",
        layout="wide",
        page_icon=":bar_chart:",
    )


def _clear_state_prefixes(prefixes: List[str]) -> None:
    for prefix in prefixes:
        for key in list(st.session_state.keys()):
            if key.startswith(prefix):
                del st.session_state[key]


def sidebar_filters_ui(district_index: DistrictIndex, config: EngineConfig) -> Tuple[str, FilterSpec]:
    """Render the sidebar and return the selected scope and an immutable FilterSpec."""
    st.sidebar.header("Filters")

    scope_label = st.sidebar.radio("Entity scope", options=list(SCOPES), key="cd_scope", horizontal=True)

    district_options = [ALL_DISTRICTS] + district_index.names
    district = st.sidebar.selectbox(
        "District",
        options=district_options,
        key="cd_district",
        format_func=lambda v: "All districts" if v == ALL_DISTRICTS else v,
        help="Every spelling variant of the chosen district is matched.",
    )

    search = st.sidebar.text_input("Search", key="cd_search", placeholder="ID, name, district, caseworker…")

    spec = FilterSpec(district=district).with_search(search)
    labels = dict(config.cohort_labels)
    with st.sidebar.expander("Sub-population", expanded=False):
        for key in config.cohort_keys():
            choice = st.selectbox(
                labels.get(key, key.upper()),
                options=list(COHORT_CHOICES),
                key=f"cd_cohort_{key}",
                format_func=lambda v: v.title(),
            )
            spec = spec.with_cohort(key, choice)

    if st.sidebar.button("Clear filters", key="cd_clear_filters", type="primary"):
        _clear_state_prefixes(["cd_cohort_", "cd_search"])
        st.rerun()

    return SCOPES[scope_label], spec
