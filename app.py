from casedash.bootstrap_env import ensure_env

ensure_env()  # must run before settings are read

import logging
from datetime import datetime

import streamlit as st

from casedash.components.coverage import entity_domain_flags
from casedash.config import TABS, ConfigError, load_engine_config
from casedash.data.districts import DistrictIndex
from casedash.data.enrichment import enrich_entities
from casedash.data.filters import apply_filters, serialize_filters
from casedash.data.loader import RecordStoreError, SnapshotHolder, clear_cache, load_snapshot
from casedash.ui.layout import setup_page, sidebar_filters_ui
from casedash.ui.pages import (
    overview,
    domain_gaps,
    risk_register,
    service_audit,
    caseworkers,
    hts_register,
    data_quality,
)
from casedash.ui.pages.context import PageContext

LOG = logging.getLogger(__name__)

PAGE_RENDERERS = {
    "overview": overview.render,
    "domain_gaps": domain_gaps.render,
    "risk_register": risk_register.render,
    "service_audit": service_audit.render,
    "caseworkers": caseworkers.render,
    "hts": hts_register.render,
    "data_quality": data_quality.render,
}


def _snapshot_holder() -> SnapshotHolder:
    if "cd_snapshot_holder" not in st.session_state:
        st.session_state["cd_snapshot_holder"] = SnapshotHolder()
    return st.session_state["cd_snapshot_holder"]


def _active_filter_summary(filters, total_rows: int, scope_label: str) -> None:
    applied = serialize_filters(filters)
    badges = []
    if applied["district"] != "All":
        badges.append(f"District: {applied['district']}")
    if applied["cohort"]:
        badges.append("Sub-population: " + ", ".join(f"{k.upper()}={v}" for k, v in applied["cohort"].items()))
    if applied["search"]:
        badges.append(f"Search: {applied['search']}")

    summary_text = "Active Filters: " + " | ".join(badges) if badges else "Active Filters: All data"
    st.markdown(f"**{summary_text}**")
    st.caption(f"Showing {total_rows:,} {scope_label.lower()} after filters.")


def main() -> None:
    setup_page()
    st.title("Case Management Cohort Dashboard")

    try:
        config = load_engine_config()
    except ConfigError as exc:
        st.error(f"Engine configuration is invalid: {exc}")
        return

    if st.sidebar.button("🔄 Refresh Data"):
        clear_cache()

    holder = _snapshot_holder()
    token = holder.begin_fetch()
    try:
        snapshot = load_snapshot()
    except RecordStoreError as exc:
        LOG.error("Record store unavailable: %s", exc)
        st.error(f"Could not load records from the record store: {exc}")
        return
    holder.complete(token, snapshot)
    snapshot = holder.snapshot

    if snapshot is None or snapshot.is_empty:
        st.warning("The record store returned no records.")
        return

    now = datetime.now()
    district_index = DistrictIndex.from_frames(snapshot.households, snapshot.persons, snapshot.services, snapshot.hts)
    scope, filters = sidebar_filters_ui(district_index, config)
    id_keys = config.keys.person_id if scope == "persons" else config.keys.household_id
    owner_keys = config.keys.service_owner_id if scope == "persons" else config.keys.household_id

    entities = enrich_entities(snapshot.frame(scope), id_keys, config, now)
    filtered = apply_filters(
        entities,
        filters,
        district_index,
        key_map=config.key_map(),
        no_mode=config.cohort_no_mode,
    )
    coverage = entity_domain_flags(filtered, snapshot.services, id_keys, owner_keys, config)
    st.session_state["cd_active_filters"] = serialize_filters(filters)

    context = PageContext(
        snapshot=snapshot,
        config=config,
        filters=filters,
        district_index=district_index,
        now=now,
        scope=scope,
        entity_id_keys=tuple(id_keys),
        owner_keys=tuple(owner_keys),
        entities=entities,
        coverage=coverage,
    )
    _active_filter_summary(filters, len(filtered), context.scope_label)

    tab_labels = [tab.label for tab in TABS]
    streamlit_tabs = st.tabs(tab_labels)

    for streamlit_tab, tab_config in zip(streamlit_tabs, TABS):
        renderer = PAGE_RENDERERS.get(tab_config.key)
        if renderer is None:
            continue
        with streamlit_tab:
            renderer(filtered, context)


if __name__ == "__main__":
    main()
