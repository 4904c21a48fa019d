from __future__ import annotations

import pandas as pd
import streamlit as st

from casedash.components.case_plans import link_services, sort_case_plans
from casedash.components.coverage import coverage_labels
from casedash.components.risk import FLAG_NAMES, classify_cohort, group_by_owner, risk_summary
from casedash.data.fields import resolve_text
from casedash.ui.components.kpi import KpiCard, render_kpi_cards
from casedash.ui.components.tables import render_table, yes_no_columns
from casedash.ui.pages.context import PageContext
from casedash.utils.export import export_file_name


def _render_case_plans(entity_id: str, context: PageContext) -> None:
    keys = context.config.keys
    plans = group_by_owner(context.snapshot.case_plans, context.owner_keys).get(entity_id, [])
    services = group_by_owner(context.snapshot.services, context.owner_keys).get(entity_id, [])

    covered = context.coverage[context.coverage["entity_id"] == entity_id]
    if not covered.empty:
        labels = coverage_labels(covered.iloc[0], context.config.domains)
        st.caption("Domains covered: " + (", ".join(labels) if labels else "none"))

    if not plans:
        st.info("No case plans recorded.")
        return

    for plan in sort_case_plans(plans, context.config):
        linked = link_services(plan, services, context.config)
        title = f"Case plan {resolve_text(plan, keys.case_plan_id)} · {resolve_text(plan, keys.case_plan_date)}"
        with st.expander(title):
            if linked.is_fallback:
                st.caption("No service references this plan; showing every service of the entity.")
            render_table(
                pd.DataFrame(linked.services),
                export_file_name=None,
                empty_message="No services recorded.",
            )


def render(df: pd.DataFrame, context: PageContext) -> None:
    st.subheader("Risk register")
    if df.empty:
        st.info("No records match the current filters.")
        return

    snapshot = context.snapshot
    risk = classify_cohort(
        df,
        context.entity_id_keys,
        services=snapshot.services,
        case_plans=snapshot.case_plans,
        referrals=snapshot.referrals,
        now=context.now,
        owner_keys=context.owner_keys,
        config=context.config,
    )
    counts = risk_summary(risk)
    render_kpi_cards(
        [KpiCard(label="High risk", value=counts["is_high_risk"])]
        + [KpiCard(label=name.replace("_", " ").capitalize(), value=counts[name]) for name in FLAG_NAMES],
        columns=4,
    )

    only_high = st.checkbox("Show high-risk only", value=True, key="cd_risk_only_high")
    table = pd.concat([df[["display_id", "display_name"]], risk.drop(columns=["entity_id"])], axis=1)
    if only_high:
        table = table[table["is_high_risk"].astype(bool)]
    table = table.assign(reasons=table["reasons"].map(lambda r: ", ".join(r)))
    render_table(
        table.rename(columns={"display_id": "id", "display_name": "name"}),
        column_config=yes_no_columns([*FLAG_NAMES, "is_high_risk"]),
        export_file_name=export_file_name("risk_register", context.filters.district, context.now),
        key="cd_risk_export",
    )

    st.markdown("#### Case plans")
    entity_ids = sorted(risk.loc[table.index, "entity_id"].dropna().unique())
    if not entity_ids:
        st.info("No entity with a resolvable id to inspect.")
        return
    selected = st.selectbox(context.scope_label[:-1], options=entity_ids, key="cd_risk_entity")
    _render_case_plans(selected, context)
