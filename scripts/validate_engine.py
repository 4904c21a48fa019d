"""Quick validation script for the cohort engine.

Run with `python scripts/validate_engine.py` to check that enrichment,
filtering, coverage and risk classification produce the expected columns
on a small hand-written snapshot.
"""

from __future__ import annotations

from datetime import datetime

from casedash.components.coverage import aggregate, entity_domain_flags
from casedash.components.risk import FLAG_NAMES, classify_cohort
from casedash.config import DEFAULT_CONFIG
from casedash.data.districts import DistrictIndex
from casedash.data.enrichment import enrich_entities
from casedash.data.filters import FilterSpec, apply_filters
from casedash.data.loader import snapshot_from_records


def main() -> None:
    now = datetime(2024, 6, 15)
    snapshot = snapshot_from_records(
        {
            "households": [
                {"household_id": "H1", "district": "Lusaka", "caregiver_name": "Mary Banda"},
                {"household_id": "H2", "district": "LUSAKA ", "caregiver_name": "John Phiri"},
                {"household_id": "H3", "district": "Ndola", "caregiver_name": "Grace Tembo"},
            ],
            "services": [
                {"household_id": "H1", "service_date": "01-06-2024", "health_services": "ART refill"},
                {"household_id": "H2", "service_date": "2024-05-30", "health_services": "Clinic",
                 "schooled_services": "Fees", "safe_services": "Birth cert", "stable_services": "Cash"},
            ],
            "case_plans": [{"household_id": "H1", "case_plan_id": "CP1"}],
        },
        fetched_at=now,
    )

    keys = DEFAULT_CONFIG.keys.household_id
    entities = enrich_entities(snapshot.households, keys, DEFAULT_CONFIG, now)
    required_cols = ["entity_id", "display_id", "display_name", "age", "age_known"]
    missing = [col for col in required_cols if col not in entities.columns]
    if missing:
        raise SystemExit(f"Missing required columns: {missing}")

    index = DistrictIndex.from_frames(snapshot.households)
    assert index.names == ["Lusaka", "Ndola"], "District variants should collapse to one name"

    lusaka = apply_filters(entities, FilterSpec(district="Lusaka"), index)
    assert len(lusaka) == 2, "District filter should match every raw spelling"

    summary = aggregate(lusaka, snapshot.services, keys, keys)
    assert summary.per_domain_count["health"] == 2, "Both Lusaka households received health services"
    assert summary.all_domains_count == 1, "Only H2 is covered in all four domains"

    flags = entity_domain_flags(entities, snapshot.services, keys, keys)
    risk = classify_cohort(
        entities, keys, snapshot.services, snapshot.case_plans, now=now, owner_keys=keys
    )
    missing = [col for col in FLAG_NAMES if col not in risk.columns]
    if missing:
        raise SystemExit(f"Missing risk flags: {missing}")
    assert bool(risk.loc[flags["entity_id"] == "H3", "is_high_risk"].iloc[0]), "H3 has no services"

    print("Engine validation passed. Entities:", len(entities), "High risk:", int(risk["is_high_risk"].sum()))


if __name__ == "__main__":
    main()
