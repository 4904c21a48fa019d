import pandas as pd
import pytest

from casedash.components.coverage import (
    aggregate,
    district_breakdown,
    domain_gap_register,
    entity_domain_flags,
    is_provided,
    summarize,
    to_cohort_stats,
)
from casedash.data.districts import DistrictIndex
from casedash.data.filters import FilterSpec, apply_filters
from casedash.data.loader import frame_from_records

HH_KEYS = ("household_id", "hh_id")


@pytest.mark.parametrize(
    "value",
    [None, "", "  ", "Not Applicable", "N/A", "na", "None", "no", "false", "0", "[]", "{}", "[ ]", "{  }", False, 0],
)
def test_not_provided_values(value):
    assert not is_provided(value)


@pytest.mark.parametrize("value", ["['ART refill']", "Clinic escort", "yes", 1, True])
def test_provided_values(value):
    assert is_provided(value)


def _frames(households, services):
    return frame_from_records(households), frame_from_records(services)


def test_scenario_health_only_household(households, services):
    entities, events = _frames(households, services)
    flags = entity_domain_flags(entities, events, HH_KEYS, HH_KEYS)
    h1 = flags[flags["entity_id"] == "H1"].iloc[0]
    assert bool(h1["has_health"])
    assert not bool(h1["has_schooled"])
    assert not bool(h1["all_domains"])
    assert h1["event_count"] == 2

    summary = aggregate(entities, events, HH_KEYS, HH_KEYS)
    assert summary.per_domain_count == {"health": 2, "schooled": 1, "safe": 1, "stable": 2}
    assert summary.all_domains_count == 1
    assert summary.total_entities == 5


def test_coverage_is_monotonic_in_events(households, services):
    entities, events = _frames(households, services)
    before = entity_domain_flags(entities, events, HH_KEYS, HH_KEYS)
    extra = services + [{"household_id": "H1", "health_services": "none", "schooled_services": "n/a"}]
    after = entity_domain_flags(entities, frame_from_records(extra), HH_KEYS, HH_KEYS)
    for column in ["has_health", "has_schooled", "has_safe", "has_stable"]:
        assert (after[column] | ~before[column]).all()


def test_unresolvable_ids_are_excluded_from_id_keyed_aggregation(households, services):
    entities, events = _frames(households, services)
    flags = entity_domain_flags(entities, events, HH_KEYS, HH_KEYS)
    no_id = flags[flags["entity_id"].isna()].iloc[0]
    # the orphan service event has no owner id and must not attach to the id-less household
    assert not bool(no_id["has_health"])
    assert no_id["event_count"] == 0


def test_rates_use_the_filtered_cohort_as_denominator(households, services):
    entities, events = _frames(households, services)
    index = DistrictIndex.build(entities["district"])
    everyone = aggregate(entities, events, HH_KEYS, HH_KEYS)
    lusaka = apply_filters(entities, FilterSpec(district="Lusaka"), index)
    narrowed = aggregate(lusaka, events, HH_KEYS, HH_KEYS)

    assert everyone.total_entities == 5
    assert narrowed.total_entities == 3
    assert narrowed.per_domain_count["health"] == 2
    assert narrowed.per_domain_rate["health"] == pytest.approx(2 / 3 * 100)
    assert everyone.per_domain_rate["health"] == pytest.approx(2 / 5 * 100)


def test_all_domains_rate_never_exceeds_any_domain_rate(households, services):
    entities, events = _frames(households, services)
    for cut in range(1, len(households) + 1):
        summary = aggregate(entities.iloc[:cut], events, HH_KEYS, HH_KEYS)
        assert summary.all_domains_rate <= min(summary.per_domain_rate.values())


def test_empty_cohort_has_zero_rates():
    summary = aggregate(pd.DataFrame(), pd.DataFrame(), HH_KEYS, HH_KEYS)
    assert summary.total_entities == 0
    assert summary.all_domains_rate == 0.0
    assert set(summary.per_domain_rate.values()) == {0.0}


def test_entities_without_events(households):
    entities = frame_from_records(households)
    summary = aggregate(entities, pd.DataFrame(), HH_KEYS, HH_KEYS)
    assert summary.per_domain_count == {"health": 0, "schooled": 0, "safe": 0, "stable": 0}
    assert summary.total_events == 0


def test_cohort_stats_shape(households, services):
    entities, events = _frames(households, services)
    stats = to_cohort_stats(aggregate(entities, events, HH_KEYS, HH_KEYS))
    data = stats.to_dict()
    assert data["all_four_count"] == 1
    assert data["all_four_rate"] == pytest.approx(20.0)
    assert data["total_events"] == 4
    assert set(data) == {
        "health_count", "health_rate", "schooled_count", "schooled_rate", "safe_count", "safe_rate",
        "stable_count", "stable_rate", "all_four_count", "all_four_rate", "total_entities", "total_events",
    }


def test_domain_gap_registers(households, services):
    entities, events = _frames(households, services)
    flags = entity_domain_flags(entities, events, HH_KEYS, HH_KEYS)
    missing_schooled = domain_gap_register(flags, "schooled_domain")
    assert "H2" not in set(missing_schooled["entity_id"])
    assert "H1" in set(missing_schooled["entity_id"])
    assert domain_gap_register(flags, "graduation_path")["entity_id"].tolist() == ["H2"]
    with pytest.raises(ValueError):
        domain_gap_register(flags, "unknown")


def test_district_breakdown_groups_spelling_variants(households, services):
    entities, events = _frames(households, services)
    flags = entity_domain_flags(entities, events, HH_KEYS, HH_KEYS)
    breakdown = district_breakdown(flags, entities["district"]).set_index("district")
    assert breakdown.loc["Lusaka", "entities"] == 3
    assert breakdown.loc["Ndola", "entities"] == 2
    assert breakdown.loc["Lusaka", "all_domains_rate"] == pytest.approx(100 / 3)


def test_summarize_matches_aggregate(households, services):
    entities, events = _frames(households, services)
    flags = entity_domain_flags(entities, events, HH_KEYS, HH_KEYS)
    assert summarize(flags) == aggregate(entities, events, HH_KEYS, HH_KEYS)
