import logging

from casedash.components.case_plans import link_services, sort_case_plans

SERVICES = [
    {"case_plan_id": "CP1", "service": "Home visit"},
    {"case_plan_id": "CP2", "service": "School fees"},
    {"service": "Unlinked"},
]


def test_links_only_services_recorded_against_the_plan():
    linked = link_services({"case_plan_id": "CP1"}, SERVICES)
    assert [s["service"] for s in linked.services] == ["Home visit"]
    assert not linked.is_fallback


def test_falls_back_to_all_services_and_says_so(caplog):
    with caplog.at_level(logging.INFO, logger="casedash.components.case_plans"):
        linked = link_services({"case_plan_id": "CP9"}, SERVICES)
    assert linked.is_fallback
    assert len(linked.services) == 3
    assert "CP9" in caplog.text


def test_plan_without_id_falls_back():
    assert link_services({}, SERVICES).is_fallback


def test_no_services_is_not_a_fallback():
    linked = link_services({"case_plan_id": "CP1"}, [])
    assert linked.services == []
    assert not linked.is_fallback


def test_numeric_plan_ids_match_their_text_form():
    linked = link_services({"case_plan_id": 7.0}, [{"caseplan_id": "7"}])
    assert len(linked.services) == 1


def test_case_plans_sort_newest_first_with_undated_last():
    plans = [
        {"case_plan_id": "a", "case_plan_date": "2024-01-10"},
        {"case_plan_id": "b", "case_plan_date": "bad"},
        {"case_plan_id": "c", "case_plan_date": "15-03-2024"},
    ]
    assert [p["case_plan_id"] for p in sort_case_plans(plans)] == ["c", "a", "b"]


def test_undated_plans_sort_after_pre_1970_plans():
    plans = [
        {"case_plan_id": "undated", "case_plan_date": "unknown"},
        {"case_plan_id": "old", "case_plan_date": "1965-03-01"},
    ]
    assert [p["case_plan_id"] for p in sort_case_plans(plans)] == ["old", "undated"]
