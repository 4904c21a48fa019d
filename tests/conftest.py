"""Shared fixtures: a small, deliberately messy record snapshot."""

from datetime import datetime

import pytest

from casedash.data.loader import snapshot_from_records

NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def households():
    return [
        {"household_id": "H1", "district": "Lusaka", "caregiver_name": "Mary Banda", "caseworker_name": "Alice"},
        {"hh_id": "H2", "district": "LUSAKA ", "caregiver_name": "John Phiri"},
        {"household_id": "H3", "district": " lusaka", "caregiver_name": "Grace Tembo", "caseworker_name": "Brian"},
        {"household_id": "H4", "district": "Ndola", "caregiver_name": "Peter Mwale"},
        {"household_id": "", "district": "Ndola", "caregiver_name": "No Id"},
    ]


@pytest.fixture
def services():
    return [
        {"household_id": "H1", "service_date": "01-06-2024", "health_services": "['ART refill']",
         "schooled_services": "none", "district": "Lusaka", "service": "Home visit"},
        {"household_id": "H1", "service_date": "2024-05-20", "health_services": "",
         "safe_services": "[]", "district": "Lusaka", "service": "Follow up"},
        {"hh_id": "H2", "service_date": "05/30/2024", "health_services": "Clinic escort",
         "schooled_services": "School fees", "safe_services": "Birth certificate",
         "stable_services": "Cash transfer", "district": "LUSAKA ", "service": "Case review",
         "caseworker_name": "Chanda"},
        {"household_id": "H4", "service_date": "not a date", "stable_services": "Savings group",
         "district": "Ndola", "service": "Savings"},
        {"service_date": "2024-06-10", "health_services": "Orphan event", "district": "Ndola"},
    ]


@pytest.fixture
def snapshot(households, services):
    return snapshot_from_records(
        {
            "households": households,
            "persons": [
                {"uid": "V1", "first_name": "Ruth", "last_name": "Zulu", "birthdate": "15-06-2010",
                 "district": "Lusaka", "calhiv": "1"},
                {"unique_id": "V2", "name": "Daniel", "birthdate": "bad", "district": "Ndola", "calhiv": "0"},
            ],
            "services": services,
            "case_plans": [{"household_id": "H1", "case_plan_id": "CP1", "case_plan_date": "2024-01-10"}],
            "referrals": [{"household_id": "H1", "status": "pending", "referral_date": "2024-04-01"}],
            "flags": [{"record_id": "H1", "status": "open"}, {"record_id": "H2", "status": "resolved"}],
        },
        fetched_at=NOW,
    )
