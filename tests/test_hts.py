from datetime import datetime

import pytest

from casedash.components.hts import (
    HTS_EXPORT_COLUMNS,
    facility_linkage,
    hts_export_frame,
    hts_flags,
    hts_register,
    hts_summary,
    is_pending_result,
    search_tests,
)
from casedash.data.loader import frame_from_records

NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def tests_frame():
    return frame_from_records(
        [
            {"client_number": "T1", "hiv_result": "Positive", "art_date": "2024-06-01",
             "date_created": "2024-06-12", "health_facility": "Chipata Clinic",
             "caseworker_name": "Alice", "district": "Lusaka"},
            {"client_number": "T2", "hiv_result": "Reactive", "art_date": "",
             "date_created": "2024-03-01", "health_facility": "Chipata Clinic",
             "caseworker_name": "Alice", "district": "Lusaka"},
            {"client_number": "T3", "hiv_result": "Positive", "date_created": "14-06-2024",
             "health_facility": "", "caseworker_name": "Chanda", "district": "Ndola"},
            {"client_number": "T4", "hiv_result": "Non-Reactive", "date_created": "2024-06-14",
             "health_facility": "Ndola Central", "caseworker_name": "\u2014", "district": "Ndola"},
            {"client_number": "T5", "hiv_result": "Unknown", "district": "Ndola"},
            {"client_number": "T6", "hiv_result": "", "district": "Ndola"},
        ]
    )


def _ids(frame):
    return frame["client_number"].tolist()


def test_flags_per_test(tests_frame):
    flags = hts_flags(tests_frame, NOW)
    assert flags["positive"].tolist() == [True, True, True, False, False, False]
    assert flags["linked"].tolist() == [True, False, False, False, False, False]
    assert flags["pending"].tolist() == [False, False, False, False, True, True]


def test_unlinked_register_lists_positives_without_art_date(tests_frame):
    assert _ids(hts_register(tests_frame, "unlinked", NOW)) == ["T2", "T3"]


def test_pending_register_lists_blank_and_unknown_results(tests_frame):
    assert _ids(hts_register(tests_frame, "pending", NOW)) == ["T5", "T6"]


def test_new_register_keeps_recent_positives_only(tests_frame):
    # T4 is recent but non-reactive; T2 is positive but created in March
    assert _ids(hts_register(tests_frame, "new", NOW)) == ["T1", "T3"]


def test_all_register_returns_every_test(tests_frame):
    assert len(hts_register(tests_frame, "all", NOW)) == 6


def test_unknown_register_is_rejected(tests_frame):
    with pytest.raises(ValueError):
        hts_register(tests_frame, "linked", NOW)


@pytest.mark.parametrize("value", [None, "", "  ", "unknown", "UNKNOWN", "\u2014", "-"])
def test_pending_result_values(value):
    assert is_pending_result(value)


def test_recorded_result_is_not_pending():
    assert not is_pending_result("Negative")


def test_summary_counts(tests_frame):
    summary = hts_summary(tests_frame, NOW)
    assert summary.total == 6
    assert summary.positives == 3
    assert summary.unlinked == 2
    assert summary.pending == 2
    assert summary.new_positives == 2
    assert summary.active_workers == 2
    assert summary.positivity_rate == pytest.approx(50.0)


def test_summary_of_no_tests_is_zero():
    summary = hts_summary(frame_from_records([]), NOW)
    assert summary.to_dict() == {
        "total": 0,
        "positives": 0,
        "unlinked": 0,
        "pending": 0,
        "new_positives": 0,
        "active_workers": 0,
        "positivity_rate": 0.0,
    }


def test_facility_linkage_groups_positives(tests_frame):
    out = facility_linkage(tests_frame)
    assert out["health_facility"].tolist() == ["Chipata Clinic", "Unknown Facility"]
    assert out["positive"].tolist() == [2, 1]
    assert out["linked"].tolist() == [1, 0]


def test_search_matches_case_id_and_facility(tests_frame):
    assert _ids(search_tests(tests_frame, "t3")) == ["T3"]
    assert _ids(search_tests(tests_frame, "chipata")) == ["T1", "T2"]
    assert len(search_tests(tests_frame, "")) == 6


def test_export_frame_fills_missing_values(tests_frame):
    out = hts_export_frame(tests_frame.head(2))
    assert list(out.columns) == HTS_EXPORT_COLUMNS
    assert out["Case ID"].tolist() == ["T1", "T2"]
    assert out["ART Date"].tolist() == ["2024-06-01", "N/A"]
    assert out["Testing Modality"].tolist() == ["N/A", "N/A"]
