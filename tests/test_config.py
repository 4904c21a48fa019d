import json

import pytest

from casedash.config import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG,
    ConfigError,
    apply_overrides,
    load_engine_config,
)


@pytest.fixture(autouse=True)
def _no_env_config(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


def test_defaults():
    assert DEFAULT_CONFIG.domains == ["health", "schooled", "safe", "stable"]
    assert DEFAULT_CONFIG.thresholds.vl_recency_months == 6
    assert DEFAULT_CONFIG.thresholds.service_window_days == 90
    assert DEFAULT_CONFIG.thresholds.referral_overdue_days == 30
    assert DEFAULT_CONFIG.key_map()["muc"] == "under_5_malnourished"
    assert len(DEFAULT_CONFIG.cohort_keys()) == 14
    assert DEFAULT_CONFIG.audit_page_size == 20


def test_threshold_overrides_are_coerced():
    config = apply_overrides(DEFAULT_CONFIG, {"thresholds": {"service_window_days": "45", "vl_unsuppressed_copies": 200}})
    assert config.thresholds.service_window_days == 45
    assert config.thresholds.vl_unsuppressed_copies == 200.0
    assert DEFAULT_CONFIG.thresholds.service_window_days == 90


def test_key_overrides_accept_a_single_string():
    config = apply_overrides(DEFAULT_CONFIG, {"keys": {"household_id": "hh"}})
    assert config.keys.household_id == ("hh",)
    assert config.keys.person_id == DEFAULT_CONFIG.keys.person_id


def test_not_applicable_vocabulary_is_normalised():
    config = apply_overrides(DEFAULT_CONFIG, {"not_applicable": [" None ", "NIL"]})
    assert config.not_applicable == ("none", "nil")


@pytest.mark.parametrize(
    "overrides",
    [
        {"colour": "blue"},
        {"thresholds": {"service_window_days": -1}},
        {"thresholds": {"unknown_days": 3}},
        {"thresholds": 5},
        {"keys": {"nope": ["x"]}},
        {"cohort_no_mode": "sometimes"},
        {"audit_page_size": 0},
        {"domain_fields": 3},
        {"domain_fields": {"wellbeing": "wb"}},
    ],
)
def test_invalid_overrides_raise(overrides):
    with pytest.raises(ConfigError):
        apply_overrides(DEFAULT_CONFIG, overrides)


def test_load_without_document_returns_defaults():
    assert load_engine_config() == DEFAULT_CONFIG


def test_load_inline_document(monkeypatch):
    monkeypatch.setenv(CONFIG_ENV_VAR, json.dumps({"cohort_no_mode": "lenient"}))
    config = load_engine_config({"audit_page_size": 50})
    assert config.cohort_no_mode == "lenient"
    assert config.audit_page_size == 50


def test_load_document_from_file(monkeypatch, tmp_path):
    path = tmp_path / "engine.json"
    path.write_text(json.dumps({"domain_fields": {"health": "hs", "safe": "ss"}}), encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
    config = load_engine_config()
    assert config.domains == ["health", "schooled", "safe", "stable"]
    assert config.domain_field("health") == "hs"
    assert config.domain_field("safe") == "ss"
    assert config.domain_field("schooled") == "schooled_services"


def test_domain_field_override_keeps_all_four_domains():
    config = apply_overrides(DEFAULT_CONFIG, {"domain_fields": {"health": "hs"}})
    assert config.domains == DEFAULT_CONFIG.domains
    assert dict(config.domain_fields)["health"] == "hs"
    assert dict(config.domain_fields)["stable"] == "stable_services"


@pytest.mark.parametrize("raw", ["{not json", "/does/not/exist.json", "[1, 2]"])
def test_bad_documents_raise(monkeypatch, raw):
    monkeypatch.setenv(CONFIG_ENV_VAR, raw)
    with pytest.raises(ConfigError):
        load_engine_config()
