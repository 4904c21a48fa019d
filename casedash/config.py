"""
Application-wide configuration: dashboard tabs and the tunable engine settings
(candidate keys, domain fields, cohort key remaps and risk thresholds).
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

import streamlit as st

LOG = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CASEDASH_ENGINE_CONFIG"


class ConfigError(ValueError):
    """Raised when an engine configuration override cannot be applied."""


@dataclass(frozen=True)
class TabConfig:
    key: str
    label: str


# Ordered tab definitions for the dashboard
TABS: List[TabConfig] = [
    TabConfig("overview", "Cohort Overview"),
    TabConfig("domain_gaps", "Domain Gap Registers"),
    TabConfig("risk_register", "Risk Register"),
    TabConfig("service_audit", "Service Audit"),
    TabConfig("caseworkers", "Caseworker Register"),
    TabConfig("hts", "HTS Register"),
    TabConfig("data_quality", "Data Quality"),
]


@dataclass(frozen=True)
class FieldKeys:
    """Ordered candidate keys for every logical attribute read from a record."""

    household_id: Tuple[str, ...] = ("household_id", "hh_id", "householdId")
    person_id: Tuple[str, ...] = ("uid", "unique_id", "vca_id", "child_id", "id")
    service_owner_id: Tuple[str, ...] = (
        "vca_id", "vcaid", "child_id", "household_id", "hh_id", "uid", "unique_id",
    )
    case_plan_owner_id: Tuple[str, ...] = (
        "vca_id", "vcaid", "household_id", "hh_id", "uid", "unique_id",
    )
    referral_owner_id: Tuple[str, ...] = (
        "vca_id", "vcaid", "household_id", "hh_id", "uid", "unique_id",
    )
    flag_owner_id: Tuple[str, ...] = ("record_id", "household_id", "vca_id", "uid")
    district: Tuple[str, ...] = ("district",)
    name: Tuple[str, ...] = ("name", "full_name", "caregiver_name", "first_name")
    birthdate: Tuple[str, ...] = ("birthdate", "date_of_birth", "dob")
    service_date: Tuple[str, ...] = ("service_date", "visit_date", "date", "created_at")
    service_name: Tuple[str, ...] = ("service", "service_name", "form_name")
    caseworker: Tuple[str, ...] = (
        "caseworker_name", "caseworkerName", "cwac_member_name", "caseworker",
    )
    hiv_status: Tuple[str, ...] = (
        "is_hiv_positive", "hiv_status", "hiv_result", "caregiver_hiv_status", "vca_hiv_status",
    )
    last_vl_date: Tuple[str, ...] = ("date_of_last_viral_load", "last_vl_date", "vl_last_date")
    last_vl_result: Tuple[str, ...] = ("vl_last_result", "last_vl_result", "viral_load_result")
    out_of_school: Tuple[str, ...] = ("out_of_school", "is_out_of_school")
    case_plan_id: Tuple[str, ...] = ("case_plan_id", "unique_id", "id")
    service_case_plan_id: Tuple[str, ...] = ("case_plan_id", "caseplan_id")
    case_plan_date: Tuple[str, ...] = ("case_plan_date", "date_of_caseplan", "date")
    referral_status: Tuple[str, ...] = ("status", "referral_status")
    referral_date: Tuple[str, ...] = ("referral_date", "date_of_referral", "date", "created_at")
    flag_status: Tuple[str, ...] = ("status", "flag_status")
    hts_result: Tuple[str, ...] = ("hiv_result", "hiv_status")
    hts_case_id: Tuple[str, ...] = ("client_number", "ecap_id")
    art_number: Tuple[str, ...] = ("case_art_number",)
    art_date: Tuple[str, ...] = ("art_date", "art_date_initiated")
    testing_modality: Tuple[str, ...] = ("testing_modality",)
    health_facility: Tuple[str, ...] = ("health_facility",)
    hts_created: Tuple[str, ...] = ("date_created",)


@dataclass(frozen=True)
class RiskThresholds:
    vl_recency_months: int = 6
    service_window_days: int = 90
    referral_overdue_days: int = 30
    vl_unsuppressed_copies: float = 1000.0
    hts_new_positive_days: int = 7


DEFAULT_DOMAIN_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("health", "health_services"),
    ("schooled", "schooled_services"),
    ("safe", "safe_services"),
    ("stable", "stable_services"),
)

DEFAULT_COHORT_LABELS: Tuple[Tuple[str, str], ...] = (
    ("calhiv", "CALHIV"),
    ("hei", "HEI"),
    ("cwlhiv", "CWLHIV"),
    ("agyw", "AGYW"),
    ("csv", "C/SV"),
    ("cfsw", "CFSW"),
    ("abym", "ABYM"),
    ("caahh", "CAAHH"),
    ("caichh", "CAICHH"),
    ("caich", "CAICH"),
    ("calwd", "CALWD"),
    ("caifhh", "CAIFHH"),
    ("muc", "MUC"),
    ("pbfw", "PBFW"),
)

DEFAULT_COHORT_KEY_MAP: Tuple[Tuple[str, str], ...] = (
    ("caahh", "child_adolescent_in_aged_headed_household"),
    ("caichh", "child_adolescent_in_chronically_ill_headed_household"),
    ("caich", "child_adolescent_in_child_headed_household"),
    ("calwd", "child_adolescent_living_with_disability"),
    ("caifhh", "child_adolescent_in_female_headed_household"),
    ("muc", "under_5_malnourished"),
    ("pbfw", "pbfw"),
)

NOT_APPLICABLE_VALUES: Tuple[str, ...] = (
    "not applicable", "n/a", "na", "none", "no", "false", "0", "[]", "{}",
)


@dataclass(frozen=True)
class EngineConfig:
    keys: FieldKeys = field(default_factory=FieldKeys)
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)
    domain_fields: Tuple[Tuple[str, str], ...] = DEFAULT_DOMAIN_FIELDS
    cohort_labels: Tuple[Tuple[str, str], ...] = DEFAULT_COHORT_LABELS
    cohort_key_map: Tuple[Tuple[str, str], ...] = DEFAULT_COHORT_KEY_MAP
    not_applicable: Tuple[str, ...] = NOT_APPLICABLE_VALUES
    # "strict": only an explicit falsy flag passes "no"; "lenient": anything not truthy passes
    cohort_no_mode: str = "strict"
    audit_page_size: int = 20

    @property
    def domains(self) -> List[str]:
        return [name for name, _ in self.domain_fields]

    def domain_field(self, domain: str) -> str:
        return dict(self.domain_fields)[domain]

    def key_map(self) -> Dict[str, str]:
        return dict(self.cohort_key_map)

    def cohort_keys(self) -> List[str]:
        return [key for key, _ in self.cohort_labels]


DEFAULT_CONFIG = EngineConfig()


def _as_pairs(name: str, value: Any) -> Tuple[Tuple[str, str], ...]:
    if isinstance(value, Mapping):
        return tuple((str(k), str(v)) for k, v in value.items())
    if isinstance(value, (list, tuple)):
        try:
            return tuple((str(k), str(v)) for k, v in value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{name}: expected a mapping or list of pairs") from exc
    raise ConfigError(f"{name}: expected a mapping or list of pairs, got {type(value).__name__}")


def _as_str_tuple(name: str, value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    raise ConfigError(f"{name}: expected a list of strings, got {type(value).__name__}")


def _merge_domain_fields(
    base: Tuple[Tuple[str, str], ...],
    overrides: Tuple[Tuple[str, str], ...],
) -> Tuple[Tuple[str, str], ...]:
    """Rename domain storage columns; the set of domains itself is fixed."""
    columns = dict(base)
    for domain, column in overrides:
        if domain not in columns:
            raise ConfigError(f"domain_fields: unknown domain {domain!r}")
        columns[domain] = column
    return tuple((domain, columns[domain]) for domain, _ in base)


def _merge_dataclass(instance, name: str, overrides: Mapping[str, Any], coerce):
    known = {f.name for f in fields(instance)}
    changes = {}
    for key, value in overrides.items():
        if key not in known:
            raise ConfigError(f"unknown {name} setting: {key}")
        changes[key] = coerce(f"{name}.{key}", value)
    return replace(instance, **changes)


def _coerce_threshold(name: str, value: Any):
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name}: expected a number, got {value!r}") from exc
    if number < 0:
        raise ConfigError(f"{name}: must not be negative")
    if name.endswith("_copies"):
        return number
    return int(number)


def apply_overrides(base: EngineConfig, overrides: Mapping[str, Any]) -> EngineConfig:
    """Return ``base`` with the values from an override document applied."""
    changes: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key == "keys":
            if not isinstance(value, Mapping):
                raise ConfigError("keys: expected a mapping of logical field -> candidate keys")
            changes["keys"] = _merge_dataclass(base.keys, "keys", value, _as_str_tuple)
        elif key == "thresholds":
            if not isinstance(value, Mapping):
                raise ConfigError("thresholds: expected a mapping")
            changes["thresholds"] = _merge_dataclass(base.thresholds, "thresholds", value, _coerce_threshold)
        elif key == "domain_fields":
            changes[key] = _merge_domain_fields(base.domain_fields, _as_pairs(key, value))
        elif key in ("cohort_labels", "cohort_key_map"):
            changes[key] = _as_pairs(key, value)
        elif key == "not_applicable":
            changes[key] = tuple(v.strip().lower() for v in _as_str_tuple(key, value))
        elif key == "cohort_no_mode":
            if value not in ("strict", "lenient"):
                raise ConfigError("cohort_no_mode: expected 'strict' or 'lenient'")
            changes[key] = value
        elif key == "audit_page_size":
            size = int(_coerce_threshold(key, value))
            if size < 1:
                raise ConfigError("audit_page_size: must be at least 1")
            changes[key] = size
        else:
            raise ConfigError(f"unknown engine setting: {key}")
    return replace(base, **changes)


def get_secret(name: str, default: Optional[str] = None) -> Optional[str]:
    """Try env first, then st.secrets (if available)."""
    val = os.getenv(name)
    if val:
        return val
    try:
        sec = getattr(st, "secrets", None)
        if sec:
            v = sec.get(name)  # type: ignore[index]
            if isinstance(v, Mapping):
                return json.dumps(dict(v))
            return str(v) if v is not None else default
    except Exception:
        # st.secrets raises when no secrets file exists outside the Streamlit runtime
        pass
    return default


def _read_override_document(raw: str) -> Dict[str, Any]:
    text = raw.strip()
    if not text.startswith("{"):
        if not os.path.exists(text):
            raise ConfigError(f"{CONFIG_ENV_VAR} points to a missing file: {text}")
        with open(text, "r", encoding="utf-8") as f:
            text = f.read()
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{CONFIG_ENV_VAR} is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise ConfigError(f"{CONFIG_ENV_VAR} must hold a JSON object")
    return document


def load_engine_config(overrides: Optional[Mapping[str, Any]] = None) -> EngineConfig:
    """Resolve the engine configuration.

    Order: built-in defaults, then the ``CASEDASH_ENGINE_CONFIG`` document (inline
    JSON or a path, from env or secrets), then explicit ``overrides``.
    """
    config = DEFAULT_CONFIG
    raw = get_secret(CONFIG_ENV_VAR)
    if raw:
        config = apply_overrides(config, _read_override_document(raw))
        LOG.info("Applied engine configuration overrides from %s", CONFIG_ENV_VAR)
    if overrides:
        config = apply_overrides(config, overrides)
    return config
