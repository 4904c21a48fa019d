"""
Record Store access: fetches the read-only record arrays (one worksheet per
record kind) into an immutable snapshot.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import gspread
import pandas as pd
import streamlit as st
from google.oauth2.service_account import Credentials

from casedash.config import get_secret

LOG = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets.readonly",
    "https://www.googleapis.com/auth/drive.readonly",
]

RECORD_KINDS: Tuple[str, ...] = (
    "households",
    "persons",
    "services",
    "case_plans",
    "referrals",
    "flags",
    "hts",
)

DEFAULT_SHEET_NAMES: Dict[str, str] = {
    "households": "Households",
    "persons": "VCAs",
    "services": "Services",
    "case_plans": "CasePlans",
    "referrals": "Referrals",
    "flags": "Flags",
    "hts": "HTS",
}


class RecordStoreError(RuntimeError):
    """The record store could not be reached or returned an unusable response."""


@dataclass(frozen=True)
class RecordSnapshot:
    households: pd.DataFrame = field(default_factory=pd.DataFrame)
    persons: pd.DataFrame = field(default_factory=pd.DataFrame)
    services: pd.DataFrame = field(default_factory=pd.DataFrame)
    case_plans: pd.DataFrame = field(default_factory=pd.DataFrame)
    referrals: pd.DataFrame = field(default_factory=pd.DataFrame)
    flags: pd.DataFrame = field(default_factory=pd.DataFrame)
    hts: pd.DataFrame = field(default_factory=pd.DataFrame)
    fetched_at: Optional[datetime] = None

    def frame(self, kind: str) -> pd.DataFrame:
        if kind not in RECORD_KINDS:
            raise KeyError(kind)
        return getattr(self, kind)

    @property
    def is_empty(self) -> bool:
        return all(self.frame(kind).empty for kind in RECORD_KINDS)

    def diagnostics(self) -> Dict[str, Any]:
        return {
            **{f"{kind}_rows": int(len(self.frame(kind))) for kind in RECORD_KINDS},
            "fetched_at": self.fetched_at.isoformat() if self.fetched_at else None,
        }


def frame_from_records(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Build a frame from raw records; values are kept exactly as received."""
    rows = [dict(r) for r in records if r is not None]
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows, dtype=object)


def snapshot_from_records(
    records: Mapping[str, Iterable[Mapping[str, Any]]],
    fetched_at: Optional[datetime] = None,
) -> RecordSnapshot:
    unknown = set(records) - set(RECORD_KINDS)
    if unknown:
        raise ValueError(f"unknown record kinds: {sorted(unknown)}")
    frames = {kind: frame_from_records(records.get(kind, ())) for kind in RECORD_KINDS}
    return RecordSnapshot(fetched_at=fetched_at or datetime.now(), **frames)


class SnapshotHolder:
    """Keeps the latest completed snapshot.

    Every fetch takes a token from :meth:`begin_fetch`. Completing a fetch whose
    token has since been superseded discards its result, so a slow stale fetch
    can never replace or merge into a newer snapshot.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest_token = 0
        self._snapshot: Optional[RecordSnapshot] = None

    def begin_fetch(self) -> int:
        with self._lock:
            self._latest_token += 1
            return self._latest_token

    def complete(self, token: int, snapshot: RecordSnapshot) -> bool:
        with self._lock:
            if token != self._latest_token:
                LOG.info("Discarding stale snapshot from fetch %d (latest is %d)", token, self._latest_token)
                return False
            self._snapshot = snapshot
            return True

    @property
    def snapshot(self) -> Optional[RecordSnapshot]:
        return self._snapshot


def _repair_json_private_key(text: str) -> str:
    """If JSON text contains an unescaped multi-line private_key, escape newlines.
    This fixes the common case when TOML triple-quoted strings preserve newlines.
    """
    pattern = r'"private_key"\s*:\s*"(.*?)"'

    def _repl(m: re.Match[str]) -> str:
        val = m.group(1)
        val = val.replace("\r\n", "\\n").replace("\n", "\\n")
        return f'"private_key": "{val}"'

    return re.sub(pattern, _repl, text, flags=re.DOTALL)


def _materialize_creds_if_inline(path_or_json: str) -> str:
    """If GOOGLE_APPLICATION_CREDENTIALS is JSON content, write to /tmp and return the path."""
    if os.path.exists(path_or_json):
        return path_or_json
    text = path_or_json.strip()
    if text.startswith("{") and text.endswith("}"):
        content = text
        try:
            json.loads(content)
        except json.JSONDecodeError:
            repaired = _repair_json_private_key(content)
            try:
                json.loads(repaired)
                content = repaired
            except json.JSONDecodeError:
                LOG.warning("Inline service account JSON could not be parsed; writing it unchanged")
        tmp_path = "/tmp/google-credentials.json"
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
        return tmp_path
    return path_or_json


def sheet_names() -> Dict[str, str]:
    """Worksheet name per record kind; ``SHEET_<KIND>`` overrides the default."""
    return {
        kind: get_secret(f"SHEET_{kind.upper()}", DEFAULT_SHEET_NAMES[kind]) or DEFAULT_SHEET_NAMES[kind]
        for kind in RECORD_KINDS
    }


def load_snapshot() -> RecordSnapshot:
    """Wrapper that resolves Record Store settings and calls the cached implementation."""
    spreadsheet_id = get_secret("SPREADSHEET_ID")
    if not spreadsheet_id:
        raise RecordStoreError("SPREADSHEET_ID is not configured (env or secrets)")

    service_account_raw = get_secret("GOOGLE_APPLICATION_CREDENTIALS", "google-credentials.json")
    service_account_file = _materialize_creds_if_inline(service_account_raw)
    if not os.path.exists(service_account_file):
        raise RecordStoreError(f"Service account file not found: {service_account_file}")

    names = sheet_names()
    return _load_snapshot_impl(spreadsheet_id, tuple(names[k] for k in RECORD_KINDS), service_account_file)


def _fetch_records(ss, sheet_name: str) -> List[Dict[str, Any]]:
    try:
        ws = ss.worksheet(sheet_name)
    except gspread.WorksheetNotFound:
        LOG.warning("Worksheet %s not found; treating it as empty", sheet_name)
        return []
    return ws.get_all_records()


@st.cache_data(show_spinner=False, ttl=600)
def _load_snapshot_impl(
    spreadsheet_id: str,
    worksheet_names: Tuple[str, ...],
    service_account_file: str,
) -> RecordSnapshot:
    """Fetch every record kind and return one snapshot.
    Cached by spreadsheet_id, worksheet_names and service_account_file.
    """
    try:
        credentials = Credentials.from_service_account_file(service_account_file, scopes=SCOPES)
        client = gspread.authorize(credentials)
        ss = client.open_by_key(spreadsheet_id)
        records = {
            kind: _fetch_records(ss, name) for kind, name in zip(RECORD_KINDS, worksheet_names)
        }
    except (gspread.exceptions.APIError, gspread.SpreadsheetNotFound, OSError, ValueError) as exc:
        raise RecordStoreError(f"Record store fetch failed: {exc}") from exc

    snapshot = snapshot_from_records(records)
    LOG.info("Fetched record snapshot: %s", snapshot.diagnostics())
    return snapshot


def clear_cache() -> None:
    _load_snapshot_impl.clear()  # type: ignore[attr-defined]
