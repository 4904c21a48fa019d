"""
Utility helpers for formatting counts, rates and dates for display.
"""

from __future__ import annotations

from typing import Optional


def format_number(value: Optional[float], decimals: int = 0) -> str:
    if value is None:
        return "–"
    try:
        return f"{value:,.{decimals}f}"
    except (TypeError, ValueError):
        return "–"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    if value is None:
        return "–"
    try:
        return f"{value:.{decimals}f}%"
    except (TypeError, ValueError):
        return "–"
