"""
Case-plan to service-event linkage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence

from casedash.config import DEFAULT_CONFIG, EngineConfig
from casedash.data.dates import parse_flexible_date, to_epoch_seconds
from casedash.data.fields import resolve, resolve_id

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkedServices:
    services: List[Mapping[str, Any]]
    # True when no service referenced the plan and every service of the entity is shown instead
    is_fallback: bool


def link_services(
    plan: Mapping[str, Any],
    services: Sequence[Mapping[str, Any]],
    config: EngineConfig = DEFAULT_CONFIG,
) -> LinkedServices:
    """Services recorded against ``plan``, falling back to all of the entity's services."""
    plan_id = resolve_id(plan, config.keys.case_plan_id)
    linked = []
    if plan_id is not None:
        linked = [
            s for s in services
            if resolve_id(s, config.keys.service_case_plan_id) == plan_id
        ]
    if linked or not services:
        return LinkedServices(services=linked, is_fallback=False)

    LOG.info(
        "Case plan %s has no linked services; showing all %d services of the entity",
        plan_id or "N/A",
        len(services),
    )
    return LinkedServices(services=list(services), is_fallback=True)


def sort_case_plans(
    plans: Sequence[Mapping[str, Any]],
    config: EngineConfig = DEFAULT_CONFIG,
) -> List[Mapping[str, Any]]:
    """Newest plan first; undated plans last, after pre-1970 ones too."""

    def sort_key(plan):
        raw = resolve(plan, config.keys.case_plan_date, None)
        return parse_flexible_date(raw) is not None, to_epoch_seconds(raw)

    return sorted(plans, key=sort_key, reverse=True)
