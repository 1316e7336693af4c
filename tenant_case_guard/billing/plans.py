"""
Plan definitions and plan resolution.

The plan decides the enforcement mode: pro users get advisor mode, everyone
else guided mode. Unknown plan identifiers are rejected rather than defaulted,
because a silently defaulted plan changes a policy decision.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from tenant_case_guard.constants import ACTIVE_SUBSCRIPTION_STATUSES
from tenant_case_guard.domain.errors import InvalidPolicyInput
from tenant_case_guard.models.enforcement import PlanId, PlanMode

logger = logging.getLogger(__name__)

UNLIMITED = 2**53 - 1


@dataclass(frozen=True)
class PlanDefinition:
    plan_id: PlanId
    plan_name: str
    issues: int
    evidence_files: int
    evidence_packs_per_month: int
    max_file_size_mb: int


PLAN_DEFINITIONS: dict[PlanId, PlanDefinition] = {
    PlanId.FREE: PlanDefinition(PlanId.FREE, "Free", 3, 10, 1, 10),
    PlanId.PLUS: PlanDefinition(PlanId.PLUS, "Plus", 20, 200, 10, 25),
    PlanId.PRO: PlanDefinition(PlanId.PRO, "Pro", UNLIMITED, UNLIMITED, UNLIMITED, 50),
}

PLAN_MODES: dict[PlanId, PlanMode] = {
    PlanId.FREE: PlanMode.GUIDED,
    PlanId.PLUS: PlanMode.GUIDED,
    PlanId.PRO: PlanMode.ADVISOR,
}


def parse_plan_id(value: PlanId | str) -> PlanId:
    """Strictly parse a plan identifier."""
    try:
        return PlanId(value)
    except ValueError as e:
        raise InvalidPolicyInput(f"Unknown plan id: {value!r}") from e


def plan_mode_for(plan_id: PlanId | str) -> PlanMode:
    return PLAN_MODES[parse_plan_id(plan_id)]


def get_plan_definition(plan_id: PlanId | str) -> PlanDefinition:
    return PLAN_DEFINITIONS[parse_plan_id(plan_id)]


def get_plan_from_price_id(price_id: str | None, price_to_plan: Mapping[str, str]) -> PlanId:
    """Plan for a billing price id. Unrecognised or missing prices are the free plan."""
    if not price_id:
        return PlanId.FREE
    plan = price_to_plan.get(price_id)
    if plan is None:
        logger.warning(f"Unrecognised price id {price_id!r}, resolving to free plan")
        return PlanId.FREE
    return parse_plan_id(plan)


def is_owner_email(email: str | None, owner_email: str | None) -> bool:
    if not email or not owner_email:
        return False
    return email.strip().lower() == owner_email.strip().lower()


def resolve_plan_id(
    subscription: Mapping[str, Any] | None,
    price_to_plan: Mapping[str, str],
    email: str | None = None,
    owner_email: str | None = None,
) -> PlanId:
    """Resolve a user's plan.

    Resolution order:
    1. Owner email -> pro
    2. Active or trialing subscription -> plan for its price id
    3. Otherwise -> free
    """
    if is_owner_email(email, owner_email):
        return PlanId.PRO
    if not subscription:
        return PlanId.FREE
    if (subscription.get("status") or "") not in ACTIVE_SUBSCRIPTION_STATUSES:
        return PlanId.FREE
    return get_plan_from_price_id(subscription.get("price_id"), price_to_plan)
