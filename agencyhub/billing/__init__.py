"""Lemon Squeezy billing: plan tiers, signature checks, subscription webhooks."""

from agencyhub.billing.plans import (
    FREE_TIER_LIMITS,
    PlanLimits,
    PlanTable,
    get_limits_for_variant,
    get_plan_name,
)
from agencyhub.billing.signature import verify_signature

__all__ = [
    "FREE_TIER_LIMITS",
    "PlanLimits",
    "PlanTable",
    "get_limits_for_variant",
    "get_plan_name",
    "verify_signature",
]
