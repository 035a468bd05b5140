"""Lemon Squeezy plan tiers and their resource limits.

A subscription's variant ID is the only thing stored per organization;
this module turns it into the limits that get enforced. Lookups never
fail: an absent or unrecognized variant always resolves to the free tier.

Tiers:
- Free: no subscription, 3 customers / 2 staff / 10 clients
- Pro: small agencies, 25 / 10 / 100
- Business: growing agencies, 100 / 50 / 500
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from agencyhub.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanLimits:
    """Resource limits granted by a plan tier."""

    name: str
    max_customers: int
    max_staff: int
    max_clients: int

    def to_dict(self) -> dict[str, int | str]:
        return {
            "name": self.name,
            "maxCustomers": self.max_customers,
            "maxStaff": self.max_staff,
            "maxClients": self.max_clients,
        }


FREE_TIER_LIMITS = PlanLimits(name="Free", max_customers=3, max_staff=2, max_clients=10)

PRO_LIMITS = PlanLimits(name="Pro", max_customers=25, max_staff=10, max_clients=100)

BUSINESS_LIMITS = PlanLimits(name="Business", max_customers=100, max_staff=50, max_clients=500)


class PlanTable(Mapping[str, PlanLimits]):
    """Immutable variant ID -> PlanLimits mapping.

    Built once during startup and injected wherever limits are needed.
    Later entries win when two tiers are configured with the same variant.
    """

    def __init__(self, entries: Iterable[tuple[str, PlanLimits]] = ()) -> None:
        table: dict[str, PlanLimits] = {}
        for variant_id, limits in entries:
            if not variant_id:
                continue
            if variant_id in table:
                logger.warning(
                    "Variant %s configured for both %s and %s; using %s",
                    variant_id,
                    table[variant_id].name,
                    limits.name,
                    limits.name,
                )
            table[variant_id] = limits
        self._table = MappingProxyType(table)

    @classmethod
    def from_settings(cls, settings: Settings) -> PlanTable:
        """Build the table from configured Lemon Squeezy variant IDs.

        Blank variant IDs are skipped, so an unconfigured tier is simply
        unreachable and its subscribers fall back to the free tier.
        """
        return cls(
            [
                (settings.lemonsqueezy_variant_pro.strip(), PRO_LIMITS),
                (settings.lemonsqueezy_variant_business.strip(), BUSINESS_LIMITS),
            ]
        )

    def __getitem__(self, variant_id: str) -> PlanLimits:
        return self._table[variant_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"PlanTable({dict(self._table)!r})"

    def limits_for(self, variant_id: str | None) -> PlanLimits:
        if not variant_id:
            return FREE_TIER_LIMITS
        return self._table.get(str(variant_id), FREE_TIER_LIMITS)


_default_table: PlanTable | None = None


def get_default_table() -> PlanTable:
    """Table built from process settings (lazily, once)."""
    global _default_table
    if _default_table is None:
        _default_table = PlanTable.from_settings(get_settings())
    return _default_table


def get_limits_for_variant(variant_id: str | None, table: PlanTable | None = None) -> PlanLimits:
    """Get plan limits for a Lemon Squeezy variant ID.

    Args:
        variant_id: Variant ID from subscription data (may be None)
        table: Plan table to consult; defaults to the process table

    Returns:
        Registered limits, or FREE_TIER_LIMITS for absent/unknown variants
    """
    if table is None:
        table = get_default_table()
    return table.limits_for(variant_id)


def get_plan_name(variant_id: str | None, table: PlanTable | None = None) -> str:
    """Get display name for a plan variant ("Free", "Pro" or "Business")."""
    return get_limits_for_variant(variant_id, table).name
