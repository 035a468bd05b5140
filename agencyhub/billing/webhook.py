"""Lemon Squeezy webhook dispatcher: subscription lifecycle -> plan limits.

Checkout passes our organization ID as ``custom_data.org_id``; every
subscription event echoes it back in ``meta.custom_data``. The event's
variant ID is translated through the PlanTable and the resulting limits
are written to the organization.

Handled events:
- subscription_created / subscription_updated: apply the variant's limits
- subscription_cancelled / subscription_expired: downgrade to the free tier

Everything else is acknowledged with 200 and ignored.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from agencyhub.billing.plans import FREE_TIER_LIMITS, PlanTable
from agencyhub.billing.signature import verify_signature
from agencyhub.store import BillingStore
from agencyhub.webhooks.events import validation_summary
from agencyhub.webhooks.result import WebhookResult

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-signature"

_ACTIVE_EVENTS = {"subscription_created", "subscription_updated"}
_ENDED_EVENTS = {"subscription_cancelled", "subscription_expired"}


class _CustomData(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    org_id: str = Field(min_length=1)


class _Meta(BaseModel):
    event_name: str
    custom_data: _CustomData


class _SubscriptionAttributes(BaseModel):
    variant_id: str | None = None
    status: str = "unknown"

    @field_validator("variant_id", mode="before")
    @classmethod
    def _variant_as_str(cls, value: Any) -> Any:
        # Lemon Squeezy sends variant IDs as integers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class _SubscriptionData(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = Field(min_length=1)
    attributes: _SubscriptionAttributes


class SubscriptionEvent(BaseModel):
    """Subscription webhook body (only the fields we use)."""

    meta: _Meta
    data: _SubscriptionData


def _event_name(payload: Any) -> str:
    if isinstance(payload, dict):
        meta = payload.get("meta")
        if isinstance(meta, dict) and isinstance(meta.get("event_name"), str):
            return meta["event_name"]
    return "unknown"


async def process_lemonsqueezy_webhook(
    body: str | bytes,
    signature: str | None,
    secret: str | None,
    store: BillingStore,
    plans: PlanTable,
) -> WebhookResult:
    """Process one Lemon Squeezy webhook delivery."""
    if not signature:
        return WebhookResult.bad_request("Missing X-Signature header")

    if not secret:
        logger.error("Lemon Squeezy webhook secret not configured; rejecting delivery")
        return WebhookResult.server_error("Webhook secret not configured")

    if not verify_signature(signature, body, secret):
        logger.warning("Lemon Squeezy webhook rejected: invalid signature")
        return WebhookResult.bad_request("Invalid signature")

    try:
        payload = json.loads(body)
    except (ValueError, RecursionError):
        logger.warning("Lemon Squeezy webhook JSON parse error", exc_info=True)
        return WebhookResult.bad_request("Invalid JSON payload")

    event_name = _event_name(payload)
    if event_name not in _ACTIVE_EVENTS | _ENDED_EVENTS:
        logger.info("Ignoring Lemon Squeezy event: %s", event_name)
        return WebhookResult.success(f"Ignored event: {event_name}", event=event_name)

    try:
        event = SubscriptionEvent.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Lemon Squeezy %s payload invalid: %s", event_name, validation_summary(exc))
        return WebhookResult.bad_request("Invalid subscription payload", event=event_name)

    org_id = event.meta.custom_data.org_id
    org = await store.get_org(org_id)
    if org is None:
        logger.error("Subscription %s references unknown org %s", event.data.id, org_id)
        return WebhookResult.server_error(f"Organization not found: {org_id}", event=event_name)

    variant_id = event.data.attributes.variant_id
    if event_name in _ENDED_EVENTS:
        limits = FREE_TIER_LIMITS
    else:
        limits = plans.limits_for(variant_id)

    await store.update_org_subscription(
        org_id,
        subscription_id=event.data.id,
        variant_id=variant_id,
        status=event.data.attributes.status,
        limits=limits,
    )

    logger.info(
        "Org %s subscription %s -> %s (%s)",
        org_id,
        event.data.id,
        limits.name,
        event.data.attributes.status,
    )
    return WebhookResult.success(f"Applied {limits.name} plan to org {org_id}", event=event_name)
