"""WorkOS webhook dispatcher: verify, decode, then sync accepted invitations.

Processing runs as a fixed sequence of guarded steps; the first failing
guard produces the result:

1. Signature header present                 (400)
2. Webhook secret configured                (500)
3. Signature valid                          (400)
4. Signature timestamp within tolerance     (400, when enabled)
5. Body is JSON                             (400)
6. Event type handled                       (200, ignored otherwise)
7. Invitation payload complete              (400)
8. Pending invitation exists                (200, already processed)
9. Organization exists                      (500)
10. Sync user, delete pending invitation    (200)

Security contract:
- Nothing touches the store until steps 1-7 pass
- Crypto and parse failures become results, never exceptions
- Store failures propagate so the HTTP layer answers 500 and WorkOS
  redelivers; redelivery of a completed event stops at step 8
"""

from __future__ import annotations

import json
import logging

from agencyhub.store import IdentityStore
from agencyhub.webhooks.events import (
    InvalidEventPayload,
    InvitationAccepted,
    decode_event,
)
from agencyhub.webhooks.result import WebhookResult
from agencyhub.webhooks.verification import is_timestamp_fresh, verify_webhook_signature

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "workos-signature"


async def process_workos_webhook(
    body: str | bytes,
    signature: str | None,
    secret: str | None,
    store: IdentityStore,
    *,
    tolerance_seconds: int | None = None,
) -> WebhookResult:
    """Process one WorkOS webhook delivery.

    Args:
        body: Raw request body, exactly as received
        signature: Value of the WorkOS-Signature header
        secret: Configured WorkOS webhook secret
        store: Data operations for invitations, orgs and users
        tolerance_seconds: Max signature age; None skips the replay check

    Returns:
        WebhookResult describing the terminal state
    """
    if not signature:
        return WebhookResult.bad_request("Missing workos-signature header")

    if not secret:
        logger.error("WorkOS webhook secret not configured; rejecting delivery")
        return WebhookResult.server_error("Webhook secret not configured")

    if not verify_webhook_signature(body, signature, secret):
        logger.warning("WorkOS webhook rejected: invalid signature")
        return WebhookResult.bad_request("Invalid signature")

    if tolerance_seconds is not None and not is_timestamp_fresh(signature, tolerance_seconds):
        return WebhookResult.bad_request("Signature timestamp outside tolerance")

    try:
        payload = json.loads(body)
    except (ValueError, RecursionError):
        logger.warning("WorkOS webhook JSON parse error", exc_info=True)
        return WebhookResult.bad_request("Invalid JSON payload")

    try:
        event = decode_event(payload)
    except InvalidEventPayload as exc:
        logger.warning("WorkOS %s payload invalid: %s", exc.event_type, exc.errors)
        return WebhookResult.bad_request("Invalid invitation payload", event=exc.event_type)

    if not isinstance(event, InvitationAccepted):
        logger.info("Ignoring WorkOS event: %s", event.event_type)
        return WebhookResult.success(f"Ignored event: {event.event_type}", event=event.event_type)

    return await _handle_invitation_accepted(event, store)


async def _handle_invitation_accepted(event: InvitationAccepted, store: IdentityStore) -> WebhookResult:
    data = event.data

    # Role and customer come from our own invitation record, not the payload
    pending = await store.get_pending_invitation(data.id)
    if pending is None:
        logger.info("No pending invitation for WorkOS ID %s; treating as processed", data.id)
        return WebhookResult.success(
            f"Pending invitation not found for WorkOS ID: {data.id}",
            event=event.event_type,
        )

    org = await store.get_org_by_workos_id(data.organization_id)
    if org is None:
        logger.error(
            "Invitation %s references unknown WorkOS org %s",
            data.id,
            data.organization_id,
        )
        return WebhookResult.server_error(
            f"Organization not found for WorkOS ID: {data.organization_id}",
            event=event.event_type,
        )

    user_id = await store.sync_user_from_invitation(
        workos_user_id=data.accepted_user_id,
        email=data.email,
        first_name=data.first_name,
        last_name=data.last_name,
        org_id=org.id,
        role=pending.role,
        customer_id=pending.customer_id,
    )

    await store.delete_pending_invitation(data.id)

    logger.info("Synced user %s into org %s from invitation %s", user_id, org.id, data.id)
    return WebhookResult.success(
        f"Successfully synced user {data.email}",
        event=event.event_type,
        user_id=user_id,
    )
