"""Webhook HTTP handlers: FastAPI routes for inbound provider webhooks.

Each handler:
1. Reads the raw body (needed for HMAC verification)
2. Hands body, signature header and secret to the provider's dispatcher
3. Returns the dispatcher's WebhookResult as JSON with its status code

Security contract:
- Unexpected errors return a generic 500 with no details
- Every delivery is audit-logged
"""

from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agencyhub.billing.plans import PlanTable
from agencyhub.billing.webhook import SIGNATURE_HEADER as LEMONSQUEEZY_SIGNATURE_HEADER
from agencyhub.billing.webhook import process_lemonsqueezy_webhook
from agencyhub.config import Settings
from agencyhub.store import DataStore
from agencyhub.webhooks.dispatcher import SIGNATURE_HEADER as WORKOS_SIGNATURE_HEADER
from agencyhub.webhooks.dispatcher import process_workos_webhook
from agencyhub.webhooks.result import WebhookResult

logger = logging.getLogger(__name__)


def _log_webhook(provider: str, result: WebhookResult, elapsed_ms: float) -> None:
    """Audit log for webhook activity."""
    logger.info(
        "WEBHOOK_AUDIT provider=%s event=%s status=%d ok=%s elapsed_ms=%.1f message=%r",
        provider,
        result.event or "unknown",
        result.status,
        result.ok,
        elapsed_ms,
        result.message,
    )


async def _run(provider: str, process: Callable[[], Awaitable[WebhookResult]]) -> JSONResponse:
    start = time.time()
    try:
        result = await process()
    except Exception:
        logger.exception("Unhandled error processing %s webhook", provider)
        result = WebhookResult.server_error("Internal error")

    _log_webhook(provider, result, (time.time() - start) * 1000)
    return JSONResponse(result.to_dict(), status_code=result.status)


def register_webhook_routes(
    app: FastAPI,
    settings: Settings,
    store: DataStore,
    plans: PlanTable,
) -> None:
    """Register webhook endpoint routes on the FastAPI app."""

    @app.post("/webhooks/workos")
    async def workos_webhook(request: Request):
        """Receive WorkOS webhooks (signature-verified)."""
        body = await request.body()
        signature = request.headers.get(WORKOS_SIGNATURE_HEADER)
        return await _run(
            "workos",
            lambda: process_workos_webhook(
                body,
                signature,
                settings.workos_webhook_secret,
                store,
                tolerance_seconds=settings.replay_tolerance,
            ),
        )

    @app.post("/webhooks/lemonsqueezy")
    async def lemonsqueezy_webhook(request: Request):
        """Receive Lemon Squeezy webhooks (signature-verified)."""
        body = await request.body()
        signature = request.headers.get(LEMONSQUEEZY_SIGNATURE_HEADER)
        return await _run(
            "lemonsqueezy",
            lambda: process_lemonsqueezy_webhook(
                body,
                signature,
                settings.lemonsqueezy_webhook_secret,
                store,
                plans,
            ),
        )

    logger.info("Webhook routes registered: /webhooks/{workos,lemonsqueezy}")
