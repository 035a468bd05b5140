"""FastAPI application factory for the AgencyHub webhook service."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from agencyhub.billing.plans import PlanTable
from agencyhub.config import Settings, get_settings
from agencyhub.store import DataStore, InMemoryStore
from agencyhub.webhooks.handlers import register_webhook_routes

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Settings | None = None, store: DataStore | None = None) -> FastAPI:
    """Assemble configuration, plan table and store, then wire the routes.

    Args:
        settings: Defaults to environment settings
        store: Data layer implementing IdentityStore and BillingStore;
            defaults to an empty InMemoryStore
    """
    if settings is None:
        settings = get_settings()
    configure_logging(settings.log_level)

    plans = PlanTable.from_settings(settings)
    if store is None:
        logger.warning("No data store supplied; using in-memory store")
        store = InMemoryStore()

    app = FastAPI(title="AgencyHub Webhooks")
    app.state.settings = settings
    app.state.plans = plans
    app.state.store = store

    register_webhook_routes(app, settings, store, plans)

    @app.get("/health")
    async def health():
        return {"status": "ok", "plans": sorted(plan.name for plan in plans.values())}

    return app
