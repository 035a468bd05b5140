"""Shared fixtures for the AgencyHub webhook test suite.

- settings: Settings with known secrets and variant IDs (no env reads)
- plans: PlanTable built from those settings
- store: InMemoryStore seeded with one org and one pending invitation
- client: TestClient over create_app(settings, store)
"""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from agencyhub.app import create_app
from agencyhub.billing.plans import PlanTable
from agencyhub.config import Settings
from agencyhub.store import InMemoryStore, Organization, PendingInvitation

WORKOS_SECRET = "workos-test-secret"
LEMONSQUEEZY_SECRET = "lemonsqueezy-test-secret"
PRO_VARIANT = "111111"
BUSINESS_VARIANT = "222222"

ORG_ID = "org_internal_1"
WORKOS_ORG_ID = "org_01HWORKOS"
INVITATION_ID = "invitation_01HWORKOS"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        workos_webhook_secret=WORKOS_SECRET,
        lemonsqueezy_webhook_secret=LEMONSQUEEZY_SECRET,
        lemonsqueezy_variant_pro=PRO_VARIANT,
        lemonsqueezy_variant_business=BUSINESS_VARIANT,
    )


@pytest.fixture()
def plans(settings: Settings) -> PlanTable:
    return PlanTable.from_settings(settings)


@pytest.fixture()
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.add_org(Organization(id=ORG_ID, workos_org_id=WORKOS_ORG_ID, name="Acme Agency"))
    s.add_invitation(
        PendingInvitation(
            workos_invitation_id=INVITATION_ID,
            email="jane@example.com",
            role="staff",
            customer_id="cust_42",
        )
    )
    return s


@pytest.fixture()
def client(settings: Settings, store: InMemoryStore):
    app = create_app(settings, store)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture()
def invitation_body():
    """Factory for the raw JSON body of a WorkOS invitation.accepted event."""

    def _make(event: str = "invitation.accepted", **overrides) -> str:
        data = {
            "id": INVITATION_ID,
            "organization_id": WORKOS_ORG_ID,
            "accepted_user_id": "user_01HWORKOS",
            "first_name": "Jane",
            "last_name": "Doe",
            "email": "jane@example.com",
        }
        data.update(overrides)
        return json.dumps({"id": "event_01", "event": event, "data": data})

    return _make


@pytest.fixture()
def subscription_body():
    """Factory for the raw JSON body of a Lemon Squeezy subscription event."""

    def _make(
        event_name: str = "subscription_created",
        variant_id: int | str | None = int(PRO_VARIANT),
        org_id: str | None = ORG_ID,
        status: str = "active",
    ) -> str:
        return json.dumps(
            {
                "meta": {"event_name": event_name, "custom_data": {"org_id": org_id}},
                "data": {
                    "type": "subscriptions",
                    "id": "sub_9",
                    "attributes": {"variant_id": variant_id, "status": status},
                },
            }
        )

    return _make
