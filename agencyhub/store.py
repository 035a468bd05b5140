"""Organization / user / invitation data operations used by the webhooks.

The real persistence layer lives outside this package. Dispatchers only
depend on the async protocols below; InMemoryStore implements both and
backs the tests and local runs.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable

from agencyhub.billing.plans import FREE_TIER_LIMITS, PlanLimits

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for data-layer failures."""


class OrganizationNotFoundError(StoreError):
    """Raised when a write references an organization that does not exist."""

    def __init__(self, org_id: str):
        self.org_id = org_id
        super().__init__(f"Organization not found: {org_id}")


@dataclass(frozen=True)
class PendingInvitation:
    """Invitation sent through WorkOS, awaiting acceptance."""

    workos_invitation_id: str
    email: str
    role: str
    customer_id: str | None = None


@dataclass(frozen=True)
class Organization:
    id: str
    workos_org_id: str
    name: str = ""
    subscription_id: str | None = None
    subscription_status: str | None = None
    variant_id: str | None = None
    plan_name: str = FREE_TIER_LIMITS.name
    max_customers: int = FREE_TIER_LIMITS.max_customers
    max_staff: int = FREE_TIER_LIMITS.max_staff
    max_clients: int = FREE_TIER_LIMITS.max_clients


@dataclass(frozen=True)
class User:
    id: str
    workos_user_id: str
    email: str
    org_id: str
    role: str
    first_name: str | None = None
    last_name: str | None = None
    customer_id: str | None = None


@runtime_checkable
class IdentityStore(Protocol):
    """Data operations needed by the WorkOS webhook."""

    async def get_pending_invitation(self, workos_invitation_id: str) -> PendingInvitation | None:
        """Pending invitation by WorkOS invitation ID, or None."""
        ...

    async def get_org_by_workos_id(self, workos_org_id: str) -> Organization | None:
        """Organization by WorkOS organization ID, or None."""
        ...

    async def sync_user_from_invitation(
        self,
        *,
        workos_user_id: str,
        email: str,
        first_name: str | None,
        last_name: str | None,
        org_id: str,
        role: str,
        customer_id: str | None,
    ) -> str:
        """Create or update the user for an accepted invitation. Returns user ID."""
        ...

    async def delete_pending_invitation(self, workos_invitation_id: str) -> None:
        """Remove the pending invitation (no-op if already gone)."""
        ...


@runtime_checkable
class BillingStore(Protocol):
    """Data operations needed by the Lemon Squeezy webhook."""

    async def get_org(self, org_id: str) -> Organization | None:
        """Organization by internal ID, or None."""
        ...

    async def update_org_subscription(
        self,
        org_id: str,
        *,
        subscription_id: str,
        variant_id: str | None,
        status: str,
        limits: PlanLimits,
    ) -> None:
        """Record subscription state and the limits it grants."""
        ...


@runtime_checkable
class DataStore(IdentityStore, BillingStore, Protocol):
    """Everything the webhook routes need from the data layer."""


class InMemoryStore:
    """Dict-backed store implementing IdentityStore and BillingStore."""

    def __init__(self) -> None:
        self.invitations: dict[str, PendingInvitation] = {}
        self.orgs: dict[str, Organization] = {}
        self.users: dict[str, User] = {}

    # -- seeding -----------------------------------------------------------

    def add_org(self, org: Organization) -> Organization:
        self.orgs[org.id] = org
        return org

    def add_invitation(self, invitation: PendingInvitation) -> PendingInvitation:
        self.invitations[invitation.workos_invitation_id] = invitation
        return invitation

    def user_by_workos_id(self, workos_user_id: str) -> User | None:
        for user in self.users.values():
            if user.workos_user_id == workos_user_id:
                return user
        return None

    # -- IdentityStore -----------------------------------------------------

    async def get_pending_invitation(self, workos_invitation_id: str) -> PendingInvitation | None:
        return self.invitations.get(workos_invitation_id)

    async def get_org_by_workos_id(self, workos_org_id: str) -> Organization | None:
        for org in self.orgs.values():
            if org.workos_org_id == workos_org_id:
                return org
        return None

    async def sync_user_from_invitation(
        self,
        *,
        workos_user_id: str,
        email: str,
        first_name: str | None,
        last_name: str | None,
        org_id: str,
        role: str,
        customer_id: str | None,
    ) -> str:
        if org_id not in self.orgs:
            raise OrganizationNotFoundError(org_id)

        existing = self.user_by_workos_id(workos_user_id)
        if existing is not None:
            user = replace(
                existing,
                email=email,
                first_name=first_name or existing.first_name,
                last_name=last_name or existing.last_name,
                org_id=org_id,
                role=role,
                customer_id=customer_id,
            )
            logger.info("Updated user %s from invitation", user.id)
        else:
            user = User(
                id=uuid.uuid4().hex,
                workos_user_id=workos_user_id,
                email=email,
                first_name=first_name,
                last_name=last_name,
                org_id=org_id,
                role=role,
                customer_id=customer_id,
            )
            logger.info("Created user %s from invitation", user.id)
        self.users[user.id] = user
        return user.id

    async def delete_pending_invitation(self, workos_invitation_id: str) -> None:
        self.invitations.pop(workos_invitation_id, None)

    # -- BillingStore ------------------------------------------------------

    async def get_org(self, org_id: str) -> Organization | None:
        return self.orgs.get(org_id)

    async def update_org_subscription(
        self,
        org_id: str,
        *,
        subscription_id: str,
        variant_id: str | None,
        status: str,
        limits: PlanLimits,
    ) -> None:
        org = self.orgs.get(org_id)
        if org is None:
            raise OrganizationNotFoundError(org_id)
        self.orgs[org_id] = replace(
            org,
            subscription_id=subscription_id,
            subscription_status=status,
            variant_id=variant_id,
            plan_name=limits.name,
            max_customers=limits.max_customers,
            max_staff=limits.max_staff,
            max_clients=limits.max_clients,
        )
