"""Typed decoding of WorkOS webhook payloads.

Payloads are decoded into a small tagged union before any business logic
runs. Only ``invitation.accepted`` carries a typed body; everything else
decodes to UnhandledEvent and is acknowledged without action.

WorkOS has shipped several key spellings for the same field over time,
so each logical field lists its accepted aliases in priority order and
the first non-null one wins.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

INVITATION_ACCEPTED = "invitation.accepted"

UNKNOWN_EVENT = "unknown"

# Logical field -> accepted payload keys, highest priority first
INVITATION_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "organization_id": ("organization_id", "organizationId"),
    "accepted_user_id": ("accepted_user_id", "acceptedUserId", "user_id"),
    "first_name": ("first_name", "firstName"),
    "last_name": ("last_name", "lastName"),
    "email": ("email",),
}


class InvalidEventPayload(ValueError):
    """A handled event type arrived with a body missing required fields."""

    def __init__(self, event_type: str, errors: list[str] | None = None):
        self.event_type = event_type
        self.errors = errors or []
        super().__init__(f"Invalid payload for {event_type}")


def validation_summary(exc: ValidationError) -> list[str]:
    """Field locations and error types only; rejected input values are left out."""
    return [
        f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['type']}"
        for error in exc.errors(include_url=False)
    ]


def first_non_null(data: Mapping[str, Any], aliases: tuple[str, ...]) -> Any:
    """Value of the first alias present in ``data`` with a non-None value."""
    for key in aliases:
        value = data.get(key)
        if value is not None:
            return value
    return None


class InvitationAcceptedData(BaseModel):
    """``data`` object of an ``invitation.accepted`` event."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str = Field(min_length=1)
    organization_id: str = Field(min_length=1)
    accepted_user_id: str = Field(min_length=1)
    email: str = Field(min_length=1)
    first_name: str | None = None
    last_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _resolve_aliases(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        return {
            name: first_non_null(data, aliases)
            for name, aliases in INVITATION_FIELD_ALIASES.items()
        }


@dataclass(frozen=True)
class InvitationAccepted:
    """A user accepted an organization invitation."""

    data: InvitationAcceptedData
    event_type: str = INVITATION_ACCEPTED


@dataclass(frozen=True)
class UnhandledEvent:
    """Any event type we acknowledge but do not act on."""

    event_type: str


WorkOSEvent = Union[InvitationAccepted, UnhandledEvent]


def event_type_of(payload: Any) -> str:
    """The ``event`` discriminator, or ``"unknown"`` if absent or not a string."""
    if isinstance(payload, Mapping):
        event_type = payload.get("event")
        if isinstance(event_type, str):
            return event_type
    return UNKNOWN_EVENT


def decode_event(payload: Any) -> WorkOSEvent:
    """Decode a parsed JSON payload into a WorkOSEvent.

    Raises:
        InvalidEventPayload: handled event type with missing/invalid fields
    """
    event_type = event_type_of(payload)
    if event_type != INVITATION_ACCEPTED:
        return UnhandledEvent(event_type=event_type)

    try:
        data = InvitationAcceptedData.model_validate(payload.get("data"))
    except ValidationError as exc:
        raise InvalidEventPayload(event_type, validation_summary(exc)) from exc
    return InvitationAccepted(data=data)
