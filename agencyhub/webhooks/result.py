"""Uniform outcome of processing one webhook delivery."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class WebhookResult:
    """Terminal state of a webhook dispatch.

    ``status`` is the HTTP status to return to the provider. ``ok`` is
    True for 200s, including ignored events and already-processed
    deliveries, so providers do not retry them.
    """

    ok: bool
    status: int
    message: str
    event: str | None = None
    user_id: str | None = None

    @classmethod
    def success(cls, message: str, event: str | None = None, user_id: str | None = None) -> WebhookResult:
        return cls(ok=True, status=200, message=message, event=event, user_id=user_id)

    @classmethod
    def bad_request(cls, message: str, event: str | None = None) -> WebhookResult:
        return cls(ok=False, status=400, message=message, event=event)

    @classmethod
    def server_error(cls, message: str, event: str | None = None) -> WebhookResult:
        return cls(ok=False, status=500, message=message, event=event)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"ok": self.ok, "message": self.message}
        if self.event is not None:
            body["event"] = self.event
        if self.user_id is not None:
            body["userId"] = self.user_id
        return body
