"""AgencyHub configuration.

Secrets and Lemon Squeezy variant IDs are read from the environment once
at startup. Missing webhook secrets are tolerated at load time and surface
as a 500 when a webhook for that provider arrives.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven settings for the webhook service."""

    # WorkOS (identity / org management)
    workos_webhook_secret: str = ""
    # Max signature age in seconds; 0 disables the replay window
    workos_webhook_tolerance_seconds: int = 0

    # Lemon Squeezy (billing)
    lemonsqueezy_webhook_secret: str = ""
    lemonsqueezy_variant_pro: str = ""
    lemonsqueezy_variant_business: str = ""

    log_level: str = "INFO"

    model_config = {"env_prefix": "AGENCYHUB_", "env_file": ".env", "extra": "ignore"}

    @property
    def replay_tolerance(self) -> int | None:
        """Tolerance passed to the WorkOS dispatcher, or None when disabled."""
        if self.workos_webhook_tolerance_seconds <= 0:
            return None
        return self.workos_webhook_tolerance_seconds


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    return Settings()
