"""Ticket-Engine configuration via pydantic-settings."""

import json
import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "hmac_key": "insecure-hmac-key-change-me",
    "api_key": "insecure-admin-key-change-me",
}


class TicketEngineSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TICKET_")

    environment: str = "development"
    log_level: str = "INFO"

    # Audit-chain signing key.
    hmac_key: str = "insecure-hmac-key-change-me"

    # HMAC keyring — JSON dict mapping version (int) to key string.
    # e.g. '{"0": "old-key", "1": "new-key"}'
    # When set, hmac_key is ignored.  When empty, hmac_key is used as version 0.
    hmac_keys: str = ""

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/tickets.db"
    db_echo: bool = False
    db_busy_timeout: float = 5.0  # seconds SQLite waits on a locked file

    # API
    api_title: str = "Ticket-Engine"
    api_version: str = "0.1.0"
    api_key: str = "insecure-admin-key-change-me"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8081"]

    # Ticket codes
    code_prefix: str = "CP-T"
    code_length: int = 6
    code_max_attempts: int = 8

    # Priority classification
    vip_threshold_cents: int = 10_000
    bulk_quantity_threshold: int = 5

    # Check-in / gateway timing (seconds)
    checkin_lock_timeout: float = 3.0
    gateway_timeout: float = 10.0

    # Expiry policy
    refund_on_expiry: bool = False
    expiry_grace_hours: int = 24

    # Scan ledger review
    scan_events_limit: int = 200

    # Payment gateway
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_tolerance: int = 300

    # Wallet passes
    wallet_base_url: str = "https://wallet.culturepass.au"
    wallet_service_url: str = ""
    wallet_service_token: str = ""

    @property
    def hmac_keyring(self) -> dict[int, str]:
        """Return HMAC keyring as {version_int: key_str}.

        If hmac_keys is set, parse it as JSON.
        Otherwise, fall back to scalar hmac_key as version 0.
        """
        if self.hmac_keys:
            try:
                raw = json.loads(self.hmac_keys)
            except (json.JSONDecodeError, TypeError) as exc:
                raise ValueError(
                    f"TICKET_HMAC_KEYS must be valid JSON (e.g. '{{\"0\": \"key\"}}'), got: {self.hmac_keys!r}"
                ) from exc
            return {int(k): v for k, v in raw.items()}
        return {0: self.hmac_key}

    @property
    def current_hmac_key(self) -> str:
        """Return the HMAC key for the current (highest) version."""
        ring = self.hmac_keyring
        return ring[max(ring.keys())]

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"TICKET_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}. "
                "Generate secrets with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if self.environment != "development" and not self.stripe_webhook_secret:
            raise RuntimeError(
                f"TICKET_STRIPE_WEBHOOK_SECRET must be set in '{self.environment}' environment "
                "so gateway events can be verified"
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default keys — set TICKET_HMAC_KEY and "
                "TICKET_API_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> TicketEngineSettings:
    settings = TicketEngineSettings()
    settings.validate_for_production()
    return settings
