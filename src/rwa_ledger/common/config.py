"""RWA Ledger configuration via pydantic-settings."""

import json
import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "hmac_key": "insecure-hmac-key-change-me",
    "api_key": "insecure-gateway-key-change-me",
}


class LedgerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    environment: str = "development"

    # Transfer log signing key.
    hmac_key: str = "insecure-hmac-key-change-me"

    # HMAC keyring: JSON dict mapping version (int) to key string.
    # e.g. '{"0": "old-key", "1": "new-key"}'
    # When set, hmac_key is ignored.  When empty, hmac_key is used as version 0.
    hmac_keys: str = ""

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/ledger.db"

    # API
    api_title: str = "RWA Ledger"
    api_version: str = "0.1.0"
    api_key: str = "insecure-gateway-key-change-me"
    host: str = "0.0.0.0"
    port: int = 8080
    api_prefix: str = ""
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5000"]

    # Order book
    order_approval_required: bool = True

    # Notifications
    email_provider: str = ""  # "sendgrid", "resend" or empty for log-only
    email_api_key: str = ""
    email_from: str = "notifications@rwa-ledger.local"
    email_from_name: str = "RWA Ledger"
    inbox_enabled: bool = True

    # Logging
    log_level: str = "INFO"

    # Pagination
    default_page_size: int = 50
    max_page_size: int = 200

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
                    f"LEDGER_HMAC_KEYS must be valid JSON (e.g. '{{\"0\": \"key\"}}'), got: {self.hmac_keys!r}"
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
            env_vars = ", ".join(f"LEDGER_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}."
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default keys; set LEDGER_HMAC_KEY and LEDGER_API_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> LedgerSettings:
    settings = LedgerSettings()
    settings.validate_for_production()
    return settings
