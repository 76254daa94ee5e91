"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field

from devscreen_rules.config import (
    LLMSettings,
    ScreeningSettings,
    StorageSettings,
    load_llm_settings,
    load_screening_settings,
    load_storage_settings,
)


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Question catalog YAML (None → the catalog bundled with the SDK)
    catalog_path: str | None = None

    # Logging
    log_level: str = "INFO"

    # Clinic API key: shared secret for /clinic endpoints (None = disabled)
    clinic_api_key: str | None = None

    # Shared secret the payment subsystem sends on settlement callbacks
    # (None = settlement endpoint disabled)
    payment_webhook_secret: str | None = None

    # Trusted proxy secret: when set, every request that carries
    # X-User-ID must also carry X-Proxy-Secret matching this value.
    # This ensures the user identity header was injected by a trusted
    # API gateway and not forged by an external client.
    trusted_proxy_secret: str | None = None

    # SDK settings, passed explicitly to the components that need them
    screening: ScreeningSettings = field(default_factory=ScreeningSettings)
    llm: LLMSettings = field(default_factory=LLMSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` and SDK environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        catalog_path=os.getenv("SERVER_CATALOG_PATH") or None,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        clinic_api_key=os.getenv("CLINIC_API_KEY") or None,
        payment_webhook_secret=os.getenv("PAYMENT_WEBHOOK_SECRET") or None,
        trusted_proxy_secret=os.getenv("TRUSTED_PROXY_SECRET") or None,
        screening=load_screening_settings(),
        llm=load_llm_settings(),
        storage=load_storage_settings(),
    )
