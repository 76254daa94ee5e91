"""SDK configuration — immutable settings read from environment variables.

Each concern has its own frozen dataclass and ``load_*()`` builder.  The
objects are passed explicitly to the components that need them; nothing in
the SDK reads the environment after construction.
"""

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ScreeningSettings:
    """Workflow settings for completion, payment and analysis jobs."""

    payment_amount_idr: int = 50000
    clinic_id: str = "00000000-0000-0000-0000-000000000001"
    payment_method: str = "USDC_BALANCE"

    # Background analysis retry policy (linear back-off)
    analysis_max_attempts: int = 3
    analysis_retry_delay_seconds: float = 2.0

    # Compute the clinic queue with a single SQL join first, falling back
    # to the in-memory join when the query fails.
    clinic_queue_sql_join: bool = False


@dataclass(frozen=True)
class LLMSettings:
    """Completion API settings.  No API key means the LLM path is disabled."""

    api_key: str | None = None
    model: str = "llama-3.1-70b-versatile"
    base_url: str = "https://api.groq.com/openai/v1"
    temperature: float = 0.3
    max_tokens: int = 1000
    timeout_seconds: float = 30.0
    provider: str = "groq"

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class StorageSettings:
    """S3-compatible evidence storage.  ``service_key`` is the elevated credential."""

    endpoint_url: str | None = None
    access_key_id: str | None = None
    service_key: str | None = None
    bucket: str = "clinical-evidence"
    region: str | None = None


def load_screening_settings() -> ScreeningSettings:
    """Build screening settings from ``SCREENING_*`` / ``ANALYSIS_*`` env vars."""
    return ScreeningSettings(
        payment_amount_idr=int(os.getenv("SCREENING_PAYMENT_AMOUNT_IDR", "50000")),
        clinic_id=os.getenv(
            "SCREENING_CLINIC_ID", "00000000-0000-0000-0000-000000000001"
        ),
        payment_method=os.getenv("SCREENING_PAYMENT_METHOD", "USDC_BALANCE"),
        analysis_max_attempts=max(1, int(os.getenv("ANALYSIS_MAX_ATTEMPTS", "3"))),
        analysis_retry_delay_seconds=float(
            os.getenv("ANALYSIS_RETRY_DELAY_SECONDS", "2.0")
        ),
        clinic_queue_sql_join=_env_bool("CLINIC_QUEUE_SQL_JOIN"),
    )


def load_llm_settings() -> LLMSettings:
    """Build completion API settings from ``GROQ_API_KEY`` / ``LLM_*`` env vars."""
    return LLMSettings(
        api_key=os.getenv("GROQ_API_KEY") or None,
        model=os.getenv("LLM_MODEL", "llama-3.1-70b-versatile"),
        base_url=os.getenv("LLM_BASE_URL", "https://api.groq.com/openai/v1").rstrip("/"),
        temperature=float(os.getenv("LLM_TEMPERATURE", "0.3")),
        max_tokens=int(os.getenv("LLM_MAX_TOKENS", "1000")),
        timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", "30")),
    )


def load_storage_settings() -> StorageSettings:
    """Build evidence storage settings from ``STORAGE_*`` env vars."""
    return StorageSettings(
        endpoint_url=os.getenv("STORAGE_ENDPOINT_URL") or None,
        access_key_id=os.getenv("STORAGE_ACCESS_KEY_ID") or None,
        service_key=os.getenv("STORAGE_SERVICE_KEY") or None,
        bucket=os.getenv("STORAGE_BUCKET", "clinical-evidence"),
        region=os.getenv("STORAGE_REGION") or None,
    )
