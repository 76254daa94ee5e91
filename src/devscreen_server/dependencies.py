"""FastAPI dependency injection — DB sessions, SDK objects, identity and auth.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  The session is committed on success and rolled back on error,
matching the SDK convention where pipelines and repositories call
``flush()`` but never ``commit()``.
"""

import hmac
from typing import AsyncGenerator

from fastapi import BackgroundTasks, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_db.engine import get_session_factory
from devscreen_rules.actions import ScreeningActions
from devscreen_rules.catalog import QuestionCatalog

from devscreen_server.worker import BackgroundAnalysisDispatcher


# ------------------------------------------------------------------
# Database session: transaction boundary lives here
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; commit on success, rollback on error.

    The SDK's repository methods call ``flush()`` but never ``commit()``,
    so this dependency is the single place where transactions are finalised.
    """
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ------------------------------------------------------------------
# SDK objects: stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_actions(request: Request) -> ScreeningActions:
    """Return the ScreeningActions singleton from ``app.state``."""
    return request.app.state.actions


def get_catalog(request: Request) -> QuestionCatalog:
    """Return the QuestionCatalog singleton from ``app.state``."""
    return request.app.state.catalog


def get_dispatcher(
    request: Request,
    background_tasks: BackgroundTasks,
) -> BackgroundAnalysisDispatcher:
    """Per-request dispatcher; the route releases it after committing."""
    return BackgroundAnalysisDispatcher(
        background_tasks,
        request.app.state.pipeline,
        request.app.state.settings.screening,
    )


# ------------------------------------------------------------------
# User identity: extracted from the X-User-ID header
# ------------------------------------------------------------------

async def get_user_id(
    request: Request,
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_proxy_secret: str | None = Header(None, alias="X-Proxy-Secret"),
) -> str:
    """Extract user identity from the ``X-User-ID`` header.

    Returns 401 if the header is missing.  When ``TRUSTED_PROXY_SECRET`` is
    configured, the request must also carry a matching ``X-Proxy-Secret``
    header, proving the identity was injected by a trusted API gateway.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-ID header is required")

    # --- Proxy-secret validation (opt-in via TRUSTED_PROXY_SECRET) ---
    expected_secret: str | None = request.app.state.settings.trusted_proxy_secret
    if expected_secret:
        if not x_proxy_secret:
            raise HTTPException(
                status_code=403,
                detail="X-Proxy-Secret header is required",
            )
        # Constant-time comparison to prevent timing side-channels.
        if not hmac.compare_digest(x_proxy_secret, expected_secret):
            raise HTTPException(status_code=403, detail="Invalid proxy secret")

    return x_user_id


# ------------------------------------------------------------------
# Shared-secret guards
# ------------------------------------------------------------------

def _check_secret(provided: str | None, expected: str | None, header: str) -> None:
    if not expected:
        raise HTTPException(
            status_code=403,
            detail=f"Endpoint disabled ({header} secret not configured)",
        )
    if not provided:
        raise HTTPException(status_code=401, detail=f"{header} header is required")
    if not hmac.compare_digest(provided, expected):
        raise HTTPException(status_code=403, detail=f"Invalid {header}")


async def require_clinic_key(
    request: Request,
    x_clinic_key: str | None = Header(None, alias="X-Clinic-Key"),
) -> str:
    """Validate ``X-Clinic-Key`` against ``CLINIC_API_KEY``.

    401 if the header is missing, 403 if the key is not configured or wrong.
    """
    _check_secret(
        x_clinic_key, request.app.state.settings.clinic_api_key, "X-Clinic-Key",
    )
    return x_clinic_key


async def require_webhook_secret(
    request: Request,
    x_webhook_secret: str | None = Header(None, alias="X-Webhook-Secret"),
) -> str:
    """Validate ``X-Webhook-Secret`` against ``PAYMENT_WEBHOOK_SECRET``."""
    _check_secret(
        x_webhook_secret,
        request.app.state.settings.payment_webhook_secret,
        "X-Webhook-Secret",
    )
    return x_webhook_secret
