"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from devscreen_server.routes.clinic import router as clinic_router
from devscreen_server.routes.evidence import router as evidence_router
from devscreen_server.routes.payments import router as payments_router
from devscreen_server.routes.reference import router as reference_router
from devscreen_server.routes.sessions import router as sessions_router
from devscreen_server.routes.submissions import router as submissions_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(sessions_router, prefix=API_PREFIX)
    app.include_router(submissions_router, prefix=API_PREFIX)
    app.include_router(clinic_router, prefix=API_PREFIX)
    app.include_router(payments_router, prefix=API_PREFIX)
    app.include_router(evidence_router, prefix=API_PREFIX)
    app.include_router(reference_router, prefix=API_PREFIX)
