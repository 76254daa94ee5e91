"""Global exception handlers and envelope responses.

Action envelopes are returned with the HTTP status matching their
``error_code``.  Exceptions that escape a route are mapped by the handlers
below: SDK ``ScreeningError`` by its status code, any other ``ValueError``
to a plain 400, everything else to a generic 500.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from devscreen_rules.errors import ScreeningError, status_for_code
from devscreen_rules.models.results import ActionResult

logger = logging.getLogger(__name__)


def envelope_response(result: ActionResult, *, status_code: int = 200) -> JSONResponse:
    """Serialize an action envelope; failures get their error code's status."""
    if not result.success:
        status_code = status_for_code(result.error_code or "")
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


async def screening_error_handler(request: Request, exc: ScreeningError) -> JSONResponse:
    """Map an SDK ``ScreeningError`` that escaped a route to its status code."""
    logger.warning("%s [%d] at %s: %s", exc.code, exc.status_code, request.url, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc), "error_code": exc.code},
    )


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Bare ``ValueError``: 400 without echoing the message to the client."""
    logger.warning("ValueError at %s: %s", request.url, exc)
    return JSONResponse(status_code=400, content={"detail": "Invalid request"})


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
