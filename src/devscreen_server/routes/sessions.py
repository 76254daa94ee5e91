"""Questionnaire session endpoints — create, answer, complete, analyse.

All endpoints require the ``X-User-ID`` header.  Every endpoint returns the
action envelope (``success`` / payload / ``error`` / ``error_code``); a
failed envelope is sent with the status matching its ``error_code``.

Completing a session commits the transaction first and only then releases
the analysis job to the background, so the job reads the committed row.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_rules.actions import ScreeningActions

from devscreen_server.dependencies import (
    get_actions,
    get_db,
    get_dispatcher,
    get_user_id,
)
from devscreen_server.errors import envelope_response
from devscreen_server.worker import BackgroundAnalysisDispatcher

router = APIRouter(tags=["sessions"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class CreateSessionRequest(BaseModel):
    """Body for POST /sessions."""
    family_id: str
    child_name: str
    child_age_months: int


class SaveResponseRequest(BaseModel):
    """Body for POST /sessions/{session_id}/responses."""
    question_id: str
    # yes | no | sometimes | not_applicable
    response_value: str


class CompleteSessionRequest(BaseModel):
    """Body for POST /sessions/{session_id}/complete."""
    family_id: str


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/sessions")
async def create_session(
    body: CreateSessionRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Create an IN_PROGRESS session for a child.  Returns 201."""
    result = await actions.create_session(
        db,
        family_id=body.family_id,
        child_name=body.child_name,
        age_months=body.child_age_months,
    )
    return envelope_response(result, status_code=201)


@router.get("/sessions/{session_id}")
async def get_results(
    session_id: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Session, responses in answer order, and the analysis if ready."""
    result = await actions.get_results(db, session_id=session_id)
    return envelope_response(result)


@router.post("/sessions/{session_id}/responses")
async def save_response(
    session_id: str,
    body: SaveResponseRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Record one answer.

    ``stored`` is false when the question id is not in the catalog; the
    answer is dropped rather than rejected.
    """
    result = await actions.save_response(
        db,
        session_id=session_id,
        question_id=body.question_id,
        response_value=body.response_value,
    )
    return envelope_response(result)


@router.post("/sessions/{session_id}/complete")
async def complete_session(
    session_id: str,
    body: CompleteSessionRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
    dispatcher: BackgroundAnalysisDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """Complete a session, queue its analysis and create a payment intent.

    A payment-intent failure still returns 200 with ``success`` true, the
    warning in ``error`` and no ``payment_intent_id``.
    """
    result = await actions.complete_screening(
        db,
        session_id=session_id,
        user_id=user_id,
        family_id=body.family_id,
        dispatcher=dispatcher,
    )
    if result.success:
        await db.commit()
        dispatcher.release()
    return envelope_response(result)


@router.post("/sessions/{session_id}/analysis")
async def generate_analysis(
    session_id: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Generate the analysis synchronously (idempotent)."""
    result = await actions.generate_analysis(db, session_id=session_id)
    return envelope_response(result)


@router.get("/families/{family_id}/sessions")
async def list_family_sessions(
    family_id: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """All sessions for a family, newest first."""
    result = await actions.list_family_sessions(db, family_id=family_id)
    return envelope_response(result)
