"""Single-submission screening endpoints.

A family submits the whole answer set at once; the rule scorer grades it
immediately.  A clinical review is paid for with a payment intent linked
to the screening.  All endpoints require ``X-User-ID``.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_rules.actions import ScreeningActions

from devscreen_server.dependencies import get_actions, get_db, get_user_id
from devscreen_server.errors import envelope_response

router = APIRouter(tags=["screenings"])


class SubmitScreeningRequest(BaseModel):
    """Body for POST /screenings."""
    family_id: str
    child_name: str
    child_age_months: int
    # question_id → achieved (true), not achieved (false), unanswered (null)
    answers: dict[str, bool | None]


@router.post("/screenings")
async def submit_screening(
    body: SubmitScreeningRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Score and store a screening.  Returns 201 with its risk level."""
    result = await actions.submit_screening(
        db,
        family_id=body.family_id,
        child_name=body.child_name,
        age_months=body.child_age_months,
        answers=body.answers,
    )
    return envelope_response(result, status_code=201)


@router.post("/screenings/{screening_id}/payment-intents")
async def request_review_payment(
    screening_id: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Create the payment intent for a clinical review.  Returns 201."""
    result = await actions.request_review_payment(
        db, screening_id=screening_id, user_id=user_id,
    )
    return envelope_response(result, status_code=201)
