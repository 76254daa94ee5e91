"""Clinic endpoints — review queue, recording and verifying reviews.

Every endpoint requires the ``X-Clinic-Key`` header matching
``CLINIC_API_KEY``.  If the key is not configured, the endpoints are
disabled (403).
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_rules.actions import ScreeningActions
from devscreen_rules.models.review import ReviewInput

from devscreen_server.dependencies import get_actions, get_db, require_clinic_key
from devscreen_server.errors import envelope_response

router = APIRouter(
    prefix="/clinic",
    tags=["clinic"],
    dependencies=[Depends(require_clinic_key)],
)


class RecordReviewRequest(ReviewInput):
    """Body for POST /clinic/screenings/{screening_id}/reviews."""
    reviewer_id: str


# ------------------------------------------------------------------
# Review queue
# ------------------------------------------------------------------

@router.get("/screenings")
async def list_pending_screenings(
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Screenings with a settled payment and no review yet, newest first."""
    result = await actions.get_clinic_screenings(db)
    return envelope_response(result)


# ------------------------------------------------------------------
# Reviews
# ------------------------------------------------------------------

@router.post("/screenings/{screening_id}/reviews")
async def record_review(
    screening_id: str,
    body: RecordReviewRequest,
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Record a clinician's review and return its tamper-evidence hash."""
    review = ReviewInput.model_validate(body.model_dump(exclude={"reviewer_id"}))
    result = await actions.record_review(
        db,
        screening_id=screening_id,
        reviewer_id=body.reviewer_id,
        review=review,
    )
    return envelope_response(result, status_code=201)


@router.get("/reviews/{review_id}/verify")
async def verify_review(
    review_id: str,
    db: AsyncSession = Depends(get_db),
    actions: ScreeningActions = Depends(get_actions),
) -> JSONResponse:
    """Recompute a stored review's hash; ``valid`` is false if it was altered."""
    result = await actions.verify_review(db, review_id=review_id)
    return envelope_response(result)
