"""SubmissionWorkflow — single-submission screenings and their clinical review.

This is the second, independent screening workflow.  The whole answer set
is submitted at once, scored by the rule engine and stored in one
``screenings`` row.  A family pays for a review, and once the payment is
settled the screening shows up in the clinic queue until a clinician
records a review.

    submit ──► PENDING_REVIEW ──(payment settled)──► clinic queue
                                                        │
                                            record_review ──► REVIEWED

It shares the payment gateway with the session workflow but never touches
the ``screening_sessions`` tables.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_db.models.enums import ScreeningStatus
from devscreen_db.models.review import ClinicalReview
from devscreen_db.models.screening import Screening
from devscreen_db.repository import ClinicalReviewRepository, ScreeningRepository

from devscreen_rules.catalog import QuestionCatalog
from devscreen_rules.config import ScreeningSettings
from devscreen_rules.constants import MAX_AGE_MONTHS, MIN_AGE_MONTHS
from devscreen_rules.eligibility import ClinicQueue
from devscreen_rules.errors import (
    InvalidInputError,
    NotFoundError,
    PreconditionFailedError,
)
from devscreen_rules.hashing import generate_review_hash, verify_review_hash
from devscreen_rules.interfaces import PaymentGateway
from devscreen_rules.models.results import ClinicScreening
from devscreen_rules.models.review import ReviewHashData, ReviewInput
from devscreen_rules.models.scoring import RuleRiskLevel
from devscreen_rules.pipeline import parse_uuid
from devscreen_rules.scorer import score_answers

logger = logging.getLogger(__name__)


def format_review_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def review_hash_data(review: ClinicalReview) -> ReviewHashData:
    """The hashed field set of a stored review."""
    return ReviewHashData(
        screening_id=str(review.screening_id),
        review_id=str(review.review_id),
        final_diagnosis=review.final_diagnosis,
        recommendations=review.recommendations,
        social_score_clinical=review.social_score_clinical,
        fine_motor_clinical=review.fine_motor_clinical,
        language_clinical=review.language_clinical,
        gross_motor_clinical=review.gross_motor_clinical,
        reviewed_at=review.reviewed_at,
    )


@dataclass(frozen=True)
class SubmissionOutcome:
    screening_id: str
    risk_level: RuleRiskLevel


@dataclass(frozen=True)
class ReviewOutcome:
    review_id: str
    result_hash: str
    reviewed_at: str


class SubmissionWorkflow:
    """Legacy single-submission screenings, clinic queue and reviews.

    Args:
        catalog: the loaded :class:`QuestionCatalog` used for scoring
        settings: payment amount, clinic id, method and queue strategy
        payments: payment subsystem used to request a review payment
    """

    def __init__(
        self,
        catalog: QuestionCatalog,
        *,
        settings: ScreeningSettings,
        payments: PaymentGateway,
    ) -> None:
        self._catalog = catalog
        self._settings = settings
        self._payments = payments
        self._screenings = ScreeningRepository()
        self._reviews = ClinicalReviewRepository()
        self._queue = ClinicQueue(use_sql_join=settings.clinic_queue_sql_join)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit_screening(
        self,
        db: AsyncSession,
        *,
        family_id: str,
        child_name: str,
        child_age_months: int,
        answers: Mapping[str, bool | None],
    ) -> SubmissionOutcome:
        """Score *answers* with the rule engine and store the screening.

        Raises:
            InvalidInputError: bad identifiers or age, empty answers, or no
                answer matching the catalog.
        """
        if (
            not family_id
            or not child_name
            or not child_name.strip()
            or child_age_months is None
            or not MIN_AGE_MONTHS <= child_age_months <= MAX_AGE_MONTHS
        ):
            raise InvalidInputError("Invalid input parameters")

        score = score_answers(answers, self._catalog)
        screening = await self._screenings.create_screening(
            db,
            family_id=family_id,
            child_name=child_name.strip(),
            child_age_months=child_age_months,
            answers=[a.model_dump() for a in score.answers],
            ai_risk_score=score.risk_score,
            ai_risk_level=score.risk_level,
            ai_summary=score.summary,
        )
        logger.info(
            "Screening submitted: screening_id=%s, risk_level=%s, %d/%d not achieved",
            screening.id, score.risk_level, score.not_achieved, score.total,
        )
        return SubmissionOutcome(
            screening_id=str(screening.id), risk_level=score.risk_level,
        )

    async def request_review_payment(
        self,
        db: AsyncSession,
        *,
        screening_id: str,
        user_id: str,
    ) -> str:
        """Create a payment intent linked to a screening; return its id.

        Raises:
            NotFoundError: the screening does not exist.
            PreconditionFailedError: the screening is already reviewed.
            UpstreamError: the payment subsystem failed.
        """
        if not user_id:
            raise InvalidInputError("Missing required parameters")
        screening = await self._load_screening(db, screening_id)
        if screening.status == ScreeningStatus.REVIEWED.value:
            raise PreconditionFailedError(
                f"Screening {screening_id} has already been reviewed"
            )
        return await self._payments.create_intent(
            db,
            user_id=user_id,
            family_id=screening.family_id,
            clinic_id=self._settings.clinic_id,
            amount=self._settings.payment_amount_idr,
            payment_method=self._settings.payment_method,
            screening_id=screening.id,
        )

    # ------------------------------------------------------------------
    # Clinic
    # ------------------------------------------------------------------

    async def clinic_queue(self, db: AsyncSession) -> list[ClinicScreening]:
        """Screenings with a settled payment and no review, newest first."""
        rows = await self._queue.pending_screenings(db)
        return [ClinicScreening.model_validate(r) for r in rows]

    async def record_review(
        self,
        db: AsyncSession,
        *,
        screening_id: str,
        reviewer_id: str,
        review: ReviewInput,
    ) -> ReviewOutcome:
        """Store a clinician's review with its digest and mark the screening.

        Raises:
            InvalidInputError: missing reviewer.
            NotFoundError: the screening does not exist.
            PreconditionFailedError: the screening was already reviewed.
        """
        if not reviewer_id:
            raise InvalidInputError("Missing required parameters")
        screening = await self._load_screening(db, screening_id)
        if (
            screening.status == ScreeningStatus.REVIEWED.value
            or await self._reviews.exists_for_screening(db, screening.id)
        ):
            raise PreconditionFailedError(
                f"Screening {screening_id} has already been reviewed"
            )

        review_id = uuid.uuid4()
        reviewed_at = datetime.now(timezone.utc)
        reviewed_at_text = format_review_timestamp(reviewed_at)
        digest = generate_review_hash(
            ReviewHashData(
                screening_id=str(screening.id),
                review_id=str(review_id),
                final_diagnosis=review.final_diagnosis,
                recommendations=review.recommendations,
                social_score_clinical=review.social_score_clinical,
                fine_motor_clinical=review.fine_motor_clinical,
                language_clinical=review.language_clinical,
                gross_motor_clinical=review.gross_motor_clinical,
                reviewed_at=reviewed_at_text,
            )
        )

        await self._reviews.create_review(
            db,
            review_id=review_id,
            screening_id=screening.id,
            reviewer_id=reviewer_id,
            final_diagnosis=review.final_diagnosis,
            recommendations=review.recommendations,
            social_score_clinical=review.social_score_clinical,
            fine_motor_clinical=review.fine_motor_clinical,
            language_clinical=review.language_clinical,
            gross_motor_clinical=review.gross_motor_clinical,
            clinical_risk_level=review.clinical_risk_level,
            reviewed_at=reviewed_at_text,
            result_hash=digest,
        )
        await self._screenings.mark_reviewed(
            db,
            screening,
            clinical_notes=review.clinical_notes or review.final_diagnosis,
            clinical_risk_level=review.clinical_risk_level,
            reviewed_at=reviewed_at,
        )
        logger.info(
            "Clinical review recorded: screening_id=%s, review_id=%s",
            screening_id, review_id,
        )
        return ReviewOutcome(
            review_id=str(review_id), result_hash=digest, reviewed_at=reviewed_at_text,
        )

    async def verify_review(self, db: AsyncSession, *, review_id: str) -> bool:
        """Recompute a stored review's digest and compare it with the stored one."""
        review_uuid = parse_uuid(review_id, "review id")
        review = await self._reviews.get_by_id(db, review_uuid)
        if review is None:
            raise NotFoundError(f"Clinical review not found: {review_id}")
        valid = verify_review_hash(review_hash_data(review), review.result_hash)
        if not valid:
            logger.warning("Clinical review %s failed hash verification", review_id)
        return valid

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_screening(self, db: AsyncSession, screening_id: str) -> Screening:
        screening_uuid = parse_uuid(screening_id, "screening id")
        screening = await self._screenings.get_by_id(db, screening_uuid)
        if screening is None:
            raise NotFoundError(f"Screening not found: {screening_id}")
        return screening
