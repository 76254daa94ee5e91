"""Async CRUD repositories for the screening tables.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries.  Methods call ``flush()`` but never ``commit()``.

The repositories deliberately avoid business-logic validation — that
belongs in the SDK layer.  Structural invariants (one response per question
per session, one analysis per session) are enforced by DB constraints.

Reads that a caller may want to retry or degrade run inside a SAVEPOINT, so
a failed statement does not leave the outer transaction aborted.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import and_, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_db.models.enums import (
    PaymentStatus,
    ScreeningStatus,
    SessionStatus,
)
from devscreen_db.models.payment import PaymentIntent
from devscreen_db.models.review import ClinicalReview
from devscreen_db.models.screening import Screening
from devscreen_db.models.session import (
    ScreeningAnalysis,
    ScreeningResponse,
    ScreeningSession,
)

# Sentinel for "argument not supplied" where None is a meaningful value
_UNSET: Any = object()


class SessionRepository:
    """Read/write operations on ``screening_sessions`` and its child tables."""

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def create_session(
        self,
        db: AsyncSession,
        *,
        family_id: str,
        child_name: str,
        child_age_months: int,
        age_group: str,
    ) -> ScreeningSession:
        """Insert a new IN_PROGRESS session row and return it."""
        session = ScreeningSession(
            family_id=family_id,
            child_name=child_name,
            child_age_months=child_age_months,
            age_group=age_group,
            status=SessionStatus.IN_PROGRESS.value,
        )
        db.add(session)
        await db.flush()  # Populate the generated session_id
        return session

    async def get_by_id(
        self, db: AsyncSession, session_id: uuid.UUID
    ) -> ScreeningSession | None:
        """Fetch a session by primary key."""
        return await db.get(ScreeningSession, session_id)

    async def get_by_payment_intent(
        self, db: AsyncSession, intent_id: str
    ) -> ScreeningSession | None:
        """Fetch the session linked to a payment intent, if any."""
        stmt = select(ScreeningSession).where(
            ScreeningSession.payment_intent_id == intent_id
        )
        result = await db.execute(stmt)
        return result.scalars().first()

    async def list_by_family(
        self, db: AsyncSession, family_id: str
    ) -> list[ScreeningSession]:
        """List a family's sessions, most recent first."""
        stmt = (
            select(ScreeningSession)
            .where(ScreeningSession.family_id == family_id)
            .order_by(ScreeningSession.created_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_by_analysis_status(
        self,
        db: AsyncSession,
        statuses: list[str],
        *,
        older_than_minutes: int = 0,
        limit: int = 100,
    ) -> list[ScreeningSession]:
        """List sessions whose analysis job is in one of *statuses*.

        ``older_than_minutes`` skips sessions updated more recently than the
        threshold, so a sweep does not race a job that is still running.
        """
        stmt = select(ScreeningSession).where(
            ScreeningSession.analysis_status.in_(statuses)
        )
        if older_than_minutes > 0:
            cutoff = datetime.now(timezone.utc) - timedelta(minutes=older_than_minutes)
            stmt = stmt.where(ScreeningSession.updated_at < cutoff)
        stmt = stmt.order_by(ScreeningSession.created_at.asc()).limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def update_status(
        self,
        db: AsyncSession,
        session: ScreeningSession,
        status: SessionStatus,
        *,
        payment_intent_id: str | None = _UNSET,
    ) -> ScreeningSession:
        """Set the session status, optionally linking a payment intent."""
        session.status = status.value
        if payment_intent_id is not _UNSET:
            session.payment_intent_id = payment_intent_id
        session.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return session

    async def set_analysis_status(
        self, db: AsyncSession, session: ScreeningSession, status: str
    ) -> ScreeningSession:
        """Record the progress of the background analysis job."""
        session.analysis_status = status
        session.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return session

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    async def add_response(
        self,
        db: AsyncSession,
        session: ScreeningSession,
        *,
        question_id: str,
        question_text: str,
        category: str,
        response_value: str,
        milestone_age_months: int | None = None,
    ) -> ScreeningResponse:
        """Insert one response row for *session*."""
        response = ScreeningResponse(
            session_id=session.session_id,
            question_id=question_id,
            question_text=question_text,
            category=category,
            response_value=response_value,
            milestone_age_months=milestone_age_months,
        )
        db.add(response)
        await db.flush()
        return response

    async def get_response(
        self, db: AsyncSession, session_id: uuid.UUID, question_id: str
    ) -> ScreeningResponse | None:
        """Fetch the response to *question_id* within a session, if any."""
        stmt = select(ScreeningResponse).where(
            ScreeningResponse.session_id == session_id,
            ScreeningResponse.question_id == question_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_responses(
        self, db: AsyncSession, session_id: uuid.UUID
    ) -> list[ScreeningResponse]:
        """List a session's responses in the order they were answered."""
        stmt = (
            select(ScreeningResponse)
            .where(ScreeningResponse.session_id == session_id)
            .order_by(ScreeningResponse.created_at.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def get_analysis(
        self, db: AsyncSession, session_id: uuid.UUID
    ) -> ScreeningAnalysis | None:
        """Fetch the analysis for a session, if one has been generated."""
        stmt = select(ScreeningAnalysis).where(
            ScreeningAnalysis.session_id == session_id
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def add_analysis(
        self,
        db: AsyncSession,
        *,
        session_id: uuid.UUID,
        risk_level: str,
        risk_score: float | None,
        summary: str,
        recommendations: list[str] | None,
        ai_model: str,
        ai_provider: str,
        raw_response: dict | None = None,
    ) -> ScreeningAnalysis:
        """Insert the analysis row inside a SAVEPOINT.

        Raises ``IntegrityError`` if another writer already inserted the
        analysis for this session; the outer transaction stays usable.
        """
        analysis = ScreeningAnalysis(
            session_id=session_id,
            risk_level=risk_level,
            risk_score=risk_score,
            summary=summary,
            recommendations=recommendations,
            ai_model=ai_model,
            ai_provider=ai_provider,
            raw_response=raw_response,
        )
        async with db.begin_nested():
            db.add(analysis)
            await db.flush()
        return analysis


class ScreeningRepository:
    """Read/write operations on the single-submission ``screenings`` table."""

    async def create_screening(
        self,
        db: AsyncSession,
        *,
        family_id: str,
        child_name: str,
        child_age_months: int,
        answers: list[dict[str, Any]],
        ai_risk_score: float,
        ai_risk_level: str,
        ai_summary: str,
    ) -> Screening:
        """Insert a scored screening awaiting review."""
        screening = Screening(
            family_id=family_id,
            child_name=child_name,
            child_age_months=child_age_months,
            answers=answers,
            ai_risk_score=ai_risk_score,
            ai_risk_level=ai_risk_level,
            ai_summary=ai_summary,
            status=ScreeningStatus.PENDING_REVIEW.value,
        )
        db.add(screening)
        await db.flush()
        return screening

    async def get_by_id(
        self, db: AsyncSession, screening_id: uuid.UUID
    ) -> Screening | None:
        """Fetch a screening by primary key."""
        return await db.get(Screening, screening_id)

    async def list_newest_first(self, db: AsyncSession) -> list[Screening]:
        """List every screening, newest first."""
        stmt = select(Screening).order_by(Screening.created_at.desc())
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_pending_review_joined(self, db: AsyncSession) -> list[Screening]:
        """Clinic queue as one SQL query: settled payment, no review yet."""
        settled = exists().where(
            and_(
                PaymentIntent.screening_id == Screening.id,
                PaymentIntent.status == PaymentStatus.SETTLED.value,
            )
        )
        reviewed = exists().where(ClinicalReview.screening_id == Screening.id)
        stmt = (
            select(Screening)
            .where(settled, ~reviewed)
            .order_by(Screening.created_at.desc())
        )
        async with db.begin_nested():
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def mark_reviewed(
        self,
        db: AsyncSession,
        screening: Screening,
        *,
        clinical_notes: str | None,
        clinical_risk_level: str | None,
        reviewed_at: datetime,
    ) -> Screening:
        """Copy the review outcome onto the screening row."""
        screening.status = ScreeningStatus.REVIEWED.value
        screening.clinical_notes = clinical_notes
        screening.clinical_risk_level = clinical_risk_level
        screening.reviewed_at = reviewed_at
        await db.flush()
        return screening


class PaymentIntentRepository:
    """Read/write operations on ``payment_intents``."""

    async def create_intent(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        family_id: str,
        clinic_id: str,
        amount: int,
        payment_method: str,
        screening_id: uuid.UUID | None = None,
    ) -> PaymentIntent:
        """Insert a PENDING intent inside a SAVEPOINT and return it."""
        intent = PaymentIntent(
            user_id=user_id,
            family_id=family_id,
            clinic_id=clinic_id,
            amount=amount,
            payment_method=payment_method,
            status=PaymentStatus.PENDING.value,
            screening_id=screening_id,
        )
        async with db.begin_nested():
            db.add(intent)
            await db.flush()
        return intent

    async def get_by_id(
        self, db: AsyncSession, intent_id: uuid.UUID
    ) -> PaymentIntent | None:
        """Fetch an intent by primary key."""
        return await db.get(PaymentIntent, intent_id)

    async def mark_settled(
        self, db: AsyncSession, intent: PaymentIntent
    ) -> PaymentIntent:
        """Move an intent to SETTLED."""
        intent.status = PaymentStatus.SETTLED.value
        intent.settled_at = datetime.now(timezone.utc)
        await db.flush()
        return intent

    async def list_settled_screening_ids(self, db: AsyncSession) -> set[uuid.UUID]:
        """Screening ids that have at least one SETTLED intent."""
        stmt = select(PaymentIntent.screening_id).where(
            PaymentIntent.status == PaymentStatus.SETTLED.value,
            PaymentIntent.screening_id.is_not(None),
        )
        async with db.begin_nested():
            result = await db.execute(stmt)
            return set(result.scalars().all())

    async def list_all(self, db: AsyncSession) -> list[PaymentIntent]:
        """Every intent, unfiltered — the degraded path filters locally."""
        async with db.begin_nested():
            result = await db.execute(select(PaymentIntent))
            return list(result.scalars().all())


class ClinicalReviewRepository:
    """Read/write operations on ``clinical_reviews``."""

    async def create_review(
        self,
        db: AsyncSession,
        *,
        review_id: uuid.UUID,
        screening_id: uuid.UUID,
        reviewer_id: str,
        final_diagnosis: str | None,
        recommendations: str | None,
        social_score_clinical: float | None,
        fine_motor_clinical: float | None,
        language_clinical: float | None,
        gross_motor_clinical: float | None,
        clinical_risk_level: str | None,
        reviewed_at: str,
        result_hash: str,
    ) -> ClinicalReview:
        """Insert a review row.  The id is supplied because it is hashed."""
        review = ClinicalReview(
            review_id=review_id,
            screening_id=screening_id,
            reviewer_id=reviewer_id,
            final_diagnosis=final_diagnosis,
            recommendations=recommendations,
            social_score_clinical=social_score_clinical,
            fine_motor_clinical=fine_motor_clinical,
            language_clinical=language_clinical,
            gross_motor_clinical=gross_motor_clinical,
            clinical_risk_level=clinical_risk_level,
            reviewed_at=reviewed_at,
            result_hash=result_hash,
        )
        db.add(review)
        await db.flush()
        return review

    async def get_by_id(
        self, db: AsyncSession, review_id: uuid.UUID
    ) -> ClinicalReview | None:
        """Fetch a review by primary key."""
        return await db.get(ClinicalReview, review_id)

    async def exists_for_screening(
        self, db: AsyncSession, screening_id: uuid.UUID
    ) -> bool:
        """True if any review references *screening_id*."""
        stmt = select(
            exists().where(ClinicalReview.screening_id == screening_id)
        )
        result = await db.execute(stmt)
        return bool(result.scalar())

    async def list_reviewed_screening_ids(self, db: AsyncSession) -> set[uuid.UUID]:
        """Screening ids that already have a clinical review."""
        async with db.begin_nested():
            result = await db.execute(select(ClinicalReview.screening_id))
            return set(result.scalars().all())
