"""ScreeningActions — uniform result envelopes over the screening workflows.

Each action calls into :class:`ScreeningPipeline`, :class:`SubmissionWorkflow`
or :class:`EvidenceStore` and converts the outcome into an ``ActionResult``:
``success`` plus payload on success, ``error`` and ``error_code`` on failure.
Expected failures (:class:`ScreeningError`, ``SQLAlchemyError``) never escape
an action; anything else propagates to the caller.

On failure the transaction is rolled back, so an aborted operation leaves
no partial writes behind.

Usage::

    actions = ScreeningActions(pipeline, submissions, evidence)
    result = await actions.complete_screening(
        db, session_id=sid, user_id="u1", family_id="f1",
    )
    if result.success and result.error:
        ...  # completed, but the payment intent could not be created
"""

from __future__ import annotations

import logging
from typing import Mapping, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_rules.errors import ScreeningError, UpstreamError
from devscreen_rules.interfaces import AnalysisDispatcher
from devscreen_rules.models.results import (
    ActionResult,
    ClinicScreeningsResult,
    CompleteScreeningResult,
    CreateSessionResult,
    FamilySessionsResult,
    GenerateAnalysisResult,
    PaymentIntentResult,
    RecordReviewResult,
    SaveResponseResult,
    ScreeningResultsResult,
    SettlePaymentResult,
    SubmitScreeningResult,
    UploadEvidenceResult,
    VerifyReviewResult,
)
from devscreen_rules.models.review import ReviewInput
from devscreen_rules.pipeline import ScreeningPipeline
from devscreen_rules.storage import EvidenceStore
from devscreen_rules.submissions import SubmissionWorkflow

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=ActionResult)

# Errors an action turns into a failure envelope
_HANDLED = (ScreeningError, SQLAlchemyError)


class ScreeningActions:
    """Envelope-returning facade used by the HTTP layer.

    Args:
        pipeline: the questionnaire session workflow
        submissions: the single-submission / clinic workflow
        evidence: evidence file storage
    """

    def __init__(
        self,
        pipeline: ScreeningPipeline,
        submissions: SubmissionWorkflow,
        evidence: EvidenceStore,
    ) -> None:
        self._pipeline = pipeline
        self._submissions = submissions
        self._evidence = evidence

    # ==================================================================
    # Questionnaire sessions
    # ==================================================================

    async def create_session(
        self,
        db: AsyncSession,
        *,
        family_id: str,
        child_name: str,
        age_months: int,
    ) -> CreateSessionResult:
        try:
            row = await self._pipeline.create_session(
                db,
                family_id=family_id,
                child_name=child_name,
                child_age_months=age_months,
            )
        except _HANDLED as exc:
            return await self._fail(
                db, CreateSessionResult, exc, "Failed to create screening session",
            )
        return CreateSessionResult(success=True, session_id=str(row.session_id))

    async def save_response(
        self,
        db: AsyncSession,
        *,
        session_id: str,
        question_id: str,
        response_value: str,
    ) -> SaveResponseResult:
        try:
            row = await self._pipeline.save_response(
                db,
                session_id=session_id,
                question_id=question_id,
                response_value=response_value,
            )
        except _HANDLED as exc:
            return await self._fail(
                db, SaveResponseResult, exc, "Failed to save response",
            )
        return SaveResponseResult(success=True, stored=row is not None)

    async def complete_screening(
        self,
        db: AsyncSession,
        *,
        session_id: str,
        user_id: str,
        family_id: str,
        dispatcher: AnalysisDispatcher | None = None,
    ) -> CompleteScreeningResult:
        """Complete a session.

        A payment-intent failure is still ``success=True``: ``error`` carries
        the warning and ``payment_intent_id`` is absent.
        """
        try:
            outcome = await self._pipeline.complete_session(
                db,
                session_id=session_id,
                user_id=user_id,
                family_id=family_id,
                dispatcher=dispatcher,
            )
        except _HANDLED as exc:
            return await self._fail(
                db, CompleteScreeningResult, exc, "Failed to complete screening",
            )
        return CompleteScreeningResult(
            success=True,
            session_id=outcome.session_id,
            payment_intent_id=outcome.payment_intent_id,
            error=outcome.warning,
            error_code=UpstreamError.code if outcome.warning else None,
        )

    async def generate_analysis(
        self, db: AsyncSession, *, session_id: str,
    ) -> GenerateAnalysisResult:
        try:
            analysis_id = await self._pipeline.generate_analysis(
                db, session_id=session_id,
            )
        except _HANDLED as exc:
            return await self._fail(
                db, GenerateAnalysisResult, exc, "Failed to generate analysis",
            )
        return GenerateAnalysisResult(success=True, analysis_id=analysis_id)

    async def get_results(
        self, db: AsyncSession, *, session_id: str,
    ) -> ScreeningResultsResult:
        try:
            data = await self._pipeline.get_results(db, session_id=session_id)
        except _HANDLED as exc:
            return await self._fail(
                db, ScreeningResultsResult, exc, "Failed to fetch screening results",
            )
        return ScreeningResultsResult(success=True, data=data)

    async def list_family_sessions(
        self, db: AsyncSession, *, family_id: str,
    ) -> FamilySessionsResult:
        try:
            sessions = await self._pipeline.list_family_sessions(
                db, family_id=family_id,
            )
        except _HANDLED as exc:
            return await self._fail(
                db, FamilySessionsResult, exc, "Failed to fetch screening sessions",
            )
        return FamilySessionsResult(success=True, sessions=sessions)

    async def settle_payment(
        self, db: AsyncSession, *, intent_id: str,
    ) -> SettlePaymentResult:
        try:
            outcome = await self._pipeline.settle_payment(db, intent_id=intent_id)
        except _HANDLED as exc:
            return await self._fail(
                db, SettlePaymentResult, exc, "Failed to settle payment",
            )
        return SettlePaymentResult(
            success=True,
            intent_id=outcome.intent_id,
            session_id=outcome.session_id,
            already_settled=outcome.already_settled,
        )

    # ==================================================================
    # Single-submission screenings and clinic
    # ==================================================================

    async def submit_screening(
        self,
        db: AsyncSession,
        *,
        family_id: str,
        child_name: str,
        age_months: int,
        answers: Mapping[str, bool | None],
    ) -> SubmitScreeningResult:
        try:
            outcome = await self._submissions.submit_screening(
                db,
                family_id=family_id,
                child_name=child_name,
                child_age_months=age_months,
                answers=answers,
            )
        except _HANDLED as exc:
            return await self._fail(
                db, SubmitScreeningResult, exc, "Failed to save screening",
            )
        return SubmitScreeningResult(
            success=True,
            screening_id=outcome.screening_id,
            risk_level=outcome.risk_level,
        )

    async def request_review_payment(
        self, db: AsyncSession, *, screening_id: str, user_id: str,
    ) -> PaymentIntentResult:
        try:
            intent_id = await self._submissions.request_review_payment(
                db, screening_id=screening_id, user_id=user_id,
            )
        except _HANDLED as exc:
            return await self._fail(
                db, PaymentIntentResult, exc, "Failed to create payment intent",
            )
        return PaymentIntentResult(success=True, payment_intent_id=intent_id)

    async def get_clinic_screenings(self, db: AsyncSession) -> ClinicScreeningsResult:
        try:
            data = await self._submissions.clinic_queue(db)
        except _HANDLED as exc:
            return await self._fail(
                db, ClinicScreeningsResult, exc, "Failed to fetch clinic screenings",
            )
        return ClinicScreeningsResult(success=True, data=data)

    async def record_review(
        self,
        db: AsyncSession,
        *,
        screening_id: str,
        reviewer_id: str,
        review: ReviewInput,
    ) -> RecordReviewResult:
        try:
            outcome = await self._submissions.record_review(
                db, screening_id=screening_id, reviewer_id=reviewer_id, review=review,
            )
        except _HANDLED as exc:
            return await self._fail(
                db, RecordReviewResult, exc, "Failed to record clinical review",
            )
        return RecordReviewResult(
            success=True, review_id=outcome.review_id, result_hash=outcome.result_hash,
        )

    async def verify_review(
        self, db: AsyncSession, *, review_id: str,
    ) -> VerifyReviewResult:
        try:
            valid = await self._submissions.verify_review(db, review_id=review_id)
        except _HANDLED as exc:
            return await self._fail(
                db, VerifyReviewResult, exc, "Failed to verify clinical review",
            )
        return VerifyReviewResult(success=True, valid=valid)

    # ==================================================================
    # Evidence
    # ==================================================================

    async def upload_evidence(
        self,
        *,
        file_path: str,
        data: bytes,
        user_id: str,
        screening_id: str,
        question_id: str,
        content_type: str | None = None,
    ) -> UploadEvidenceResult:
        try:
            path = await self._evidence.upload(
                file_path=file_path,
                data=data,
                user_id=user_id,
                screening_id=screening_id,
                question_id=question_id,
                content_type=content_type,
            )
        except ScreeningError as exc:
            logger.warning("Evidence upload failed: %s", exc)
            return UploadEvidenceResult(success=False, error=str(exc), error_code=exc.code)
        return UploadEvidenceResult(success=True, path=path)

    # ==================================================================
    # Internal helpers
    # ==================================================================

    @staticmethod
    async def _fail(
        db: AsyncSession,
        result_cls: type[R],
        exc: Exception,
        context: str,
    ) -> R:
        """Roll back and build a failure envelope for *exc*."""
        await db.rollback()
        if isinstance(exc, ScreeningError):
            logger.warning("%s: %s", context, exc)
            return result_cls(success=False, error=str(exc), error_code=exc.code)
        logger.exception("%s: database error", context)
        return result_cls(
            success=False,
            error=f"{context}: {exc}",
            error_code=UpstreamError.code,
        )
