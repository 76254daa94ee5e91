"""ScreeningPipeline — orchestrates the questionnaire session workflow.

Session lifecycle (``status`` column)::

    IN_PROGRESS ──► COMPLETED ──► PAYMENT_PENDING ──► PAID
                        │                               ▲
                        └── payment intent failed       │
                            (stays COMPLETED,     settlement callback
                             completion retryable)

On completion two things happen:

  1. the session's ``analysis_status`` becomes ``PENDING`` and analysis is
     handed to an :class:`AnalysisDispatcher` (never awaited here);
  2. a payment intent is created synchronously.  If that fails the session
     stays ``COMPLETED`` and the caller gets a warning, never a rollback.

Analysis is idempotent: at most one analysis row exists per session, which
the database enforces with a unique constraint.  A concurrent duplicate
insert is resolved by re-reading the winner.

Usage::

    pipeline = ScreeningPipeline(
        catalog, settings=settings, analyzer=analyzer,
        payments=LedgerPaymentGateway(),
    )
    row = await pipeline.create_session(
        db, family_id="f1", child_name="Ana", child_age_months=10,
    )
    await pipeline.save_response(
        db, session_id=str(row.session_id),
        question_id="gm_9_12_1", response_value="yes",
    )
    outcome = await pipeline.complete_session(
        db, session_id=str(row.session_id), user_id="u1", family_id="f1",
    )
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devscreen_db.models.enums import (
    AnalysisStatus,
    PaymentStatus,
    ResponseValue,
    SessionStatus,
    status_rank,
)
from devscreen_db.models.session import ScreeningResponse, ScreeningSession
from devscreen_db.repository import PaymentIntentRepository, SessionRepository

from devscreen_rules.analyzer import RiskAnalyzer
from devscreen_rules.catalog import QuestionCatalog
from devscreen_rules.config import ScreeningSettings
from devscreen_rules.constants import MAX_AGE_MONTHS, MIN_AGE_MONTHS
from devscreen_rules.errors import (
    InvalidInputError,
    NotFoundError,
    PreconditionFailedError,
    UpstreamError,
)
from devscreen_rules.interfaces import AnalysisDispatcher, PaymentGateway
from devscreen_rules.models.results import (
    AnalysisView,
    ResponseView,
    ScreeningResultsData,
    SessionView,
)
from devscreen_rules.models.scoring import AnsweredQuestion

logger = logging.getLogger(__name__)


def parse_uuid(value: str, what: str) -> uuid.UUID:
    """Parse an identifier, raising :class:`InvalidInputError` if malformed."""
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        raise InvalidInputError(f"Invalid {what}: {value!r}") from None


@dataclass(frozen=True)
class CompletionOutcome:
    """Result of :meth:`ScreeningPipeline.complete_session`."""

    session_id: str
    payment_intent_id: str | None = None
    # Set when completion succeeded but payment-intent creation did not
    warning: str | None = None


@dataclass(frozen=True)
class SettlementOutcome:
    """Result of :meth:`ScreeningPipeline.settle_payment`."""

    intent_id: str
    session_id: str | None = None
    already_settled: bool = False


class ScreeningPipeline:
    """Orchestrates session creation, responses, completion and analysis.

    Args:
        catalog: the loaded :class:`QuestionCatalog`
        settings: payment amount, clinic id and method used at completion
        analyzer: produces the risk verdict for ``generate_analysis``
        payments: payment subsystem used to create intents on completion
    """

    def __init__(
        self,
        catalog: QuestionCatalog,
        *,
        settings: ScreeningSettings,
        analyzer: RiskAnalyzer,
        payments: PaymentGateway,
    ) -> None:
        self._catalog = catalog
        self._settings = settings
        self._analyzer = analyzer
        self._payments = payments
        self._repo = SessionRepository()
        self._intents = PaymentIntentRepository()

    @property
    def catalog(self) -> QuestionCatalog:
        return self._catalog

    # ==================================================================
    # Session lifecycle
    # ==================================================================

    async def create_session(
        self,
        db: AsyncSession,
        *,
        family_id: str,
        child_name: str,
        child_age_months: int,
    ) -> ScreeningSession:
        """Create an ``IN_PROGRESS`` session with its age band assigned.

        Raises:
            InvalidInputError: missing family/child or age outside [0, 36].
        """
        if (
            not family_id
            or not child_name
            or not child_name.strip()
            or child_age_months is None
            or not MIN_AGE_MONTHS <= child_age_months <= MAX_AGE_MONTHS
        ):
            raise InvalidInputError("Invalid parameters")

        band = self._catalog.assign_band(child_age_months)
        row = await self._repo.create_session(
            db,
            family_id=family_id,
            child_name=child_name.strip(),
            child_age_months=child_age_months,
            age_group=band.label,
        )
        logger.info(
            "Screening session created: session_id=%s, family_id=%s, age_group=%s",
            row.session_id, family_id, band.label,
        )
        return row

    async def save_response(
        self,
        db: AsyncSession,
        *,
        session_id: str,
        question_id: str,
        response_value: str,
    ) -> ScreeningResponse | None:
        """Store one answer, snapshotting the question from the catalog.

        Returns ``None`` (and stores nothing) when *question_id* is not in
        the catalog.

        Raises:
            InvalidInputError: missing parameters or unknown response value.
            NotFoundError: the session does not exist.
            PreconditionFailedError: the session is no longer
                ``IN_PROGRESS``, or the question was already answered.
        """
        if not session_id or not question_id or not response_value:
            raise InvalidInputError("Missing required parameters")
        try:
            value = ResponseValue(response_value)
        except ValueError:
            raise InvalidInputError(
                f"Invalid response value: {response_value!r}"
            ) from None

        row = await self._load_session(db, session_id)
        if row.status != SessionStatus.IN_PROGRESS.value:
            raise PreconditionFailedError(
                f"Responses can only be saved while the session is IN_PROGRESS "
                f"(status is {row.status})"
            )

        question = self._catalog.get_question(question_id)
        if question is None:
            logger.warning(
                "Dropping response for unknown question: session_id=%s, question_id=%s",
                session_id, question_id,
            )
            return None

        if await self._repo.get_response(db, row.session_id, question_id) is not None:
            raise PreconditionFailedError(
                f"Question {question_id} already answered in this session"
            )

        return await self._repo.add_response(
            db,
            row,
            question_id=question.question_id,
            question_text=question.question_text,
            category=question.category,
            response_value=value.value,
            milestone_age_months=question.milestone_age_months,
        )

    async def complete_session(
        self,
        db: AsyncSession,
        *,
        session_id: str,
        user_id: str,
        family_id: str,
        dispatcher: AnalysisDispatcher | None = None,
    ) -> CompletionOutcome:
        """Complete a session, queue its analysis and create a payment intent.

        Accepted from ``IN_PROGRESS``, and from ``COMPLETED`` when no payment
        intent is linked yet (retrying a failed payment).  A payment failure
        does not undo completion; it is returned as ``warning``.

        Without a *dispatcher* the session is left with ``analysis_status``
        ``PENDING`` for a later sweep to pick up.

        Raises:
            InvalidInputError: missing identifiers.
            NotFoundError: the session does not exist.
            PreconditionFailedError: the session cannot be completed from its
                current status.
        """
        if not session_id or not user_id or not family_id:
            raise InvalidInputError("Missing required parameters")

        row = await self._load_session(db, session_id)
        if row.status == SessionStatus.IN_PROGRESS.value:
            await self._repo.update_status(db, row, SessionStatus.COMPLETED)
        elif (
            row.status == SessionStatus.COMPLETED.value
            and row.payment_intent_id is None
        ):
            logger.info("Retrying payment intent for completed session %s", session_id)
        else:
            raise PreconditionFailedError(
                f"Session cannot be completed from status {row.status}"
            )

        # --- Queue analysis (not awaited) ---
        if row.analysis_status in (None, AnalysisStatus.FAILED.value):
            await self._repo.set_analysis_status(
                db, row, AnalysisStatus.PENDING.value,
            )
            if dispatcher is not None:
                dispatcher.dispatch(str(row.session_id))

        # --- Payment intent (synchronous; failure is a warning) ---
        try:
            intent_id = await self._payments.create_intent(
                db,
                user_id=user_id,
                family_id=family_id,
                clinic_id=self._settings.clinic_id,
                amount=self._settings.payment_amount_idr,
                payment_method=self._settings.payment_method,
            )
        except UpstreamError as exc:
            logger.error(
                "Failed to create payment intent for session %s: %s", session_id, exc,
            )
            return CompletionOutcome(
                session_id=str(row.session_id),
                warning=f"Screening completed but payment intent creation failed: {exc}",
            )

        await self._repo.update_status(
            db, row, SessionStatus.PAYMENT_PENDING, payment_intent_id=intent_id,
        )
        logger.info(
            "Session %s completed; payment intent %s pending", session_id, intent_id,
        )
        return CompletionOutcome(
            session_id=str(row.session_id), payment_intent_id=intent_id,
        )

    # ==================================================================
    # Analysis
    # ==================================================================

    async def generate_analysis(self, db: AsyncSession, *, session_id: str) -> str:
        """Generate the session's analysis once and return its id.

        A second call returns the existing analysis id without inserting.

        Raises:
            NotFoundError: the session does not exist.
            PreconditionFailedError: the session is not completed yet, or has
                no responses.
        """
        row = await self._load_session(db, session_id)

        existing = await self._repo.get_analysis(db, row.session_id)
        if existing is not None:
            await self._mark_ready(db, row)
            return str(existing.analysis_id)

        if status_rank(row.status) < status_rank(SessionStatus.COMPLETED):
            raise PreconditionFailedError(
                f"Screening session {session_id} is not completed yet"
            )

        responses = await self._repo.list_responses(db, row.session_id)
        if not responses:
            raise PreconditionFailedError(
                f"No responses found for screening session {session_id}"
            )

        verdict = await self._analyzer.analyze(
            [AnsweredQuestion.model_validate(r) for r in responses],
            row.child_age_months,
        )

        try:
            analysis = await self._repo.add_analysis(
                db,
                session_id=row.session_id,
                risk_level=verdict.risk_level,
                risk_score=verdict.risk_score,
                summary=verdict.summary,
                recommendations=verdict.recommendations,
                ai_model=verdict.ai_model,
                ai_provider=verdict.ai_provider,
                raw_response=verdict.raw_response,
            )
        except IntegrityError:
            # Lost the race to a concurrent generator; its row is the analysis
            winner = await self._repo.get_analysis(db, row.session_id)
            if winner is None:
                raise UpstreamError(
                    f"Analysis insert for session {session_id} conflicted "
                    f"but no analysis exists"
                ) from None
            logger.info(
                "Analysis for session %s was created concurrently; reusing %s",
                session_id, winner.analysis_id,
            )
            await self._mark_ready(db, row)
            return str(winner.analysis_id)

        await self._mark_ready(db, row)
        logger.info(
            "Analysis generated: session_id=%s, risk_level=%s, fallback=%s",
            session_id, verdict.risk_level, verdict.fallback,
        )
        return str(analysis.analysis_id)

    async def mark_analysis_failed(self, db: AsyncSession, *, session_id: str) -> None:
        """Record that the background analysis job gave up."""
        row = await self._load_session(db, session_id)
        await self._repo.set_analysis_status(db, row, AnalysisStatus.FAILED.value)

    async def _mark_ready(self, db: AsyncSession, row: ScreeningSession) -> None:
        if row.analysis_status != AnalysisStatus.READY.value:
            await self._repo.set_analysis_status(db, row, AnalysisStatus.READY.value)

    # ==================================================================
    # Reads
    # ==================================================================

    async def get_results(
        self, db: AsyncSession, *, session_id: str,
    ) -> ScreeningResultsData:
        """Session, responses in answer order, analysis and analysis status."""
        row = await self._load_session(db, session_id)
        responses = await self._repo.list_responses(db, row.session_id)
        analysis = await self._repo.get_analysis(db, row.session_id)
        return ScreeningResultsData(
            session=SessionView.model_validate(row),
            responses=[ResponseView.model_validate(r) for r in responses],
            analysis=AnalysisView.model_validate(analysis) if analysis else None,
            analysis_status=row.analysis_status,
        )

    async def list_family_sessions(
        self, db: AsyncSession, *, family_id: str,
    ) -> list[SessionView]:
        """All sessions of a family, most recent first."""
        if not family_id:
            raise InvalidInputError("Missing required parameters")
        rows = await self._repo.list_by_family(db, family_id)
        return [SessionView.model_validate(r) for r in rows]

    # ==================================================================
    # Payment settlement
    # ==================================================================

    async def settle_payment(
        self, db: AsyncSession, *, intent_id: str,
    ) -> SettlementOutcome:
        """Apply the payment subsystem's settlement callback.

        Marks the intent ``SETTLED`` and advances a linked session from
        ``PAYMENT_PENDING`` to ``PAID``.  Settling an already settled intent
        changes nothing.

        Raises:
            NotFoundError: the intent does not exist.
            PreconditionFailedError: the intent has FAILED.
        """
        intent_uuid = parse_uuid(intent_id, "payment intent id")
        intent = await self._intents.get_by_id(db, intent_uuid)
        if intent is None:
            raise NotFoundError(f"Payment intent not found: {intent_id}")

        session = await self._repo.get_by_payment_intent(db, str(intent_uuid))
        session_ref = str(session.session_id) if session is not None else None

        if intent.status == PaymentStatus.SETTLED.value:
            logger.info("Payment intent %s already settled; no-op", intent_id)
            return SettlementOutcome(
                intent_id=str(intent_uuid), session_id=session_ref, already_settled=True,
            )
        if intent.status == PaymentStatus.FAILED.value:
            raise PreconditionFailedError(f"Payment intent {intent_id} has failed")

        await self._intents.mark_settled(db, intent)
        if (
            session is not None
            and session.status == SessionStatus.PAYMENT_PENDING.value
        ):
            await self._repo.update_status(db, session, SessionStatus.PAID)
        logger.info(
            "Payment intent %s settled (session=%s)", intent_id, session_ref,
        )
        return SettlementOutcome(intent_id=str(intent_uuid), session_id=session_ref)

    # ==================================================================
    # Internal helpers
    # ==================================================================

    async def _load_session(self, db: AsyncSession, session_id: str) -> ScreeningSession:
        """Fetch a session or raise :class:`NotFoundError`."""
        session_uuid = parse_uuid(session_id, "session id")
        row = await self._repo.get_by_id(db, session_uuid)
        if row is None:
            raise NotFoundError(f"Screening session {session_id} not found")
        return row
