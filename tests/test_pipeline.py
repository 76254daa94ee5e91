"""ScreeningPipeline tests with mocked DB layer, payment gateway and LLM.

Test scenarios:
  - Session creation: band assignment, input validation
  - Responses: catalog snapshot, unknown questions dropped, duplicates,
    state guard
  - Completion: analysis queued, payment intent linked, payment failure
    leaves the session COMPLETED and retryable
  - Analysis: idempotent generation, concurrent-insert race, guards
  - Results and family listing
  - Payment settlement: PAID transition, idempotence, failed intents
"""

import uuid

import pytest

from devscreen_rules.analyzer import RiskAnalyzer
from devscreen_rules.config import ScreeningSettings
from devscreen_rules.errors import (
    InvalidInputError,
    NotFoundError,
    PreconditionFailedError,
)
from devscreen_rules.pipeline import ScreeningPipeline

from helpers.fakes import (
    FakeCompletionClient,
    FakePaymentGateway,
    FakePaymentIntentRepository,
    FakeSessionRepository,
    RecordingDispatcher,
)


# =====================================================================
# Fixtures
# =====================================================================


@pytest.fixture
def repo():
    return FakeSessionRepository()


@pytest.fixture
def intents():
    return FakePaymentIntentRepository()


@pytest.fixture
def gateway(intents):
    return FakePaymentGateway(intents)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def pipeline(catalog, repo, intents, gateway):
    """ScreeningPipeline with in-memory repositories and no LLM client."""
    p = ScreeningPipeline(
        catalog,
        settings=ScreeningSettings(),
        analyzer=RiskAnalyzer(),
        payments=gateway,
    )
    p._repo = repo
    p._intents = intents
    return p


# =====================================================================
# Helpers
# =====================================================================


async def _session_with_answers(pipeline, mock_db, answers: dict[str, str]):
    row = await pipeline.create_session(
        mock_db, family_id="fam1", child_name="Ana", child_age_months=10,
    )
    for qid, value in answers.items():
        await pipeline.save_response(
            mock_db, session_id=str(row.session_id),
            question_id=qid, response_value=value,
        )
    return row


async def _completed_session(pipeline, mock_db, answers=None):
    row = await _session_with_answers(
        pipeline, mock_db, answers or {"gm_9_12_1": "no", "fm_9_12_1": "yes"},
    )
    await pipeline.complete_session(
        mock_db, session_id=str(row.session_id), user_id="user1", family_id="fam1",
    )
    return row


# =====================================================================
# Session creation
# =====================================================================


class TestCreateSession:

    @pytest.mark.asyncio
    async def test_assigns_band(self, pipeline, mock_db):
        row = await pipeline.create_session(
            mock_db, family_id="fam1", child_name="  Ana ", child_age_months=10,
        )
        assert row.age_group == "9-12"
        assert row.status == "IN_PROGRESS"
        assert row.child_name == "Ana"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("family_id,name,age", [
        ("", "Ana", 10),
        ("fam1", "", 10),
        ("fam1", "   ", 10),
        ("fam1", "Ana", -1),
        ("fam1", "Ana", 37),
    ])
    async def test_invalid_parameters(self, pipeline, mock_db, family_id, name, age):
        with pytest.raises(InvalidInputError, match="Invalid parameters"):
            await pipeline.create_session(
                mock_db, family_id=family_id, child_name=name, child_age_months=age,
            )

    @pytest.mark.asyncio
    async def test_age_36_accepted(self, pipeline, mock_db):
        row = await pipeline.create_session(
            mock_db, family_id="fam1", child_name="Ana", child_age_months=36,
        )
        assert row.age_group == "30-36"


# =====================================================================
# Responses
# =====================================================================


class TestSaveResponse:

    @pytest.mark.asyncio
    async def test_snapshots_question(self, pipeline, repo, mock_db, catalog):
        row = await _session_with_answers(pipeline, mock_db, {"lang_9_12_1": "sometimes"})
        stored = repo.responses[0]
        q = catalog.get_question("lang_9_12_1")
        assert stored.session_id == row.session_id
        assert stored.question_text == q.question_text
        assert stored.category == "language"
        assert stored.milestone_age_months == q.milestone_age_months
        assert stored.response_value == "sometimes"

    @pytest.mark.asyncio
    async def test_unknown_question_dropped(self, pipeline, repo, mock_db):
        row = await _session_with_answers(pipeline, mock_db, {})
        result = await pipeline.save_response(
            mock_db, session_id=str(row.session_id),
            question_id="not_a_question", response_value="yes",
        )
        assert result is None
        assert repo.responses == []

    @pytest.mark.asyncio
    async def test_duplicate_answer_rejected(self, pipeline, mock_db):
        row = await _session_with_answers(pipeline, mock_db, {"gm_9_12_1": "yes"})
        with pytest.raises(PreconditionFailedError, match="already answered"):
            await pipeline.save_response(
                mock_db, session_id=str(row.session_id),
                question_id="gm_9_12_1", response_value="no",
            )

    @pytest.mark.asyncio
    async def test_invalid_value(self, pipeline, mock_db):
        row = await _session_with_answers(pipeline, mock_db, {})
        with pytest.raises(InvalidInputError, match="Invalid response value"):
            await pipeline.save_response(
                mock_db, session_id=str(row.session_id),
                question_id="gm_9_12_1", response_value="maybe",
            )

    @pytest.mark.asyncio
    async def test_missing_parameters(self, pipeline, mock_db):
        with pytest.raises(InvalidInputError, match="Missing required parameters"):
            await pipeline.save_response(
                mock_db, session_id="", question_id="gm_9_12_1", response_value="yes",
            )

    @pytest.mark.asyncio
    async def test_unknown_session(self, pipeline, mock_db):
        with pytest.raises(NotFoundError):
            await pipeline.save_response(
                mock_db, session_id=str(uuid.uuid4()),
                question_id="gm_9_12_1", response_value="yes",
            )

    @pytest.mark.asyncio
    async def test_malformed_session_id(self, pipeline, mock_db):
        with pytest.raises(InvalidInputError):
            await pipeline.save_response(
                mock_db, session_id="not-a-uuid",
                question_id="gm_9_12_1", response_value="yes",
            )

    @pytest.mark.asyncio
    async def test_rejected_after_completion(self, pipeline, mock_db):
        row = await _completed_session(pipeline, mock_db)
        with pytest.raises(PreconditionFailedError, match="IN_PROGRESS"):
            await pipeline.save_response(
                mock_db, session_id=str(row.session_id),
                question_id="lang_9_12_1", response_value="yes",
            )


# =====================================================================
# Completion
# =====================================================================


class TestCompleteSession:

    @pytest.mark.asyncio
    async def test_links_payment_and_queues_analysis(
        self, pipeline, intents, mock_db, dispatcher,
    ):
        row = await _session_with_answers(pipeline, mock_db, {"gm_9_12_1": "yes"})
        outcome = await pipeline.complete_session(
            mock_db, session_id=str(row.session_id), user_id="user1",
            family_id="fam1", dispatcher=dispatcher,
        )
        assert outcome.warning is None
        assert outcome.payment_intent_id is not None
        assert row.status == "PAYMENT_PENDING"
        assert row.payment_intent_id == outcome.payment_intent_id
        assert row.analysis_status == "PENDING"
        assert dispatcher.dispatched == [str(row.session_id)]

        intent = intents.intents[uuid.UUID(outcome.payment_intent_id)]
        assert intent.amount == 50000
        assert intent.payment_method == "USDC_BALANCE"
        assert intent.status == "PENDING"
        assert intent.screening_id is None

    @pytest.mark.asyncio
    async def test_payment_failure_is_a_warning(self, pipeline, gateway, mock_db):
        gateway.fail = True
        row = await _session_with_answers(pipeline, mock_db, {"gm_9_12_1": "yes"})
        outcome = await pipeline.complete_session(
            mock_db, session_id=str(row.session_id), user_id="user1", family_id="fam1",
        )
        assert outcome.payment_intent_id is None
        assert outcome.warning.startswith(
            "Screening completed but payment intent creation failed:"
        )
        assert row.status == "COMPLETED"
        assert row.payment_intent_id is None

    @pytest.mark.asyncio
    async def test_completion_retry_after_payment_failure(
        self, pipeline, gateway, mock_db, dispatcher,
    ):
        gateway.fail = True
        row = await _session_with_answers(pipeline, mock_db, {"gm_9_12_1": "yes"})
        await pipeline.complete_session(
            mock_db, session_id=str(row.session_id), user_id="user1",
            family_id="fam1", dispatcher=dispatcher,
        )

        gateway.fail = False
        outcome = await pipeline.complete_session(
            mock_db, session_id=str(row.session_id), user_id="user1",
            family_id="fam1", dispatcher=dispatcher,
        )
        assert outcome.payment_intent_id is not None
        assert row.status == "PAYMENT_PENDING"
        # Analysis was already pending; it is not queued twice
        assert dispatcher.dispatched == [str(row.session_id)]

    @pytest.mark.asyncio
    async def test_second_completion_rejected(self, pipeline, mock_db):
        row = await _completed_session(pipeline, mock_db)
        with pytest.raises(PreconditionFailedError):
            await pipeline.complete_session(
                mock_db, session_id=str(row.session_id), user_id="user1",
                family_id="fam1",
            )

    @pytest.mark.asyncio
    async def test_without_dispatcher_stays_pending(self, pipeline, mock_db):
        row = await _completed_session(pipeline, mock_db)
        assert row.analysis_status == "PENDING"

    @pytest.mark.asyncio
    async def test_missing_identity(self, pipeline, mock_db):
        row = await _session_with_answers(pipeline, mock_db, {})
        with pytest.raises(InvalidInputError):
            await pipeline.complete_session(
                mock_db, session_id=str(row.session_id), user_id="", family_id="fam1",
            )


# =====================================================================
# Analysis
# =====================================================================


class TestGenerateAnalysis:

    @pytest.mark.asyncio
    async def test_fallback_analysis_stored(self, pipeline, repo, mock_db):
        row = await _completed_session(
            pipeline, mock_db,
            {"gm_9_12_1": "no", "fm_9_12_1": "no", "lang_9_12_1": "no", "ps_9_12_1": "yes"},
        )
        analysis_id = await pipeline.generate_analysis(
            mock_db, session_id=str(row.session_id),
        )
        stored = repo.analyses[row.session_id]
        assert str(stored.analysis_id) == analysis_id
        assert stored.risk_level == "HIGH"
        assert stored.risk_score == pytest.approx(75.0)
        assert row.analysis_status == "READY"

    @pytest.mark.asyncio
    async def test_llm_analysis_stored(self, catalog, repo, intents, gateway, mock_db):
        client = FakeCompletionClient({
            "riskLevel": "LOW", "riskScore": 15, "summary": "On track.",
            "recommendations": ["Keep reading together"],
        })
        p = ScreeningPipeline(
            catalog, settings=ScreeningSettings(),
            analyzer=RiskAnalyzer(client), payments=gateway,
        )
        p._repo = repo
        p._intents = intents
        row = await _completed_session(p, mock_db)
        await p.generate_analysis(mock_db, session_id=str(row.session_id))

        stored = repo.analyses[row.session_id]
        assert stored.ai_model == "fake-model"
        assert stored.recommendations == ["Keep reading together"]
        assert stored.raw_response["riskScore"] == 15

    @pytest.mark.asyncio
    async def test_second_call_returns_same_id(self, pipeline, repo, mock_db):
        row = await _completed_session(pipeline, mock_db)
        first = await pipeline.generate_analysis(mock_db, session_id=str(row.session_id))
        second = await pipeline.generate_analysis(mock_db, session_id=str(row.session_id))
        assert first == second
        assert len(repo.analyses) == 1

    @pytest.mark.asyncio
    async def test_concurrent_insert_reuses_winner(self, pipeline, repo, mock_db):
        row = await _completed_session(pipeline, mock_db)
        repo.race_on_add_analysis = True
        analysis_id = await pipeline.generate_analysis(
            mock_db, session_id=str(row.session_id),
        )
        assert analysis_id == str(repo.analyses[row.session_id].analysis_id)
        assert row.analysis_status == "READY"

    @pytest.mark.asyncio
    async def test_in_progress_rejected(self, pipeline, mock_db):
        row = await _session_with_answers(pipeline, mock_db, {"gm_9_12_1": "yes"})
        with pytest.raises(PreconditionFailedError, match="not completed"):
            await pipeline.generate_analysis(mock_db, session_id=str(row.session_id))

    @pytest.mark.asyncio
    async def test_no_responses_rejected(self, pipeline, mock_db):
        row = await _session_with_answers(pipeline, mock_db, {})
        await pipeline.complete_session(
            mock_db, session_id=str(row.session_id), user_id="u", family_id="fam1",
        )
        with pytest.raises(PreconditionFailedError, match="No responses"):
            await pipeline.generate_analysis(mock_db, session_id=str(row.session_id))

    @pytest.mark.asyncio
    async def test_mark_failed(self, pipeline, mock_db):
        row = await _completed_session(pipeline, mock_db)
        await pipeline.mark_analysis_failed(mock_db, session_id=str(row.session_id))
        assert row.analysis_status == "FAILED"


# =====================================================================
# Reads
# =====================================================================


class TestResults:

    @pytest.mark.asyncio
    async def test_results_in_answer_order(self, pipeline, mock_db):
        row = await _session_with_answers(
            pipeline, mock_db, {"ps_9_12_1": "yes", "gm_9_12_1": "no"},
        )
        data = await pipeline.get_results(mock_db, session_id=str(row.session_id))
        assert data.session.session_id == row.session_id
        assert [r.question_id for r in data.responses] == ["ps_9_12_1", "gm_9_12_1"]
        assert data.analysis is None
        assert data.analysis_status is None

    @pytest.mark.asyncio
    async def test_results_include_analysis(self, pipeline, mock_db):
        row = await _completed_session(pipeline, mock_db)
        await pipeline.generate_analysis(mock_db, session_id=str(row.session_id))
        data = await pipeline.get_results(mock_db, session_id=str(row.session_id))
        assert data.analysis is not None
        assert data.analysis_status == "READY"

    @pytest.mark.asyncio
    async def test_family_sessions_newest_first(self, pipeline, mock_db):
        first = await _session_with_answers(pipeline, mock_db, {})
        second = await _session_with_answers(pipeline, mock_db, {})
        sessions = await pipeline.list_family_sessions(mock_db, family_id="fam1")
        assert [s.session_id for s in sessions] == [second.session_id, first.session_id]

    @pytest.mark.asyncio
    async def test_unknown_session_not_found(self, pipeline, mock_db):
        with pytest.raises(NotFoundError, match="not found"):
            await pipeline.get_results(mock_db, session_id=str(uuid.uuid4()))


# =====================================================================
# Payment settlement
# =====================================================================


class TestSettlePayment:

    @pytest.mark.asyncio
    async def test_settlement_marks_paid(self, pipeline, intents, mock_db):
        row = await _completed_session(pipeline, mock_db)
        outcome = await pipeline.settle_payment(
            mock_db, intent_id=row.payment_intent_id,
        )
        assert outcome.already_settled is False
        assert outcome.session_id == str(row.session_id)
        assert row.status == "PAID"
        assert intents.intents[uuid.UUID(row.payment_intent_id)].status == "SETTLED"

    @pytest.mark.asyncio
    async def test_settlement_idempotent(self, pipeline, mock_db):
        row = await _completed_session(pipeline, mock_db)
        await pipeline.settle_payment(mock_db, intent_id=row.payment_intent_id)
        again = await pipeline.settle_payment(mock_db, intent_id=row.payment_intent_id)
        assert again.already_settled is True
        assert row.status == "PAID"

    @pytest.mark.asyncio
    async def test_failed_intent_rejected(self, pipeline, intents, mock_db):
        row = await _completed_session(pipeline, mock_db)
        intents.intents[uuid.UUID(row.payment_intent_id)].status = "FAILED"
        with pytest.raises(PreconditionFailedError):
            await pipeline.settle_payment(mock_db, intent_id=row.payment_intent_id)

    @pytest.mark.asyncio
    async def test_unknown_intent(self, pipeline, mock_db):
        with pytest.raises(NotFoundError):
            await pipeline.settle_payment(mock_db, intent_id=str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_analysis_still_allowed_after_payment(self, pipeline, mock_db):
        row = await _completed_session(pipeline, mock_db)
        await pipeline.settle_payment(mock_db, intent_id=row.payment_intent_id)
        assert await pipeline.generate_analysis(mock_db, session_id=str(row.session_id))
