"""HTTP route tests via httpx ASGITransport with dependency overrides.

The database session, SDK actions, catalog and dispatcher are overridden
with in-memory fakes so the FastAPI layer can be exercised end to end
without PostgreSQL or a lifespan.
"""

import uuid
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
from fastapi import BackgroundTasks
from httpx import ASGITransport

from devscreen_rules.actions import ScreeningActions
from devscreen_rules.analyzer import RiskAnalyzer
from devscreen_rules.config import ScreeningSettings, StorageSettings
from devscreen_rules.errors import NotFoundError
from devscreen_rules.pipeline import ScreeningPipeline
from devscreen_rules.storage import EvidenceStore
from devscreen_rules.submissions import SubmissionWorkflow

from devscreen_server import dependencies, worker
from devscreen_server.app import create_app
from devscreen_server.config import ServerSettings
from devscreen_server.dependencies import (
    get_actions,
    get_catalog,
    get_db,
    get_dispatcher,
)
from devscreen_server.worker import BackgroundAnalysisDispatcher

from helpers.fakes import (
    FakeClinicalReviewRepository,
    FakePaymentGateway,
    FakePaymentIntentRepository,
    FakeScreeningRepository,
    FakeSessionRepository,
    RecordingDispatcher,
)

USER = {"X-User-ID": "user1"}
CLINIC = {"X-Clinic-Key": "clinic-secret"}
WEBHOOK = {"X-Webhook-Secret": "hook-secret"}


# =====================================================================
# Fixtures
# =====================================================================


@pytest.fixture
def intents():
    return FakePaymentIntentRepository()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def app(catalog, intents, dispatcher):
    """FastAPI app with every external dependency overridden."""
    gateway = FakePaymentGateway(intents)
    pipeline = ScreeningPipeline(
        catalog, settings=ScreeningSettings(), analyzer=RiskAnalyzer(), payments=gateway,
    )
    pipeline._repo = FakeSessionRepository()
    pipeline._intents = intents

    screenings = FakeScreeningRepository()
    reviews = FakeClinicalReviewRepository()
    submissions = SubmissionWorkflow(catalog, settings=ScreeningSettings(), payments=gateway)
    submissions._screenings = screenings
    submissions._reviews = reviews
    submissions._queue._screenings = screenings
    submissions._queue._payments = intents
    submissions._queue._reviews = reviews

    actions = ScreeningActions(pipeline, submissions, EvidenceStore(StorageSettings()))

    application = create_app(ServerSettings(
        clinic_api_key="clinic-secret",
        payment_webhook_secret="hook-secret",
    ))

    async def _db():
        yield AsyncMock()

    application.dependency_overrides[get_db] = _db
    application.dependency_overrides[get_actions] = lambda: actions
    application.dependency_overrides[get_catalog] = lambda: catalog
    application.dependency_overrides[get_dispatcher] = lambda: dispatcher
    return application


@pytest_asyncio.fixture
async def client(app):
    async with httpx.AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c


async def _create_session(client) -> str:
    r = await client.post(
        "/api/v1/sessions",
        json={"family_id": "fam1", "child_name": "Ana", "child_age_months": 10},
        headers=USER,
    )
    assert r.status_code == 201
    return r.json()["session_id"]


# =====================================================================
# Reference data
# =====================================================================


class TestReference:

    @pytest.mark.asyncio
    async def test_age_bands(self, client):
        r = await client.get("/api/v1/reference/age-bands")
        assert r.status_code == 200
        bands = r.json()
        assert len(bands) == 9
        assert bands[0] == {
            "label": "0-3", "start_month": 0, "end_month": 3, "question_count": 4,
        }

    @pytest.mark.asyncio
    async def test_questions_for_age(self, client):
        r = await client.get("/api/v1/reference/questions", params={"age_months": 10})
        body = r.json()
        assert body["age_group"] == "9-12"
        assert len(body["questions"]) == 10

    @pytest.mark.asyncio
    async def test_negative_age_rejected(self, client):
        r = await client.get("/api/v1/reference/questions", params={"age_months": -1})
        assert r.status_code == 422

    @pytest.mark.asyncio
    async def test_categories(self, client):
        r = await client.get("/api/v1/reference/categories")
        assert {"id": "language", "name": "Language"} in r.json()


# =====================================================================
# Identity
# =====================================================================


class TestIdentity:

    @pytest.mark.asyncio
    async def test_missing_user_header(self, client):
        r = await client.post(
            "/api/v1/sessions",
            json={"family_id": "fam1", "child_name": "Ana", "child_age_months": 10},
        )
        assert r.status_code == 401


# =====================================================================
# Sessions
# =====================================================================


class TestSessionRoutes:

    @pytest.mark.asyncio
    async def test_full_flow(self, client, dispatcher):
        session_id = await _create_session(client)

        r = await client.post(
            f"/api/v1/sessions/{session_id}/responses",
            json={"question_id": "gm_9_12_1", "response_value": "no"},
            headers=USER,
        )
        assert r.status_code == 200
        assert r.json()["stored"] is True

        r = await client.post(
            f"/api/v1/sessions/{session_id}/complete",
            json={"family_id": "fam1"},
            headers=USER,
        )
        body = r.json()
        assert r.status_code == 200
        assert body["success"] is True
        assert body["payment_intent_id"]
        assert dispatcher.dispatched == [session_id]
        assert dispatcher.released == [session_id]

        r = await client.post(f"/api/v1/sessions/{session_id}/analysis", headers=USER)
        assert r.json()["analysis_id"]

        r = await client.get(f"/api/v1/sessions/{session_id}", headers=USER)
        data = r.json()["data"]
        assert data["analysis_status"] == "READY"
        assert data["analysis"]["risk_level"] == "HIGH"
        assert [x["question_id"] for x in data["responses"]] == ["gm_9_12_1"]

    @pytest.mark.asyncio
    async def test_invalid_age_is_400(self, client):
        r = await client.post(
            "/api/v1/sessions",
            json={"family_id": "fam1", "child_name": "Ana", "child_age_months": 50},
            headers=USER,
        )
        assert r.status_code == 400
        assert r.json() == {
            "success": False,
            "error": "Invalid parameters",
            "error_code": "invalid_input",
            "session_id": None,
        }

    @pytest.mark.asyncio
    async def test_unknown_session_is_404(self, client):
        r = await client.get(f"/api/v1/sessions/{uuid.uuid4()}", headers=USER)
        assert r.status_code == 404
        assert r.json()["error_code"] == "not_found"

    @pytest.mark.asyncio
    async def test_analysis_before_completion_is_409(self, client):
        session_id = await _create_session(client)
        r = await client.post(f"/api/v1/sessions/{session_id}/analysis", headers=USER)
        assert r.status_code == 409

    @pytest.mark.asyncio
    async def test_family_sessions(self, client):
        await _create_session(client)
        r = await client.get("/api/v1/families/fam1/sessions", headers=USER)
        assert len(r.json()["sessions"]) == 1


# =====================================================================
# Payments
# =====================================================================


class TestPaymentRoutes:

    @pytest.mark.asyncio
    async def test_settle_requires_secret(self, client):
        r = await client.post(f"/api/v1/payments/{uuid.uuid4()}/settle")
        assert r.status_code == 401
        r = await client.post(
            f"/api/v1/payments/{uuid.uuid4()}/settle",
            headers={"X-Webhook-Secret": "wrong"},
        )
        assert r.status_code == 403

    @pytest.mark.asyncio
    async def test_settle_marks_paid(self, client):
        session_id = await _create_session(client)
        r = await client.post(
            f"/api/v1/sessions/{session_id}/complete",
            json={"family_id": "fam1"},
            headers=USER,
        )
        intent_id = r.json()["payment_intent_id"]

        r = await client.post(f"/api/v1/payments/{intent_id}/settle", headers=WEBHOOK)
        assert r.status_code == 200
        assert r.json()["already_settled"] is False

        r = await client.post(f"/api/v1/payments/{intent_id}/settle", headers=WEBHOOK)
        assert r.json()["already_settled"] is True

        r = await client.get(f"/api/v1/sessions/{session_id}", headers=USER)
        assert r.json()["data"]["session"]["status"] == "PAID"


# =====================================================================
# Screenings and clinic
# =====================================================================


class TestClinicRoutes:

    @pytest.mark.asyncio
    async def test_clinic_requires_key(self, client):
        r = await client.get("/api/v1/clinic/screenings")
        assert r.status_code == 401
        r = await client.get("/api/v1/clinic/screenings", headers={"X-Clinic-Key": "x"})
        assert r.status_code == 403

    @pytest.mark.asyncio
    async def test_review_cycle(self, client, intents):
        r = await client.post(
            "/api/v1/screenings",
            json={
                "family_id": "fam1",
                "child_name": "Ana",
                "child_age_months": 10,
                "answers": {"gm_9_12_1": False, "fm_9_12_1": False, "ps_9_12_1": None},
            },
            headers=USER,
        )
        assert r.status_code == 201
        assert r.json()["risk_level"] == "High"
        screening_id = r.json()["screening_id"]

        r = await client.post(
            f"/api/v1/screenings/{screening_id}/payment-intents", headers=USER,
        )
        assert r.status_code == 201
        intents.intents[uuid.UUID(r.json()["payment_intent_id"])].status = "SETTLED"

        r = await client.get("/api/v1/clinic/screenings", headers=CLINIC)
        assert [s["id"] for s in r.json()["data"]] == [screening_id]

        r = await client.post(
            f"/api/v1/clinic/screenings/{screening_id}/reviews",
            json={
                "reviewer_id": "dr1",
                "final_diagnosis": "Motor delay",
                "gross_motor_clinical": 2,
                "clinical_risk_level": "HIGH",
            },
            headers=CLINIC,
        )
        assert r.status_code == 201
        review_id = r.json()["review_id"]

        r = await client.get(f"/api/v1/clinic/reviews/{review_id}/verify", headers=CLINIC)
        assert r.json()["valid"] is True

        r = await client.post(
            f"/api/v1/clinic/screenings/{screening_id}/reviews",
            json={"reviewer_id": "dr2"},
            headers=CLINIC,
        )
        assert r.status_code == 409

        r = await client.get("/api/v1/clinic/screenings", headers=CLINIC)
        assert r.json()["data"] == []

    @pytest.mark.asyncio
    async def test_empty_answers_is_400(self, client):
        r = await client.post(
            "/api/v1/screenings",
            json={"family_id": "fam1", "child_name": "Ana", "child_age_months": 10, "answers": {}},
            headers=USER,
        )
        assert r.status_code == 400
        assert r.json()["error"] == "Answers cannot be empty"


# =====================================================================
# Evidence
# =====================================================================


class TestEvidenceRoutes:

    @pytest.mark.asyncio
    async def test_unconfigured_storage_is_503(self, client):
        r = await client.post(
            "/api/v1/evidence",
            files={"file": ("clip.webm", b"video-bytes", "video/webm")},
            data={"file_path": "fam1/s1/q1.webm", "screening_id": "s1", "question_id": "q1"},
            headers=USER,
        )
        assert r.status_code == 503
        assert r.json()["error_code"] == "configuration_error"


# =====================================================================
# Guards and dispatch wiring
# =====================================================================


class TestUnconfiguredSecrets:

    @pytest.mark.asyncio
    async def test_clinic_disabled_without_key(self, catalog):
        application = create_app(ServerSettings())
        application.dependency_overrides[get_catalog] = lambda: catalog
        application.dependency_overrides[get_db] = lambda: AsyncMock()
        application.dependency_overrides[get_actions] = lambda: None
        async with httpx.AsyncClient(
            transport=ASGITransport(app=application), base_url="http://test",
        ) as c:
            r = await c.get("/api/v1/clinic/screenings", headers=CLINIC)
        assert r.status_code == 403

    @pytest.mark.asyncio
    async def test_proxy_secret_enforced(self, catalog):
        application = create_app(ServerSettings(trusted_proxy_secret="proxy"))
        application.dependency_overrides[get_db] = lambda: AsyncMock()
        application.dependency_overrides[get_actions] = lambda: None
        async with httpx.AsyncClient(
            transport=ASGITransport(app=application), base_url="http://test",
        ) as c:
            r = await c.get("/api/v1/families/fam1/sessions", headers=USER)
            assert r.status_code == 403
            r = await c.get(
                "/api/v1/families/fam1/sessions",
                headers={**USER, "X-Proxy-Secret": "wrong"},
            )
            assert r.status_code == 403


# =====================================================================
# Background analysis dispatch
# =====================================================================


class _RecordingSessionFactory:
    """Stands in for ``async_sessionmaker``; records every commit."""

    def __init__(self, events: list[str]):
        self.events = events

    def __call__(self):
        db = AsyncMock()
        db.commit.side_effect = lambda: self.events.append("commit")

        @asynccontextmanager
        async def _session():
            yield db

        return _session()


class TestBackgroundDispatch:

    @pytest.fixture
    def events(self):
        return []

    @pytest.fixture
    def wired_app(self, app, events, monkeypatch):
        """App using the real ``get_db`` and ``BackgroundAnalysisDispatcher``."""
        factory = _RecordingSessionFactory(events)

        async def _job(pipeline, session_factory, session_id, **kwargs):
            events.append(f"job:{session_id}")

        monkeypatch.setattr(dependencies, "get_session_factory", lambda: factory)
        monkeypatch.setattr(worker, "get_session_factory", lambda: factory)
        monkeypatch.setattr(worker, "run_analysis_job", _job)

        def _dispatcher(background_tasks: BackgroundTasks):
            return BackgroundAnalysisDispatcher(
                background_tasks, object(), ScreeningSettings(),
            )

        app.dependency_overrides.pop(get_db)
        app.dependency_overrides[get_dispatcher] = _dispatcher
        return app

    @pytest_asyncio.fixture
    async def wired_client(self, wired_app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=wired_app), base_url="http://test",
        ) as c:
            yield c

    @pytest.mark.asyncio
    async def test_completion_commits_before_analysis_job(self, wired_client, events):
        session_id = await _create_session(wired_client)
        events.clear()

        r = await wired_client.post(
            f"/api/v1/sessions/{session_id}/complete",
            json={"family_id": "fam1"},
            headers=USER,
        )
        assert r.status_code == 200
        assert f"job:{session_id}" in events
        assert events[0] == "commit"
        assert events.index("commit") < events.index(f"job:{session_id}")

    @pytest.mark.asyncio
    async def test_failed_completion_queues_no_job(self, wired_client, events):
        r = await wired_client.post(
            f"/api/v1/sessions/{uuid.uuid4()}/complete",
            json={"family_id": "fam1"},
            headers=USER,
        )
        assert r.status_code == 404
        assert not any(e.startswith("job:") for e in events)

    def test_dispatch_holds_jobs_until_released(self):
        tasks = BackgroundTasks()
        dispatcher = BackgroundAnalysisDispatcher(tasks, object(), ScreeningSettings())
        dispatcher.dispatch("sess-1")
        assert tasks.tasks == []

        dispatcher.release()
        assert len(tasks.tasks) == 1
        assert tasks.tasks[0].args == ("sess-1",)

        dispatcher.release()
        assert len(tasks.tasks) == 1


# =====================================================================
# Exception handlers
# =====================================================================


class TestExceptionHandlers:

    @pytest.fixture
    def raising_app(self, app):
        @app.get("/boom/value")
        async def _value():
            raise ValueError("session abc already exists")

        @app.get("/boom/screening")
        async def _screening():
            raise NotFoundError("Screening not found: abc")

        return app

    @pytest.mark.asyncio
    async def test_bare_value_error_is_plain_400(self, raising_app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=raising_app), base_url="http://test",
        ) as c:
            r = await c.get("/boom/value")
        assert r.status_code == 400
        assert r.json() == {"detail": "Invalid request"}

    @pytest.mark.asyncio
    async def test_screening_error_uses_its_status(self, raising_app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=raising_app), base_url="http://test",
        ) as c:
            r = await c.get("/boom/screening")
        assert r.status_code == 404
        assert r.json()["error_code"] == "not_found"
