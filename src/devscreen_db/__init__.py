"""devscreen_db — PostgreSQL persistence layer for developmental screenings.

This package provides the ORM models, async engine factory, and
repositories for questionnaire sessions, single-submission screenings,
payment intents and clinical reviews.  It is consumed by the
``devscreen_rules`` SDK and the FastAPI server.
"""

from devscreen_db.engine import get_engine, get_session_factory
from devscreen_db.models.enums import AnalysisStatus, SessionStatus
from devscreen_db.models.screening import Screening
from devscreen_db.models.session import ScreeningSession
from devscreen_db.repository import (
    ClinicalReviewRepository,
    PaymentIntentRepository,
    ScreeningRepository,
    SessionRepository,
)

__all__ = [
    "AnalysisStatus",
    "Screening",
    "ScreeningSession",
    "SessionStatus",
    "get_engine",
    "get_session_factory",
    "ClinicalReviewRepository",
    "PaymentIntentRepository",
    "ScreeningRepository",
    "SessionRepository",
]
