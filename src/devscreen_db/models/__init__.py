"""ORM models for devscreen_db."""

from devscreen_db.models.base import Base
from devscreen_db.models.enums import (
    AnalysisStatus,
    PaymentStatus,
    ResponseValue,
    RiskLevel,
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

__all__ = [
    "Base",
    "AnalysisStatus",
    "PaymentStatus",
    "ResponseValue",
    "RiskLevel",
    "ScreeningStatus",
    "SessionStatus",
    "PaymentIntent",
    "ClinicalReview",
    "Screening",
    "ScreeningAnalysis",
    "ScreeningResponse",
    "ScreeningSession",
]
