"""Public model re-exports for devscreen_rules.

Consumers should import from ``devscreen_rules.models`` rather than
reaching into sub-modules directly.
"""

# --- Catalog ---
from devscreen_rules.models.question import AgeBand, Category, Question

# --- Scoring / analysis ---
from devscreen_rules.models.scoring import (
    AnalysisRiskLevel,
    AnalysisVerdict,
    AnsweredQuestion,
    ConcernStats,
    RuleRiskLevel,
    RuleScore,
    ScoredAnswer,
)

# --- Clinical review ---
from devscreen_rules.models.review import ReviewHashData, ReviewInput

# --- Views and envelopes ---
from devscreen_rules.models.results import (
    ActionResult,
    AnalysisView,
    ClinicScreening,
    ClinicScreeningsResult,
    CompleteScreeningResult,
    CreateSessionResult,
    FamilySessionsResult,
    GenerateAnalysisResult,
    PaymentIntentResult,
    RecordReviewResult,
    ResponseView,
    SaveResponseResult,
    ScreeningResultsData,
    ScreeningResultsResult,
    SessionView,
    SettlePaymentResult,
    SubmitScreeningResult,
    UploadEvidenceResult,
    VerifyReviewResult,
)

__all__ = [
    # Catalog
    "AgeBand",
    "Category",
    "Question",
    # Scoring
    "AnalysisRiskLevel",
    "AnalysisVerdict",
    "AnsweredQuestion",
    "ConcernStats",
    "RuleRiskLevel",
    "RuleScore",
    "ScoredAnswer",
    # Review
    "ReviewHashData",
    "ReviewInput",
    # Views
    "AnalysisView",
    "ClinicScreening",
    "ResponseView",
    "ScreeningResultsData",
    "SessionView",
    # Envelopes
    "ActionResult",
    "ClinicScreeningsResult",
    "CompleteScreeningResult",
    "CreateSessionResult",
    "FamilySessionsResult",
    "GenerateAnalysisResult",
    "PaymentIntentResult",
    "RecordReviewResult",
    "SaveResponseResult",
    "ScreeningResultsResult",
    "SettlePaymentResult",
    "SubmitScreeningResult",
    "UploadEvidenceResult",
    "VerifyReviewResult",
]
