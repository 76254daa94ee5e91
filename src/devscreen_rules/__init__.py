"""devscreen_rules — Pediatric developmental screening SDK.

Public API:
    QuestionCatalog     — milestone questions partitioned into age bands
    score_answers       — binary rule-based risk scorer
    RiskAnalyzer        — three-level LLM verdict with deterministic fallback
    ScreeningPipeline   — questionnaire session orchestrator
    SubmissionWorkflow  — single-submission screenings, clinic queue, reviews
    ScreeningActions    — envelope-returning facade over both workflows
    ClinicQueue         — clinic eligibility (settled payment, no review)
    EvidenceStore       — S3-compatible evidence uploads

Interfaces:
    CompletionClient    — structured-JSON completion endpoint
    PaymentGateway      — payment subsystem that creates intents
    AnalysisDispatcher  — hands analysis to a background worker

Hash linker:
    generate_review_hash / verify_review_hash
"""

from devscreen_rules.actions import ScreeningActions
from devscreen_rules.analyzer import RiskAnalyzer
from devscreen_rules.catalog import QuestionCatalog
from devscreen_rules.eligibility import ClinicQueue, filter_eligible
from devscreen_rules.errors import (
    ConfigurationError,
    InvalidInputError,
    NotFoundError,
    PreconditionFailedError,
    ScreeningError,
    UpstreamError,
)
from devscreen_rules.hashing import generate_review_hash, verify_review_hash
from devscreen_rules.interfaces import (
    AnalysisDispatcher,
    CompletionClient,
    PaymentGateway,
)
from devscreen_rules.llm import GroqCompletionClient, build_completion_client
from devscreen_rules.payments import LedgerPaymentGateway
from devscreen_rules.pipeline import ScreeningPipeline
from devscreen_rules.prompt import PromptManager
from devscreen_rules.scorer import score_answers
from devscreen_rules.storage import EvidenceStore
from devscreen_rules.submissions import SubmissionWorkflow

__all__ = [
    # Catalog & scoring
    "QuestionCatalog",
    "score_answers",
    "RiskAnalyzer",
    "PromptManager",
    # Workflows
    "ScreeningPipeline",
    "SubmissionWorkflow",
    "ScreeningActions",
    "ClinicQueue",
    "filter_eligible",
    "EvidenceStore",
    "LedgerPaymentGateway",
    "GroqCompletionClient",
    "build_completion_client",
    # Interfaces
    "AnalysisDispatcher",
    "CompletionClient",
    "PaymentGateway",
    # Hash linker
    "generate_review_hash",
    "verify_review_hash",
    # Errors
    "ScreeningError",
    "InvalidInputError",
    "NotFoundError",
    "PreconditionFailedError",
    "UpstreamError",
    "ConfigurationError",
]
