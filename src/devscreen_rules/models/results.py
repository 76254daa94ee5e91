"""Read views and the uniform action envelopes.

Views are built from ORM rows with ``model_validate(row)``.  Every action in
:mod:`devscreen_rules.actions` returns an ``ActionResult`` subclass: a
``success`` flag, optional payload fields, and ``error`` / ``error_code`` on
failure.  A successful result may still carry ``error`` as a warning (the
payment-failure case of session completion).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


# ------------------------------------------------------------------
# Views
# ------------------------------------------------------------------

class SessionView(BaseModel):
    """Public view of a questionnaire session."""

    model_config = ConfigDict(from_attributes=True)

    session_id: uuid.UUID
    family_id: str
    child_name: str
    child_age_months: int
    age_group: str
    status: str
    payment_intent_id: str | None = None
    analysis_status: str | None = None
    created_at: datetime | None = None


class ResponseView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    response_id: uuid.UUID
    question_id: str
    question_text: str
    category: str
    response_value: str
    milestone_age_months: int | None = None
    created_at: datetime | None = None


class AnalysisView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    analysis_id: uuid.UUID
    risk_level: str
    risk_score: float | None = None
    summary: str
    recommendations: list[str] | None = None
    ai_model: str
    ai_provider: str
    created_at: datetime | None = None


class ScreeningResultsData(BaseModel):
    """Session, its responses in answer order, and the analysis if any."""

    session: SessionView
    responses: list[ResponseView]
    analysis: AnalysisView | None = None
    # PENDING | READY | FAILED, or None before completion
    analysis_status: str | None = None


class ClinicScreening(BaseModel):
    """A single-submission screening as listed in the clinic queue."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    child_name: str
    child_age_months: int
    ai_risk_score: float | None = None
    ai_summary: str | None = None
    status: str = "PENDING_REVIEW"
    created_at: datetime | None = None
    clinical_notes: str | None = None
    clinical_risk_level: str | None = None
    reviewed_at: datetime | None = None


# ------------------------------------------------------------------
# Envelopes
# ------------------------------------------------------------------

class ActionResult(BaseModel):
    """Fields shared by every action envelope."""

    success: bool
    error: str | None = None
    error_code: str | None = None


class CreateSessionResult(ActionResult):
    session_id: str | None = None


class SaveResponseResult(ActionResult):
    # False when the question id is not in the catalog and the answer was dropped
    stored: bool = False


class CompleteScreeningResult(ActionResult):
    session_id: str | None = None
    payment_intent_id: str | None = None


class GenerateAnalysisResult(ActionResult):
    analysis_id: str | None = None


class ScreeningResultsResult(ActionResult):
    data: ScreeningResultsData | None = None


class FamilySessionsResult(ActionResult):
    sessions: list[SessionView] | None = None


class SubmitScreeningResult(ActionResult):
    screening_id: str | None = None
    risk_level: Literal["High", "Low"] | None = None


class PaymentIntentResult(ActionResult):
    payment_intent_id: str | None = None


class SettlePaymentResult(ActionResult):
    intent_id: str | None = None
    session_id: str | None = None
    already_settled: bool = False


class ClinicScreeningsResult(ActionResult):
    data: list[ClinicScreening] | None = None


class RecordReviewResult(ActionResult):
    review_id: str | None = None
    result_hash: str | None = None


class VerifyReviewResult(ActionResult):
    valid: bool | None = None


class UploadEvidenceResult(ActionResult):
    path: str | None = None
