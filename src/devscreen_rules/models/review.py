"""Clinical review models — reviewer input and the hashed field set."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, Field

# Clinical sub-scores are bounded so their JSON rendering stays identical
# across languages (no exponent notation, no NaN or Infinity).
ClinicalScore = Annotated[float, Field(ge=0, le=100, allow_inf_nan=False)]


class ReviewInput(BaseModel):
    """What a clinician submits for a screening."""

    final_diagnosis: str | None = None
    recommendations: str | None = None
    social_score_clinical: ClinicalScore | None = None
    fine_motor_clinical: ClinicalScore | None = None
    language_clinical: ClinicalScore | None = None
    gross_motor_clinical: ClinicalScore | None = None
    clinical_risk_level: Literal["LOW", "MODERATE", "HIGH"] | None = None
    clinical_notes: str | None = None


class ReviewHashData(BaseModel):
    """The canonical field set bound by the review digest.

    Field order and defaulting are fixed in
    :func:`devscreen_rules.hashing.canonical_review_payload`.
    """

    screening_id: str
    review_id: str
    final_diagnosis: str | None = None
    recommendations: str | None = None
    social_score_clinical: float | None = None
    fine_motor_clinical: float | None = None
    language_clinical: float | None = None
    gross_motor_clinical: float | None = None
    reviewed_at: str
