"""Scoring models — rule-engine verdicts and LLM analysis verdicts.

The rule engine is binary (``High`` / ``Low``) while the LLM path uses a
three-level scale (``LOW`` / ``MODERATE`` / ``HIGH``).  The two scales are
kept as separate types on purpose; they are never converted into each other.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

RuleRiskLevel = Literal["High", "Low"]
AnalysisRiskLevel = Literal["LOW", "MODERATE", "HIGH"]


# --- Rule engine ---

class ScoredAnswer(BaseModel):
    """One matched answer with its catalog metadata, kept for audit."""

    question_id: str
    # True = achieved, False = not achieved, None = not applicable
    response: bool | None
    category: str
    question_text: str
    milestone_age_months: int


class RuleScore(BaseModel):
    """Output of :func:`devscreen_rules.scorer.score_answers`."""

    risk_level: RuleRiskLevel
    risk_score: int
    summary: str
    not_achieved: int
    total: int
    percent_not_achieved: float
    answers: list[ScoredAnswer]


# --- LLM analyzer ---

class AnsweredQuestion(BaseModel):
    """A stored session response, as seen by the analyzer."""

    model_config = ConfigDict(from_attributes=True)

    question_id: str
    question_text: str
    category: str
    response_value: str
    milestone_age_months: int | None = None


class ConcernStats(BaseModel):
    """Precomputed counts embedded in the prompt and used by the fallback."""

    total: int
    concerns: int
    concern_rate: float


class AnalysisVerdict(BaseModel):
    """Normalized risk verdict ready to be stored as a session analysis."""

    risk_level: AnalysisRiskLevel
    risk_score: float = Field(ge=0, le=100)
    summary: str
    recommendations: list[str] = Field(default_factory=list)
    ai_model: str
    ai_provider: str
    # True when the verdict came from the local concern-rate fallback
    fallback: bool = False
    raw_response: dict[str, Any] | None = None
