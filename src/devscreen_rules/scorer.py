"""Rule-based risk scorer for single-submission screenings.

A pure function over the answer map and the static catalog: the share of
not-achieved milestones decides a binary High/Low verdict with fixed scores.
"""

from __future__ import annotations

import logging
from typing import Mapping

from devscreen_rules.catalog import QuestionCatalog
from devscreen_rules.constants import (
    RULE_HIGH_RISK_PERCENT,
    RULE_HIGH_RISK_SCORE,
    RULE_LOW_RISK_SCORE,
)
from devscreen_rules.errors import InvalidInputError
from devscreen_rules.models.scoring import RuleRiskLevel, RuleScore, ScoredAnswer

logger = logging.getLogger(__name__)


def build_summary(risk_level: RuleRiskLevel, affected_domains: list[str]) -> str:
    """Summary sentence for a rule verdict."""
    if risk_level == "High":
        return (
            f"Concerns detected in {', '.join(affected_domains)}. "
            "Clinical review recommended."
        )
    return "Developmental milestones appear on track."


def score_answers(
    answers: Mapping[str, bool | None],
    catalog: QuestionCatalog,
) -> RuleScore:
    """Score an answer map of ``question_id -> achieved``.

    ``True`` means achieved, ``False`` not achieved, ``None`` not applicable.
    Not-applicable answers are kept in the audit list but excluded from the
    denominator.  Unknown question ids are logged and skipped.

    Raises:
        InvalidInputError: if *answers* is empty, or no answer remains after
            dropping unknown and not-applicable entries.
    """
    if not answers:
        raise InvalidInputError("Answers cannot be empty")

    scored: list[ScoredAnswer] = []
    not_achieved = 0
    total = 0
    # Distinct categories with a not-achieved answer, in first-seen order
    affected: list[str] = []

    for question_id, achieved in answers.items():
        question = catalog.get_question(question_id)
        if question is None:
            logger.warning("Question not found: %s", question_id)
            continue

        scored.append(
            ScoredAnswer(
                question_id=question_id,
                response=achieved,
                category=question.category,
                question_text=question.question_text,
                milestone_age_months=question.milestone_age_months,
            )
        )
        if achieved is None:
            continue

        total += 1
        if not achieved:
            not_achieved += 1
            if question.category not in affected:
                affected.append(question.category)

    if total == 0:
        raise InvalidInputError("No valid answers found")

    percent = not_achieved / total * 100
    risk_level: RuleRiskLevel = "High" if percent > RULE_HIGH_RISK_PERCENT else "Low"
    risk_score = RULE_HIGH_RISK_SCORE if risk_level == "High" else RULE_LOW_RISK_SCORE

    domains = [catalog.domain_name(c) for c in affected]
    return RuleScore(
        risk_level=risk_level,
        risk_score=risk_score,
        summary=build_summary(risk_level, domains),
        not_achieved=not_achieved,
        total=total,
        percent_not_achieved=percent,
        answers=scored,
    )
