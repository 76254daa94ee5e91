"""RiskAnalyzer — LLM-backed three-level risk verdict with a local fallback.

The analyzer renders every stored response into a prompt, asks the
completion API for a JSON verdict, and normalizes whatever comes back.  If
the call fails for any reason (no client configured, network, auth,
malformed output) it returns a deterministic verdict computed from the
concern rate instead.  :meth:`RiskAnalyzer.analyze` never raises.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Sequence

from devscreen_rules.constants import (
    DEFAULT_LLM_RISK_LEVEL,
    FALLBACK_HIGH_PERCENT,
    FALLBACK_MODEL,
    FALLBACK_MODERATE_PERCENT,
    FALLBACK_PROVIDER,
    FALLBACK_RECOMMENDATIONS,
    MAX_RECOMMENDATIONS,
    PLACEHOLDER_SUMMARY,
)
from devscreen_rules.interfaces import CompletionClient
from devscreen_rules.models.scoring import (
    AnalysisRiskLevel,
    AnalysisVerdict,
    AnsweredQuestion,
    ConcernStats,
)
from devscreen_rules.prompt import PromptManager

logger = logging.getLogger(__name__)

_RISK_LEVELS = ("LOW", "MODERATE", "HIGH")

_FALLBACK_ADVICE: dict[str, str] = {
    "HIGH": "Consider professional evaluation.",
    "MODERATE": "Monitor development and consider early intervention.",
    "LOW": "Continue monitoring normal development.",
}


def concern_stats(responses: Sequence[AnsweredQuestion]) -> ConcernStats:
    """Count ``no`` answers over all responses (every value counts in the total)."""
    total = len(responses)
    concerns = sum(1 for r in responses if r.response_value == "no")
    rate = concerns / total * 100 if total > 0 else 0.0
    return ConcernStats(total=total, concerns=concerns, concern_rate=rate)


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def normalize_verdict(
    parsed: dict[str, Any],
    stats: ConcernStats,
    *,
    ai_model: str,
    ai_provider: str,
) -> AnalysisVerdict:
    """Coerce a model's JSON answer into a valid verdict.

    - unknown or missing ``riskLevel`` -> MODERATE
    - ``riskScore`` clamped to [0, 100], or the concern rate if not numeric
    - blank or non-string ``summary`` -> fixed placeholder
    - ``recommendations`` filtered to strings, at most five
    """
    level = parsed.get("riskLevel")
    risk_level: AnalysisRiskLevel = (
        level if level in _RISK_LEVELS else DEFAULT_LLM_RISK_LEVEL
    )

    score = parsed.get("riskScore")
    risk_score = (
        max(0.0, min(100.0, float(score))) if _is_number(score) else stats.concern_rate
    )

    summary = parsed.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = PLACEHOLDER_SUMMARY
    else:
        summary = summary.strip()

    raw_recs = parsed.get("recommendations")
    recommendations = (
        [r for r in raw_recs if isinstance(r, str)][:MAX_RECOMMENDATIONS]
        if isinstance(raw_recs, list)
        else []
    )

    return AnalysisVerdict(
        risk_level=risk_level,
        risk_score=risk_score,
        summary=summary,
        recommendations=recommendations,
        ai_model=ai_model,
        ai_provider=ai_provider,
        raw_response=parsed,
    )


def fallback_verdict(stats: ConcernStats) -> AnalysisVerdict:
    """Deterministic verdict from the concern rate alone."""
    if stats.concern_rate > FALLBACK_HIGH_PERCENT:
        risk_level: AnalysisRiskLevel = "HIGH"
    elif stats.concern_rate > FALLBACK_MODERATE_PERCENT:
        risk_level = "MODERATE"
    else:
        risk_level = "LOW"

    summary = (
        f"Screening completed. {stats.concerns} out of {stats.total} milestones "
        f"not yet achieved. {_FALLBACK_ADVICE[risk_level]}"
    )
    verdict = AnalysisVerdict(
        risk_level=risk_level,
        risk_score=stats.concern_rate,
        summary=summary,
        recommendations=list(FALLBACK_RECOMMENDATIONS),
        ai_model=FALLBACK_MODEL,
        ai_provider=FALLBACK_PROVIDER,
        fallback=True,
    )
    verdict.raw_response = verdict.model_dump(exclude={"raw_response"})
    return verdict


class RiskAnalyzer:
    """Produces an :class:`AnalysisVerdict` for a set of stored responses.

    Args:
        client: completion client; ``None`` disables the LLM path and every
            call returns the fallback verdict.
        prompts: optional prompt manager (defaults to the bundled templates).
    """

    def __init__(
        self,
        client: CompletionClient | None = None,
        prompts: PromptManager | None = None,
    ) -> None:
        self._client = client
        self._prompts = prompts or PromptManager()

    @property
    def llm_enabled(self) -> bool:
        return self._client is not None

    async def analyze(
        self,
        responses: Sequence[AnsweredQuestion],
        child_age_months: int,
    ) -> AnalysisVerdict:
        """Analyze *responses* for a child of *child_age_months*.

        Never raises: any failure of the external call is logged and
        absorbed into :func:`fallback_verdict`.
        """
        stats = concern_stats(responses)

        if self._client is None:
            logger.info("LLM client not configured; using fallback analysis")
            return fallback_verdict(stats)

        try:
            system = self._prompts.render_system()
            prompt = self._prompts.render_risk_analysis(
                responses, child_age_months=child_age_months, stats=stats,
            )
            parsed = await self._client.complete_json(system=system, user=prompt)
            return normalize_verdict(
                parsed,
                stats,
                ai_model=self._client.model_name,
                ai_provider=self._client.provider,
            )
        except Exception as exc:
            # Terminal error boundary: the fallback is the documented outcome
            logger.warning(
                "LLM analysis failed (%s: %s); using fallback",
                type(exc).__name__, exc,
            )
            return fallback_verdict(stats)
