"""PromptManager — Jinja2-based prompt renderer for the risk analyzer.

Loads templates from the ``template/`` directory and renders stored session
responses into the system and user messages sent to the completion API.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

import jinja2

from devscreen_rules.models.scoring import AnsweredQuestion, ConcernStats

# --- Stored response value -> status label shown to the model ---
_STATUS_LABELS: dict[str, str] = {
    "yes": "ACHIEVED",
    "no": "NOT_ACHIEVED",
    "sometimes": "PARTIAL",
}


def achievement_status(response_value: str) -> str:
    """Map a stored response value to the label used in the prompt."""
    return _STATUS_LABELS.get(response_value, "NOT_APPLICABLE")


class PromptManager:
    """Jinja2-based prompt renderer for the risk analyzer.

    Args:
        template_dir: optional override for the template directory.
            Defaults to ``template/`` sibling of this module.
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            # Keep whitespace control simple: templates use explicit trim
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )
        self._env.filters["tojson"] = lambda v: json.dumps(v, ensure_ascii=False)

    def render(self, template_name: str, **context) -> str:
        """Render a named template with arbitrary context."""
        template = self._env.get_template(template_name)
        return template.render(**context)

    def render_system(self) -> str:
        """The fixed system message for risk analysis."""
        return self.render("system.jinja2").strip()

    def render_risk_analysis(
        self,
        responses: Sequence[AnsweredQuestion],
        *,
        child_age_months: int,
        stats: ConcernStats,
    ) -> str:
        """Render the user message embedding every response and the counts.

        The output is deterministic for a given response order, age and
        stats, so the same session always produces the same prompt.
        """
        items = [
            {
                "category": r.category,
                "question_text": r.question_text,
                "milestone_age_months": r.milestone_age_months,
                "status": achievement_status(r.response_value),
            }
            for r in responses
        ]
        return self.render(
            "risk_analysis.jinja2",
            child_age_months=child_age_months,
            items=items,
            stats=stats,
        )
