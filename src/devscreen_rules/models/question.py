"""Catalog models — milestone questions and the age bands that partition them.

Both are immutable: the catalog is loaded once at startup and shared
read-only by every request.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Category = Literal["gross_motor", "fine_motor", "language", "personal_social"]


class Question(BaseModel):
    """A single milestone question from the catalog."""

    model_config = ConfigDict(frozen=True)

    question_id: str
    question_text: str
    category: Category
    # Band label, e.g. "9-12"
    age_group: str
    milestone_age_months: int = Field(ge=0, le=36)


class AgeBand(BaseModel):
    """A half-open age interval ``[start_month, end_month)``."""

    model_config = ConfigDict(frozen=True)

    label: str
    start_month: int
    end_month: int

    def contains(self, age_months: int) -> bool:
        return self.start_month <= age_months < self.end_month
