"""QuestionCatalog — the static milestone questionnaire and its age bands.

The catalog is loaded once at startup from ``data/denver_ii.yaml`` and is
read-only afterwards.  It answers two questions for the rest of the SDK:
which band a child's age falls in, and which questions to present.

Usage::

    catalog = QuestionCatalog().load()

    band = catalog.assign_band(10)          # AgeBand(label="9-12", ...)
    questions = catalog.questions_for_age(10)   # "6-9" + "9-12" questions
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

import yaml

from devscreen_rules.constants import AGE_BANDS, DOMAIN_NAMES, MIN_AGE_MONTHS
from devscreen_rules.errors import InvalidInputError
from devscreen_rules.models.question import AgeBand, Question

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "denver_ii.yaml"


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


class QuestionCatalog:
    """Ordered milestone questions partitioned into contiguous age bands.

    Attributes populated after :meth:`load`:

        bands      — list[AgeBand], ordered, non-overlapping
        questions  — list[Question], in catalog order
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else DEFAULT_CATALOG_PATH
        self.bands: list[AgeBand] = [
            AgeBand(label=label, start_month=start, end_month=end)
            for label, start, end in AGE_BANDS
        ]
        self.questions: list[Question] = []
        self._by_id: dict[str, Question] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> QuestionCatalog:
        """Parse the catalog YAML into typed questions.

        Raises ``ValueError`` if a question references an unknown band or
        an id appears twice.  Returns ``self`` for chaining.
        """
        raw = load_yaml(self._path) or {}
        self._set_questions(Question(**item) for item in raw.get("questions", []))
        logger.info(
            "QuestionCatalog loaded: %d questions across %d bands",
            len(self.questions),
            len(self.bands),
        )
        return self

    @classmethod
    def from_questions(cls, questions: Iterable[Question]) -> QuestionCatalog:
        """Build a catalog from in-memory questions (no file access)."""
        catalog = cls()
        catalog._set_questions(questions)
        return catalog

    def _set_questions(self, questions: Iterable[Question]) -> None:
        labels = {band.label for band in self.bands}
        by_id: dict[str, Question] = {}
        ordered: list[Question] = []
        for q in questions:
            if q.age_group not in labels:
                raise ValueError(
                    f"Question {q.question_id} has unknown age group {q.age_group!r}"
                )
            if q.question_id in by_id:
                raise ValueError(f"Duplicate question id in catalog: {q.question_id}")
            by_id[q.question_id] = q
            ordered.append(q)
        self.questions = ordered
        self._by_id = by_id

    # ------------------------------------------------------------------
    # Age bands
    # ------------------------------------------------------------------

    def assign_band(self, age_months: int) -> AgeBand:
        """Return the band whose interval contains *age_months*.

        Ages at or past the end of the last band clamp to the last band.
        Negative ages are rejected.
        """
        if age_months < MIN_AGE_MONTHS:
            raise InvalidInputError(f"Age must be non-negative, got {age_months}")
        for band in self.bands:
            if band.contains(age_months):
                return band
        return self.bands[-1]

    def _band_index(self, age_months: int) -> int:
        return self.bands.index(self.assign_band(age_months))

    def questions_for_age(self, age_months: int) -> list[Question]:
        """Questions from the assigned band and the band immediately before it.

        Milestones from one band earlier are still checked in case the child
        has not passed them yet.  At the first band there is no earlier band,
        so only the first band's questions are returned.
        """
        idx = self._band_index(age_months)
        relevant = {band.label for band in self.bands[max(0, idx - 1): idx + 1]}
        return [q for q in self.questions if q.age_group in relevant]

    def questions_by_band(self, label: str) -> list[Question]:
        """All questions in the band with the given label (empty if unknown)."""
        return [q for q in self.questions if q.age_group == label]

    def question_count_for_age(self, age_months: int) -> int:
        return len(self.questions_for_age(age_months))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_question(self, question_id: str) -> Question | None:
        """Look up a question by id; ``None`` if it is not in the catalog."""
        return self._by_id.get(question_id)

    @staticmethod
    def domain_name(category: str) -> str:
        """Human-readable domain name, e.g. ``gross_motor`` -> ``Gross Motor``."""
        return DOMAIN_NAMES.get(category, category)

    @property
    def categories(self) -> list[str]:
        return list(DOMAIN_NAMES)

    def __len__(self) -> int:
        return len(self.questions)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._by_id
