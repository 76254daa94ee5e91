"""QuestionCatalog tests — loading, age bands and per-age question sets."""

import pytest

from devscreen_rules.catalog import QuestionCatalog
from devscreen_rules.errors import InvalidInputError
from devscreen_rules.models.question import Question


# =====================================================================
# Loading
# =====================================================================


class TestLoad:

    def test_bundled_catalog_loads(self, catalog):
        assert len(catalog) == 40
        assert "gm_9_12_1" in catalog

    def test_every_question_in_a_known_band(self, catalog):
        labels = {b.label for b in catalog.bands}
        for q in catalog.questions:
            assert q.age_group in labels

    def test_question_ids_unique(self, catalog):
        ids = [q.question_id for q in catalog.questions]
        assert len(ids) == len(set(ids))

    def test_unknown_band_rejected(self):
        bad = Question(
            question_id="x1",
            question_text="Flies",
            category="gross_motor",
            age_group="36-48",
            milestone_age_months=12,
        )
        with pytest.raises(ValueError, match="unknown age group"):
            QuestionCatalog.from_questions([bad])

    def test_duplicate_id_rejected(self, catalog):
        q = catalog.get_question("gm_0_3_1")
        with pytest.raises(ValueError, match="Duplicate question id"):
            QuestionCatalog.from_questions([q, q])


# =====================================================================
# Age bands
# =====================================================================


class TestAssignBand:

    @pytest.mark.parametrize("age,label", [
        (0, "0-3"),
        (2, "0-3"),
        (3, "3-6"),
        (10, "9-12"),
        (12, "12-15"),
        (18, "18-24"),
        (35, "30-36"),
    ])
    def test_band_boundaries(self, catalog, age, label):
        assert catalog.assign_band(age).label == label

    def test_age_past_last_band_clamps(self, catalog):
        assert catalog.assign_band(36).label == "30-36"
        assert catalog.assign_band(60).label == "30-36"

    def test_negative_age_rejected(self, catalog):
        with pytest.raises(InvalidInputError):
            catalog.assign_band(-1)

    def test_bands_are_contiguous(self, catalog):
        for prev, nxt in zip(catalog.bands, catalog.bands[1:]):
            assert prev.end_month == nxt.start_month

    @pytest.mark.parametrize("age", range(0, 37))
    def test_band_contains_age(self, catalog, age):
        band = catalog.assign_band(age)
        assert band.start_month <= age
        # 36 is clamped into the last band
        assert age < band.end_month or band.label == catalog.bands[-1].label


# =====================================================================
# Questions for an age
# =====================================================================


class TestQuestionsForAge:

    def test_includes_previous_band(self, catalog):
        groups = {q.age_group for q in catalog.questions_for_age(10)}
        assert groups == {"6-9", "9-12"}

    def test_first_band_has_no_previous(self, catalog):
        groups = {q.age_group for q in catalog.questions_for_age(1)}
        assert groups == {"0-3"}

    def test_catalog_order_preserved(self, catalog):
        ids = [q.question_id for q in catalog.questions_for_age(10)]
        expected = [
            q.question_id for q in catalog.questions
            if q.age_group in ("6-9", "9-12")
        ]
        assert ids == expected

    @pytest.mark.parametrize("age", range(0, 37))
    def test_covers_assigned_band(self, catalog, age):
        selected = {q.question_id for q in catalog.questions_for_age(age)}
        band = catalog.assign_band(age)
        assert selected
        assert {
            q.question_id for q in catalog.questions_by_band(band.label)
        } <= selected

    def test_count_matches(self, catalog):
        assert catalog.question_count_for_age(10) == 10

    def test_questions_by_band(self, catalog):
        assert len(catalog.questions_by_band("0-3")) == 4
        assert catalog.questions_by_band("nope") == []


class TestLookups:

    def test_get_question(self, catalog):
        q = catalog.get_question("lang_9_12_1")
        assert q.category == "language"
        assert catalog.get_question("missing") is None

    def test_domain_names(self, catalog):
        assert catalog.domain_name("gross_motor") == "Gross Motor"
        assert catalog.domain_name("personal_social") == "Personal-Social"
        assert catalog.categories == [
            "gross_motor", "fine_motor", "language", "personal_social",
        ]
