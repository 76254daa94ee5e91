"""Rule-based scorer tests — binary High/Low verdicts over answer maps."""

import pytest

from devscreen_rules.errors import InvalidInputError
from devscreen_rules.scorer import build_summary, score_answers


class TestScoreAnswers:

    def test_ten_month_old_with_three_delays_is_high(self, catalog):
        result = score_answers(
            {
                "gm_9_12_1": False,
                "fm_9_12_1": False,
                "lang_9_12_1": False,
                "ps_9_12_1": True,
            },
            catalog,
        )
        assert result.risk_level == "High"
        assert result.risk_score == 85
        assert result.not_achieved == 3
        assert result.total == 4
        assert result.percent_not_achieved == pytest.approx(75.0)
        assert result.summary == (
            "Concerns detected in Gross Motor, Fine Motor, Language. "
            "Clinical review recommended."
        )

    def test_all_achieved_is_low(self, catalog):
        result = score_answers({"gm_9_12_1": True, "fm_9_12_1": True}, catalog)
        assert result.risk_level == "Low"
        assert result.risk_score == 10
        assert result.summary == "Developmental milestones appear on track."

    def test_same_answers_same_result(self, catalog):
        answers = {"gm_9_12_1": False, "fm_9_12_1": None, "ps_9_12_1": True}
        first = score_answers(answers, catalog)
        second = score_answers(dict(answers), catalog)
        assert first.model_dump() == second.model_dump()
        assert answers == {"gm_9_12_1": False, "fm_9_12_1": None, "ps_9_12_1": True}

    def test_exactly_half_is_low(self, catalog):
        result = score_answers({"gm_9_12_1": False, "fm_9_12_1": True}, catalog)
        assert result.percent_not_achieved == pytest.approx(50.0)
        assert result.risk_level == "Low"

    def test_not_applicable_excluded_from_total(self, catalog):
        result = score_answers(
            {"gm_9_12_1": False, "fm_9_12_1": None, "lang_9_12_1": True},
            catalog,
        )
        assert result.total == 2
        assert len(result.answers) == 3
        assert result.answers[1].response is None

    def test_unknown_ids_skipped(self, catalog):
        result = score_answers({"nope": False, "gm_9_12_1": True}, catalog)
        assert result.total == 1
        assert [a.question_id for a in result.answers] == ["gm_9_12_1"]
        assert result.risk_level == "Low"

    def test_answers_carry_catalog_metadata(self, catalog):
        result = score_answers({"lang_9_12_1": True}, catalog)
        answer = result.answers[0]
        q = catalog.get_question("lang_9_12_1")
        assert answer.category == "language"
        assert answer.question_text == q.question_text
        assert answer.milestone_age_months == q.milestone_age_months

    def test_domains_listed_once_in_first_seen_order(self, catalog):
        result = score_answers(
            {"lang_9_12_1": False, "gm_9_12_1": False, "gm_9_12_2": False},
            catalog,
        )
        assert "Language, Gross Motor." in result.summary

    def test_empty_answers_rejected(self, catalog):
        with pytest.raises(InvalidInputError, match="Answers cannot be empty"):
            score_answers({}, catalog)

    def test_only_unknown_or_na_rejected(self, catalog):
        with pytest.raises(InvalidInputError, match="No valid answers found"):
            score_answers({"nope": False, "gm_9_12_1": None}, catalog)


def test_build_summary_low_ignores_domains():
    assert build_summary("Low", ["Language"]) == (
        "Developmental milestones appear on track."
    )
