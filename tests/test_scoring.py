from __future__ import annotations

import math

import pytest

from buffett_engine.domain.models.scoring import (
    Answer,
    CriterionScore,
    QualitativeAnswer,
    QualityRating,
)
from buffett_engine.domain.services.scoring import (
    CRITERIA_WEIGHTS,
    QUALITATIVE_CRITERIA,
    QUALITATIVE_MAX_TOTAL,
    aggregate_quality,
    build_criterion_scores,
    classify_answers,
    rate_quality,
    score_answers,
    score_qualitative,
    score_qualitative_criterion,
    two_pillar_gate,
    valuation_score,
)


def test_weights_sum_to_one_hundred():
    assert sum(CRITERIA_WEIGHTS.values()) == 100
    assert len(CRITERIA_WEIGHTS) == 11


def test_weighted_answers():
    result = score_answers(
        "management",
        [
            QualitativeAnswer(Answer.YES, 1.0),
            QualitativeAnswer(Answer.PARTIAL, 0.5),
            QualitativeAnswer(Answer.NO, 0.5),
        ],
    )
    assert result.score == pytest.approx(1.25)
    assert result.max_score == pytest.approx(2.0)


def test_unclear_scores_zero_and_is_counted():
    assert QualitativeAnswer("unclear", 1.0).points == 0.0
    summary = score_qualitative({"management": ["yes", "unclear", "no"]})

    assert summary.criteria["management"].score == 1.0
    # Seven unanswered criteria count as three unclear answers each.
    assert summary.unclear_count == 1 + 7 * 3
    assert summary.total == 1.0
    assert summary.max_total == QUALITATIVE_MAX_TOTAL == 20


def test_all_yes_reaches_maximum():
    answers = {key: ["yes", "yes", "yes"] for key in QUALITATIVE_CRITERIA}
    summary = score_qualitative(answers)
    assert summary.total == pytest.approx(20.0)
    assert summary.unclear_count == 0
    assert summary.criteria["economic_moat"].on_ten_point_scale() == 10.0


def test_qualitative_criterion_validation():
    with pytest.raises(ValueError):
        score_qualitative_criterion("management", ["yes", "no"])
    with pytest.raises(ValueError):
        score_qualitative_criterion("weather", ["yes", "no", "no"])
    with pytest.raises(ValueError):
        score_qualitative_criterion("management", ["yes", "maybe", "no"])
    with pytest.raises(ValueError):
        QualitativeAnswer(Answer.YES, 0.7)


def test_aggregate_quality_percentage_and_rating():
    scores = build_criterion_scores({"economic_moat": 9, "management": {"score": 8}, "turnaround": 10})
    quality = aggregate_quality(scores)

    expected = (9 * 20 + 8 * 10 + 10 * 3) / (10 * 33) * 100
    assert quality.percentage == round(expected, 1)
    assert quality.rating is QualityRating.MET
    assert len(quality.breakdown) == 3


def test_aggregate_of_nothing_is_zero():
    quality = aggregate_quality([])
    assert quality.percentage == 0.0
    assert quality.rating is QualityRating.NOT_MET


@pytest.mark.parametrize(
    "percentage, rating",
    [
        (100.0, QualityRating.MET),
        (85.0, QualityRating.MET),
        (84.9, QualityRating.PARTIALLY_MET),
        (70.0, QualityRating.PARTIALLY_MET),
        (69.9, QualityRating.NOT_MET),
    ],
)
def test_rating_thresholds(percentage, rating):
    assert rate_quality(percentage) is rating


def test_criterion_score_validation():
    with pytest.raises(ValueError):
        CriterionScore("management", 11.0, 10)
    with pytest.raises(ValueError):
        CriterionScore("management", float("nan"), 10)
    with pytest.raises(ValueError):
        CriterionScore("management", 5.0, 0)
    with pytest.raises(ValueError):
        build_criterion_scores({"vibes": 5})


def test_high_quality_with_negative_margin_is_not_conforming():
    result = two_pillar_gate(85.0, -5.0)
    assert result.quality_passed
    assert not result.price_passed
    assert not result.conforming


def test_gate_requires_both_pillars():
    assert two_pillar_gate(90.0, 0.0).conforming
    assert not two_pillar_gate(80.0, 30.0).conforming
    assert two_pillar_gate(80.0, 30.0, quality_threshold=75).conforming
    missing_price = two_pillar_gate(95.0, None)
    assert not missing_price.conforming
    assert math.isnan(missing_price.margin_of_safety)


def test_classifier_output_feeds_scoring():
    class KeywordClassifier:
        def classify(self, text: str) -> Answer:
            return Answer.YES if "clearly" in text else Answer.UNCLEAR

    answers = classify_answers(KeywordClassifier(), {"business_model": ["clearly", "hmm", "clearly"]})
    result = score_qualitative_criterion("business_model", answers["business_model"])
    assert answers["business_model"][1] is Answer.UNCLEAR
    assert result.score == pytest.approx(1.5)


@pytest.mark.parametrize(
    "margin, score",
    [(78.0, 10.0), (30.0, 10.0), (25.0, 8.0), (10.0, 6.0), (0.0, 4.0), (-5.0, 0.0), (None, 0.0)],
)
def test_valuation_criterion_follows_margin_of_safety(margin, score):
    assert valuation_score(margin) == score
