"""Weighted quality scoring and the two-pillar investment gate."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

from buffett_engine.domain.models.scoring import (
    Answer,
    AnswerClassifier,
    CriterionScore,
    QualitativeAnswer,
    QualitativeCriterionScore,
    QualitativeSummary,
    QualityRating,
    QualityScore,
    TwoPillarResult,
)

logger = logging.getLogger(__name__)

CRITERIA_WEIGHTS: Dict[str, float] = {
    "business_model": 10,
    "economic_moat": 20,
    "financial_metrics": 15,
    "financial_stability": 10,
    "management": 10,
    "valuation": 10,
    "long_term_outlook": 7,
    "rational_behavior": 5,
    "cyclical_behavior": 5,
    "one_time_effects": 5,
    "turnaround": 3,
}

QUALITY_MET = 85.0
QUALITY_PARTIAL = 70.0

# Margin-of-safety floor (percent) and the valuation criterion score it earns.
VALUATION_BANDS: Tuple[Tuple[float, float], ...] = ((30.0, 10.0), (20.0, 8.0), (10.0, 6.0), (0.0, 4.0))


@dataclass(frozen=True)
class QualitativeCriterion:
    key: str
    title: str
    questions: Tuple[str, str, str]
    weights: Tuple[float, float, float]

    @property
    def max_score(self) -> float:
        return sum(self.weights)


QUALITATIVE_CRITERIA: Dict[str, QualitativeCriterion] = {
    c.key: c
    for c in (
        QualitativeCriterion(
            "business_model",
            "Understandable business model",
            (
                "Is it clear how the company makes money?",
                "Can the business model be explained in a few sentences?",
                "Would a layperson understand the business model?",
            ),
            (1.0, 1.0, 0.5),
        ),
        QualitativeCriterion(
            "economic_moat",
            "Economic moat",
            (
                "Does the company have structural competitive advantages (network effects, brand, technology)?",
                "Are these advantages visible in the financial metrics?",
                "Is the moat defensible against competitors over the long run?",
            ),
            (1.0, 0.5, 1.0),
        ),
        QualitativeCriterion(
            "management",
            "Management quality",
            (
                "Is management honest and transparent?",
                "Does it act in the interest of shareholders?",
                "Does it allocate capital with discipline?",
            ),
            (1.0, 1.0, 1.0),
        ),
        QualitativeCriterion(
            "long_term_outlook",
            "Long-term horizon",
            (
                "Will the current business model still matter in 20 years?",
                "Is the industry carried by long-term megatrends?",
                "Does the company have a credible strategy for the future?",
            ),
            (1.0, 0.5, 1.0),
        ),
        QualitativeCriterion(
            "rational_behavior",
            "Rationality and discipline",
            (
                "Does management act with discipline and a long-term view?",
                "Has the company avoided overpriced acquisitions and strategic erratic moves?",
                "Are resources deployed sensibly and efficiently?",
            ),
            (0.5, 1.0, 1.0),
        ),
        QualitativeCriterion(
            "cyclical_behavior",
            "Counter-cyclical behaviour",
            (
                "Is the business model cyclical or counter-cyclical?",
                "How does the company hold up in crises and downturns?",
                "Does management buy back shares when the market is weak?",
            ),
            (0.5, 1.0, 0.5),
        ),
        QualitativeCriterion(
            "one_time_effects",
            "Past is not future",
            (
                "Was past success free of one-off or extraordinary effects?",
                "Was growth free of unusual external tailwinds?",
                "Is growth repeatable and based on a stable business model?",
            ),
            (1.0, 0.5, 1.0),
        ),
        QualitativeCriterion(
            "turnaround",
            "No turnarounds",
            (
                "Is the company free of operational problems or strategic desperation?",
                "Has it avoided a recent deep restructuring or radical CEO-led reorientation?",
                "Is the company stable and profitable rather than fighting to regain trust or share?",
            ),
            (1.0, 0.5, 1.0),
        ),
    )
}

QUALITATIVE_MAX_TOTAL = sum(c.max_score for c in QUALITATIVE_CRITERIA.values())


def build_criterion_scores(scores: Mapping[str, Union[float, Mapping[str, float]]]) -> Tuple[CriterionScore, ...]:
    """Attach the fixed weights to ``{criterion: score}`` or ``{criterion: {"score": s}}``."""
    built = []
    for name, raw in scores.items():
        if name not in CRITERIA_WEIGHTS:
            raise ValueError(f"Unknown criterion {name!r}; expected one of {sorted(CRITERIA_WEIGHTS)}.")
        value = raw.get("score") if isinstance(raw, Mapping) else raw
        if value is None:
            raise ValueError(f"Criterion {name!r} has no score.")
        built.append(CriterionScore(criterion=name, score=float(value), weight=CRITERIA_WEIGHTS[name]))
    return tuple(built)


def valuation_score(margin_of_safety: Optional[float]) -> float:
    """Score the valuation criterion (0..10) from a margin of safety; no margin scores 0."""
    if margin_of_safety is None or math.isnan(margin_of_safety):
        return 0.0
    for floor, points in VALUATION_BANDS:
        if margin_of_safety >= floor:
            return points
    return 0.0


def rate_quality(percentage: float) -> QualityRating:
    if percentage >= QUALITY_MET:
        return QualityRating.MET
    if percentage >= QUALITY_PARTIAL:
        return QualityRating.PARTIALLY_MET
    return QualityRating.NOT_MET


def aggregate_quality(scores: Iterable[CriterionScore]) -> QualityScore:
    """Weighted percentage over the supplied criteria, rounded to one decimal."""
    breakdown = tuple(scores)
    achieved = sum(s.weighted_contribution for s in breakdown)
    possible = sum(s.max_contribution for s in breakdown)
    percentage = round(achieved / possible * 100, 1) if possible > 0 else 0.0
    return QualityScore(percentage=percentage, rating=rate_quality(percentage), breakdown=breakdown)


def score_answers(criterion: str, answers: Sequence[QualitativeAnswer]) -> QualitativeCriterionScore:
    """Sum weighted answer points for one criterion."""
    answers = tuple(answers)
    return QualitativeCriterionScore(
        criterion=criterion,
        answers=answers,
        score=sum(a.points for a in answers),
        max_score=sum(a.weight for a in answers),
    )


def score_qualitative_criterion(criterion: str, answers: Sequence[Union[Answer, str]]) -> QualitativeCriterionScore:
    """Score three answers against the static question weights of ``criterion``."""
    spec = QUALITATIVE_CRITERIA.get(criterion)
    if spec is None:
        raise ValueError(f"Unknown qualitative criterion {criterion!r}.")
    if len(answers) != len(spec.weights):
        raise ValueError(f"{criterion!r} expects {len(spec.weights)} answers, got {len(answers)}.")
    weighted = [QualitativeAnswer(Answer.parse(a), w) for a, w in zip(answers, spec.weights)]
    return score_answers(criterion, weighted)


def score_qualitative(answers: Mapping[str, Sequence[Union[Answer, str]]]) -> QualitativeSummary:
    """Score all qualitative criteria; unanswered criteria count as unclear."""
    unknown = set(answers) - set(QUALITATIVE_CRITERIA)
    if unknown:
        raise ValueError(f"Unknown qualitative criteria: {sorted(unknown)}.")
    results: Dict[str, QualitativeCriterionScore] = {}
    unclear = 0
    for key in QUALITATIVE_CRITERIA:
        given = answers.get(key) or [Answer.UNCLEAR] * 3
        result = score_qualitative_criterion(key, given)
        unclear += sum(1 for a in result.answers if a.answer is Answer.UNCLEAR)
        results[key] = result
    if unclear:
        logger.info("%d qualitative answers unclear; scored as zero", unclear)
    return QualitativeSummary(
        criteria=results,
        total=sum(r.score for r in results.values()),
        max_total=QUALITATIVE_MAX_TOTAL,
        unclear_count=unclear,
    )


def classify_answers(classifier: AnswerClassifier, texts: Mapping[str, Sequence[str]]) -> Dict[str, Tuple[Answer, ...]]:
    """Run an external classifier over free-text research per criterion."""
    return {key: tuple(classifier.classify(text) for text in items) for key, items in texts.items()}


def two_pillar_gate(
    quality_percentage: float,
    margin_of_safety: Optional[float],
    *,
    quality_threshold: float = QUALITY_MET,
) -> TwoPillarResult:
    """Conforming only when quality clears the threshold AND price offers a non-negative margin."""
    price_passed = margin_of_safety is not None and margin_of_safety >= 0
    return TwoPillarResult(
        quality_percentage=quality_percentage,
        margin_of_safety=margin_of_safety if margin_of_safety is not None else float("nan"),
        quality_passed=quality_percentage >= quality_threshold,
        price_passed=price_passed,
    )
