"""Tagged score types used by the quality aggregator and metric calculators.

Every type validates at construction so downstream code can trust its fields.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Protocol, Tuple

QUESTION_WEIGHTS = (1.0, 0.5)


class Answer(str, Enum):
    YES = "yes"
    PARTIAL = "partial"
    NO = "no"
    UNCLEAR = "unclear"

    @classmethod
    def parse(cls, value: "str | Answer") -> "Answer":
        if isinstance(value, Answer):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown answer {value!r}; expected yes, partial, no or unclear.") from exc


class AnswerClassifier(Protocol):
    """Turns free-text research output into an :class:`Answer`."""

    def classify(self, text: str) -> Answer:
        ...


@dataclass(frozen=True)
class QualitativeAnswer:
    answer: Answer
    weight: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "answer", Answer.parse(self.answer))
        if self.weight not in QUESTION_WEIGHTS:
            raise ValueError(f"Question weight must be 1.0 or 0.5, got {self.weight!r}.")

    @property
    def points(self) -> float:
        if self.answer is Answer.YES:
            return self.weight
        if self.answer is Answer.PARTIAL:
            return self.weight / 2
        # "no" and "unclear" both score zero.
        return 0.0


@dataclass(frozen=True)
class CriterionScore:
    criterion: str
    score: float
    weight: float

    def __post_init__(self) -> None:
        if self.score is None or math.isnan(float(self.score)) or not 0 <= self.score <= 10:
            raise ValueError(f"Score for {self.criterion!r} must be within 0..10, got {self.score!r}.")
        if self.weight <= 0:
            raise ValueError(f"Weight for {self.criterion!r} must be positive, got {self.weight!r}.")

    @property
    def weighted_contribution(self) -> float:
        return self.score * self.weight / 100

    @property
    def max_contribution(self) -> float:
        return 10 * self.weight / 100


class QualityRating(str, Enum):
    MET = "met"
    PARTIALLY_MET = "partially_met"
    NOT_MET = "not_met"


@dataclass(frozen=True)
class QualityScore:
    percentage: float
    rating: QualityRating
    breakdown: Tuple[CriterionScore, ...] = ()


@dataclass(frozen=True)
class QualitativeCriterionScore:
    criterion: str
    answers: Tuple[QualitativeAnswer, ...]
    score: float
    max_score: float

    def on_ten_point_scale(self) -> float:
        """Express the sub-score on the 0..10 scale used by the aggregator."""
        if self.max_score <= 0:
            return 0.0
        return round(self.score / self.max_score * 10, 2)


@dataclass(frozen=True)
class QualitativeSummary:
    criteria: Dict[str, QualitativeCriterionScore]
    total: float
    max_total: float
    unclear_count: int = 0


@dataclass(frozen=True)
class TwoPillarResult:
    quality_percentage: float
    margin_of_safety: float
    quality_passed: bool
    price_passed: bool

    @property
    def conforming(self) -> bool:
        return self.quality_passed and self.price_passed


class MetricStatus(str, Enum):
    PASS = "pass"
    WARNING = "warning"
    FAIL = "fail"


class TimePeriodBadge(str, Enum):
    TEN_YEARS = "10J"
    FIVE_YEARS = "5J"
    THREE_YEARS = "3J"
    TTM = "TTM"
    DATA_GAP = "Datenlücke"


@dataclass(frozen=True)
class MetricResult:
    value: Optional[float]
    status: MetricStatus
    badge: TimePeriodBadge
    years: int = 0
    explanation: str = ""
    notes: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", MetricStatus(self.status))
        object.__setattr__(self, "badge", TimePeriodBadge(self.badge))
        if self.value is not None and math.isnan(self.value):
            object.__setattr__(self, "value", None)
        if self.value is None and self.status is MetricStatus.PASS:
            raise ValueError("A metric without a value cannot pass.")
