"""Rolling-window selection for multi-year metrics."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Generic, List, Sequence, Tuple, TypeVar

from buffett_engine.domain.models.scoring import TimePeriodBadge

logger = logging.getLogger(__name__)

T = TypeVar("T")

WINDOW_PREFERENCE: Tuple[int, ...] = (10, 5, 3)

_BADGES = {
    10: TimePeriodBadge.TEN_YEARS,
    5: TimePeriodBadge.FIVE_YEARS,
    3: TimePeriodBadge.THREE_YEARS,
}


@dataclass(frozen=True)
class WindowSelection(Generic[T]):
    years: int
    badge: TimePeriodBadge
    points: Tuple[T, ...]

    @property
    def is_gap(self) -> bool:
        return self.badge is TimePeriodBadge.DATA_GAP


def resolve_window(points: Sequence[T], preferred_years: int = 10) -> WindowSelection[T]:
    """Pick the longest usable window from ``points`` (most recent first).

    The longest of 10/5/3 years not exceeding both ``preferred_years`` and the
    number of points wins. With one or two points every point is used and the
    result carries the data-gap badge; with none the slice is empty.
    """
    candidates = [w for w in WINDOW_PREFERENCE if w <= preferred_years]
    if not candidates:
        raise ValueError(f"Preferred window must be at least {WINDOW_PREFERENCE[-1]} years, got {preferred_years}.")

    available = list(points)
    for window in candidates:
        if len(available) >= window:
            return WindowSelection(window, _BADGES[window], tuple(available[:window]))

    if available:
        logger.debug("Only %d data points available; using all with data-gap badge", len(available))
    return WindowSelection(len(available), TimePeriodBadge.DATA_GAP, tuple(available))


def usable_values(points: Sequence[object]) -> List[float]:
    """Drop missing entries so a window only contains real observations."""
    values: List[float] = []
    for point in points:
        if point is None:
            continue
        try:
            value = float(point)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            continue
        if value != value:  # NaN
            continue
        values.append(value)
    return values
