"""Fundamental quality metrics with rolling-window provenance.

Ratios are built per period from the income statement and balance sheet with
pandas, then averaged over the window chosen by :func:`resolve_window`. Every
result carries the badge of the window it was actually computed on.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from buffett_engine.domain.models.financials import FinancialDataset, FinancialStatement
from buffett_engine.domain.models.scoring import MetricResult, MetricStatus, TimePeriodBadge
from buffett_engine.domain.services.windows import resolve_window, usable_values

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Threshold:
    excellent: float
    good: float

    def status(self, value: float) -> MetricStatus:
        if value >= self.excellent:
            return MetricStatus.PASS
        if value >= self.good:
            return MetricStatus.WARNING
        return MetricStatus.FAIL


BUFFETT_THRESHOLDS: Dict[str, Threshold] = {
    "roe": Threshold(15, 10),
    "roic": Threshold(12, 8),
    "net_margin": Threshold(15, 10),
    "eps_growth": Threshold(10, 5),
}


def cagr(start: float, end: float, years: float) -> float:
    """Compound annual growth rate in percent; 0 when undefined."""
    if start <= 0 or end <= 0 or years <= 0:
        return 0.0
    return ((end / start) ** (1.0 / years) - 1.0) * 100


def average_metric(
    values: Sequence[Optional[float]],
    threshold: Threshold,
    *,
    label: str,
    preferred_years: int = 10,
    as_percent: bool = True,
) -> MetricResult:
    """Average a ratio series (most recent first) over the best window."""
    selection = resolve_window(usable_values(values), preferred_years)
    if not selection.points:
        return MetricResult(None, MetricStatus.FAIL, TimePeriodBadge.DATA_GAP, 0, f"No {label} data available")

    average = float(pd.Series(selection.points, dtype="float64").mean())
    if as_percent:
        average *= 100
    return MetricResult(
        value=average,
        status=threshold.status(average),
        badge=selection.badge,
        years=selection.years,
        explanation=f"Average {label} over {selection.badge.value}: {average:.1f}%",
    )


def growth_metric(
    values: Sequence[Optional[float]],
    threshold: Threshold,
    *,
    label: str,
    preferred_years: int = 10,
) -> MetricResult:
    """CAGR over the best window; a span of N years needs N + 1 observations."""
    points = usable_values(values)
    selection = resolve_window(points[1:], preferred_years)
    span = selection.years
    if span < 1:
        return MetricResult(
            None,
            MetricStatus.FAIL,
            TimePeriodBadge.DATA_GAP,
            0,
            f"Not enough {label} history for a growth rate",
        )

    latest, oldest = points[0], points[span]
    if oldest <= 0 or latest <= 0:
        return MetricResult(
            None,
            MetricStatus.FAIL,
            selection.badge,
            span,
            f"{label} growth undefined for non-positive values",
        )
    growth = cagr(oldest, latest, span)
    return MetricResult(
        value=growth,
        status=threshold.status(growth),
        badge=selection.badge,
        years=span,
        explanation=f"{label} CAGR over {span} years: {growth:.1f}%",
    )


def ttm_metric(value: Optional[float], threshold: Threshold, *, label: str) -> MetricResult:
    """Point-in-time metric for the trailing twelve months."""
    if value is None or np.isnan(value):
        return MetricResult(None, MetricStatus.FAIL, TimePeriodBadge.DATA_GAP, 0, f"No {label} value")
    return MetricResult(
        value=float(value),
        status=threshold.status(float(value)),
        badge=TimePeriodBadge.TTM,
        years=1,
        explanation=f"{label} (TTM): {float(value):.1f}",
    )


def profitable_years(net_incomes: Sequence[Optional[float]], preferred_years: int = 10) -> MetricResult:
    """Count profitable years in the window; pass only when every year was profitable."""
    selection = resolve_window(usable_values(net_incomes), preferred_years)
    if not selection.points:
        return MetricResult(None, MetricStatus.FAIL, TimePeriodBadge.DATA_GAP, 0, "No earnings history")
    positive = sum(1 for v in selection.points if v > 0)
    share = positive / len(selection.points)
    if share == 1.0:
        status = MetricStatus.PASS
    elif share >= 0.8:
        status = MetricStatus.WARNING
    else:
        status = MetricStatus.FAIL
    return MetricResult(
        value=float(positive),
        status=status,
        badge=selection.badge,
        years=selection.years,
        explanation=f"{positive} of {len(selection.points)} years profitable",
    )


class FundamentalMetricsCalculator:
    """Derive the long-horizon quality metrics for a dataset."""

    def __init__(self, preferred_years: int = 10) -> None:
        self._preferred_years = preferred_years

    def ratio_frame(self, dataset: FinancialDataset) -> pd.DataFrame:
        """Per-period ratios, most recent first."""
        inc = _frame_from_statements(
            dataset.statements("IS"),
            keys=["revenue", "net_income", "operating_income", "income_before_tax", "income_tax_expense", "eps"],
        )
        bs = _frame_from_statements(
            dataset.statements("BS"),
            keys=["total_equity", "short_term_debt", "long_term_debt", "cash_and_equivalents"],
        )
        if inc.empty:
            return pd.DataFrame(columns=["period", "roe", "roic", "net_margin", "eps", "net_income"])
        df = inc.merge(bs, on="period", how="left") if not bs.empty else inc
        for col in ["total_equity", "short_term_debt", "long_term_debt", "cash_and_equivalents"]:
            if col not in df:
                df[col] = np.nan

        df["roe"] = _sdiv(df["net_income"], df["total_equity"])
        df["net_margin"] = _sdiv(df["net_income"], df["revenue"])
        tax_rate = _sdiv(df["income_tax_expense"], df["income_before_tax"]).clip(lower=0.0, upper=0.5).fillna(0.21)
        nopat = df["operating_income"] * (1.0 - tax_rate)
        invested = (
            df["total_equity"]
            + df["short_term_debt"].fillna(0.0)
            + df["long_term_debt"].fillna(0.0)
            - df["cash_and_equivalents"].fillna(0.0)
        )
        df["roic"] = _sdiv(nopat, invested.where(invested > 0))
        return df.sort_values("period", ascending=False).reset_index(drop=True)

    def calculate(self, dataset: FinancialDataset) -> Dict[str, MetricResult]:
        df = self.ratio_frame(dataset)
        years = self._preferred_years
        results = {
            "roe": average_metric(_column(df, "roe"), BUFFETT_THRESHOLDS["roe"], label="ROE", preferred_years=years),
            "roic": average_metric(_column(df, "roic"), BUFFETT_THRESHOLDS["roic"], label="ROIC", preferred_years=years),
            "net_margin": average_metric(
                _column(df, "net_margin"), BUFFETT_THRESHOLDS["net_margin"], label="net margin", preferred_years=years
            ),
            "eps_growth": growth_metric(
                _column(df, "eps"), BUFFETT_THRESHOLDS["eps_growth"], label="EPS", preferred_years=years
            ),
            "profitable_years": profitable_years(_column(df, "net_income"), preferred_years=years),
        }
        for key, result in results.items():
            if result.badge is TimePeriodBadge.DATA_GAP:
                logger.info("%s %s resolved with data gap (%d years)", dataset.ticker, key, result.years)
        return results


# ----------------------------
# Growth scores
# ----------------------------

@dataclass(frozen=True)
class GrowthScores:
    revenue: int
    ebitda: int
    eps: int
    fcf: int
    cagrs: Dict[str, float]
    max_total: int = 20

    @property
    def total(self) -> int:
        return self.revenue + self.ebitda + self.eps + self.fcf


# (threshold, points) pairs, highest first.
_GROWTH_BANDS: Dict[str, Tuple[Tuple[float, int], ...]] = {
    "revenue": ((10, 4), (7, 3), (5, 2), (3, 1)),
    "ebitda": ((12, 4), (8, 3), (6, 2), (3, 1)),
    "eps": ((15, 6), (12, 5), (9, 4), (6, 2), (3, 1)),
    "fcf": ((12, 6), (10, 5), (7, 4), (4, 2), (2, 1)),
}


def best_cagr(values: Sequence[Optional[float]]) -> float:
    """Longest positive CAGR among 10, 5 and 3 year spans (most recent first)."""
    points = usable_values(values)
    for span in (10, 5):
        if len(points) > span:
            growth = cagr(points[span], points[0], span)
            if growth > 0:
                return growth
    if len(points) > 3:
        return cagr(points[3], points[0], 3)
    return 0.0


def growth_points(metric: str, growth: float) -> int:
    for threshold, points in _GROWTH_BANDS[metric]:
        if growth >= threshold:
            return points
    return 0


def growth_scores(
    revenue: Iterable[Optional[float]] = (),
    ebitda: Iterable[Optional[float]] = (),
    eps: Iterable[Optional[float]] = (),
    fcf: Iterable[Optional[float]] = (),
) -> GrowthScores:
    """Score revenue/EBITDA/EPS/FCF growth on a 20 point scale."""
    cagrs = {
        "revenue": best_cagr(list(revenue)),
        "ebitda": best_cagr(list(ebitda)),
        "eps": best_cagr(list(eps)),
        "fcf": best_cagr(list(fcf)),
    }
    return GrowthScores(
        revenue=growth_points("revenue", cagrs["revenue"]),
        ebitda=growth_points("ebitda", cagrs["ebitda"]),
        eps=growth_points("eps", cagrs["eps"]),
        fcf=growth_points("fcf", cagrs["fcf"]),
        cagrs=cagrs,
    )


# ----------------------------
# Internal helpers
# ----------------------------

def _frame_from_statements(statements: Iterable[FinancialStatement], keys: List[str]) -> pd.DataFrame:
    rows: List[Dict[str, object]] = []
    for s in statements:
        row: Dict[str, object] = {k: _to_float(s.metrics.get(k)) for k in keys}
        row["period"] = s.period
        rows.append(row)
    if not rows:
        return pd.DataFrame(columns=["period", *keys])
    df = pd.DataFrame(rows)
    df["period"] = pd.to_datetime(df["period"])
    return df


def _sdiv(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    """Element-wise division yielding NaN for zero or missing denominators."""
    denom = denominator.replace(0, np.nan)
    return numerator / denom


def _column(df: pd.DataFrame, col: str) -> List[Optional[float]]:
    if col not in df:
        return []
    return [None if pd.isna(v) else float(v) for v in df[col].tolist()]


def _to_float(value: object) -> float:
    try:
        if value is None:
            return float("nan")
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return float("nan")
