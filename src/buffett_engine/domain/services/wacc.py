"""Weighted average cost of capital with policy clamps.

Beta is held to 0.5..2.5, the tax rate to 0..50 % and the result to 8..12 %.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd

from buffett_engine.domain.models.financials import FinancialDataset
from buffett_engine.domain.models.valuation import WaccBreakdown

logger = logging.getLogger(__name__)

BETA_FLOOR, BETA_CAP = 0.5, 2.5
TAX_FLOOR, TAX_CAP = 0.0, 0.5
DEFAULT_TAX_RATE = 0.21
WACC_FLOOR, WACC_CAP = 8.0, 12.0
DEFAULT_WACC = 10.0
LOOKBACK_PERIODS = 4


@dataclass
class WaccInputs:
    """Raw inputs, period lists most recent first."""

    market_cap: Optional[float]
    beta: Optional[float] = None
    short_term_debt: List[Optional[float]] = field(default_factory=list)
    long_term_debt: List[Optional[float]] = field(default_factory=list)
    lease_liabilities: List[Optional[float]] = field(default_factory=list)
    interest_expense: List[Optional[float]] = field(default_factory=list)
    income_before_tax: List[Optional[float]] = field(default_factory=list)
    income_tax_expense: List[Optional[float]] = field(default_factory=list)

    @classmethod
    def from_dataset(cls, dataset: FinancialDataset, market_cap: Optional[float], beta: Optional[float]) -> "WaccInputs":
        return cls(
            market_cap=market_cap,
            beta=beta,
            short_term_debt=dataset.series("BS", "short_term_debt"),
            long_term_debt=dataset.series("BS", "long_term_debt"),
            lease_liabilities=dataset.series("BS", "operating_lease_liabilities"),
            interest_expense=dataset.series("IS", "interest_expense"),
            income_before_tax=dataset.series("IS", "income_before_tax"),
            income_tax_expense=dataset.series("IS", "income_tax_expense"),
        )


class WaccEstimator:
    """Estimate WACC (percent) and never fail the caller."""

    def __init__(
        self,
        risk_free_rate: float = 0.04,
        market_risk_premium: float = 0.06,
        default_wacc: float = DEFAULT_WACC,
    ) -> None:
        self.risk_free_rate = risk_free_rate
        self.market_risk_premium = market_risk_premium
        self.default_wacc = _clamp(default_wacc, WACC_FLOOR, WACC_CAP)
        if self.default_wacc != default_wacc:
            logger.warning(
                "Default WACC %.2f%% outside %.0f..%.0f%%; using %.2f%%",
                default_wacc,
                WACC_FLOOR,
                WACC_CAP,
                self.default_wacc,
            )

    def estimate(self, inputs: WaccInputs) -> WaccBreakdown:
        try:
            return self._estimate(inputs)
        except (ArithmeticError, TypeError, ValueError) as exc:
            logger.warning("WACC estimation failed (%s); defaulting to %.1f%%", exc, self.default_wacc)
            return self._default(f"estimation failed: {exc}")

    def _estimate(self, inputs: WaccInputs) -> WaccBreakdown:
        market_cap = inputs.market_cap
        if market_cap is None or not math.isfinite(market_cap):
            logger.warning("Market capitalisation unavailable; defaulting WACC to %.1f%%", self.default_wacc)
            return self._default("market capitalisation unavailable")

        equity = max(1.0, float(market_cap))
        debt = max(0.0, _average_debt(inputs))
        total = equity + debt

        beta = _clamp(inputs.beta if _finite(inputs.beta) else 1.0, BETA_FLOOR, BETA_CAP)
        cost_of_equity = self.risk_free_rate + beta * self.market_risk_premium

        avg_interest = _mean_abs(inputs.interest_expense[:LOOKBACK_PERIODS])
        cost_of_debt = avg_interest / debt if debt > 0 and avg_interest > 0 else 0.0

        tax_rate = _effective_tax_rate(
            inputs.income_before_tax[:LOOKBACK_PERIODS],
            inputs.income_tax_expense[:LOOKBACK_PERIODS],
        )

        equity_weight = equity / total
        debt_weight = debt / total
        raw = (equity_weight * cost_of_equity + debt_weight * cost_of_debt * (1 - tax_rate)) * 100
        if not math.isfinite(raw):
            raise ValueError("non-finite WACC")

        clamped = round(_clamp(raw, WACC_FLOOR, WACC_CAP), 2)
        notes: List[str] = []
        if clamped != round(raw, 2):
            notes.append(f"raw WACC {raw:.2f}% clamped to {clamped:.2f}%")
        return WaccBreakdown(
            wacc=clamped,
            cost_of_equity=cost_of_equity,
            cost_of_debt=cost_of_debt,
            tax_rate=tax_rate,
            equity_weight=equity_weight,
            debt_weight=debt_weight,
            beta=beta,
            unclamped_wacc=raw,
            notes=notes,
        )

    def _default(self, reason: str) -> WaccBreakdown:
        return WaccBreakdown(wacc=self.default_wacc, defaulted=True, notes=[reason])


# ----------------------------
# Internal helpers
# ----------------------------

def _finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _average_debt(inputs: WaccInputs) -> float:
    """Mean of short + long term debt + leases over the lookback periods."""
    frame = pd.DataFrame(
        {
            "short": pd.Series(inputs.short_term_debt[:LOOKBACK_PERIODS], dtype="float64"),
            "long": pd.Series(inputs.long_term_debt[:LOOKBACK_PERIODS], dtype="float64"),
            "lease": pd.Series(inputs.lease_liabilities[:LOOKBACK_PERIODS], dtype="float64"),
        }
    )
    if frame.empty:
        return 0.0
    totals = frame.fillna(0.0).sum(axis=1)
    return float(totals.mean())


def _mean_abs(values: List[Optional[float]]) -> float:
    series = pd.Series(values, dtype="float64").dropna().abs()
    return float(series.mean()) if not series.empty else 0.0


def _effective_tax_rate(pre_tax: List[Optional[float]], tax: List[Optional[float]]) -> float:
    """Average per-period tax rate over periods with positive pre-tax income."""
    rates = [
        t / p
        for p, t in zip(pre_tax, tax)
        if _finite(p) and _finite(t) and p > 0 and t != 0
    ]
    if not rates:
        return DEFAULT_TAX_RATE
    return _clamp(sum(rates) / len(rates), TAX_FLOOR, TAX_CAP)
