"""Discounted cash flow valuation and price verdicts.

The calculator returns either :class:`IntrinsicValue` or
:class:`ValuationFailure`; it never raises to its caller.
"""
from __future__ import annotations

import logging
import math
from typing import List, Optional

from buffett_engine.domain.models.valuation import (
    MIN_FORECAST_YEARS,
    Forecast,
    IntrinsicValue,
    ValuationFailure,
    ValuationResult,
    ValuationStatus,
    ValuationVerdict,
)

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA = "Insufficient data for DCF calculation"
COMPUTATION_ERROR = "Error during DCF calculation"
VERDICT_BAND = 10.0
DEFAULT_MARGIN_OF_SAFETY = 20.0
# Absorbs float noise so that price = 1.1 x value always lands on the band edge.
_BAND_TOLERANCE = 1e-9


class IntrinsicValueCalculator:
    """Discount a UFCF forecast plus terminal value to a per-share value."""

    def missing_inputs(self, forecast: Forecast) -> List[str]:
        """Every input that prevents a valuation, not just the first."""
        missing: List[str] = []
        if len(forecast.ufcf) < MIN_FORECAST_YEARS:
            missing.append(f"ufcf (at least {MIN_FORECAST_YEARS} years)")
        if _absent(forecast.wacc):
            missing.append("wacc")
        if _absent(forecast.present_terminal_value):
            missing.append("present_terminal_value")
        if _absent(forecast.net_debt):
            missing.append("net_debt")
        shares = forecast.diluted_shares_outstanding
        if _absent(shares) or shares <= 0:  # type: ignore[operator]
            missing.append("diluted_shares_outstanding")
        return missing

    def calculate(self, forecast: Forecast) -> ValuationResult:
        missing = self.missing_inputs(forecast)
        if missing:
            logger.debug("DCF skipped, missing inputs: %s", ", ".join(missing))
            return ValuationFailure(INSUFFICIENT_DATA, tuple(missing))

        try:
            return self._discount(forecast)
        except (ArithmeticError, TypeError, ValueError) as exc:
            logger.warning("DCF computation failed: %s", exc)
            return ValuationFailure(COMPUTATION_ERROR, ("computation_error",))

    def _discount(self, forecast: Forecast) -> IntrinsicValue:
        rate = float(forecast.wacc) / 100  # type: ignore[arg-type]
        pv_ufcfs = tuple(cf / (1 + rate) ** year for year, cf in enumerate(forecast.ufcf, start=1))
        sum_pv = math.fsum(pv_ufcfs)
        terminal = float(forecast.present_terminal_value)  # type: ignore[arg-type]
        enterprise_value = sum_pv + terminal
        equity_value = enterprise_value - float(forecast.net_debt)  # type: ignore[arg-type]
        intrinsic = equity_value / float(forecast.diluted_shares_outstanding)  # type: ignore[arg-type]
        terminal_pct = terminal / enterprise_value * 100

        figures = (sum_pv, enterprise_value, equity_value, intrinsic, terminal_pct)
        if not all(math.isfinite(v) for v in figures):
            raise ValueError("non-finite DCF output")

        return IntrinsicValue(
            intrinsic_value=intrinsic,
            enterprise_value=enterprise_value,
            equity_value=equity_value,
            sum_pv_ufcf=sum_pv,
            terminal_value_percentage=terminal_pct,
            pv_ufcfs=pv_ufcfs,
            years=len(pv_ufcfs),
        )


def evaluate_valuation(intrinsic_value: float, current_price: float) -> ValuationVerdict:
    """Classify a price against intrinsic value with a +/-10 % fair band.

    A non-positive intrinsic value (equity wiped out by net debt) leaves the
    percentage undefined; any price is then judged overvalued.
    """
    if not _has_positive_value(intrinsic_value):
        return ValuationVerdict(status=ValuationStatus.OVERVALUED, percentage_diff=None)
    diff = (current_price - intrinsic_value) / intrinsic_value * 100
    if diff <= -VERDICT_BAND + _BAND_TOLERANCE:
        status = ValuationStatus.UNDERVALUED
    elif diff >= VERDICT_BAND - _BAND_TOLERANCE:
        status = ValuationStatus.OVERVALUED
    else:
        status = ValuationStatus.FAIRVALUED
    return ValuationVerdict(status=status, percentage_diff=diff)


def ideal_buy_price(intrinsic_value: float, margin_of_safety: float = DEFAULT_MARGIN_OF_SAFETY) -> float:
    return intrinsic_value * (1 - margin_of_safety / 100)


def margin_of_safety(intrinsic_value: float, current_price: float) -> Optional[float]:
    """Percent by which price sits below (positive) or above (negative) value.

    None when the intrinsic value is not positive.
    """
    if not _has_positive_value(intrinsic_value):
        return None
    return (intrinsic_value - current_price) / intrinsic_value * 100


def _absent(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _has_positive_value(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0
