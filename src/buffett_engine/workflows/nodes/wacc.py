"""LangGraph node estimating WACC and filling forecasts that lack one."""
from __future__ import annotations

from typing import Optional

from buffett_engine.domain.services.wacc import WaccInputs
from buffett_engine.workflows.context import WorkflowContext
from buffett_engine.workflows.state import AnalysisState


def run(state: AnalysisState, context: WorkflowContext) -> AnalysisState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    forecasts = state.get("forecasts") or {}

    if forecasts and all(f.wacc is not None for f in forecasts.values()):
        logs.append("WaccEstimator -> skipped, every forecast carries a discount rate")
        return state

    dataset = state.get("dataset")
    market_cap = _market_cap_in_reporting_currency(state)
    try:
        if dataset is not None:
            inputs = WaccInputs.from_dataset(dataset, market_cap, state.get("beta"))
        else:
            inputs = WaccInputs(market_cap=market_cap, beta=state.get("beta"))
        breakdown = context.wacc_estimator.estimate(inputs)
    except Exception as exc:  # pylint: disable=broad-except
        errors.append(f"WACC estimation failed: {exc}")
        return state

    state["wacc"] = breakdown
    state["forecasts"] = {
        name: f if f.wacc is not None else f.with_wacc(breakdown.wacc) for name, f in forecasts.items()
    }
    suffix = " (default)" if breakdown.defaulted else ""
    logs.append(f"WaccEstimator -> {breakdown.wacc:.2f}%{suffix}")
    return state


def _market_cap_in_reporting_currency(state: AnalysisState) -> Optional[float]:
    """Market cap is quoted in the trading currency; debt comes from the statements."""
    market_cap = state.get("market_cap")
    if market_cap is None:
        return None
    reporting = state.get("reporting_currency")
    quote_ccy = state.get("quote_currency")
    rate = (state.get("fx_quotes") or {}).get(f"{reporting}->{quote_ccy}")
    return market_cap / rate.rate if rate is not None else market_cap
