"""LangGraph node running the DCF for every valuation mode."""
from __future__ import annotations

from typing import Dict

from buffett_engine.domain.models.valuation import ValuationResult
from buffett_engine.domain.services.dcf import evaluate_valuation, ideal_buy_price, margin_of_safety
from buffett_engine.workflows.context import WorkflowContext
from buffett_engine.workflows.state import AnalysisState


def run(state: AnalysisState, context: WorkflowContext) -> AnalysisState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    forecasts = state.get("forecasts") or {}

    if state.get("fx_blocked"):
        errors.append("IntrinsicValue skipped because figures could not be converted to the quote currency.")
        return state
    if not forecasts:
        errors.append("IntrinsicValue skipped because no forecast was supplied.")
        return state

    # Modes are independent; each result depends only on its own forecast.
    results: Dict[str, ValuationResult] = {
        name: context.dcf_calculator.calculate(forecast) for name, forecast in forecasts.items()
    }
    state["valuations"] = results

    price = state.get("current_price")
    target = state.get("margin_of_safety_target", context.config.default_margin_of_safety)
    verdicts = state.setdefault("verdicts", {})
    margins = state.setdefault("margins_of_safety", {})
    buy_prices = state.setdefault("buy_prices", {})
    for name, result in results.items():
        if not result.is_valid:
            errors.append(f"{name}: {result.error_message} ({', '.join(result.missing_inputs)})")  # type: ignore[union-attr]
            continue
        value = result.intrinsic_value  # type: ignore[union-attr]
        buy_prices[name] = ideal_buy_price(value, target)
        logs.append(f"IntrinsicValue -> {name}: {value:.2f} {state.get('quote_currency')}")
        if price is None:
            continue
        verdicts[name] = evaluate_valuation(value, price)
        margin = margin_of_safety(value, price)
        if margin is not None:
            margins[name] = margin
    return state
