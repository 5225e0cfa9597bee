"""LangGraph node converting forecasts from reporting to quote currency."""
from __future__ import annotations

from datetime import date

from buffett_engine.domain.models.fx import RateUnavailable
from buffett_engine.workflows.context import WorkflowContext
from buffett_engine.workflows.state import AnalysisState


def run(state: AnalysisState, context: WorkflowContext) -> AnalysisState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    quotes = state.setdefault("fx_quotes", {})
    reporting = state.get("reporting_currency", "USD")
    quote_ccy = state.get("quote_currency", reporting)
    state["fx_blocked"] = False

    if reporting == quote_ccy:
        logs.append(f"CurrencyNormalize -> figures already in {quote_ccy}")
        return state

    as_of = date.fromisoformat(state["as_of"])
    try:
        rate = context.fx_resolver.resolve(reporting, quote_ccy, as_of)
    except RateUnavailable as exc:
        # No valuation on an unresolved rate.
        errors.append(f"Currency normalisation failed: {exc}")
        state["fx_blocked"] = True
        return state

    quotes[f"{reporting}->{quote_ccy}"] = rate
    state["forecasts"] = {name: f.scaled(rate.rate) for name, f in (state.get("forecasts") or {}).items()}
    logs.append(
        f"CurrencyNormalize -> {reporting}->{quote_ccy} at {rate.rate:.6f} ({rate.source.value})"
    )
    return state
