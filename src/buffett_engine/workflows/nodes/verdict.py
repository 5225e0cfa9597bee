"""LangGraph node applying the two-pillar gate and preparing display output."""
from __future__ import annotations

from datetime import date
from typing import Optional

from buffett_engine.domain.models.fx import RateUnavailable
from buffett_engine.domain.services.scoring import two_pillar_gate
from buffett_engine.workflows.context import WorkflowContext
from buffett_engine.workflows.state import AnalysisState


def run(state: AnalysisState, context: WorkflowContext) -> AnalysisState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    valuations = state.get("valuations") or {}
    primary = _primary_mode(state)

    quality = state.get("quality")
    margin = (state.get("margins_of_safety") or {}).get(primary) if primary else None
    if quality is not None:
        gate = two_pillar_gate(quality.percentage, margin, quality_threshold=context.config.quality_threshold)
        state["gate"] = gate
        logs.append(
            f"TwoPillarGate -> {'conforming' if gate.conforming else 'not conforming'} "
            f"(quality {'pass' if gate.quality_passed else 'fail'}, price {'pass' if gate.price_passed else 'fail'})"
        )
    else:
        errors.append("TwoPillarGate skipped because no quality score is available.")

    result = valuations.get(primary) if primary else None
    if result is None:
        return state

    quote_ccy = state.get("quote_currency", "USD")
    display_ccy = state.get("display_currency", quote_ccy)
    if result.is_valid:
        try:
            rate = context.fx_resolver.resolve(quote_ccy, display_ccy, date.fromisoformat(state["as_of"]))
        except RateUnavailable as exc:
            errors.append(f"Display conversion failed: {exc}")
        else:
            state.setdefault("fx_quotes", {})[f"{quote_ccy}->{display_ccy}"] = rate
            display = state.setdefault("display_values", {})
            display["intrinsic_value"] = rate.convert(result.intrinsic_value)  # type: ignore[union-attr]
            if primary in (state.get("buy_prices") or {}):
                display["buy_price"] = rate.convert(state["buy_prices"][primary])

    state["explanation"] = context.renderer.explain_dcf(
        result,
        quote_ccy,
        margin_of_safety=state.get("margin_of_safety_target", context.config.default_margin_of_safety),
        current_price=state.get("current_price"),
        verdict=(state.get("verdicts") or {}).get(primary),
        ticker=state.get("ticker"),
    )
    return state


def _primary_mode(state: AnalysisState) -> Optional[str]:
    forecasts = state.get("forecasts") or {}
    return next(iter(forecasts), None)
