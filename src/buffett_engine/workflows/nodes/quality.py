"""LangGraph node building the weighted quality score."""
from __future__ import annotations

from typing import Dict

from buffett_engine.domain.services.metrics import growth_scores
from buffett_engine.domain.services.scoring import (
    QUALITATIVE_CRITERIA,
    aggregate_quality,
    build_criterion_scores,
    score_qualitative,
    valuation_score,
)
from buffett_engine.domain.services.sector import financial_strength
from buffett_engine.workflows.context import WorkflowContext
from buffett_engine.workflows.state import AnalysisState


def run(state: AnalysisState, context: WorkflowContext) -> AnalysisState:
    logs = state.setdefault("logs", [])
    errors = state.setdefault("errors", [])
    scores: Dict[str, float] = dict(state.get("criterion_scores") or {})

    dataset = state.get("dataset")
    if dataset is not None:
        try:
            state["metrics"] = context.metrics_calculator.calculate(dataset)
            growth = growth_scores(
                revenue=dataset.series("IS", "revenue"),
                ebitda=dataset.series("IS", "ebitda"),
                eps=dataset.series("IS", "eps"),
                fcf=dataset.series("CF", "free_cash_flow"),
            )
            state["growth"] = growth
            scores.setdefault("financial_metrics", round(growth.total / growth.max_total * 10, 2))
        except Exception as exc:  # pylint: disable=broad-except
            errors.append(f"Metric calculation failed: {exc}")

    primary = next(iter(state.get("forecasts") or {}), None)
    valuation = (state.get("valuations") or {}).get(primary) if primary else None
    if valuation is not None and valuation.is_valid and state.get("current_price") is not None:
        # Negative intrinsic value leaves no margin, which scores zero.
        margin = (state.get("margins_of_safety") or {}).get(primary)
        scores.setdefault("valuation", valuation_score(margin))

    strength_inputs = state.get("strength_inputs") or {}
    if strength_inputs:
        strength = financial_strength(state.get("industry"), strength_inputs)
        state["strength"] = strength
        scores.setdefault("financial_stability", round(strength.total / strength.max_total * 10, 2))
        logs.append(
            f"QualityScore -> balance sheet {strength.total:g}/{strength.max_total:g} ({strength.archetype.value})"
        )

    answers = state.get("qualitative_answers") or {}
    if answers:
        try:
            summary = score_qualitative(answers)
        except ValueError as exc:
            errors.append(f"Qualitative scoring failed: {exc}")
        else:
            state["qualitative"] = summary
            for key in QUALITATIVE_CRITERIA:
                if key in answers:
                    scores.setdefault(key, summary.criteria[key].on_ten_point_scale())

    if not scores:
        errors.append("QualityScore skipped because no criterion could be scored.")
        return state

    try:
        quality = aggregate_quality(build_criterion_scores(scores))
    except ValueError as exc:
        errors.append(f"Quality aggregation failed: {exc}")
        return state

    state["quality"] = quality
    logs.append(f"QualityScore -> {quality.percentage:.1f}% ({quality.rating.value}, {len(scores)} criteria)")
    return state
