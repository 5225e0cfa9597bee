"""Workflow blueprint describing analysis stages and their handlers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, TYPE_CHECKING

from buffett_engine.workflows.nodes import (
    currency_normalize,
    intrinsic_value,
    quality,
    verdict,
    wacc,
)

if TYPE_CHECKING:
    from buffett_engine.workflows.context import WorkflowContext
    from buffett_engine.workflows.state import AnalysisState


@dataclass
class StageSpec:
    """Single LangGraph stage definition."""

    key: str
    description: str
    handler: Callable[["AnalysisState", "WorkflowContext"], "AnalysisState"]
    depends_on: List[str] = field(default_factory=list)


def build_default_stages() -> List[StageSpec]:
    """Return the ordered stages for the analysis workflow."""
    return [
        StageSpec(
            key="currency_normalize",
            description="Convert forecast figures from reporting to quote currency.",
            handler=currency_normalize.run,
        ),
        StageSpec(
            key="wacc",
            description="Estimate WACC from market cap, debt, beta and tax; fill forecasts lacking a rate.",
            handler=wacc.run,
            depends_on=["currency_normalize"],
        ),
        StageSpec(
            key="intrinsic_value",
            description="Run the DCF per valuation mode; derive verdicts, margins and buy prices.",
            handler=intrinsic_value.run,
            depends_on=["wacc"],
        ),
        StageSpec(
            key="quality",
            description="Score metrics, growth, balance sheet and qualitative answers into the weighted quality score.",
            handler=quality.run,
            depends_on=["intrinsic_value"],
        ),
        StageSpec(
            key="verdict",
            description="Apply the two-pillar gate, convert to display currency and render the explanation.",
            handler=verdict.run,
            depends_on=["quality"],
        ),
    ]
