"""LangGraph workflow assembly for the analysis pipeline."""
from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from langgraph.graph import END, StateGraph

from buffett_engine.domain.services.currency import CurrencyRateResolver
from buffett_engine.domain.services.dcf import IntrinsicValueCalculator
from buffett_engine.domain.services.metrics import FundamentalMetricsCalculator
from buffett_engine.domain.services.wacc import WaccEstimator
from buffett_engine.infrastructure.data_providers.fmp_client import FmpFxClient
from buffett_engine.infrastructure.db.sqlite import ExchangeRateRepository
from buffett_engine.reports.renderer import ReportRenderer
from buffett_engine.settings.config import Config
from buffett_engine.workflows import context as context_module
from buffett_engine.workflows.blueprint import StageSpec, build_default_stages
from buffett_engine.workflows.state import AnalysisState, state_from_request


class AnalysisWorkflow:
    """Compose LangGraph nodes into a runnable workflow."""

    def __init__(self, config: Config, *, context: Optional[context_module.WorkflowContext] = None) -> None:
        self._config = config
        self._context = context or build_context(config)
        self._stages: List[StageSpec] = build_default_stages()
        self._graph = self._build_graph()

    @property
    def context(self) -> context_module.WorkflowContext:
        return self._context

    def _build_graph(self):
        builder = StateGraph(dict)

        if not self._stages:
            raise RuntimeError("Workflow blueprint is empty; cannot build LangGraph.")

        for stage in self._stages:
            builder.add_node(stage.key, self._wrap(stage.handler))

        builder.set_entry_point(self._stages[0].key)
        for current, nxt in zip(self._stages, self._stages[1:]):
            builder.add_edge(current.key, nxt.key)
        builder.add_edge(self._stages[-1].key, END)

        return builder.compile(checkpointer=None)

    def _wrap(self, func: Callable[[AnalysisState, context_module.WorkflowContext], AnalysisState]):
        def wrapper(state: Dict[str, Any]) -> Dict[str, Any]:
            return func(state, self._context)  # type: ignore[arg-type]

        return wrapper

    def run(self, request: Mapping[str, Any]) -> AnalysisState:
        """Execute the workflow for one analysis request."""
        initial_state = state_from_request(
            request,
            display_currency=self._config.display_currency,
            margin_of_safety=self._config.default_margin_of_safety,
        )
        initial_state["stage_order"] = [stage.key for stage in self._stages]
        result: AnalysisState = self._graph.invoke(initial_state)
        return result

    def persist_state(self, state: AnalysisState, path: Path) -> None:
        """Serialize the workflow state to disk for debugging or auditing."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state, default=_json_serializer, indent=2, ensure_ascii=False)
        path.write_text(payload, encoding="utf-8")

    def persist_markdown(self, markdown: str, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(markdown, encoding="utf-8")

    def describe_stages(self) -> List[str]:
        """Return human-readable workflow stage descriptions."""
        return [f"{stage.key}: {stage.description}" for stage in self._stages]

    def close(self) -> None:
        self._context.close()


def build_context(config: Config) -> context_module.WorkflowContext:
    """Wire production dependencies from configuration."""
    repository = ExchangeRateRepository(config.database_uri, echo=config.sqlite_echo)
    fx_client: Optional[FmpFxClient]
    try:
        fx_client = FmpFxClient(config.fmp_api_key, timeout_seconds=config.fx_timeout_seconds)
    except ValueError:
        fx_client = None

    return context_module.WorkflowContext(
        config=config,
        fx_resolver=CurrencyRateResolver(repository, fx_client),
        wacc_estimator=WaccEstimator(
            risk_free_rate=config.risk_free_rate,
            market_risk_premium=config.market_risk_premium,
            default_wacc=config.default_wacc,
        ),
        dcf_calculator=IntrinsicValueCalculator(),
        metrics_calculator=FundamentalMetricsCalculator(),
        renderer=ReportRenderer(),
        fx_client=fx_client,
    )


def _json_serializer(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value):
        return asdict(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
