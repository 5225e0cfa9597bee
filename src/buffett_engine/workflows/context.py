"""Workflow dependency container."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from buffett_engine.domain.services.currency import CurrencyRateResolver
from buffett_engine.domain.services.dcf import IntrinsicValueCalculator
from buffett_engine.domain.services.metrics import FundamentalMetricsCalculator
from buffett_engine.domain.services.wacc import WaccEstimator
from buffett_engine.infrastructure.data_providers.fmp_client import FmpFxClient
from buffett_engine.reports.renderer import ReportRenderer
from buffett_engine.settings.config import Config


@dataclass
class WorkflowContext:
    """Holds the services shared by LangGraph nodes."""

    config: Config
    fx_resolver: CurrencyRateResolver
    wacc_estimator: WaccEstimator
    dcf_calculator: IntrinsicValueCalculator
    metrics_calculator: FundamentalMetricsCalculator
    renderer: ReportRenderer
    fx_client: Optional[FmpFxClient] = None

    def close(self) -> None:
        """Release any dependencies that need explicit cleanup."""
        if self.fx_client is not None:
            self.fx_client.close()
