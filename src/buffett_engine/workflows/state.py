"""Workflow state definitions shared by LangGraph nodes."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Mapping, Optional, TypedDict

from buffett_engine.domain.models.financials import FinancialDataset, FinancialStatement
from buffett_engine.domain.models.fx import RateQuote, normalize_currency
from buffett_engine.domain.models.scoring import (
    MetricResult,
    QualitativeSummary,
    QualityScore,
    TwoPillarResult,
)
from buffett_engine.domain.models.valuation import (
    Forecast,
    ValuationResult,
    ValuationVerdict,
    WaccBreakdown,
)
from buffett_engine.domain.services.metrics import GrowthScores
from buffett_engine.domain.services.sector import StrengthScore


class AnalysisState(TypedDict, total=False):
    ticker: str
    company_name: Optional[str]
    industry: Optional[str]
    as_of: str
    reporting_currency: str
    quote_currency: str
    display_currency: str
    current_price: Optional[float]
    market_cap: Optional[float]
    beta: Optional[float]

    dataset: Optional[FinancialDataset]
    forecasts: Dict[str, Forecast]
    criterion_scores: Dict[str, float]
    qualitative_answers: Dict[str, List[str]]
    strength_inputs: Dict[str, Optional[float]]
    margin_of_safety_target: float

    fx_quotes: Dict[str, RateQuote]
    fx_blocked: bool
    wacc: Optional[WaccBreakdown]
    valuations: Dict[str, ValuationResult]
    verdicts: Dict[str, ValuationVerdict]
    margins_of_safety: Dict[str, float]
    buy_prices: Dict[str, float]
    metrics: Dict[str, MetricResult]
    growth: Optional[GrowthScores]
    strength: Optional[StrengthScore]
    qualitative: Optional[QualitativeSummary]
    quality: Optional[QualityScore]
    gate: Optional[TwoPillarResult]
    display_values: Dict[str, float]
    explanation: Optional[str]
    stage_order: List[str]

    logs: List[str]
    errors: List[str]

    extras: Dict[str, Any]


def state_from_request(payload: Mapping[str, Any], *, display_currency: str, margin_of_safety: float) -> AnalysisState:
    """Translate a JSON analysis request into the initial workflow state."""
    ticker = str(payload.get("ticker") or "").strip()
    if not ticker:
        raise ValueError("Analysis request needs a 'ticker'.")

    reporting = normalize_currency(payload.get("reporting_currency") or "USD")
    quote = normalize_currency(payload.get("quote_currency") or reporting)
    forecasts_raw = payload.get("forecasts") or {}
    if "forecast" in payload:
        forecasts_raw = {"base": payload["forecast"], **forecasts_raw}

    state: AnalysisState = {
        "ticker": ticker,
        "company_name": payload.get("company_name"),
        "industry": payload.get("industry"),
        "as_of": str(payload.get("as_of") or date.today().isoformat()),
        "reporting_currency": reporting,
        "quote_currency": quote,
        "display_currency": normalize_currency(payload.get("display_currency") or display_currency),
        "current_price": _opt_float(payload.get("current_price")),
        "market_cap": _opt_float(payload.get("market_cap")),
        "beta": _opt_float(payload.get("beta")),
        "dataset": _dataset_from_payload(ticker, reporting, payload.get("statements")),
        "forecasts": {name: Forecast.from_dict(raw) for name, raw in forecasts_raw.items()},
        "criterion_scores": dict(payload.get("criterion_scores") or {}),
        "qualitative_answers": {k: list(v) for k, v in (payload.get("qualitative_answers") or {}).items()},
        "strength_inputs": dict(payload.get("strength_inputs") or {}),
        "margin_of_safety_target": float(payload.get("margin_of_safety", margin_of_safety)),
        "logs": [],
        "errors": [],
        "extras": {},
    }
    return state


def _dataset_from_payload(
    ticker: str, currency: str, statements: Optional[Mapping[str, List[Mapping[str, Any]]]]
) -> Optional[FinancialDataset]:
    """``{"IS": [{"period": "2023-12-31", "revenue": ...}], "BS": [...], "CF": [...]}``."""
    if not statements:
        return None
    buckets: Dict[str, List[FinancialStatement]] = {"IS": [], "BS": [], "CF": []}
    for statement_type, rows in statements.items():
        if statement_type not in buckets:
            raise ValueError(f"Unknown statement type {statement_type!r}.")
        for row in rows:
            period = date.fromisoformat(str(row["period"])[:10])
            metrics = {k: float(v) for k, v in row.items() if k not in ("period", "frequency") and v is not None}
            buckets[statement_type].append(
                FinancialStatement(
                    ticker=ticker,
                    period=period,
                    statement_type=statement_type,
                    metrics=metrics,
                    currency=currency,
                    frequency=row.get("frequency", "annual"),
                )
            )
    return FinancialDataset(
        ticker=ticker,
        reporting_currency=currency,
        income_statements=buckets["IS"],
        balance_sheets=buckets["BS"],
        cash_flows=buckets["CF"],
    )


def _opt_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)
