from __future__ import annotations

import json
from datetime import date

import pytest

from buffett_engine.domain.models.fx import ExchangeRate, RateSource
from buffett_engine.domain.models.valuation import Forecast
from buffett_engine.domain.services.dcf import IntrinsicValueCalculator
from buffett_engine.infrastructure.db.sqlite import ExchangeRateRepository
from buffett_engine.settings.config import Config
from buffett_engine.workflows.graph import AnalysisWorkflow

FORECAST = {
    "ufcf": [100, 110, 120, 130, 140],
    "presentTerminalValue": 900,
    "netDebt": 200,
    "dilutedSharesOutstanding": 50,
}


def make_workflow(tmp_path) -> AnalysisWorkflow:
    cfg = Config(database_path=tmp_path / "fx.db", output_dir=tmp_path / "reports")
    cfg.ensure_directories()
    repo = ExchangeRateRepository(cfg.database_uri)
    repo.upsert_rates(
        [
            ExchangeRate("USD", "EUR", date(2024, 6, 28), 0.9),
            ExchangeRate("EUR", "GBP", date(2024, 6, 28), 0.85),
        ]
    )
    return AnalysisWorkflow(cfg)


def make_request(**overrides):
    request = {
        "ticker": "TEST",
        "industry": "Software - Application",
        "as_of": "2024-06-30",
        "reporting_currency": "USD",
        "quote_currency": "USD",
        "display_currency": "EUR",
        "current_price": 15.0,
        "market_cap": 1e9,
        "beta": 1.2,
        "forecast": dict(FORECAST),
        "criterion_scores": {"economic_moat": 9, "valuation": 8},
        "qualitative_answers": {"management": ["yes", "yes", "yes"]},
        "strength_inputs": {
            "net_debt_to_ebitda": 0.5,
            "interest_coverage": 20,
            "debt_to_assets": 20,
            "current_ratio": 2.5,
        },
    }
    request.update(overrides)
    return request


def test_full_run_produces_gate_and_display_values(tmp_path):
    workflow = make_workflow(tmp_path)
    state = workflow.run(make_request())

    assert state["errors"] == []
    assert state["wacc"].wacc == pytest.approx(11.2)
    expected = IntrinsicValueCalculator().calculate(Forecast.from_dict({**FORECAST, "wacc": 11.2}))
    result = state["valuations"]["base"]
    assert result.is_valid
    assert result.intrinsic_value == pytest.approx(expected.intrinsic_value)

    assert state["margins_of_safety"]["base"] > 0
    assert state["buy_prices"]["base"] == pytest.approx(expected.intrinsic_value * 0.8)
    assert state["quality"].percentage >= 85
    assert state["gate"].conforming
    assert state["display_values"]["intrinsic_value"] == pytest.approx(expected.intrinsic_value * 0.9)
    assert "DCF intrinsic value for TEST" in state["explanation"]
    workflow.close()


def test_reporting_currency_is_converted_before_valuation(tmp_path):
    workflow = make_workflow(tmp_path)
    forecast = dict(FORECAST, wacc=10)
    state = workflow.run(
        make_request(reporting_currency="EUR", quote_currency="USD", display_currency="USD", forecast=forecast)
    )

    quote = state["fx_quotes"]["EUR->USD"]
    assert quote.source is RateSource.RECIPROCAL
    plain = IntrinsicValueCalculator().calculate(Forecast.from_dict(forecast))
    assert state["valuations"]["base"].intrinsic_value == pytest.approx(plain.intrinsic_value / 0.9)


def test_missing_rate_blocks_valuation(tmp_path):
    workflow = make_workflow(tmp_path)
    state = workflow.run(make_request(reporting_currency="JPY", quote_currency="USD"))

    assert state["fx_blocked"]
    assert "valuations" not in state
    assert any("JPY to USD" in e for e in state["errors"])
    assert not state["gate"].price_passed


def test_incomplete_forecast_reports_missing_inputs(tmp_path):
    workflow = make_workflow(tmp_path)
    state = workflow.run(make_request(forecast={"ufcf": [1, 2, 3], "wacc": 9}))

    result = state["valuations"]["base"]
    assert not result.is_valid
    assert "DCF valuation not possible" in state["explanation"]
    assert "present_terminal_value" in state["explanation"]
    assert not state["gate"].conforming


def test_modes_are_valued_independently(tmp_path):
    workflow = make_workflow(tmp_path)
    state = workflow.run(
        make_request(
            forecasts={
                "conservative": dict(FORECAST, wacc=12),
                "broken": {"ufcf": [1, 2]},
            }
        )
    )

    assert set(state["valuations"]) == {"base", "conservative", "broken"}
    assert state["valuations"]["conservative"].is_valid
    assert not state["valuations"]["broken"].is_valid
    assert state["valuations"]["base"].is_valid


def test_state_is_serializable(tmp_path):
    workflow = make_workflow(tmp_path)
    state = workflow.run(make_request())
    path = tmp_path / "out" / "state.json"
    workflow.persist_state(state, path)

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["ticker"] == "TEST"
    assert payload["quality"]["rating"] == "met"


def test_request_needs_ticker(tmp_path):
    workflow = make_workflow(tmp_path)
    with pytest.raises(ValueError):
        workflow.run({"forecast": FORECAST})


def test_valuation_criterion_is_scored_from_margin_of_safety(tmp_path):
    workflow = make_workflow(tmp_path)
    state = workflow.run(make_request(current_price=5.0, criterion_scores={"economic_moat": 9}))

    assert state["margins_of_safety"]["base"] > 30
    breakdown = {score.criterion: score.score for score in state["quality"].breakdown}
    assert breakdown["valuation"] == 10.0
    assert set(breakdown) == {"economic_moat", "financial_stability", "management", "valuation"}


def test_supplied_valuation_score_is_kept(tmp_path):
    workflow = make_workflow(tmp_path)
    state = workflow.run(make_request(current_price=5.0))

    breakdown = {score.criterion: score.score for score in state["quality"].breakdown}
    assert breakdown["valuation"] == 8.0


def test_negative_equity_gets_verdict_but_fails_price_pillar(tmp_path):
    workflow = make_workflow(tmp_path)
    forecast = dict(FORECAST, wacc=10, netDebt=5000)
    state = workflow.run(make_request(forecast=forecast, criterion_scores={"economic_moat": 9}))

    assert state["errors"] == []
    assert state["valuations"]["base"].intrinsic_value < 0
    assert state["verdicts"]["base"].percentage_diff is None
    assert "base" not in state["margins_of_safety"]
    breakdown = {score.criterion: score.score for score in state["quality"].breakdown}
    assert breakdown["valuation"] == 0.0
    assert not state["gate"].price_passed
    assert "intrinsic value is not positive" in state["explanation"]
