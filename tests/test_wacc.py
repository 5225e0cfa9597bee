from __future__ import annotations

import pytest

from buffett_engine.domain.services.wacc import DEFAULT_TAX_RATE, WaccEstimator, WaccInputs


def test_all_equity_company_uses_cost_of_equity():
    result = WaccEstimator().estimate(WaccInputs(market_cap=1e9, beta=1.0))

    assert not result.defaulted
    assert result.cost_of_equity == pytest.approx(0.10)
    assert result.cost_of_debt == 0.0
    assert result.debt_weight == 0.0
    assert result.wacc == pytest.approx(10.0)


def test_extreme_betas_are_clamped_into_band():
    high = WaccEstimator().estimate(WaccInputs(market_cap=1e9, beta=3.0))
    low = WaccEstimator().estimate(WaccInputs(market_cap=1e9, beta=0.2))

    assert high.beta == 2.5
    assert high.wacc == pytest.approx(12.0)
    assert high.notes
    assert low.beta == 0.5
    assert low.wacc == pytest.approx(8.0)


def test_missing_beta_defaults_to_market():
    result = WaccEstimator().estimate(WaccInputs(market_cap=5e8, beta=None))
    assert result.beta == 1.0


def test_missing_market_cap_returns_default():
    result = WaccEstimator().estimate(WaccInputs(market_cap=None, beta=1.2))
    assert result.defaulted
    assert result.wacc == 10.0
    assert WaccEstimator(default_wacc=9.0).estimate(WaccInputs(market_cap=float("nan"))).wacc == 9.0


def test_debt_costs_and_weights():
    inputs = WaccInputs(
        market_cap=900.0,
        beta=1.0,
        short_term_debt=[50.0],
        long_term_debt=[40.0],
        lease_liabilities=[10.0],
        interest_expense=[-5.0],
    )
    result = WaccEstimator().estimate(inputs)

    assert result.cost_of_debt == pytest.approx(0.05)
    assert result.equity_weight == pytest.approx(0.9)
    assert result.debt_weight == pytest.approx(0.1)
    assert result.tax_rate == DEFAULT_TAX_RATE
    assert result.unclamped_wacc == pytest.approx(9.395)
    assert result.wacc == pytest.approx(9.4, abs=0.011)


def test_tax_rate_averages_eligible_periods_and_clamps():
    base = dict(market_cap=1e9, beta=1.0)
    averaged = WaccEstimator().estimate(
        WaccInputs(income_before_tax=[100.0, 200.0, -50.0], income_tax_expense=[20.0, 60.0, 10.0], **base)
    )
    clamped = WaccEstimator().estimate(
        WaccInputs(income_before_tax=[100.0, 100.0], income_tax_expense=[30.0, 80.0], **base)
    )
    none_eligible = WaccEstimator().estimate(
        WaccInputs(income_before_tax=[-10.0, 100.0], income_tax_expense=[5.0, 0.0], **base)
    )

    assert averaged.tax_rate == pytest.approx(0.25)
    assert clamped.tax_rate == 0.5
    assert none_eligible.tax_rate == DEFAULT_TAX_RATE


def test_only_four_recent_periods_count():
    inputs = WaccInputs(
        market_cap=1000.0,
        short_term_debt=[100.0, 100.0, 100.0, 100.0, 10_000.0],
        interest_expense=[10.0, 10.0, 10.0, 10.0, 500.0],
    )
    result = WaccEstimator().estimate(inputs)
    assert result.cost_of_debt == pytest.approx(0.10)


@pytest.mark.parametrize("beta", [0.0, 0.5, 1.0, 1.7, 2.5, 4.0])
@pytest.mark.parametrize("debt", [0.0, 1e6, 1e9, 1e12])
@pytest.mark.parametrize("interest", [0.0, 1e3, 1e8])
def test_result_always_inside_policy_band(beta, debt, interest):
    inputs = WaccInputs(
        market_cap=1e9,
        beta=beta,
        long_term_debt=[debt],
        interest_expense=[interest],
        income_before_tax=[1e8],
        income_tax_expense=[2e7],
    )
    result = WaccEstimator().estimate(inputs)
    assert 8.0 <= result.wacc <= 12.0


@pytest.mark.parametrize("configured, expected", [(15.0, 12.0), (3.0, 8.0), (9.5, 9.5)])
def test_configured_default_stays_inside_band(configured, expected):
    result = WaccEstimator(default_wacc=configured).estimate(WaccInputs(market_cap=None))
    assert result.defaulted
    assert result.wacc == expected
