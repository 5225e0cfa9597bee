from __future__ import annotations

import math
from datetime import date
from typing import List

import pytest

from buffett_engine.domain.models.financials import FinancialDataset, FinancialStatement
from buffett_engine.domain.models.scoring import MetricStatus, TimePeriodBadge
from buffett_engine.domain.services.metrics import (
    BUFFETT_THRESHOLDS,
    FundamentalMetricsCalculator,
    Threshold,
    average_metric,
    best_cagr,
    cagr,
    growth_metric,
    growth_points,
    growth_scores,
    profitable_years,
    ttm_metric,
)


def _mk_is(y: int, revenue: float, net_income: float, eps: float) -> FinancialStatement:
    return FinancialStatement(
        ticker="TEST",
        period=date(y, 12, 31),
        statement_type="IS",
        metrics={
            "revenue": revenue,
            "net_income": net_income,
            "operating_income": net_income * 1.25,
            "income_before_tax": net_income * 1.25,
            "income_tax_expense": net_income * 0.25,
            "eps": eps,
        },
    )


def _mk_bs(y: int, equity: float) -> FinancialStatement:
    return FinancialStatement(
        ticker="TEST",
        period=date(y, 12, 31),
        statement_type="BS",
        metrics={"total_equity": equity, "short_term_debt": 0.0, "long_term_debt": 0.0, "cash_and_equivalents": 0.0},
    )


def make_dataset(years: List[int]) -> FinancialDataset:
    # Deliberately unordered to exercise the most-recent-first accessors.
    shuffled = list(reversed(years))
    return FinancialDataset(
        ticker="TEST",
        income_statements=[_mk_is(y, 1000.0, 200.0, 2.0 * 1.1 ** (y - years[0])) for y in shuffled],
        balance_sheets=[_mk_bs(y, 1000.0) for y in shuffled],
    )


def test_cagr_basic_and_undefined():
    assert cagr(100.0, 121.0, 2) == pytest.approx(10.0)
    assert cagr(0.0, 121.0, 2) == 0.0
    assert cagr(100.0, -5.0, 2) == 0.0


def test_average_metric_uses_window_and_percent():
    values = [0.20] * 3 + [0.10] * 3 + [None]
    result = average_metric(values, BUFFETT_THRESHOLDS["roe"], label="ROE")

    assert result.badge is TimePeriodBadge.FIVE_YEARS
    assert result.years == 5
    assert result.value == pytest.approx((0.2 * 3 + 0.1 * 2) / 5 * 100)
    assert result.status is MetricStatus.PASS


def test_average_metric_without_data_is_gap():
    result = average_metric([None, None], BUFFETT_THRESHOLDS["roe"], label="ROE")
    assert result.value is None
    assert result.badge is TimePeriodBadge.DATA_GAP
    assert result.status is MetricStatus.FAIL


def test_growth_metric_compounds_over_window():
    eps = [2.0 * 1.12 ** (10 - i) for i in range(11)]
    result = growth_metric(eps, BUFFETT_THRESHOLDS["eps_growth"], label="EPS")

    assert result.badge is TimePeriodBadge.TEN_YEARS
    assert result.years == 10
    assert result.value == pytest.approx(12.0)
    assert result.status is MetricStatus.PASS


def test_ten_observations_only_span_nine_years():
    # Nine year-over-year steps do not fill a ten year window.
    eps = [100.0 * 2 ** (9 - i) for i in range(10)]
    result = growth_metric(eps, BUFFETT_THRESHOLDS["eps_growth"], label="EPS")

    assert result.badge is TimePeriodBadge.FIVE_YEARS
    assert result.years == 5
    assert result.value == pytest.approx(cagr(eps[5], eps[0], 5))
    assert result.value == pytest.approx(best_cagr(eps[:6]))


def test_growth_metric_with_three_observations_is_gap():
    result = growth_metric([121.0, 110.0, 100.0], BUFFETT_THRESHOLDS["eps_growth"], label="EPS")
    assert result.badge is TimePeriodBadge.DATA_GAP
    assert result.years == 2
    assert result.value == pytest.approx(10.0)


def test_growth_metric_needs_two_points():
    result = growth_metric([3.0], BUFFETT_THRESHOLDS["eps_growth"], label="EPS")
    assert result.value is None
    assert result.badge is TimePeriodBadge.DATA_GAP


def test_ttm_metric_badge():
    assert ttm_metric(18.0, BUFFETT_THRESHOLDS["roe"], label="ROE").badge is TimePeriodBadge.TTM
    assert ttm_metric(float("nan"), BUFFETT_THRESHOLDS["roe"], label="ROE").value is None


def test_profitable_years_status():
    assert profitable_years([1.0] * 10).status is MetricStatus.PASS
    assert profitable_years([1.0] * 9 + [-1.0]).status is MetricStatus.WARNING
    assert profitable_years([1.0, -1.0, -1.0, 1.0, 1.0]).status is MetricStatus.FAIL


def test_calculator_reports_window_badges():
    dataset = make_dataset(list(range(2018, 2024)))
    results = FundamentalMetricsCalculator().calculate(dataset)

    assert set(results) == {"roe", "roic", "net_margin", "eps_growth", "profitable_years"}
    roe = results["roe"]
    assert roe.badge is TimePeriodBadge.FIVE_YEARS
    assert roe.value == pytest.approx(20.0)
    assert results["net_margin"].value == pytest.approx(20.0)
    # NOPAT = operating income * (1 - 20 % tax) equals net income here.
    assert results["roic"].value == pytest.approx(20.0)
    assert results["eps_growth"].value == pytest.approx(10.0)
    assert results["profitable_years"].value == 5.0


def test_calculator_tolerates_missing_balance_sheet():
    dataset = make_dataset([2021, 2022])
    dataset.balance_sheets = []
    results = FundamentalMetricsCalculator().calculate(dataset)

    assert results["roe"].value is None
    assert results["net_margin"].badge is TimePeriodBadge.DATA_GAP
    assert math.isfinite(results["net_margin"].value)


def test_ratio_frame_is_most_recent_first():
    frame = FundamentalMetricsCalculator().ratio_frame(make_dataset([2020, 2021, 2022]))
    assert list(frame["period"].dt.year) == [2022, 2021, 2020]


def test_best_cagr_prefers_longest_positive_span():
    series = [200.0] + [150.0] * 4 + [100.0] + [90.0] * 4 + [50.0]
    assert best_cagr(series) == pytest.approx(cagr(50.0, 200.0, 10))
    assert best_cagr([100.0, 90.0]) == 0.0


def test_growth_scores_total_out_of_twenty():
    revenue = [100 * 1.11 ** (10 - i) for i in range(11)]
    eps = [1 * 1.16 ** (10 - i) for i in range(11)]
    scores = growth_scores(revenue=revenue, ebitda=revenue, eps=eps, fcf=[])

    assert scores.revenue == 4
    assert scores.ebitda == growth_points("ebitda", scores.cagrs["ebitda"]) == 3
    assert scores.eps == 6
    assert scores.fcf == 0
    assert scores.total == 13
    assert scores.max_total == 20


def test_threshold_has_pass_and_warning_floors():
    threshold = Threshold(15, 10)
    assert threshold.status(15) is MetricStatus.PASS
    assert threshold.status(12) is MetricStatus.WARNING
    assert threshold.status(9.9) is MetricStatus.FAIL
    assert not hasattr(FinancialDataset(ticker="TEST"), "is_complete")
