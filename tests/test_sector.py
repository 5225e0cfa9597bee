from __future__ import annotations

import pytest

from buffett_engine.domain.services.sector import (
    Archetype,
    DividendBasis,
    financial_strength,
    resolve_archetype,
    resolve_preset,
    score_metric,
)


def test_industry_labels_map_to_archetypes():
    assert resolve_archetype("Software - Application") is Archetype.SOFTWARE
    assert resolve_archetype("  packaged foods ") is Archetype.STAPLES
    assert resolve_archetype("Regulated Electric") is Archetype.UTILITIES_TELECOM
    assert resolve_archetype("Insurance - Life") is Archetype.INSURANCE
    assert resolve_archetype("Banks - Regional") is Archetype.BANKS


def test_unknown_industry_uses_standard():
    assert resolve_archetype("Underwater Basket Weaving") is Archetype.STANDARD
    assert resolve_archetype(None) is Archetype.STANDARD
    assert resolve_preset("").archetype is Archetype.STANDARD


def test_debt_to_assets_bands_follow_archetype():
    assert score_metric("Software - Application", "debt_to_assets", 25).score == 4
    assert score_metric("Software - Application", "debt_to_assets", 30).score == 3
    assert score_metric("Regulated Electric", "debt_to_assets", 30).score == 4
    assert score_metric("Regulated Electric", "debt_to_assets", 70).score == 0
    assert score_metric(None, "debt_to_assets", 40).score == 4


def test_descending_and_ascending_scales():
    assert score_metric(None, "net_debt_to_ebitda", -0.5).score == 6
    assert score_metric(None, "net_debt_to_ebitda", 2.5).score == 2
    assert score_metric(None, "interest_coverage", 12).score == 6
    assert score_metric(None, "interest_coverage", 2).score == 0
    assert score_metric(None, "current_ratio", 1.3).score == 1
    assert score_metric(None, "current_ratio", None).score == 0


def test_dividend_cagr_bands():
    assert score_metric("Regulated Electric", "dividend_cagr", 3.5).score == 1.0
    assert score_metric(None, "dividend_cagr", 3.5).score == 0.66
    assert score_metric(None, "dividend_cagr", -1).score == 0.0


def test_payout_ratio_bands():
    staples = "Packaged Foods"
    assert score_metric(staples, "payout_ratio", 60).score == 2
    assert score_metric(staples, "payout_ratio", 80).score == 1
    assert score_metric(staples, "payout_ratio", 90).score == 0
    assert score_metric(staples, "payout_ratio", -10).score == 0
    assert score_metric(staples, "payout_ratio", 60).max_score == 2


def test_dividend_basis_flag():
    assert resolve_preset("Regulated Electric").dividend_basis is DividendBasis.AFFO
    assert resolve_preset("Regulated Electric").is_non_fcf_basis
    assert resolve_preset("Banks").is_non_fcf_basis
    assert not resolve_preset("Software - Application").is_non_fcf_basis


def test_financial_strength_out_of_twenty():
    strong = financial_strength(
        "Software - Application",
        {"net_debt_to_ebitda": 0.5, "interest_coverage": 20, "debt_to_assets": 20, "current_ratio": 2.5},
    )
    assert strong.archetype is Archetype.SOFTWARE
    assert strong.total == 20
    assert strong.max_total == 20

    empty = financial_strength(None, {})
    assert empty.total == 0
    assert empty.max_total == 20


def test_unknown_metric_is_rejected():
    with pytest.raises(ValueError):
        score_metric(None, "vibes", 1.0)
