"""Sector presets: industry label -> archetype -> metric scoring bands.

All bands are static configuration. Unknown industries and metrics an
archetype does not override fall back to the Standard archetype.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class Archetype(str, Enum):
    SOFTWARE = "Software"
    STAPLES = "Staples"
    INDUSTRIALS = "Industrials"
    RETAIL_LOGISTICS = "RetailLogistics"
    UTILITIES_TELECOM = "UtilitiesTelecom"
    ENERGY_MATERIALS = "EnergyMaterials"
    HEALTHCARE = "Healthcare"
    BANKS = "Banks"
    INSURANCE = "Insurance"
    STANDARD = "Standard"


class DividendBasis(str, Enum):
    FCF = "FCF"
    AFFO = "AFFO"
    NET_INCOME = "NI"
    NET_INCOME_NORMALIZED = "NI_normalized"


_INDUSTRIES: Dict[Archetype, Tuple[str, ...]] = {
    Archetype.SOFTWARE: (
        "Software - Application",
        "Software - Infrastructure",
        "Software - Services",
        "Information Technology Services",
        "Internet Content & Information",
        "Electronic Gaming & Multimedia",
        "Media & Entertainment",
        "Publishing",
        "Broadcasting",
        "Advertising Agencies",
        "Entertainment",
        "Consulting Services",
        "Staffing & Employment Services",
        "Education & Training Services",
        "Security & Protection Services",
        "Specialty Business Services",
    ),
    Archetype.STAPLES: (
        "Packaged Foods",
        "Tobacco",
        "Beverages - Non-Alcoholic",
        "Beverages - Alcoholic",
        "Beverages - Wineries & Distilleries",
        "Household & Personal Products",
        "Grocery Stores",
        "Discount Stores",
        "Food Distribution",
        "Food Confectioners",
        "Agricultural Farm Products",
    ),
    Archetype.INDUSTRIALS: (
        "Semiconductors",
        "Computer Hardware",
        "Hardware, Equipment & Parts",
        "Communication Equipment",
        "Technology Distributors",
        "Consumer Electronics",
        "Aerospace & Defense",
        "Railroads",
        "Trucking",
        "Marine Shipping",
        "Integrated Freight & Logistics",
        "Airlines, Airports & Air Services",
        "General Transportation",
        "Auto - Parts",
        "Auto - Manufacturers",
        "Auto - Recreational Vehicles",
        "Packaging & Containers",
        "Industrial - Machinery",
        "Industrial - Distribution",
        "Industrial - Specialties",
        "Industrial - Capital Goods",
        "Electrical Equipment & Parts",
        "Agricultural - Machinery",
        "Engineering & Construction",
        "Construction",
        "Residential Construction",
        "Conglomerates",
        "Rental & Leasing Services",
        "Business Equipment & Supplies",
    ),
    Archetype.RETAIL_LOGISTICS: (
        "Specialty Retail",
        "Restaurants",
        "Department Stores",
        "Home Improvement",
        "Luxury Goods",
        "Travel Lodging",
        "Travel Services",
        "Leisure",
        "Gambling, Resorts & Casinos",
        "Apparel - Retail",
        "Apparel - Manufacturers",
        "Apparel - Footwear & Accessories",
        "Auto - Dealerships",
        "Personal Products & Services",
        "Furnishings, Fixtures & Appliances",
    ),
    Archetype.UTILITIES_TELECOM: (
        "Regulated Electric",
        "Regulated Gas",
        "Regulated Water",
        "Renewable Utilities",
        "Independent Power Producers",
        "Diversified Utilities",
        "General Utilities",
        "Solar",
        "Telecommunications Services",
        "Waste Management",
        "Environmental Services",
        "Industrial - Infrastructure Operations",
        "REIT - Specialty",
        "REIT - Retail",
        "REIT - Residential",
        "REIT - Office",
        "REIT - Mortgage",
        "REIT - Industrial",
        "REIT - Hotel & Motel",
        "REIT - Healthcare Facilities",
        "REIT - Diversified",
        "Real Estate - Services",
        "Real Estate - Diversified",
        "Real Estate - Development",
        "Real Estate - General",
    ),
    Archetype.ENERGY_MATERIALS: (
        "Gold",
        "Silver",
        "Copper",
        "Aluminum",
        "Steel",
        "Other Precious Metals",
        "Uranium",
        "Coal",
        "Oil & Gas Integrated",
        "Oil & Gas Exploration & Production",
        "Oil & Gas Midstream",
        "Oil & Gas Refining & Marketing",
        "Oil & Gas Equipment & Services",
        "Oil & Gas Drilling",
        "Oil & Gas Energy",
        "Chemicals",
        "Chemicals - Specialty",
        "Agricultural Inputs",
        "Construction Materials",
        "Industrial Materials",
        "Paper, Lumber & Forest Products",
        "Agricultural - Commodities/Milling",
    ),
    Archetype.HEALTHCARE: (
        "Biotechnology",
        "Drug Manufacturers - General",
        "Drug Manufacturers - Specialty & Generic",
        "Medical - Pharmaceuticals",
        "Medical - Devices",
        "Medical - Instruments & Supplies",
        "Medical - Equipment & Services",
        "Medical - Diagnostics & Research",
        "Medical - Distribution",
        "Medical - Care Facilities",
        "Medical - Healthcare Plans",
        "Medical - Healthcare Information Services",
        "Medical - Specialties",
    ),
    Archetype.BANKS: (
        "Banks",
        "Banks - Regional",
        "Banks - Diversified",
        "Asset Management",
        "Asset Management - Bonds",
        "Asset Management - Income",
        "Asset Management - Global",
        "Investment - Banking & Investment Services",
        "Financial - Capital Markets",
        "Financial - Credit Services",
        "Financial - Data & Stock Exchanges",
        "Financial - Diversified",
        "Financial - Conglomerates",
        "Financial - Mortgages",
        "Shell Companies",
    ),
    Archetype.INSURANCE: (
        "Insurance - Life",
        "Insurance - Property & Casualty",
        "Insurance - Diversified",
        "Insurance - Specialty",
        "Insurance - Reinsurance",
        "Insurance - Brokers",
    ),
}

INDUSTRY_ARCHETYPES: Dict[str, Archetype] = {
    label.casefold(): archetype for archetype, labels in _INDUSTRIES.items() for label in labels
}


@dataclass(frozen=True)
class ScoreScale:
    """Banded scale; ``scores`` has one more entry than ``thresholds`` (the worst score)."""

    thresholds: Tuple[float, ...]
    scores: Tuple[float, ...]
    ascending: bool

    def __post_init__(self) -> None:
        if len(self.scores) != len(self.thresholds) + 1:
            raise ValueError("A scale needs exactly one fall-through score after its thresholds.")

    @property
    def max_score(self) -> float:
        return max(self.scores)

    def score(self, value: Optional[float]) -> float:
        if value is None or math.isnan(value):
            return self.scores[-1]
        for threshold, points in zip(self.thresholds, self.scores):
            if (value >= threshold) if self.ascending else (value <= threshold):
                return points
        return self.scores[-1]


def ascending(thresholds: Tuple[float, ...], scores: Tuple[float, ...]) -> ScoreScale:
    return ScoreScale(thresholds, scores, ascending=True)


def descending(thresholds: Tuple[float, ...], scores: Tuple[float, ...]) -> ScoreScale:
    return ScoreScale(thresholds, scores, ascending=False)


@dataclass(frozen=True)
class PayoutBands:
    """Payout ratio ranges (percent, inclusive) worth 2 and 1 points."""

    excellent: Tuple[float, float]
    good: Tuple[Tuple[float, float], ...]

    max_score = 2

    def score(self, ratio: Optional[float]) -> float:
        if ratio is None or math.isnan(ratio) or ratio < 0:
            return 0
        low, high = self.excellent
        if low <= ratio <= high:
            return 2
        if any(lo <= ratio <= hi for lo, hi in self.good):
            return 1
        return 0


@dataclass(frozen=True)
class IndustryPreset:
    archetype: Archetype
    payout: PayoutBands
    dividend_basis: DividendBasis
    scales: Dict[str, ScoreScale] = field(default_factory=dict)

    @property
    def is_non_fcf_basis(self) -> bool:
        return self.dividend_basis is not DividendBasis.FCF


_DIVIDEND_CAGR_POINTS = (1.0, 0.66, 0.34, 0.0)


def _dividend_cagr(excellent: float, good: float) -> ScoreScale:
    return ascending((excellent, good, 0.0), _DIVIDEND_CAGR_POINTS)


def _debt_to_assets(first: float, second: float, third: float) -> ScoreScale:
    return descending((first, second, third), (4, 3, 1, 0))


# Balance-sheet, growth and streak scales shared by every archetype unless overridden.
_STANDARD_SCALES: Dict[str, ScoreScale] = {
    "net_debt_to_ebitda": descending((1.0, 1.5, 2.0, 3.0), (6, 5, 4, 2, 0)),
    "interest_coverage": ascending((12, 8, 5, 3), (6, 5, 3, 1, 0)),
    "debt_to_assets": _debt_to_assets(40, 50, 60),
    "current_ratio": ascending((2.0, 1.5, 1.2), (4, 3, 1, 0)),
    "dividend_cagr": _dividend_cagr(6, 3),
    "dividend_streak": ascending((10, 5, 1), (1.0, 0.66, 0.34, 0.0)),
    "revenue_cagr": ascending((10, 7, 5, 3), (4, 3, 2, 1, 0)),
    "ebitda_cagr": ascending((12, 8, 6, 3), (4, 3, 2, 1, 0)),
    "eps_cagr": ascending((15, 12, 9, 6, 3), (6, 5, 4, 2, 1, 0)),
    "fcf_cagr": ascending((12, 10, 7, 4, 2), (6, 5, 4, 2, 1, 0)),
}

PRESETS: Dict[Archetype, IndustryPreset] = {
    Archetype.SOFTWARE: IndustryPreset(
        Archetype.SOFTWARE,
        PayoutBands((0, 40), ((40, 60),)),
        DividendBasis.FCF,
        {"debt_to_assets": _debt_to_assets(25, 35, 45)},
    ),
    Archetype.STAPLES: IndustryPreset(
        Archetype.STAPLES,
        PayoutBands((50, 70), ((35, 50), (70, 85))),
        DividendBasis.FCF,
        {"debt_to_assets": _debt_to_assets(35, 45, 55), "dividend_cagr": _dividend_cagr(5, 3)},
    ),
    Archetype.INDUSTRIALS: IndustryPreset(
        Archetype.INDUSTRIALS,
        PayoutBands((40, 60), ((0, 40), (60, 75))),
        DividendBasis.FCF,
    ),
    Archetype.RETAIL_LOGISTICS: IndustryPreset(
        Archetype.RETAIL_LOGISTICS,
        PayoutBands((30, 50), ((0, 30), (50, 70))),
        DividendBasis.FCF,
        {"debt_to_assets": _debt_to_assets(35, 45, 55), "dividend_cagr": _dividend_cagr(5, 2)},
    ),
    Archetype.UTILITIES_TELECOM: IndustryPreset(
        Archetype.UTILITIES_TELECOM,
        PayoutBands((65, 85), ((55, 65), (85, 95))),
        DividendBasis.AFFO,
        {"debt_to_assets": _debt_to_assets(45, 55, 65), "dividend_cagr": _dividend_cagr(3, 1)},
    ),
    Archetype.ENERGY_MATERIALS: IndustryPreset(
        Archetype.ENERGY_MATERIALS,
        PayoutBands((30, 50), ((0, 30), (50, 70))),
        DividendBasis.FCF,
        {"debt_to_assets": _debt_to_assets(35, 45, 55), "dividend_cagr": _dividend_cagr(4, 2)},
    ),
    Archetype.HEALTHCARE: IndustryPreset(
        Archetype.HEALTHCARE,
        PayoutBands((30, 50), ((0, 30), (50, 65))),
        DividendBasis.FCF,
        {"debt_to_assets": _debt_to_assets(35, 45, 55)},
    ),
    Archetype.BANKS: IndustryPreset(
        Archetype.BANKS,
        PayoutBands((35, 55), ((20, 35), (55, 70))),
        DividendBasis.NET_INCOME_NORMALIZED,
        {"dividend_cagr": _dividend_cagr(5, 2)},
    ),
    Archetype.INSURANCE: IndustryPreset(
        Archetype.INSURANCE,
        PayoutBands((35, 60), ((20, 35), (60, 75))),
        DividendBasis.NET_INCOME,
        {"dividend_cagr": _dividend_cagr(5, 2)},
    ),
    Archetype.STANDARD: IndustryPreset(
        Archetype.STANDARD,
        PayoutBands((40, 60), ((0, 40), (60, 75))),
        DividendBasis.FCF,
    ),
}

STRENGTH_METRICS = ("net_debt_to_ebitda", "interest_coverage", "debt_to_assets", "current_ratio")


@dataclass(frozen=True)
class ScoredMetric:
    metric: str
    value: Optional[float]
    score: float
    max_score: float
    archetype: Archetype


@dataclass(frozen=True)
class StrengthScore:
    archetype: Archetype
    metrics: Dict[str, ScoredMetric]

    @property
    def total(self) -> float:
        return sum(m.score for m in self.metrics.values())

    @property
    def max_total(self) -> float:
        return sum(m.max_score for m in self.metrics.values())


def resolve_archetype(industry: Optional[str]) -> Archetype:
    """Map a free-text industry label to an archetype, Standard when unknown."""
    if not industry:
        return Archetype.STANDARD
    archetype = INDUSTRY_ARCHETYPES.get(industry.strip().casefold())
    if archetype is None:
        logger.debug("Industry %r not mapped; using Standard preset", industry)
        return Archetype.STANDARD
    return archetype


def resolve_preset(industry: Optional[str]) -> IndustryPreset:
    return PRESETS[resolve_archetype(industry)]


def scale_for(archetype: Archetype, metric: str) -> ScoreScale:
    scale = PRESETS[archetype].scales.get(metric) or _STANDARD_SCALES.get(metric)
    if scale is None:
        raise ValueError(f"No scoring bands for metric {metric!r}.")
    return scale


def score_metric(industry: Optional[str], metric: str, value: Optional[float]) -> ScoredMetric:
    """Score ``value`` against the bands of the industry's archetype."""
    preset = resolve_preset(industry)
    if metric == "payout_ratio":
        return ScoredMetric(metric, value, preset.payout.score(value), preset.payout.max_score, preset.archetype)
    scale = scale_for(preset.archetype, metric)
    return ScoredMetric(metric, value, scale.score(value), scale.max_score, preset.archetype)


def financial_strength(industry: Optional[str], values: Mapping[str, Optional[float]]) -> StrengthScore:
    """Balance-sheet strength on a 20 point scale; missing metrics score zero."""
    archetype = resolve_archetype(industry)
    scored = {metric: score_metric(industry, metric, values.get(metric)) for metric in STRENGTH_METRICS}
    return StrengthScore(archetype=archetype, metrics=scored)
