"""
Market reference data: industry medians, percentile curves and growth baselines.

Stored benchmarks win; the built-in Australian figures are used when nothing has been downloaded
for an industry yet.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple

from .models import GrowthBaseline, SeniorityLevel

HOURS_PER_YEAR = Decimal("38") * Decimal("52")

INDUSTRY_MEDIANS: Tuple[Tuple[Tuple[str, ...], Decimal], ...] = (
    (("mining",), Decimal("125000")),
    (("it", "technology"), Decimal("110000")),
    (("engineering",), Decimal("105000")),
    (("construction",), Decimal("95000")),
    (("healthcare",), Decimal("85000")),
    (("education",), Decimal("80000")),
    (("finance",), Decimal("100000")),
)
DEFAULT_MEDIAN = Decimal("90000")

# (percentile, multiple of the industry median)
DEFAULT_CURVE_SHAPE: Tuple[Tuple[Decimal, Decimal], ...] = (
    (Decimal("10"), Decimal("0.6")),
    (Decimal("25"), Decimal("0.75")),
    (Decimal("50"), Decimal("1")),
    (Decimal("75"), Decimal("1.25")),
    (Decimal("90"), Decimal("1.5")),
)

INDUSTRY_AVERAGE_GROWTH = Decimal("0.06")
CPI_ADJUSTED_GROWTH = Decimal("0.03")
ROLE_LEVEL_GROWTH: Dict[str, Decimal] = {
    SeniorityLevel.ENTRY.value: Decimal("0.04"),
    SeniorityLevel.JUNIOR.value: Decimal("0.05"),
    SeniorityLevel.MID.value: Decimal("0.06"),
    SeniorityLevel.SENIOR.value: Decimal("0.07"),
    SeniorityLevel.LEAD.value: Decimal("0.08"),
    SeniorityLevel.MANAGER.value: Decimal("0.08"),
    SeniorityLevel.DIRECTOR.value: Decimal("0.09"),
    SeniorityLevel.EXECUTIVE.value: Decimal("0.10"),
}
DEFAULT_ROLE_LEVEL_GROWTH = Decimal("0.05")


@dataclass(frozen=True)
class MarketReference:
    industry: str
    seniority_level: str
    median_income: Decimal
    percentile_curve: Tuple[Tuple[Decimal, Decimal], ...]
    industry_average_growth: Decimal = INDUSTRY_AVERAGE_GROWTH
    role_level_growth: Decimal = DEFAULT_ROLE_LEVEL_GROWTH
    cpi_adjusted_growth: Decimal = CPI_ADJUSTED_GROWTH
    is_default: bool = False

    def growth_for(self, baseline: str) -> Decimal:
        if baseline == GrowthBaseline.ROLE_LEVEL:
            return self.role_level_growth
        if baseline == GrowthBaseline.CPI_ADJUSTED:
            return self.cpi_adjusted_growth
        return self.industry_average_growth

    @property
    def median_hourly_rate(self) -> Decimal:
        return (self.median_income / HOURS_PER_YEAR).quantize(Decimal("0.01"))


def industry_median(industry: str) -> Decimal:
    name = (industry or "").lower()
    for keywords, value in INDUSTRY_MEDIANS:
        if any(keyword in name for keyword in keywords):
            return value
    return DEFAULT_MEDIAN


def role_level_growth(seniority_level: Optional[str]) -> Decimal:
    return ROLE_LEVEL_GROWTH.get(str(seniority_level or ""), DEFAULT_ROLE_LEVEL_GROWTH)


def default_curve(median_income: Decimal) -> Tuple[Tuple[Decimal, Decimal], ...]:
    return tuple((percentile, median_income * factor) for percentile, factor in DEFAULT_CURVE_SHAPE)


def parse_curve(raw: Sequence) -> Tuple[Tuple[Decimal, Decimal], ...]:
    """
    Accepts [[percentile, income], ...] or [{"percentile": .., "income": ..}, ...] and returns
    points sorted by percentile. Raises ValueError for malformed points.
    """
    points = []
    for item in raw or ():
        if isinstance(item, dict):
            percentile, income = item["percentile"], item["income"]
        else:
            percentile, income = item
        percentile, income = Decimal(str(percentile)), Decimal(str(income))
        if not Decimal("0") < percentile <= Decimal("100") or income < 0:
            raise ValueError(f"Invalid percentile point ({percentile}, {income}).")
        points.append((percentile, income))
    points.sort()
    return tuple(points)


def default_market_reference(industry: str, seniority_level: str = "") -> MarketReference:
    median_income = industry_median(industry)
    return MarketReference(
        industry=industry,
        seniority_level=seniority_level,
        median_income=median_income,
        percentile_curve=default_curve(median_income),
        role_level_growth=role_level_growth(seniority_level),
        is_default=True,
    )
