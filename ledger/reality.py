"""
Reality check: what an income looks like per hour actually worked, and how it compares with the market.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from .fiscal import years_between
from .records import ZERO, PositionRecord, RealityCheck

WEEKS_PER_YEAR = Decimal("52")
OVERTIME_MARGIN_HOURS = Decimal("5")
MARKET_MARGIN_RATE = Decimal("5")
LOYALTY_CONCERN_YEARS = Decimal("2")

CENTS = Decimal("0.01")


def real_hourly_rate(annual_gross: Decimal, actual_hours_per_week: Decimal) -> Decimal:
    annual_hours = actual_hours_per_week * WEEKS_PER_YEAR
    if annual_hours <= 0:
        return ZERO
    return (annual_gross / annual_hours).quantize(CENTS)


def market_gap(real_rate: Decimal, market_rate: Decimal) -> Decimal:
    return max(ZERO, market_rate - real_rate)


def annual_market_gap(gap: Decimal, actual_hours_per_week: Decimal) -> Decimal:
    return (gap * actual_hours_per_week * WEEKS_PER_YEAR).quantize(CENTS)


def has_overtime_concern(
    actual_hours_per_week: Decimal,
    standard_hours_per_week: Decimal,
    margin: Decimal = OVERTIME_MARGIN_HOURS,
) -> bool:
    return actual_hours_per_week - standard_hours_per_week > margin


def has_market_concern(real_rate: Decimal, market_rate: Optional[Decimal], margin: Decimal = MARKET_MARGIN_RATE) -> bool:
    if market_rate is None:
        return False
    return market_rate - real_rate > margin


def has_loyalty_concern(years_at_employer: Decimal, threshold: Decimal = LOYALTY_CONCERN_YEARS) -> bool:
    return years_at_employer >= threshold


def current_position(positions: Iterable[PositionRecord], as_of: date) -> Optional[PositionRecord]:
    """The most recently started position still active on as_of."""
    active = [position for position in positions if position.is_active_on(as_of)]
    if not active:
        return None
    return max(active, key=lambda position: position.start_date)


def employer_tenure_start(positions: Iterable[PositionRecord], as_of: date) -> Optional[date]:
    """First start date at the employer of the current position, across all roles held there."""
    positions = list(positions)
    current = current_position(positions, as_of)
    if current is None:
        return None
    return min(
        position.start_date
        for position in positions
        if position.employer_name == current.employer_name and position.start_date <= as_of
    )


def years_at_employer(positions: Iterable[PositionRecord], as_of: date) -> Decimal:
    start = employer_tenure_start(positions, as_of)
    if start is None:
        return ZERO
    return years_between(start, as_of)


def reality_check(
    annual_gross: Decimal,
    actual_hours_per_week: Decimal,
    standard_hours_per_week: Decimal,
    market_rate: Optional[Decimal] = None,
    years_at_current_employer: Decimal = ZERO,
) -> RealityCheck:
    real_rate = real_hourly_rate(annual_gross, actual_hours_per_week)
    overtime_hours = max(ZERO, actual_hours_per_week - standard_hours_per_week)
    overtime_percentage = ZERO
    if standard_hours_per_week > 0:
        overtime_percentage = (overtime_hours / standard_hours_per_week * Decimal("100")).quantize(CENTS)
    gap = market_gap(real_rate, market_rate) if market_rate is not None else ZERO

    return RealityCheck(
        real_hourly_rate=real_rate,
        standard_hourly_rate=real_hourly_rate(annual_gross, standard_hours_per_week),
        overtime_hours_per_week=overtime_hours,
        overtime_percentage=overtime_percentage,
        market_rate=market_rate,
        market_gap=gap,
        annual_market_gap=annual_market_gap(gap, actual_hours_per_week),
        years_at_employer=years_at_current_employer.quantize(CENTS),
        overtime_concern=has_overtime_concern(actual_hours_per_week, standard_hours_per_week),
        market_concern=has_market_concern(real_rate, market_rate),
        loyalty_concern=has_loyalty_concern(years_at_current_employer),
    )
