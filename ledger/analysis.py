from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .aggregation import (
    WEEKS_PER_YEAR,
    compensation_summary,
    entry_in_effect,
    hours_vs_earnings,
    project_from_weekly,
    quantize_money,
    to_snapshot,
)
from .exceptions import InsufficientData
from .fiscal import add_years, financial_year_for, iter_months, next_month, years_between
from .market import MarketReference
from .models import GrowthBaseline, InsightCategory, LoyaltyWindow
from .records import (
    ZERO,
    EarningsAnalysis,
    EarningsInsight,
    EarningsSnapshot,
    LoyaltyTax,
    NormalizedAnnual,
    PositionRecord,
    ProfileRecord,
    SuperProjection,
    SuperSnapshot,
    TenureBlock,
    WeeklyEntry,
    WeeklyProjection,
    YearlyLoyaltyTax,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")
MIN_LOYALTY_WINDOW_YEARS = Decimal("1")
TENURE_BLOCK_MIN_YEARS = Decimal("2")

OVERTIME_CONFIDENCE_HIGH = 95
OVERTIME_CONFIDENCE_LOW = 70
LOYALTY_TAX_CONFIDENCE = 85
PERCENTILE_CONFIDENCE = 75
FAIRLY_PAID_CONFIDENCE = 70
MARKET_OPPORTUNITY_CONFIDENCE = 70


@dataclass(frozen=True)
class AnalysisConfig:
    concessional_cap: Decimal = Decimal("30000")
    assumed_return: Decimal = Decimal("0.07")
    projection_years: int = 30
    # None defers to the user's profile
    loyalty_baseline: Optional[str] = None
    loyalty_window: Optional[str] = None
    loyalty_materiality: Decimal = Decimal("1000")
    overtime_share_threshold: Decimal = Decimal("0.10")
    overtime_source_confidence: int = 95
    weekly_sample_size: int = 4
    underpaid_percentile: Decimal = Decimal("25")
    overpaid_percentile: Decimal = Decimal("75")
    market_hourly_margin: Decimal = Decimal("5")


def income_percentile(total_compensation: Decimal, market: Optional[MarketReference]) -> Optional[Decimal]:
    """
    Linear interpolation on the market percentile curve, anchored at (0, 0).

    Incomes above the top point are clamped to its percentile. Returns None without a market
    reference or a usable curve.
    """
    if market is None or not market.percentile_curve:
        return None
    if total_compensation <= 0:
        return ZERO

    previous_pct, previous_income = ZERO, ZERO
    for percentile, income in market.percentile_curve:
        if total_compensation <= income:
            span = income - previous_income
            if span <= 0:
                return min(percentile, HUNDRED)
            value = previous_pct + (total_compensation - previous_income) / span * (percentile - previous_pct)
            return min(max(value, ZERO), HUNDRED).quantize(Decimal("0.1"))
        previous_pct, previous_income = percentile, income
    return min(previous_pct, HUNDRED).quantize(Decimal("0.1"))


def _snapshot_in_effect(history: Sequence[EarningsSnapshot], on: date) -> Optional[EarningsSnapshot]:
    current = None
    for snapshot in history:
        if snapshot.date > on:
            break
        current = snapshot
    return current


def last_step_change(timeline: Sequence[EarningsSnapshot], as_of: date) -> Optional[date]:
    """Date of the most recent snapshot whose base differs from the one before it."""
    changed_on: Optional[date] = None
    previous: Optional[Decimal] = None
    for snapshot in timeline:
        if snapshot.date > as_of:
            break
        if snapshot.base_annual > 0 and (previous is None or snapshot.base_annual != previous):
            changed_on = snapshot.date
            previous = snapshot.base_annual
    return changed_on


def loyalty_window_start(
    window: str,
    timeline: Sequence[EarningsSnapshot],
    tenure_start: Optional[date],
    as_of: date,
) -> Optional[date]:
    if window == LoyaltyWindow.LAST_INCREASE:
        return last_step_change(timeline, as_of)
    if tenure_start is not None:
        return tenure_start
    return timeline[0].date if timeline else None


def compound_annual_growth(start_value: Decimal, end_value: Decimal, years: Decimal) -> Decimal:
    if start_value <= 0 or years <= 0:
        raise InsufficientData("Growth needs a positive starting base and a non-empty window.", field="base_annual")
    return (end_value / start_value) ** (Decimal("1") / years) - Decimal("1")


def loyalty_tax(
    timeline: Sequence[EarningsSnapshot],
    reference_growth: Decimal,
    window_start: date,
    as_of: date,
    baseline: str = GrowthBaseline.INDUSTRY_AVERAGE,
) -> LoyaltyTax:
    """
    Income foregone by growing slower than the reference rate since window_start.

    The annual figure is the current shortfall in growth applied to the current base. The cumulative
    figure walks each anniversary of the window, comparing the base the reference rate would have
    produced with the base actually in effect, and weights the final partial year by its length.
    Neither figure is ever negative.

    Growth is measured from the first snapshot dated on or after window_start. A snapshot from
    before the window is used only when nothing was recorded inside it.
    """
    history = [snapshot for snapshot in timeline if snapshot.date <= as_of and snapshot.base_annual > 0]
    if not history:
        raise InsufficientData("No base salary recorded before the analysis date.", field="base_annual")

    start = next((snapshot for snapshot in history if snapshot.date >= window_start), None)
    if start is None:
        start = _snapshot_in_effect(history, window_start)
    window_from = max(window_start, start.date)
    years = years_between(window_from, as_of)
    if years < MIN_LOYALTY_WINDOW_YEARS:
        raise InsufficientData("Comparison window is shorter than a year.", field="window_start")

    current = history[-1]
    actual_growth = compound_annual_growth(start.base_annual, current.base_annual, years)
    result = dict(
        baseline=baseline,
        window_start=window_from,
        reference_growth=reference_growth,
        actual_growth=actual_growth.quantize(Decimal("0.0001")),
        years_in_window=years.quantize(Decimal("0.01")),
        current_base=current.base_annual,
    )
    if actual_growth >= reference_growth:
        return LoyaltyTax(annual=ZERO, cumulative=ZERO, **result)

    growth_factor = Decimal("1") + reference_growth
    yearly: List[YearlyLoyaltyTax] = []
    full_years = int(years)
    for k in range(1, full_years + 1):
        anniversary = add_years(window_from, k)
        expected = start.base_annual * growth_factor**k
        in_effect = _snapshot_in_effect(history, anniversary) or current
        yearly.append(YearlyLoyaltyTax(year=anniversary.year, amount=quantize_money(max(ZERO, expected - in_effect.base_annual))))

    fraction = years - full_years
    if fraction > 0:
        expected = start.base_annual * growth_factor**years
        gap = max(ZERO, expected - current.base_annual) * fraction
        yearly.append(YearlyLoyaltyTax(year=as_of.year, amount=quantize_money(gap)))

    annual = max(ZERO, (reference_growth - actual_growth) * current.base_annual)
    return LoyaltyTax(
        annual=quantize_money(annual),
        cumulative=sum((item.amount for item in yearly), ZERO),
        yearly=tuple(yearly),
        **result,
    )


def super_cap_utilization(concessional_total: Decimal, cap: Decimal) -> Tuple[Decimal, Decimal]:
    """Returns (utilization percent, remaining headroom) for a financial year's contributions."""
    if cap <= 0:
        return ZERO, ZERO
    percent = (concessional_total / cap * HUNDRED).quantize(Decimal("0.01"))
    headroom = quantize_money(max(ZERO, cap - concessional_total))
    return percent, headroom


def _month_end(month: date) -> date:
    return next_month(month) - timedelta(days=1)


def super_trajectory(
    entries: Sequence[NormalizedAnnual],
    weekly_entries: Sequence[WeeklyEntry],
    as_of: date,
    cap: Decimal,
    assumed_return: Decimal,
) -> List[SuperSnapshot]:
    """
    Contributions per financial year with a running balance.

    Each month credits a twelfth of the annual super of the entry in effect for every position.
    Payslips replace that estimate for any (position, financial year) pair they cover.
    """
    weekly_actuals: Dict[Tuple[Optional[int], str], Decimal] = {}
    for weekly in weekly_entries:
        if weekly.week_ending <= as_of:
            key = (weekly.position_id, weekly.financial_year)
            weekly_actuals[key] = weekly_actuals.get(key, ZERO) + weekly.super_contributed

    by_position: Dict[Optional[int], List[NormalizedAnnual]] = {}
    for entry in entries:
        if entry.effective_date <= as_of:
            by_position.setdefault(entry.position_id, []).append(entry)

    starts = [entry.effective_date for group in by_position.values() for entry in group]
    starts.extend(weekly.week_ending for weekly in weekly_entries if weekly.week_ending <= as_of)
    if not starts:
        return []

    employer: Dict[str, Decimal] = {}
    personal: Dict[str, Decimal] = {}
    for month in iter_months(min(starts), as_of):
        fy = financial_year_for(month)
        employer.setdefault(fy, ZERO)
        personal.setdefault(fy, ZERO)
        reference_day = min(_month_end(month), as_of)
        for position_id, group in by_position.items():
            if (position_id, fy) in weekly_actuals:
                continue
            in_effect = entry_in_effect(group, reference_day)
            if in_effect is None:
                continue
            employer[fy] += in_effect.super_employer / MONTHS_PER_YEAR
            personal[fy] += in_effect.super_personal / MONTHS_PER_YEAR

    for (_, fy), amount in weekly_actuals.items():
        employer[fy] = employer.get(fy, ZERO) + amount
        personal.setdefault(fy, ZERO)

    snapshots: List[SuperSnapshot] = []
    balance = ZERO
    for fy in sorted(employer):
        concessional = employer[fy] + personal[fy]
        percent, headroom = super_cap_utilization(concessional, cap)
        balance = balance * (Decimal("1") + assumed_return) + concessional
        snapshots.append(
            SuperSnapshot(
                financial_year=fy,
                employer_contributions=quantize_money(employer[fy]),
                personal_contributions=quantize_money(personal[fy]),
                concessional_total=quantize_money(concessional),
                cap=cap,
                cap_utilization_percent=percent,
                remaining_headroom=headroom,
                total_super_balance=quantize_money(balance),
            )
        )
    return snapshots


def future_value_of_annuity(contribution: Decimal, rate: Decimal, years: int) -> Decimal:
    if rate == 0:
        return contribution * years
    return contribution * ((Decimal("1") + rate) ** years - Decimal("1")) / rate


def project_super(annual_contribution: Decimal, assumed_return: Decimal, years: int) -> SuperProjection:
    return SuperProjection(
        annual_contribution=quantize_money(annual_contribution),
        assumed_return=assumed_return,
        years=years,
        projected_balance=quantize_money(future_value_of_annuity(annual_contribution, assumed_return, years)),
    )


def tenure_blocks(
    positions: Iterable[PositionRecord],
    timeline: Sequence[EarningsSnapshot],
    market_growth_for: Callable[[str], Decimal],
    as_of: date,
) -> List[TenureBlock]:
    """
    Per employer with more than two years of service: simple annual base progression compared with
    the market growth for the latest seniority held there.
    """
    by_employer: Dict[str, List[PositionRecord]] = {}
    for position in positions:
        if position.start_date <= as_of:
            by_employer.setdefault(position.employer_name, []).append(position)

    blocks: List[TenureBlock] = []
    for employer_name, group in by_employer.items():
        group.sort(key=lambda position: position.start_date)
        start = group[0].start_date
        ongoing = any(position.end_date is None for position in group)
        end_date = None if ongoing else max(position.end_date for position in group)
        period_end = min(end_date or as_of, as_of)
        years = years_between(start, period_end)
        if years <= TENURE_BLOCK_MIN_YEARS:
            continue

        position_ids = {position.position_id for position in group}
        salaries = [
            snapshot.base_annual
            for snapshot in timeline
            if snapshot.position_id in position_ids and snapshot.date <= period_end and snapshot.base_annual > 0
        ]
        if not salaries:
            continue
        first_salary, last_salary = salaries[0], salaries[-1]
        actual = (last_salary - first_salary) / first_salary / years
        expected = market_growth_for(group[-1].seniority_level)
        impact = last_salary * (expected - actual) * years if expected > actual else ZERO
        blocks.append(
            TenureBlock(
                employer_name=employer_name,
                start_date=start,
                end_date=end_date,
                years_of_service=years.quantize(Decimal("0.01")),
                actual_progression=(actual * HUNDRED).quantize(Decimal("0.01")),
                market_expected_progression=(expected * HUNDRED).quantize(Decimal("0.01")),
                loyalty_tax_impact=quantize_money(impact),
            )
        )
    blocks.sort(key=lambda block: block.start_date)
    return blocks


def _weekly_overtime_share(weekly_entries: Sequence[WeeklyEntry]) -> Decimal:
    ordinary = sum((entry.hours_ordinary for entry in weekly_entries), ZERO)
    weighted_overtime = sum((entry.hours_overtime * entry.overtime_rate_multiplier for entry in weekly_entries), ZERO)
    paid_hours = ordinary + weighted_overtime
    if paid_hours <= 0:
        return ZERO
    return weighted_overtime / paid_hours


def overtime_insight(
    current: Optional[NormalizedAnnual],
    weekly_entries: Sequence[WeeklyEntry],
    config: AnalysisConfig,
) -> Optional[EarningsInsight]:
    if current is not None:
        share = current.overtime / current.actual_annual if current.actual_annual > 0 else ZERO
        overtime_amount = current.overtime
        adequate = current.confidence >= config.overtime_source_confidence
    elif weekly_entries:
        share = _weekly_overtime_share(weekly_entries)
        overtime_amount = None
        adequate = False
    else:
        return None
    if share <= config.overtime_share_threshold:
        return None

    adequate = adequate or len(weekly_entries) >= config.weekly_sample_size
    percent = share * HUNDRED
    data_points = [f"Overtime share: {percent:.1f}%", f"Threshold: {config.overtime_share_threshold * HUNDRED:.0f}%"]
    if overtime_amount is not None:
        data_points.append(f"Annual overtime: ${overtime_amount:,.2f}")
    if weekly_entries:
        data_points.append(f"Weekly entries: {len(weekly_entries)}")
    return EarningsInsight(
        category=InsightCategory.OVERTIME_HEAVY,
        title=f"Overtime makes up {percent:.0f}% of your earnings",
        description=(
            f"{percent:.1f}% of your income comes from overtime. Your earnings depend on hours that "
            f"may not be guaranteed."
        ),
        confidence_level=OVERTIME_CONFIDENCE_HIGH if adequate else OVERTIME_CONFIDENCE_LOW,
        data_points=tuple(data_points),
    )


def loyalty_insight(result: Optional[LoyaltyTax], config: AnalysisConfig) -> Optional[EarningsInsight]:
    if result is None or result.cumulative < config.loyalty_materiality:
        return None
    return EarningsInsight(
        category=InsightCategory.LOYALTY_TAX,
        title=f"Staying put has cost you about ${result.cumulative:,.0f}",
        description=(
            f"Your base grew {result.actual_growth * HUNDRED:.1f}% a year against a reference of "
            f"{result.reference_growth * HUNDRED:.1f}% since {result.window_start:%d/%m/%Y}, "
            f"about ${result.annual:,.0f} a year at your current base."
        ),
        confidence_level=LOYALTY_TAX_CONFIDENCE,
        data_points=(
            f"Actual growth: {result.actual_growth * HUNDRED:.2f}%",
            f"Reference growth: {result.reference_growth * HUNDRED:.2f}%",
            f"Annual loyalty tax: ${result.annual:,.2f}",
            f"Cumulative loyalty tax: ${result.cumulative:,.2f}",
        ),
    )


def percentile_insight(
    percentile: Optional[Decimal],
    total_compensation: Decimal,
    market: Optional[MarketReference],
    config: AnalysisConfig,
) -> Optional[EarningsInsight]:
    if percentile is None or market is None:
        return None
    data_points = (
        f"Income percentile: {percentile:.1f}",
        f"Total compensation: ${total_compensation:,.0f}",
        f"Market median: ${market.median_income:,.0f}",
    )
    if percentile < config.underpaid_percentile:
        return EarningsInsight(
            category=InsightCategory.UNDERPAID,
            title=f"You earn less than {HUNDRED - percentile:.0f}% of your peers",
            description=(
                f"At ${total_compensation:,.0f} you sit at the {percentile:.0f}th percentile for "
                f"{market.industry or 'your industry'}, where the median is ${market.median_income:,.0f}."
            ),
            confidence_level=PERCENTILE_CONFIDENCE,
            data_points=data_points,
        )
    if percentile > config.overpaid_percentile:
        return EarningsInsight(
            category=InsightCategory.OVERPAID,
            title=f"You earn more than {percentile:.0f}% of your peers",
            description=(
                f"At ${total_compensation:,.0f} you sit at the {percentile:.0f}th percentile for "
                f"{market.industry or 'your industry'}, where the median is ${market.median_income:,.0f}."
            ),
            confidence_level=PERCENTILE_CONFIDENCE,
            data_points=data_points,
        )
    return EarningsInsight(
        category=InsightCategory.FAIRLY_PAID,
        title=f"You are paid around the market rate ({percentile:.0f}th percentile)",
        description=(
            f"At ${total_compensation:,.0f} you are within the middle band for "
            f"{market.industry or 'your industry'}, where the median is ${market.median_income:,.0f}."
        ),
        confidence_level=FAIRLY_PAID_CONFIDENCE,
        data_points=data_points,
    )


def market_opportunity_insight(
    hourly_rate: Decimal,
    market: Optional[MarketReference],
    config: AnalysisConfig,
) -> Optional[EarningsInsight]:
    if market is None or hourly_rate <= 0:
        return None
    market_rate = market.median_hourly_rate
    gap = market_rate - hourly_rate
    if gap <= config.market_hourly_margin:
        return None
    return EarningsInsight(
        category=InsightCategory.MARKET_OPPORTUNITY,
        title=f"The market pays ${gap:,.2f}/hr more",
        description=(
            f"Your effective rate of ${hourly_rate:,.2f}/hr is below the market median of "
            f"${market_rate:,.2f}/hr for {market.industry or 'your industry'}."
        ),
        confidence_level=MARKET_OPPORTUNITY_CONFIDENCE,
        data_points=(f"Effective hourly rate: ${hourly_rate:,.2f}", f"Market hourly rate: ${market_rate:,.2f}"),
    )


def _current_super_contribution(
    normalized: Sequence[NormalizedAnnual],
    projection: Optional[WeeklyProjection],
    weekly_entries: Sequence[WeeklyEntry],
    as_of: date,
) -> Decimal:
    by_position: Dict[Optional[int], List[NormalizedAnnual]] = {}
    for entry in normalized:
        by_position.setdefault(entry.position_id, []).append(entry)
    total = ZERO
    for group in by_position.values():
        in_effect = entry_in_effect(group, as_of)
        if in_effect is not None:
            total += in_effect.super_employer + in_effect.super_personal
    if total == 0 and projection is not None:
        weekly_super = sum((entry.super_contributed for entry in weekly_entries), ZERO) / Decimal(len(weekly_entries))
        total = weekly_super * WEEKS_PER_YEAR
    return total


def _entry_on(entries: Sequence[NormalizedAnnual], on: date) -> Optional[NormalizedAnnual]:
    matches = [entry for entry in entries if entry.effective_date == on]
    return matches[-1] if matches else None


def analyze(
    timeline: Sequence[EarningsSnapshot],
    profile: ProfileRecord,
    market: Optional[MarketReference],
    as_of: date,
    *,
    normalized: Sequence[NormalizedAnnual] = (),
    weekly_entries: Sequence[WeeklyEntry] = (),
    tenure_start: Optional[date] = None,
    config: AnalysisConfig = AnalysisConfig(),
) -> EarningsAnalysis:
    """
    Derives the earnings analysis from an aggregated timeline as of the given date.

    Each derived metric degrades to None when its inputs are insufficient. Only a complete absence
    of compensation data produces the "no data" result.
    """
    history = [snapshot for snapshot in timeline if snapshot.date <= as_of]
    weekly = [entry for entry in weekly_entries if entry.week_ending <= as_of]

    projection: Optional[WeeklyProjection] = None
    if weekly:
        projection = project_from_weekly(weekly)
    if not history and projection is None:
        return EarningsAnalysis.no_data()

    current_entry = entry_in_effect(normalized, as_of)
    if history:
        if current_entry is None:
            # every position has ended; report the entry behind the latest snapshot
            current_entry = _entry_on(normalized, history[-1].date)
        if current_entry is not None:
            latest = to_snapshot(current_entry, profile.standard_weekly_hours)
        else:
            latest = history[-1]
        current_total = latest.total_with_super
        current_hourly = latest.effective_hourly_rate
        if current_entry is not None and current_entry.standard_weekly_hours is not None:
            weekly_hours = current_entry.standard_weekly_hours + current_entry.overtime_hours_per_year / WEEKS_PER_YEAR
        else:
            weekly_hours = profile.standard_weekly_hours
    else:
        weekly_super = sum((entry.super_contributed for entry in weekly), ZERO) / Decimal(len(weekly))
        current_total = projection.projected_annual_gross + quantize_money(weekly_super * WEEKS_PER_YEAR)
        current_hourly = projection.real_hourly_rate
        weekly_hours = projection.average_hours_per_week

    percentile = income_percentile(current_total, market)

    baseline = config.loyalty_baseline or profile.loyalty_baseline
    window = config.loyalty_window or profile.loyalty_window
    loyalty: Optional[LoyaltyTax] = None
    window_start = loyalty_window_start(window, history, tenure_start, as_of)
    if history and window_start is not None and market is not None:
        try:
            loyalty = loyalty_tax(history, market.growth_for(baseline), window_start, as_of, baseline=baseline)
        except InsufficientData as exc:
            logger.debug("Loyalty tax unavailable: %s", exc)

    changed_on = last_step_change(history, as_of)
    years_since_change = years_between(changed_on, as_of).quantize(Decimal("0.01")) if changed_on else None

    trajectory = super_trajectory(normalized, weekly, as_of, config.concessional_cap, config.assumed_return)
    super_projection = project_super(
        _current_super_contribution(normalized, projection, weekly, as_of),
        config.assumed_return,
        config.projection_years,
    )

    insights = [
        overtime_insight(current_entry, weekly, config),
        loyalty_insight(loyalty, config),
        percentile_insight(percentile, current_total, market, config),
        market_opportunity_insight(current_hourly, market, config),
    ]

    return EarningsAnalysis(
        has_data=True,
        current_total_compensation=current_total,
        current_effective_hourly_rate=current_hourly,
        current_weekly_hours=quantize_money(weekly_hours),
        income_percentile=percentile,
        loyalty_tax_annual=loyalty.annual if loyalty else None,
        loyalty_tax_cumulative=loyalty.cumulative if loyalty else None,
        loyalty_tax=loyalty,
        years_since_last_change=years_since_change,
        earnings_over_time=tuple(history),
        hours_vs_earnings=tuple(hours_vs_earnings(normalized, weekly, as_of, profile.standard_weekly_hours)),
        super_trajectory=tuple(trajectory),
        super_projection=super_projection,
        weekly_projection=projection,
        compensation_summary=compensation_summary(history, as_of) if history else None,
        insights=tuple(insight for insight in insights if insight is not None),
    )
