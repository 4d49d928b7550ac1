from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from .exceptions import InsufficientData
from .fiscal import years_between
from .models import Trend
from .records import (
    ZERO,
    CompensationSummary,
    EarningsSnapshot,
    HoursEarningsPoint,
    NormalizedAnnual,
    WeeklyEntry,
    WeeklyProjection,
)

WEEKS_PER_YEAR = Decimal("52")
DEFAULT_WEEKLY_HOURS = Decimal("38")
TREND_MIN_ENTRIES = 4
TREND_THRESHOLD_PERCENT = Decimal("5")

CENTS = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS)


def mean(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / Decimal(len(values))


def median(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return ZERO
    ordered = sorted(values)
    middle = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[middle]
    return (ordered[middle - 1] + ordered[middle]) / Decimal("2")


def annual_hours(entry: NormalizedAnnual, standard_weekly_hours: Decimal = DEFAULT_WEEKLY_HOURS) -> Decimal:
    weekly_hours = entry.standard_weekly_hours if entry.standard_weekly_hours is not None else standard_weekly_hours
    return weekly_hours * WEEKS_PER_YEAR + entry.overtime_hours_per_year


def effective_hourly_rate(entry: NormalizedAnnual, standard_weekly_hours: Decimal = DEFAULT_WEEKLY_HOURS) -> Decimal:
    hours = annual_hours(entry, standard_weekly_hours)
    if hours <= 0:
        return ZERO
    return quantize_money(entry.actual_annual / hours)


def to_snapshot(entry: NormalizedAnnual, standard_weekly_hours: Decimal = DEFAULT_WEEKLY_HOURS) -> EarningsSnapshot:
    return EarningsSnapshot(
        date=entry.effective_date,
        base_annual=quantize_money(entry.base),
        actual_annual=quantize_money(entry.actual_annual),
        total_with_super=quantize_money(entry.total_with_super),
        effective_hourly_rate=effective_hourly_rate(entry, standard_weekly_hours),
        bonuses_annual=quantize_money(entry.bonuses),
        allowances_annual=quantize_money(entry.allowances),
        position_id=entry.position_id,
        confidence=entry.confidence,
    )


def aggregate_timeline(
    entries: Iterable[NormalizedAnnual],
    standard_weekly_hours: Decimal = DEFAULT_WEEKLY_HOURS,
) -> List[EarningsSnapshot]:
    """
    Builds one snapshot per distinct effective date, sorted ascending.

    When several entries share an effective date the one supplied last wins, regardless of amount.
    """
    by_date: Dict[date, NormalizedAnnual] = {}
    for entry in entries:
        by_date[entry.effective_date] = entry
    return [to_snapshot(by_date[key], standard_weekly_hours) for key in sorted(by_date)]


def classify_trend(values: Sequence[Decimal]):
    """
    Compares the first half of the values (most recent, as ordered) with the second half.

    Returns a (trend, percent change) pair. The percent is None when it cannot be computed.
    """
    if len(values) < TREND_MIN_ENTRIES:
        return Trend.NOT_ENOUGH_DATA, None
    midpoint = len(values) // 2
    recent_avg = mean(values[:midpoint])
    older_avg = mean(values[midpoint:])
    if older_avg == 0:
        return (Trend.STABLE if recent_avg == 0 else Trend.UP), None

    percent_change = (recent_avg - older_avg) / older_avg * Decimal("100")
    if percent_change > TREND_THRESHOLD_PERCENT:
        trend = Trend.UP
    elif percent_change < -TREND_THRESHOLD_PERCENT:
        trend = Trend.DOWN
    else:
        trend = Trend.STABLE
    return trend, percent_change.quantize(Decimal("0.1"))


def project_from_weekly(entries: Sequence[WeeklyEntry]) -> WeeklyProjection:
    """
    Flat extrapolation of weekly payslips to a year.

    The real hourly rate is a ratio of sums across all weeks rather than an average of weekly rates.
    """
    if not entries:
        raise InsufficientData("At least one weekly entry is needed for a projection.", field="weekly_entries")

    gross_amounts = [entry.gross_pay for entry in entries]
    net_amounts = [entry.net_pay for entry in entries]
    hours_worked = [entry.total_hours for entry in entries]

    average_gross = mean(gross_amounts)
    average_net = mean(net_amounts)
    total_hours = sum(hours_worked, ZERO)
    real_rate = sum(gross_amounts, ZERO) / total_hours if total_hours > 0 else ZERO
    trend, trend_percent = classify_trend(gross_amounts)

    return WeeklyProjection(
        entry_count=len(entries),
        average_weekly_gross=quantize_money(average_gross),
        median_weekly_gross=quantize_money(median(gross_amounts)),
        average_weekly_net=quantize_money(average_net),
        average_hours_per_week=quantize_money(mean(hours_worked)),
        projected_annual_gross=quantize_money(average_gross * WEEKS_PER_YEAR),
        projected_annual_net=quantize_money(average_net * WEEKS_PER_YEAR),
        real_hourly_rate=quantize_money(real_rate),
        trend=trend,
        trend_percent=trend_percent,
    )


def entry_in_effect(entries: Iterable[NormalizedAnnual], on: date) -> Optional[NormalizedAnnual]:
    """Latest entry active on the given date; ties go to the entry supplied last."""
    current: Optional[NormalizedAnnual] = None
    for entry in entries:
        if not entry.is_active_on(on):
            continue
        if current is None or entry.effective_date >= current.effective_date:
            current = entry
    return current


def _percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return quantize_money(part / whole * Decimal("100"))


def hours_vs_earnings(
    entries: Sequence[NormalizedAnnual],
    weekly_entries: Sequence[WeeklyEntry],
    as_of: date,
    standard_weekly_hours: Decimal = DEFAULT_WEEKLY_HOURS,
) -> List[HoursEarningsPoint]:
    """
    One point per calendar year. Observed payslip totals take precedence over the normalized
    entry in effect at the end of the year.
    """
    weekly_by_year: Dict[int, List[WeeklyEntry]] = {}
    for weekly in weekly_entries:
        if weekly.week_ending <= as_of:
            weekly_by_year.setdefault(weekly.week_ending.year, []).append(weekly)

    first_dates = [entry.effective_date for entry in entries if entry.effective_date <= as_of]
    first_dates.extend(date(year, 1, 1) for year in weekly_by_year)
    if not first_dates:
        return []

    points: List[HoursEarningsPoint] = []
    for year in range(min(first_dates).year, as_of.year + 1):
        weeks = weekly_by_year.get(year)
        if weeks:
            total_hours = sum((week.total_hours for week in weeks), ZERO)
            overtime_hours = sum((week.hours_overtime for week in weeks), ZERO)
            points.append(
                HoursEarningsPoint(
                    year=year,
                    total_hours_worked=quantize_money(total_hours),
                    total_earnings=quantize_money(sum((week.gross_pay for week in weeks), ZERO)),
                    overtime_percentage=_percentage(overtime_hours, total_hours),
                )
            )
            continue

        in_effect = entry_in_effect(entries, min(date(year, 12, 31), as_of))
        if in_effect is None:
            continue
        total_hours = annual_hours(in_effect, standard_weekly_hours)
        points.append(
            HoursEarningsPoint(
                year=year,
                total_hours_worked=quantize_money(total_hours),
                total_earnings=quantize_money(in_effect.actual_annual),
                overtime_percentage=_percentage(in_effect.overtime_hours_per_year, total_hours),
            )
        )
    return points


def compensation_summary(timeline: Sequence[EarningsSnapshot], as_of: date) -> CompensationSummary:
    """
    Career earnings prorate each snapshot over the time it stayed in effect, up to as_of.
    The average annual increase is the simple base growth per year, in percent.
    """
    history = [snapshot for snapshot in timeline if snapshot.date <= as_of]
    if not history:
        return CompensationSummary(ZERO, ZERO, ZERO, ZERO)

    career_total = ZERO
    for idx, snapshot in enumerate(history):
        period_end = history[idx + 1].date if idx + 1 < len(history) else as_of
        career_total += snapshot.actual_annual * years_between(snapshot.date, period_end)

    first, latest = history[0], history[-1]
    average_increase = ZERO
    years = years_between(first.date, as_of)
    if len(history) > 1 and years > 0 and first.base_annual > 0:
        average_increase = (latest.base_annual - first.base_annual) / first.base_annual / years * Decimal("100")

    return CompensationSummary(
        current_base=latest.base_annual,
        current_total=latest.total_with_super,
        career_earnings_total=quantize_money(career_total),
        average_annual_increase=average_increase.quantize(CENTS),
    )
