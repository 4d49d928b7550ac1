"""
Normalization turns each compensation record variant into a common annualized representation.

Exact and Fuzzy entries carry a base rate, overtime details, allowances, bonuses and super
contributions. Yearly summaries (ATO income statements) arrive already aggregated. Weekly payslips
are never annualized one by one; they are projected as a group by the aggregation stage.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional, Union

from .exceptions import InconsistentData, InvalidInput
from .fiscal import financial_year_bounds
from .models import AllowanceFrequency, CompensationEntryType, OvertimeFrequency, PayType
from .records import (
    ZERO,
    Allowance,
    CompensationEntry,
    NormalizedAnnual,
    PositionRecord,
    WeeklyEntry,
    YearlySummaryEntry,
)

WEEKS_PER_YEAR = Decimal("52")
HOURS_PER_WEEK_LIMIT = Decimal("168")
LEGACY_STANDARD_HOURS = Decimal("38")

ALLOWANCE_MULTIPLIERS = {
    AllowanceFrequency.WEEKLY.value: Decimal("52"),
    AllowanceFrequency.FORTNIGHTLY.value: Decimal("26"),
    AllowanceFrequency.MONTHLY.value: Decimal("12"),
    AllowanceFrequency.ANNUALLY.value: Decimal("1"),
}

EXACT_CONFIDENCE = 100
FUZZY_BASE_CONFIDENCE = 60
FUZZY_CONFIDENCE_CAP = 90
YEARLY_SUMMARY_CONFIDENCE = 95

OvertimeCalculator = Callable[[CompensationEntry], Decimal]


def annualize_allowance(allowance: Allowance) -> Decimal:
    multiplier = ALLOWANCE_MULTIPLIERS.get(str(allowance.frequency))
    if multiplier is None:
        raise InvalidInput(f"Unknown allowance frequency '{allowance.frequency}'.", field="allowances.frequency")
    return allowance.amount * multiplier


def annualize_allowances(allowances: Iterable[Allowance]) -> Decimal:
    return sum((annualize_allowance(allowance) for allowance in allowances), ZERO)


def base_annual(entry: CompensationEntry) -> Decimal:
    if entry.pay_type == PayType.HOURLY:
        return entry.base_rate * entry.standard_weekly_hours * WEEKS_PER_YEAR
    return entry.base_rate


def overtime_hours_per_year(entry: CompensationEntry) -> Decimal:
    overtime = entry.overtime
    if overtime.annual_hours is not None:
        return overtime.annual_hours
    return overtime.average_hours_per_week * WEEKS_PER_YEAR


def overtime_annual(entry: CompensationEntry) -> Decimal:
    """
    Legacy overtime formula: hours x multiplier x base rate, whatever the pay type.

    For salaried entries the base rate is an annual figure, so any overtime produces a value far
    above the salary itself. Kept as is so stored records keep producing the figures users have seen;
    see overtime_annual_hourly_derived for the corrected calculation.
    """
    overtime = entry.overtime
    if overtime.annual_hours is not None:
        return overtime.annual_hours * overtime.rate_multiplier * entry.base_rate
    return overtime.average_hours_per_week * overtime.rate_multiplier * entry.base_rate * WEEKS_PER_YEAR


def overtime_annual_hourly_derived(entry: CompensationEntry) -> Decimal:
    """Overtime priced from an hourly rate; salaries are converted with base_rate / (38 x 52)."""
    if entry.pay_type == PayType.HOURLY:
        hourly_rate = entry.base_rate
    else:
        hourly_rate = entry.base_rate / (LEGACY_STANDARD_HOURS * WEEKS_PER_YEAR)
    return overtime_hours_per_year(entry) * entry.overtime.rate_multiplier * hourly_rate


def fuzzy_confidence(entry: CompensationEntry) -> int:
    score = FUZZY_BASE_CONFIDENCE
    if entry.pay_type == PayType.HOURLY:
        score += 10
    if entry.overtime.frequency != OvertimeFrequency.NONE and overtime_hours_per_year(entry) > 0:
        score += 5
    if annualize_allowances(entry.allowances) > 0:
        score += 5
    return min(score, FUZZY_CONFIDENCE_CAP)


def confidence_for(entry: Union[CompensationEntry, YearlySummaryEntry]) -> int:
    if isinstance(entry, YearlySummaryEntry):
        return YEARLY_SUMMARY_CONFIDENCE
    if entry.entry_type == CompensationEntryType.FUZZY:
        return fuzzy_confidence(entry)
    return EXACT_CONFIDENCE


def _require_non_negative(value: Optional[Decimal], record_id: str, field: str) -> None:
    if value is not None and value < 0:
        raise InvalidInput(f"{field} cannot be negative.", record_id=record_id, field=field)


def _require_weekly_hours(value: Decimal, record_id: str, field: str) -> None:
    if value < 0 or value > HOURS_PER_WEEK_LIMIT:
        raise InvalidInput(f"{field} must be between 0 and 168 hours per week.", record_id=record_id, field=field)


def _validate_allowances(allowances: Iterable[Allowance], record_id: str) -> None:
    for idx, allowance in enumerate(allowances):
        _require_non_negative(allowance.amount, record_id, f"allowances[{idx}].amount")
        if str(allowance.frequency) not in ALLOWANCE_MULTIPLIERS:
            raise InvalidInput(
                f"Unknown allowance frequency '{allowance.frequency}'.",
                record_id=record_id,
                field=f"allowances[{idx}].frequency",
            )


def validate_compensation_entry(entry: CompensationEntry) -> None:
    record_id = entry.record_id
    if entry.base_rate <= 0:
        raise InvalidInput("Base rate must be greater than zero.", record_id=record_id, field="base_rate")
    _require_weekly_hours(entry.standard_weekly_hours, record_id, "standard_weekly_hours")

    overtime = entry.overtime
    _require_non_negative(overtime.rate_multiplier, record_id, "overtime.rate_multiplier")
    _require_weekly_hours(overtime.average_hours_per_week, record_id, "overtime.average_hours_per_week")
    if overtime.annual_hours is not None:
        if overtime.annual_hours < 0 or overtime.annual_hours > HOURS_PER_WEEK_LIMIT * WEEKS_PER_YEAR:
            raise InvalidInput(
                "Annual overtime hours must be between 0 and 8736.",
                record_id=record_id,
                field="overtime.annual_hours",
            )

    _validate_allowances(entry.allowances, record_id)
    for idx, bonus in enumerate(entry.bonuses):
        _require_non_negative(bonus.amount, record_id, f"bonuses[{idx}].amount")

    contributions = entry.super_contributions
    if contributions.contribution_rate < 0 or contributions.contribution_rate > 100:
        raise InvalidInput(
            "Super contribution rate must be a percentage between 0 and 100.",
            record_id=record_id,
            field="super_contributions.contribution_rate",
        )
    _require_non_negative(contributions.additional_contributions, record_id, "super_contributions.additional_contributions")
    _require_non_negative(contributions.salary_sacrifice, record_id, "super_contributions.salary_sacrifice")
    _require_non_negative(entry.tax_withheld, record_id, "tax_withheld")


def validate_yearly_summary(entry: YearlySummaryEntry) -> None:
    record_id = entry.record_id
    _require_non_negative(entry.gross_income, record_id, "gross_income")
    _require_non_negative(entry.tax_withheld, record_id, "tax_withheld")
    _require_non_negative(entry.reportable_super, record_id, "reportable_super")
    _require_non_negative(entry.reportable_fringe_benefits, record_id, "reportable_fringe_benefits")
    _validate_allowances(entry.allowances, record_id)
    try:
        financial_year_bounds(entry.financial_year)
    except InvalidInput as exc:
        raise InvalidInput(exc.message, record_id=record_id, field="financial_year") from exc
    if entry.tax_withheld > entry.gross_income:
        raise InconsistentData("Tax withheld exceeds gross income.", record_id=record_id, field="tax_withheld")


def validate_weekly_entry(entry: WeeklyEntry) -> None:
    record_id = entry.record_id
    _require_non_negative(entry.gross_pay, record_id, "gross_pay")
    _require_non_negative(entry.tax_withheld, record_id, "tax_withheld")
    _require_non_negative(entry.net_pay, record_id, "net_pay")
    _require_non_negative(entry.super_contributed, record_id, "super_contributed")
    _require_non_negative(entry.overtime_rate_multiplier, record_id, "overtime_rate_multiplier")
    _require_weekly_hours(entry.hours_ordinary, record_id, "hours_ordinary")
    _require_weekly_hours(entry.hours_overtime, record_id, "hours_overtime")
    if entry.total_hours > HOURS_PER_WEEK_LIMIT:
        raise InvalidInput("A week cannot exceed 168 hours.", record_id=record_id, field="hours_overtime")
    _validate_allowances(entry.allowances, record_id)
    if entry.tax_withheld > entry.gross_pay:
        raise InconsistentData("Tax withheld exceeds gross pay.", record_id=record_id, field="tax_withheld")
    if entry.net_pay > entry.gross_pay:
        raise InconsistentData("Net pay exceeds gross pay.", record_id=record_id, field="net_pay")


def validate_position(position: PositionRecord) -> None:
    if position.end_date and position.end_date < position.start_date:
        raise InconsistentData(
            "End date must be on or after the start date.",
            record_id=f"position:{position.position_id}",
            field="end_date",
        )


def _normalize_compensation(entry: CompensationEntry, overtime_calculator: OvertimeCalculator) -> NormalizedAnnual:
    validate_compensation_entry(entry)
    base = base_annual(entry)
    if entry.entry_type == CompensationEntryType.FUZZY:
        # estimates always price overtime from an hourly rate
        overtime = overtime_annual_hourly_derived(entry)
    else:
        overtime = overtime_calculator(entry)
    allowances = annualize_allowances(entry.allowances)
    bonuses = sum((bonus.amount for bonus in entry.bonuses), ZERO)
    tax_withheld = entry.tax_withheld or ZERO
    gross = base + overtime + allowances + bonuses
    if tax_withheld > gross:
        raise InconsistentData("Tax withheld exceeds gross income.", record_id=entry.record_id, field="tax_withheld")

    contributions = entry.super_contributions
    return NormalizedAnnual(
        record_id=entry.record_id,
        position_id=entry.position_id,
        effective_date=entry.effective_date,
        base=base,
        overtime=overtime,
        allowances=allowances,
        bonuses=bonuses,
        super_employer=base * contributions.contribution_rate / Decimal("100") + contributions.additional_contributions,
        super_personal=contributions.salary_sacrifice,
        tax_withheld=tax_withheld,
        confidence=confidence_for(entry),
        standard_weekly_hours=entry.standard_weekly_hours,
        overtime_hours_per_year=overtime_hours_per_year(entry),
    )


def _normalize_yearly_summary(entry: YearlySummaryEntry) -> NormalizedAnnual:
    validate_yearly_summary(entry)
    allowances = annualize_allowances(entry.allowances)
    if allowances > entry.gross_income:
        raise InconsistentData("Listed allowances exceed gross income.", record_id=entry.record_id, field="allowances")
    fy_start, fy_end = financial_year_bounds(entry.financial_year)
    return NormalizedAnnual(
        record_id=entry.record_id,
        position_id=entry.position_id,
        effective_date=fy_start,
        base=entry.gross_income - allowances,
        overtime=ZERO,
        allowances=allowances,
        bonuses=ZERO,
        super_employer=entry.reportable_super,
        super_personal=ZERO,
        tax_withheld=entry.tax_withheld,
        confidence=confidence_for(entry),
        end_date=fy_end,
    )


def normalize(
    entry: Union[CompensationEntry, YearlySummaryEntry],
    overtime_calculator: OvertimeCalculator = overtime_annual,
) -> NormalizedAnnual:
    if isinstance(entry, CompensationEntry):
        return _normalize_compensation(entry, overtime_calculator)
    if isinstance(entry, YearlySummaryEntry):
        return _normalize_yearly_summary(entry)
    if isinstance(entry, WeeklyEntry):
        raise TypeError("Weekly entries are projected as a group, use aggregation.project_from_weekly().")
    raise TypeError(f"Unsupported compensation record {type(entry).__name__}.")


def bounded_by_position(normalized: NormalizedAnnual, position_end: Optional[date]) -> NormalizedAnnual:
    """Caps how long a normalized entry stays in effect at the end of its position."""
    if position_end is None:
        return normalized
    if normalized.end_date is None or position_end < normalized.end_date:
        return replace(normalized, end_date=position_end)
    return normalized
