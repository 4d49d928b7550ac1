"""
Immutable records passed between the normalization, aggregation and analysis stages.

Records are plain data (decimals, strings, dates and nested tuples) so callers can serialize
them without knowing anything about the engine.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple

from .exceptions import RecordRejection
from .fiscal import financial_year_for
from .models import (
    AllowanceFrequency,
    AustralianState,
    CompensationEntryType,
    EmploymentType,
    GrowthBaseline,
    IncomeSource,
    LoyaltyWindow,
    OvertimeFrequency,
    PayType,
    Qualification,
    SeniorityLevel,
    Trend,
)

ZERO = Decimal("0")


@dataclass(frozen=True)
class Allowance:
    name: str
    amount: Decimal
    frequency: str = AllowanceFrequency.WEEKLY
    taxable: bool = True


@dataclass(frozen=True)
class Bonus:
    name: str
    amount: Decimal
    date_awarded: Optional[date] = None
    taxable: bool = True


@dataclass(frozen=True)
class OvertimeDetails:
    frequency: str = OvertimeFrequency.NONE
    rate_multiplier: Decimal = Decimal("1.5")
    average_hours_per_week: Decimal = ZERO
    # When set, takes precedence over the weekly average.
    annual_hours: Optional[Decimal] = None


@dataclass(frozen=True)
class SuperDetails:
    contribution_rate: Decimal = ZERO
    additional_contributions: Decimal = ZERO
    salary_sacrifice: Decimal = ZERO


@dataclass(frozen=True)
class CompensationEntry:
    """An Exact (payslip derived) or Fuzzy (estimated) compensation entry."""

    record_id: str
    position_id: Optional[int]
    effective_date: date
    base_rate: Decimal
    entry_type: str = CompensationEntryType.EXACT
    pay_type: str = PayType.SALARY
    standard_weekly_hours: Decimal = Decimal("38")
    overtime: OvertimeDetails = field(default_factory=OvertimeDetails)
    allowances: Tuple[Allowance, ...] = ()
    bonuses: Tuple[Bonus, ...] = ()
    super_contributions: SuperDetails = field(default_factory=SuperDetails)
    tax_withheld: Optional[Decimal] = None
    payslip_frequency: Optional[str] = None


@dataclass(frozen=True)
class YearlySummaryEntry:
    record_id: str
    position_id: Optional[int]
    financial_year: str
    gross_income: Decimal
    tax_withheld: Decimal = ZERO
    reportable_super: Decimal = ZERO
    reportable_fringe_benefits: Decimal = ZERO
    allowances: Tuple[Allowance, ...] = ()
    source: str = IncomeSource.ATO


@dataclass(frozen=True)
class WeeklyEntry:
    record_id: str
    position_id: Optional[int]
    week_ending: date
    gross_pay: Decimal
    tax_withheld: Decimal
    net_pay: Decimal
    hours_ordinary: Decimal
    hours_overtime: Decimal = ZERO
    overtime_rate_multiplier: Decimal = Decimal("1.5")
    super_contributed: Decimal = ZERO
    allowances: Tuple[Allowance, ...] = ()
    notes: str = ""

    @property
    def financial_year(self) -> str:
        return financial_year_for(self.week_ending)

    @property
    def total_hours(self) -> Decimal:
        return self.hours_ordinary + self.hours_overtime


@dataclass(frozen=True)
class PositionRecord:
    position_id: int
    employer_name: str
    job_title: str
    start_date: date
    end_date: Optional[date] = None
    employment_type: str = EmploymentType.PERMANENT
    seniority_level: str = SeniorityLevel.MID
    location: str = ""
    responsibilities: str = ""
    skills: Tuple[str, ...] = ()
    achievements: Tuple[str, ...] = ()

    def is_active_on(self, value: date) -> bool:
        return self.start_date <= value and (self.end_date is None or value <= self.end_date)


@dataclass(frozen=True)
class ProfileRecord:
    state: str = AustralianState.NSW
    industry: str = ""
    qualification: str = Qualification.HIGH_SCHOOL
    standard_weekly_hours: Decimal = Decimal("38")
    loyalty_baseline: str = GrowthBaseline.INDUSTRY_AVERAGE
    loyalty_window: str = LoyaltyWindow.POSITION_CHANGE


@dataclass(frozen=True)
class NormalizedAnnual:
    record_id: str
    position_id: Optional[int]
    effective_date: date
    base: Decimal
    overtime: Decimal
    allowances: Decimal
    bonuses: Decimal
    super_employer: Decimal
    super_personal: Decimal
    tax_withheld: Decimal
    confidence: int
    standard_weekly_hours: Optional[Decimal] = None
    overtime_hours_per_year: Decimal = ZERO
    end_date: Optional[date] = None

    @property
    def actual_annual(self) -> Decimal:
        return self.base + self.overtime + self.allowances + self.bonuses

    @property
    def total_with_super(self) -> Decimal:
        return self.actual_annual + self.super_employer

    @property
    def net_income(self) -> Decimal:
        return self.actual_annual - self.tax_withheld

    def is_active_on(self, value: date) -> bool:
        return self.effective_date <= value and (self.end_date is None or value <= self.end_date)


@dataclass(frozen=True)
class EarningsSnapshot:
    date: date
    base_annual: Decimal
    actual_annual: Decimal
    total_with_super: Decimal
    effective_hourly_rate: Decimal
    bonuses_annual: Decimal = ZERO
    allowances_annual: Decimal = ZERO
    position_id: Optional[int] = None
    confidence: int = 100


@dataclass(frozen=True)
class WeeklyProjection:
    entry_count: int
    average_weekly_gross: Decimal
    median_weekly_gross: Decimal
    average_weekly_net: Decimal
    average_hours_per_week: Decimal
    projected_annual_gross: Decimal
    projected_annual_net: Decimal
    real_hourly_rate: Decimal
    trend: str = Trend.NOT_ENOUGH_DATA
    trend_percent: Optional[Decimal] = None


@dataclass(frozen=True)
class HoursEarningsPoint:
    year: int
    total_hours_worked: Decimal
    total_earnings: Decimal
    overtime_percentage: Decimal


@dataclass(frozen=True)
class SuperSnapshot:
    financial_year: str
    employer_contributions: Decimal
    personal_contributions: Decimal
    concessional_total: Decimal
    cap: Decimal
    cap_utilization_percent: Decimal
    remaining_headroom: Decimal
    total_super_balance: Decimal


@dataclass(frozen=True)
class SuperProjection:
    annual_contribution: Decimal
    assumed_return: Decimal
    years: int
    projected_balance: Decimal


@dataclass(frozen=True)
class YearlyLoyaltyTax:
    year: int
    amount: Decimal


@dataclass(frozen=True)
class LoyaltyTax:
    baseline: str
    window_start: date
    reference_growth: Decimal
    actual_growth: Decimal
    years_in_window: Decimal
    current_base: Decimal
    annual: Decimal
    cumulative: Decimal
    yearly: Tuple[YearlyLoyaltyTax, ...] = ()


@dataclass(frozen=True)
class TenureBlock:
    employer_name: str
    start_date: date
    end_date: Optional[date]
    years_of_service: Decimal
    actual_progression: Decimal
    market_expected_progression: Decimal
    loyalty_tax_impact: Decimal


@dataclass(frozen=True)
class EarningsInsight:
    category: str
    title: str
    description: str
    confidence_level: int
    data_points: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CompensationSummary:
    current_base: Decimal
    current_total: Decimal
    career_earnings_total: Decimal
    average_annual_increase: Decimal


@dataclass(frozen=True)
class RealityCheck:
    real_hourly_rate: Decimal
    standard_hourly_rate: Decimal
    overtime_hours_per_week: Decimal
    overtime_percentage: Decimal
    market_rate: Optional[Decimal]
    market_gap: Decimal
    annual_market_gap: Decimal
    years_at_employer: Decimal
    overtime_concern: bool
    market_concern: bool
    loyalty_concern: bool

    @property
    def has_concerns(self) -> bool:
        return self.overtime_concern or self.market_concern or self.loyalty_concern


@dataclass(frozen=True)
class EarningsAnalysis:
    has_data: bool
    current_total_compensation: Decimal = ZERO
    current_effective_hourly_rate: Decimal = ZERO
    current_weekly_hours: Decimal = ZERO
    income_percentile: Optional[Decimal] = None
    loyalty_tax_annual: Optional[Decimal] = None
    loyalty_tax_cumulative: Optional[Decimal] = None
    loyalty_tax: Optional[LoyaltyTax] = None
    years_since_last_change: Optional[Decimal] = None
    earnings_over_time: Tuple[EarningsSnapshot, ...] = ()
    hours_vs_earnings: Tuple[HoursEarningsPoint, ...] = ()
    super_trajectory: Tuple[SuperSnapshot, ...] = ()
    super_projection: Optional[SuperProjection] = None
    weekly_projection: Optional[WeeklyProjection] = None
    compensation_summary: Optional[CompensationSummary] = None
    insights: Tuple[EarningsInsight, ...] = ()
    rejections: Tuple[RecordRejection, ...] = ()

    @classmethod
    def no_data(cls, rejections=()) -> "EarningsAnalysis":
        return cls(has_data=False, rejections=tuple(rejections))
