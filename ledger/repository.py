"""
Repositories hand immutable engine records to the service layer.

The engine never queries the database itself: it receives everything through a LedgerRepository,
so analyses can run against stored rows or against in-memory fixtures alike.
"""
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from django.utils.dateparse import parse_date

from .exceptions import InvalidInput, LedgerDataError, RecordRejection
from .market import MarketReference, default_market_reference, default_curve, parse_curve, role_level_growth
from .models import (
    AllowanceFrequency,
    CompensationRecord,
    MarketBenchmark,
    Position,
    UserProfile,
    WeeklyPayslip,
    YearlyIncomeEntry,
)
from .records import (
    Allowance,
    Bonus,
    CompensationEntry,
    OvertimeDetails,
    PositionRecord,
    ProfileRecord,
    SuperDetails,
    WeeklyEntry,
    YearlySummaryEntry,
)

logger = logging.getLogger(__name__)


class LedgerRepository(Protocol):
    rejections: List[RecordRejection]

    def profile(self) -> ProfileRecord:
        ...

    def positions(self) -> List[PositionRecord]:
        ...

    def compensation_entries(self) -> List[CompensationEntry]:
        ...

    def yearly_summaries(self) -> List[YearlySummaryEntry]:
        ...

    def weekly_entries(self) -> List[WeeklyEntry]:
        ...

    def market_reference(self, industry: str, seniority_level: str) -> Optional[MarketReference]:
        ...


class InMemoryLedgerRepository:
    def __init__(
        self,
        profile: Optional[ProfileRecord] = None,
        positions: Sequence[PositionRecord] = (),
        compensation_entries: Sequence[CompensationEntry] = (),
        yearly_summaries: Sequence[YearlySummaryEntry] = (),
        weekly_entries: Sequence[WeeklyEntry] = (),
        markets: Optional[Dict[Tuple[str, str], MarketReference]] = None,
        use_default_market: bool = True,
    ):
        self._profile = profile or ProfileRecord()
        self._positions = list(positions)
        self._compensation_entries = list(compensation_entries)
        self._yearly_summaries = list(yearly_summaries)
        self._weekly_entries = list(weekly_entries)
        self._markets = dict(markets or {})
        self._use_default_market = use_default_market
        self.rejections: List[RecordRejection] = []

    def profile(self) -> ProfileRecord:
        return self._profile

    def positions(self) -> List[PositionRecord]:
        return list(self._positions)

    def compensation_entries(self) -> List[CompensationEntry]:
        return list(self._compensation_entries)

    def yearly_summaries(self) -> List[YearlySummaryEntry]:
        return list(self._yearly_summaries)

    def weekly_entries(self) -> List[WeeklyEntry]:
        return list(self._weekly_entries)

    def market_reference(self, industry: str, seniority_level: str) -> Optional[MarketReference]:
        for key in ((industry, seniority_level), (industry, "")):
            if key in self._markets:
                return self._markets[key]
        if self._use_default_market:
            return default_market_reference(industry, seniority_level)
        return None


def _to_decimal(value, record_id: str, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidInput(f"'{value}' is not a number.", record_id=record_id, field=field) from exc


def parse_allowances(raw: Iterable, record_id: str) -> Tuple[Allowance, ...]:
    allowances = []
    for idx, item in enumerate(raw or ()):
        if not isinstance(item, dict) or "amount" not in item:
            raise InvalidInput("Allowance must be an object with an amount.", record_id=record_id, field=f"allowances[{idx}]")
        allowances.append(
            Allowance(
                name=str(item.get("name") or ""),
                amount=_to_decimal(item["amount"], record_id, f"allowances[{idx}].amount"),
                frequency=item.get("frequency") or AllowanceFrequency.WEEKLY,
                taxable=bool(item.get("taxable", True)),
            )
        )
    return tuple(allowances)


def parse_bonuses(raw: Iterable, record_id: str) -> Tuple[Bonus, ...]:
    bonuses = []
    for idx, item in enumerate(raw or ()):
        if not isinstance(item, dict) or "amount" not in item:
            raise InvalidInput("Bonus must be an object with an amount.", record_id=record_id, field=f"bonuses[{idx}]")
        awarded = item.get("date_awarded")
        try:
            awarded_on = parse_date(awarded) if awarded else None
        except ValueError as exc:
            raise InvalidInput(f"Invalid date '{awarded}'.", record_id=record_id, field=f"bonuses[{idx}].date_awarded") from exc
        bonuses.append(
            Bonus(
                name=str(item.get("name") or ""),
                amount=_to_decimal(item["amount"], record_id, f"bonuses[{idx}].amount"),
                date_awarded=awarded_on,
                taxable=bool(item.get("taxable", True)),
            )
        )
    return tuple(bonuses)


class DjangoLedgerRepository:
    """Reads one user's rows through the ORM."""

    def __init__(self, user):
        self.user = user
        self.rejections: List[RecordRejection] = []

    def _reject(self, exc: LedgerDataError) -> None:
        logger.warning("Skipping stored record for user %s: %s", self.user.pk, exc)
        self.rejections.append(RecordRejection.from_error(exc))

    def profile(self) -> ProfileRecord:
        profile = UserProfile.objects.filter(user=self.user).first()
        if profile is None:
            return ProfileRecord()
        return ProfileRecord(
            state=profile.state,
            industry=profile.industry,
            qualification=profile.highest_qualification,
            standard_weekly_hours=profile.standard_weekly_hours,
            loyalty_baseline=profile.loyalty_baseline,
            loyalty_window=profile.loyalty_window,
        )

    def positions(self) -> List[PositionRecord]:
        return [
            PositionRecord(
                position_id=position.id,
                employer_name=position.employer_name,
                job_title=position.job_title,
                start_date=position.start_date,
                end_date=position.end_date,
                employment_type=position.employment_type,
                seniority_level=position.seniority_level,
                location=position.location,
                responsibilities=position.core_responsibilities,
                skills=tuple(position.skills or ()),
                achievements=tuple(position.achievements or ()),
            )
            for position in Position.objects.filter(user=self.user).order_by("start_date", "id")
        ]

    def compensation_entries(self) -> List[CompensationEntry]:
        rows = CompensationRecord.objects.filter(position__user=self.user).order_by("effective_date", "created_at", "id")
        entries = []
        for row in rows:
            record_id = f"compensation:{row.id}"
            try:
                entries.append(
                    CompensationEntry(
                        record_id=record_id,
                        position_id=row.position_id,
                        effective_date=row.effective_date,
                        base_rate=row.base_rate,
                        entry_type=row.entry_type,
                        pay_type=row.pay_type,
                        standard_weekly_hours=row.standard_weekly_hours,
                        overtime=OvertimeDetails(
                            frequency=row.overtime_frequency,
                            rate_multiplier=row.overtime_rate_multiplier,
                            average_hours_per_week=row.overtime_hours_per_week,
                            annual_hours=row.overtime_annual_hours,
                        ),
                        allowances=parse_allowances(row.allowances, record_id),
                        bonuses=parse_bonuses(row.bonuses, record_id),
                        super_contributions=SuperDetails(
                            contribution_rate=row.effective_super_rate,
                            additional_contributions=row.super_additional_contributions,
                            salary_sacrifice=row.super_salary_sacrifice,
                        ),
                        tax_withheld=row.tax_withheld,
                        payslip_frequency=row.payslip_frequency or None,
                    )
                )
            except LedgerDataError as exc:
                self._reject(exc)
        return entries

    def yearly_summaries(self) -> List[YearlySummaryEntry]:
        rows = YearlyIncomeEntry.objects.filter(position__user=self.user).order_by("financial_year", "created_at", "id")
        entries = []
        for row in rows:
            record_id = f"yearly:{row.id}"
            try:
                entries.append(
                    YearlySummaryEntry(
                        record_id=record_id,
                        position_id=row.position_id,
                        financial_year=row.financial_year,
                        gross_income=row.gross_income,
                        tax_withheld=row.tax_withheld,
                        reportable_super=row.reportable_super,
                        reportable_fringe_benefits=row.reportable_fringe_benefits,
                        allowances=parse_allowances(row.allowances, record_id),
                        source=row.source,
                    )
                )
            except LedgerDataError as exc:
                self._reject(exc)
        return entries

    def weekly_entries(self) -> List[WeeklyEntry]:
        """Newest week first."""
        rows = WeeklyPayslip.objects.filter(position__user=self.user).order_by("-week_ending", "-created_at", "-id")
        entries = []
        for row in rows:
            record_id = f"weekly:{row.id}"
            try:
                entries.append(
                    WeeklyEntry(
                        record_id=record_id,
                        position_id=row.position_id,
                        week_ending=row.week_ending,
                        gross_pay=row.gross_pay,
                        tax_withheld=row.tax_withheld,
                        net_pay=row.net_pay,
                        hours_ordinary=row.hours_ordinary,
                        hours_overtime=row.hours_overtime,
                        overtime_rate_multiplier=row.overtime_rate_multiplier,
                        super_contributed=row.super_contributed,
                        allowances=parse_allowances(row.allowances, record_id),
                        notes=row.notes,
                    )
                )
            except LedgerDataError as exc:
                self._reject(exc)
        return entries

    def market_reference(self, industry: str, seniority_level: str) -> Optional[MarketReference]:
        benchmarks = MarketBenchmark.objects.filter(industry__iexact=industry or "")
        benchmark = benchmarks.filter(seniority_level=seniority_level).first() or benchmarks.filter(seniority_level="").first()
        if benchmark is None:
            return default_market_reference(industry, seniority_level)
        try:
            curve = parse_curve(benchmark.percentile_curve)
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            logger.warning("Ignoring invalid percentile curve for %s: %s", benchmark, exc)
            curve = ()
        return MarketReference(
            industry=benchmark.industry,
            seniority_level=benchmark.seniority_level or seniority_level,
            median_income=benchmark.median_income,
            percentile_curve=curve or default_curve(benchmark.median_income),
            industry_average_growth=benchmark.industry_average_growth,
            role_level_growth=benchmark.role_level_growth if benchmark.seniority_level else role_level_growth(seniority_level),
            cpi_adjusted_growth=benchmark.cpi_adjusted_growth,
        )
