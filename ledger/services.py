from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, is_dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from django.conf import settings

from .aggregation import aggregate_timeline, entry_in_effect, project_from_weekly
from .analysis import AnalysisConfig, analyze, loyalty_tax, loyalty_window_start, tenure_blocks
from .exceptions import InsufficientData, LedgerDataError, RecordRejection
from .market import MarketReference, role_level_growth
from .normalization import (
    OvertimeCalculator,
    bounded_by_position,
    normalize,
    overtime_annual,
    overtime_annual_hourly_derived,
    validate_position,
    validate_weekly_entry,
)
from .reality import current_position, reality_check, years_at_employer
from .records import (
    EarningsAnalysis,
    EarningsSnapshot,
    NormalizedAnnual,
    PositionRecord,
    ProfileRecord,
    RealityCheck,
    WeeklyEntry,
    WeeklyProjection,
)
from .repository import LedgerRepository

logger = logging.getLogger(__name__)

OVERTIME_FORMULAS: Dict[str, OvertimeCalculator] = {
    "legacy": overtime_annual,
    "hourly-derived": overtime_annual_hourly_derived,
}


@dataclass
class PreparedLedger:
    profile: ProfileRecord
    positions: List[PositionRecord]
    normalized: List[NormalizedAnnual]
    weekly_entries: List[WeeklyEntry]
    timeline: List[EarningsSnapshot]
    rejections: List[RecordRejection] = field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return bool(self.normalized or self.weekly_entries)


def analysis_config_from_settings() -> AnalysisConfig:
    return AnalysisConfig(
        concessional_cap=Decimal(str(settings.CAREERFLOW_CONCESSIONAL_CAP)),
        assumed_return=Decimal(str(settings.CAREERFLOW_SUPER_RETURN)),
        projection_years=int(settings.CAREERFLOW_SUPER_PROJECTION_YEARS),
        loyalty_materiality=Decimal(str(settings.CAREERFLOW_LOYALTY_MATERIALITY)),
    )


def overtime_calculator_from_settings() -> OvertimeCalculator:
    formula = getattr(settings, "CAREERFLOW_OVERTIME_FORMULA", "legacy")
    try:
        return OVERTIME_FORMULAS[formula]
    except KeyError:
        logger.warning("Unknown overtime formula %r, falling back to the legacy formula", formula)
        return overtime_annual


def prepare_ledger(repository: LedgerRepository, overtime_calculator: Optional[OvertimeCalculator] = None) -> PreparedLedger:
    """
    Pulls every record from the repository and normalizes it.

    Records that fail validation are left out and reported as rejections; they never abort the run.
    """
    calculator = overtime_calculator or overtime_calculator_from_settings()
    profile = repository.profile()
    rejections: List[RecordRejection] = []

    def reject(exc: LedgerDataError) -> None:
        logger.warning("Rejected record: %s", exc)
        rejections.append(RecordRejection.from_error(exc))

    positions: List[PositionRecord] = []
    for position in repository.positions():
        try:
            validate_position(position)
        except LedgerDataError as exc:
            reject(exc)
            continue
        positions.append(position)
    position_ends = {position.position_id: position.end_date for position in positions}

    normalized: List[NormalizedAnnual] = []
    # Summaries first, so a finer grained entry on the same date supersedes them.
    for entry in [*repository.yearly_summaries(), *repository.compensation_entries()]:
        try:
            result = normalize(entry, calculator)
        except LedgerDataError as exc:
            reject(exc)
            continue
        normalized.append(bounded_by_position(result, position_ends.get(entry.position_id)))

    weekly_entries: List[WeeklyEntry] = []
    for weekly in repository.weekly_entries():
        try:
            validate_weekly_entry(weekly)
        except LedgerDataError as exc:
            reject(exc)
            continue
        weekly_entries.append(weekly)

    return PreparedLedger(
        profile=profile,
        positions=positions,
        normalized=normalized,
        weekly_entries=weekly_entries,
        timeline=aggregate_timeline(normalized, profile.standard_weekly_hours),
        rejections=list(repository.rejections) + rejections,
    )


def _market_for(repository: LedgerRepository, ledger: PreparedLedger, as_of: date) -> Optional[MarketReference]:
    position = current_position(ledger.positions, as_of)
    if position is None and ledger.positions:
        position = ledger.positions[-1]
    seniority = position.seniority_level if position else ""
    return repository.market_reference(ledger.profile.industry, seniority)


def build_analysis(
    repository: LedgerRepository,
    as_of: date,
    config: Optional[AnalysisConfig] = None,
    overtime_calculator: Optional[OvertimeCalculator] = None,
) -> EarningsAnalysis:
    ledger = prepare_ledger(repository, overtime_calculator)
    if not ledger.has_data:
        return EarningsAnalysis.no_data(ledger.rejections)

    position = current_position(ledger.positions, as_of)
    analysis = analyze(
        ledger.timeline,
        ledger.profile,
        _market_for(repository, ledger, as_of),
        as_of,
        normalized=ledger.normalized,
        weekly_entries=ledger.weekly_entries,
        tenure_start=position.start_date if position else None,
        config=config or analysis_config_from_settings(),
    )
    return replace(analysis, rejections=tuple(ledger.rejections))


def weekly_projection_for(repository: LedgerRepository, position_id: Optional[int] = None) -> Optional[WeeklyProjection]:
    ledger = prepare_ledger(repository)
    weekly = [entry for entry in ledger.weekly_entries if position_id is None or entry.position_id == position_id]
    try:
        return project_from_weekly(weekly)
    except InsufficientData:
        return None


def reality_check_for(
    repository: LedgerRepository,
    as_of: date,
    actual_hours_per_week: Optional[Decimal] = None,
) -> Optional[RealityCheck]:
    """
    Reality check for the income in effect on as_of. Without explicit hours, payslip averages are used,
    then the contracted hours plus overtime of the current entry.
    """
    ledger = prepare_ledger(repository)
    weekly = [entry for entry in ledger.weekly_entries if entry.week_ending <= as_of]
    current = entry_in_effect(ledger.normalized, as_of)
    projection = project_from_weekly(weekly) if weekly else None
    if current is None and projection is None:
        return None

    standard_hours = ledger.profile.standard_weekly_hours
    if current is not None and current.standard_weekly_hours is not None:
        standard_hours = current.standard_weekly_hours

    if current is not None:
        annual_gross = current.actual_annual
    else:
        annual_gross = projection.projected_annual_gross

    if actual_hours_per_week is None:
        if projection is not None:
            actual_hours_per_week = projection.average_hours_per_week
        else:
            actual_hours_per_week = standard_hours + current.overtime_hours_per_year / Decimal("52")

    market = _market_for(repository, ledger, as_of)
    return reality_check(
        annual_gross,
        actual_hours_per_week,
        standard_hours,
        market.median_hourly_rate if market else None,
        years_at_employer(ledger.positions, as_of),
    )


def loyalty_breakdown_for(repository: LedgerRepository, as_of: date, config: Optional[AnalysisConfig] = None) -> dict:
    ledger = prepare_ledger(repository)
    config = config or analysis_config_from_settings()
    market = _market_for(repository, ledger, as_of)
    baseline = config.loyalty_baseline or ledger.profile.loyalty_baseline
    window = config.loyalty_window or ledger.profile.loyalty_window
    history = [snapshot for snapshot in ledger.timeline if snapshot.date <= as_of]

    position = current_position(ledger.positions, as_of)
    window_start = loyalty_window_start(window, history, position.start_date if position else None, as_of)
    result = None
    reason = None
    if market is None:
        reason = "no-market-reference"
    elif window_start is None:
        reason = "no-compensation-data"
    else:
        try:
            result = loyalty_tax(history, market.growth_for(baseline), window_start, as_of, baseline=baseline)
        except InsufficientData as exc:
            reason = exc.message

    return {
        "loyaltyTax": to_payload(result) if result else None,
        "reason": reason,
        "window": window,
        "tenureBlocks": to_payload(tenure_blocks(ledger.positions, ledger.timeline, role_level_growth, as_of)),
        "rejections": to_payload(ledger.rejections),
    }


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_payload(value):
    """Plain JSON data: camelCase keys, floats for decimals and ISO dates."""
    if is_dataclass(value) and not isinstance(value, type):
        return {_camel(f.name): to_payload(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [to_payload(item) for item in value]
    if isinstance(value, dict):
        return {key: to_payload(item) for key, item in value.items()}
    if isinstance(value, str):
        # TextChoices members serialize as their stored value
        return str(value)
    return value


def analysis_payload(analysis: EarningsAnalysis) -> dict:
    return to_payload(analysis)


def reality_check_payload(check: RealityCheck) -> dict:
    payload = to_payload(check)
    payload["hasConcerns"] = check.has_concerns
    return payload
