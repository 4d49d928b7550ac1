"""
Australian financial year helpers. A financial year runs from 1 July to 30 June and is labelled
with both calendar years, e.g. "2024-2025".
"""
from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Iterator, Tuple

from .exceptions import InvalidInput

DAYS_PER_YEAR = Decimal("365.25")

_FY_PATTERN = re.compile(r"^(?:FY)?(\d{4})(?:-(\d{2}|\d{4}))?$")

# Super guarantee rate (percent) by the calendar year a financial year starts in.
SUPER_GUARANTEE_RATES: Tuple[Tuple[int, Decimal], ...] = (
    (2025, Decimal("12.0")),
    (2024, Decimal("11.5")),
    (2023, Decimal("11.0")),
    (2022, Decimal("10.5")),
    (2021, Decimal("10.0")),
)
DEFAULT_SUPER_GUARANTEE_RATE = Decimal("9.5")


def financial_year_start_year(value: date) -> int:
    return value.year if value.month >= 7 else value.year - 1


def financial_year_label(start_year: int) -> str:
    return f"{start_year}-{start_year + 1}"


def financial_year_for(value: date) -> str:
    return financial_year_label(financial_year_start_year(value))


def parse_financial_year(label: str) -> int:
    """
    Returns the start year of a financial year label. Accepts "2024-2025", "2024-25", "FY2024-25" and "FY2024".
    """
    match = _FY_PATTERN.match((label or "").strip().upper())
    if not match:
        raise InvalidInput(f"Invalid financial year '{label}'.", field="financial_year")
    start_year = int(match.group(1))
    suffix = match.group(2)
    if suffix:
        expected = str(start_year + 1)
        if suffix != expected and suffix != expected[-2:]:
            raise InvalidInput(f"Financial year '{label}' must span consecutive years.", field="financial_year")
    return start_year


def financial_year_bounds(label: str) -> Tuple[date, date]:
    start_year = parse_financial_year(label)
    return date(start_year, 7, 1), date(start_year + 1, 6, 30)


def super_guarantee_rate(start_year: int) -> Decimal:
    for threshold, rate in SUPER_GUARANTEE_RATES:
        if start_year >= threshold:
            return rate
    return DEFAULT_SUPER_GUARANTEE_RATE


def month_start(value: date) -> date:
    return date(value.year, value.month, 1)


def next_month(value: date) -> date:
    if value.month == 12:
        return date(value.year + 1, 1, 1)
    return date(value.year, value.month + 1, 1)


def iter_months(start: date, end: date) -> Iterator[date]:
    current = month_start(start)
    while current <= end:
        yield current
        current = next_month(current)


def years_between(start: date, end: date) -> Decimal:
    if end <= start:
        return Decimal("0")
    return Decimal((end - start).days) / DAYS_PER_YEAR


def add_years(value: date, years: int) -> date:
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        # 29 February
        return value.replace(year=value.year + years, day=28)
