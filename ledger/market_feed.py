from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

import requests

from .market import parse_curve
from .models import SeniorityLevel

REQUEST_TIMEOUT = 20


class MarketFetchError(Exception):
    """Raised when a market benchmark feed cannot be fetched or parsed."""


@dataclass
class BenchmarkRecord:
    industry: str
    seniority_level: str
    median_income: Decimal
    percentile_curve: Tuple[Tuple[Decimal, Decimal], ...]
    industry_average_growth: Optional[Decimal] = None
    role_level_growth: Optional[Decimal] = None
    cpi_adjusted_growth: Optional[Decimal] = None
    metadata: dict = field(default_factory=dict)


def fetch_market_benchmarks(url: str) -> List[BenchmarkRecord]:
    if not url:
        raise MarketFetchError("No market data URL configured.")
    try:
        response = requests.get(url, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise MarketFetchError("Failed to reach market data service.") from exc

    try:
        payload = response.json()
    except ValueError as exc:
        raise MarketFetchError("Market data service returned invalid JSON.") from exc

    rows = _normalize_payload(payload)
    if not rows:
        raise MarketFetchError("Market data service returned no benchmarks.")

    records: List[BenchmarkRecord] = []
    for row in rows:
        industry = (row.get("industry") or "").strip()
        if not industry:
            # Rows without an industry cannot be matched to a profile.
            continue
        seniority = row.get("seniority_level") or row.get("seniority") or ""
        if seniority and seniority not in SeniorityLevel.values:
            raise MarketFetchError(f"Unknown seniority level '{seniority}' for {industry}.")
        median_income = _decimal(row, "median_income", required=True)
        try:
            curve = parse_curve(row.get("percentile_curve") or row.get("percentiles") or ())
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            raise MarketFetchError(f"Invalid percentile curve for {industry}.") from exc

        records.append(
            BenchmarkRecord(
                industry=industry,
                seniority_level=seniority,
                median_income=median_income,
                percentile_curve=curve,
                industry_average_growth=_decimal(row, "industry_average_growth"),
                role_level_growth=_decimal(row, "role_level_growth"),
                cpi_adjusted_growth=_decimal(row, "cpi_adjusted_growth"),
                metadata={
                    "source": row.get("source"),
                    "published": row.get("published"),
                    "region": row.get("region"),
                },
            )
        )

    records.sort(key=lambda r: (r.industry.lower(), r.seniority_level))
    return records


def _decimal(row: dict, key: str, required: bool = False) -> Optional[Decimal]:
    raw = row.get(key)
    if raw is None or str(raw).strip() == "":
        if required:
            raise MarketFetchError(f"Benchmark for {row.get('industry')} is missing '{key}'.")
        return None
    try:
        return Decimal(str(raw).strip())
    except InvalidOperation as exc:
        raise MarketFetchError(f"Invalid value for '{key}': '{raw}'.") from exc


def _normalize_payload(payload) -> List[dict]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("benchmarks", "data", "results", "records"):
            value = payload.get(key)
            if isinstance(value, Iterable) and not isinstance(value, (str, bytes, dict)):
                return list(value)
    raise MarketFetchError("Unsupported payload structure from market data API.")
