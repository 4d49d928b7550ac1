import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from .market_feed import MarketFetchError, fetch_market_benchmarks
from .models import MarketBenchmark


@dataclass
class MarketRefreshResult:
    url: str
    created_count: int
    updated_count: int
    record_count: int
    fetch_time: Optional[datetime]


logger = logging.getLogger(__name__)


def refresh_market_benchmarks(url: Optional[str] = None) -> MarketRefreshResult:
    """
    Downloads benchmarks and upserts them by (industry, seniority level). Returns counts so the caller can log/output progress.
    """
    url = url or settings.CAREERFLOW_MARKET_DATA_URL
    records = fetch_market_benchmarks(url)
    fetch_time = timezone.now()
    created_count = 0
    updated_count = 0

    if records:
        with transaction.atomic():
            for record in records:
                defaults = {
                    "median_income": record.median_income,
                    "percentile_curve": [[str(pct), str(income)] for pct, income in record.percentile_curve],
                    "metadata": record.metadata,
                    "fetched_at": fetch_time,
                }
                for growth_field in ("industry_average_growth", "role_level_growth", "cpi_adjusted_growth"):
                    value = getattr(record, growth_field)
                    if value is not None:
                        defaults[growth_field] = value
                _, created_flag = MarketBenchmark.objects.update_or_create(
                    industry=record.industry,
                    seniority_level=record.seniority_level,
                    defaults=defaults,
                )
                if created_flag:
                    created_count += 1
                else:
                    updated_count += 1
    return MarketRefreshResult(
        url=url,
        created_count=created_count,
        updated_count=updated_count,
        record_count=len(records),
        fetch_time=fetch_time if records else None,
    )


def market_data_is_stale(max_age_days: Optional[int] = None, now: Optional[datetime] = None) -> bool:
    """
    True when no benchmark has been stored or the newest one is older than max_age_days.
    """
    max_age_days = settings.CAREERFLOW_MARKET_MAX_AGE_DAYS if max_age_days is None else max_age_days
    now = now or timezone.now()
    latest = MarketBenchmark.objects.aggregate(latest=Max("fetched_at"))["latest"]
    return latest is None or latest < now - timedelta(days=max_age_days)


def ensure_recent_market_data(logger_instance=None) -> bool:
    """
    Refreshes benchmarks when stored data is missing or stale. Returns True when a refresh stored rows.
    """
    logger_ref = logger_instance or logger
    if not settings.CAREERFLOW_MARKET_DATA_URL:
        logger_ref.debug("Automatic market refresh skipped: no market data URL configured")
        return False
    if not market_data_is_stale():
        logger_ref.debug("Automatic market refresh found benchmarks up to date")
        return False
    try:
        result = refresh_market_benchmarks()
    except MarketFetchError as exc:
        logger_ref.warning("Automatic market refresh failed: %s", exc)
        return False
    if not result.record_count:
        logger_ref.info("Automatic market refresh returned no rows from %s", result.url)
        return False
    logger_ref.info(
        "Automatic market refresh stored %s benchmarks (%s new, %s updated)",
        result.record_count,
        result.created_count,
        result.updated_count,
    )
    return True
