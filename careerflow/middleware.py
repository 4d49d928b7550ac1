import logging

from django.utils import timezone

from ledger.market_sync import ensure_recent_market_data

logger = logging.getLogger(__name__)


class AutomatedMarketSyncMiddleware:
    """Runs the market benchmark freshness check once per process each day."""

    def __init__(self, get_response):
        self.get_response = get_response
        self._last_check_date = None

    def __call__(self, request):
        self._maybe_run_automatic_sync()
        return self.get_response(request)

    def _maybe_run_automatic_sync(self):
        today = timezone.now().date()
        if self._last_check_date == today:
            return
        try:
            ensure_recent_market_data(logger)
        except Exception:
            logger.exception("Automated market benchmark refresh failed")
        finally:
            self._last_check_date = today
