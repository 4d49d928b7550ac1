from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from ledger.market_feed import MarketFetchError
from ledger.market_sync import market_data_is_stale, refresh_market_benchmarks


class Command(BaseCommand):
    help = "Download market salary benchmarks and store them for percentile and loyalty tax lookups"

    def add_arguments(self, parser):
        parser.add_argument("--url", help="Benchmark feed URL (defaults to CAREERFLOW_MARKET_DATA_URL)")
        parser.add_argument("--force", action="store_true", help="Refresh even when stored benchmarks are recent")

    def handle(self, *args, **options):
        url = options.get("url") or settings.CAREERFLOW_MARKET_DATA_URL
        if not url:
            raise CommandError("No benchmark URL given. Pass --url or set CAREERFLOW_MARKET_DATA_URL.")

        if not options.get("force") and not market_data_is_stale():
            self.stdout.write(self.style.SUCCESS("Market benchmarks are up to date. Use --force to refresh anyway."))
            return

        try:
            result = refresh_market_benchmarks(url)
        except MarketFetchError as exc:
            raise CommandError(f"Market benchmark refresh failed: {exc}") from exc

        self.stdout.write(
            self.style.SUCCESS(
                f"Stored {result.record_count} benchmarks from {result.url} "
                f"({result.created_count} new, {result.updated_count} updated)."
            )
        )
