"""Payment statistics for a connected account.

Fetches every charge in a UTC day range, page by page, and hands them to the pure
aggregation in ``stats_logic``.
"""

import re
from datetime import date, timedelta
from typing import List, Optional, Tuple

from tapbridge import schemas
from tapbridge.core.config import settings
from tapbridge.core.datetime_utils import SECONDS_PER_DAY, to_unix_seconds, utc_midnight, utc_now
from tapbridge.core.exceptions import InvalidArgumentError
from tapbridge.core.logging import ContextualLogger, logger
from tapbridge.core.stats_logic import ChargeRecord, aggregate
from tapbridge.integrations.stripe_client import StripeClient

DEFAULT_TREND_DAYS = 7
ISO_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_stats_date(value: Optional[str]) -> date:
    """Parse a ``YYYY-MM-DD`` date; today (UTC) when absent.

    Only the extended calendar form is accepted, not the basic or week forms that
    ``date.fromisoformat`` also understands.
    """
    if not value:
        return utc_now().date()
    message = "Invalid date format. Use ISO date format (e.g., 2025-12-15)"
    if not ISO_DATE_PATTERN.fullmatch(value):
        raise InvalidArgumentError(message)
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidArgumentError(message) from e


def parse_trend_days(value: Optional[str]) -> int:
    """Parse the trend window length: unparseable means the default, never below one day."""
    try:
        days = int(value) if value is not None else DEFAULT_TREND_DAYS
    except (TypeError, ValueError):
        days = DEFAULT_TREND_DAYS
    if days == 0:
        days = DEFAULT_TREND_DAYS
    return max(1, days)


def parse_include_trend(value: Optional[str]) -> bool:
    """Only the literal ``true`` enables the trend window; it is on when absent."""
    if value is None:
        return True
    return value.strip().lower() == "true"


def day_range(end: date, days: int = 1) -> Tuple[date, date, int, int]:
    """Return the first and last day plus the inclusive unix-second bounds of a window.

    The window ends on ``end`` and spans ``days`` calendar days; the upper bound is the
    last second of ``end``.
    """
    start = end - timedelta(days=days - 1)
    gte = to_unix_seconds(utc_midnight(start))
    lte = to_unix_seconds(utc_midnight(end)) + SECONDS_PER_DAY - 1
    return start, end, gte, lte


class PaymentStatsService:
    """Service computing per-day payment statistics."""

    def __init__(self, stripe_client: StripeClient, page_size: Optional[int] = None):
        """Initialize the service with the shared Stripe client."""
        self.stripe = stripe_client
        self.page_size = page_size or settings.CHARGE_PAGE_SIZE

    async def fetch_all_charges(
        self, account_id: str, gte: int, lte: int, log: ContextualLogger = logger
    ) -> List[ChargeRecord]:
        """Return every charge created within [gte, lte], following the pagination cursor.

        A failing page aborts the whole fetch; charges from earlier pages are discarded.
        """
        charges: List[ChargeRecord] = []
        starting_after: Optional[str] = None
        pages = 0

        while True:
            page = await self.stripe.list_charges(
                account_id,
                gte=gte,
                lte=lte,
                limit=self.page_size,
                starting_after=starting_after,
            )
            pages += 1
            charges.extend(ChargeRecord.from_stripe(charge) for charge in page.items)

            if not page.has_more or not page.items:
                break
            starting_after = charges[-1].id

        log.debug(f"Fetched {len(charges)} charges in {pages} page(s) for [{gte}, {lte}]")
        return charges

    async def _window(
        self, account_id: str, end: date, days: int, log: ContextualLogger
    ) -> Tuple[List[schemas.DailyStatOut], schemas.SummaryOut]:
        start, end, gte, lte = day_range(end, days)
        charges = await self.fetch_all_charges(account_id, gte, lte, log)
        stats, summary = aggregate(charges, start, end)
        buckets = [schemas.DailyStatOut.from_stat(stat) for stat in stats]
        return buckets, schemas.SummaryOut.from_summary(summary)

    async def get_payment_stats(
        self,
        account_id: str,
        date_param: Optional[str] = None,
        include_trend: Optional[str] = None,
        days: Optional[str] = None,
        log: ContextualLogger = logger,
    ) -> schemas.PaymentStats:
        """Statistics for one UTC day, optionally with a trailing trend window.

        The single day and the trend window are fetched independently, even where
        they overlap.

        Args:
        ----
            account_id (str): The connected account.
            date_param (Optional[str]): ``YYYY-MM-DD``; today (UTC) when absent.
            include_trend (Optional[str]): ``"true"`` to add the trend window.
            days (Optional[str]): Trend window length in days.
            log (ContextualLogger): Request-scoped logger.

        Returns:
        -------
            schemas.PaymentStats: Single-day buckets and summary, plus the trend window.

        """
        selected = parse_stats_date(date_param)
        trend_days = parse_trend_days(days)
        with_trend = parse_include_trend(include_trend)

        log = log.with_context(stripe_account_id=account_id)
        log.info(
            f"Computing payment stats for {selected.isoformat()}"
            + (f" with a {trend_days}-day trend" if with_trend else "")
        )

        single_stats, single_summary = await self._window(account_id, selected, 1, log)

        trend_data = None
        if with_trend:
            trend_stats, trend_summary = await self._window(account_id, selected, trend_days, log)
            trend_data = schemas.TrendStats(
                days=trend_days, stats=trend_stats, summary=trend_summary
            )

        return schemas.PaymentStats(
            single_day=schemas.SingleDayStats(stats=single_stats, summary=single_summary),
            trend_data=trend_data,
        )
