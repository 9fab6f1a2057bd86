"""Payment statistics schemas."""

from typing import List, Optional

from pydantic import Field

from tapbridge.core.stats_logic import DailyStat, StatsSummary
from tapbridge.schemas.response import CamelModel


class DailyStatOut(CamelModel):
    """One UTC calendar day of charges."""

    date: str = Field(..., description="ISO date (YYYY-MM-DD), UTC")
    count: int
    total_amount: int = Field(..., description="Sum of charge amounts incl. tips, minor units")
    successful: int
    failed: int
    total_tips: int

    @classmethod
    def from_stat(cls, stat: DailyStat) -> "DailyStatOut":
        """Build from an aggregated bucket."""
        return cls(
            date=stat.date,
            count=stat.count,
            total_amount=stat.total_amount,
            successful=stat.successful,
            failed=stat.failed,
            total_tips=stat.total_tips,
        )


class SummaryOut(CamelModel):
    """Totals over a range of days."""

    total_payments: int
    total_amount: int
    average_amount: int
    total_tips: int

    @classmethod
    def from_summary(cls, summary: StatsSummary) -> "SummaryOut":
        """Build from a computed summary."""
        return cls(
            total_payments=summary.total_payments,
            total_amount=summary.total_amount,
            average_amount=summary.average_amount,
            total_tips=summary.total_tips,
        )


class SingleDayStats(CamelModel):
    """Statistics for the selected day."""

    stats: List[DailyStatOut]
    summary: SummaryOut


class TrendStats(CamelModel):
    """Statistics for the trailing window ending on the selected day."""

    days: int
    stats: List[DailyStatOut]
    summary: SummaryOut


class PaymentStats(CamelModel):
    """Statistics response."""

    single_day: SingleDayStats
    trend_data: Optional[TrendStats] = None
