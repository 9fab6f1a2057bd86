"""Unit tests for the payment statistics aggregation."""

from datetime import date, datetime, timezone

import pytest
import stripe

from tapbridge.core.stats_logic import (
    ChargeRecord,
    DailyStat,
    aggregate,
    calculate_summary,
    fill_missing_days,
    group_charges_by_date,
    resolve_tip_amount,
    round_half_up,
)
from tests.fixtures.common import stripe_object


def ts(year, month, day, hour=12, minute=0, second=0):
    """Unix seconds of a UTC wall-clock time."""
    return int(datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc).timestamp())


def charge(charge_id, created, amount, status="succeeded", paid=True, metadata=None, **extra):
    """A Stripe-shaped charge as a plain dict."""
    return {
        "id": charge_id,
        "created": created,
        "amount": amount,
        "currency": "usd",
        "status": status,
        "paid": paid,
        "amount_refunded": 0,
        "metadata": metadata or {},
        **extra,
    }


@pytest.fixture
def december_charges():
    """One success on the 13th, nothing on the 14th, a success and a failure on the 15th."""
    return [
        ChargeRecord.from_stripe(charge("ch_1", ts(2025, 12, 13, 9), 1000)),
        ChargeRecord.from_stripe(charge("ch_2", ts(2025, 12, 15, 8), 500)),
        ChargeRecord.from_stripe(
            charge("ch_3", ts(2025, 12, 15, 17), 700, status="failed", paid=False)
        ),
    ]


class TestTipResolution:
    """Metadata tip wins over the platform-reported tip."""

    def test_metadata_wins_over_platform_tip(self):
        tip = resolve_tip_amount({"tipAmount": "150"}, {"tip": {"amount": 300}})
        assert tip == 150

    def test_platform_tip_used_without_metadata(self):
        assert resolve_tip_amount({}, {"tip": {"amount": 300}}) == 300

    def test_unparseable_metadata_falls_back_to_platform(self):
        assert resolve_tip_amount({"tipAmount": "abc"}, {"tip": {"amount": 120}}) == 120
        assert resolve_tip_amount({"tipAmount": "-5"}, {"tip": {"amount": 120}}) == 120

    def test_no_tip_anywhere(self):
        assert resolve_tip_amount({}, None) == 0
        assert resolve_tip_amount(None, {"tip": None}) == 0

    def test_zero_metadata_tip_is_respected(self):
        assert resolve_tip_amount({"tipAmount": "0"}, {"tip": {"amount": 300}}) == 0


class TestChargeRecord:
    """Derived fields of a single charge."""

    def test_base_amount_excludes_tip(self):
        record = ChargeRecord.from_stripe(
            charge("ch_1", ts(2025, 12, 15), 1200, metadata={"tipAmount": "200"})
        )
        assert record.tip_amount == 200
        assert record.base_amount == 1000

    def test_success_requires_paid_and_succeeded(self):
        assert ChargeRecord.from_stripe(charge("a", 0, 1)).is_successful
        assert not ChargeRecord.from_stripe(charge("b", 0, 1, paid=False)).is_successful
        assert not ChargeRecord.from_stripe(charge("c", 0, 1, status="pending")).is_successful

    def test_day_uses_utc_boundaries(self):
        last_second = ChargeRecord.from_stripe(charge("a", ts(2025, 12, 14, 23, 59, 59), 1))
        first_second = ChargeRecord.from_stripe(charge("b", ts(2025, 12, 15, 0, 0, 0), 1))
        assert last_second.day == date(2025, 12, 14)
        assert first_second.day == date(2025, 12, 15)

    def test_sdk_charge(self):
        record = ChargeRecord.from_stripe(
            stripe_object(
                stripe.Charge,
                {
                    "id": "ch_1",
                    "object": "charge",
                    "created": ts(2025, 12, 15),
                    "amount": 1150,
                    "currency": "usd",
                    "status": "succeeded",
                    "paid": True,
                    "amount_refunded": 0,
                    "metadata": {"tipAmount": "150", "userId": "u_1"},
                },
            )
        )
        assert record.tip_amount == 150
        assert record.base_amount == 1000
        assert record.metadata == {"tipAmount": "150", "userId": "u_1"}
        assert record.is_successful

    def test_sdk_charge_with_platform_tip(self):
        record = ChargeRecord.from_stripe(
            stripe_object(
                stripe.Charge,
                {
                    "id": "ch_2",
                    "object": "charge",
                    "created": ts(2025, 12, 15),
                    "amount": 1100,
                    "metadata": {},
                    "amount_details": {"tip": {"amount": 100}},
                },
            )
        )
        assert record.tip_amount == 100


def test_group_charges_by_date(december_charges):
    """Charges land in the bucket of their UTC creation day."""
    grouped = group_charges_by_date(december_charges)

    assert set(grouped) == {"2025-12-13", "2025-12-15"}
    assert grouped["2025-12-15"].count == 2
    assert grouped["2025-12-15"].successful == 1
    assert grouped["2025-12-15"].failed == 1


def test_fill_missing_days_is_total_and_ascending():
    """Every day of the range appears exactly once, in order, gaps zero-filled."""
    sparse = {"2025-12-30": DailyStat(date="2025-12-30", count=2, total_amount=900)}
    filled = fill_missing_days(sparse, date(2025, 12, 28), date(2026, 1, 2))

    assert [stat.date for stat in filled] == [
        "2025-12-28",
        "2025-12-29",
        "2025-12-30",
        "2025-12-31",
        "2026-01-01",
        "2026-01-02",
    ]
    assert filled[2].count == 2
    zero = filled[0]
    assert (zero.count, zero.total_amount, zero.successful, zero.failed, zero.total_tips) == (
        0,
        0,
        0,
        0,
        0,
    )


def test_fill_missing_days_ignores_buckets_outside_range():
    """Buckets outside the requested range are dropped."""
    sparse = {"2025-11-01": DailyStat(date="2025-11-01", count=5)}
    filled = fill_missing_days(sparse, date(2025, 12, 1), date(2025, 12, 1))
    assert len(filled) == 1
    assert filled[0].count == 0


def test_trend_scenario(december_charges):
    """Three-day window ending 2025-12-15."""
    stats, summary = aggregate(december_charges, date(2025, 12, 13), date(2025, 12, 15))

    assert [stat.date for stat in stats] == ["2025-12-13", "2025-12-14", "2025-12-15"]
    assert [stat.count for stat in stats] == [1, 0, 2]
    assert [stat.total_amount for stat in stats] == [1000, 0, 1200]
    assert [stat.successful for stat in stats] == [1, 0, 1]
    assert [stat.failed for stat in stats] == [0, 0, 1]
    assert summary.total_payments == 3
    assert summary.total_amount == 2200
    assert summary.average_amount == 733


def test_summary_totals_match_buckets(december_charges):
    """The summary is derived from the buckets and agrees with them."""
    stats, summary = aggregate(december_charges, date(2025, 12, 10), date(2025, 12, 16))

    assert summary.total_payments == sum(stat.count for stat in stats) == len(december_charges)
    assert summary.total_amount == sum(stat.total_amount for stat in stats)
    assert abs(summary.average_amount * summary.total_payments - summary.total_amount) <= (
        summary.total_payments
    )


def test_summary_of_empty_range():
    """No payments means a zero average instead of a division error."""
    summary = calculate_summary([DailyStat(date="2025-12-15")])
    assert summary.total_payments == 0
    assert summary.average_amount == 0


def test_tips_are_summed():
    """Tips are totalled per day and overall, and stay inside total_amount."""
    charges = [
        ChargeRecord.from_stripe(
            charge("a", ts(2025, 12, 15), 1200, metadata={"tipAmount": "200"})
        ),
        ChargeRecord.from_stripe(
            charge("b", ts(2025, 12, 15), 1100, amount_details={"tip": {"amount": 100}})
        ),
    ]
    stats, summary = aggregate(charges, date(2025, 12, 15), date(2025, 12, 15))

    assert stats[0].total_tips == 300
    assert stats[0].total_amount == 2300
    assert summary.total_tips == 300


def test_aggregation_is_idempotent(december_charges):
    """Aggregating the same charges twice gives identical output."""
    first = aggregate(december_charges, date(2025, 12, 13), date(2025, 12, 15))
    second = aggregate(december_charges, date(2025, 12, 13), date(2025, 12, 15))
    assert first == second


@pytest.mark.parametrize(
    "numerator, denominator, expected",
    [(2200, 3, 733), (5, 2, 3), (7, 2, 4), (1, 3, 0), (0, 4, 0)],
)
def test_round_half_up(numerator, denominator, expected):
    """Averages round half up without floating point."""
    assert round_half_up(numerator, denominator) == expected
