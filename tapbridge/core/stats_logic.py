"""Pure business logic for payment statistics.

Turns a list of charges into per-day buckets and a summary. Nothing here performs
I/O, so aggregating the same charges twice always yields the same output. All amounts
are integer minor currency units.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from tapbridge.core.datetime_utils import iter_days, utc_day_of
from tapbridge.integrations.stripe_client import get_field, to_plain_dict

TIP_METADATA_KEY = "tipAmount"


def _parse_minor_units(value: Any) -> Optional[int]:
    """Parse a non-negative integer amount; None when the value is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def resolve_tip_amount(metadata: Any, amount_details: Any) -> int:
    """Return the tip carried by a charge.

    The ``tipAmount`` metadata value written when the payment intent was built takes
    precedence; the platform-reported ``amount_details.tip.amount`` is used only when
    the metadata value is absent or not a non-negative integer.
    """
    from_metadata = _parse_minor_units(get_field(metadata, TIP_METADATA_KEY))
    if from_metadata is not None:
        return from_metadata

    platform_tip = _parse_minor_units(get_field(get_field(amount_details, "tip"), "amount"))
    return platform_tip or 0


@dataclass(frozen=True)
class ChargeRecord:
    """The slice of a Stripe charge the statistics need."""

    id: str
    created: int
    amount: int
    currency: str
    status: str
    paid: bool
    amount_refunded: int = 0
    metadata: Dict[str, str] = field(default_factory=dict)
    tip_amount: int = 0

    @property
    def base_amount(self) -> int:
        """Amount without the tip."""
        return self.amount - self.tip_amount

    @property
    def is_successful(self) -> bool:
        """Only a paid charge in status ``succeeded`` counts as successful."""
        return self.status == "succeeded" and self.paid

    @property
    def day(self) -> date:
        """UTC calendar day the charge was created on."""
        return utc_day_of(self.created)

    @classmethod
    def from_stripe(cls, charge: Any) -> "ChargeRecord":
        """Build a record from a Stripe charge (or any mapping with the same fields)."""
        metadata = get_field(charge, "metadata")
        if isinstance(metadata, Mapping) or hasattr(metadata, "to_dict"):
            metadata = to_plain_dict(metadata)
        else:
            metadata = {}
        return cls(
            id=get_field(charge, "id", ""),
            created=int(get_field(charge, "created", 0)),
            amount=int(get_field(charge, "amount", 0)),
            currency=get_field(charge, "currency", ""),
            status=get_field(charge, "status", ""),
            paid=bool(get_field(charge, "paid", False)),
            amount_refunded=int(get_field(charge, "amount_refunded", 0)),
            metadata={str(key): str(value) for key, value in metadata.items()},
            tip_amount=resolve_tip_amount(metadata, get_field(charge, "amount_details")),
        )


@dataclass
class DailyStat:
    """Aggregated charges of one UTC calendar day."""

    date: str
    count: int = 0
    total_amount: int = 0
    successful: int = 0
    failed: int = 0
    total_tips: int = 0

    def add(self, charge: ChargeRecord) -> None:
        """Fold one charge into the bucket."""
        self.count += 1
        self.total_amount += charge.amount
        self.total_tips += charge.tip_amount
        if charge.is_successful:
            self.successful += 1
        else:
            self.failed += 1


@dataclass(frozen=True)
class StatsSummary:
    """Totals over a sequence of daily buckets."""

    total_payments: int
    total_amount: int
    average_amount: int
    total_tips: int


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded half away from zero, without floating point."""
    quotient = Decimal(numerator) / Decimal(denominator)
    return int(quotient.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def group_charges_by_date(charges: Iterable[ChargeRecord]) -> Dict[str, DailyStat]:
    """Bucket charges by the UTC day they were created on, keyed by ISO date."""
    stats_by_date: Dict[str, DailyStat] = {}
    for charge in charges:
        key = charge.day.isoformat()
        if key not in stats_by_date:
            stats_by_date[key] = DailyStat(date=key)
        stats_by_date[key].add(charge)
    return stats_by_date


def fill_missing_days(
    stats_by_date: Mapping[str, DailyStat], start: date, end: date
) -> List[DailyStat]:
    """Return one bucket per day from start to end inclusive, ascending.

    Days absent from ``stats_by_date`` get an all-zero bucket. Buckets outside the
    range are ignored.
    """
    filled = []
    for day in iter_days(start, end):
        key = day.isoformat()
        filled.append(stats_by_date.get(key) or DailyStat(date=key))
    return filled


def calculate_summary(stats: Iterable[DailyStat]) -> StatsSummary:
    """Derive the summary from a bucket sequence."""
    stats = list(stats)
    total_payments = sum(stat.count for stat in stats)
    total_amount = sum(stat.total_amount for stat in stats)
    total_tips = sum(stat.total_tips for stat in stats)
    average_amount = round_half_up(total_amount, total_payments) if total_payments > 0 else 0

    return StatsSummary(
        total_payments=total_payments,
        total_amount=total_amount,
        average_amount=average_amount,
        total_tips=total_tips,
    )


def aggregate(
    charges: Iterable[ChargeRecord], start: date, end: date
) -> tuple[List[DailyStat], StatsSummary]:
    """Group, day-fill and summarize charges for the inclusive day range."""
    filled = fill_missing_days(group_charges_by_date(charges), start, end)
    return filled, calculate_summary(filled)
