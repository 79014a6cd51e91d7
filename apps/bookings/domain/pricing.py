"""Pricing for stays. Amounts are integers in the smallest currency unit."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from shared.domain.value_objects import DateRange
from apps.bookings.domain.errors import InvalidPriceError

Amount = Union[int, Decimal]

DEFAULT_APPLICATION_FEE_RATE = Decimal('0.05')


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def compute_total(nightly_price: Amount, dates: DateRange) -> int:
    """
    Total charge for a stay

    Both check-in and check-out nights are paid for, so a stay from
    day 1 to day 3 costs three nights.

    Raises:
        InvalidPriceError: if the nightly price is not positive
    """
    price = Decimal(str(nightly_price))
    if price <= 0:
        raise InvalidPriceError(f"Nightly price must be positive, got {nightly_price}")
    if not dates.is_ordered:
        raise ValueError(f"Cannot price unordered range {dates!r}")

    return _round_half_up(price * dates.nights)


def application_fee(total: int, rate: Amount = DEFAULT_APPLICATION_FEE_RATE) -> int:
    """Platform fee kept from the host's payout"""
    return _round_half_up(Decimal(total) * Decimal(str(rate)))
