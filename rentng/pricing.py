"""
Derived booking figures.

Units are listed with a monthly price. A booking is charged per night at
``price_per_month / NIGHTS_PER_MONTH``; the total is rounded down to whole
currency units.
"""
import datetime
import math

NIGHTS_PER_MONTH = 30

_SECONDS_PER_DAY = 24 * 60 * 60


def count_nights(check_in: datetime.datetime, check_out: datetime.datetime) -> int:
    """Whole days between check-in and check-out, any partial day counting as a night."""
    return math.ceil((check_out - check_in).total_seconds() / _SECONDS_PER_DAY)


def total_price(nights: int, price_per_month: int) -> int:
    return nights * price_per_month // NIGHTS_PER_MONTH
