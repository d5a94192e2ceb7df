"""
Pricing Engine.

Turns a product's base (daily) rate and a date range into the number of
billed periods and the total price. Partial periods are billed in full.
"""
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from rentalhub.modules.exceptions import InvalidPriceError, InvalidRangeError

CENTS = Decimal("0.01")

UNIT_LENGTHS = {
    "hourly": timedelta(hours=1),
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "monthly": timedelta(days=30),
    "quarterly": timedelta(days=90),
    "yearly": timedelta(days=365),
}

UNIT_MULTIPLIERS = {
    "hourly": 1,
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
    "quarterly": 90,
    "yearly": 365,
}

DEFAULT_UNIT = "daily"


@dataclass(frozen=True)
class PriceQuote:
    period_count: int
    price: Decimal


def normalize_unit(period_unit):
    if period_unit in UNIT_LENGTHS:
        return period_unit
    return DEFAULT_UNIT


def count_periods(start_date, end_date, period_unit):
    """Number of whole or partial ``period_unit`` periods in the range."""
    if start_date >= end_date:
        raise InvalidRangeError(
            "End date must be after start date",
            field_errors={"end_date": ["End date must be after start date"]})
    periods, remainder = divmod(
        end_date - start_date, UNIT_LENGTHS[normalize_unit(period_unit)])
    return periods + (1 if remainder else 0)


def compute_price(base_rate, start_date, end_date, period_unit=None):
    unit = normalize_unit(period_unit)
    period_count = count_periods(start_date, end_date, unit)
    if period_count <= 0:
        raise InvalidPriceError("Rental period must be at least one period")

    price = (
        Decimal(period_count) * Decimal(base_rate) * UNIT_MULTIPLIERS[unit]
    ).quantize(CENTS, rounding=ROUND_HALF_UP)
    if price <= 0:
        raise InvalidPriceError()
    return PriceQuote(period_count=period_count, price=price)
