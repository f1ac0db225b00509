"""
Pricing engine.

Maps a billed interval and a spot's pricing parameters to the amount owed.
Pure: no store access, no clock. Every duration is rounded up to the next
billing unit.

Hourly spots are metered per started half hour and capped per started day.
Monthly spots are billed per started 30-day period. Durations up to the grace
threshold are free. Minutes past the booked end can carry a per-half-hour
overtime surcharge, added before or after the daily cap.
"""
import math
from dataclasses import dataclass
from datetime import timedelta

from services.errors import PricingError, InvalidTimeError

HALF_HOUR = timedelta(minutes=30)
DAY = timedelta(days=1)
MONTH = timedelta(days=30)


@dataclass(frozen=True)
class PricingRules:
    grace_minutes: int = 5
    overtime_surcharge_per_half_hour: float = 0.0
    surcharge_before_cap: bool = True

    @classmethod
    def from_settings(cls, settings):
        return cls(
            grace_minutes=settings.billing_grace_minutes,
            overtime_surcharge_per_half_hour=settings.overtime_surcharge_per_half_hour,
            surcharge_before_cap=settings.overtime_surcharge_before_cap,
        )


def _units(delta, unit):
    """Number of started ``unit`` periods in ``delta``."""
    if delta <= timedelta(0):
        return 0
    return math.ceil(delta / unit)


def price(start, end, pricing_type, price_per_half_hour, daily_max, monthly_rate,
          booked_end=None, rules=PricingRules()):
    """Amount owed for parking from ``start`` to ``end``.

    ``booked_end`` is the originally booked end time; time after it is
    overtime and only matters when the rules carry a surcharge.
    """
    if end < start:
        raise InvalidTimeError(f"end time {end} cannot be earlier than start time {start}")

    duration = end - start

    if pricing_type == 'monthly':
        if monthly_rate is None or monthly_rate <= 0:
            raise PricingError(f"invalid monthly price: {monthly_rate}")
        return round(_units(duration, MONTH) * monthly_rate, 2)

    if pricing_type != 'hourly':
        raise PricingError(f"unknown pricing type: {pricing_type}")
    if price_per_half_hour is None or price_per_half_hour <= 0:
        raise PricingError(f"invalid price per half hour: {price_per_half_hour}")
    if daily_max is None or daily_max <= 0:
        raise PricingError(f"invalid daily max price: {daily_max}")

    if duration <= timedelta(minutes=rules.grace_minutes):
        return 0.0

    base = _units(duration, HALF_HOUR) * price_per_half_hour
    cap = _units(duration, DAY) * daily_max

    surcharge = 0.0
    if booked_end is not None and rules.overtime_surcharge_per_half_hour > 0:
        overtime = end - max(booked_end, start)
        surcharge = _units(overtime, HALF_HOUR) * rules.overtime_surcharge_per_half_hour

    if rules.surcharge_before_cap:
        cost = min(base + surcharge, cap)
    else:
        cost = min(base, cap) + surcharge
    return round(cost, 2)


def price_rent(rent, spot, actual_end, rules=PricingRules()):
    """Price a rental against its spot's current pricing parameters."""
    return price(
        rent.start_time, actual_end,
        spot.pricing_type, spot.price_per_half_hour, spot.daily_max_price, spot.monthly_price,
        booked_end=rent.end_time, rules=rules,
    )
