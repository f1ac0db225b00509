from datetime import datetime, timedelta

import pytest

from services.errors import InvalidTimeError, PricingError
from services.pricing import PricingRules, price

START = datetime(2030, 5, 1, 8, 0)


def hourly(minutes, rules=PricingRules(), booked_end=None):
    return price(START, START + timedelta(minutes=minutes), 'hourly', 20, 300, None,
                 booked_end=booked_end, rules=rules)


def test_half_hours_round_up():
    assert hourly(50) == 40


def test_exact_half_hours_are_not_rounded_further():
    assert hourly(60) == 40
    assert hourly(61) == 60


def test_daily_cap_applies():
    assert hourly(600) == 300


def test_cap_scales_with_started_days():
    # 25 hours: 50 half hours = 1000, two started days cap at 600
    assert hourly(25 * 60) == 600


def test_monthly_rounds_up_to_started_periods():
    start = START
    end = start + timedelta(days=40)
    assert price(start, end, 'monthly', 20, 300, 5000) == 10000


def test_monthly_single_day_bills_one_period():
    assert price(START, START + timedelta(days=1), 'monthly', 20, 300, 5000) == 5000


@pytest.mark.parametrize('minutes, expected', [(0, 0), (3, 0), (5, 0), (6, 20), (29, 20), (30, 20)])
def test_short_duration_grace(minutes, expected):
    assert hourly(minutes) == expected


def test_grace_can_be_disabled():
    assert hourly(3, rules=PricingRules(grace_minutes=0)) == 20


def test_overtime_surcharge_before_cap_is_absorbed_by_cap():
    rules = PricingRules(overtime_surcharge_per_half_hour=50, surcharge_before_cap=True)
    # booked 9h, stayed 10h: base 400 + surcharge 100, capped at 300
    assert hourly(600, rules=rules, booked_end=START + timedelta(hours=9)) == 300


def test_overtime_surcharge_after_cap_is_added_on_top():
    rules = PricingRules(overtime_surcharge_per_half_hour=50, surcharge_before_cap=False)
    assert hourly(600, rules=rules, booked_end=START + timedelta(hours=9)) == 400


def test_overtime_surcharge_below_cap():
    rules = PricingRules(overtime_surcharge_per_half_hour=50)
    # booked 2h, stayed 2h10m: 5 half hours = 100, one overtime unit = 50
    assert hourly(130, rules=rules, booked_end=START + timedelta(hours=2)) == 150


def test_no_surcharge_when_leaving_on_time():
    rules = PricingRules(overtime_surcharge_per_half_hour=50)
    assert hourly(90, rules=rules, booked_end=START + timedelta(hours=2)) == 60


def test_end_before_start_is_rejected():
    with pytest.raises(InvalidTimeError):
        price(START, START - timedelta(minutes=1), 'hourly', 20, 300, None)


@pytest.mark.parametrize('rate, cap', [(0, 300), (-5, 300), (20, 0), (None, 300)])
def test_non_positive_hourly_rates_are_rejected(rate, cap):
    with pytest.raises(PricingError):
        price(START, START + timedelta(hours=1), 'hourly', rate, cap, None)


def test_monthly_without_rate_is_rejected():
    with pytest.raises(PricingError):
        price(START, START + timedelta(days=3), 'monthly', 20, 300, None)


def test_unknown_pricing_type_is_rejected():
    with pytest.raises(PricingError) as exc:
        price(START, START + timedelta(hours=1), 'weekly', 20, 300, None)
    assert exc.value.kind == 'INVALID_PRICING'
