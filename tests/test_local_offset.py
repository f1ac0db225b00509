"""Behaviour under the default +8 local offset.

The clock reads 01:00 UTC on 2 May, which is 09:00 on 2 May locally; 16:00 UTC
on 1 May is already local midnight of 2 May.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import FrozenClock, add_spot
from models.models import db, Rent
from services.booking import BookingService
from services.errors import ConflictError, InvalidTimeError
from services.parking import ParkingService
from services.settlement import SettlementService
from services.status import current_status

LOCAL_TODAY = date(2030, 5, 2)
LOCAL_YESTERDAY = date(2030, 5, 1)
NOW_UTC = datetime(2030, 5, 2, 1, 0)


@pytest.fixture
def local_offset():
    return 8


@pytest.fixture
def clock():
    return FrozenClock(NOW_UTC)


@pytest.fixture
def booking(app):
    return BookingService.from_app(app)


@pytest.fixture
def settlement(app):
    return SettlementService.from_app(app)


@pytest.fixture
def spot(owner):
    return add_spot(owner, days=(LOCAL_TODAY,))


def test_start_before_utc_midnight_is_still_local_today(booking, spot, renter):
    rent = booking.book_rental(spot.id, renter.id, datetime(2030, 5, 1, 16, 30), datetime(2030, 5, 2, 3, 0))
    assert rent.status == 'pending'
    assert rent.start_time == datetime(2030, 5, 1, 16, 30)


def test_start_on_local_yesterday_is_rejected(booking, spot, renter):
    with pytest.raises(InvalidTimeError) as exc:
        booking.book_rental(spot.id, renter.id, datetime(2030, 5, 1, 15, 30), datetime(2030, 5, 2, 3, 0))
    assert exc.value.kind == 'INVALID_TIME'


def test_naive_strings_are_read_as_local_time(booking, spot, renter):
    rent = booking.book_reservation(spot.id, renter.id, '2030-05-02T09:30:00', '2030-05-02T11:00:00')
    assert rent.start_time == datetime(2030, 5, 2, 1, 30)
    assert rent.end_time == datetime(2030, 5, 2, 3, 0)


def test_aware_inputs_are_converted(booking, spot, renter):
    local = timezone(timedelta(hours=8))
    rent = booking.book_reservation(spot.id, renter.id, datetime(2030, 5, 2, 12, 0, tzinfo=local),
                                    datetime(2030, 5, 2, 13, 0, tzinfo=local))
    assert rent.start_time == datetime(2030, 5, 2, 4, 0)


def test_calendar_lookup_uses_local_start_day(booking, owner, renter):
    yesterday_only = add_spot(owner, location='B2-01', days=(LOCAL_YESTERDAY,))
    with pytest.raises(ConflictError) as exc:
        booking.book_reservation(yesterday_only.id, renter.id, datetime(2030, 5, 1, 17, 0), datetime(2030, 5, 1, 19, 0))
    assert exc.value.kind == 'DATE_NOT_AVAILABLE'


def test_today_offered_follows_local_date(app, owner, clock):
    clock.now = datetime(2030, 5, 1, 20, 0)
    local_only = add_spot(owner, location='B2-02', days=(LOCAL_TODAY,))
    utc_only = add_spot(owner, location='B2-03', days=(LOCAL_YESTERDAY,))
    assert current_status(local_only, clock(), 8) == 'available'
    assert current_status(utc_only, clock(), 8) == 'occupied'
    assert [s.id for s in ParkingService.from_app(app).available_spots()] == [local_only.id]


def test_batch_given_clock_now_settles_started_rentals(booking, settlement, spot, renter, clock):
    rent = booking.book_rental(spot.id, renter.id, datetime(2030, 5, 2, 0, 10), datetime(2030, 5, 2, 2, 0))

    result = settlement.run_batch_settlement(settlement.now())

    assert result == {'settled_count': 1, 'failures': [], 'skipped': []}
    rent = db.session.get(Rent, rent.id)
    assert rent.actual_end_time == clock()
    assert rent.total_cost == 40


def test_settle_with_naive_utc_end_time(booking, settlement, spot, renter):
    rent = booking.book_rental(spot.id, renter.id, datetime(2030, 5, 2, 0, 10), datetime(2030, 5, 2, 2, 0))
    result = settlement.settle_rental(rent.id, datetime(2030, 5, 2, 0, 55))
    assert result['total_cost'] == 40
    assert db.session.get(Rent, rent.id).actual_end_time == datetime(2030, 5, 2, 0, 55)
