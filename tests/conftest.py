from datetime import date, datetime, timedelta

import pytest
from flask import g
from flask_login import FlaskLoginClient

from app import create_app
from models.models import db, Member, ParkingSpot, AvailableDay

NOW = datetime(2030, 5, 1, 9, 0)
TODAY = NOW.date()


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def local_offset():
    return 0


@pytest.fixture
def app(clock, local_offset):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'CLOCK': clock,
        'LOCAL_UTC_OFFSET_HOURS': local_offset,
        'LOG_LEVEL': 'WARNING',
    })
    app.test_client_class = FlaskLoginClient

    # requests reuse the app context pushed below, and with it ``g``
    @app.before_request
    def forget_loaded_user():
        g.pop('_login_user', None)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


def add_member(email, role='renter'):
    member = Member(email=email, full_name=email.split('@')[0].title(), role=role)
    db.session.add(member)
    db.session.commit()
    return member


def add_spot(owner, days=(TODAY,), **fields):
    values = dict(parking_type='flat', location='B1-12', pricing_type='hourly',
                  price_per_half_hour=20.0, daily_max_price=300.0)
    values.update(fields)
    spot = ParkingSpot(member_id=owner.id, **values)
    db.session.add(spot)
    db.session.flush()
    for day in days:
        db.session.add(AvailableDay(spot_id=spot.id, available_date=day, is_available=True))
    db.session.commit()
    return spot


@pytest.fixture
def owner(app):
    return add_member('owner@example.com', role='shared_owner')


@pytest.fixture
def renter(app):
    return add_member('renter@example.com')


@pytest.fixture
def other_renter(app):
    return add_member('other@example.com')


@pytest.fixture
def admin(app):
    return add_member('admin@example.com', role='admin')


@pytest.fixture
def spot(owner):
    return add_spot(owner, days=(TODAY, TODAY + timedelta(days=1), date(2030, 5, 3)))


def at(hour, minute=0, day=TODAY):
    return datetime(day.year, day.month, day.day, hour, minute)
