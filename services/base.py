from datetime import datetime

from models.models import db, ParkingSpot, Rent
from services.errors import NotFoundError, InvalidTimeError
from services.settings import Settings
from services.timeutil import utcnow, to_utc, parse_timestamp


class BaseService:
    """Holds the injected store session, clock and settings."""

    def __init__(self, session=None, clock=None, settings=None):
        self.session = session or db.session
        self.clock = clock or utcnow
        self.settings = settings or Settings()

    @classmethod
    def from_app(cls, app):
        return cls(db.session, clock=app.config.get('CLOCK'), settings=Settings.from_config(app.config))

    @property
    def offset_hours(self):
        return self.settings.local_utc_offset_hours

    def now(self):
        return to_utc(self.clock(), 0)

    def normalise(self, value, field='time'):
        """Naive UTC from a datetime or an ISO 8601 string.

        Naive datetimes are already UTC, like the clock and the store. Naive
        strings come from clients and are read in the local offset.
        """
        if isinstance(value, datetime):
            return to_utc(value, 0)
        try:
            return parse_timestamp(value, self.offset_hours)
        except ValueError as exc:
            raise InvalidTimeError(f"invalid {field}: {exc}")

    def load_spot(self, spot_id, lock=False):
        query = self.session.query(ParkingSpot).filter(ParkingSpot.id == spot_id)
        if lock:
            query = query.with_for_update()
        spot = query.first()
        if spot is None:
            raise NotFoundError(f"parking spot {spot_id} not found")
        return spot

    def load_rent(self, rent_id, lock=False):
        query = self.session.query(Rent).filter(Rent.id == rent_id)
        if lock:
            query = query.with_for_update()
        rent = query.first()
        if rent is None:
            raise NotFoundError(f"rent {rent_id} not found")
        return rent
