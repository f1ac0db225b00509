"""Offer calendar: which dates an owner makes a spot available on."""
import logging
from datetime import date

from models.models import db, AvailableDay
from services.errors import ValidationError

logger = logging.getLogger(__name__)


def is_offered_on(spot_id, day, session=None):
    session = session or db.session
    row = (session.query(AvailableDay)
           .filter_by(spot_id=spot_id, available_date=day, is_available=True)
           .first())
    return row is not None


def list_available_days(spot_id, session=None):
    session = session or db.session
    return (session.query(AvailableDay)
            .filter_by(spot_id=spot_id)
            .order_by(AvailableDay.available_date)
            .all())


def parse_days(entries):
    """Normalise calendar input into ``{date: is_available}``.

    Accepts ISO date strings (offered) or ``{"date": ..., "is_available": ...}``
    mappings.
    """
    if not isinstance(entries, (list, tuple)):
        raise ValidationError("available_days must be a list")
    days = {}
    for entry in entries:
        if isinstance(entry, dict):
            raw, flag = entry.get('date'), entry.get('is_available', True)
        else:
            raw, flag = entry, True
        if isinstance(raw, date):
            day = raw
        else:
            try:
                day = date.fromisoformat(raw)
            except (TypeError, ValueError):
                raise ValidationError(f"invalid date in available_days: {raw!r}")
        if not isinstance(flag, bool):
            raise ValidationError(f"is_available must be a boolean for {day}")
        days[day] = flag
    return days


def set_available_days(spot, days, session=None):
    """Upsert calendar rows for ``spot`` from a ``{date: is_available}`` map.

    Does not commit; callers run it inside their transaction.
    """
    session = session or db.session
    existing = {row.available_date: row for row in spot.available_days}
    for day, flag in days.items():
        row = existing.get(day)
        if row is None:
            row = AvailableDay(spot_id=spot.id, available_date=day, is_available=flag)
            spot.available_days.append(row)
            session.add(row)
        else:
            row.is_available = flag
    logger.info("Calendar updated for spot %s: %d day(s)", spot.id, len(days))
    return spot.available_days
