"""
Spot status derivation.

A spot's status is never set by hand: it is recomputed from the spot's open
rentals and today's calendar entry whenever a rental on it changes, and again
on reads.
"""
import logging

from models.models import db, ParkingSpot, Rent, OPEN_RENT_STATUSES
from services.availability import is_offered_on
from services.timeutil import local_date
from services.unit import atomic

logger = logging.getLogger(__name__)


def derive_spot_status(open_rents, today_offered, now):
    """Status of a spot given its open (pending/reserved, unsettled) rentals.

    - ``occupied`` while a pending rental has started and is not settled;
    - ``reserved`` if any open rental is still scheduled to end after ``now``;
    - ``available`` if today is offered in the calendar;
    - ``occupied`` otherwise (not offered today).
    """
    open_rents = [r for r in open_rents
                  if r.status in OPEN_RENT_STATUSES and r.actual_end_time is None]
    if any(r.status == 'pending' and r.start_time <= now for r in open_rents):
        return 'occupied'
    if any(r.end_time > now for r in open_rents):
        return 'reserved'
    if today_offered:
        return 'available'
    return 'occupied'


def open_rents_for(spot_id, session=None):
    session = session or db.session
    return (session.query(Rent)
            .filter(Rent.spot_id == spot_id,
                    Rent.status.in_(OPEN_RENT_STATUSES),
                    Rent.actual_end_time.is_(None))
            .all())


def current_status(spot, now, offset_hours, session=None):
    today_offered = is_offered_on(spot.id, local_date(now, offset_hours), session=session)
    return derive_spot_status(open_rents_for(spot.id, session=session), today_offered, now)


def refresh_spot_status(spot, now, offset_hours, session=None):
    """Recompute and store ``spot.status``. Does not commit."""
    session = session or db.session
    session.flush()
    status = current_status(spot, now, offset_hours, session=session)
    if status != spot.status:
        logger.info("Spot %s status %s -> %s", spot.id, spot.status, status)
        spot.status = status
    return status


def sync_spot_statuses(now, offset_hours, session=None):
    """Recompute every spot's status and commit. Returns the number changed."""
    session = session or db.session
    changed = 0
    with atomic(session):
        for spot in session.query(ParkingSpot).order_by(ParkingSpot.id).all():
            before = spot.status
            if refresh_spot_status(spot, now, offset_hours, session=session) != before:
                changed += 1
    logger.info("Spot status sync finished: %d changed", changed)
    return changed
