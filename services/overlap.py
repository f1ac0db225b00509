"""
Overlap detection against a spot's existing rentals.

Two windows conflict when ``s1 <= e2 and s2 <= e1``: a rental ending exactly
when another begins still conflicts. Canceled and completed rentals never
block.
"""
from models.models import db, Rent, OPEN_RENT_STATUSES


def overlapping(spot_id, start, end, statuses=OPEN_RENT_STATUSES, session=None):
    session = session or db.session
    return (session.query(Rent)
            .filter(Rent.spot_id == spot_id,
                    Rent.status.in_(statuses),
                    Rent.start_time <= end,
                    Rent.end_time >= start)
            .all())


def has_conflict(spot_id, start, end, exclude_terminal=True, session=None):
    if exclude_terminal:
        statuses = OPEN_RENT_STATUSES
    else:
        statuses = OPEN_RENT_STATUSES + ('canceled', 'completed')
    return bool(overlapping(spot_id, start, end, statuses=statuses, session=session))


def active_block(spot_id, now, session=None):
    """The rental currently occupying the spot, if any.

    An occupying rental has started, has no actual end and is scheduled to
    end after ``now``.
    """
    session = session or db.session
    return (session.query(Rent)
            .filter(Rent.spot_id == spot_id,
                    Rent.status.in_(OPEN_RENT_STATUSES),
                    Rent.actual_end_time.is_(None),
                    Rent.start_time <= now,
                    Rent.end_time > now)
            .first())
