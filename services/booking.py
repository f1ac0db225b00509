"""
Booking state machine for rentals.

    create-as-rental       -> pending
    create-as-reservation  -> reserved
    reserved  --confirm--> pending
    pending/reserved --cancel--> canceled
    pending/reserved --settle--> completed   (see services.settlement)

Canceled and completed are terminal. Every transition runs in one
transaction that also recomputes the spot's derived status. Bookings lock the
spot row first so the availability checks and the insert are serialised per
spot on backends that support row locks.
"""
import logging

from models.models import db, Member, Rent, OPEN_RENT_STATUSES
from services.availability import is_offered_on
from services.base import BaseService
from services.errors import (
    ConflictError, ForbiddenError, InvalidTimeError, NotFoundError, StateError,
)
from services.overlap import active_block, overlapping
from services.status import refresh_spot_status
from services.timeutil import local_date, format_duration
from services.unit import atomic

logger = logging.getLogger(__name__)


class BookingService(BaseService):

    def book_rental(self, spot_id, renter_id, start, end):
        """Rent a spot for ``[start, end]``, starting the rental immediately."""
        return self._book(spot_id, renter_id, start, end, status='pending', veto_active=True)

    def book_reservation(self, spot_id, renter_id, start, end):
        """Reserve a spot ahead of time; the reservation must later be confirmed."""
        return self._book(spot_id, renter_id, start, end, status='reserved', veto_active=False)

    def _validate_window(self, start, end, now):
        if end <= start:
            raise InvalidTimeError("end time must be later than start time")
        if local_date(start, self.offset_hours) < local_date(now, self.offset_hours):
            raise InvalidTimeError("start date must be today or later")

    def _book(self, spot_id, renter_id, start, end, status, veto_active):
        start = self.normalise(start, 'start_time')
        end = self.normalise(end, 'end_time')
        now = self.now()
        self._validate_window(start, end, now)

        with atomic(self.session):
            spot = self.load_spot(spot_id, lock=True)
            if self.session.get(Member, renter_id) is None:
                raise NotFoundError(f"member {renter_id} not found")
            if spot.member_id == renter_id:
                raise ConflictError("owners cannot rent their own spot", kind='SPOT_NOT_AVAILABLE')

            if veto_active:
                occupying = active_block(spot.id, now, session=self.session)
                if occupying is not None:
                    logger.warning("Spot %s rejected: rent %s still active", spot.id, occupying.id)
                    raise ConflictError(f"spot {spot.id} is currently rented", kind='ACTIVE_RENT_CONFLICT')

            clashes = overlapping(spot.id, start, end, statuses=OPEN_RENT_STATUSES, session=self.session)
            if clashes:
                logger.warning("Spot %s rejected: window overlaps rent %s", spot.id, clashes[0].id)
                raise ConflictError("requested time overlaps an existing rental", kind='TIME_OVERLAP')

            start_day = local_date(start, self.offset_hours)
            if not is_offered_on(spot.id, start_day, session=self.session):
                raise ConflictError(f"spot {spot.id} is not offered on {start_day}", kind='DATE_NOT_AVAILABLE')

            rent = Rent(member_id=renter_id, spot_id=spot.id, start_time=start, end_time=end, status=status)
            self.session.add(rent)
            refresh_spot_status(spot, now, self.offset_hours, session=self.session)

        logger.info("Rent %s created (%s) on spot %s for member %s", rent.id, status, spot_id, renter_id)
        return rent

    def confirm_reservation(self, rent_id, caller_id=None):
        """A reservation whose window has started becomes an active rental."""
        now = self.now()
        with atomic(self.session):
            rent = self.load_rent(rent_id, lock=True)
            if caller_id is not None and rent.member_id != caller_id:
                raise ForbiddenError("only the renter can confirm this reservation")
            if rent.status != 'reserved':
                raise StateError(f"rent {rent_id} is {rent.status}, not reserved")
            if now < rent.start_time:
                raise StateError("reservation has not started yet", kind='NOT_STARTED')
            rent.status = 'pending'
            refresh_spot_status(rent.spot, now, self.offset_hours, session=self.session)
        logger.info("Reservation %s confirmed", rent_id)
        return rent

    def cancel_rental(self, rent_id, caller_id, is_admin=False):
        now = self.now()
        with atomic(self.session):
            rent = self.load_rent(rent_id, lock=True)
            if rent.member_id != caller_id and not is_admin:
                raise ForbiddenError("only the renter can cancel this rental")
            if rent.actual_end_time is not None:
                raise StateError(f"rent {rent_id} is already settled", kind='ALREADY_SETTLED')
            if rent.status not in OPEN_RENT_STATUSES:
                raise StateError(f"rent {rent_id} is {rent.status} and cannot be canceled")
            rent.status = 'canceled'
            refresh_spot_status(rent.spot, now, self.offset_hours, session=self.session)
        logger.info("Rent %s canceled by member %s", rent_id, caller_id)
        return rent

    # --- queries ---

    def get_rent(self, rent_id, caller_id, is_admin=False):
        rent = self.load_rent(rent_id)
        if rent.member_id != caller_id and not is_admin:
            raise ForbiddenError("cannot view another member's rental")
        return rent

    def rent_history(self, member_id):
        rents = (self.session.query(Rent)
                 .filter_by(member_id=member_id)
                 .order_by(Rent.start_time.desc())
                 .all())
        history = []
        for rent in rents:
            entry = rent.to_dict()
            if rent.actual_end_time is not None:
                entry['duration'] = format_duration(rent.actual_end_time - rent.start_time)
            else:
                entry['duration'] = None
            history.append(entry)
        return history

    def current_rents(self, member_id):
        return (self.session.query(Rent)
                .filter(Rent.member_id == member_id,
                        Rent.status.in_(OPEN_RENT_STATUSES),
                        Rent.actual_end_time.is_(None))
                .order_by(Rent.start_time)
                .all())

    def total_cost(self, member_id):
        total = (self.session.query(db.func.sum(Rent.total_cost))
                 .filter(Rent.member_id == member_id, Rent.status == 'completed')
                 .scalar()) or 0
        return round(total, 2)
