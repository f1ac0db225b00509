"""
Settlement: closing rentals and charging for them.

``settle_rental`` is the leave-and-pay path. Loading the rental and its spot,
validating, pricing, writing the rental and recomputing the spot status all
happen in one transaction; any failure rolls the whole thing back.

``run_batch_settlement`` is invoked by an external timer once per billing
cycle and force-settles every open rental at "now". Each rental is settled in
its own transaction so one failure does not stop the others.
"""
import logging
from datetime import timedelta

from models.models import Rent, OPEN_RENT_STATUSES
from services.base import BaseService
from services.errors import ForbiddenError, InvalidTimeError, RentError, StateError
from services.pricing import PricingRules, price_rent
from services.status import refresh_spot_status
from services.unit import atomic

logger = logging.getLogger(__name__)


class SettlementService(BaseService):

    @property
    def rules(self):
        return PricingRules.from_settings(self.settings)

    def settle_rental(self, rent_id, actual_end=None, caller_id=None, is_admin=False):
        """Record the actual end of a rental and charge for it.

        ``actual_end`` defaults to now. It may be backdated by at most
        ``settle_backdate_tolerance_minutes`` and never lie in the future.
        """
        now = self.now()
        actual_end = now if actual_end is None else self.normalise(actual_end, 'end_time')

        with atomic(self.session):
            rent = self.load_rent(rent_id, lock=True)
            if caller_id is not None and rent.member_id != caller_id and not is_admin:
                raise ForbiddenError("only the renter can settle this rental")
            if rent.actual_end_time is not None:
                raise StateError(f"rent {rent_id} is already settled", kind='ALREADY_SETTLED')
            if rent.status not in OPEN_RENT_STATUSES:
                raise StateError(f"rent {rent_id} is {rent.status} and cannot be settled")
            self._close(rent, actual_end, now, check_window=True)

        logger.info("Rent %s settled at %s, total cost %.2f", rent_id, actual_end, rent.total_cost)
        return {'rent_id': rent.id, 'total_cost': rent.total_cost, 'rent': rent}

    def _close(self, rent, actual_end, now, check_window):
        if actual_end < rent.start_time:
            raise InvalidTimeError(f"end time {actual_end} cannot be earlier than start time {rent.start_time}")
        if check_window:
            tolerance = timedelta(minutes=self.settings.settle_backdate_tolerance_minutes)
            if actual_end > now:
                raise InvalidTimeError("end time cannot be in the future")
            if actual_end < now - tolerance:
                raise InvalidTimeError("end time is too far in the past")

        spot = self.load_spot(rent.spot_id, lock=True)
        cost = price_rent(rent, spot, actual_end, rules=self.rules)

        rent.actual_end_time = actual_end
        rent.total_cost = cost
        rent.status = 'completed'
        refresh_spot_status(spot, now, self.offset_hours, session=self.session)
        return cost

    def _open_rent_ids(self, *criteria):
        ids = [rent_id for (rent_id,) in
               self.session.query(Rent.id)
               .filter(Rent.status.in_(OPEN_RENT_STATUSES),
                       Rent.actual_end_time.is_(None),
                       *criteria)
               .order_by(Rent.id)
               .all()]
        self.session.commit()
        return ids

    def run_batch_settlement(self, now=None):
        """Force-settle every open rental that has started.

        Rentals that start after ``now`` cannot be billed yet and are
        reported as skipped.
        """
        now = self.now() if now is None else self.normalise(now, 'now')
        settled, failures, skipped = 0, [], []

        for rent_id in self._open_rent_ids():
            try:
                with atomic(self.session):
                    rent = self.load_rent(rent_id, lock=True)
                    if rent.actual_end_time is not None or rent.status not in OPEN_RENT_STATUSES:
                        # closed by a request since the batch started
                        continue
                    if rent.start_time > now:
                        skipped.append(rent_id)
                        continue
                    self._close(rent, now, now, check_window=False)
                settled += 1
            except RentError as err:
                logger.warning("Batch settlement of rent %s failed: %s", rent_id, err.message)
                failures.append({'rent_id': rent_id, 'kind': err.kind, 'message': err.message})

        logger.info("Batch settlement at %s: %d settled, %d failed, %d skipped",
                    now, settled, len(failures), len(skipped))
        return {'settled_count': settled, 'failures': failures, 'skipped': skipped}

    def expire_reservations(self, now=None):
        """Cancel reservations that were never confirmed within the hold window."""
        now = self.now() if now is None else self.normalise(now, 'now')
        cutoff = now - timedelta(minutes=self.settings.reservation_hold_minutes)
        expired, failures = [], []

        for rent_id in self._open_rent_ids(Rent.status == 'reserved', Rent.start_time <= cutoff):
            try:
                with atomic(self.session):
                    rent = self.load_rent(rent_id, lock=True)
                    if rent.status != 'reserved' or rent.actual_end_time is not None:
                        continue
                    rent.status = 'canceled'
                    refresh_spot_status(rent.spot, now, self.offset_hours, session=self.session)
                expired.append(rent_id)
            except RentError as err:
                logger.warning("Expiring reservation %s failed: %s", rent_id, err.message)
                failures.append({'rent_id': rent_id, 'kind': err.kind, 'message': err.message})

        logger.info("Expired %d reservation(s)", len(expired))
        return {'expired': expired, 'failures': failures}
