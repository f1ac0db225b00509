import logging

from models.models import (
    Member, ParkingSpot, Rent, PARKING_TYPES, PRICING_TYPES, OPEN_RENT_STATUSES,
)
from services.availability import parse_days, set_available_days, list_available_days
from services.base import BaseService
from services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from services.status import current_status, refresh_spot_status
from services.unit import atomic

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('floor_level', 'location', 'longitude', 'latitude',
                    'price_per_half_hour', 'daily_max_price', 'monthly_price')
PRICE_FIELDS = ('price_per_half_hour', 'daily_max_price', 'monthly_price')


def _number(fields, key):
    value = fields[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"invalid {key} type: must be a number")
    return float(value)


class ParkingService(BaseService):

    def _owned_spot(self, spot_id, caller_id, lock=False):
        spot = self.load_spot(spot_id, lock=lock)
        if spot.member_id != caller_id:
            raise ForbiddenError("only the spot's owner can change it")
        return spot

    def share_spot(self, owner_id, data):
        """Publish a new spot owned by ``owner_id``."""
        parking_type = data.get('parking_type')
        pricing_type = data.get('pricing_type')
        if parking_type not in PARKING_TYPES:
            raise ValidationError("invalid parking_type: must be 'mechanical' or 'flat'")
        if pricing_type not in PRICING_TYPES:
            raise ValidationError("invalid pricing_type: must be 'monthly' or 'hourly'")
        if not data.get('location'):
            raise ValidationError("location is required")

        fields = {key: data[key] for key in UPDATABLE_FIELDS if data.get(key) is not None}
        for key in PRICE_FIELDS + ('longitude', 'latitude'):
            if key in fields:
                fields[key] = _number(fields, key)
        for key in PRICE_FIELDS:
            if key in fields and fields[key] <= 0:
                raise ValidationError(f"{key} must be positive")
        fields.setdefault('price_per_half_hour', self.settings.default_price_per_half_hour)
        fields.setdefault('daily_max_price', self.settings.default_daily_max_price)
        if pricing_type == 'monthly' and 'monthly_price' not in fields:
            raise ValidationError("monthly_price is required for monthly spots")
        days = parse_days(data.get('available_days') or [])

        with atomic(self.session):
            owner = self.session.get(Member, owner_id)
            if owner is None:
                raise NotFoundError(f"member {owner_id} not found")
            if owner.role != 'shared_owner':
                raise ForbiddenError("only shared_owner can share parking spots")
            spot = ParkingSpot(member_id=owner_id, parking_type=parking_type,
                               pricing_type=pricing_type, **fields)
            self.session.add(spot)
            self.session.flush()
            set_available_days(spot, days, session=self.session)
            refresh_spot_status(spot, self.now(), self.offset_hours, session=self.session)

        logger.info("Member %s shared parking spot %s", owner_id, spot.id)
        return spot

    def update_spot(self, spot_id, caller_id, updates):
        if not updates:
            raise ValidationError("no valid fields to update")
        for key in updates:
            if key not in UPDATABLE_FIELDS:
                raise ValidationError(f"invalid field: {key}")

        with atomic(self.session):
            spot = self._owned_spot(spot_id, caller_id, lock=True)
            for key, value in updates.items():
                if key in ('location', 'floor_level'):
                    if not isinstance(value, str):
                        raise ValidationError(f"invalid {key} type: must be a string")
                    setattr(spot, key, value)
                    continue
                number = _number(updates, key)
                if key in PRICE_FIELDS and number <= 0:
                    raise ValidationError(f"{key} must be positive")
                setattr(spot, key, number)
        logger.info("Parking spot %s updated: %s", spot_id, ', '.join(sorted(updates)))
        return spot

    def set_calendar(self, spot_id, caller_id, entries):
        days = parse_days(entries)
        with atomic(self.session):
            spot = self._owned_spot(spot_id, caller_id, lock=True)
            set_available_days(spot, days, session=self.session)
            refresh_spot_status(spot, self.now(), self.offset_hours, session=self.session)
        return list_available_days(spot_id, session=self.session)

    def calendar(self, spot_id):
        self.load_spot(spot_id)
        return list_available_days(spot_id, session=self.session)

    def available_spots(self):
        """Spots whose derived status is currently ``available``."""
        now = self.now()
        spots = self.session.query(ParkingSpot).order_by(ParkingSpot.id).all()
        return [spot for spot in spots
                if current_status(spot, now, self.offset_hours, session=self.session) == 'available']

    def spot_detail(self, spot_id):
        spot = self.load_spot(spot_id)
        detail = spot.to_dict()
        detail['status'] = current_status(spot, self.now(), self.offset_hours, session=self.session)
        try:
            rents = (self.session.query(Rent)
                     .filter_by(spot_id=spot_id)
                     .order_by(Rent.start_time.desc())
                     .all())
            detail['rents'] = [rent.to_dict() for rent in rents]
        except Exception:
            # display-only enrichment
            logger.exception("Could not load rents for spot %s", spot_id)
            self.session.rollback()
            detail['rents'] = []
        return detail

    def remove_member(self, member_id):
        """Delete a member together with their rentals and shared spots."""
        with atomic(self.session):
            member = self.session.get(Member, member_id)
            if member is None:
                raise NotFoundError(f"member {member_id} not found")
            busy = (self.session.query(Rent)
                    .join(ParkingSpot, Rent.spot_id == ParkingSpot.id)
                    .filter(ParkingSpot.member_id == member_id,
                            Rent.member_id != member_id,
                            Rent.status.in_(OPEN_RENT_STATUSES),
                            Rent.actual_end_time.is_(None))
                    .count())
            if busy:
                raise ConflictError(f"cannot delete: {busy} open rental(s) on this member's spots",
                                    kind='ACTIVE_RENT_CONFLICT')
            spot_ids = {rent.spot_id for rent in member.rents}
            self.session.delete(member)
            self.session.flush()
            now = self.now()
            for spot_id in spot_ids:
                spot = self.session.get(ParkingSpot, spot_id)
                if spot is not None:
                    refresh_spot_status(spot, now, self.offset_hours, session=self.session)
        logger.info("Member %s removed", member_id)
