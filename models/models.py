from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from datetime import datetime

db = SQLAlchemy()

PARKING_TYPES = ('mechanical', 'flat')
PRICING_TYPES = ('hourly', 'monthly')
SPOT_STATUSES = ('available', 'occupied', 'reserved')
RENT_STATUSES = ('pending', 'reserved', 'canceled', 'completed')
OPEN_RENT_STATUSES = ('pending', 'reserved')
TERMINAL_RENT_STATUSES = ('canceled', 'completed')


# ----- Member Table -----
class Member(db.Model, UserMixin):
    __tablename__ = 'members'
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(80), unique=True, nullable=False)
    full_name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='renter')  # 'renter', 'shared_owner' or 'admin'
    # Removing a member removes their rentals and the spots they share
    rents = db.relationship('Rent', back_populates='member', cascade="all, delete-orphan")
    spots = db.relationship('ParkingSpot', back_populates='owner', cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Member {self.email}>"

    def to_dict(self):
        return {
            'member_id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
        }


# ----- ParkingSpot Table -----
class ParkingSpot(db.Model):
    __tablename__ = 'parking_spots'
    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False, index=True)
    parking_type = db.Column(db.String(20), nullable=False)  # 'mechanical' or 'flat'
    floor_level = db.Column(db.String(20), nullable=True)
    location = db.Column(db.String(100), nullable=False)
    pricing_type = db.Column(db.String(20), nullable=False)  # 'hourly' or 'monthly'
    price_per_half_hour = db.Column(db.Float, nullable=False, default=20.0)
    daily_max_price = db.Column(db.Float, nullable=False, default=300.0)
    monthly_price = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=False, default=0.0)
    latitude = db.Column(db.Float, nullable=False, default=0.0)
    # Derived from the spot's rentals and calendar, see services.status
    status = db.Column(db.String(20), nullable=False, default='available')

    owner = db.relationship('Member', back_populates='spots')
    rents = db.relationship('Rent', back_populates='spot', cascade="all, delete-orphan")
    available_days = db.relationship('AvailableDay', back_populates='spot', cascade="all, delete-orphan",
                                     order_by='AvailableDay.available_date')

    def __repr__(self):
        return f"<ParkingSpot {self.id} (Member {self.member_id}) {self.status}>"

    def to_dict(self):
        return {
            'spot_id': self.id,
            'member_id': self.member_id,
            'parking_type': self.parking_type,
            'floor_level': self.floor_level,
            'location': self.location,
            'pricing_type': self.pricing_type,
            'price_per_half_hour': self.price_per_half_hour,
            'daily_max_price': self.daily_max_price,
            'monthly_price': self.monthly_price,
            'longitude': self.longitude,
            'latitude': self.latitude,
            'status': self.status,
        }


# ----- AvailableDay Table -----
class AvailableDay(db.Model):
    __tablename__ = 'parking_spot_available_days'
    id = db.Column(db.Integer, primary_key=True)
    spot_id = db.Column(db.Integer, db.ForeignKey('parking_spots.id'), nullable=False)
    available_date = db.Column(db.Date, nullable=False)
    is_available = db.Column(db.Boolean, nullable=False, default=True)
    __table_args__ = (db.UniqueConstraint('spot_id', 'available_date', name='_spot_day_uc'),)

    spot = db.relationship('ParkingSpot', back_populates='available_days')

    def __repr__(self):
        return f"<AvailableDay {self.available_date} (Spot {self.spot_id}) {self.is_available}>"

    def to_dict(self):
        return {
            'date': self.available_date.isoformat(),
            'is_available': self.is_available,
        }


# ----- Rent Table -----
class Rent(db.Model):
    __tablename__ = 'rents'
    id = db.Column(db.Integer, primary_key=True)
    member_id = db.Column(db.Integer, db.ForeignKey('members.id'), nullable=False, index=True)
    spot_id = db.Column(db.Integer, db.ForeignKey('parking_spots.id'), nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    actual_end_time = db.Column(db.DateTime, nullable=True)
    total_cost = db.Column(db.Float, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='pending')
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    __table_args__ = (
        db.CheckConstraint('start_time < end_time', name='_rent_window_ck'),
    )

    member = db.relationship('Member', back_populates='rents')
    spot = db.relationship('ParkingSpot', back_populates='rents')

    def __repr__(self):
        return f"<Rent {self.id} (Member {self.member_id} - Spot {self.spot_id}) {self.status}>"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_RENT_STATUSES

    def to_dict(self):
        return {
            'rent_id': self.id,
            'member_id': self.member_id,
            'spot_id': self.spot_id,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'actual_end_time': self.actual_end_time.isoformat() if self.actual_end_time else None,
            'total_cost': self.total_cost,
            'status': self.status,
        }
