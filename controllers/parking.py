from flask import Blueprint, request, current_app
from flask_login import login_required, current_user

from controllers.response import success_response, error_response
from services.parking import ParkingService

parking_bp = Blueprint('parking', __name__, url_prefix='/api/spots')


def _parking():
    return ParkingService.from_app(current_app)


# --- SHARE SPOT ---
@parking_bp.route('', methods=['POST'])
@login_required
def share():
    if current_user.role != 'shared_owner':
        return error_response('Not Authorized', 'only shared_owner can share parking spots', 403,
                              kind='FORBIDDEN')
    data = request.get_json(silent=True) or {}
    spot = _parking().share_spot(current_user.id, data)
    return success_response('Parking spot shared', spot.to_dict(), 201)


@parking_bp.route('/available', methods=['GET'])
@login_required
def available():
    spots = _parking().available_spots()
    return success_response('OK', [spot.to_dict() for spot in spots])


# --- SPOT DETAIL (spot + its rentals) ---
@parking_bp.route('/<int:spot_id>', methods=['GET'])
@login_required
def detail(spot_id):
    return success_response('OK', _parking().spot_detail(spot_id))


@parking_bp.route('/<int:spot_id>', methods=['PUT'])
@login_required
def update(spot_id):
    updates = request.get_json(silent=True) or {}
    spot = _parking().update_spot(spot_id, current_user.id, updates)
    return success_response('Parking spot updated', spot.to_dict())


@parking_bp.route('/<int:spot_id>/available-days', methods=['GET'])
@login_required
def calendar(spot_id):
    days = _parking().calendar(spot_id)
    return success_response('OK', [day.to_dict() for day in days])


@parking_bp.route('/<int:spot_id>/available-days', methods=['PUT'])
@login_required
def set_calendar(spot_id):
    data = request.get_json(silent=True) or {}
    days = _parking().set_calendar(spot_id, current_user.id, data.get('available_days'))
    return success_response('Calendar updated', [day.to_dict() for day in days])
