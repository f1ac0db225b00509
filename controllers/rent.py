from flask import Blueprint, request, current_app
from flask_login import login_required, current_user

from controllers.response import success_response, error_response
from services.booking import BookingService
from services.settlement import SettlementService

rent_bp = Blueprint('rent', __name__, url_prefix='/api/rents')


def _booking():
    return BookingService.from_app(current_app)


def _settlement():
    return SettlementService.from_app(current_app)


def _window():
    data = request.get_json(silent=True) or {}
    missing = [key for key in ('spot_id', 'start_time', 'end_time') if not data.get(key)]
    if missing:
        return None, error_response('Invalid input', f"missing field(s): {', '.join(missing)}", 400,
                                    kind='VALIDATION')
    return data, None


# --- RENT A SPOT NOW ---
@rent_bp.route('', methods=['POST'])
@login_required
def rent_spot():
    data, error = _window()
    if error:
        return error
    rent = _booking().book_rental(data['spot_id'], current_user.id, data['start_time'], data['end_time'])
    return success_response('Rental created', rent.to_dict(), 201)


# --- RESERVE A SPOT AHEAD ---
@rent_bp.route('/reservations', methods=['POST'])
@login_required
def reserve_spot():
    data, error = _window()
    if error:
        return error
    rent = _booking().book_reservation(data['spot_id'], current_user.id, data['start_time'], data['end_time'])
    return success_response('Reservation created', rent.to_dict(), 201)


@rent_bp.route('/<int:rent_id>/confirm', methods=['POST'])
@login_required
def confirm(rent_id):
    rent = _booking().confirm_reservation(rent_id, caller_id=current_user.id)
    return success_response('Reservation confirmed', rent.to_dict())


@rent_bp.route('/<int:rent_id>/cancel', methods=['POST'])
@login_required
def cancel(rent_id):
    rent = _booking().cancel_rental(rent_id, current_user.id, is_admin=current_user.role == 'admin')
    return success_response('Rental canceled', rent.to_dict())


# --- LEAVE AND PAY ---
@rent_bp.route('/<int:rent_id>/leave', methods=['POST'])
@login_required
def leave(rent_id):
    data = request.get_json(silent=True) or {}
    result = _settlement().settle_rental(rent_id, data.get('end_time'), caller_id=current_user.id,
                                         is_admin=current_user.role == 'admin')
    return success_response('Rental settled', {
        'parking_record': result['rent'].to_dict(),
        'total_cost': result['total_cost'],
    })


@rent_bp.route('', methods=['GET'])
@login_required
def history():
    return success_response('OK', _booking().rent_history(current_user.id))


@rent_bp.route('/current', methods=['GET'])
@login_required
def current():
    rents = _booking().current_rents(current_user.id)
    return success_response('OK', [rent.to_dict() for rent in rents])


@rent_bp.route('/total-cost', methods=['GET'])
@login_required
def total_cost():
    return success_response('OK', {'total_cost': _booking().total_cost(current_user.id)})


@rent_bp.route('/<int:rent_id>', methods=['GET'])
@login_required
def detail(rent_id):
    rent = _booking().get_rent(rent_id, current_user.id, is_admin=current_user.role == 'admin')
    return success_response('OK', rent.to_dict())
