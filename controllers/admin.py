from flask import Blueprint, request, current_app
from flask_login import login_required, current_user

from controllers.response import success_response, error_response
from models.models import db, Member, ParkingSpot, Rent, SPOT_STATUSES
from services.parking import ParkingService
from services.settlement import SettlementService
from services.status import current_status, sync_spot_statuses
from services.timeutil import format_duration

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _not_admin():
    return error_response('Not Authorized', 'admin role required', 403, kind='FORBIDDEN')


# --- ADMIN SUMMARY ---
@admin_bp.route('/summary')
@login_required
def summary():
    if current_user.role != 'admin':
        return _not_admin()
    service = ParkingService.from_app(current_app)
    now = service.now()
    spots = ParkingSpot.query.all()
    statuses = [current_status(s, now, service.offset_hours) for s in spots]
    total_revenue = db.session.query(db.func.sum(Rent.total_cost)).filter(Rent.status == 'completed').scalar() or 0
    counts = {
        'total_members': Member.query.filter(Member.role != 'admin').count(),
        'total_spots': len(spots),
        'total_rents': Rent.query.count(),
        'total_revenue': round(total_revenue, 2),
    }
    for status in SPOT_STATUSES:
        counts[status] = statuses.count(status)
    return success_response('OK', counts)


# --- MEMBERS ---
@admin_bp.route('/members')
@login_required
def members_list():
    if current_user.role != 'admin':
        return _not_admin()
    members = Member.query.filter(Member.role != 'admin').order_by(Member.id).all()
    return success_response('OK', [m.to_dict() for m in members])


@admin_bp.route('/members/<int:member_id>', methods=['DELETE'])
@login_required
def member_delete(member_id):
    if current_user.role != 'admin':
        return _not_admin()
    ParkingService.from_app(current_app).remove_member(member_id)
    return success_response('Member deleted')


# --- PARKING RECORDS: All Rents, Duration, Cost ---
@admin_bp.route('/rents')
@login_required
def parking_records():
    if current_user.role != 'admin':
        return _not_admin()
    records = []
    for rent in Rent.query.order_by(Rent.start_time.desc()).all():
        entry = rent.to_dict()
        entry['duration'] = format_duration(rent.actual_end_time - rent.start_time) if rent.actual_end_time else None
        records.append(entry)
    return success_response('OK', records)


# --- BILLING JOBS (normally run by the timer through the CLI) ---
@admin_bp.route('/settlements', methods=['POST'])
@login_required
def run_settlement():
    if current_user.role != 'admin':
        return _not_admin()
    data = request.get_json(silent=True) or {}
    result = SettlementService.from_app(current_app).run_batch_settlement(data.get('now'))
    return success_response('Batch settlement finished', result)


@admin_bp.route('/reservations/expire', methods=['POST'])
@login_required
def expire_reservations():
    if current_user.role != 'admin':
        return _not_admin()
    result = SettlementService.from_app(current_app).expire_reservations()
    return success_response('Expired reservations canceled', result)


@admin_bp.route('/spots/sync', methods=['POST'])
@login_required
def sync_spots():
    if current_user.role != 'admin':
        return _not_admin()
    service = SettlementService.from_app(current_app)
    changed = sync_spot_statuses(service.now(), service.offset_hours)
    return success_response('Spot statuses synced', {'changed': changed})
