from datetime import datetime

from flask import Blueprint, request, send_file
from flask_jwt_extended import jwt_required
from sqlalchemy.orm import joinedload
from absensi.models import Attendance
from absensi.extensions import db
from absensi.routes.sessions import get_session_or_404
from utils.attendance import (
    NOT_PROVIDED,
    create_attendance_records,
    generate_attendance_for_batch,
    bulk_update_attendance,
    bulk_create_update_filtered_attendance,
    update_attendance,
    users_for_attendance,
)
from utils.decorators import role_required, current_user
from utils.errors import NotFoundError, ValidationError
from utils.reports import get_attendance_stats, get_attendance_reports
from utils.responses import success, success_list
from utils.spreadsheets import attendance_report_csv
from utils.validation import parse_id_list, parse_optional_date, parse_optional_int, parse_datetime

# /sessions/<id>/... endpoints operating on a session's roll
session_attendance_bp = Blueprint('session_attendance', __name__)
attendance_bp = Blueprint('attendance', __name__)


def _report_filters():
    return {
        "start_date": parse_optional_date(request.args.get('startDate'), 'startDate'),
        "end_date": parse_optional_date(request.args.get('endDate'), 'endDate'),
        "batch_id": parse_optional_int(request.args.get('batchId'), 'batchId'),
        "division_id": parse_optional_int(request.args.get('divisionId'), 'divisionId'),
        "session_type_id": parse_optional_int(request.args.get('sessionTypeId'), 'sessionTypeId'),
    }


@session_attendance_bp.route('/<int:session_id>/attendance', methods=['GET'])
@jwt_required()
def get_attendance_by_session(session_id):
    get_session_or_404(session_id)
    records = Attendance.query.options(
        joinedload(Attendance.user),
        joinedload(Attendance.session),
    ).filter_by(session_id=session_id).order_by(Attendance.created_at.asc(), Attendance.id.asc()).all()
    return success_list([a.to_dict(include_user=True, include_session=True) for a in records])


@session_attendance_bp.route('/<int:session_id>/attendance', methods=['POST'])
@jwt_required()
@role_required('admin', 'staff')
def create_attendance(session_id):
    session = get_session_or_404(session_id)
    data = request.get_json(silent=True) or {}

    user_ids = parse_id_list(data.get('userIds'), 'userIds')
    rows = create_attendance_records(session, user_ids, current_user(), data.get('defaultStatus'))

    return success_list(
        [a.to_dict(include_user=True) for a in rows],
        201,
        message=f"{len(rows)} attendance records created",
    )


@session_attendance_bp.route('/<int:session_id>/attendance', methods=['PUT'])
@jwt_required()
@role_required('admin', 'staff')
def bulk_update(session_id):
    session = get_session_or_404(session_id)
    data = request.get_json(silent=True) or {}

    rows = bulk_update_attendance(session, data.get('attendanceData'), current_user())
    return success_list(
        [a.to_dict(include_user=True) for a in rows],
        message=f"{len(rows)} attendance records updated",
    )


@session_attendance_bp.route('/<int:session_id>/generate-attendance', methods=['POST'])
@jwt_required()
@role_required('admin', 'staff')
def generate_attendance(session_id):
    session = get_session_or_404(session_id)
    data = request.get_json(silent=True) or {}

    rows = generate_attendance_for_batch(session, current_user(), data.get('defaultStatus'))
    return success(
        [a.to_dict() for a in rows],
        201,
        count=len(rows),
        message=f"Generated {len(rows)} attendance records for batch {session.batch.name}",
    )


@session_attendance_bp.route('/<int:session_id>/users-for-attendance', methods=['GET'])
@jwt_required()
@role_required('admin', 'staff')
def get_users_for_attendance(session_id):
    session = get_session_or_404(session_id)
    pairs = users_for_attendance(
        session,
        batch_id=parse_optional_int(request.args.get('batchId'), 'batchId'),
        division_id=parse_optional_int(request.args.get('divisionId'), 'divisionId'),
    )

    result = []
    for user, attendance in pairs:
        item = user.to_dict(include_related=True)
        item["attendance"] = attendance.to_dict() if attendance else None
        result.append(item)
    return success_list(result)


@session_attendance_bp.route('/<int:session_id>/filtered-attendance', methods=['POST'])
@jwt_required()
@role_required('admin', 'staff')
def filtered_attendance(session_id):
    session = get_session_or_404(session_id)
    data = request.get_json(silent=True) or {}

    user_ids = parse_id_list(data.get('userIds'), 'userIds')
    if not data.get('status'):
        raise ValidationError("status is required")

    existing, created = bulk_create_update_filtered_attendance(
        session,
        user_ids,
        data['status'],
        current_user(),
        notes=data.get('notes', NOT_PROVIDED),
    )

    total = len(existing) + len(created)
    return success(
        {"updated": len(existing), "created": len(created), "total": total},
        message=f"Updated {len(existing)} and created {len(created)} attendance records",
    )


@attendance_bp.route('/<int:attendance_id>', methods=['PUT'])
@jwt_required()
@role_required('admin', 'staff')
def update_attendance_record(attendance_id):
    attendance = db.session.get(Attendance, attendance_id)
    if not attendance:
        raise NotFoundError(f"Attendance record with id {attendance_id} not found")

    data = request.get_json(silent=True) or {}
    if not data.get('status'):
        raise ValidationError("status is required")

    check_in_time = None
    if data.get('checkInTime'):
        check_in_time = parse_datetime(data['checkInTime'], 'checkInTime')

    update_attendance(
        attendance,
        data['status'],
        current_user(),
        notes=data.get('notes', NOT_PROVIDED),
        check_in_time=check_in_time,
    )
    return success(attendance.to_dict(include_user=True))


@attendance_bp.route('/stats', methods=['GET'])
@jwt_required()
@role_required('admin', 'staff')
def attendance_stats():
    filters = _report_filters()
    return success(get_attendance_stats(filters["start_date"], filters["end_date"], filters["batch_id"]))


@attendance_bp.route('/reports', methods=['GET'])
@jwt_required()
@role_required('admin', 'staff')
def attendance_reports():
    return success(get_attendance_reports(**_report_filters()))


@attendance_bp.route('/reports/export', methods=['GET'])
@jwt_required()
@role_required('admin', 'staff')
def export_attendance_report():
    buffer = attendance_report_csv(**_report_filters())
    return send_file(
        buffer,
        mimetype="text/csv",
        as_attachment=True,
        download_name=f"attendance_report_{datetime.utcnow():%Y%m%d_%H%M%S}.csv",
    )
