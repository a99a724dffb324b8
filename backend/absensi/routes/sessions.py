from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from sqlalchemy.orm import joinedload
from absensi.models import Session, SessionType, Batch, Division, Attendance, SessionStatus, SESSION_TRANSITIONS
from absensi.extensions import db
from utils.attendance import add_default_attendance, regenerate_default_attendance
from utils.audit import log_event
from utils.decorators import role_required, current_user
from utils.errors import NotFoundError, ValidationError, ConflictError
from utils.responses import success, success_list
from utils.validation import (
    parse_date, parse_optional_date, parse_time, parse_int, parse_optional_int, parse_enum
)

sessions_bp = Blueprint('sessions', __name__)


def get_session_or_404(session_id):
    session = db.session.get(Session, session_id)
    if not session:
        raise NotFoundError(f"Session with id {session_id} not found")
    return session


def _lookup(model, ref_id, label):
    obj = db.session.get(model, ref_id)
    if not obj:
        raise NotFoundError(f"{label} with id {ref_id} not found")
    return obj


def _ensure_unique(date, session_type_id, batch_id, exclude_id=None):
    query = Session.query.filter_by(date=date, session_type_id=session_type_id, batch_id=batch_id)
    if exclude_id is not None:
        query = query.filter(Session.id != exclude_id)
    if query.first():
        raise ConflictError("A session already exists for this date, session type, and batch")


def _check_transition(current, new):
    if new != current and new not in SESSION_TRANSITIONS[current]:
        raise ValidationError(f"Cannot change session status from {current.value} to {new.value}")


@sessions_bp.route('', methods=['GET'])
@jwt_required()
def list_sessions():
    query = Session.query.options(joinedload(Session.session_type), joinedload(Session.batch))

    if date := parse_optional_date(request.args.get('date'), 'date'):
        query = query.filter(Session.date == date)
    if start_date := parse_optional_date(request.args.get('startDate'), 'startDate'):
        query = query.filter(Session.date >= start_date)
    if end_date := parse_optional_date(request.args.get('endDate'), 'endDate'):
        query = query.filter(Session.date <= end_date)
    if (batch_id := parse_optional_int(request.args.get('batchId'), 'batchId')) is not None:
        query = query.filter(Session.batch_id == batch_id)
    if (type_id := parse_optional_int(request.args.get('sessionTypeId'), 'sessionTypeId')) is not None:
        query = query.filter(Session.session_type_id == type_id)
    if status := request.args.get('status'):
        query = query.filter(Session.status == parse_enum(SessionStatus, status))

    sessions = query.order_by(Session.date.desc(), Session.created_at.desc(), Session.id.desc()).all()
    return success_list([s.to_dict() for s in sessions])


@sessions_bp.route('/<int:session_id>', methods=['GET'])
@jwt_required()
def get_session(session_id):
    return success(get_session_or_404(session_id).to_dict(include_attendance=True))


@sessions_bp.route('', methods=['POST'])
@jwt_required()
@role_required('admin', 'staff')
def create_session():
    data = request.get_json(silent=True) or {}

    date = parse_date(data.get('date'))
    session_type = _lookup(SessionType, parse_int(data.get('sessionTypeId'), 'sessionTypeId'), "Session type")
    batch = _lookup(Batch, parse_int(data.get('batchId'), 'batchId'), "Batch")
    division_id = parse_optional_int(data.get('divisionId'), 'divisionId')
    if division_id is not None:
        _lookup(Division, division_id, "Division")

    _ensure_unique(date, session_type.id, batch.id)

    start_time = parse_time(data['startTime'], 'startTime') if data.get('startTime') else session_type.start_time
    end_time = parse_time(data['endTime'], 'endTime') if data.get('endTime') else session_type.end_time
    if start_time >= end_time:
        raise ValidationError("End time must be after start time")

    session = Session(
        date=date,
        start_time=start_time,
        end_time=end_time,
        session_type_id=session_type.id,
        batch_id=batch.id,
        division_id=division_id,
        notes=data.get('notes'),
        status=SessionStatus.scheduled,
    )
    db.session.add(session)
    rows = add_default_attendance(session)
    db.session.commit()

    log_event("SESSION_CREATED", user_id=current_user().id, ip=request.remote_addr,
              description=f"Session {session.id} on {date} for batch {batch.name} with {len(rows)} attendance rows")
    return success(session.to_dict(), 201)


@sessions_bp.route('/<int:session_id>', methods=['PUT'])
@jwt_required()
@role_required('admin', 'staff')
def update_session(session_id):
    session = get_session_or_404(session_id)
    data = request.get_json(silent=True) or {}

    date = parse_date(data['date']) if data.get('date') else session.date
    session_type_id = session.session_type_id
    if data.get('sessionTypeId'):
        session_type_id = _lookup(SessionType, parse_int(data['sessionTypeId'], 'sessionTypeId'), "Session type").id
    batch_id = session.batch_id
    if data.get('batchId'):
        batch_id = _lookup(Batch, parse_int(data['batchId'], 'batchId'), "Batch").id

    if (date, session_type_id, batch_id) != (session.date, session.session_type_id, session.batch_id):
        _ensure_unique(date, session_type_id, batch_id, exclude_id=session.id)

    status = session.status
    if data.get('status'):
        status = parse_enum(SessionStatus, data['status'])
        _check_transition(session.status, status)

    start_time = parse_time(data['startTime'], 'startTime') if data.get('startTime') else session.start_time
    end_time = parse_time(data['endTime'], 'endTime') if data.get('endTime') else session.end_time
    if start_time and end_time and start_time >= end_time:
        raise ValidationError("End time must be after start time")

    batch_changed = batch_id != session.batch_id

    if 'divisionId' in data:
        division_id = parse_optional_int(data['divisionId'], 'divisionId')
        if division_id is not None:
            _lookup(Division, division_id, "Division")
        session.division_id = division_id
    if 'notes' in data:
        session.notes = data['notes']
    session.date = date
    session.session_type_id = session_type_id
    session.batch_id = batch_id
    session.status = status
    session.start_time = start_time
    session.end_time = end_time

    if batch_changed:
        rows = regenerate_default_attendance(session)
        log_event("SESSION_BATCH_CHANGED", user_id=current_user().id, ip=request.remote_addr,
                  description=f"Session {session.id} moved to batch {batch_id}, {len(rows)} attendance rows regenerated")

    db.session.commit()
    return success(session.to_dict())


@sessions_bp.route('/<int:session_id>', methods=['DELETE'])
@jwt_required()
@role_required('admin')
def delete_session(session_id):
    session = get_session_or_404(session_id)

    removed = Attendance.query.filter_by(session_id=session.id).delete()
    db.session.delete(session)
    db.session.commit()

    log_event("SESSION_DELETED", user_id=current_user().id, ip=request.remote_addr,
              description=f"Deleted session {session_id} and {removed} attendance rows")
    return success({})
