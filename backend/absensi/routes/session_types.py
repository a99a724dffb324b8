from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from absensi.models import SessionType, Session
from absensi.extensions import db
from utils.audit import log_event
from utils.decorators import role_required, current_user
from utils.errors import NotFoundError, ValidationError, ConflictError
from utils.responses import success, success_list
from utils.validation import parse_time, parse_int, parse_bool

session_types_bp = Blueprint('session_types', __name__)


def get_session_type_or_404(session_type_id):
    session_type = db.session.get(SessionType, session_type_id)
    if not session_type:
        raise NotFoundError(f"Session type with id {session_type_id} not found")
    return session_type


def _check_window(start_time, end_time, exclude_id=None):
    if start_time >= end_time:
        raise ValidationError("End time must be after start time")

    # closed intervals: windows that touch at an edge overlap
    query = SessionType.query.filter(
        SessionType.start_time <= end_time,
        SessionType.end_time >= start_time,
    )
    if exclude_id is not None:
        query = query.filter(SessionType.id != exclude_id)
    clash = query.first()
    if clash:
        raise ConflictError(f"This session type overlaps with existing session type {clash.name}")


@session_types_bp.route('', methods=['GET'])
@jwt_required()
def list_session_types():
    session_types = SessionType.query.order_by(
        SessionType.display_order.asc(), SessionType.start_time.asc()
    ).all()
    return success_list([t.to_dict() for t in session_types])


@session_types_bp.route('/<int:session_type_id>', methods=['GET'])
@jwt_required()
def get_session_type(session_type_id):
    return success(get_session_type_or_404(session_type_id).to_dict())


@session_types_bp.route('', methods=['POST'])
@jwt_required()
@role_required('admin')
def create_session_type():
    data = request.get_json(silent=True) or {}
    name = str(data.get('name') or '').strip()
    if not name:
        raise ValidationError("Session type name is required")

    start_time = parse_time(data.get('startTime'), 'startTime')
    end_time = parse_time(data.get('endTime'), 'endTime')
    _check_window(start_time, end_time)

    session_type = SessionType(
        name=name,
        description=data.get('description'),
        start_time=start_time,
        end_time=end_time,
        display_order=parse_int(data['displayOrder'], 'displayOrder') if data.get('displayOrder') is not None else 0,
        is_active=parse_bool(data['isActive'], 'isActive') if data.get('isActive') is not None else True,
    )
    db.session.add(session_type)
    db.session.commit()
    return success(session_type.to_dict(), 201)


@session_types_bp.route('/<int:session_type_id>', methods=['PUT'])
@jwt_required()
@role_required('admin')
def update_session_type(session_type_id):
    session_type = get_session_type_or_404(session_type_id)
    data = request.get_json(silent=True) or {}

    start_time = parse_time(data['startTime'], 'startTime') if data.get('startTime') else session_type.start_time
    end_time = parse_time(data['endTime'], 'endTime') if data.get('endTime') else session_type.end_time
    if data.get('startTime') or data.get('endTime'):
        _check_window(start_time, end_time, exclude_id=session_type.id)

    if data.get('name') is not None:
        name = str(data['name']).strip()
        if not name:
            raise ValidationError("Session type name cannot be empty")
        session_type.name = name
    if 'description' in data:
        session_type.description = data['description']
    if data.get('displayOrder') is not None:
        session_type.display_order = parse_int(data['displayOrder'], 'displayOrder')
    if data.get('isActive') is not None:
        session_type.is_active = parse_bool(data['isActive'], 'isActive')
    session_type.start_time = start_time
    session_type.end_time = end_time

    db.session.commit()
    return success(session_type.to_dict())


@session_types_bp.route('/<int:session_type_id>', methods=['DELETE'])
@jwt_required()
@role_required('admin')
def delete_session_type(session_type_id):
    session_type = get_session_type_or_404(session_type_id)

    session_count = Session.query.filter_by(session_type_id=session_type.id).count()
    if session_count > 0:
        raise ConflictError(f"Cannot delete session type with {session_count} associated sessions")

    db.session.delete(session_type)
    db.session.commit()

    log_event("SESSION_TYPE_DELETED", user_id=current_user().id, ip=request.remote_addr,
              description=f"Deleted session type {session_type.name}")
    return success({})
