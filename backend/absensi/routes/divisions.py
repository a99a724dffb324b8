from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from absensi.models import Division, User, Session
from absensi.extensions import db
from utils.audit import log_event
from utils.decorators import role_required, current_user
from utils.errors import NotFoundError, ValidationError, ConflictError
from utils.responses import success, success_list
from utils.validation import parse_bool

divisions_bp = Blueprint('divisions', __name__)


def get_division_or_404(division_id):
    division = db.session.get(Division, division_id)
    if not division:
        raise NotFoundError(f"Division with id {division_id} not found")
    return division


def _ensure_unique(name, exclude_id=None):
    query = Division.query.filter_by(name=name)
    if exclude_id is not None:
        query = query.filter(Division.id != exclude_id)
    if query.first():
        raise ConflictError("Division with this name already exists")


@divisions_bp.route('', methods=['GET'])
@jwt_required()
def list_divisions():
    divisions = Division.query.order_by(Division.name.asc()).all()
    return success_list([d.to_dict() for d in divisions])


@divisions_bp.route('/<int:division_id>', methods=['GET'])
@jwt_required()
def get_division(division_id):
    return success(get_division_or_404(division_id).to_dict(include_users=True))


@divisions_bp.route('', methods=['POST'])
@jwt_required()
@role_required('admin')
def create_division():
    data = request.get_json(silent=True) or {}
    name = str(data.get('name') or '').strip()
    if not name:
        raise ValidationError("Division name is required")
    _ensure_unique(name)

    division = Division(
        name=name,
        description=data.get('description'),
        is_active=parse_bool(data['isActive'], 'isActive') if data.get('isActive') is not None else True,
    )
    db.session.add(division)
    db.session.commit()
    return success(division.to_dict(), 201)


@divisions_bp.route('/<int:division_id>', methods=['PUT'])
@jwt_required()
@role_required('admin')
def update_division(division_id):
    division = get_division_or_404(division_id)
    data = request.get_json(silent=True) or {}

    if data.get('name') is not None:
        name = str(data['name']).strip()
        if not name:
            raise ValidationError("Division name cannot be empty")
        if name != division.name:
            _ensure_unique(name, exclude_id=division.id)
        division.name = name
    if 'description' in data:
        division.description = data['description']
    if data.get('isActive') is not None:
        division.is_active = parse_bool(data['isActive'], 'isActive')

    db.session.commit()
    return success(division.to_dict())


@divisions_bp.route('/<int:division_id>', methods=['DELETE'])
@jwt_required()
@role_required('admin')
def delete_division(division_id):
    division = get_division_or_404(division_id)

    user_count = User.query.filter_by(division_id=division.id).count()
    if user_count > 0:
        raise ConflictError(f"Cannot delete division with {user_count} associated users")

    session_count = Session.query.filter_by(division_id=division.id).count()
    if session_count > 0:
        raise ConflictError(f"Cannot delete division with {session_count} associated sessions")

    db.session.delete(division)
    db.session.commit()

    log_event("DIVISION_DELETED", user_id=current_user().id, ip=request.remote_addr,
              description=f"Deleted division {division.name}")
    return success({})
