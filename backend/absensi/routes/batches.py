from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from absensi.models import Batch, User, Session
from absensi.models.Batch import MIN_YEAR, MAX_YEAR
from absensi.extensions import db
from utils.audit import log_event
from utils.decorators import role_required, current_user
from utils.errors import NotFoundError, ValidationError, ConflictError
from utils.responses import success, success_list
from utils.validation import parse_int, parse_bool

batches_bp = Blueprint('batches', __name__)


def get_batch_or_404(batch_id):
    batch = db.session.get(Batch, batch_id)
    if not batch:
        raise NotFoundError(f"Batch with id {batch_id} not found")
    return batch


def _year(value):
    year = parse_int(value, "year")
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
    return year


def _ensure_unique(name, year, exclude_id=None):
    query = Batch.query.filter_by(name=name, year=year)
    if exclude_id is not None:
        query = query.filter(Batch.id != exclude_id)
    if query.first():
        raise ConflictError("Batch with this name and year already exists")


@batches_bp.route('', methods=['GET'])
@jwt_required()
def list_batches():
    query = Batch.query
    if (is_active := request.args.get('isActive')) is not None:
        query = query.filter(Batch.is_active == parse_bool(is_active, 'isActive'))
    batches = query.order_by(Batch.year.desc(), Batch.name.asc()).all()
    return success_list([b.to_dict() for b in batches])


@batches_bp.route('/<int:batch_id>', methods=['GET'])
@jwt_required()
def get_batch(batch_id):
    return success(get_batch_or_404(batch_id).to_dict(include_users=True))


@batches_bp.route('', methods=['POST'])
@jwt_required()
@role_required('admin')
def create_batch():
    data = request.get_json(silent=True) or {}
    name = str(data.get('name') or '').strip()
    if not name:
        raise ValidationError("Batch name is required")
    year = _year(data.get('year'))
    _ensure_unique(name, year)

    batch = Batch(
        name=name,
        year=year,
        is_active=parse_bool(data['isActive'], 'isActive') if data.get('isActive') is not None else True,
    )
    db.session.add(batch)
    db.session.commit()
    return success(batch.to_dict(), 201)


@batches_bp.route('/<int:batch_id>', methods=['PUT'])
@jwt_required()
@role_required('admin')
def update_batch(batch_id):
    batch = get_batch_or_404(batch_id)
    data = request.get_json(silent=True) or {}

    name = batch.name
    if data.get('name') is not None:
        name = str(data['name']).strip()
        if not name:
            raise ValidationError("Batch name cannot be empty")
    year = _year(data['year']) if data.get('year') is not None else batch.year

    if (name, year) != (batch.name, batch.year):
        _ensure_unique(name, year, exclude_id=batch.id)

    batch.name = name
    batch.year = year
    if data.get('isActive') is not None:
        batch.is_active = parse_bool(data['isActive'], 'isActive')

    db.session.commit()
    return success(batch.to_dict())


@batches_bp.route('/<int:batch_id>', methods=['DELETE'])
@jwt_required()
@role_required('admin')
def delete_batch(batch_id):
    batch = get_batch_or_404(batch_id)

    user_count = User.query.filter_by(batch_id=batch.id).count()
    if user_count > 0:
        raise ConflictError(f"Cannot delete batch with {user_count} associated users")

    session_count = Session.query.filter_by(batch_id=batch.id).count()
    if session_count > 0:
        raise ConflictError(f"Cannot delete batch with {session_count} associated sessions")

    db.session.delete(batch)
    db.session.commit()

    log_event("BATCH_DELETED", user_id=current_user().id, ip=request.remote_addr,
              description=f"Deleted batch {batch.name} ({batch.year})")
    return success({})
