from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from sqlalchemy.orm import joinedload
from absensi.models import User, Role, Attendance, Session
from absensi.extensions import db
from utils.accounts import apply_user_fields
from utils.audit import log_event
from utils.decorators import role_required, current_user, ensure_self_or_staff
from utils.errors import NotFoundError, ValidationError, ForbiddenError
from utils.pagination import paginate, page_meta, DEFAULT_PER_PAGE
from utils.responses import success, success_list
from utils.spreadsheets import read_table, import_users
from utils.validation import parse_enum, parse_optional_int, parse_bool, parse_optional_date


users_bp = Blueprint('users', __name__)


def get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(f"User with id {user_id} not found")
    return user


@users_bp.route('', methods=['GET'])
@jwt_required()
@role_required('admin')
def list_users():
    query = User.query

    if role := request.args.get('role'):
        query = query.filter(User.role == parse_enum(Role, role, 'role'))
    if (batch_id := parse_optional_int(request.args.get('batchId'), 'batchId')) is not None:
        query = query.filter(User.batch_id == batch_id)
    if (division_id := parse_optional_int(request.args.get('divisionId'), 'divisionId')) is not None:
        query = query.filter(User.division_id == division_id)
    if (is_active := request.args.get('isActive')) is not None:
        query = query.filter(User.is_active == parse_bool(is_active, 'isActive'))

    paginated = paginate(
        query.order_by(User.name.asc()),
        request.args.get('search', type=str),
        [User.name, User.email],
        request.args.get('page', 1, type=int),
        request.args.get('perPage', DEFAULT_PER_PAGE, type=int),
    )

    users = [u.to_dict(include_related=True) for u in paginated.items]
    return success_list(users, **page_meta(paginated))


@users_bp.route('', methods=['POST'])
@jwt_required()
@role_required('admin')
def create_user():
    data = request.get_json(silent=True) or {}
    user = apply_user_fields(User(), data, creating=True)
    db.session.add(user)
    db.session.commit()
    return success(user.to_dict(include_related=True), 201)


@users_bp.route('/import', methods=['POST'])
@jwt_required()
@role_required('admin')
def import_users_file():
    file = request.files.get('file')
    if not file or not file.filename:
        raise ValidationError("Upload a CSV or XLSX file in the 'file' field")

    created, skipped = import_users(read_table(file))

    log_event("USERS_IMPORTED", user_id=current_user().id, ip=request.remote_addr,
              description=f"{len(created)} created, {len(skipped)} skipped from {file.filename}")

    return success(
        {"created": [u.to_dict() for u in created], "skipped": skipped},
        201 if created else 200,
        message=f"{len(created)} users imported, {len(skipped)} skipped",
    )


@users_bp.route('/<int:user_id>', methods=['GET'])
@jwt_required()
def get_user(user_id):
    ensure_self_or_staff(current_user(), user_id)
    return success(get_user_or_404(user_id).to_dict(include_related=True))


@users_bp.route('/<int:user_id>', methods=['PUT'])
@jwt_required()
@role_required('admin')
def update_user(user_id):
    user = get_user_or_404(user_id)
    data = request.get_json(silent=True) or {}
    if not data:
        raise ValidationError("No input data provided")

    apply_user_fields(user, data)
    db.session.commit()
    return success(user.to_dict(include_related=True))


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@jwt_required()
@role_required('admin')
def delete_user(user_id):
    user = get_user_or_404(user_id)
    actor = current_user()
    if user.id == actor.id:
        raise ForbiddenError("You cannot delete your own account")

    Attendance.query.filter(Attendance.verified_by == user.id) \
        .update({Attendance.verified_by: None}, synchronize_session=False)
    Attendance.query.filter(Attendance.user_id == user.id).delete(synchronize_session=False)
    db.session.delete(user)
    db.session.commit()

    log_event("USER_DELETED", user_id=actor.id, ip=request.remote_addr,
              description=f"Deleted user {user_id} ({user.email})")
    return success({})


@users_bp.route('/<int:user_id>/attendance', methods=['GET'])
@jwt_required()
def get_attendance_by_user(user_id):
    ensure_self_or_staff(current_user(), user_id)
    get_user_or_404(user_id)

    start_date = parse_optional_date(request.args.get('startDate'), 'startDate')
    end_date = parse_optional_date(request.args.get('endDate'), 'endDate')

    query = Attendance.query.join(Session).options(
        joinedload(Attendance.session).joinedload(Session.session_type),
        joinedload(Attendance.session).joinedload(Session.batch),
    ).filter(Attendance.user_id == user_id)

    if start_date:
        query = query.filter(Session.date >= start_date)
    if end_date:
        query = query.filter(Session.date <= end_date)

    records = query.order_by(Session.date.desc(), Session.id.desc()).all()
    return success_list([a.to_dict(include_session=True) for a in records])
