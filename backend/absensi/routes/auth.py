from flask import Blueprint, request, jsonify, make_response
from flask_jwt_extended import (
    create_access_token, jwt_required, get_jwt, get_jwt_identity,
    verify_jwt_in_request, set_access_cookies, unset_jwt_cookies
)
from absensi.models import User, Role, TokenBlocklist
from absensi.extensions import db, limiter
from utils.accounts import apply_user_fields
from utils.audit import log_event
from utils.decorators import current_user
from utils.errors import ForbiddenError, UnauthorizedError, ValidationError
from utils.responses import success
from datetime import datetime, timezone

auth_bp = Blueprint('auth', __name__)


def issue_token(user):
    return create_access_token(
        identity=str(user.id),
        additional_claims={
            "role": user.role.value,
            "batchId": user.batch_id,
            "divisionId": user.division_id,
        }
    )


def _registering_admin():
    """The admin behind an optional bearer token, if any."""
    verify_jwt_in_request(optional=True)
    identity = get_jwt_identity()
    if not identity:
        return None
    user = db.session.get(User, int(identity))
    return user if user and user.is_active and user.role == Role.admin else None


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("10 per minute")
def register():
    data = request.get_json(silent=True) or {}

    requested_role = data.get('role') or Role.santri.value
    if requested_role != Role.santri.value and _registering_admin() is None:
        raise ForbiddenError("Only an admin can register staff or admin accounts")

    user = apply_user_fields(User(), data, creating=True)
    db.session.add(user)
    db.session.commit()

    log_event("REGISTER", user_id=user.id, ip=request.remote_addr,
              description=f"{user.email} registered as {user.role.value}")

    payload = user.to_dict()
    payload["token"] = issue_token(user)
    return success(payload, 201)


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("5 per minute")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    ip = request.remote_addr

    if not email or not password:
        raise ValidationError("Please provide email and password")

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        log_event("LOGIN_FAILED", ip=ip, description=f"Failed login attempt for {email}", level="WARNING")
        raise UnauthorizedError("Invalid credentials")

    if not user.is_active:
        log_event("LOGIN_FAILED", user_id=user.id, ip=ip, description=f"Inactive account {email}", level="WARNING")
        raise UnauthorizedError("User account is inactive")

    token = issue_token(user)
    payload = user.to_dict(include_related=True)
    payload["token"] = token

    response = make_response(jsonify({"success": True, "data": payload}))
    set_access_cookies(response, token)

    log_event("LOGIN_SUCCESS", user_id=user.id, ip=ip, description=f"{email} logged in")
    return response


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_current_user():
    return success(current_user().to_dict(include_related=True))


@auth_bp.route("/logout", methods=["POST"])
@jwt_required()
def logout():
    claims = get_jwt()
    user_id = int(get_jwt_identity())
    expires = datetime.fromtimestamp(claims["exp"], tz=timezone.utc).replace(tzinfo=None)

    token_block = TokenBlocklist(jti=claims["jti"], token_type=claims.get("type", "access"),
                                 user_id=user_id, expires_at=expires)
    db.session.add(token_block)
    db.session.commit()

    response = make_response(jsonify({"success": True, "message": "Logged out successfully"}))
    unset_jwt_cookies(response)

    log_event("LOGOUT", user_id=user_id, ip=request.remote_addr)
    return response
