from functools import wraps
from flask import g
from flask_jwt_extended import get_jwt_identity
from absensi.extensions import db
from absensi.models import User, Role
from utils.errors import UnauthorizedError, ForbiddenError


def current_user():
    """
    Resolve the JWT identity to an active User, cached on ``g`` for the request.
    Must run after ``@jwt_required()``.
    """
    if "current_user" in g:
        return g.current_user

    user_id = get_jwt_identity()
    if not user_id:
        raise UnauthorizedError("Missing or invalid JWT token")

    user = db.session.get(User, int(user_id))
    if not user:
        raise UnauthorizedError("User not found")
    if not user.is_active:
        raise UnauthorizedError("User account is inactive")

    g.current_user = user
    return user


def role_required(*allowed_roles):
    """
    Restrict access to users with specific roles.
    Usage: @role_required("admin", "staff")
    """
    allowed_roles = {Role(role.lower()) for role in allowed_roles}

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user.role not in allowed_roles:
                raise ForbiddenError(
                    f"User role {user.role.value} is not authorized to access this route"
                )
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def ensure_self_or_staff(user, target_user_id):
    """Santri may only look at their own records; admin and staff see everyone."""
    if not user.is_staff and user.id != target_user_id:
        raise ForbiddenError("Not authorized to access another user's records")
