import re

from absensi.extensions import db
from absensi.models import Batch, Division, Role, User
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.validation import parse_bool, parse_enum, parse_optional_int

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def _email(value):
    email = (value or "").strip().lower()
    if not EMAIL_RE.match(email):
        raise ValidationError("Please provide a valid email")
    return email


def _password(value):
    if not isinstance(value, str) or len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


def _reference(model, value, field, label):
    ref_id = parse_optional_int(value, field)
    if ref_id is None:
        return None
    if not db.session.get(model, ref_id):
        raise NotFoundError(f"{label} with id {ref_id} not found")
    return ref_id


def apply_user_fields(user, data, creating=False):
    """
    Validate ``data`` (camelCase request body) and copy it onto ``user``.
    On update only the keys present are touched.
    """
    if creating or "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Name is required")
        user.name = name

    if creating or "email" in data:
        email = _email(data.get("email"))
        clash = User.query.filter(User.email == email)
        if user.id:
            clash = clash.filter(User.id != user.id)
        if clash.first():
            raise ConflictError("Email already registered")
        user.email = email

    if creating or "password" in data:
        user.set_password(_password(data.get("password")))

    if "role" in data and data["role"] is not None:
        user.role = parse_enum(Role, data["role"], "role")
    elif creating:
        user.role = Role.santri

    if "batchId" in data:
        user.batch_id = _reference(Batch, data["batchId"], "batchId", "Batch")
    if "divisionId" in data:
        user.division_id = _reference(Division, data["divisionId"], "divisionId", "Division")
    if "isActive" in data and data["isActive"] is not None:
        user.is_active = parse_bool(data["isActive"], "isActive")

    return user
