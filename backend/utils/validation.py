import re
from datetime import datetime

from utils.errors import ValidationError

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_date(value, field="date"):
    """Parse a strict ``YYYY-MM-DD`` string into a ``date``."""
    if not isinstance(value, str) or not DATE_RE.match(value):
        raise ValidationError(f"{field} must be in YYYY-MM-DD format")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"{field} is not a valid calendar date")


def parse_optional_date(value, field):
    if value in (None, ""):
        return None
    return parse_date(value, field)


def parse_time(value, field="time"):
    if not isinstance(value, str) or not TIME_RE.match(value):
        raise ValidationError(f"{field} must be in HH:MM format")
    return datetime.strptime(value, "%H:%M").time()


def parse_datetime(value, field):
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def parse_enum(enum_class, value, field="status"):
    try:
        return enum_class(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_class)
        raise ValidationError(f"{field.capitalize()} must be one of: {allowed}")


def parse_int(value, field):
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


def parse_optional_int(value, field):
    if value in (None, ""):
        return None
    return parse_int(value, field)


def parse_bool(value, field):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "1", "yes", "false", "0", "no"):
        return value.lower() in ("true", "1", "yes")
    raise ValidationError(f"{field} must be a boolean")


def parse_id_list(value, field):
    if not isinstance(value, list) or not value:
        raise ValidationError(f"{field} must be a non-empty array")
    return [parse_int(item, field) for item in value]
