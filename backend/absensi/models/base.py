from datetime import datetime
from absensi.extensions import db
import enum


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Role(enum.Enum):
    admin = "admin"
    staff = "staff"
    santri = "santri"


class SessionStatus(enum.Enum):
    scheduled = "scheduled"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"


class AttendanceStatus(enum.Enum):
    present = "present"
    late = "late"
    absent = "absent"
    excused = "excused"


# scheduled -> in-progress -> completed, anything still open may be cancelled
SESSION_TRANSITIONS = {
    SessionStatus.scheduled: {SessionStatus.in_progress, SessionStatus.completed, SessionStatus.cancelled},
    SessionStatus.in_progress: {SessionStatus.completed, SessionStatus.cancelled},
    SessionStatus.completed: set(),
    SessionStatus.cancelled: set(),
}


def enum_column(enum_class, **kwargs):
    """Enum column persisted by value ("in-progress") rather than member name."""
    return db.Column(
        db.Enum(enum_class, values_callable=lambda members: [m.value for m in members],
                name=enum_class.__name__.lower(), validate_strings=True),
        **kwargs
    )


def iso(value):
    return value.isoformat() if value else None


def hhmm(value):
    return value.strftime("%H:%M") if value else None
