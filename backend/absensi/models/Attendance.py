from absensi.extensions import db
from .base import TimestampMixin, AttendanceStatus, enum_column, iso


class Attendance(db.Model, TimestampMixin):
    __tablename__ = 'attendances'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('sessions.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    status = enum_column(AttendanceStatus, nullable=False, default=AttendanceStatus.absent, index=True)
    check_in_time = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    verified_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    verified_at = db.Column(db.DateTime, nullable=True)

    session = db.relationship('Session', back_populates='attendances')
    user = db.relationship('User', back_populates='attendances', foreign_keys=[user_id])
    verifier = db.relationship('User', foreign_keys=[verified_by])

    __table_args__ = (
        db.UniqueConstraint('session_id', 'user_id', name='uq_attendance_session_user'),
    )

    def to_dict(self, include_user=False, include_session=False):
        data = {
            "id": self.id,
            "sessionId": self.session_id,
            "userId": self.user_id,
            "status": self.status.value,
            "checkInTime": iso(self.check_in_time),
            "notes": self.notes,
            "verifiedBy": self.verified_by,
            "verifiedAt": iso(self.verified_at),
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if include_user:
            data["user"] = self.user.to_summary() if self.user else None
        if include_session:
            data["session"] = self.session.to_dict() if self.session else None
        return data
