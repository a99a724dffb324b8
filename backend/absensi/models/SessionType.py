from absensi.extensions import db
from .base import TimestampMixin, iso, hhmm


class SessionType(db.Model, TimestampMixin):
    __tablename__ = 'session_types'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    display_order = db.Column(db.Integer, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    sessions = db.relationship('Session', back_populates='session_type', lazy=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "startTime": hhmm(self.start_time),
            "endTime": hhmm(self.end_time),
            "displayOrder": self.display_order,
            "isActive": self.is_active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
