from absensi.extensions import db
from .base import TimestampMixin, SessionStatus, enum_column, iso, hhmm


class Session(db.Model, TimestampMixin):
    __tablename__ = 'sessions'

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.Time, nullable=True)
    end_time = db.Column(db.Time, nullable=True)
    session_type_id = db.Column(db.Integer, db.ForeignKey('session_types.id'), nullable=False)
    batch_id = db.Column(db.Integer, db.ForeignKey('batches.id'), nullable=False, index=True)
    division_id = db.Column(db.Integer, db.ForeignKey('divisions.id'), nullable=True)
    status = enum_column(SessionStatus, nullable=False, default=SessionStatus.scheduled)
    notes = db.Column(db.Text, nullable=True)

    session_type = db.relationship('SessionType', back_populates='sessions')
    batch = db.relationship('Batch', back_populates='sessions')
    division = db.relationship('Division', back_populates='sessions')
    attendances = db.relationship('Attendance', back_populates='session', lazy=True,
                                  cascade='all, delete-orphan',
                                  order_by='Attendance.id')

    __table_args__ = (
        db.UniqueConstraint('date', 'session_type_id', 'batch_id', name='uq_session_date_type_batch'),
    )

    def to_dict(self, include_attendance=False):
        data = {
            "id": self.id,
            "date": iso(self.date),
            "startTime": hhmm(self.start_time),
            "endTime": hhmm(self.end_time),
            "sessionTypeId": self.session_type_id,
            "batchId": self.batch_id,
            "divisionId": self.division_id,
            "status": self.status.value,
            "notes": self.notes,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
            "sessionType": self.session_type.to_dict() if self.session_type else None,
            "batch": self.batch.to_dict() if self.batch else None,
            "division": self.division.to_dict() if self.division else None,
        }
        if include_attendance:
            data["attendances"] = [a.to_dict(include_user=True) for a in self.attendances]
        return data
