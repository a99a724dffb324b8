from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime
from absensi.extensions import db
from .base import TimestampMixin, Role, enum_column, iso


class User(db.Model, TimestampMixin):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(512), nullable=False)
    role = enum_column(Role, nullable=False, default=Role.santri, index=True)

    batch_id = db.Column(db.Integer, db.ForeignKey('batches.id'), nullable=True, index=True)
    division_id = db.Column(db.Integer, db.ForeignKey('divisions.id'), nullable=True, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    batch = db.relationship('Batch', back_populates='users')
    division = db.relationship('Division', back_populates='users')
    attendances = db.relationship('Attendance', back_populates='user', lazy=True,
                                  foreign_keys='Attendance.user_id')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_staff(self):
        return self.role in (Role.admin, Role.staff)

    def to_summary(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
        }

    def to_dict(self, include_related=False):
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "batchId": self.batch_id,
            "divisionId": self.division_id,
            "isActive": self.is_active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if include_related:
            data["batch"] = self.batch.to_dict() if self.batch else None
            data["division"] = self.division.to_dict() if self.division else None
        return data


class TokenBlocklist(db.Model):
    __tablename__ = 'token_blocklist'

    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(36), nullable=False, index=True)
    token_type = db.Column(db.String(10), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
