from absensi.extensions import db
from .base import TimestampMixin, iso


class Division(db.Model, TimestampMixin):
    __tablename__ = 'divisions'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    users = db.relationship('User', back_populates='division', lazy=True)
    sessions = db.relationship('Session', back_populates='division', lazy=True)

    def to_dict(self, include_users=False):
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "isActive": self.is_active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if include_users:
            data["users"] = [u.to_summary() for u in self.users]
        return data
