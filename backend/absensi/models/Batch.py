from absensi.extensions import db
from .base import TimestampMixin, iso

MIN_YEAR = 2000
MAX_YEAR = 2100


class Batch(db.Model, TimestampMixin):
    __tablename__ = 'batches'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    year = db.Column(db.Integer, nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    users = db.relationship('User', back_populates='batch', lazy=True)
    sessions = db.relationship('Session', back_populates='batch', lazy=True)

    __table_args__ = (
        db.UniqueConstraint('name', 'year', name='uq_batch_name_year'),
        db.CheckConstraint(f'year >= {MIN_YEAR} AND year <= {MAX_YEAR}', name='ck_batch_year_range'),
    )

    def to_dict(self, include_users=False):
        data = {
            "id": self.id,
            "name": self.name,
            "year": self.year,
            "isActive": self.is_active,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if include_users:
            data["users"] = [u.to_summary() for u in self.users]
        return data
