import os
from datetime import time
from absensi.models import User, Role, Batch, Division, SessionType
from absensi.extensions import db


SESSION_TYPES = [
    ("Subuh", "Kajian ba'da subuh", time(4, 30), time(5, 30)),
    ("Pagi", "Kelas pagi", time(7, 0), time(11, 30)),
    ("Siang", "Kelas siang", time(13, 0), time(15, 0)),
    ("Malam", "Kajian malam", time(19, 30), time(21, 0)),
]

DIVISIONS = ["Media", "Dakwah", "Kebersihan"]


def seed_data():
    """Idempotently create the admin account and the reference data a fresh install needs."""
    admin_email = os.getenv("ADMIN_EMAIL", "admin@absensi.local")
    admin_password = os.getenv("ADMIN_PASSWORD", "your_secure_password")

    if not User.query.filter_by(email=admin_email).first():
        admin = User(name="Administrator", email=admin_email, role=Role.admin)
        admin.set_password(admin_password)
        db.session.add(admin)

    for name in DIVISIONS:
        if not Division.query.filter_by(name=name).first():
            db.session.add(Division(name=name))

    for order, (name, description, start, end) in enumerate(SESSION_TYPES, start=1):
        if not SessionType.query.filter_by(name=name).first():
            db.session.add(SessionType(
                name=name, description=description,
                start_time=start, end_time=end, display_order=order,
            ))

    batch_name = os.getenv("SEED_BATCH_NAME", "Angkatan 1")
    batch_year = int(os.getenv("SEED_BATCH_YEAR", "2025"))
    if not Batch.query.filter_by(name=batch_name, year=batch_year).first():
        db.session.add(Batch(name=batch_name, year=batch_year))

    db.session.commit()
    print("Database seeded successfully.")
