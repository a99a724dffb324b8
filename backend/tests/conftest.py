import itertools
from datetime import time

import pytest

from absensi import create_app
from absensi.config import TestingConfig
from absensi.extensions import db
from absensi.models import User, Role, Batch, Division, SessionType
from absensi.routes.auth import issue_token


class Factory:
    """Creates rows in their own app context and hands back ids, never live instances."""

    def __init__(self, app):
        self.app = app
        self._seq = itertools.count(1)

    def _add(self, obj):
        with self.app.app_context():
            db.session.add(obj)
            db.session.commit()
            return obj.id

    def user(self, role="santri", batch_id=None, division_id=None, name=None,
             email=None, password="secret123", is_active=True):
        n = next(self._seq)
        user = User(
            name=name or f"User {n:03d}",
            email=email or f"user{n}@example.com",
            role=Role(role),
            batch_id=batch_id,
            division_id=division_id,
            is_active=is_active,
        )
        user.set_password(password)
        return self._add(user)

    def batch(self, name=None, year=2025):
        return self._add(Batch(name=name or f"Angkatan {next(self._seq)}", year=year))

    def division(self, name=None):
        return self._add(Division(name=name or f"Divisi {next(self._seq)}"))

    def session_type(self, name=None, start=time(7, 0), end=time(8, 0), display_order=0):
        return self._add(SessionType(
            name=name or f"Sesi {next(self._seq)}",
            start_time=start,
            end_time=end,
            display_order=display_order,
        ))

    def headers(self, user_id):
        with self.app.app_context():
            token = issue_token(db.session.get(User, user_id))
        return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def app(tmp_path):
    app = create_app(TestingConfig)
    app.config["AUDIT_LOG_FILE"] = str(tmp_path / "audit.log")
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make(app):
    return Factory(app)


@pytest.fixture
def admin_id(make):
    return make.user(role="admin", name="Admin", email="admin@example.com")


@pytest.fixture
def admin(make, admin_id):
    return make.headers(admin_id)


@pytest.fixture
def staff_id(make):
    return make.user(role="staff", name="Staff", email="staff@example.com")


@pytest.fixture
def staff(make, staff_id):
    return make.headers(staff_id)


@pytest.fixture
def roll(make):
    """A batch with three santri, a session type and nothing else."""
    batch_id = make.batch(name="Angkatan 1")
    santri = [make.user(batch_id=batch_id, name=f"Santri {c}") for c in "ABC"]
    type_id = make.session_type(name="Subuh", start=time(4, 30), end=time(5, 30))
    return {"batch_id": batch_id, "santri": santri, "type_id": type_id}


@pytest.fixture
def session_id(client, staff, roll):
    resp = client.post("/sessions", json={
        "date": "2025-01-10",
        "sessionTypeId": roll["type_id"],
        "batchId": roll["batch_id"],
    }, headers=staff)
    assert resp.status_code == 201
    return resp.get_json()["data"]["id"]
