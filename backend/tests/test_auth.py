from absensi import create_app
from absensi.config import TestingConfig
from absensi.extensions import db
from absensi.models import AuditLog


def test_register_santri_returns_token(client):
    resp = client.post("/auth/register", json={
        "name": "Ahmad",
        "email": "Ahmad@Example.com",
        "password": "secret123",
    })

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["data"]["email"] == "ahmad@example.com"
    assert body["data"]["role"] == "santri"
    assert body["data"]["token"]
    assert "passwordHash" not in body["data"]


def test_register_rejects_duplicate_email(client, make):
    make.user(email="taken@example.com")

    resp = client.post("/auth/register", json={
        "name": "Someone", "email": "taken@example.com", "password": "secret123",
    })

    assert resp.status_code == 409
    assert resp.get_json() == {"success": False, "message": "Email already registered"}


def test_register_validates_password_and_email(client):
    short = client.post("/auth/register", json={"name": "A", "email": "a@example.com", "password": "123"})
    bad_email = client.post("/auth/register", json={"name": "A", "email": "not-an-email", "password": "secret123"})

    assert short.status_code == 400
    assert bad_email.status_code == 400


def test_public_register_cannot_create_admin(client):
    resp = client.post("/auth/register", json={
        "name": "Sneaky", "email": "sneaky@example.com", "password": "secret123", "role": "admin",
    })
    assert resp.status_code == 403


def test_admin_may_register_staff(client, admin):
    resp = client.post("/auth/register", json={
        "name": "Ustadz", "email": "ustadz@example.com", "password": "secret123", "role": "staff",
    }, headers=admin)

    assert resp.status_code == 201
    assert resp.get_json()["data"]["role"] == "staff"


def test_login_and_me(client, make):
    batch_id = make.batch(name="Angkatan 7")
    make.user(email="santri@example.com", password="rahasia1", batch_id=batch_id)

    resp = client.post("/auth/login", json={"email": "santri@example.com", "password": "rahasia1"})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["batch"]["name"] == "Angkatan 7"

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.get_json()["data"]["email"] == "santri@example.com"


def test_login_failures_are_audited(client, make, app):
    make.user(email="santri@example.com", password="rahasia1")

    resp = client.post("/auth/login", json={"email": "santri@example.com", "password": "wrong-pass"})

    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid credentials"
    with open(app.config["AUDIT_LOG_FILE"]) as fh:
        assert "LOGIN_FAILED" in fh.read()


def test_inactive_user_cannot_login(client, make):
    make.user(email="gone@example.com", password="rahasia1", is_active=False)

    resp = client.post("/auth/login", json={"email": "gone@example.com", "password": "rahasia1"})
    assert resp.status_code == 401


def test_missing_token_uses_error_envelope(client):
    resp = client.get("/auth/me")

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_logout_revokes_token(client, make):
    user_id = make.user()
    headers = make.headers(user_id)

    assert client.post("/auth/logout", headers=headers).status_code == 200

    resp = client.get("/auth/me", headers=headers)
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Token has been revoked"


def test_santri_cannot_reach_staff_routes(client, make):
    headers = make.headers(make.user())

    resp = client.get("/attendance/stats", headers=headers)

    assert resp.status_code == 403
    assert resp.get_json()["success"] is False


class RateLimitedConfig(TestingConfig):
    RATELIMIT_ENABLED = True


def test_login_rate_limit_is_recorded(tmp_path):
    app = create_app(RateLimitedConfig)
    app.config["AUDIT_LOG_FILE"] = str(tmp_path / "audit.log")
    client = app.test_client()

    statuses = [
        client.post("/auth/login", json={"email": "nobody@example.com", "password": "whatever"}).status_code
        for _ in range(6)
    ]

    assert statuses == [401] * 5 + [429]
    with app.app_context():
        [entry] = AuditLog.query.all()
        assert entry.action == "RATE_LIMIT_EXCEEDED"
        assert (entry.method, entry.path) == ("POST", "/auth/login")
        db.drop_all()
