from datetime import time

import pytest

from absensi.extensions import db
from absensi.models import Attendance, User


def _rows(app, session_id):
    with app.app_context():
        return {
            r.user_id: (r.status.value, r.notes, r.verified_by)
            for r in Attendance.query.filter_by(session_id=session_id).all()
        }


@pytest.fixture
def bare_session_id(client, app, staff, roll):
    """A session whose default roll has been cleared."""
    resp = client.post("/sessions", json={
        "date": "2025-01-20", "sessionTypeId": roll["type_id"], "batchId": roll["batch_id"],
    }, headers=staff)
    session_id = resp.get_json()["data"]["id"]
    with app.app_context():
        Attendance.query.filter_by(session_id=session_id).delete()
        db.session.commit()
    return session_id


def test_list_session_attendance(client, session_id, make, roll):
    headers = make.headers(roll["santri"][0])

    body = client.get(f"/sessions/{session_id}/attendance", headers=headers).get_json()

    assert body["count"] == 3
    assert body["data"][0]["user"]["name"] == "Santri A"
    assert body["data"][0]["session"]["id"] == session_id


def test_create_records_skips_existing(client, app, staff, staff_id, bare_session_id, roll):
    first, second, third = roll["santri"]

    resp = client.post(f"/sessions/{bare_session_id}/attendance", json={
        "userIds": [first, second], "defaultStatus": "present",
    }, headers=staff)
    assert resp.status_code == 201
    assert resp.get_json()["count"] == 2

    again = client.post(f"/sessions/{bare_session_id}/attendance", json={
        "userIds": [second, third],
    }, headers=staff)
    assert again.get_json()["count"] == 1

    rows = _rows(app, bare_session_id)
    assert rows[first] == ("present", None, staff_id)
    assert rows[third] == ("absent", None, staff_id)


def test_create_records_conflict_when_all_exist(client, staff, session_id, roll):
    resp = client.post(f"/sessions/{session_id}/attendance", json={"userIds": roll["santri"]}, headers=staff)
    assert resp.status_code == 409


def test_create_records_validates_input(client, staff, bare_session_id, roll):
    empty = client.post(f"/sessions/{bare_session_id}/attendance", json={"userIds": []}, headers=staff)
    bad_status = client.post(f"/sessions/{bare_session_id}/attendance", json={
        "userIds": roll["santri"], "defaultStatus": "sleeping",
    }, headers=staff)

    assert empty.status_code == 400
    assert bad_status.status_code == 400


def test_generate_for_batch(client, app, staff, bare_session_id, roll):
    resp = client.post(f"/sessions/{bare_session_id}/generate-attendance", json={"defaultStatus": "excused"}, headers=staff)

    assert resp.status_code == 201
    assert resp.get_json()["count"] == 3
    assert {status for status, _, _ in _rows(app, bare_session_id).values()} == {"excused"}

    again = client.post(f"/sessions/{bare_session_id}/generate-attendance", json={}, headers=staff)
    assert again.status_code == 409


def test_generate_for_empty_batch(client, staff, make, roll):
    empty_batch = make.batch()
    session = client.post("/sessions", json={
        "date": "2025-01-10", "sessionTypeId": roll["type_id"], "batchId": empty_batch,
    }, headers=staff).get_json()["data"]

    resp = client.post(f"/sessions/{session['id']}/generate-attendance", json={}, headers=staff)
    assert resp.status_code == 404


def test_bulk_update(client, app, staff, staff_id, session_id):
    rows = client.get(f"/sessions/{session_id}/attendance", headers=staff).get_json()["data"]

    resp = client.put(f"/sessions/{session_id}/attendance", json={"attendanceData": [
        {"id": rows[0]["id"], "status": "present", "notes": "tepat waktu"},
        {"id": rows[1]["id"], "status": "late"},
        {"id": 99999, "status": "present"},
    ]}, headers=staff)

    assert resp.status_code == 200
    assert resp.get_json()["count"] == 2
    after = _rows(app, session_id)
    assert after[rows[0]["userId"]] == ("present", "tepat waktu", staff_id)
    assert after[rows[1]["userId"]] == ("late", None, staff_id)
    assert after[rows[2]["userId"]] == ("absent", None, None)


def test_bulk_update_is_all_or_nothing(client, app, staff, session_id):
    rows = client.get(f"/sessions/{session_id}/attendance", headers=staff).get_json()["data"]

    resp = client.put(f"/sessions/{session_id}/attendance", json={"attendanceData": [
        {"id": rows[0]["id"], "status": "present"},
        {"id": rows[1]["id"], "status": "asleep"},
    ]}, headers=staff)

    assert resp.status_code == 400
    assert {status for status, _, _ in _rows(app, session_id).values()} == {"absent"}


def test_bulk_update_ignores_rows_of_other_sessions(client, app, staff, roll, session_id):
    other = client.post("/sessions", json={
        "date": "2025-01-11", "sessionTypeId": roll["type_id"], "batchId": roll["batch_id"],
    }, headers=staff).get_json()["data"]["id"]
    foreign = client.get(f"/sessions/{other}/attendance", headers=staff).get_json()["data"][0]

    resp = client.put(f"/sessions/{session_id}/attendance", json={"attendanceData": [
        {"id": foreign["id"], "status": "present"},
    ]}, headers=staff)

    assert resp.get_json()["count"] == 0
    assert _rows(app, other)[foreign["userId"]][0] == "absent"


def test_filtered_attendance_upserts(client, app, staff, make, bare_session_id, roll):
    first, second, _ = roll["santri"]
    client.post(f"/sessions/{bare_session_id}/attendance", json={"userIds": [first]}, headers=staff)

    resp = client.post(f"/sessions/{bare_session_id}/filtered-attendance", json={
        "userIds": [first, second, second], "status": "present", "notes": "apel pagi",
    }, headers=staff)

    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"updated": 1, "created": 1, "total": 2}
    rows = _rows(app, bare_session_id)
    assert rows[first][:2] == ("present", "apel pagi")
    assert rows[second][:2] == ("present", "apel pagi")


def test_filtered_attendance_rejects_unknown_users(client, app, staff, bare_session_id, roll):
    first = roll["santri"][0]
    client.post(f"/sessions/{bare_session_id}/attendance", json={"userIds": [first]}, headers=staff)

    resp = client.post(f"/sessions/{bare_session_id}/filtered-attendance", json={
        "userIds": [first, 424242], "status": "present",
    }, headers=staff)

    assert resp.status_code == 404
    assert "424242" in resp.get_json()["message"]
    rows = _rows(app, bare_session_id)
    assert list(rows) == [first]
    assert rows[first][0] == "absent"


def test_create_records_rejects_unknown_users(client, app, staff, bare_session_id, roll):
    resp = client.post(f"/sessions/{bare_session_id}/attendance", json={
        "userIds": [roll["santri"][0], 424242],
    }, headers=staff)

    assert resp.status_code == 404
    assert "424242" in resp.get_json()["message"]
    assert _rows(app, bare_session_id) == {}


def test_attendance_ids_must_be_integers(client, app, staff, session_id):
    row = client.get(f"/sessions/{session_id}/attendance", headers=staff).get_json()["data"][0]

    resp = client.put(f"/sessions/{session_id}/attendance", json={"attendanceData": [
        {"id": row["id"] + 0.5, "status": "present"},
    ]}, headers=staff)

    assert resp.status_code == 400
    assert {status for status, _, _ in _rows(app, session_id).values()} == {"absent"}


def test_users_for_attendance(client, app, staff, make, session_id, roll):
    division_id = make.division()
    with app.app_context():
        db.session.get(User, roll["santri"][1]).division_id = division_id
        db.session.commit()

    everyone = client.get(f"/sessions/{session_id}/users-for-attendance", headers=staff).get_json()
    assert [u["name"] for u in everyone["data"]] == ["Santri A", "Santri B", "Santri C"]
    assert all(u["attendance"]["status"] == "absent" for u in everyone["data"])

    by_division = client.get(
        f"/sessions/{session_id}/users-for-attendance?divisionId={division_id}", headers=staff
    ).get_json()
    assert [u["name"] for u in by_division["data"]] == ["Santri B"]

    other_batch = make.batch()
    make.user(batch_id=other_batch, name="Zaid")
    elsewhere = client.get(
        f"/sessions/{session_id}/users-for-attendance?batchId={other_batch}", headers=staff
    ).get_json()
    assert elsewhere["data"][0]["name"] == "Zaid"
    assert elsewhere["data"][0]["attendance"] is None


def test_update_single_record(client, staff, staff_id, session_id):
    row = client.get(f"/sessions/{session_id}/attendance", headers=staff).get_json()["data"][0]

    resp = client.put(f"/attendance/{row['id']}", json={
        "status": "late", "checkInTime": "2025-01-10T04:50:00",
    }, headers=staff)
    data = resp.get_json()["data"]

    assert resp.status_code == 200
    assert data["status"] == "late"
    assert data["checkInTime"] == "2025-01-10T04:50:00"
    assert data["verifiedBy"] == staff_id


def test_update_single_record_errors(client, staff, session_id):
    row = client.get(f"/sessions/{session_id}/attendance", headers=staff).get_json()["data"][0]

    assert client.put(f"/attendance/{row['id']}", json={"status": "gone"}, headers=staff).status_code == 400
    assert client.put("/attendance/99999", json={"status": "present"}, headers=staff).status_code == 404


def test_session_times_can_override_type_window(client, staff, make, roll):
    type_id = make.session_type(name="Malam", start=time(19, 30), end=time(21, 0))
    resp = client.post("/sessions", json={
        "date": "2025-01-10", "sessionTypeId": type_id, "batchId": roll["batch_id"],
        "startTime": "19:00", "endTime": "21:30",
    }, headers=staff)

    assert resp.status_code == 201
    assert resp.get_json()["data"]["startTime"] == "19:00"
