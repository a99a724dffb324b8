import pytest


@pytest.fixture
def subuh(client, admin):
    resp = client.post("/session-types", json={
        "name": "Subuh", "startTime": "04:30", "endTime": "05:30", "displayOrder": 1,
    }, headers=admin)
    assert resp.status_code == 201
    return resp.get_json()["data"]


def test_create_session_type(subuh):
    assert subuh["startTime"] == "04:30"
    assert subuh["endTime"] == "05:30"
    assert subuh["displayOrder"] == 1


def test_end_must_follow_start(client, admin):
    resp = client.post("/session-types", json={
        "name": "Backwards", "startTime": "10:00", "endTime": "09:00",
    }, headers=admin)
    assert resp.status_code == 400


def test_malformed_time_is_rejected(client, admin):
    resp = client.post("/session-types", json={
        "name": "Bad", "startTime": "7am", "endTime": "08:00",
    }, headers=admin)
    assert resp.status_code == 400


@pytest.mark.parametrize("start,end", [
    ("05:00", "06:00"),  # straddles the end
    ("04:00", "05:00"),  # straddles the start
    ("04:45", "05:15"),  # inside
    ("05:30", "06:30"),  # touches the end
])
def test_overlapping_windows_conflict(client, admin, subuh, start, end):
    resp = client.post("/session-types", json={
        "name": "Clash", "startTime": start, "endTime": end,
    }, headers=admin)

    assert resp.status_code == 409
    assert "Subuh" in resp.get_json()["message"]


def test_disjoint_window_is_accepted(client, admin, subuh):
    resp = client.post("/session-types", json={
        "name": "Pagi", "startTime": "07:00", "endTime": "08:00",
    }, headers=admin)
    assert resp.status_code == 201


def test_update_ignores_own_window(client, admin, subuh):
    resp = client.put(f"/session-types/{subuh['id']}", json={"endTime": "06:00"}, headers=admin)

    assert resp.status_code == 200
    assert resp.get_json()["data"]["endTime"] == "06:00"


def test_list_orders_by_display_order(client, admin, subuh):
    client.post("/session-types", json={
        "name": "Pagi", "startTime": "07:00", "endTime": "08:00", "displayOrder": 0,
    }, headers=admin)

    names = [t["name"] for t in client.get("/session-types", headers=admin).get_json()["data"]]
    assert names == ["Pagi", "Subuh"]


def test_session_type_in_use_cannot_be_deleted(client, admin, session_id, roll):
    resp = client.delete(f"/session-types/{roll['type_id']}", headers=admin)
    assert resp.status_code == 409
