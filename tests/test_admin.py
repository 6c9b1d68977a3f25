# tests/test_admin.py
from datetime import datetime, timedelta, timezone

from conftest import PASSWORD, create_point

ADMIN_URL = "/api/admin"


def test_system_stats(client, admin_headers, user):
    create_point("KLCC", type="air")
    create_point("Gombak", type="river", status="maintenance")

    res = client.get(f"{ADMIN_URL}/stats", headers=admin_headers)
    assert res.status_code == 200
    payload = res.get_json()
    assert payload["users"] == {"total_users": 2, "admin_count": 1, "user_count": 1, "active_count": 2}
    assert payload["monitoring_points"]["total"] == 2
    assert payload["monitoring_points"]["active"] == 1
    assert len(payload["monitoring_points"]["by_type"]) == 2
    assert payload["records"]["total_records"] == 0

def test_system_health(client, admin_headers):
    res = client.get(f"{ADMIN_URL}/health", headers=admin_headers)
    assert res.status_code == 200
    payload = res.get_json()
    assert payload["status"] == "healthy"
    assert payload["database"]["connected"] is True
    assert payload["database"]["tables"]["users"] == 1
    assert payload["database"]["tables"]["monitoring_records"] == 0
    assert payload["server"]["uptime_seconds"] >= 0

def test_list_and_get_users(client, admin, admin_headers, user):
    res = client.get(f"{ADMIN_URL}/users", headers=admin_headers)
    assert res.status_code == 200
    payload = res.get_json()
    assert payload["count"] == 2
    assert {u["email"] for u in payload["users"]} == {"admin@example.com", "user@example.com"}

    res = client.get(f"{ADMIN_URL}/users/{user.id}", headers=admin_headers)
    assert res.status_code == 200
    assert res.get_json()["email"] == "user@example.com"
    assert client.get(f"{ADMIN_URL}/users/999", headers=admin_headers).status_code == 404

def test_change_role(client, admin_headers, user):
    url = f"{ADMIN_URL}/users/{user.id}/role"
    assert client.put(url, json={"role": "owner"}, headers=admin_headers).status_code == 400

    res = client.put(url, json={"role": "admin"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.get_json()["role"] == "admin"

def test_change_status_blocks_login(client, admin_headers, user):
    res = client.put(f"{ADMIN_URL}/users/{user.id}/status", json={"isActive": False}, headers=admin_headers)
    assert res.status_code == 200
    assert res.get_json()["is_active"] is False

    res = client.post("/api/auth/login", json={"email": "user@example.com", "password": PASSWORD})
    assert res.status_code == 403

    assert client.put(f"{ADMIN_URL}/users/{user.id}/status", json={}, headers=admin_headers).status_code == 400

def test_admin_cannot_modify_themselves(client, admin, admin_headers):
    res = client.put(f"{ADMIN_URL}/users/{admin.id}/role", json={"role": "user"}, headers=admin_headers)
    assert res.status_code == 403
    assert res.get_json()["message"] == "You cannot change your own role"

    res = client.put(f"{ADMIN_URL}/users/{admin.id}/status", json={"isActive": False}, headers=admin_headers)
    assert res.status_code == 403

    res = client.delete(f"{ADMIN_URL}/users/{admin.id}", headers=admin_headers)
    assert res.status_code == 403

    assert client.get(f"{ADMIN_URL}/users/{admin.id}", headers=admin_headers).get_json()["role"] == "admin"

def test_delete_user_keeps_their_points(client, db, admin_headers, other_headers, other_user):
    session_id = client.post("/api/chat/message", json={"message": "hello"},
                             headers=other_headers).get_json()["sessionId"]
    point = create_point()
    point.created_by = other_user.id
    db.session.commit()

    res = client.delete(f"{ADMIN_URL}/users/{other_user.id}", headers=admin_headers)
    assert res.status_code == 200
    assert res.get_json()["message"] == "User deleted successfully"
    assert client.get(f"{ADMIN_URL}/users/{other_user.id}", headers=admin_headers).status_code == 404

    res = client.get(f"/api/monitoring-points/{point.id}", headers=admin_headers)
    assert res.status_code == 200
    assert res.get_json()["created_by"] is None

    tables = client.get(f"{ADMIN_URL}/health", headers=admin_headers).get_json()["database"]["tables"]
    assert tables["chat_sessions"] == 0
    assert tables["chat_messages"] == 0
    assert client.get(f"/api/chat/sessions/{session_id}/messages", headers=admin_headers).status_code == 404

def test_purge_old_records(client, admin_headers):
    point = create_point()
    old = (datetime.now(timezone.utc) - timedelta(days=40)).isoformat()
    recent = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    for recorded_at in (old, old, recent):
        client.post("/api/monitoring-records", json={"monitoringPointId": point.id, "aqi": 50,
                                                     "recordedAt": recorded_at}, headers=admin_headers)

    res = client.delete(f"{ADMIN_URL}/records?olderThanDays=30", headers=admin_headers)
    assert res.status_code == 200
    assert res.get_json() == {"deleted_count": 2}

    remaining = client.get("/api/monitoring-records", headers=admin_headers).get_json()
    assert remaining["count"] == 1

    assert client.delete(f"{ADMIN_URL}/records?olderThanDays=0", headers=admin_headers).status_code == 400
    assert client.delete(f"{ADMIN_URL}/records", headers=admin_headers).status_code == 400
