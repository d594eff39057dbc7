from fastapi.testclient import TestClient

from portfolio_api.auth.crud import get_user_by_id
from portfolio_api.db import connect


def _stored(cfg, user_id: int) -> dict:
    with connect(cfg.DB_DSN) as conn:
        return dict(get_user_by_id(conn, user_id))


def test_admin_cannot_act_on_own_account(client: TestClient, cfg, admin) -> None:
    admin_id = admin["user"]["id"]
    before = _stored(cfg, admin_id)

    demote = client.put(f"/api/user/{admin_id}/role", json={"role": "user"}, headers=admin["headers"])
    deactivate = client.put(f"/api/user/{admin_id}/status", json={"isActive": False}, headers=admin["headers"])
    delete = client.delete(f"/api/user/{admin_id}", headers=admin["headers"])

    assert demote.status_code == 400
    assert demote.json()["message"] == "You cannot demote yourself from admin role"
    assert deactivate.status_code == 400
    assert deactivate.json()["message"] == "You cannot deactivate your own account"
    assert delete.status_code == 400
    assert delete.json()["message"] == "You cannot delete your own account"
    assert _stored(cfg, admin_id) == before


def test_role_change_takes_effect(client: TestClient, admin, member) -> None:
    member_id = member["user"]["id"]

    response = client.put(f"/api/user/{member_id}/role", json={"role": "admin"}, headers=admin["headers"])

    assert response.status_code == 200
    assert response.json()["data"]["user"]["role"] == "admin"
    # The stored role is authoritative, not the claim inside the old token.
    assert client.get("/api/user/all", headers=member["headers"]).status_code == 200


def test_invalid_role_is_rejected(client: TestClient, admin, member) -> None:
    response = client.put(f"/api/user/{member['user']['id']}/role", json={"role": "root"}, headers=admin["headers"])

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "role"


def test_deactivated_user_is_locked_out(client: TestClient, admin, member) -> None:
    member_id = member["user"]["id"]

    response = client.put(f"/api/user/{member_id}/status", json={"isActive": False}, headers=admin["headers"])

    assert response.status_code == 200
    assert response.json()["data"]["user"]["isActive"] is False
    assert client.get("/api/auth/me", headers=member["headers"]).status_code == 401


def test_delete_other_user(client: TestClient, admin, member) -> None:
    member_id = member["user"]["id"]

    assert client.delete(f"/api/user/{member_id}", headers=admin["headers"]).status_code == 200
    missing = client.get(f"/api/user/{member_id}", headers=admin["headers"])
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "message": "User not found"}


def test_list_users_with_counts(client: TestClient, admin, member) -> None:
    data = client.get("/api/user/all?sortBy=email&sortOrder=asc", headers=admin["headers"]).json()["data"]

    assert [u["email"] for u in data["users"]] == ["admin@example.com", "member@example.com"]
    assert data["roleCounts"] == {"admin": 1, "user": 1}
    assert data["pagination"]["total"] == 2

    admins = client.get("/api/user/all?role=admin", headers=admin["headers"]).json()["data"]["users"]
    assert [u["id"] for u in admins] == [admin["user"]["id"]]

    searched = client.get("/api/user/all?search=MEMBER", headers=admin["headers"]).json()["data"]["users"]
    assert [u["id"] for u in searched] == [member["user"]["id"]]


def test_user_dashboard_stats(client: TestClient, admin, member) -> None:
    stats = client.get("/api/user/stats/dashboard", headers=admin["headers"]).json()["data"]

    assert stats["totalUsers"] == 2
    assert stats["activeUsers"] == 2
    assert stats["adminUsers"] == 1
    assert stats["recentUsers"] == 2
    assert stats["roleStats"] == {"admin": 1, "user": 1}
    assert sum(day["count"] for day in stats["monthlyRegistrations"]) == 2


def test_user_routes_require_auth(client: TestClient, member) -> None:
    assert client.get("/api/user/all").status_code == 401
    assert client.delete(f"/api/user/{member['user']['id']}").status_code == 401
