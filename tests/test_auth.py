from pathlib import Path

from fastapi.testclient import TestClient

from conftest import PASSWORD, auth_header, make_account, make_config
from portfolio_api.api.server import create_app
from portfolio_api.auth.deps import UNAUTHENTICATED
from portfolio_api.auth.security import create_access_token
from portfolio_api.db import connect, init_db


def _count_users(cfg) -> int:
    with connect(cfg.DB_DSN) as conn:
        return int(conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"])


def test_signup_sets_cookie_and_returns_token(client: TestClient) -> None:
    response = client.post(
        "/api/auth/signup",
        json={"name": "Ada Lovelace", "email": "Ada@Example.com", "password": "analytical"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "ada@example.com"
    assert body["data"]["user"]["role"] == "user"
    assert "password_hash" not in body["data"]["user"]
    assert body["data"]["token"]

    set_cookie = response.headers["set-cookie"].lower()
    assert "token=" in set_cookie
    assert "httponly" in set_cookie
    assert "samesite=strict" in set_cookie
    assert "max-age=604800" in set_cookie


def test_signup_rejects_duplicate_email(client: TestClient, member) -> None:
    response = client.post(
        "/api/auth/signup",
        json={"name": "Someone", "email": "member@example.com", "password": "another-pass"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "User already exists with this email"}


def test_signup_rejects_unknown_fields(client: TestClient, cfg) -> None:
    response = client.post(
        "/api/auth/signup",
        json={"name": "Mallory", "email": "mallory@example.com", "password": "hunter22", "role": "admin"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    assert {"field": "role", "message": "Extra inputs are not permitted"} in body["errors"]
    assert _count_users(cfg) == 0


def test_signin_success_updates_last_login(client: TestClient, member) -> None:
    response = client.post("/api/auth/signin", json={"email": "member@example.com", "password": PASSWORD})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == member["user"]["id"]
    assert data["user"]["lastLogin"] is not None
    assert data["token"]


def test_signin_failures_share_one_message(client: TestClient, cfg, member) -> None:
    inactive = make_account(cfg, email="gone@example.com")
    with connect(cfg.DB_DSN) as conn:
        conn.execute("UPDATE users SET is_active=0 WHERE user_id=?", (inactive["user"]["id"],))

    attempts = [
        {"email": "nobody@example.com", "password": PASSWORD},
        {"email": "member@example.com", "password": "wrong-password"},
        {"email": "gone@example.com", "password": PASSWORD},
    ]
    for creds in attempts:
        response = client.post("/api/auth/signin", json=creds)
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid email or password"}


def test_me_accepts_bearer_token(client: TestClient, member) -> None:
    response = client.get("/api/auth/me", headers=member["headers"])

    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["email"] == "member@example.com"
    assert user["isAdmin"] is False


def test_me_accepts_session_cookie(client: TestClient, member) -> None:
    client.post("/api/auth/signin", json={"email": "member@example.com", "password": PASSWORD})

    response = client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json()["data"]["user"]["id"] == member["user"]["id"]


def test_cookie_takes_precedence_over_bearer(client: TestClient, admin, member) -> None:
    client.cookies.set("token", member["token"])

    response = client.get("/api/auth/me", headers=admin["headers"])

    assert response.json()["data"]["user"]["id"] == member["user"]["id"]


def test_missing_or_invalid_token_is_401(client: TestClient, cfg, member) -> None:
    foreign = create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=int(member["user"]["id"]),
        role="user",
        issuer="another-service",
        expires_minutes=5,
    )
    for headers in ({}, auth_header("not-a-jwt"), auth_header(foreign)):
        response = client.get("/api/auth/me", headers=headers)
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": UNAUTHENTICATED}
        assert response.headers["www-authenticate"] == "Bearer"


def test_deactivated_user_token_stops_working(client: TestClient, cfg, member) -> None:
    with connect(cfg.DB_DSN) as conn:
        conn.execute("UPDATE users SET is_active=0 WHERE user_id=?", (member["user"]["id"],))

    response = client.get("/api/auth/me", headers=member["headers"])

    assert response.status_code == 401


def test_signout_clears_cookie(client: TestClient, member) -> None:
    client.post("/api/auth/signin", json={"email": "member@example.com", "password": PASSWORD})

    response = client.get("/api/auth/signout")

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert 'token=""' in response.headers["set-cookie"] or "max-age=0" in response.headers["set-cookie"].lower()
    client.cookies.clear()
    assert client.get("/api/auth/me").status_code == 401


def test_profile_update_and_duplicate_email(client: TestClient, admin, member) -> None:
    response = client.put(
        "/api/auth/profile",
        json={"name": "Renamed Member", "phone": "555-0100"},
        headers=member["headers"],
    )
    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["name"] == "Renamed Member"
    assert user["phone"] == "555-0100"

    clash = client.put("/api/auth/me", json={"email": "admin@example.com"}, headers=member["headers"])
    assert clash.status_code == 400
    assert clash.json()["message"] == "User already exists with this email"


def test_change_password(client: TestClient, member) -> None:
    wrong = client.put(
        "/api/auth/change-password",
        json={"currentPassword": "not-it", "newPassword": "brand-new-pass"},
        headers=member["headers"],
    )
    assert wrong.status_code == 400

    ok = client.put(
        "/api/auth/change-password",
        json={"currentPassword": PASSWORD, "newPassword": "brand-new-pass"},
        headers=member["headers"],
    )
    assert ok.status_code == 200

    old = client.post("/api/auth/signin", json={"email": "member@example.com", "password": PASSWORD})
    new = client.post("/api/auth/signin", json={"email": "member@example.com", "password": "brand-new-pass"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_non_admin_is_forbidden_from_admin_routes(client: TestClient, member) -> None:
    response = client.get("/api/user/all", headers=member["headers"])

    assert response.status_code == 403
    assert response.json() == {"success": False, "message": "Admin privileges required"}


def test_bootstrap_admin_on_startup(tmp_path: Path) -> None:
    cfg = make_config(
        tmp_path,
        AUTH_BOOTSTRAP_ADMIN_EMAIL="owner@example.com",
        AUTH_BOOTSTRAP_ADMIN_PASSWORD="bootstrap-pass",
    )
    init_db(cfg.DB_DSN)

    with TestClient(create_app(cfg)) as client:
        response = client.post(
            "/api/auth/signin",
            json={"email": "owner@example.com", "password": "bootstrap-pass"},
        )

    assert response.status_code == 200
    assert response.json()["data"]["user"]["role"] == "admin"


def test_bootstrap_skipped_when_users_exist(tmp_path: Path) -> None:
    cfg = make_config(
        tmp_path,
        AUTH_BOOTSTRAP_ADMIN_EMAIL="owner@example.com",
        AUTH_BOOTSTRAP_ADMIN_PASSWORD="bootstrap-pass",
    )
    init_db(cfg.DB_DSN)
    make_account(cfg, email="first@example.com")

    with TestClient(create_app(cfg)):
        pass

    assert _count_users(cfg) == 1
