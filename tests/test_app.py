from pathlib import Path

from fastapi.testclient import TestClient

from conftest import make_config
from portfolio_api.api.server import create_app
from portfolio_api.db import StoreError, init_db


def test_health(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "OK"
    assert body["timestamp"].endswith("Z")


def test_unknown_route_is_enveloped_404(client: TestClient) -> None:
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route not found"}


def test_malformed_json_is_validation_error(client: TestClient) -> None:
    response = client.post(
        "/api/contact",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"


def test_cors_allows_client_origin_with_credentials(client: TestClient) -> None:
    response = client.options(
        "/api/health",
        headers={"Origin": "http://localhost:5173", "Access-Control-Request-Method": "GET"},
    )

    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert response.headers["access-control-allow-credentials"] == "true"


def _app_with_failing_routes(tmp_path: Path, **overrides):
    cfg = make_config(tmp_path, **overrides)
    init_db(cfg.DB_DSN)
    app = create_app(cfg)

    @app.get("/api/boom")
    def boom() -> None:
        raise RuntimeError("kaboom")

    @app.get("/api/store-boom")
    def store_boom() -> None:
        raise StoreError("UNIQUE constraint failed: users.email")

    return app


def test_unhandled_error_includes_detail_outside_production(tmp_path: Path) -> None:
    app = _app_with_failing_routes(tmp_path)

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/api/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Internal server error"
    assert body["error"] == "kaboom"
    assert "RuntimeError" in body["stack"]


def test_errors_are_opaque_in_production(tmp_path: Path) -> None:
    app = _app_with_failing_routes(tmp_path, APP_ENV="production")

    with TestClient(app, raise_server_exceptions=False) as client:
        unhandled = client.get("/api/boom")
        store = client.get("/api/store-boom")

    assert unhandled.status_code == 500
    assert unhandled.json() == {"success": False, "message": "Internal server error"}
    assert store.status_code == 500
    assert store.json() == {"success": False, "message": "Internal server error"}


def test_production_cookie_is_secure(tmp_path: Path) -> None:
    cfg = make_config(tmp_path, APP_ENV="production", AUTH_COOKIE_SECURE=None)
    init_db(cfg.DB_DSN)

    with TestClient(create_app(cfg), base_url="https://testserver") as client:
        response = client.post(
            "/api/auth/signup",
            json={"name": "Prod User", "email": "prod@example.com", "password": "prod-password"},
        )

    assert response.status_code == 201
    assert "secure" in response.headers["set-cookie"].lower()
