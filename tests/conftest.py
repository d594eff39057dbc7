import sys
from pathlib import Path
from typing import Any, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portfolio_api.api.server import create_app  # noqa: E402
from portfolio_api.auth.crud import create_user  # noqa: E402
from portfolio_api.auth.security import create_access_token  # noqa: E402
from portfolio_api.config import Config  # noqa: E402
from portfolio_api.db import connect, init_db  # noqa: E402


PASSWORD = "long-password-123"


def make_config(tmp_path: Path, **overrides: Any) -> Config:
    values: Dict[str, Any] = dict(
        APP_ENV="test",
        DB_DSN=str(tmp_path / "portfolio.sqlite"),
        AUTH_JWT_SECRET="tests-secret-key",
        AUTH_JWT_ISSUER="portfolio-api",
        AUTH_BOOTSTRAP_ADMIN_PASSWORD="",
        AUTH_COOKIE_SECURE=False,
        CLIENT_URL="http://localhost:5173",
    )
    values.update(overrides)
    return Config(**values)


def auth_header(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def make_account(cfg: Config, *, email: str, role: str = "user", name: str = "Test User") -> Dict[str, Any]:
    """Create a user directly in the store and mint a token for it."""
    with connect(cfg.DB_DSN) as conn:
        user = create_user(conn, name=name, email=email, password=PASSWORD, role=role)
    token = create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=int(user["id"]),
        role=role,
        issuer=cfg.AUTH_JWT_ISSUER,
        expires_minutes=60,
    )
    return {"user": user, "token": token, "headers": auth_header(token)}


@pytest.fixture
def cfg(tmp_path: Path) -> Config:
    config = make_config(tmp_path)
    init_db(config.DB_DSN)
    return config


@pytest.fixture
def client(cfg: Config) -> Iterator[TestClient]:
    with TestClient(create_app(cfg)) as c:
        yield c


@pytest.fixture
def admin(cfg: Config) -> Dict[str, Any]:
    return make_account(cfg, email="admin@example.com", role="admin", name="Admin User")


@pytest.fixture
def member(cfg: Config) -> Dict[str, Any]:
    return make_account(cfg, email="member@example.com", name="Member User")


def education_body(**overrides: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "institution": "State University",
        "degree": "B.Sc.",
        "fieldOfStudy": "Computer Science",
        "startDate": "2018-08-01",
        "endDate": "2022-05-31",
        "type": "formal",
    }
    body.update(overrides)
    return body


def project_body(**overrides: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "title": "Portfolio Site",
        "description": "A personal portfolio with an admin dashboard.",
        "category": "web-development",
        "technologies": ["React", "FastAPI"],
        "startDate": "2023-01-15",
        "endDate": "2023-04-01",
    }
    body.update(overrides)
    return body
