import os
from dataclasses import dataclass
from typing import List, Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    # If python-dotenv isn't installed, plain environment variables still work.
    pass


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Core
    # -----------------
    APP_ENV: str = os.environ.get("APP_ENV", "development")

    API_HOST: str = os.environ.get("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.environ.get("API_PORT", "5000"))

    # Preferred: set PORTFOLIO_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: PORTFOLIO_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("PORTFOLIO_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("PORTFOLIO_DB_PATH", "./portfolio.sqlite")
    )

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = os.environ.get("AUTH_JWT_SECRET", "dev_change_me")
    AUTH_JWT_ISSUER: str = os.environ.get("AUTH_JWT_ISSUER", "portfolio-api")
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "10080"))  # 7 days

    # Bootstrap first admin user if users table is empty
    AUTH_BOOTSTRAP_ADMIN_NAME: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_NAME", "Admin User")
    AUTH_BOOTSTRAP_ADMIN_EMAIL: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_EMAIL", "admin@example.com")
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_PASSWORD", "")

    # Cookie-based browser sessions
    # - The API sets an httpOnly cookie on /signin and /signup
    # - The API reads the token from the cookie first, then Authorization: Bearer ...
    AUTH_COOKIE_NAME: str = os.environ.get("AUTH_COOKIE_NAME", "token")
    AUTH_COOKIE_PATH: str = os.environ.get("AUTH_COOKIE_PATH", "/")
    AUTH_COOKIE_SAMESITE: str = os.environ.get("AUTH_COOKIE_SAMESITE", "strict")  # lax|strict|none

    # If AUTH_COOKIE_SECURE is unset, cookies are Secure only in production.
    AUTH_COOKIE_SECURE: Optional[bool] = _env_bool("AUTH_COOKIE_SECURE", None)

    # -----------------
    # CORS
    # -----------------
    # The SPA origin (Vite dev server by default). Comma-separated for several.
    CLIENT_URL: str = os.environ.get("CLIENT_URL", "http://localhost:5173")

    def is_production(self) -> bool:
        return (self.APP_ENV or "").strip().lower() == "production"

    def cookie_secure(self) -> bool:
        # Browsers require Secure when SameSite=None
        if (self.AUTH_COOKIE_SAMESITE or "").lower() == "none":
            return True
        if self.AUTH_COOKIE_SECURE is not None:
            return bool(self.AUTH_COOKIE_SECURE)
        return self.is_production()

    def cors_origins(self) -> List[str]:
        return [o.strip() for o in (self.CLIENT_URL or "").split(",") if o.strip()]


def load_config() -> Config:
    return Config()
