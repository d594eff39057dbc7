from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portfolio_api.config import Config
from portfolio_api.db import connect

from .crud import get_user_by_id, public_user
from .security import decode_access_token


_bearer = HTTPBearer(auto_error=False)

# Missing, malformed, expired and revoked-by-deactivation tokens all look the same to
# the caller.
UNAUTHENTICATED = "Not authenticated: token is missing, invalid or expired"


class AuthError(Exception):
    """Internal signal that a request carries no usable credential."""


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=401, detail=UNAUTHENTICATED, headers={"WWW-Authenticate": "Bearer"})


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise HTTPException(status_code=500, detail="Server configuration missing")
    return cfg


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials], cfg: Config) -> str | None:
    # The session cookie wins over an Authorization header.
    cookie_name = str(cfg.AUTH_COOKIE_NAME or "token")
    token = request.cookies.get(cookie_name)
    if token:
        return token
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return None


def _resolve_user(token: str | None, cfg: Config) -> Dict[str, Any]:
    if not token:
        raise AuthError("missing_token")

    try:
        payload = decode_access_token(token=token, secret=cfg.AUTH_JWT_SECRET, issuer=cfg.AUTH_JWT_ISSUER)
    except jwt.InvalidTokenError as e:
        raise AuthError("token_invalid") from e

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError) as e:
        raise AuthError("token_sub_not_int") from e

    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, user_id)
    if row is None:
        raise AuthError("user_not_found")
    if int(row["is_active"] or 0) != 1:
        raise AuthError("user_inactive")

    user = public_user(row)
    # Convenience boolean
    user["isAdmin"] = user.get("role") == "admin"
    return user


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Dict[str, Any]:
    """Authenticate a request (hard mode).

    Supports both:
      - Cookie-based sessions (httpOnly `token` cookie set by /signin and /signup)
      - Authorization: Bearer <jwt>

    Any failure is a 401 with a single, generic message.
    """

    cfg = get_config(request)
    try:
        return _resolve_user(_extract_token(request, credentials, cfg), cfg)
    except AuthError:
        raise _unauthorized()


def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Optional[Dict[str, Any]]:
    """Soft mode: attach the principal when the token is usable, otherwise proceed anonymously.

    Public read endpoints use this to widen results for admins.
    """

    cfg = get_config(request)
    try:
        return _resolve_user(_extract_token(request, credentials, cfg), cfg)
    except AuthError:
        return None


def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin privileges required")
    return user


def is_admin(user: Optional[Dict[str, Any]]) -> bool:
    return bool(user) and user.get("role") == "admin"


def ensure_admin_or_owner(user: Dict[str, Any], owner_id: Optional[int]) -> None:
    """Allow admins, or the principal referenced by the resource's createdBy."""
    if is_admin(user):
        return
    if owner_id is not None and int(owner_id) == int(user["id"]):
        return
    raise HTTPException(status_code=403, detail="Insufficient permissions")


def ensure_admin_fields(user: Dict[str, Any], payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    """Reject a non-admin payload that touches admin-only fields (e.g. isVisible)."""
    if is_admin(user):
        return
    touched = [f for f in fields if f in payload]
    if touched:
        raise HTTPException(status_code=403, detail=f"Only admins can change: {', '.join(touched)}")
