from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import Field

from portfolio_api.api.responses import ok
from portfolio_api.api.validation import Email, Phone, RequestModel
from portfolio_api.auth import get_current_user
from portfolio_api.auth.crud import (
    change_password,
    create_user,
    get_user_by_id,
    public_user,
    touch_last_login,
    update_profile,
    verify_user_credentials,
)
from portfolio_api.auth.deps import get_config
from portfolio_api.auth.security import create_access_token
from portfolio_api.config import Config
from portfolio_api.db import connect


router = APIRouter()

DUPLICATE_EMAIL = "User already exists with this email"


def _set_auth_cookie(response: Response, *, token: str, cfg: Config) -> None:
    """Set the httpOnly session cookie for browser-based auth."""
    response.set_cookie(
        key=str(cfg.AUTH_COOKIE_NAME or "token"),
        value=str(token),
        httponly=True,
        samesite=str(cfg.AUTH_COOKIE_SAMESITE or "strict").lower(),
        secure=cfg.cookie_secure(),
        max_age=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES) * 60,
        path=str(cfg.AUTH_COOKIE_PATH or "/"),
    )


def _clear_auth_cookie(response: Response, cfg: Config) -> None:
    response.delete_cookie(key=str(cfg.AUTH_COOKIE_NAME or "token"), path=str(cfg.AUTH_COOKIE_PATH or "/"))


def _issue_token(user: Dict[str, Any], cfg: Config) -> str:
    return create_access_token(
        secret=cfg.AUTH_JWT_SECRET,
        user_id=int(user["id"]),
        role=str(user["role"]),
        issuer=cfg.AUTH_JWT_ISSUER,
        expires_minutes=int(cfg.AUTH_TOKEN_EXPIRE_MINUTES),
    )


class SignupRequest(RequestModel):
    name: str = Field(min_length=2, max_length=50)
    email: Email
    password: str = Field(min_length=6, max_length=128)
    phone: Optional[Phone] = None


class SigninRequest(RequestModel):
    email: Email
    password: str = Field(min_length=1, max_length=128)


class ProfileRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    email: Optional[Email] = None
    phone: Optional[Phone] = None


class ChangePasswordRequest(RequestModel):
    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=6, max_length=128)


@router.post("/signup", status_code=201)
def signup(payload: SignupRequest, response: Response, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        try:
            user = create_user(
                conn,
                name=payload.name,
                email=payload.email,
                password=payload.password,
                phone=payload.phone,
                role="user",
            )
        except ValueError as e:
            if str(e) == "email_exists":
                raise HTTPException(status_code=400, detail=DUPLICATE_EMAIL)
            raise HTTPException(status_code=400, detail=str(e))
        touch_last_login(conn, int(user["id"]))

    token = _issue_token(user, cfg)
    _set_auth_cookie(response, token=token, cfg=cfg)
    return ok({"user": user, "token": token}, message="User registered successfully")


@router.post("/signin")
def signin(payload: SigninRequest, response: Response, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = verify_user_credentials(conn, payload.email, payload.password)
        if row is None:
            raise HTTPException(status_code=401, detail="Invalid email or password")
        touch_last_login(conn, int(row["user_id"]))
        # Re-read so lastLogin reflects this sign-in.
        user = public_user(get_user_by_id(conn, int(row["user_id"])))

    token = _issue_token(user, cfg)
    _set_auth_cookie(response, token=token, cfg=cfg)
    return ok({"user": user, "token": token}, message="Signed in successfully")


@router.get("/signout")
def signout(response: Response, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    """Clear the session cookie. Tokens are stateless, so a copied Bearer token stays valid until expiry."""
    _clear_auth_cookie(response, cfg)
    return ok(message="Signed out successfully")


@router.get("/me")
def me(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return ok({"user": user})


def _update_profile(payload: ProfileRequest, user: Dict[str, Any], cfg: Config) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        try:
            updated = update_profile(
                conn,
                int(user["id"]),
                name=payload.name,
                email=payload.email,
                phone=payload.phone,
            )
        except ValueError as e:
            if str(e) == "email_exists":
                raise HTTPException(status_code=400, detail=DUPLICATE_EMAIL)
            raise
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return ok({"user": updated}, message="Profile updated successfully")


@router.put("/me")
def update_me(
    payload: ProfileRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    return _update_profile(payload, user, cfg)


@router.put("/profile")
def update_profile_route(
    payload: ProfileRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    return _update_profile(payload, user, cfg)


@router.put("/change-password")
def change_password_route(
    payload: ChangePasswordRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        changed = change_password(
            conn,
            int(user["id"]),
            current_password=payload.current_password,
            new_password=payload.new_password,
        )
    if not changed:
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    return ok(message="Password changed successfully")
