from datetime import datetime, timedelta, timezone

import jwt
import pytest

from portfolio_api.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_password_hash_round_trip() -> None:
    hashed = hash_password("long-password-123")

    assert hashed != "long-password-123"
    assert verify_password("long-password-123", hashed)
    assert not verify_password("wrong-password", hashed)


def test_verify_password_rejects_garbage_hash() -> None:
    assert not verify_password("anything", "not-a-real-hash")
    assert not verify_password("", "")


def test_token_carries_subject_role_and_issuer() -> None:
    token = create_access_token(secret="s3cret", user_id=42, role="admin", issuer="portfolio-api", expires_minutes=5)

    payload = decode_access_token(token=token, secret="s3cret", issuer="portfolio-api")

    assert payload["sub"] == "42"
    assert payload["role"] == "admin"
    assert payload["iss"] == "portfolio-api"
    assert payload["exp"] > payload["iat"]


def test_token_with_wrong_secret_or_issuer_is_rejected() -> None:
    token = create_access_token(secret="s3cret", user_id=1, role="user", issuer="portfolio-api", expires_minutes=5)

    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(token=token, secret="other", issuer="portfolio-api")
    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(token=token, secret="s3cret", issuer="someone-else")


def test_expired_token_is_rejected() -> None:
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    token = jwt.encode(
        {"sub": "1", "role": "user", "iss": "portfolio-api", "iat": int(past.timestamp()), "exp": int(past.timestamp())},
        "s3cret",
        algorithm="HS256",
    )

    with pytest.raises(jwt.ExpiredSignatureError):
        decode_access_token(token=token, secret="s3cret", issuer="portfolio-api")


def test_blank_token_is_rejected() -> None:
    with pytest.raises(jwt.InvalidTokenError):
        decode_access_token(token="", secret="s3cret", issuer="portfolio-api")
