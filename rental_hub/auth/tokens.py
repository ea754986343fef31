"""
tokens.py
---------
Purpose:
    Issue and verify the access/refresh JWT pair (HS256, PyJWT).

Notes:
    - Access tokens travel in the Authorization header and expire quickly.
    - Refresh tokens live in an httpOnly cookie scoped to the API and are
      only accepted by the refresh route.
    - Both carry `sub` (user id), `userType` (owner | tenant) and `type`.
"""

from datetime import UTC, datetime, timedelta

import jwt
from fastapi import Response

from rental_hub.config import settings
from rental_hub.infrastructure.observability.logging import get_logger
from rental_hub.models.domain.session_domain import UserType

logger = get_logger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class TokenError(Exception):
    """Token could not be decoded or does not match what the caller expects."""

    def __init__(self, message: str, token_type: str | None = None):
        super().__init__(message)
        self.token_type = token_type


def _secret_for(token_type: str) -> str:
    secret = (
        settings.ACCESS_TOKEN_SECRET
        if token_type == ACCESS_TOKEN_TYPE
        else settings.REFRESH_TOKEN_SECRET
    )
    if not secret:
        raise TokenError(f"{token_type.upper()}_TOKEN_SECRET not configured", token_type=token_type)
    return secret


def _encode(user_id: str, user_type: UserType, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "userType": user_type.value,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, _secret_for(token_type), algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: str, user_type: UserType) -> str:
    return _encode(
        user_id,
        user_type,
        ACCESS_TOKEN_TYPE,
        timedelta(minutes=settings.ACCESS_TOKEN_TTL_MINUTES),
    )


def create_refresh_token(user_id: str, user_type: UserType) -> str:
    return _encode(
        user_id,
        user_type,
        REFRESH_TOKEN_TYPE,
        timedelta(days=settings.REFRESH_TOKEN_TTL_DAYS),
    )


def decode_token(token: str, token_type: str, user_type: UserType | None = None) -> dict:
    """
    Verify signature, expiry, token type and (optionally) actor kind.

    Raises:
        TokenError: On any verification failure
    """
    try:
        claims = jwt.decode(
            token,
            _secret_for(token_type),
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": True, "require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as e:
        raise TokenError(f"Invalid {token_type} token: {e}", token_type=token_type) from e

    if claims.get("type") != token_type:
        raise TokenError(f"Expected a {token_type} token", token_type=token_type)
    if user_type is not None and claims.get("userType") != user_type.value:
        raise TokenError(f"Token not issued for {user_type.value}", token_type=token_type)
    return claims


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=settings.REFRESH_TOKEN_TTL_DAYS * 24 * 3600,
        httponly=True,
        secure=settings.refresh_cookie_secure(),
        samesite="none" if settings.refresh_cookie_secure() else "lax",
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        httponly=True,
        secure=settings.refresh_cookie_secure(),
        samesite="none" if settings.refresh_cookie_secure() else "lax",
    )


def issue_session(response: Response, user_id: str, user_type: UserType) -> str:
    """
    Start an authenticated session after credentials were checked.

    Sets the refresh cookie on ``response`` and returns the access token
    for the response body.
    """
    set_refresh_cookie(response, create_refresh_token(user_id, user_type))
    logger.info("Session issued", user_id=user_id, user_type=user_type.value)
    return create_access_token(user_id, user_type)
