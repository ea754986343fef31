"""
verify.py
---------
Purpose:
    Access token verification for owner and tenant routes.

Notes:
    - Any missing, expired, malformed or wrong-actor token yields
      401 {"msg": "Access Token is not valid"}; clients refresh on
      exactly that body.
    - Provides `authorize_owner_user` / `authorize_tenant_user` dependencies.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from rental_hub.auth.tokens import ACCESS_TOKEN_TYPE, TokenError, decode_token
from rental_hub.infrastructure.observability.logging import get_logger
from rental_hub.models.domain.session_domain import UserType

logger = get_logger(__name__)

ACCESS_TOKEN_INVALID_MSG = "Access Token is not valid"

_security = HTTPBearer(auto_error=False)


def _invalid_token() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=ACCESS_TOKEN_INVALID_MSG,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_access_token(token: str, user_type: UserType) -> dict:
    try:
        return decode_token(token, ACCESS_TOKEN_TYPE, user_type=user_type)
    except TokenError as e:
        logger.debug("Access token rejected", user_type=user_type.value, error=str(e))
        raise _invalid_token() from e


def _authorize(credentials: HTTPAuthorizationCredentials | None, user_type: UserType) -> dict:
    if credentials is None or not credentials.credentials:
        raise _invalid_token()
    return verify_access_token(credentials.credentials, user_type)


def authorize_owner_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> dict:
    return _authorize(credentials, UserType.OWNER)


def authorize_tenant_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> dict:
    return _authorize(credentials, UserType.TENANT)
