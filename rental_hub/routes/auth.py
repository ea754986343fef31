"""
auth.py
-------
Purpose:
    Session refresh and logout for owners and tenants.

    - GET  /api/auth/{user_type}/refresh : exchange the refresh cookie for a new
      access token (the refresh cookie is rotated at the same time)
    - POST /api/auth/{user_type}/logout  : drop the refresh cookie
"""

from fastapi import APIRouter, HTTPException, Request, Response, status

from rental_hub.auth.tokens import (
    REFRESH_TOKEN_TYPE,
    TokenError,
    clear_refresh_cookie,
    create_access_token,
    create_refresh_token,
    decode_token,
    set_refresh_cookie,
)
from rental_hub.config import settings
from rental_hub.infrastructure.observability.logging import get_logger
from rental_hub.models.api.auth_response import LogoutResponse, RefreshResponse
from rental_hub.models.domain.session_domain import UserType

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = get_logger(__name__)

REFRESH_TOKEN_INVALID_MSG = "Refresh Token is not valid"


@router.get("/{user_type}/refresh", response_model=RefreshResponse)
async def refresh(user_type: UserType, request: Request, response: Response):
    refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not refresh_token:
        logger.info("Refresh rejected: no refresh cookie", user_type=user_type.value)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=REFRESH_TOKEN_INVALID_MSG)

    try:
        claims = decode_token(refresh_token, REFRESH_TOKEN_TYPE, user_type=user_type)
    except TokenError as e:
        logger.info("Refresh rejected", user_type=user_type.value, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail=REFRESH_TOKEN_INVALID_MSG
        ) from e

    user_id = claims["sub"]
    set_refresh_cookie(response, create_refresh_token(user_id, user_type))
    logger.info("Access token refreshed", user_id=user_id, user_type=user_type.value)
    return RefreshResponse(accessToken=create_access_token(user_id, user_type))


@router.post("/{user_type}/logout", response_model=LogoutResponse)
async def logout(user_type: UserType, response: Response):
    clear_refresh_cookie(response)
    logger.info("Logged out", user_type=user_type.value)
    return LogoutResponse()
