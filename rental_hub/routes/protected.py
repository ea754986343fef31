"""
protected.py
------------
Purpose:
    Identity endpoints behind the owner/tenant access token checks.

    - GET /api/owner/me  (owner access token)
    - GET /api/tenant/me (tenant access token)

    Clients call these with:
        Authorization: Bearer <accessToken>
"""

from fastapi import APIRouter, Depends

from rental_hub.auth.verify import authorize_owner_user, authorize_tenant_user
from rental_hub.models.api.auth_response import AuthMeta
from rental_hub.models.domain.session_domain import UserType

router = APIRouter(prefix="/api", tags=["protected"])


def _auth_meta(claims: dict, user_type: UserType) -> AuthMeta:
    return AuthMeta(
        user_id=claims["sub"],
        user_type=user_type,
        iat=claims.get("iat"),
        exp=claims.get("exp"),
    )


@router.get("/owner/me", response_model=AuthMeta)
async def owner_me(claims: dict = Depends(authorize_owner_user)):
    return _auth_meta(claims, UserType.OWNER)


@router.get("/tenant/me", response_model=AuthMeta)
async def tenant_me(claims: dict = Depends(authorize_tenant_user)):
    return _auth_meta(claims, UserType.TENANT)
