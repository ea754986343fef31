# rental_hub/models/api/auth_response.py
from pydantic import BaseModel, Field

from rental_hub.models.domain.session_domain import UserType


class ErrorResponse(BaseModel):
    """Error body returned by every failing route: ``{"msg": ...}``."""

    msg: str


class RefreshResponse(BaseModel):
    """Response for GET /api/auth/{userType}/refresh"""

    accessToken: str = Field(..., description="Newly minted access token")


class LogoutResponse(BaseModel):
    """Response for POST /api/auth/{userType}/logout"""

    msg: str = "Logged out"


class AuthMeta(BaseModel):
    """Auth metadata extracted from access token claims."""

    user_id: str
    user_type: UserType
    iat: int | None = None
    exp: int | None = None
