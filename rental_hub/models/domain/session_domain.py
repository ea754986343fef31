"""
Session domain models shared by the API client and the auth routes.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UserType(str, Enum):
    """Actor kind; selects the refresh endpoint and the protected route set."""

    OWNER = "owner"
    TENANT = "tenant"


class Session(BaseModel):
    """
    Client-side authentication state.

    Serialized with the storage keys the web client uses (``token`` and
    ``userType``) so a session file can be shared with it.
    """

    model_config = ConfigDict(populate_by_name=True)

    access_token: str | None = Field(default=None, alias="token")
    user_type: UserType | None = Field(default=None, alias="userType")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)
