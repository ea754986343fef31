"""
API client for the rental marketplace.

- Session persistence (access token + actor kind)
- Authenticated requests with silent token refresh
- Owner listing endpoints
"""

from rental_hub.client.http_client import (
    ACCESS_TOKEN_INVALID_MSG,
    ApiError,
    RefreshError,
    RentalApiClient,
    error_message,
)
from rental_hub.client.owner_properties import OwnerPropertyClient
from rental_hub.client.session_store import SessionStore, SessionStoreError

__all__ = [
    "ACCESS_TOKEN_INVALID_MSG",
    "ApiError",
    "RefreshError",
    "RentalApiClient",
    "error_message",
    "OwnerPropertyClient",
    "SessionStore",
    "SessionStoreError",
]
