"""
Rental API client with transparent access-token refresh.
All callers issue requests through RentalApiClient: it attaches the bearer
token, and when the server reports an expired access token it refreshes the
token once and replays the request.
"""

import inspect
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import Any

import httpx

from rental_hub.client.session_store import SessionStore, SessionStoreError
from rental_hub.config import settings
from rental_hub.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# Exact body marker that triggers the refresh flow; any other 401 is surfaced as-is
ACCESS_TOKEN_INVALID_MSG = "Access Token is not valid"

# Original attempt plus one replay after a refresh
MAX_ATTEMPTS = 2


class ApiError(Exception):
    """Non-2xx response from the rental API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_data: Any = None,
        method: str | None = None,
        url: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data
        self.method = method
        self.url = url

    @property
    def msg(self) -> str | None:
        """The conventional ``{"msg": ...}`` field of the error body, if any."""
        if isinstance(self.response_data, dict):
            msg = self.response_data.get("msg")
            return msg if isinstance(msg, str) else None
        return None

    def is_access_token_expired(self) -> bool:
        return self.status_code == 401 and self.msg == ACCESS_TOKEN_INVALID_MSG


class RefreshError(Exception):
    """The refresh call failed; the session has been terminated."""


@dataclass(frozen=True)
class PendingRequest:
    """A request as issued, with the attempt number it is on."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    json: Any = None
    params: dict[str, Any] | None = None
    attempt: int = 1

    def can_retry(self) -> bool:
        return self.attempt < MAX_ATTEMPTS

    def next_attempt(self) -> "PendingRequest":
        return replace(self, attempt=self.attempt + 1)


def error_message(exc: Exception) -> str:
    """Server-provided ``msg`` when present, otherwise the exception text."""
    if isinstance(exc, ApiError) and exc.msg:
        return exc.msg
    return str(exc)


class RentalApiClient:
    """
    Single request-issuing facade for the rental API.

    Credentials are always included: the underlying httpx client keeps a
    cookie jar, which is where the server stores the refresh token.
    """

    def __init__(
        self,
        session_store: SessionStore | None = None,
        base_url: str | None = None,
        on_session_expired: Callable[[], Any] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
        refresh_timeout: float | None = None,
    ):
        self.session_store = session_store or SessionStore()
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.on_session_expired = on_session_expired
        self.refresh_timeout = refresh_timeout or settings.REFRESH_TIMEOUT_SECONDS
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout or settings.REQUEST_TIMEOUT_SECONDS),
            transport=transport,
        )

    async def __aenter__(self) -> "RentalApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    def _auth_headers(self) -> dict[str, str]:
        token = self.session_store.get_access_token()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def _send(self, pending: PendingRequest, timeout: float | None = None) -> Any:
        """Send one attempt; raise ApiError on any non-2xx status."""
        headers = {**pending.headers, **self._auth_headers()}
        kwargs: dict[str, Any] = {"headers": headers, "params": pending.params}
        if pending.json is not None:
            kwargs["json"] = pending.json
        if timeout is not None:
            kwargs["timeout"] = timeout

        response = await self._client.request(pending.method, pending.url, **kwargs)
        return self._handle_response(response, pending)

    def _handle_response(self, response: httpx.Response, pending: PendingRequest) -> Any:
        try:
            data = response.json() if response.content else None
        except ValueError:
            data = response.text

        if response.is_success:
            return data

        logger.debug(
            "API request failed",
            method=pending.method,
            url=pending.url,
            status_code=response.status_code,
            attempt=pending.attempt,
        )
        message = data.get("msg") if isinstance(data, dict) else None
        raise ApiError(
            message or f"Request failed with status code {response.status_code}",
            status_code=response.status_code,
            response_data=data,
            method=pending.method,
            url=pending.url,
        )

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Issue a request against the API base URL.

        Args:
            method: HTTP method
            path: Path relative to the base URL, e.g. "/owner/real-estate"
            json: Optional JSON body
            params: Optional query parameters
            headers: Extra request headers

        Returns:
            Parsed JSON body of the (possibly replayed) successful response

        Raises:
            ApiError: Non-2xx response that was not recovered by a refresh
            httpx.RequestError: Network failure
        """
        pending = PendingRequest(
            method=method.upper(),
            url=path,
            headers=dict(headers or {}),
            json=json,
            params=params,
        )
        return await self._execute(pending)

    async def _execute(self, pending: PendingRequest) -> Any:
        try:
            return await self._send(pending)
        except ApiError as error:
            if not (error.is_access_token_expired() and pending.can_retry()):
                raise

            retry = pending.next_attempt()
            try:
                await self.refresh_access_token()
            except RefreshError:
                # The caller sees the expired-token error, never the refresh error
                raise error from None

            logger.info("Replaying request after token refresh", method=retry.method, url=retry.url)
            return await self._execute(retry)

    async def refresh_access_token(self) -> str:
        """
        Mint a new access token for the session's actor kind.

        On any failure (error status, network error, timeout, malformed
        body) the session is terminated before RefreshError is raised.
        """
        user_type = self.session_store.get_user_type()
        if user_type is None:
            await self._terminate_session(reason="missing_user_type")
            raise RefreshError("No actor kind in session")

        refresh_request = PendingRequest(method="GET", url=f"/auth/{user_type.value}/refresh")
        logger.info("Refreshing access token", user_type=user_type.value)

        try:
            data = await self._send(refresh_request, timeout=self.refresh_timeout)
            access_token = data.get("accessToken") if isinstance(data, dict) else None
            if not isinstance(access_token, str) or not access_token:
                raise ApiError("Refresh response missing accessToken", response_data=data)
        except (ApiError, httpx.HTTPError) as e:
            logger.warning(
                "Access token refresh failed",
                user_type=user_type.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            await self._terminate_session(reason="refresh_failed")
            raise RefreshError(str(e)) from e

        self.session_store.set_access_token(access_token)
        logger.info("Access token refreshed", user_type=user_type.value)
        return access_token

    async def _terminate_session(self, reason: str) -> None:
        """Clear the session and run the logout hook; failures here are logged only."""
        try:
            self.session_store.clear()
        except SessionStoreError as e:
            logger.error("Failed to clear session", error=str(e), path=str(e.path))
        logger.warning("Session terminated", reason=reason)

        if self.on_session_expired is None:
            return
        try:
            result = self.on_session_expired()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error("Session expired hook failed", error=str(e), error_type=type(e).__name__)

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
