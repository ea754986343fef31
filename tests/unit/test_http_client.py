"""
Tests for the API client refresh protocol.
"""

import asyncio
import dataclasses
from unittest.mock import patch

import httpx
import pytest

from rental_hub.client.http_client import (
    ACCESS_TOKEN_INVALID_MSG,
    MAX_ATTEMPTS,
    ApiError,
    PendingRequest,
    error_message,
)
from rental_hub.client.session_store import SessionStoreError
from rental_hub.models.domain.session_domain import Session

RESOURCE = "/api/owner/real-estate"
OWNER_REFRESH = "/api/auth/owner/refresh"


def expired():
    return httpx.Response(401, json={"msg": ACCESS_TOKEN_INVALID_MSG})


def ok(payload):
    return httpx.Response(200, json=payload)


@pytest.mark.asyncio
async def test_expired_token_refreshes_once_and_replays(fake_api, owner_session, make_client):
    fake_api.add("GET", RESOURCE, expired(), ok({"realEstates": [], "numberOfPages": 1}))
    fake_api.add("GET", OWNER_REFRESH, ok({"accessToken": "fresh-token"}))

    async with make_client() as client:
        result = await client.get("/owner/real-estate", params={"page": 1})

    assert result == {"realEstates": [], "numberOfPages": 1}
    assert len(fake_api.calls_to("GET", OWNER_REFRESH)) == 1

    resource_calls = fake_api.calls_to("GET", RESOURCE)
    assert len(resource_calls) == 2
    assert resource_calls[0].headers["Authorization"] == "Bearer stale-token"
    assert resource_calls[1].headers["Authorization"] == "Bearer fresh-token"
    assert resource_calls[1].url.params["page"] == "1"

    assert owner_session.get_access_token() == "fresh-token"


@pytest.mark.asyncio
async def test_replay_failure_does_not_refresh_again(fake_api, owner_session, make_client):
    fake_api.add("GET", RESOURCE, expired())
    fake_api.add("GET", OWNER_REFRESH, ok({"accessToken": "fresh-token"}))

    async with make_client() as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get("/owner/real-estate")

    assert exc_info.value.status_code == 401
    assert exc_info.value.is_access_token_expired()
    assert len(fake_api.calls_to("GET", OWNER_REFRESH)) == 1
    assert len(fake_api.calls_to("GET", RESOURCE)) == 2


@pytest.mark.asyncio
async def test_refresh_failure_clears_session_and_raises_original(
    fake_api, owner_session, make_client
):
    fake_api.add("PATCH", "/api/owner/real-estate/update/villa", expired())
    fake_api.add(
        "GET", OWNER_REFRESH, httpx.Response(403, json={"msg": "Refresh Token is not valid"})
    )
    expired_sessions = []

    async with make_client(on_session_expired=lambda: expired_sessions.append(True)) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.patch("/owner/real-estate/update/villa", json={"price": 1200})

    assert exc_info.value.status_code == 401
    assert exc_info.value.msg == ACCESS_TOKEN_INVALID_MSG
    assert owner_session.load() == Session()
    assert not owner_session.path.exists()
    assert expired_sessions == [True]
    assert len(fake_api.calls_to("PATCH", "/api/owner/real-estate/update/villa")) == 1


@pytest.mark.asyncio
async def test_refresh_timeout_counts_as_refresh_failure(fake_api, owner_session, make_client):
    fake_api.add("GET", RESOURCE, expired())
    fake_api.add("GET", OWNER_REFRESH, httpx.ReadTimeout("refresh timed out"))

    async with make_client(refresh_timeout=0.5) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get("/owner/real-estate")

    assert exc_info.value.msg == ACCESS_TOKEN_INVALID_MSG
    assert owner_session.get_access_token() is None


@pytest.mark.asyncio
async def test_refresh_without_access_token_in_body_fails(fake_api, owner_session, make_client):
    fake_api.add("GET", RESOURCE, expired())
    fake_api.add("GET", OWNER_REFRESH, ok({"unexpected": True}))

    async with make_client() as client:
        with pytest.raises(ApiError):
            await client.get("/owner/real-estate")

    assert owner_session.get_access_token() is None


@pytest.mark.asyncio
async def test_refresh_with_non_string_access_token_fails(fake_api, owner_session, make_client):
    fake_api.add("GET", RESOURCE, expired())
    fake_api.add("GET", OWNER_REFRESH, ok({"accessToken": 123}))

    async with make_client() as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get("/owner/real-estate")

    assert exc_info.value.msg == ACCESS_TOKEN_INVALID_MSG
    assert owner_session.load() == Session()


@pytest.mark.asyncio
async def test_failing_logout_hook_still_raises_original_error(
    fake_api, owner_session, make_client
):
    fake_api.add("GET", RESOURCE, expired())
    fake_api.add("GET", OWNER_REFRESH, httpx.Response(403, json={"msg": "nope"}))

    def broken_hook():
        raise RuntimeError("hook exploded")

    async with make_client(on_session_expired=broken_hook) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.get("/owner/real-estate")

    assert exc_info.value.msg == ACCESS_TOKEN_INVALID_MSG
    assert not owner_session.path.exists()


@pytest.mark.asyncio
async def test_session_clear_failure_still_raises_original_error(
    fake_api, owner_session, make_client
):
    fake_api.add("GET", RESOURCE, expired())
    fake_api.add("GET", OWNER_REFRESH, httpx.Response(403, json={"msg": "nope"}))
    expired_sessions = []

    with patch.object(
        owner_session, "clear", side_effect=SessionStoreError("disk gone", path="x")
    ):
        async with make_client(on_session_expired=lambda: expired_sessions.append(True)) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.get("/owner/real-estate")

    assert exc_info.value.msg == ACCESS_TOKEN_INVALID_MSG
    assert expired_sessions == [True]


@pytest.mark.asyncio
async def test_async_session_expired_callback_is_awaited(fake_api, owner_session, make_client):
    fake_api.add("GET", RESOURCE, expired())
    fake_api.add("GET", OWNER_REFRESH, httpx.Response(500, json={"msg": "boom"}))
    calls = []

    async def on_expired():
        calls.append("logged-out")

    async with make_client(on_session_expired=on_expired) as client:
        with pytest.raises(ApiError):
            await client.get("/owner/real-estate")

    assert calls == ["logged-out"]


@pytest.mark.asyncio
async def test_refresh_uses_tenant_endpoint_for_tenant_session(
    fake_api, session_store, make_client
):
    session_store.start("stale-token", "tenant")
    fake_api.add("GET", "/api/tenant/real-estate", expired(), ok({"realEstates": []}))
    fake_api.add("GET", "/api/auth/tenant/refresh", ok({"accessToken": "tenant-fresh"}))

    async with make_client() as client:
        result = await client.get("/tenant/real-estate")

    assert result == {"realEstates": []}
    assert fake_api.calls_to("GET", OWNER_REFRESH) == []
    assert session_store.get_access_token() == "tenant-fresh"


@pytest.mark.asyncio
async def test_missing_user_type_terminates_session(fake_api, session_store, make_client):
    session_store.save(Session(access_token="orphan-token"))
    fake_api.add("GET", RESOURCE, expired())

    async with make_client() as client:
        with pytest.raises(ApiError):
            await client.get("/owner/real-estate")

    assert session_store.get_access_token() is None
    assert fake_api.calls_to("GET", OWNER_REFRESH) == []


@pytest.mark.asyncio
async def test_other_401_is_propagated_without_refresh(fake_api, owner_session, make_client):
    fake_api.add("POST", RESOURCE, httpx.Response(401, json={"msg": "Invalid credentials"}))

    async with make_client() as client:
        with pytest.raises(ApiError) as exc_info:
            await client.post("/owner/real-estate", json={"title": "Flat"})

    assert exc_info.value.status_code == 401
    assert exc_info.value.msg == "Invalid credentials"
    assert not exc_info.value.is_access_token_expired()
    assert fake_api.calls_to("GET", OWNER_REFRESH) == []
    assert owner_session.get_access_token() == "stale-token"


@pytest.mark.asyncio
async def test_generic_error_status_is_propagated(fake_api, owner_session, make_client):
    fake_api.add("DELETE", "/api/owner/real-estate/delete/villa", httpx.Response(500, text="oops"))

    async with make_client() as client:
        with pytest.raises(ApiError) as exc_info:
            await client.delete("/owner/real-estate/delete/villa")

    assert exc_info.value.status_code == 500
    assert exc_info.value.response_data == "oops"
    assert exc_info.value.msg is None


@pytest.mark.asyncio
async def test_network_error_is_propagated(fake_api, owner_session, make_client):
    fake_api.add("GET", RESOURCE, httpx.ConnectError("connection refused"))

    async with make_client() as client:
        with pytest.raises(httpx.ConnectError):
            await client.get("/owner/real-estate")

    assert owner_session.get_access_token() == "stale-token"


@pytest.mark.asyncio
async def test_no_authorization_header_without_token(fake_api, session_store, make_client):
    fake_api.add("GET", "/api/tenant/real-estate", ok({"realEstates": []}))

    async with make_client() as client:
        await client.get("/tenant/real-estate")

    assert "Authorization" not in fake_api.calls[0].headers


@pytest.mark.asyncio
async def test_concurrent_expired_requests_each_recover(fake_api, owner_session, make_client):
    issued = []

    def refresh(request):
        issued.append(f"fresh-{len(issued) + 1}")
        return ok({"accessToken": issued[-1]})

    def resource(request):
        if request.headers.get("Authorization") == "Bearer stale-token":
            return expired()
        return ok({"ok": True})

    fake_api.add("GET", RESOURCE, resource)
    fake_api.add("GET", OWNER_REFRESH, refresh)

    async with make_client() as client:
        results = await asyncio.gather(
            client.get("/owner/real-estate"), client.get("/owner/real-estate")
        )

    assert results == [{"ok": True}, {"ok": True}]
    # No coalescing: each request that saw the stale token refreshes on its own
    assert 1 <= len(issued) <= 2
    assert owner_session.get_access_token() in issued


@pytest.mark.asyncio
async def test_refresh_cookie_is_sent_with_refresh_call(fake_api, owner_session, make_client):
    fake_api.add("GET", RESOURCE, expired(), ok({"ok": True}))
    fake_api.add("GET", OWNER_REFRESH, ok({"accessToken": "fresh-token"}))

    async with make_client() as client:
        client.cookies.set("refreshToken", "cookie-value", domain="testserver")
        await client.get("/owner/real-estate")

    refresh_call = fake_api.calls_to("GET", OWNER_REFRESH)[0]
    assert "refreshToken=cookie-value" in refresh_call.headers["Cookie"]


def test_pending_request_attempts_are_immutable():
    first = PendingRequest(method="GET", url="/owner/real-estate")
    second = first.next_attempt()

    assert first.attempt == 1
    assert second.attempt == 2
    assert first.can_retry()
    assert not second.can_retry()
    assert second.attempt == MAX_ATTEMPTS
    with pytest.raises(dataclasses.FrozenInstanceError):
        first.attempt = 5


def test_error_message_prefers_server_msg():
    api_error = ApiError("Request failed", status_code=400, response_data={"msg": "Slug taken"})

    assert error_message(api_error) == "Slug taken"
    assert error_message(ApiError("Request failed with status code 502")) == (
        "Request failed with status code 502"
    )
    assert error_message(RuntimeError("network down")) == "network down"
