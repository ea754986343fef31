import os

os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-0123456789abcdef")

import httpx  # noqa: E402
import pytest  # noqa: E402

from rental_hub.client.http_client import RentalApiClient  # noqa: E402
from rental_hub.client.session_store import SessionStore  # noqa: E402
from rental_hub.models.domain.session_domain import UserType  # noqa: E402


class FakeApi:
    """Scripted stand-in for the rental API, served through httpx.MockTransport."""

    def __init__(self):
        self.routes: dict[tuple[str, str], list] = {}
        self.calls: list = []

    def add(self, method: str, path: str, *responses):
        """Queue responses for a route; the last one repeats once the queue drains."""
        self.routes.setdefault((method, path), []).extend(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"msg": "Route does not exist"})
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(request)
        # Fresh instance per call; a queued response may be served repeatedly
        return httpx.Response(result.status_code, headers=result.headers, content=result.content)

    def calls_to(self, method: str, path: str) -> list:
        return [c for c in self.calls if c.method == method and c.url.path == path]


@pytest.fixture
def fake_api():
    return FakeApi()


@pytest.fixture
def session_store(tmp_path):
    return SessionStore(tmp_path / "session.json")


@pytest.fixture
def owner_session(session_store):
    session_store.start("stale-token", UserType.OWNER)
    return session_store


@pytest.fixture
def make_client(fake_api, session_store):
    """Factory for RentalApiClient wired to the fake API; use it with `async with`."""

    def _make(**kwargs):
        return RentalApiClient(
            session_store=session_store,
            base_url="http://testserver/api",
            transport=httpx.MockTransport(fake_api.handler),
            **kwargs,
        )

    return _make
