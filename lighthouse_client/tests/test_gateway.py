"""
Unit tests for the authenticated request gateway.
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from lighthouse_client.app.adapters.api_client import LighthouseApiClient
from lighthouse_client.app.gateway import RETRY_MARKER, is_auth_endpoint
from lighthouse_client.app.storage import MemoryCredentialStore
from lighthouse_shared.errors import ApiError, RefreshError, SessionExpiredError
from lighthouse_shared.metrics import MetricsCollector
from lighthouse_shared.test_helpers import API_URL, FakeBackend


class TestAuthGateway:
    """Test cases for token attachment and expiry recovery."""

    @pytest.fixture
    def backend(self):
        return FakeBackend()

    @pytest.fixture
    def store(self):
        return MemoryCredentialStore({
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "user": {"id": "user-1"},
        })

    @pytest.fixture
    def expired_sessions(self):
        return []

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("gateway-test")

    @pytest_asyncio.fixture
    async def client(self, backend, store, expired_sessions, metrics):
        api = LighthouseApiClient(
            API_URL,
            store,
            on_session_expired=expired_sessions.append,
            metrics=metrics,
            transport=backend.transport,
        )
        yield api
        await api.aclose()

    @pytest.mark.asyncio
    async def test_attaches_stored_token(self, client, backend):
        """Every request carries the stored access token before any 401."""
        await client.get("/game/progress")
        await client.post("/game/mini-answer", json={"miniQuestionId": "m1", "linkUrl": "https://x"})

        assert [r.headers["Authorization"] for r in backend.requests] == ["Bearer access-1"] * 2
        assert backend.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_no_header_without_stored_token(self, backend):
        store = MemoryCredentialStore()
        async with LighthouseApiClient(API_URL, store, transport=backend.transport) as api:
            await api.post("/auth/login", json={"email": "trainee@lighthouse.test", "password": "password123"})

        assert "Authorization" not in backend.requests[0].headers

    @pytest.mark.asyncio
    async def test_success_passes_through(self, client, backend):
        backend.route("GET", "/game/leaderboard", body={"leaders": ["a", "b"]})

        response = await client.get("/game/leaderboard")

        assert response.status_code == 200
        assert response.json() == {"leaders": ["a", "b"]}

    @pytest.mark.asyncio
    async def test_expired_token_refreshed_and_replayed(self, client, backend, store):
        backend.expire_access_token()

        response = await client.get("/game/progress")

        assert response.status_code == 200
        assert response.json()["token"] == backend.access_token
        assert backend.refresh_calls == 1
        assert store.access_token == backend.access_token
        assert store.refresh_token == backend.refresh_token
        assert client.headers["Authorization"] == f"Bearer {backend.access_token}"
        assert len(backend.calls_to("/game/progress")) == 2

    @pytest.mark.asyncio
    async def test_forbidden_treated_as_expired(self, client, backend):
        backend.unauthorized_status = 403
        backend.expire_access_token()

        response = await client.get("/game/modules")

        assert response.status_code == 200
        assert backend.refresh_calls == 1

    @pytest.mark.asyncio
    async def test_single_refresh_per_burst(self, client, backend, store, metrics):
        """Concurrent 401s share one refresh call and one new token."""
        backend.hold_unauthorized = 5
        backend.expire_access_token()

        responses = await asyncio.gather(*(client.get(f"/game/modules/{i}") for i in range(5)))

        assert backend.refresh_calls == 1
        assert {r.json()["token"] for r in responses} == {backend.access_token}
        assert store.access_token == backend.access_token
        assert client.gateway.state.is_refreshing is False
        assert client.gateway.state.pending == 0
        assert metrics.get_sample("lighthouse_queued_requests_total") == 4
        assert metrics.get_sample("lighthouse_token_refresh_total", {"status": "success"}) == 1

    @pytest.mark.asyncio
    async def test_replayed_request_not_retried_twice(self, client, backend):
        """A replay that is rejected again surfaces as an error."""
        backend.always_reject = True

        with pytest.raises(ApiError) as exc_info:
            await client.get("/game/progress")

        assert exc_info.value.status_code == 401
        assert exc_info.value.request.extensions[RETRY_MARKER] is True
        assert backend.refresh_calls == 1
        assert len(backend.calls_to("/game/progress")) == 2

    @pytest.mark.asyncio
    async def test_login_error_not_intercepted(self, client, backend, expired_sessions):
        with pytest.raises(ApiError) as exc_info:
            await client.post("/auth/login", json={"email": "trainee@lighthouse.test", "password": "wrong"})

        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Invalid email or password"
        assert backend.refresh_calls == 0
        assert expired_sessions == []

    @pytest.mark.asyncio
    async def test_refresh_failure_tears_down_session(self, client, backend, store, expired_sessions, metrics):
        backend.hold_unauthorized = 3
        backend.refresh_status = 401
        backend.expire_access_token()

        results = await asyncio.gather(
            *(client.get(f"/admin/questions/{i}") for i in range(3)),
            return_exceptions=True
        )

        assert backend.refresh_calls == 1
        for result in results:
            assert isinstance(result, ApiError)
            assert result.request.url.path.endswith("/auth/refresh")
        assert store.access_token is None
        assert store.refresh_token is None
        assert store.user is None
        assert "Authorization" not in client.headers
        assert expired_sessions == ["refresh_failed"]
        assert client.gateway.state.is_refreshing is False
        assert metrics.get_sample("lighthouse_session_expired_total") == 1
        assert metrics.get_sample("lighthouse_token_refresh_total", {"status": "failure"}) == 1

    @pytest.mark.asyncio
    async def test_missing_refresh_token(self, backend, expired_sessions):
        store = MemoryCredentialStore({"access_token": "stale", "user": {"id": "user-1"}})
        async with LighthouseApiClient(API_URL, store, on_session_expired=expired_sessions.append,
                                       transport=backend.transport) as api:
            with pytest.raises(SessionExpiredError) as exc_info:
                await api.get("/game/progress")

            assert api.gateway.state.is_refreshing is False

        assert isinstance(exc_info.value.__cause__, ApiError)
        assert backend.refresh_calls == 0
        assert store.access_token is None
        assert store.user is None
        assert expired_sessions == ["missing_refresh_token"]

    @pytest.mark.asyncio
    async def test_refresh_without_access_token_fails(self, client, backend, store, expired_sessions):
        backend.refresh_body = {"message": "ok"}
        backend.expire_access_token()

        with pytest.raises(RefreshError):
            await client.get("/game/progress")

        assert store.access_token is None
        assert expired_sessions == ["refresh_failed"]

    @pytest.mark.asyncio
    async def test_refresh_token_kept_when_not_rotated(self, client, backend, store):
        backend.rotate = False
        backend.expire_access_token()

        await client.get("/game/progress")

        assert store.refresh_token == "refresh-1"
        assert store.access_token == backend.access_token

    @pytest.mark.asyncio
    async def test_other_errors_pass_through(self, client, backend):
        backend.route("GET", "/game/leaderboard", status=500, body={"error": "Database unavailable"})

        with pytest.raises(ApiError) as exc_info:
            await client.get("/game/leaderboard")

        assert exc_info.value.status_code == 500
        assert exc_info.value.message == "Database unavailable"
        assert backend.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_network_errors_pass_through(self, store):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        async with LighthouseApiClient(API_URL, store, transport=httpx.MockTransport(handler)) as api:
            with pytest.raises(httpx.ConnectError):
                await api.get("/game/progress")

        assert store.access_token == "access-1"

    @pytest.mark.asyncio
    async def test_async_session_expired_callback(self, backend):
        callback = AsyncMock()
        store = MemoryCredentialStore({"access_token": "stale"})
        async with LighthouseApiClient(API_URL, store, on_session_expired=callback,
                                       transport=backend.transport) as api:
            with pytest.raises(SessionExpiredError):
                await api.get("/game/progress")

        callback.assert_awaited_once_with("missing_refresh_token")

    @pytest.mark.asyncio
    async def test_failure_during_teardown_joins_queue(self, backend, store):
        """A 401 raised while the expiry callback runs does not end the session again."""
        backend.refresh_status = 401
        backend.expire_access_token()
        reasons = []
        late = []

        async def on_expired(reason):
            reasons.append(reason)
            late.append(asyncio.ensure_future(api.get("/game/cohort-info")))
            await asyncio.sleep(0.05)

        async with LighthouseApiClient(API_URL, store, on_session_expired=on_expired,
                                       transport=backend.transport) as api:
            with pytest.raises(ApiError):
                await api.get("/game/progress")
            late_results = await asyncio.gather(*late, return_exceptions=True)

        assert reasons == ["refresh_failed"]
        assert backend.refresh_calls == 1
        assert isinstance(late_results[0], ApiError)
        assert late_results[0].request.url.path.endswith("/auth/refresh")

    @pytest.mark.asyncio
    async def test_later_expiry_starts_new_refresh(self, client, backend):
        backend.expire_access_token()
        await client.get("/game/progress")
        backend.expire_access_token()
        await client.get("/game/progress")

        assert backend.refresh_calls == 2

    @pytest.mark.asyncio
    async def test_explicit_refresh_joins_burst(self, client, backend):
        backend.expire_access_token()

        token, response = await asyncio.gather(
            client.gateway.refresh_access_token(),
            client.get("/game/progress"),
        )

        assert backend.refresh_calls == 1
        assert response.json()["token"] == token


class TestIsAuthEndpoint:

    @pytest.mark.parametrize("path,expected", [
        ("/api/auth/login", True),
        ("/api/auth/register", True),
        ("/api/auth/refresh", True),
        ("/api/auth/me", False),
        ("/api/game/progress", False),
    ])
    def test_paths(self, path, expected):
        request = httpx.Request("GET", f"http://lighthouse.test{path}")
        assert is_auth_endpoint(request) is expected
