"""
HTTP client for the Lighthouse backend API.
"""

from typing import Any, Dict, Optional

import httpx

from lighthouse_shared.errors import ApiError
from lighthouse_shared.logging import get_logger
from lighthouse_shared.metrics import MetricsCollector

from ..gateway import AuthGateway, RefreshState
from ..gateway.interceptor import SessionExpiredCallback
from ..storage import CredentialStore


class LighthouseApiClient:
    """Generic request interface with transparent access-token recovery.

    Callers use it like any async HTTP client; a call may take up to three
    round trips (rejected request, refresh, replay) before it returns.
    Non-2xx responses raise ``ApiError``; transport failures propagate as
    ``httpx.RequestError``.
    """

    def __init__(self,
                 base_url: str,
                 store: CredentialStore,
                 state: Optional[RefreshState] = None,
                 on_session_expired: Optional[SessionExpiredCallback] = None,
                 metrics: Optional[MetricsCollector] = None,
                 timeout: float = 30.0,
                 login_path: str = "/login",
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.store = store
        self.metrics = metrics
        self.logger = get_logger("lighthouse.api_client")

        self._http = httpx.AsyncClient(
            # Trailing slash so relative paths join under the /api prefix
            base_url=f"{self.base_url}/",
            timeout=timeout,
            transport=transport,
        )
        self.gateway = AuthGateway(
            store,
            refresh=self.refresh_tokens,
            default_headers=self._http.headers,
            state=state,
            on_session_expired=on_session_expired,
            metrics=metrics,
            login_path=login_path,
        )
        self._http.event_hooks = {"request": [self.gateway.intercept_request], "response": []}

    @property
    def headers(self) -> httpx.Headers:
        """Default headers sent with every request."""
        return self._http.headers

    def set_default_token(self, access_token: Optional[str]) -> None:
        if access_token:
            self._http.headers["Authorization"] = f"Bearer {access_token}"
        else:
            self._http.headers.pop("Authorization", None)

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request relative to the API base URL."""
        request = self._http.build_request(method, path.lstrip('/'), **kwargs)
        return await self._dispatch(request)

    async def get(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)

    async def refresh_tokens(self, refresh_token: str) -> Dict[str, Any]:
        """Exchange a refresh token for a new access token.

        Bypasses response interception so a rejected refresh surfaces as-is.
        """
        response = await self._send(
            self._http.build_request("POST", "auth/refresh", json={"refreshToken": refresh_token})
        )
        if response.is_error:
            raise ApiError(response)
        return response.json()

    async def _dispatch(self, request: httpx.Request) -> httpx.Response:
        response = await self._send(request)
        return await self.gateway.intercept_response(response, resend=self._dispatch)

    async def _send(self, request: httpx.Request) -> httpx.Response:
        response = await self._http.send(request)
        if self.metrics:
            self.metrics.record_request(request.method, response.status_code)
        if response.is_error:
            self.logger.debug("Request failed",
                              method=request.method,
                              path=request.url.path,
                              status_code=response.status_code)
        return response

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "LighthouseApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
