"""
Authenticated request gateway.

Attaches the stored bearer token to every outbound request and recovers from
an expired access token by refreshing it once per burst of failures. Requests
that fail while a refresh is already in flight wait for its outcome instead of
starting a second refresh, then replay with the new token.
"""

import inspect
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from lighthouse_shared.errors import ApiError, RefreshError, SessionExpiredError
from lighthouse_shared.logging import get_logger
from lighthouse_shared.metrics import MetricsCollector

from ..storage import CredentialStore
from .state import RefreshState

AUTH_ENDPOINTS = ("/auth/login", "/auth/register", "/auth/refresh")
RECOVERABLE_STATUS_CODES = (401, 403)
RETRY_MARKER = "lighthouse_retry"

RefreshCall = Callable[[str], Awaitable[Dict[str, Any]]]
Resend = Callable[[httpx.Request], Awaitable[httpx.Response]]
SessionExpiredCallback = Callable[[str], Any]


def is_auth_endpoint(request: httpx.Request) -> bool:
    """Credential-entry endpoints report bad credentials, not expired tokens."""
    path = request.url.path
    return any(endpoint in path for endpoint in AUTH_ENDPOINTS)


def bearer(token: str) -> str:
    return f"Bearer {token}"


class AuthGateway:
    """Request/response interceptors around one HTTP client."""

    def __init__(self,
                 store: CredentialStore,
                 refresh: RefreshCall,
                 default_headers: httpx.Headers,
                 state: Optional[RefreshState] = None,
                 on_session_expired: Optional[SessionExpiredCallback] = None,
                 metrics: Optional[MetricsCollector] = None,
                 login_path: str = "/login"):
        self.store = store
        self.refresh = refresh
        self.default_headers = default_headers
        self.state = state if state is not None else RefreshState()
        self.metrics = metrics
        self.login_path = login_path
        self.on_session_expired = on_session_expired or self._redirect_to_login
        self.logger = get_logger("lighthouse.gateway")

    async def intercept_request(self, request: httpx.Request) -> None:
        """Attach the current access token, if any."""
        token = self.store.access_token
        if token:
            request.headers["Authorization"] = bearer(token)

    async def intercept_response(self, response: httpx.Response, resend: Resend) -> httpx.Response:
        """Pass successes through; recover expired credentials; raise everything else."""
        if not response.is_error:
            return response

        request = response.request
        if (response.status_code not in RECOVERABLE_STATUS_CODES
                or request.extensions.get(RETRY_MARKER)
                or is_auth_endpoint(request)):
            raise ApiError(response)

        return await self._recover(response, resend)

    async def _recover(self, response: httpx.Response, resend: Resend) -> httpx.Response:
        request = response.request
        request.extensions[RETRY_MARKER] = True

        access_token = await self.refresh_access_token(cause=ApiError(response))
        return await self._replay(request, access_token, resend)

    async def refresh_access_token(self, cause: Optional[ApiError] = None) -> str:
        """Obtain a fresh access token, joining a refresh already in flight.

        Exactly one refresh call is made however many callers arrive while it
        is running; they all receive its token or its error. A missing refresh
        token or a failed refresh ends the session.
        """
        if self.state.is_refreshing:
            waiter = self.state.enqueue()
            if self.metrics:
                self.metrics.record_queued()
            self.logger.debug("Waiting for in-flight token refresh", pending=self.state.pending)
            return await waiter

        self.state.begin()
        try:
            refresh_token = self.store.refresh_token
            if not refresh_token:
                if self.metrics:
                    self.metrics.record_refresh("missing")
                self.logger.warning("No refresh token stored, ending session",
                                    status_code=cause.status_code if cause else None)
                error = SessionExpiredError("No refresh token available")
                try:
                    await self._end_session("missing_refresh_token")
                finally:
                    self.state.reject_all(error)
                raise error from cause

            self.logger.info("Refreshing access token",
                             status_code=cause.status_code if cause else None,
                             path=cause.request.url.path if cause else None)
            try:
                access_token = await self._refresh(refresh_token)
            except Exception as e:
                if self.metrics:
                    self.metrics.record_refresh("failure")
                self.logger.error("Token refresh failed, ending session",
                                  error=str(e), pending_waiters=self.state.pending)
                # Still refreshing during teardown; 401s arriving meanwhile join the queue
                try:
                    await self._end_session("refresh_failed")
                finally:
                    self.state.reject_all(e)
                raise

            if self.metrics:
                self.metrics.record_refresh("success")
            resolved = self.state.resolve_all(access_token)
            self.logger.info("Token refreshed", resumed_waiters=resolved)
        finally:
            self.state.finish()

        return access_token

    async def _refresh(self, refresh_token: str) -> str:
        """Exchange the refresh token and persist the result."""
        payload = await self.refresh(refresh_token)
        access_token = payload.get("accessToken") if isinstance(payload, dict) else None
        if not access_token:
            raise RefreshError("Refresh response did not include an access token")

        # Rotation is optional; keep the newest refresh token we have seen
        self.store.save_tokens(access_token, payload.get("refreshToken"))
        if isinstance(payload.get("user"), dict):
            self.store.save_user(payload["user"])
        self.default_headers["Authorization"] = bearer(access_token)
        return access_token

    async def _replay(self, request: httpx.Request, access_token: str, resend: Resend) -> httpx.Response:
        request.headers["Authorization"] = bearer(access_token)
        return await resend(request)

    async def _end_session(self, reason: str) -> None:
        self.store.clear_credentials()
        self.default_headers.pop("Authorization", None)
        if self.metrics:
            self.metrics.record_session_expired()

        result = self.on_session_expired(reason)
        if inspect.isawaitable(result):
            await result

    def _redirect_to_login(self, reason: str) -> None:
        self.logger.warning("Session expired, sign in required",
                            reason=reason, redirect=self.login_path)
