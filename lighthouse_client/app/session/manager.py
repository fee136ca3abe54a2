"""
Session lifecycle: sign-in, registration, sign-out and start-up restore.
"""

import time
from typing import Any, Dict, Optional

import httpx
import jwt

from lighthouse_shared.errors import ApiError, AuthenticationError, LighthouseException
from lighthouse_shared.logging import clear_context, get_logger, set_user_context

from ..adapters.api_client import LighthouseApiClient
from ..services.auth import AuthService


def token_expired(token: str, leeway: float = 0.0) -> bool:
    """True when ``token`` is a JWT whose ``exp`` claim has passed.

    Tokens that are not JWTs, or carry no ``exp``, are never reported as
    expired; the server remains the authority on those.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return False
    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return False
    return exp <= time.time() + leeway


class SessionManager:
    """Owns the persisted credential pair on behalf of the signed-in user."""

    def __init__(self, client: LighthouseApiClient, auth: Optional[AuthService] = None):
        self.client = client
        self.store = client.store
        self.auth = auth or AuthService(client)
        self.logger = get_logger("lighthouse.session")

    @property
    def current_user(self) -> Optional[Dict[str, Any]]:
        return self.store.user

    @property
    def is_authenticated(self) -> bool:
        return self.store.access_token is not None

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Sign in and persist the issued credentials."""
        try:
            data = await self.auth.login(email, password)
        except ApiError as e:
            self.logger.info("Login rejected", status_code=e.status_code)
            raise AuthenticationError(e.message or "Login failed",
                                      details={"status_code": e.status_code}) from e
        return self._accept(data, "Login")

    async def register(self,
                       full_name: str,
                       email: str,
                       password: str,
                       train_name: Optional[str] = None) -> Dict[str, Any]:
        """Create an account; the backend signs the new user in directly."""
        try:
            data = await self.auth.register(full_name, email, password, train_name)
        except ApiError as e:
            self.logger.info("Registration rejected", status_code=e.status_code)
            raise AuthenticationError(e.message or "Registration failed",
                                      details={"status_code": e.status_code}) from e
        return self._accept(data, "Registration")

    def logout(self) -> None:
        self._clear()
        self.logger.info("Logged out")

    async def refresh_auth(self) -> bool:
        """Refresh the access token explicitly; False when the session is gone."""
        if not self.store.refresh_token:
            self._clear()
            return False
        try:
            await self.client.gateway.refresh_access_token()
        except (LighthouseException, httpx.RequestError) as e:
            self.logger.warning("Failed to refresh session", error=str(e))
            self._clear()
            return False
        return True

    async def restore(self) -> Optional[Dict[str, Any]]:
        """Revalidate stored credentials at start-up.

        Returns the signed-in user, or None when there is no usable session.
        """
        token = self.store.access_token
        if not token:
            return None

        if token_expired(token):
            self.logger.info("Stored access token has expired, refreshing")
            if not await self.refresh_auth():
                return None
        else:
            self.client.set_default_token(token)

        try:
            user = await self.auth.get_profile()
        except (LighthouseException, httpx.RequestError) as e:
            self.logger.warning("Failed to verify stored session", error=str(e))
            if not await self.refresh_auth():
                return None
            return self.store.user

        self.store.save_user(user)
        set_user_context(str(user.get("id")) if user.get("id") is not None else None)
        return user

    def _accept(self, data: Dict[str, Any], action: str) -> Dict[str, Any]:
        token = data.get("token") or data.get("accessToken")
        if not token:
            raise AuthenticationError(f"{action} response did not include a token")

        user = data.get("user") or {}
        # A new sign-in replaces the whole credential set, never merges with it
        self._clear()
        self.store.save_tokens(token, data.get("refreshToken"))
        self.store.save_user(user)
        self.client.set_default_token(token)
        if user.get("id") is not None:
            set_user_context(str(user["id"]))
        self.logger.info(f"{action} succeeded", user_id=user.get("id"))
        return user

    def _clear(self) -> None:
        self.store.clear_credentials()
        self.client.set_default_token(None)
        clear_context()
