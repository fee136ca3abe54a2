"""
Auth endpoints.
"""

from typing import Any, Dict, Optional

from ..adapters.api_client import LighthouseApiClient


class AuthService:
    """Account and credential endpoints under ``/auth``."""

    def __init__(self, client: LighthouseApiClient):
        self.client = client

    async def register(self,
                       full_name: str,
                       email: str,
                       password: str,
                       train_name: Optional[str] = None) -> Dict[str, Any]:
        payload = {"fullName": full_name, "email": email, "password": password}
        if train_name:
            payload["trainName"] = train_name
        response = await self.client.post("/auth/register", json=payload)
        return response.json()

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        response = await self.client.post("/auth/login", json={"email": email, "password": password})
        return response.json()

    async def get_profile(self) -> Dict[str, Any]:
        response = await self.client.get("/auth/me")
        return response.json()

    async def update_profile(self, data: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.put("/auth/profile", json=data)
        return response.json()

    async def check_cohort_status(self) -> Dict[str, Any]:
        response = await self.client.get("/auth/cohort-status")
        return response.json()

    async def forgot_password(self, email: str) -> Dict[str, Any]:
        response = await self.client.post("/auth/forgot-password", json={"email": email})
        return response.json()

    async def reset_password(self, token: str, password: str) -> Dict[str, Any]:
        response = await self.client.post(
            "/auth/reset-password",
            json={"token": token, "newPassword": password}
        )
        return response.json()

    async def validate_reset_token(self, token: str) -> Dict[str, Any]:
        response = await self.client.post("/auth/validate-reset-token", json={"token": token})
        return response.json()
