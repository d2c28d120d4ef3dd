"""
Supabase Auth client.

Thin async wrapper over the GoTrue REST endpoints the API forwards to:
password sign-in, sign-up, token refresh and logout. Credentials are never
stored or checked locally.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..config import APISettings, get_settings
from ..errors import AuthenticationError, InvalidRequestError, UpstreamServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthSession:
    """Tokens and identity returned by GoTrue."""

    user_id: str
    email: Optional[str]
    access_token: Optional[str]
    refresh_token: Optional[str]
    expires_in: int

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "AuthSession":
        # /signup returns the user at the top level when email confirmation is on
        user = payload.get("user") or payload
        return cls(
            user_id=str(user.get("id")),
            email=user.get("email"),
            access_token=payload.get("access_token"),
            refresh_token=payload.get("refresh_token"),
            expires_in=int(payload.get("expires_in") or 3600),
        )


class SupabaseAuthClient:
    """Forwards authentication calls to GoTrue."""

    def __init__(self, settings: Optional[APISettings] = None):
        self.settings = settings or get_settings()
        self.base_url = f"{self.settings.supabase_url.rstrip('/')}/auth/v1"

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.settings.supabase_anon_key,
            "Content-Type": "application/json",
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _post(
        self,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        access_token: Optional[str] = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.settings.supabase_timeout_seconds) as client:
                return await client.post(
                    f"{self.base_url}{path}",
                    json=json,
                    params=params,
                    headers=self._headers(access_token),
                )
        except httpx.HTTPError as e:
            logger.error(f"Supabase auth request to {path} failed: {e}")
            raise UpstreamServiceError("Authentication service unavailable")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or "Authentication failed"
        return body.get("msg") or body.get("error_description") or body.get("message") or "Authentication failed"

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = await self._post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code in (400, 401):
            raise AuthenticationError("Invalid email or password")
        if response.status_code >= 300:
            logger.error(f"Supabase sign-in returned {response.status_code}")
            raise UpstreamServiceError("Authentication service error")
        return AuthSession.from_payload(response.json())

    async def sign_up(self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None) -> AuthSession:
        response = await self._post(
            "/signup",
            json={"email": email, "password": password, "data": metadata or {}},
        )
        if response.status_code in (400, 422):
            raise InvalidRequestError(self._error_message(response))
        if response.status_code >= 300:
            logger.error(f"Supabase sign-up returned {response.status_code}")
            raise UpstreamServiceError("Authentication service error")
        return AuthSession.from_payload(response.json())

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        response = await self._post(
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        if response.status_code in (400, 401):
            raise AuthenticationError("Invalid refresh token")
        if response.status_code >= 300:
            raise UpstreamServiceError("Authentication service error")
        return AuthSession.from_payload(response.json())

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session. Failures are logged, not raised."""
        try:
            response = await self._post("/logout", access_token=access_token)
        except UpstreamServiceError:
            return
        if response.status_code >= 300:
            logger.warning(f"Supabase logout returned {response.status_code}")


def get_auth_client() -> SupabaseAuthClient:
    """FastAPI dependency; overridden in tests."""
    return SupabaseAuthClient()
