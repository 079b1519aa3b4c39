"""Client for the hosted auth provider."""

from typing import Any, Dict, Optional

import httpx
from loguru import logger

from .session import SIGNED_IN, SIGNED_OUT, SIGNED_UP, AuthEventBus, AuthSession


class AuthError(Exception):
    """Auth provider rejected a request."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class HostedAuthClient:
    """Sign-up, sign-in, sign-out and user lookup against a GoTrue-style REST API.

    Passwords and tokens are handled entirely by the provider; this client
    only relays them.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str = "",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        events: Optional[AuthEventBus] = None,
    ):
        """Initialize auth client.

        Args:
            base_url: Provider root URL
            anon_key: Public API key sent with every request
            timeout: Request timeout in seconds
            transport: Optional transport override
            events: Event bus receiving session changes
        """
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout = timeout
        self.transport = transport
        self.events = events or AuthEventBus()

    def _client(self) -> httpx.AsyncClient:
        headers = {"apikey": self.anon_key} if self.anon_key else {}
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/auth/v1",
            headers=headers,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            async with self._client() as client:
                response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Auth provider unreachable: {e}")
            raise AuthError("Auth provider unavailable", status_code=503) from e

        if response.is_error:
            raise AuthError(self._error_message(response), status_code=response.status_code)

        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        return (
            body.get("error_description")
            or body.get("msg")
            or body.get("message")
            or body.get("error")
            or f"HTTP {response.status_code}"
        )

    @staticmethod
    def _session(body: Dict[str, Any]) -> Optional[AuthSession]:
        if not body.get("access_token"):
            return None
        return AuthSession(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_in=body.get("expires_in"),
            user=body.get("user") or {},
        )

    async def sign_up(self, email: str, password: str, full_name: str) -> Dict[str, Any]:
        """Register a user.

        Returns:
            The provider's user record; a session is only present when
            e-mail confirmation is disabled
        """
        body = await self._request(
            "POST",
            "/signup",
            json={"email": email, "password": password, "data": {"full_name": full_name}},
        )
        session = self._session(body)
        user = body.get("user") or (session.user if session else body)
        logger.info(f"Signed up {email}")
        self.events.emit(SIGNED_UP, session)
        return {"user": user, "session": session}

    async def sign_in(self, email: str, password: str) -> AuthSession:
        body = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = self._session(body)
        if session is None:
            raise AuthError("Auth provider returned no session", status_code=502)
        logger.info(f"Signed in {email}")
        self.events.emit(SIGNED_IN, session)
        return session

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/logout", token=access_token)
        self.events.emit(SIGNED_OUT, None)

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        """Resolve an access token to its user record."""
        return await self._request("GET", "/user", token=access_token)
