import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"


class ApiError(Exception):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class ConnectionFailed(Exception):
    """No response from the server at all."""


class AuthApi:
    """Thin JSON client for the ``/auth`` endpoints."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 10.0,
                 transport: Optional[httpx.BaseTransport] = None,
                 client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        # An injected client (e.g. a Starlette TestClient) keeps its own base URL
        self._client = client or httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )
        self._client.headers["X-Requested-With"] = "XMLHttpRequest"

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _request(self, method: str, path: str, json: Optional[dict] = None,
                 token: Optional[str] = None) -> dict:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            response = self._client.request(method, path, json=json, headers=headers)
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ConnectionFailed(str(e)) from e
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not response.is_success:
            message = (body.get("message") or body.get("error")) if isinstance(body, dict) else None
            raise ApiError(response.status_code, message)
        return body

    def register(self, email: str, password: str) -> dict:
        return self._request("POST", "/auth/register", json={"email": email, "password": password})

    def login(self, email: str, password: str) -> dict:
        return self._request("POST", "/auth/login", json={"email": email, "password": password})

    def refresh(self, refresh_token: str) -> dict:
        return self._request("POST", "/auth/refresh-token", json={"refreshToken": refresh_token})

    def logout(self, refresh_token: str) -> dict:
        return self._request("POST", "/auth/logout", json={"refreshToken": refresh_token})

    def me(self, access_token: str) -> dict:
        return self._request("GET", "/auth/me", token=access_token)
