"""HTTP client for the hosted backend (table API + auth API)."""

from typing import Any, Optional

import httpx
import structlog

from ..config import Settings
from ..errors import AuthenticationError, BackendError, BackendNotConfiguredError, NotFoundError
from .performance import NETWORK_PREFIX, PerformanceMonitor

logger = structlog.get_logger(__name__)


def _error_message(response: httpx.Response) -> str:
    """Pull a readable message out of a backend error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(body, dict):
        for field in ("message", "msg", "error_description", "error"):
            if body.get(field):
                return str(body[field])
    return f"HTTP {response.status_code}"


class BackendClient:
    """Talk to the hosted backend on behalf of a signed-in user.

    Table calls are sent with the user's access token so the backend's
    row-level security applies; without a token the anon key is used.
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
        monitor: Optional[PerformanceMonitor] = None,
    ):
        self.settings = settings
        self.monitor = monitor or PerformanceMonitor()
        self._client = client or httpx.AsyncClient(timeout=settings.request_timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, token: Optional[str] = None) -> dict[str, str]:
        return {
            "apikey": self.settings.backend_anon_key,
            "Authorization": f"Bearer {token or self.settings.backend_anon_key}",
            "Accept": "application/json",
            "User-Agent": "kakeibo-dashboard",
        }

    async def _request(
        self,
        name: str,
        method: str,
        url: str,
        token: Optional[str] = None,
        params: Any = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        if not self.settings.backend_configured:
            raise BackendNotConfiguredError()

        request_headers = self._headers(token)
        if headers:
            request_headers.update(headers)

        with self.monitor.timer(f"{NETWORK_PREFIX}{name}"):
            try:
                response = await self._client.request(
                    method, url, params=params, json=json, headers=request_headers
                )
            except httpx.HTTPError as e:
                logger.error("backend_unreachable", request=name, error=str(e))
                raise BackendError(f"Backend request failed: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "backend_error", request=name, status=response.status_code, message=message
            )
            raise BackendError(message, status_code=response.status_code)

        return response

    # Table API

    async def select(
        self, table: str, params: Any = None, token: Optional[str] = None
    ) -> list[dict]:
        """Read rows from table using PostgREST filter params."""
        response = await self._request(
            f"select_{table}", "GET", f"{self.settings.rest_url}/{table}", token=token, params=params
        )
        return response.json()

    async def insert(self, table: str, row: dict, token: Optional[str] = None) -> dict:
        """Insert a row and return it as stored."""
        response = await self._request(
            f"insert_{table}",
            "POST",
            f"{self.settings.rest_url}/{table}",
            token=token,
            json=[row],
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        return rows[0] if isinstance(rows, list) and rows else rows

    async def update(self, table: str, row_id: str, changes: dict, token: Optional[str] = None) -> dict:
        """Update one row by id and return it."""
        response = await self._request(
            f"update_{table}",
            "PATCH",
            f"{self.settings.rest_url}/{table}",
            token=token,
            params={"id": f"eq.{row_id}"},
            json=changes,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise NotFoundError(f"{table} row {row_id} not found")
        return rows[0]

    async def delete(self, table: str, row_id: str, token: Optional[str] = None) -> None:
        await self._request(
            f"delete_{table}",
            "DELETE",
            f"{self.settings.rest_url}/{table}",
            token=token,
            params={"id": f"eq.{row_id}"},
        )

    # Auth API

    async def sign_up(self, email: str, password: str, full_name: str = "") -> dict:
        """Register an account; full_name is stored as user metadata."""
        response = await self._request(
            "sign_up",
            "POST",
            f"{self.settings.auth_url}/signup",
            json={"email": email, "password": password, "data": {"full_name": full_name}},
        )
        return response.json()

    async def sign_in(self, email: str, password: str) -> dict:
        """Exchange email/password for a session (access_token, refresh_token, user)."""
        try:
            response = await self._request(
                "sign_in",
                "POST",
                f"{self.settings.auth_url}/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except BackendError as e:
            if e.backend_status in (400, 401):
                raise AuthenticationError(e.message) from e
            raise
        return response.json()

    async def sign_out(self, token: str) -> None:
        await self._request("sign_out", "POST", f"{self.settings.auth_url}/logout", token=token)

    async def get_user(self, token: str) -> dict:
        """Resolve an access token to the user it belongs to."""
        try:
            response = await self._request("get_user", "GET", f"{self.settings.auth_url}/user", token=token)
        except BackendError as e:
            if e.backend_status in (401, 403):
                raise AuthenticationError("Invalid or expired access token") from e
            raise
        return response.json()
