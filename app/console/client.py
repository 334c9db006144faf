"""HTTP client for the auth bridge and admin endpoints. Every call mints a fresh bearer token."""

import logging
from collections.abc import Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ConsoleApiError(Exception):
    """Raised when the API answers with a non-2xx status or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AdminApiClient:
    """Calls the backend with `Authorization: Bearer <token_source()>`."""

    def __init__(
        self,
        base_url: str,
        token_source: Callable[[], str],
        http: httpx.Client,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token_source = token_source
        self._http = http

    def _request(
        self,
        method: str,
        path: str,
        fallback_error: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._token_source()}"}
        try:
            resp = self._http.request(
                method,
                f"{self._base_url}{path}",
                headers=headers,
                json=json,
            )
        except httpx.HTTPError as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise ConsoleApiError(f"{fallback_error}: {e!s}") from e
        if resp.status_code >= 400:
            message = fallback_error
            try:
                message = resp.json().get("error") or fallback_error
            except (ValueError, AttributeError):
                pass
            raise ConsoleApiError(message, resp.status_code)
        return resp.json()

    def register(self) -> dict[str, Any]:
        return self._request("POST", "/api/auth/register", "Registration with backend failed")["user"]

    def login(self) -> dict[str, Any]:
        return self._request("POST", "/api/auth/login", "Login with backend failed")["user"]

    def list_users(self) -> list[dict[str, Any]]:
        return self._request("GET", "/api/admin/users", "Failed to fetch users")["users"]

    def set_status(self, user_id: int, is_active: bool) -> dict[str, Any]:
        return self._request(
            "PATCH",
            f"/api/admin/users/{user_id}/status",
            "Failed to update user status",
            json={"is_active": is_active},
        )["user"]

    def set_role(self, user_id: int, role: str) -> dict[str, Any]:
        return self._request(
            "PATCH",
            f"/api/admin/users/{user_id}/role",
            "Failed to update user role",
            json={"role": role},
        )["user"]

    def delete_user(self, user_id: int) -> str:
        return self._request("DELETE", f"/api/admin/users/{user_id}", "Failed to delete user")["message"]
