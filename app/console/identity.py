"""Client-side token minting through the Firebase Auth REST API.

The console signs in with email/password to obtain an ID token and a refresh
token, then re-mints ID tokens with the refresh token before they expire.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

# Re-mint when the cached ID token expires within this window (Firebase SDKs use 5 minutes).
REFRESH_MARGIN_SEC = 300

# Firebase Auth error codes -> messages shown to the operator.
FIREBASE_ERROR_MESSAGES = {
    "EMAIL_NOT_FOUND": "No account exists for this email.",
    "INVALID_PASSWORD": "Incorrect password.",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password.",
    "USER_DISABLED": "This account has been disabled by an administrator.",
    "EMAIL_EXISTS": "An account already exists for this email.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts; try again later.",
    "TOKEN_EXPIRED": "Session expired; sign in again.",
    "INVALID_REFRESH_TOKEN": "Session is no longer valid; sign in again.",
}


class IdentityError(Exception):
    """Raised when the identity provider rejects a sign-in, sign-up, or refresh."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


def _error_from_response(resp: httpx.Response) -> IdentityError:
    code = None
    try:
        code = resp.json().get("error", {}).get("message")
    except (ValueError, AttributeError):
        pass
    if code:
        # Some codes carry a suffix, e.g. "WEAK_PASSWORD : Password should be at least 6 characters".
        key = code.split(":")[0].strip()
        return IdentityError(FIREBASE_ERROR_MESSAGES.get(key, code), key)
    return IdentityError(f"Identity provider returned {resp.status_code}")


class IdentityToolkitClient:
    """Thin wrapper over the accounts:signInWithPassword, accounts:signUp and token endpoints."""

    def __init__(
        self,
        api_key: str,
        http: httpx.Client,
        identity_url: str = IDENTITY_TOOLKIT_URL,
        token_url: str = SECURE_TOKEN_URL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not api_key:
            raise IdentityError("FIREBASE_API_KEY is not set.")
        self._api_key = api_key
        self._http = http
        self._identity_url = identity_url.rstrip("/")
        self._token_url = token_url
        self._clock = clock

    def sign_in(self, email: str, password: str) -> FirebaseSession:
        data = self._post_identity(
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        return self._session_from(data)

    def sign_up(self, email: str, password: str, display_name: str | None = None) -> FirebaseSession:
        payload: dict[str, Any] = {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        }
        if display_name:
            payload["displayName"] = display_name
        data = self._post_identity("accounts:signUp", payload)
        return self._session_from(data)

    def refresh(self, refresh_token: str) -> tuple[str, str, int]:
        """Exchange a refresh token; returns (id_token, refresh_token, expires_in seconds)."""
        try:
            resp = self._http.post(
                self._token_url,
                params={"key": self._api_key},
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            )
        except httpx.HTTPError as e:
            raise IdentityError(f"Identity provider unreachable: {e!s}") from e
        if resp.status_code >= 400:
            raise _error_from_response(resp)
        body = resp.json()
        return body["id_token"], body["refresh_token"], int(body["expires_in"])

    def _post_identity(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = self._http.post(
                f"{self._identity_url}/{method}",
                params={"key": self._api_key},
                json=payload,
            )
        except httpx.HTTPError as e:
            raise IdentityError(f"Identity provider unreachable: {e!s}") from e
        if resp.status_code >= 400:
            raise _error_from_response(resp)
        return resp.json()

    def _session_from(self, data: dict[str, Any]) -> FirebaseSession:
        try:
            return FirebaseSession(
                client=self,
                uid=data["localId"],
                email=data.get("email"),
                id_token=data["idToken"],
                refresh_token=data["refreshToken"],
                expires_at=self._clock() + int(data["expiresIn"]),
                clock=self._clock,
            )
        except (KeyError, ValueError) as e:
            raise IdentityError("Identity provider response missing token fields.") from e


class FirebaseSession:
    """A signed-in account. get_id_token() hands out a token that is valid for a while yet."""

    def __init__(
        self,
        client: IdentityToolkitClient,
        uid: str,
        email: str | None,
        id_token: str,
        refresh_token: str,
        expires_at: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._client = client
        self.uid = uid
        self.email = email
        self._id_token = id_token
        self._refresh_token = refresh_token
        self.expires_at = expires_at
        self._clock = clock

    def get_id_token(self, force_refresh: bool = False) -> str:
        if force_refresh or self._clock() >= self.expires_at - REFRESH_MARGIN_SEC:
            logger.debug("Refreshing ID token for uid=%s", self.uid)
            id_token, refresh_token, expires_in = self._client.refresh(self._refresh_token)
            self._id_token = id_token
            self._refresh_token = refresh_token
            self.expires_at = self._clock() + expires_in
        return self._id_token
