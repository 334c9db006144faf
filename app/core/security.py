"""Firebase ID token verification for authentication.

Firebase issues RS256 JWTs signed with rotating Google keys. A token is valid
when its signature matches a published key, ``aud`` is the project id, ``iss``
is ``https://securetoken.google.com/<project id>``, ``sub`` is a non-empty
string of at most 128 characters and ``exp``/``iat``/``auth_time`` are
consistent with the current time. When a revocation check is configured the
account is also looked up: disabled accounts and sessions that started before
the account's ``validSince`` (set by a refresh-token revocation) are rejected.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Protocol

import httpx
import jwt
from jwt.exceptions import PyJWKClientConnectionError, PyJWTError

from app.schemas.auth import VerifiedClaims

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"
FIREBASE_ALGORITHMS = ["RS256"]
SUBJECT_MAX_LEN = 128
# Signing keys rotate roughly daily; re-fetch the key set at most every 6 hours.
JWKS_CACHE_LIFESPAN_SEC = 6 * 60 * 60
ACCOUNT_LOOKUP_URL = "https://identitytoolkit.googleapis.com/v1/accounts:lookup"
ACCOUNT_LOOKUP_TIMEOUT_SEC = 10.0


class InvalidTokenError(Exception):
    """Raised when a bearer token is malformed, expired, revoked, or not issued for this project."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TokenVerifierUnavailableError(Exception):
    """Raised when the identity provider's signing keys or account lookup cannot be reached."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TokenVerifier(Protocol):
    def verify(self, token: str) -> VerifiedClaims: ...


class AccountRevocationCheck:
    """
    Reject tokens whose Firebase account was disabled, deleted or had its sessions revoked.

    Uses the Identity Toolkit ``accounts:lookup`` endpoint with the project's
    web API key. A token is revoked when its sign-in time precedes the
    account's ``validSince``.
    """

    def __init__(
        self,
        api_key: str,
        http: httpx.Client,
        lookup_url: str = ACCOUNT_LOOKUP_URL,
    ) -> None:
        self._api_key = api_key
        self._http = http
        self._lookup_url = lookup_url

    def check(self, token: str, signed_in_at: int) -> None:
        try:
            resp = self._http.post(
                self._lookup_url,
                params={"key": self._api_key},
                json={"idToken": token},
            )
        except httpx.HTTPError as e:
            logger.error("Account lookup failed: %s", e)
            raise TokenVerifierUnavailableError("Account lookup is unavailable") from e

        if resp.status_code == 400:
            code = _error_code(resp)
            logger.info("Account lookup rejected token: %s", code)
            raise InvalidTokenError(f"Token rejected by identity provider: {code}")
        if resp.status_code >= 400:
            logger.error("Account lookup returned HTTP %s", resp.status_code)
            raise TokenVerifierUnavailableError("Account lookup is unavailable")

        try:
            accounts = resp.json().get("users") or []
        except (ValueError, AttributeError) as e:
            raise TokenVerifierUnavailableError("Account lookup returned an invalid response") from e
        if not accounts:
            raise InvalidTokenError("Account no longer exists")
        account = accounts[0]
        if account.get("disabled"):
            raise InvalidTokenError("Account is disabled")
        valid_since = account.get("validSince")
        if valid_since is not None and signed_in_at < int(valid_since):
            raise InvalidTokenError("Token has been revoked")


def _error_code(resp: httpx.Response) -> str:
    try:
        message = resp.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return "UNKNOWN"
    # e.g. "TOKEN_EXPIRED" or "INVALID_ID_TOKEN : detail"
    return str(message).split(":", 1)[0].strip() or "UNKNOWN"


class FirebaseTokenVerifier:
    """Verify Firebase ID tokens against the project's public key set."""

    def __init__(
        self,
        project_id: str,
        jwks_url: str,
        clock_skew_sec: int = 0,
        jwk_client: Any | None = None,
        revocation_check: AccountRevocationCheck | None = None,
    ) -> None:
        self.project_id = project_id
        self.issuer = f"{FIREBASE_ISSUER_PREFIX}{project_id}"
        self.clock_skew_sec = clock_skew_sec
        self._jwk_client = jwk_client or jwt.PyJWKClient(
            jwks_url,
            cache_keys=True,
            lifespan=JWKS_CACHE_LIFESPAN_SEC,
        )
        self._revocation_check = revocation_check

    @classmethod
    def from_settings(cls, settings: Settings) -> FirebaseTokenVerifier:
        revocation_check = None
        if settings.FIREBASE_CHECK_REVOKED:
            if settings.FIREBASE_API_KEY:
                revocation_check = AccountRevocationCheck(
                    settings.FIREBASE_API_KEY.get_secret_value(),
                    httpx.Client(timeout=ACCOUNT_LOOKUP_TIMEOUT_SEC),
                )
            else:
                logger.warning(
                    "FIREBASE_API_KEY is not set; revoked tokens are accepted until they expire"
                )
        return cls(
            project_id=settings.FIREBASE_PROJECT_ID,
            jwks_url=settings.FIREBASE_JWKS_URL,
            clock_skew_sec=settings.FIREBASE_CLOCK_SKEW_SEC,
            revocation_check=revocation_check,
        )

    def verify(self, token: str) -> VerifiedClaims:
        """
        Verify a Firebase ID token and return its claims.

        Raises InvalidTokenError for any token that must not be trusted and
        TokenVerifierUnavailableError when the key set or account lookup
        cannot be reached.
        """
        if not self.project_id:
            raise InvalidTokenError("Token verification is not configured")
        if not token or not token.strip():
            raise InvalidTokenError("Empty token")

        try:
            signing_key = self._jwk_client.get_signing_key_from_jwt(token)
        except PyJWKClientConnectionError as e:
            logger.error("Unable to fetch identity provider signing keys: %s", e)
            raise TokenVerifierUnavailableError(
                "Identity provider keys are unavailable"
            ) from e
        except PyJWTError as e:
            raise InvalidTokenError(f"Invalid token: {e!s}") from e

        try:
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=FIREBASE_ALGORITHMS,
                audience=self.project_id,
                issuer=self.issuer,
                leeway=self.clock_skew_sec,
                options={"require": ["exp", "iat", "aud", "iss", "sub"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise InvalidTokenError("Token has expired") from e
        except PyJWTError as e:
            raise InvalidTokenError(f"Invalid token: {e!s}") from e

        claims = self._claims_from_payload(payload)
        if self._revocation_check is not None:
            signed_in_at = payload.get("auth_time", payload["iat"])
            self._revocation_check.check(token, int(signed_in_at))
        return claims

    def _claims_from_payload(self, payload: dict[str, Any]) -> VerifiedClaims:
        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub or len(sub) > SUBJECT_MAX_LEN:
            raise InvalidTokenError("Invalid token payload")

        auth_time = payload.get("auth_time")
        if auth_time is not None:
            if not isinstance(auth_time, (int, float)):
                raise InvalidTokenError("Invalid token payload")
            if auth_time > time.time() + self.clock_skew_sec:
                raise InvalidTokenError("Token auth_time is in the future")

        email = payload.get("email")
        name = payload.get("name")
        return VerifiedClaims(
            subject=sub,
            email=email if isinstance(email, str) and email else None,
            display_name=name if isinstance(name, str) and name else None,
        )
