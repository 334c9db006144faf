"""Auth gateway: bearer-token authentication and role checks as FastAPI dependencies.

Nothing is cached between requests; every call re-verifies the token and
re-reads the local record.
"""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import (
    InvalidTokenError,
    TokenVerifier,
    TokenVerifierUnavailableError,
)
from app.schemas.auth import AuthContext, VerifiedClaims
from app.schemas.users import UserOut
from app.services.user_repository import UserRepository

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def get_user_repository(db: Annotated[Session, Depends(get_db)]) -> UserRepository:
    return UserRepository(db)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
) -> VerifiedClaims:
    """Dependency: require a valid Bearer ID token and return its claims. Raises 401 otherwise."""
    if credentials is None:
        logger.info("Missing bearer token", extra={"operation": "verify_token"})
        raise _unauthorized("Unauthorized: No token provided")
    try:
        return verifier.verify(credentials.credentials)
    except InvalidTokenError as e:
        logger.info(
            "Token rejected",
            extra={"operation": "verify_token", "reason": e.message[:200]},
        )
        raise _unauthorized("Unauthorized: Invalid token") from e
    except TokenVerifierUnavailableError as e:
        logger.error(
            "Token verification unavailable",
            extra={"operation": "verify_token", "reason": e.message},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to verify token",
        ) from e


def authenticate(
    claims: Annotated[VerifiedClaims, Depends(verify_bearer_token)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> AuthContext:
    """
    Dependency: verified token plus an active, registered local record.

    403 when the Firebase account never registered or has been deactivated.
    """
    try:
        user = users.find_by_external_id(claims.subject)
    except SQLAlchemyError as e:
        logger.exception("Authentication lookup failed", extra={"operation": "authenticate"})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to authenticate user",
        ) from e
    if user is None:
        logger.info("Unregistered account", extra={"operation": "authenticate"})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User not found in database",
        )
    if not user.is_active:
        logger.info(
            "Deactivated account", extra={"operation": "authenticate", "user_id": user.id}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )
    return AuthContext(claims=claims, user=UserOut.model_validate(user))


def require_admin(
    ctx: Annotated[AuthContext, Depends(authenticate)],
) -> AuthContext:
    """Dependency: require an authenticated user with role 'admin'. Raises 403 for non-admin."""
    if not ctx.is_admin:
        logger.warning(
            "Admin access denied", extra={"operation": "require_admin", "user_id": ctx.user.id}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Admin access required",
        )
    return ctx
