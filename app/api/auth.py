"""Registration/login bridge between Firebase accounts and local user records."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import get_user_repository, verify_bearer_token
from app.models import User
from app.schemas.auth import VerifiedClaims
from app.schemas.users import DEFAULT_ROLE, ErrorResponse, UserOut, UserResponse
from app.services.user_repository import UserConflictError, UserRepository

logger = logging.getLogger(__name__)
router = APIRouter()

NOT_REGISTERED = {404: {"model": ErrorResponse, "description": "Account not registered"}}


def _require_active(user: User | None, operation: str) -> UserResponse:
    if user is None:
        logger.info("No local record for account", extra={"operation": operation})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if not user.is_active:
        logger.info("Deactivated account", extra={"operation": operation, "user_id": user.id})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated")
    return UserResponse(user=UserOut.model_validate(user))


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Already registered"}},
)
def register(
    claims: Annotated[VerifiedClaims, Depends(verify_bearer_token)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    """
    Create the local record for a freshly signed-up Firebase account.

    Call once after sign-up with the new account's ID token. The record starts
    with role 'user' and is active. 409 if the account is already registered.
    """
    try:
        if users.find_by_external_id(claims.subject) is not None:
            raise UserConflictError("User already exists")
        user = users.insert(
            firebase_uid=claims.subject,
            email=claims.email,
            display_name=claims.display_name,
            role=DEFAULT_ROLE,
        )
    except UserConflictError as e:
        logger.info("Registration conflict", extra={"operation": "register"})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e
    except SQLAlchemyError as e:
        logger.exception("Registration error", extra={"operation": "register"})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to register user",
        ) from e
    logger.info("User registered", extra={"operation": "register", "user_id": user.id})
    return UserResponse(user=UserOut.model_validate(user))


@router.post("/login", response_model=UserResponse, responses=NOT_REGISTERED)
def login(
    claims: Annotated[VerifiedClaims, Depends(verify_bearer_token)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    """Record a sign-in: stamps last_login, then rejects deactivated accounts with 403."""
    try:
        user = users.touch_last_login(claims.subject)
    except SQLAlchemyError as e:
        logger.exception("Login error", extra={"operation": "login"})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to log in",
        ) from e
    return _require_active(user, "login")


@router.get("/profile", response_model=UserResponse, responses=NOT_REGISTERED)
def profile(
    claims: Annotated[VerifiedClaims, Depends(verify_bearer_token)],
    users: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    """Return the caller's local record."""
    try:
        user = users.find_by_external_id(claims.subject)
    except SQLAlchemyError as e:
        logger.exception("Profile fetch error", extra={"operation": "profile"})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch user profile",
        ) from e
    return _require_active(user, "profile")
