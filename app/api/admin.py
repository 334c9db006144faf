"""Admin user management: list, fetch, activate/deactivate, change role, delete.

Mounted behind authenticate + require_admin, so every handler receives the
caller's AuthContext.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import get_user_repository, require_admin
from app.schemas.auth import AuthContext
from app.schemas.users import (
    MessageResponse,
    RoleUpdateRequest,
    StatusUpdateRequest,
    UserOut,
    UserResponse,
    UsersListResponse,
)
from app.services.user_repository import UserRepository

logger = logging.getLogger(__name__)
router = APIRouter()

Admin = Annotated[AuthContext, Depends(require_admin)]
Users = Annotated[UserRepository, Depends(get_user_repository)]


def _not_found(operation: str, user_id: int) -> HTTPException:
    logger.info("User not found", extra={"operation": operation, "user_id": user_id})
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


def _bad_request(operation: str, detail: str) -> HTTPException:
    logger.info("Rejected request: %s", detail, extra={"operation": operation})
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _internal(operation: str, detail: str) -> HTTPException:
    logger.exception("Admin operation failed", extra={"operation": operation})
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


@router.get("/users", response_model=UsersListResponse)
def list_users(_admin: Admin, users: Users) -> UsersListResponse:
    """List all users, most recently created first."""
    try:
        rows = users.list_all()
    except SQLAlchemyError as e:
        raise _internal("list_users", "Failed to fetch users") from e
    return UsersListResponse(users=[UserOut.model_validate(u) for u in rows])


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: int, _admin: Admin, users: Users) -> UserResponse:
    try:
        user = users.find_by_id(user_id)
    except SQLAlchemyError as e:
        raise _internal("get_user", "Failed to fetch user") from e
    if user is None:
        raise _not_found("get_user", user_id)
    return UserResponse(user=UserOut.model_validate(user))


@router.patch("/users/{user_id}/status", response_model=UserResponse)
def update_user_status(
    user_id: int,
    admin: Admin,
    users: Users,
    payload: Annotated[Any, Body()] = None,
) -> UserResponse:
    """Activate or deactivate a user. Body: {"is_active": true|false}; strings and numbers are rejected."""
    try:
        body = StatusUpdateRequest.model_validate(payload)
    except ValidationError as e:
        raise _bad_request("update_user_status", "is_active must be a boolean") from e
    try:
        user = users.update_active_flag(user_id, body.is_active)
    except SQLAlchemyError as e:
        raise _internal("update_user_status", "Failed to update user status") from e
    if user is None:
        raise _not_found("update_user_status", user_id)
    logger.info(
        "User status updated",
        extra={
            "operation": "update_user_status",
            "user_id": user_id,
            "is_active": body.is_active,
            "admin_id": admin.user.id,
        },
    )
    return UserResponse(user=UserOut.model_validate(user))


@router.patch("/users/{user_id}/role", response_model=UserResponse)
def update_user_role(
    user_id: int,
    admin: Admin,
    users: Users,
    payload: Annotated[Any, Body()] = None,
) -> UserResponse:
    """Change a user's role. Body: {"role": "user"|"admin"}."""
    try:
        body = RoleUpdateRequest.model_validate(payload)
    except ValidationError as e:
        raise _bad_request("update_user_role", "Invalid role") from e
    try:
        user = users.update_role(user_id, body.role)
    except SQLAlchemyError as e:
        raise _internal("update_user_role", "Failed to update user role") from e
    if user is None:
        raise _not_found("update_user_role", user_id)
    logger.info(
        "User role updated",
        extra={
            "operation": "update_user_role",
            "user_id": user_id,
            "role": body.role,
            "admin_id": admin.user.id,
        },
    )
    return UserResponse(user=UserOut.model_validate(user))


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(user_id: int, admin: Admin, users: Users) -> MessageResponse:
    """Delete a user. An admin cannot delete the record linked to their own Firebase account."""
    try:
        target = users.find_by_id(user_id)
        if target is None:
            raise _not_found("delete_user", user_id)
        if target.firebase_uid == admin.claims.subject:
            raise _bad_request("delete_user", "Cannot delete your own account")
        if not users.delete(user_id):
            raise _not_found("delete_user", user_id)
    except SQLAlchemyError as e:
        raise _internal("delete_user", "Failed to delete user") from e
    logger.info(
        "User deleted",
        extra={"operation": "delete_user", "user_id": user_id, "admin_id": admin.user.id},
    )
    return MessageResponse(message="User deleted successfully")
