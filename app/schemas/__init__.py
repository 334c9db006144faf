"""Pydantic request/response schemas."""

from app.schemas.auth import AuthContext, VerifiedClaims
from app.schemas.health import HealthResponse
from app.schemas.users import (
    DEFAULT_ROLE,
    ROLE_VALUES,
    ErrorResponse,
    MessageResponse,
    Role,
    RoleUpdateRequest,
    StatusUpdateRequest,
    UserOut,
    UserResponse,
    UsersListResponse,
)

__all__ = [
    "AuthContext",
    "DEFAULT_ROLE",
    "ErrorResponse",
    "HealthResponse",
    "MessageResponse",
    "ROLE_VALUES",
    "Role",
    "RoleUpdateRequest",
    "StatusUpdateRequest",
    "UserOut",
    "UserResponse",
    "UsersListResponse",
    "VerifiedClaims",
]
