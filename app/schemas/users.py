"""Request/response schemas for user records."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool

Role = Literal["user", "admin"]

ROLE_VALUES: frozenset[str] = frozenset({"user", "admin"})

DEFAULT_ROLE: Role = "user"


class UserOut(BaseModel):
    """A user record as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    firebase_uid: str
    email: str | None = None
    display_name: str | None = None
    role: Role
    is_active: bool
    created_at: datetime
    last_login: datetime | None = None


class UserResponse(BaseModel):
    user: UserOut


class UsersListResponse(BaseModel):
    """Response for GET /admin/users, newest first."""

    users: list[UserOut]


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Body of every failed request."""

    error: str = Field(..., description="Human-readable error message")


class StatusUpdateRequest(BaseModel):
    """Body for PATCH /admin/users/{id}/status. Only a JSON boolean is accepted."""

    is_active: StrictBool


class RoleUpdateRequest(BaseModel):
    """Body for PATCH /admin/users/{id}/role."""

    role: Role
