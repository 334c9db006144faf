"""Schemas for verified identity-provider claims and the authenticated request context."""

from pydantic import BaseModel, Field

from app.schemas.users import UserOut


class VerifiedClaims(BaseModel):
    """Claims taken from a verified Firebase ID token."""

    subject: str = Field(..., min_length=1, max_length=128, description="Firebase uid (token sub)")
    email: str | None = Field(default=None, description="Email claim, if the account has one")
    display_name: str | None = Field(default=None, description="Name claim, if present")


class AuthContext(BaseModel):
    """Verified claims plus the caller's active local record, passed to protected handlers."""

    claims: VerifiedClaims
    user: UserOut

    @property
    def is_admin(self) -> bool:
        return self.user.role == "admin"
