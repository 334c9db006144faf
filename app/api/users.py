"""Routes for any authenticated, active user."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.dependencies import authenticate
from app.schemas.auth import AuthContext
from app.schemas.users import UserResponse

router = APIRouter()


@router.get("/me", response_model=UserResponse)
def get_me(ctx: Annotated[AuthContext, Depends(authenticate)]) -> UserResponse:
    """Return the caller's own record as loaded by the auth gateway."""
    return UserResponse(user=ctx.user)
