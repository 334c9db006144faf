"""HTTP routes: public auth bridge, authenticated user routes, admin routes."""

from fastapi import APIRouter, Depends

from app.api import admin, auth, users
from app.api.dependencies import authenticate, require_admin
from app.schemas.users import ErrorResponse

AUTH_ERRORS = {
    401: {"model": ErrorResponse, "description": "Missing or invalid bearer token"},
    403: {"model": ErrorResponse, "description": "Unregistered or deactivated account"},
    500: {"model": ErrorResponse, "description": "Database or identity provider failure"},
}


def build_api_router() -> APIRouter:
    """Routes mounted under the API prefix (/api by default)."""
    router = APIRouter(responses=AUTH_ERRORS)
    router.include_router(auth.router, prefix="/auth", tags=["auth"])
    router.include_router(
        users.router,
        prefix="/users",
        tags=["users"],
        dependencies=[Depends(authenticate)],
    )
    router.include_router(
        admin.router,
        prefix="/admin",
        tags=["admin"],
        dependencies=[Depends(require_admin)],
        responses={
            400: {"model": ErrorResponse, "description": "Invalid request body or self-deletion"},
            404: {"model": ErrorResponse, "description": "User not found"},
        },
    )
    return router


__all__ = ["build_api_router"]
