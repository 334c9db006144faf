"""FastAPI application factory. Wiring only: resources, middleware, error rendering, routes."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import build_api_router
from app.api.health import router as health_router
from app.core.config import Settings, get_settings
from app.core.database import create_db_engine, create_session_factory
from app.core.security import FirebaseTokenVerifier, TokenVerifier

logger = logging.getLogger(__name__)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as {"error": message}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and path parameters are client errors (400), not 422."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
    else:
        message = "Invalid request"
    logger.info(
        "Request validation failed",
        extra={"operation": "validate_request", "path": request.url.path},
    )
    return JSONResponse(status_code=400, content={"error": message})


def create_app(
    settings: Settings | None = None,
    session_factory: sessionmaker[Session] | None = None,
    token_verifier: TokenVerifier | None = None,
) -> FastAPI:
    """
    Build the application.

    The session factory and token verifier are created from settings unless
    supplied; either way they live on app.state and reach handlers through
    dependencies.
    """
    settings = settings or get_settings()
    if session_factory is None:
        engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        session_factory = create_session_factory(engine)
    if token_verifier is None:
        if not settings.FIREBASE_PROJECT_ID:
            logger.warning("FIREBASE_PROJECT_ID is not set; all bearer tokens will be rejected")
        token_verifier = FirebaseTokenVerifier.from_settings(settings)

    app = FastAPI(
        title="User Directory API",
        version="0.1.0",
        docs_url="/docs" if settings.APP_ENV == "dev" else None,
        redoc_url="/redoc" if settings.APP_ENV == "dev" else None,
    )
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.token_verifier = token_verifier

    if settings.CORS_ORIGINS:
        allow_origins = settings.CORS_ORIGINS
    else:
        allow_origins = ["*"] if settings.APP_ENV == "dev" else []
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(build_api_router(), prefix=settings.API_PREFIX)
    app.include_router(health_router, prefix="/health", tags=["health"])
    return app
