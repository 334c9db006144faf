"""Liveness endpoint; reports database connectivity but never fails because of it."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(request: Request, db: Session = Depends(get_db)) -> HealthResponse:
    """Used by load balancers and monitoring. No authentication."""
    db_status = "connected" if check_db_connected(db) else "disconnected"
    return HealthResponse(
        environment=request.app.state.settings.APP_ENV,
        database=db_status,
    )
