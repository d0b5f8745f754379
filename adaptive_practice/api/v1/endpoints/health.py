"""Health and readiness endpoints."""

from typing import Literal

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from adaptive_practice.core.config import settings
from adaptive_practice.core.errors import get_request_id
from adaptive_practice.core.redis_client import is_redis_available
from adaptive_practice.db.session import get_db

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""

    status: Literal["ok", "degraded", "down"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: Literal["ok", "degraded", "down"]
    checks: dict[str, ReadinessCheck]
    request_id: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
def health_check() -> HealthResponse:
    """Process is alive."""
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
)
def readiness_check(request: Request, db: Session = Depends(get_db)) -> ReadinessResponse:
    """Database, Redis and generation-service configuration."""
    checks: dict[str, ReadinessCheck] = {}
    overall_status: Literal["ok", "degraded", "down"] = "ok"

    try:
        db.execute(text("SELECT 1"))
        checks["db"] = ReadinessCheck(status="ok")
    except SQLAlchemyError as e:
        checks["db"] = ReadinessCheck(status="down", message=str(e))
        overall_status = "down"

    if settings.REDIS_ENABLED:
        if is_redis_available():
            checks["redis"] = ReadinessCheck(status="ok")
        else:
            checks["redis"] = ReadinessCheck(status="degraded", message="Redis unavailable")
            if settings.REDIS_REQUIRED:
                overall_status = "down"
            elif overall_status == "ok":
                overall_status = "degraded"
    else:
        checks["redis"] = ReadinessCheck(status="ok", message="Not enabled")

    checks["generation"] = ReadinessCheck(
        status="ok",
        message="Enabled" if settings.GENERATION_ENABLED else "Disabled; template fallback only",
    )

    return ReadinessResponse(status=overall_status, checks=checks, request_id=get_request_id(request))
