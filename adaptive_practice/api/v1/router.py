"""API v1 router - includes all v1 endpoints."""

from fastapi import APIRouter

from adaptive_practice.api.v1.endpoints import health, practice

api_router = APIRouter()

api_router.include_router(health.router, prefix="", tags=["Health"])
api_router.include_router(practice.router, prefix="/practice", tags=["Practice"])
