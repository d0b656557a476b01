"""
Health check endpoint.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from app.config import SERVICE_NAME
from app.models import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Health check",
)
async def get_health() -> HealthResponse:
    return HealthResponse(
        ok=True,
        service=SERVICE_NAME,
        now=datetime.now(timezone.utc),
    )
