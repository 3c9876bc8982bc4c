"""Health check endpoints.

/health is a liveness check that also reports which backends this
instance was started with. /health/ready checks that the configured
storage can actually be reached.
"""

import structlog
from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from storefront.infrastructure.config import settings

router = APIRouter()

logger = structlog.get_logger()


class BackendsInfo(BaseModel):
    """Adapters selected by configuration."""

    storage: str
    payment_gateway: str
    shipments: str


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str
    backends: BackendsInfo


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str
    storage: str
    error: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name, version and selected backends.
    """
    return HealthResponse(
        status="healthy",
        service="storefront-api",
        version=settings.api_version,
        backends=BackendsInfo(
            storage=settings.storage_backend,
            payment_gateway=settings.payment_gateway,
            shipments=settings.shipment_backend,
        ),
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check that the storage backend answers.

    Only the database backend has anything to reach; memory and file
    storage are always ready.
    """
    if settings.storage_backend != "database":
        return ReadinessResponse(status="ready", storage=settings.storage_backend)

    from storefront.infrastructure.database import ping

    try:
        await ping()
    except Exception as e:
        logger.warning("Database not reachable", error=str(e))
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="unavailable", storage="database", error=str(e))
    return ReadinessResponse(status="ready", storage="database")
