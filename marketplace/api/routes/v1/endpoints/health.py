"""
Health check endpoint.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Response, status
from loguru import logger
from pydantic import BaseModel, ConfigDict
from sqlalchemy import text

from marketplace.api.dependencies import get_db_session
from marketplace.api.responses import Tags
from marketplace.core.config import settings
from marketplace.services.schema_cache import schema_cache

router = APIRouter()


class HealthStatus(BaseModel):
    """Health status model."""

    status: str
    version: str
    environment: str

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "ok", "version": "0.1.0", "environment": "development"}}
    )


class ComponentStatus(BaseModel):
    """Component health status model."""

    name: str
    status: str
    details: Optional[Dict] = None

    model_config = ConfigDict(
        json_schema_extra={"example": {"name": "database", "status": "healthy", "details": {"type": "postgresql"}}}
    )


class DetailedHealthStatus(HealthStatus):
    """Detailed health status model with component status information."""

    components: List[ComponentStatus]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "ok",
                "version": "0.1.0",
                "environment": "development",
                "components": [
                    {"name": "database", "status": "healthy", "details": {"type": "postgresql"}},
                    {"name": "schema_cache", "status": "healthy", "details": {"entries": 4, "ttl_seconds": 30.0}},
                ],
            }
        }
    )


@router.get(
    "",
    response_model=HealthStatus,
    summary="Basic health check endpoint",
    description="Returns a simple status indicating the service is running, along with version and environment information.",  # noqa: E501
    responses={200: {"description": "Service is healthy"}},
    tags=[Tags.HEALTH],
)
async def health_check() -> HealthStatus:
    """
    Basic health check endpoint.

    Returns a simple status indicating the service is running, along with version
    and environment information.
    """
    return HealthStatus(
        status="ok",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
    )


@router.get(
    "/ready",
    response_model=DetailedHealthStatus,
    summary="Readiness check endpoint",
    description="Checks the database and the schema cache and returns detailed status information.",
    responses={200: {"description": "Service is ready"}, 503: {"description": "Service is not ready"}},
    tags=[Tags.HEALTH],
)
async def readiness_check(
    response: Response,
    db_session: Any = Depends(get_db_session),
) -> DetailedHealthStatus:
    """
    Detailed health check for service readiness.
    """
    components = []
    all_healthy = True

    try:
        await db_session.execute(text("SELECT 1"))
        components.append(
            ComponentStatus(name="database", status="healthy", details={"type": db_session.get_bind().dialect.name})
        )
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        components.append(ComponentStatus(name="database", status="unhealthy", details={"error": type(e).__name__}))
        all_healthy = False

    components.append(
        ComponentStatus(
            name="schema_cache",
            status="healthy" if schema_cache.enabled else "disabled",
            details={"entries": len(schema_cache), "ttl_seconds": schema_cache.ttl_seconds},
        )
    )

    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return DetailedHealthStatus(
        status="ok" if all_healthy else "degraded",
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        components=components,
    )
