"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from marketplace.api.errors import register_exception_handlers
from marketplace.api.responses import Tags
from marketplace.api.routes.v1.admin_categories import router as admin_router
from marketplace.api.routes.v1.card_conditions import router as card_conditions_router
from marketplace.api.routes.v1.catalog_items import router as catalog_items_router
from marketplace.api.routes.v1.categories import router as categories_router
from marketplace.api.routes.v1.endpoints.health import router as health_router
from marketplace.core.config import settings
from marketplace.core.events import shutdown_event_handlers, startup_event_handlers
from marketplace.core.logging import configure_logging
from marketplace.core.metrics import setup_metrics
from marketplace.core.tracing import setup_tracing


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan event handler for startup and shutdown events.
    """
    # Configure Sentry
    if settings.SENTRY_DSN:
        sentry_logging = LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            integrations=[
                FastApiIntegration(),
                sentry_logging,
            ],
            environment=settings.ENVIRONMENT,
            traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
            release=f"{settings.PROJECT_NAME}@{settings.VERSION}",
        )
        logger.info("Sentry initialized")

    for handler in startup_event_handlers:
        await handler()

    yield

    for handler in shutdown_event_handlers:
        await handler()


def create_application() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    configure_logging()

    application = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.PROJECT_DESCRIPTION,
        version=settings.VERSION,
        docs_url="/api/docs" if not settings.ENVIRONMENT == "production" else None,
        redoc_url="/api/redoc" if not settings.ENVIRONMENT == "production" else None,
        openapi_url="/api/openapi.json" if not settings.ENVIRONMENT == "production" else None,
        lifespan=lifespan,
        swagger_ui_parameters={
            "deepLinking": True,
            "displayRequestDuration": True,
            "filter": True,
            "tryItOutEnabled": True,
        },
        openapi_tags=[
            {"name": Tags.HEALTH, "description": "Health check and readiness endpoints"},
            {"name": Tags.CATEGORIES, "description": "Category registry and field schemas"},
            {"name": Tags.CATALOG_ITEMS, "description": "Catalog item search and management"},
            {"name": Tags.CARD_CONDITIONS, "description": "Card condition vocabulary"},
            {"name": Tags.ADMIN, "description": "Category and field administration"},
        ],
    )

    # Register exception handlers
    register_exception_handlers(application)

    # Add CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.CORS_ORIGINS_STR == "*" else settings.CORS_ORIGINS_STR.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Setup Prometheus metrics middleware if enabled
    if settings.ENABLE_METRICS:
        setup_metrics(application)
        logger.info("Prometheus metrics enabled")

    # Setup OpenTelemetry tracing if enabled
    if settings.ENABLE_TRACING:
        setup_tracing(application)
        logger.info("OpenTelemetry tracing enabled")

    # Include routers
    application.include_router(health_router, prefix=f"{settings.API_PREFIX}/health", tags=[Tags.HEALTH])
    application.include_router(categories_router, prefix=settings.API_V1_STR)
    application.include_router(catalog_items_router, prefix=settings.API_V1_STR)
    application.include_router(card_conditions_router, prefix=settings.API_V1_STR)
    application.include_router(admin_router, prefix=settings.API_V1_STR)

    return application


app = create_application()
