"""
API error handling for consistent error responses across the application.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from marketplace.core.exceptions import ErrorKind, MarketplaceError, UnauthorizedError


class ErrorBody(BaseModel):
    """Error payload."""

    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Standardized error response model."""

    error: ErrorBody


def create_error_response(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create a standardized error response.
    """
    return ErrorResponse(error=ErrorBody(code=code, message=message, details=details or {})).model_dump()


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers for the FastAPI application.
    """

    @app.exception_handler(MarketplaceError)
    async def marketplace_exception_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
        """
        Handle domain errors raised by the catalog services.
        """
        if exc.status_code >= 500:
            logger.error(f"{exc.kind.value} on {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"{exc.kind.value} on {request.method} {request.url.path}: {exc.message}")

        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=create_error_response(exc.kind.value, exc.message, exc.details()),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Handle validation errors and return a standardized response.
        """
        logger.warning(f"Validation error: {exc.errors()}")

        def flatten_error(err: dict) -> Dict[str, str]:
            location = ".".join(str(loc) for loc in err.get("loc", []))
            return {"field": location, "message": err.get("msg", "Validation error")}

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=create_error_response(
                ErrorKind.VALIDATION_ERROR.value,
                "Request validation failed",
                {"errors": [flatten_error(err) for err in exc.errors()]},
            ),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        """
        Handle database integrity errors.
        """
        logger.error(f"Database integrity error: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=create_error_response(
                "DATABASE_INTEGRITY_ERROR", "The request conflicts with existing data"
            ),
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """
        Handle general SQLAlchemy errors.
        """
        logger.error(f"Database error: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response("DATABASE_ERROR", "A database error occurred"),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Handle all other uncaught exceptions.
        """
        logger.exception(f"Unhandled exception: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response("INTERNAL_ERROR", "An unexpected error occurred"),
        )
