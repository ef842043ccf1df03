"""
Standardized API response models.

Shared OpenAPI error descriptions and route tags for consistent documentation
across the catalog routes.
"""

from typing import Any

from fastapi import status

from marketplace.api.errors import ErrorResponse

# Export HTTP status codes for easier route definitions
HTTP_200_OK = status.HTTP_200_OK
HTTP_201_CREATED = status.HTTP_201_CREATED
HTTP_204_NO_CONTENT = status.HTTP_204_NO_CONTENT
HTTP_400_BAD_REQUEST = status.HTTP_400_BAD_REQUEST
HTTP_401_UNAUTHORIZED = status.HTTP_401_UNAUTHORIZED
HTTP_403_FORBIDDEN = status.HTTP_403_FORBIDDEN
HTTP_404_NOT_FOUND = status.HTTP_404_NOT_FOUND
HTTP_409_CONFLICT = status.HTTP_409_CONFLICT
HTTP_422_UNPROCESSABLE_ENTITY = status.HTTP_422_UNPROCESSABLE_ENTITY
HTTP_500_INTERNAL_SERVER_ERROR = status.HTTP_500_INTERNAL_SERVER_ERROR
HTTP_503_SERVICE_UNAVAILABLE = status.HTTP_503_SERVICE_UNAVAILABLE


# Define tags for route categorization
class Tags:
    """API route tags for documentation grouping."""

    HEALTH = "Health"
    CATEGORIES = "Categories"
    CATALOG_ITEMS = "Catalog items"
    CARD_CONDITIONS = "Card conditions"
    ADMIN = "Admin"


read_error_responses: dict[int | str, dict[str, Any]] = {
    HTTP_400_BAD_REQUEST: {
        "model": ErrorResponse,
        "description": "Bad Request – Invalid filter or request parameters",
    },
    HTTP_404_NOT_FOUND: {
        "model": ErrorResponse,
        "description": "Not Found – The resource does not exist or is not visible",
    },
    HTTP_500_INTERNAL_SERVER_ERROR: {
        "model": ErrorResponse,
        "description": "Internal Error – Unexpected server failure",
    },
    HTTP_503_SERVICE_UNAVAILABLE: {
        "model": ErrorResponse,
        "description": "Service Unavailable – Storage is temporarily unreachable",
    },
}


default_error_responses: dict[int | str, dict[str, Any]] = {
    **read_error_responses,
    HTTP_401_UNAUTHORIZED: {
        "model": ErrorResponse,
        "description": "Unauthorized – Invalid or missing authentication",
    },
    HTTP_403_FORBIDDEN: {
        "model": ErrorResponse,
        "description": "Forbidden – Access denied",
    },
    HTTP_409_CONFLICT: {
        "model": ErrorResponse,
        "description": "Conflict – The request conflicts with existing data",
    },
    HTTP_422_UNPROCESSABLE_ENTITY: {
        "model": ErrorResponse,
        "description": "Validation Error – One or more fields are invalid",
    },
}
