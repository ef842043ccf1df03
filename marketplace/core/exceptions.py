"""
Domain exceptions for the catalog.

Every error carries a machine-readable ``kind`` and a message that is safe to
show to API clients. Handlers in ``marketplace.api.errors`` turn them into
HTTP responses.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from fastapi import status
from pydantic import BaseModel


class ErrorKind(str, Enum):
    """Machine-readable error kinds."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_FILTER = "INVALID_FILTER"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


class FieldErrorKind(str, Enum):
    """Kinds of problems found while validating a single field or request value."""

    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    INVALID_FIELD_VALUE = "InvalidFieldValue"
    DUPLICATE_FIELD_NAME = "DuplicateFieldName"
    DUPLICATE_TITLE_FIELD = "DuplicateTitleField"
    SLUG_IN_USE = "SlugInUse"
    SLUG_TAKEN = "SlugTaken"
    CATEGORY_INACTIVE = "CategoryInactive"
    INVALID_STATUS = "InvalidStatus"
    INVALID_STATUS_TRANSITION = "InvalidStatusTransition"
    ITEM_NOT_EDITABLE = "ItemNotEditable"
    INVALID_REQUEST = "InvalidRequest"


class FieldError(BaseModel):
    """One validation problem."""

    kind: FieldErrorKind
    field: Optional[str] = None
    message: str

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.field}" if self.field else self.kind.value


class MarketplaceError(Exception):
    """Base class for errors that map onto an API response."""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def details(self) -> Dict[str, Any]:
        return {}


class NotFoundError(MarketplaceError):
    kind = ErrorKind.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"

    def __init__(self, resource: str, identifier: Any = None) -> None:
        self.resource = resource
        self.identifier = identifier
        if identifier is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} '{identifier}' not found"
        super().__init__(message)

    def details(self) -> Dict[str, Any]:
        return {"resource": self.resource}


class CatalogValidationError(MarketplaceError):
    """Raised with every problem found, never just the first one."""

    kind = ErrorKind.VALIDATION_ERROR
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Validation failed"

    def __init__(self, errors: Sequence[FieldError], message: Optional[str] = None) -> None:
        self.errors: List[FieldError] = list(errors)
        super().__init__(message or self.default_message)

    def details(self) -> Dict[str, Any]:
        return {"errors": [error.model_dump(mode="json") for error in self.errors]}

    @classmethod
    def single(cls, kind: FieldErrorKind, message: str, field: Optional[str] = None) -> "CatalogValidationError":
        return cls([FieldError(kind=kind, field=field, message=message)])


class InvalidFilterError(MarketplaceError):
    kind = ErrorKind.INVALID_FILTER
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid filter"


class UnauthorizedError(MarketplaceError):
    kind = ErrorKind.UNAUTHORIZED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class ForbiddenError(MarketplaceError):
    kind = ErrorKind.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not enough permissions"


class StoreUnavailableError(MarketplaceError):
    """Transient persistence failure. Reads may be retried, writes are not."""

    kind = ErrorKind.STORE_UNAVAILABLE
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Storage is temporarily unavailable, please retry"
