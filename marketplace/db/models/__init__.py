"""
Database models.
"""

from marketplace.db.models.category import (
    Category,
    FieldDefinition,
    FieldType,
    GradedUngradedField,
    SchemaVariant,
)
from marketplace.db.models.item import (
    EDITABLE_STATUSES,
    STATUS_TRANSITIONS,
    CardCondition,
    CatalogItem,
    CatalogItemStatus,
)
from marketplace.db.models.models import User, UserRole

__all__ = [
    "Category",
    "FieldDefinition",
    "FieldType",
    "GradedUngradedField",
    "SchemaVariant",
    "CardCondition",
    "CatalogItem",
    "CatalogItemStatus",
    "EDITABLE_STATUSES",
    "STATUS_TRANSITIONS",
    "User",
    "UserRole",
]
