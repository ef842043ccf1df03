"""
Database models for categories and their field definitions.
"""

from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import relationship

from marketplace.db.session import Base


class FieldType(str, Enum):
    """
    Value types a dynamic field can hold.
    """

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    SELECT = "select"


class SchemaVariant(str, Enum):
    """
    Item variant a schema is resolved for.
    """

    GRADED = "graded"
    UNGRADED = "ungraded"
    ANY = "any"


class Category(Base):
    """
    Top-level product classification owning its own attribute schema.
    """

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    icon = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    has_grading = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    fields = relationship("FieldDefinition", back_populates="category", cascade="all, delete-orphan")
    field_scopes = relationship("GradedUngradedField", back_populates="category", cascade="all, delete-orphan")
    items = relationship("CatalogItem", back_populates="category")


class FieldDefinition(Base):
    """
    Metadata describing one dynamic attribute available to items of a category.
    """

    __tablename__ = "category_fields"
    __table_args__ = (
        UniqueConstraint("category_id", "name", name="uq_category_fields_category_name"),
        # At most one title field per category
        Index(
            "uq_category_fields_title",
            "category_id",
            unique=True,
            postgresql_where=text("mark_as_title"),
            sqlite_where=text("mark_as_title = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    label = Column(String(100), nullable=True)
    field_type = Column(String(20), nullable=False, default=FieldType.TEXT.value, server_default=FieldType.TEXT.value)
    options = Column(JSON, nullable=True)
    max_length = Column(Integer, nullable=True)
    prefix = Column(String(50), nullable=True)
    is_required = Column(Boolean, nullable=False, default=False)
    priority = Column(Integer, nullable=False, default=0)
    mark_as_title = Column(Boolean, nullable=False, default=False)
    show_on_detail = Column(Boolean, nullable=False, default=True)
    mark_for_popup = Column(Boolean, nullable=False, default=False)
    additional_information = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    category = relationship("Category", back_populates="fields")


class GradedUngradedField(Base):
    """
    Scopes a field to graded items, ungraded items or both.

    A field without a row applies to every variant.
    """

    __tablename__ = "category_graded_ungraded_fields"
    __table_args__ = (UniqueConstraint("category_id", "field_name", name="uq_graded_ungraded_category_field"),)

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True)
    field_name = Column(String(100), nullable=False)
    is_graded = Column(Boolean, nullable=False, default=False)
    is_ungraded = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    category = relationship("Category", back_populates="field_scopes")

    def applies_to(self, variant: SchemaVariant) -> bool:
        if variant == SchemaVariant.ANY:
            return True
        if variant == SchemaVariant.GRADED:
            return bool(self.is_graded)
        return bool(self.is_ungraded)
