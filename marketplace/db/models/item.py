"""
Database models for catalog items and card conditions.
"""

from enum import Enum
from typing import Dict, FrozenSet

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from marketplace.db.session import Base


class CatalogItemStatus(str, Enum):
    """
    Lifecycle states of a catalog item.
    """

    DRAFT = "draft"
    LISTED = "listed"
    SOLD = "sold"
    WITHDRAWN = "withdrawn"
    EXPIRED = "expired"


STATUS_TRANSITIONS: Dict[CatalogItemStatus, FrozenSet[CatalogItemStatus]] = {
    CatalogItemStatus.DRAFT: frozenset({CatalogItemStatus.LISTED, CatalogItemStatus.WITHDRAWN}),
    CatalogItemStatus.LISTED: frozenset(
        {CatalogItemStatus.SOLD, CatalogItemStatus.WITHDRAWN, CatalogItemStatus.EXPIRED}
    ),
    CatalogItemStatus.SOLD: frozenset(),
    CatalogItemStatus.WITHDRAWN: frozenset(),
    CatalogItemStatus.EXPIRED: frozenset(),
}

EDITABLE_STATUSES = frozenset({CatalogItemStatus.DRAFT, CatalogItemStatus.LISTED})


class CardCondition(Base):
    """
    Condition vocabulary such as "Mint" or "Near Mint".
    """

    __tablename__ = "card_conditions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    items = relationship("CatalogItem", back_populates="condition")


class CatalogItem(Base):
    """
    A sellable or tradeable item belonging to exactly one category.
    """

    __tablename__ = "catalog_items"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    condition_id = Column(Integer, ForeignKey("card_conditions.id", ondelete="SET NULL"), nullable=True)

    title = Column(String(255), nullable=True)
    slug = Column(String(300), nullable=True, index=True)
    search_text = Column(Text, nullable=True)
    description = Column(String(1000), nullable=True)
    price = Column(Numeric(12, 2), nullable=True)
    is_graded = Column(Boolean, nullable=False, default=False)
    status = Column(
        String(20),
        nullable=False,
        index=True,
        default=CatalogItemStatus.DRAFT.value,
        server_default=CatalogItemStatus.DRAFT.value,
    )

    # Dynamic attribute bag, field name -> string value
    attributes = Column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    category = relationship("Category", back_populates="items")
    condition = relationship("CardCondition", back_populates="items")
    owner = relationship("User", back_populates="items")
