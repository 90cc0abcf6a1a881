import uuid
from datetime import datetime, timezone

from app.db import Base
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint


class ProductCategory(Base):
    __tablename__ = "product_categories"
    __table_args__ = (
        UniqueConstraint("organization_id", "slug", name="uq_categories_org_slug"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    slug = Column(String(256), nullable=False)
    image = Column(String(512), nullable=True)
    order = Column(Integer, nullable=False, default=0)
    parent_id = Column(String(36), ForeignKey("product_categories.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class ProductCategoryAssignment(Base):
    __tablename__ = "product_category_assignments"

    product_id = Column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), primary_key=True
    )
    category_id = Column(
        String(36), ForeignKey("product_categories.id", ondelete="CASCADE"), primary_key=True
    )
