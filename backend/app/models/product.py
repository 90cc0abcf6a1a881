import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("organization_id", "sku", name="uq_products_org_sku"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    organization_id = Column(String(36), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False, index=True)
    title = Column(String(512), nullable=False, default="")
    description = Column(Text, nullable=True)
    image = Column(String(512), nullable=True)
    sku = Column(String(64), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="draft")  # draft, published
    product_type = Column(String(16), nullable=False, default="simple")  # simple, variable
    regular_price = Column(JSON, nullable=False, default=dict)
    sale_price = Column(JSON, nullable=False, default=dict)
    cost = Column(JSON, nullable=False, default=dict)
    manage_stock = Column(Boolean, nullable=False, default=True)
    allow_backorders = Column(Boolean, nullable=False, default=False)
    stock_status = Column(String(32), nullable=False, default="managed")
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    variations = relationship(
        "ProductVariation", back_populates="product", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Product sku={self.sku} type={self.product_type}>"


class ProductVariation(Base):
    __tablename__ = "product_variations"
    __table_args__ = (
        UniqueConstraint("product_id", "sku", name="uq_variations_product_sku"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    product_id = Column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sku = Column(String(64), nullable=False, index=True)
    image = Column(String(512), nullable=True)
    regular_price = Column(JSON, nullable=False, default=dict)
    sale_price = Column(JSON, nullable=False, default=dict)
    cost = Column(JSON, nullable=False, default=dict)
    # attribute id -> term id instantiated by this variation
    attributes = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    product = relationship("Product", back_populates="variations")

    def __repr__(self):
        return f"<ProductVariation sku={self.sku} product={self.product_id}>"
