import uuid
from datetime import datetime, timezone

from app.db import Base
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String


class WarehouseStock(Base):
    __tablename__ = "warehouse_stock"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    warehouse_id = Column(String(64), nullable=False, index=True)
    product_id = Column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # null for simple products, set for stock held per variation
    variation_id = Column(
        String(36),
        ForeignKey("product_variations.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    country = Column(String(8), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    organization_id = Column(String(36), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return (
            f"<WarehouseStock warehouse={self.warehouse_id} product={self.product_id} "
            f"variation={self.variation_id} country={self.country} qty={self.quantity}>"
        )
