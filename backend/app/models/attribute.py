import uuid
from datetime import datetime, timezone

from app.db import Base
from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship


def _now():
    return datetime.now(timezone.utc)


class ProductAttribute(Base):
    """A named axis of variation, e.g. "Color"."""

    __tablename__ = "product_attributes"
    __table_args__ = (
        UniqueConstraint("organization_id", "slug", name="uq_attributes_org_slug"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    slug = Column(String(256), nullable=False)
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    terms = relationship("ProductAttributeTerm", back_populates="attribute")


class ProductAttributeTerm(Base):
    """One value on an attribute axis, e.g. "Red".

    Term slugs are unique per organization, not per attribute.
    """

    __tablename__ = "product_attribute_terms"
    __table_args__ = (
        UniqueConstraint("organization_id", "slug", name="uq_terms_org_slug"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    attribute_id = Column(
        String(36), ForeignKey("product_attributes.id"), nullable=False, index=True
    )
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    slug = Column(String(256), nullable=False)
    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    attribute = relationship("ProductAttribute", back_populates="terms")


class ProductAttributeValue(Base):
    """A term a parent product offers as one of its choices for an attribute."""

    __tablename__ = "product_attribute_values"

    product_id = Column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), primary_key=True
    )
    attribute_id = Column(
        String(36), ForeignKey("product_attributes.id"), primary_key=True
    )
    term_id = Column(
        String(36), ForeignKey("product_attribute_terms.id"), primary_key=True
    )
