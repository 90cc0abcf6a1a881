import uuid
from datetime import datetime, timezone

from app.db import Base
from sqlalchemy import Column, DateTime, String, UniqueConstraint


class Tenant(Base):
    __tablename__ = "tenants"
    __table_args__ = (
        UniqueConstraint("organization_id", "owner_user_id", name="uq_tenant_owner"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(256), nullable=False)
    organization_id = Column(String(36), nullable=False, index=True)
    owner_user_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def __repr__(self):
        return f"<Tenant id={self.id} organization={self.organization_id}>"
