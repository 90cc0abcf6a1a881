import enum
import uuid
from datetime import datetime, timezone

from app.db import Base
from sqlalchemy import JSON, Column, DateTime, Enum, Integer, String


class ImportRunStatus(enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class ImportRun(Base):
    __tablename__ = "import_runs"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=False)
    kind = Column(String(64), nullable=False)  # products, attribute_terms
    filename = Column(String(512), nullable=True)
    status = Column(
        Enum(ImportRunStatus), nullable=False, default=ImportRunStatus.RUNNING
    )
    row_count = Column(Integer, nullable=False, default=0)
    success_count = Column(Integer, nullable=False, default=0)
    edit_count = Column(Integer, nullable=False, default=0)
    errors = Column(JSON, nullable=True)
    last_error = Column(String(1024), nullable=True)
    started_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    finished_at = Column(DateTime, nullable=True)
