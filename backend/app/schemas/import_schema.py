# backend/app/schemas/import_schema.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RowErrorOut(BaseModel):
    row: int
    error: str


class ImportRunOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    kind: str
    filename: Optional[str] = None
    status: str
    row_count: int = Field(alias="rowCount")
    success_count: int = Field(alias="successCount")
    edit_count: int = Field(alias="editCount")
    errors: List[RowErrorOut] = []
    last_error: Optional[str] = Field(None, alias="lastError")
    started_at: Optional[datetime] = Field(None, alias="startedAt")
    finished_at: Optional[datetime] = Field(None, alias="finishedAt")
