import uuid
from datetime import datetime
from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict


class Workflow(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    description: str | None = None
    stages: List[Dict[str, Any]]
    is_default: bool
    is_archived: bool
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    stage_count: int
    model_config = ConfigDict(from_attributes=True)


class WorkflowStageIn(BaseModel):
    """Stage as submitted; ordering and colors are checked against the whole list."""
    order: int | None = None
    name: str = ""
    color: str | None = None


class WorkflowCreate(BaseModel):
    name: str = ""
    description: str | None = None
    stages: List[WorkflowStageIn] = []
    is_default: bool = False


class WorkflowUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    stages: List[WorkflowStageIn] | None = None
    is_default: bool | None = None
    is_archived: bool | None = None
