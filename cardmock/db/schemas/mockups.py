import uuid
from datetime import datetime
from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field


class MockupBase(BaseModel):
    mockup_name: str = Field(min_length=1, max_length=200)
    logo_id: uuid.UUID | None = None
    template_id: uuid.UUID | None = None
    folder_id: uuid.UUID | None = None
    project_id: uuid.UUID | None = None
    logo_x: float | None = None
    logo_y: float | None = None
    logo_scale: float | None = None
    mockup_image_url: str | None = None


class MockupCreate(MockupBase):
    pass


class MockupUpdate(BaseModel):
    mockup_name: str | None = Field(default=None, min_length=1, max_length=200)
    logo_id: uuid.UUID | None = None
    template_id: uuid.UUID | None = None
    folder_id: uuid.UUID | None = None
    project_id: uuid.UUID | None = None
    logo_x: float | None = None
    logo_y: float | None = None
    logo_scale: float | None = None
    mockup_image_url: str | None = None


class Mockup(MockupBase):
    id: uuid.UUID
    organization_id: uuid.UUID
    status: str
    figma_metadata: Dict[str, Any] | None = None
    final_approved_by: uuid.UUID | None = None
    final_approved_at: datetime | None = None
    final_approval_notes: str | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class StageProgress(BaseModel):
    id: uuid.UUID
    asset_id: uuid.UUID
    project_id: uuid.UUID
    stage_order: int
    status: str
    reviewed_by: uuid.UUID | None = None
    reviewed_by_name: str | None = None
    reviewed_at: datetime | None = None
    notes: str | None = None
    notification_sent: bool
    notification_sent_at: datetime | None = None
    approvals_required: int
    approvals_received: int
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class StageUserApproval(BaseModel):
    id: uuid.UUID
    asset_id: uuid.UUID
    stage_order: int
    user_id: uuid.UUID
    user_name: str | None = None
    user_email: str | None = None
    user_image_url: str | None = None
    action: str
    notes: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MockupDuplicate(BaseModel):
    mockupId: str = ""
    newName: str = ""


class ReviewNotes(BaseModel):
    notes: str | None = None


class StageAction(ReviewNotes):
    action: str = ""
