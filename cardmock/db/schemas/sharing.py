import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class ShareLink(BaseModel):
    id: uuid.UUID
    asset_id: uuid.UUID
    organization_id: uuid.UUID
    token: str
    expires_at: datetime | None = None
    permissions: str
    max_uses: int | None = None
    use_count: int
    identity_required_level: str
    is_active: bool
    created_by: uuid.UUID | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PublicReviewerCreate(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    name: str = Field(min_length=1, max_length=200)
    company: str | None = Field(default=None, max_length=200)


class PublicReviewer(BaseModel):
    id: uuid.UUID
    link_id: uuid.UUID
    email: str
    name: str
    company: str | None = None
    verified_at: datetime | None = None
    session_token: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PublicComment(BaseModel):
    comment_text: str = Field(min_length=1)
    position_x: float | None = None
    position_y: float | None = None
    annotation_type: str = "none"
    annotation_color: str = "#FF6B6B"


class PublicApprovalCreate(BaseModel):
    status: str = Field(pattern=r"^(approved|changes_requested)$")
    notes: str | None = None


class PublicApproval(BaseModel):
    id: uuid.UUID
    link_id: uuid.UUID
    asset_id: uuid.UUID
    reviewer_id: uuid.UUID
    status: str
    notes: str | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
