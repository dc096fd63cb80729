import uuid
from datetime import datetime
from typing import Any, Dict
from pydantic import BaseModel, ConfigDict, Field, field_validator


class CommentCreate(BaseModel):
    comment_text: str
    annotation_data: Dict[str, Any] | None = None
    position_x: float | None = None
    position_y: float | None = None
    annotation_type: str = "none"
    annotation_color: str = "#FF6B6B"

    @field_validator("comment_text")
    @classmethod
    def require_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Comment text is required")
        return value


class CommentUpdate(BaseModel):
    comment_text: str | None = Field(default=None, min_length=1)
    annotation_data: Dict[str, Any] | None = None
    position_x: float | None = None
    position_y: float | None = None
    annotation_type: str | None = None
    annotation_color: str | None = None


class CommentResolve(BaseModel):
    resolution_note: str | None = None


class Comment(BaseModel):
    id: uuid.UUID
    asset_id: uuid.UUID
    organization_id: uuid.UUID
    user_id: uuid.UUID | None = None
    user_name: str | None = None
    user_email: str | None = None
    user_image_url: str | None = None
    public_reviewer_id: uuid.UUID | None = None
    comment_text: str
    annotation_data: Dict[str, Any] | None = None
    position_x: float | None = None
    position_y: float | None = None
    annotation_type: str
    annotation_color: str
    is_resolved: bool
    resolved_by: uuid.UUID | None = None
    resolved_by_name: str | None = None
    resolved_at: datetime | None = None
    resolution_note: str | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)
