import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_COLOR_PATTERN = r"^#[0-9A-F]{6}$"


class ProjectBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    client_id: uuid.UUID | None = None
    client_name: str | None = Field(default=None, max_length=200)
    description: str | None = None
    color: str = Field(default="#3B82F6", pattern=PROJECT_COLOR_PATTERN)
    workflow_id: uuid.UUID | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Project name is required")
        return value


class ProjectCreate(ProjectBase):
    status: str = Field(default="active", pattern=r"^(active|completed|archived)$")


class ProjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    client_id: uuid.UUID | None = None
    client_name: str | None = Field(default=None, max_length=200)
    description: str | None = None
    status: str | None = Field(default=None, pattern=r"^(active|completed|archived)$")
    color: str | None = Field(default=None, pattern=PROJECT_COLOR_PATTERN)
    workflow_id: uuid.UUID | None = None


class Project(ProjectBase):
    id: uuid.UUID
    organization_id: uuid.UUID
    status: str
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class StageReviewerCreate(BaseModel):
    stage_order: int = Field(ge=1)
    user_id: uuid.UUID
    user_name: str = Field(min_length=1, max_length=200)
    user_email: str | None = None
    user_image_url: str | None = None


class StageReviewer(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    stage_order: int
    user_id: uuid.UUID
    user_name: str
    user_email: str | None = None
    user_image_url: str | None = None
    added_by: uuid.UUID | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
