import uuid
from datetime import datetime
from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict, Field


class TemplateType(BaseModel):
    id: str
    name: str
    width: int
    height: int
    aspect_ratio: float
    category: str
    description: str | None = None
    guide_presets: Dict[str, Any] | None = None
    model_config = ConfigDict(from_attributes=True)


class UploadAnalysisRequest(BaseModel):
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class TemplateBase(BaseModel):
    template_name: str = Field(min_length=1, max_length=200)
    template_url: str = Field(min_length=1)
    file_type: str | None = None
    file_size: int | None = None
    width: int | None = None
    height: int | None = None
    original_width: int | None = None
    original_height: int | None = None
    scale_factor: float | None = None
    upload_quality: str | None = None
    template_type_id: str = "prepaid-cr80"
    tags: List[str] | None = None
    description: str | None = None


class TemplateCreate(TemplateBase):
    pass


class TemplateUpdate(BaseModel):
    template_name: str | None = Field(default=None, min_length=1, max_length=200)
    template_url: str | None = None
    template_type_id: str | None = None
    tags: List[str] | None = None
    description: str | None = None
    is_archived: bool | None = None


class Template(TemplateBase):
    id: uuid.UUID
    organization_id: uuid.UUID
    is_archived: bool
    archived_at: datetime | None = None
    archived_by: uuid.UUID | None = None
    created_by: uuid.UUID | None = None
    uploaded_date: datetime | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)
