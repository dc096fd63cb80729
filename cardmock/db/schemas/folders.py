import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator


def _check_folder_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Folder name is required")
    if "/" in value:
        raise ValueError("Folder name cannot contain '/'")
    return value


class FolderCreate(BaseModel):
    name: str = Field(max_length=100)
    parent_folder_id: uuid.UUID | None = None
    is_org_shared: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_folder_name(value)


class FolderUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    parent_folder_id: uuid.UUID | None = None
    is_org_shared: bool | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value):
        return _check_folder_name(value) if value is not None else value


class Folder(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    parent_folder_id: uuid.UUID | None = None
    is_org_shared: bool
    created_by: uuid.UUID
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)
