import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from cardmock.utils.role_permissions import RoleEnum


class OrganizationBase(BaseModel):
    name: str
    slug: str | None = None


class OrganizationCreate(OrganizationBase):
    pass


class OrganizationUpdate(BaseModel):
    name: str | None = None
    slug: str | None = None
    is_active: bool | None = None


class Organization(OrganizationBase):
    id: uuid.UUID
    is_active: bool
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class OrganizationMemberCreate(BaseModel):
    email: str
    role: RoleEnum = RoleEnum.member
    display_name: str | None = None


class OrganizationMemberUpdate(BaseModel):
    role: RoleEnum


class OrganizationMember(BaseModel):
    organization_id: uuid.UUID
    user_id: uuid.UUID
    role: str
    can_read: bool
    can_write: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
