import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClientBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None
    ein: str | None = None
    parent_client_id: uuid.UUID | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Client name is required")
        return value


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    notes: str | None = None
    ein: str | None = None
    parent_client_id: uuid.UUID | None = None


class Client(ClientBase):
    id: uuid.UUID
    organization_id: uuid.UUID
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ClientUserAssign(BaseModel):
    user_id: uuid.UUID


class UserClientUpdate(BaseModel):
    client_id: uuid.UUID | None = None


class ClientUser(BaseModel):
    id: uuid.UUID
    client_id: uuid.UUID
    user_id: uuid.UUID
    organization_id: uuid.UUID
    assigned_by: uuid.UUID | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
