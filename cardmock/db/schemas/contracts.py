import uuid
from datetime import date, datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field

CONTRACT_STATUS_PATTERN = r"^(draft|pending_signature|signed|expired|cancelled)$"


class ContractCreate(BaseModel):
    client_id: uuid.UUID | None = None
    project_id: uuid.UUID | None = None
    contract_number: str | None = Field(default=None, max_length=50)
    status: str = Field(default="draft", pattern=CONTRACT_STATUS_PATTERN)
    type: str = Field(default="new", pattern=r"^(new|amendment|renewal)$")
    parent_contract_id: uuid.UUID | None = None
    title: str | None = Field(default=None, max_length=300)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class ContractUpdate(BaseModel):
    project_id: uuid.UUID | None = None
    status: str | None = Field(default=None, pattern=CONTRACT_STATUS_PATTERN)
    title: str | None = Field(default=None, max_length=300)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class Contract(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    client_id: uuid.UUID
    project_id: uuid.UUID | None = None
    contract_number: str
    status: str
    type: str
    parent_contract_id: uuid.UUID | None = None
    title: str | None = None
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    signed_at: datetime | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ContractDocumentCreate(BaseModel):
    file_url: str = Field(min_length=1)
    file_name: str = Field(min_length=1, max_length=300)
    file_type: str | None = None
    file_size: int | None = None


class ContractDocument(BaseModel):
    id: uuid.UUID
    contract_id: uuid.UUID
    version_number: int
    file_url: str
    file_name: str
    file_type: str | None = None
    file_size: int | None = None
    docu_sign_envelope_id: str | None = None
    docu_sign_status: str | None = None
    is_current: bool
    uploaded_by: uuid.UUID | None = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class Signer(BaseModel):
    email: str = Field(min_length=3)
    name: str = Field(min_length=1)


class SendForSignature(BaseModel):
    signers: List[Signer] = Field(min_length=1)
    email_subject: str | None = None
