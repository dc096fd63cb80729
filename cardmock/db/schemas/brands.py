import uuid
from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field, field_validator


class LogoVariantBase(BaseModel):
    logo_url: str
    logo_type: str | None = None
    logo_format: str | None = None
    theme: str | None = None
    width: int | None = None
    height: int | None = None
    file_size: int | None = None
    background_color: str | None = None
    accent_color: str | None = None


class LogoVariantCreate(LogoVariantBase):
    pass


class LogoVariant(LogoVariantBase):
    id: uuid.UUID
    brand_id: uuid.UUID
    is_uploaded: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class BrandColorBase(BaseModel):
    hex: str
    type: str | None = None
    brightness: int | None = None


class BrandColorCreate(BrandColorBase):
    pass


class BrandColor(BrandColorBase):
    id: uuid.UUID
    model_config = ConfigDict(from_attributes=True)


class BrandFontBase(BaseModel):
    font_name: str
    font_type: str | None = None
    origin: str | None = None


class BrandFontCreate(BrandFontBase):
    pass


class BrandFont(BrandFontBase):
    id: uuid.UUID
    model_config = ConfigDict(from_attributes=True)


class BrandBase(BaseModel):
    company_name: str = Field(min_length=1, max_length=200)
    domain: str = Field(min_length=1, max_length=255)
    description: str | None = None
    client_id: uuid.UUID | None = None

    @field_validator("company_name", "domain")
    @classmethod
    def strip_fields(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class BrandCreate(BrandBase):
    logo_variants: List[LogoVariantCreate] = []
    brand_colors: List[BrandColorCreate] = []
    brand_fonts: List[BrandFontCreate] = []


class BrandUpdate(BaseModel):
    company_name: str | None = Field(default=None, min_length=1, max_length=200)
    domain: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    client_id: uuid.UUID | None = None
    primary_logo_variant_id: uuid.UUID | None = None


class Brand(BrandBase):
    id: uuid.UUID
    organization_id: uuid.UUID
    primary_logo_variant_id: uuid.UUID | None = None
    created_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime
    logo_variants: List[LogoVariant] = []
    brand_colors: List[BrandColor] = []
    brand_fonts: List[BrandFont] = []
    model_config = ConfigDict(from_attributes=True)
