"""Subnet template schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from subnetly.schemas.common import check_ipv4, reject_null


class SubnetTemplateCreate(BaseModel):
    """Schema for creating a subnet template."""

    name: str = Field(min_length=1, max_length=128, examples=["Lab Network"])
    prefix: str = Field(examples=["10.20.0.0"])
    mask: int = Field(default=24, ge=1, le=32)
    gateway: Optional[str] = None
    role: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        checked = check_ipv4(v)
        if checked is None:
            raise ValueError("prefix is required")
        return checked

    @field_validator("gateway")
    @classmethod
    def validate_gateway(cls, v: Optional[str]) -> Optional[str]:
        return check_ipv4(v)


class SubnetTemplateUpdate(BaseModel):
    """Schema for updating a subnet template."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    prefix: Optional[str] = None
    mask: Optional[int] = Field(default=None, ge=1, le=32)
    gateway: Optional[str] = None
    role: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: Optional[str]) -> Optional[str]:
        return check_ipv4(reject_null(v))

    @field_validator("gateway")
    @classmethod
    def validate_gateway(cls, v: Optional[str]) -> Optional[str]:
        return check_ipv4(v)

    @field_validator("name", "mask")
    @classmethod
    def validate_not_null(cls, v):
        return reject_null(v)


class SubnetTemplateResponse(BaseModel):
    """Stored subnet template."""

    id: int
    site_id: int
    name: str
    slug: str
    prefix: str
    mask: int
    gateway: Optional[str]
    role: Optional[str]
    description: Optional[str]
    sort_order: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TemplateOptionResponse(BaseModel):
    """Built-in or stored template as offered by the template picker."""

    id: str
    name: str
    prefix: str
    mask: int
    gateway: Optional[str]
    role: Optional[str]
    description: Optional[str]
    builtin: bool

    model_config = {"from_attributes": True}


class TemplatePrefillResponse(BaseModel):
    """Values to prefill a new subnet with."""

    prefix: str
    mask: int
    gateway: Optional[str]
    role: Optional[str]
    description: Optional[str]

    model_config = {"from_attributes": True}


class SaveAsTemplateRequest(BaseModel):
    """Optional name when saving an existing subnet as a template."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
