"""Subnet schemas for request/response validation."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from subnetly.schemas.common import check_ipv4, reject_null
from subnetly.schemas.template import SubnetTemplateResponse


class SubnetCreate(BaseModel):
    """Schema for creating a subnet."""

    prefix: str = Field(
        description="Network address of the block",
        examples=["192.168.1.0", "10.0.0.0"],
    )
    mask: int = Field(ge=1, le=32, description="Prefix length (1-32)", examples=[24])
    gateway: Optional[str] = Field(
        default=None,
        description="Gateway address; suggested automatically when empty",
        examples=["192.168.1.1"],
    )
    role: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = Field(default=None, max_length=500)
    vlan_id: Optional[int] = Field(default=None, ge=1, le=4094)
    status: str = Field(default="active", max_length=20)
    save_as_template: bool = Field(
        default=False, description="Also store this subnet as a template"
    )
    template_name: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Template name (defaults to the CIDR)",
    )

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Validate the prefix is a dotted-quad."""
        checked = check_ipv4(v)
        if checked is None:
            raise ValueError("prefix is required")
        return checked

    @field_validator("gateway")
    @classmethod
    def validate_gateway(cls, v: Optional[str]) -> Optional[str]:
        return check_ipv4(v)


class SubnetUpdate(BaseModel):
    """Schema for updating a subnet."""

    prefix: Optional[str] = None
    mask: Optional[int] = Field(default=None, ge=1, le=32)
    gateway: Optional[str] = None
    role: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = Field(default=None, max_length=500)
    vlan_id: Optional[int] = Field(default=None, ge=1, le=4094)
    status: Optional[str] = Field(default=None, max_length=20)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: Optional[str]) -> Optional[str]:
        return check_ipv4(reject_null(v))

    @field_validator("gateway")
    @classmethod
    def validate_gateway(cls, v: Optional[str]) -> Optional[str]:
        return check_ipv4(v)

    @field_validator("mask", "status")
    @classmethod
    def validate_not_null(cls, v):
        return reject_null(v)


class SubnetResponse(BaseModel):
    """Schema for subnet response."""

    id: int
    site_id: int
    prefix: str
    mask: int
    cidr: str
    gateway: Optional[str]
    role: Optional[str]
    description: Optional[str]
    vlan_id: Optional[int]
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SubnetCreateResponse(BaseModel):
    """Created subnet plus the outcome of the optional template save."""

    subnet: SubnetResponse
    template: Optional[SubnetTemplateResponse] = None
    warnings: List[str] = Field(default_factory=list)


class SubnetOverlapResponse(BaseModel):
    """A pair of intersecting subnets."""

    subnet_a: SubnetResponse
    subnet_b: SubnetResponse

    model_config = {"from_attributes": True}
