"""Device schemas for request/response validation."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from subnetly.schemas.common import check_ipv4, reject_null


class DeviceCreate(BaseModel):
    """Schema for creating a device."""

    name: str = Field(min_length=1, max_length=128, examples=["nas-01"])
    ip_address: Optional[str] = Field(default=None, examples=["192.168.1.20"])
    mac_address: Optional[str] = Field(default=None, max_length=17)
    category: Optional[str] = Field(default=None, max_length=64)
    status: str = Field(default="active", max_length=20)
    notes: Optional[str] = None

    @field_validator("ip_address")
    @classmethod
    def validate_ip_address(cls, v: Optional[str]) -> Optional[str]:
        return check_ipv4(v)


class DeviceUpdate(BaseModel):
    """Schema for updating a device. An empty ip_address unbinds it."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    ip_address: Optional[str] = None
    mac_address: Optional[str] = Field(default=None, max_length=17)
    category: Optional[str] = Field(default=None, max_length=64)
    status: Optional[str] = Field(default=None, max_length=20)
    notes: Optional[str] = None

    @field_validator("ip_address")
    @classmethod
    def validate_ip_address(cls, v: Optional[str]) -> Optional[str]:
        return check_ipv4(v)

    @field_validator("name", "status")
    @classmethod
    def validate_not_null(cls, v):
        return reject_null(v)


class DeviceResponse(BaseModel):
    """Schema for device response."""

    id: int
    site_id: int
    name: str
    ip_address: str
    mac_address: Optional[str]
    category: Optional[str]
    status: str
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
