"""Managed address record schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from subnetly.schemas.common import check_ipv4
from subnetly.schemas.device import DeviceResponse


class IPAddressAssign(BaseModel):
    """Create-or-update a record and optionally bind it to a device."""

    subnet_id: int
    address: str = Field(examples=["192.168.1.20"])
    device_id: Optional[int] = Field(
        default=None, description="Device to bind the address to"
    )
    status: str = Field(default="active", max_length=20)
    dns_name: Optional[str] = Field(
        default=None, max_length=255, description="Defaults to the device name"
    )
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        checked = check_ipv4(v)
        if checked is None:
            raise ValueError("address is required")
        return checked


class IPAddressUpdate(BaseModel):
    """Edit a record; omitted fields keep their value.

    Omitting device_id keeps the current holder, an explicit null binds
    the record to no device.
    """

    subnet_id: Optional[int] = None
    address: Optional[str] = None
    device_id: Optional[int] = None
    status: Optional[str] = Field(default=None, max_length=20)
    dns_name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: Optional[str]) -> Optional[str]:
        return check_ipv4(v)


class IPAddressResponse(BaseModel):
    """Schema for a managed record."""

    id: int
    subnet_id: int
    address: str
    mask: int
    status: str
    dns_name: Optional[str]
    description: Optional[str]
    assigned_to: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BindingResponse(BaseModel):
    """Outcome of an assignment."""

    record: IPAddressResponse
    device: Optional[DeviceResponse] = None
    vacated_device_id: Optional[int] = None
    removed_record_ids: List[int] = Field(default_factory=list)
    completed_steps: List[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}
