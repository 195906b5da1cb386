"""Address range and range scheme schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from subnetly.schemas.common import check_ipv4, reject_null


class IPRangeCreate(BaseModel):
    """Schema for creating a range."""

    subnet_id: int
    start_addr: str = Field(examples=["192.168.1.100"])
    end_addr: str = Field(examples=["192.168.1.199"])
    role: str = Field(default="dhcp", max_length=64)
    description: Optional[str] = Field(default=None, max_length=500)
    status: str = Field(default="active", max_length=20)

    @field_validator("start_addr", "end_addr")
    @classmethod
    def validate_bounds(cls, v: str) -> str:
        checked = check_ipv4(v)
        if checked is None:
            raise ValueError("range bounds are required")
        return checked


class IPRangeUpdate(BaseModel):
    """Schema for updating a range."""

    start_addr: Optional[str] = None
    end_addr: Optional[str] = None
    role: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = Field(default=None, max_length=500)
    status: Optional[str] = Field(default=None, max_length=20)

    @field_validator("start_addr", "end_addr")
    @classmethod
    def validate_bounds(cls, v: Optional[str]) -> Optional[str]:
        return check_ipv4(reject_null(v))

    @field_validator("role", "status")
    @classmethod
    def validate_not_null(cls, v):
        return reject_null(v)


class IPRangeResponse(BaseModel):
    """Schema for range response."""

    id: int
    subnet_id: int
    start_addr: str
    end_addr: str
    role: str
    description: Optional[str]
    status: str
    scheme_entry_id: Optional[int]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class SchemeEntrySchema(BaseModel):
    """Relative range of a scheme, as last-octet bounds."""

    start_octet: int = Field(ge=0, le=255, examples=[100])
    end_octet: int = Field(ge=0, le=255, examples=[199])
    role: str = Field(default="general", max_length=64)
    description: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def check_order(self) -> "SchemeEntrySchema":
        if self.start_octet > self.end_octet:
            raise ValueError("start_octet must not be greater than end_octet")
        return self


class RangeSchemeCreate(BaseModel):
    """Schema for creating a scheme from explicit entries."""

    name: str = Field(min_length=1, max_length=128)
    description: Optional[str] = Field(default=None, max_length=500)
    entries: List[SchemeEntrySchema] = Field(min_length=1)


class RangeSchemeUpdate(BaseModel):
    """Schema for updating a scheme; entries replace the existing ones."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    description: Optional[str] = Field(default=None, max_length=500)
    entries: Optional[List[SchemeEntrySchema]] = Field(default=None, min_length=1)


class RangeSchemeSnapshot(BaseModel):
    """Save a subnet's current ranges as a scheme."""

    subnet_id: int
    name: str = Field(min_length=1, max_length=128)
    description: Optional[str] = Field(default=None, max_length=500)


class RangeSchemeApply(BaseModel):
    """Apply a scheme to a subnet."""

    subnet_id: int
    scheme_id: int
    replace_existing: bool = False


class SchemeEntryResponse(BaseModel):
    id: int
    start_octet: int
    end_octet: int
    role: str
    description: Optional[str]
    sort_order: int

    model_config = {"from_attributes": True}


class RangeSchemeResponse(BaseModel):
    """Scheme with its ordered entries."""

    id: int
    site_id: int
    name: str
    slug: str
    description: Optional[str]
    sort_order: int
    entries: List[SchemeEntryResponse]
