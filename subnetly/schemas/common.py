"""Common schemas used across the application."""

from typing import List, Optional

from pydantic import BaseModel, Field

from subnetly.ipam.arithmetic import is_valid_ipv4


def check_ipv4(value: Optional[str]) -> Optional[str]:
    """Field validator body for optional dotted-quad fields; "" means unset."""
    if value is None or value == "":
        return None
    value = value.strip()
    if not is_valid_ipv4(value):
        raise ValueError(f"'{value}' is not a valid IPv4 address")
    return value


def reject_null(value):
    """Field validator body for update fields that may be omitted but not nulled."""
    if value is None:
        raise ValueError("field cannot be null")
    return value


class ResponseMessage(BaseModel):
    """Generic response message schema."""

    message: str = Field(..., description="Response message")


class ErrorResponse(BaseModel):
    """Error body rendered for domain errors."""

    detail: str = Field(..., description="Error message")
    step: Optional[str] = Field(
        default=None, description="Failed follow-up step of an assignment"
    )
    completed_steps: Optional[List[str]] = Field(
        default=None, description="Steps that completed before the failure"
    )


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(..., description="Service status", examples=["healthy"])
    version: str = Field(..., description="API version", examples=["1.0.0"])
    database: str = Field(..., description="Database status", examples=["connected"])
