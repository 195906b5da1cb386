"""IP address model for managed address records."""

from typing import Optional
from sqlmodel import Field
from sqlalchemy import UniqueConstraint

from subnetly.models.base import TimestampModel


class IPAddress(TimestampModel, table=True):
    """Explicitly managed address record inside a subnet."""

    __tablename__ = "ip_addresses"

    # Primary key
    id: Optional[int] = Field(default=None, primary_key=True)

    # Foreign keys
    subnet_id: int = Field(
        foreign_key="subnets.id",
        index=True,
        nullable=False,
        description="Subnet this address belongs to",
    )

    # Address details
    address: str = Field(
        max_length=15,
        index=True,
        nullable=False,
        description="IPv4 address",
    )
    mask: int = Field(
        default=24,
        ge=1,
        le=32,
        description="Subnet mask at the time the record was written",
    )

    # Status
    status: str = Field(
        default="active",
        max_length=20,
        description="Record status (active, reserved, deprecated, ...)",
    )

    # Metadata
    dns_name: Optional[str] = Field(
        default=None,
        max_length=255,
        description="DNS name for this address",
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Address description",
    )
    assigned_to: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Display name of the holder",
    )

    # Table constraints
    __table_args__ = (
        # One record per literal address per subnet
        UniqueConstraint("subnet_id", "address", name="uq_subnet_address"),
    )
