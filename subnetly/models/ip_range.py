"""IP range model for role-tagged sub-blocks of a subnet."""

from typing import Optional
from sqlmodel import Field

from subnetly.models.base import TimestampModel


class IPRange(TimestampModel, table=True):
    """Contiguous address range inside a subnet (DHCP pool, reserved, ...)."""

    __tablename__ = "ip_ranges"

    # Primary key
    id: Optional[int] = Field(default=None, primary_key=True)

    # Foreign keys
    subnet_id: int = Field(
        foreign_key="subnets.id",
        index=True,
        nullable=False,
        description="Subnet this range belongs to",
    )
    scheme_entry_id: Optional[int] = Field(
        default=None,
        index=True,
        description="Scheme entry this range was materialised from",
    )

    # Range bounds
    start_addr: str = Field(
        max_length=15,
        nullable=False,
        description="First address of the range",
    )
    end_addr: str = Field(
        max_length=15,
        nullable=False,
        description="Last address of the range",
    )

    # Metadata
    role: str = Field(
        default="dhcp",
        max_length=64,
        description="Allocation role (dhcp, reserved, infrastructure, ...)",
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Range description",
    )
    status: str = Field(
        default="active",
        max_length=20,
        description="Range status",
    )
