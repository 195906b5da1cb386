"""Subnet model for IPv4 address blocks."""

from typing import Optional
from sqlmodel import Field, Index

from subnetly.models.base import TimestampModel


class Subnet(TimestampModel, table=True):
    """An IPv4 CIDR block belonging to a site."""

    __tablename__ = "subnets"

    # Primary key
    id: Optional[int] = Field(default=None, primary_key=True)

    # Ownership
    site_id: int = Field(
        index=True,
        nullable=False,
        description="Site this subnet belongs to",
    )

    # Network configuration
    prefix: str = Field(
        max_length=15,
        nullable=False,
        description="Network address (e.g., '192.168.1.0')",
    )
    mask: int = Field(
        ge=1,
        le=32,
        nullable=False,
        description="Prefix length (1-32)",
    )
    gateway: Optional[str] = Field(
        default=None,
        max_length=15,
        description="Gateway address inside the block",
    )

    # Metadata
    role: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Free-text role (e.g., 'production', 'iot')",
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Subnet description",
    )
    vlan_id: Optional[int] = Field(
        default=None,
        description="Associated VLAN identifier",
    )
    status: str = Field(
        default="active",
        max_length=20,
        description="Subnet status",
    )

    __table_args__ = (Index("ix_subnet_site_prefix", "site_id", "prefix"),)

    @property
    def cidr(self) -> str:
        return f"{self.prefix}/{self.mask}"
