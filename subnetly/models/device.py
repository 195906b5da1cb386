"""Device model for inventory entries that can hold an address."""

from typing import Optional
from sqlmodel import Field

from subnetly.models.base import TimestampModel


class Device(TimestampModel, table=True):
    """Inventory device.

    ``ip_address`` is a plain value, not a foreign key: the link to a
    managed :class:`~subnetly.models.ip_address.IPAddress` record is
    resolved by matching address strings at read time. An unbound device
    carries an empty string.
    """

    __tablename__ = "devices"

    # Primary key
    id: Optional[int] = Field(default=None, primary_key=True)

    # Ownership
    site_id: int = Field(
        index=True,
        nullable=False,
        description="Site this device belongs to",
    )

    # Identification
    name: str = Field(
        nullable=False,
        max_length=128,
        description="Human-readable device name",
    )
    mac_address: Optional[str] = Field(
        default=None,
        max_length=17,
        description="MAC address",
    )

    # Network
    ip_address: str = Field(
        default="",
        index=True,
        max_length=15,
        description="Bound IPv4 address (empty when unbound)",
    )

    # Metadata
    category: Optional[str] = Field(
        default=None,
        max_length=64,
        description="Device category (e.g., 'Server', 'IoT')",
    )
    status: str = Field(
        default="active",
        max_length=20,
        description="Device status",
    )
    notes: Optional[str] = Field(
        default=None,
        description="Free-form notes",
    )
