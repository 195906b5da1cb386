"""User-defined subnet templates."""

from typing import Optional
from sqlmodel import Field
from sqlalchemy import UniqueConstraint

from subnetly.models.base import TimestampModel


class SubnetTemplate(TimestampModel, table=True):
    """Saved starting point for creating subnets."""

    __tablename__ = "subnet_templates"

    id: Optional[int] = Field(default=None, primary_key=True)
    site_id: int = Field(
        index=True,
        nullable=False,
        description="Site this template belongs to",
    )

    name: str = Field(nullable=False, max_length=128, description="Template name")
    slug: str = Field(
        nullable=False,
        max_length=128,
        description="Normalised name used for uniqueness",
    )

    prefix: str = Field(max_length=15, nullable=False, description="Network address")
    mask: int = Field(default=24, ge=1, le=32, description="Prefix length")
    gateway: Optional[str] = Field(default=None, max_length=15)
    role: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = Field(default=None, max_length=500)
    sort_order: int = Field(default=0, description="Display order")

    __table_args__ = (
        UniqueConstraint("site_id", "slug", name="uq_subnet_template_site_slug"),
    )
