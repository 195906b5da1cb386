"""Range scheme models: named, subnet-agnostic range layouts."""

from typing import Optional
from sqlmodel import Field
from sqlalchemy import UniqueConstraint

from subnetly.models.base import TimestampModel


class RangeScheme(TimestampModel, table=True):
    """Named layout of relative ranges, applicable to any subnet."""

    __tablename__ = "range_schemes"

    # Primary key
    id: Optional[int] = Field(default=None, primary_key=True)

    # Ownership
    site_id: int = Field(
        index=True,
        nullable=False,
        description="Site this scheme belongs to",
    )

    # Identification
    name: str = Field(
        nullable=False,
        max_length=128,
        description="Scheme name",
    )
    slug: str = Field(
        nullable=False,
        max_length=128,
        description="Normalised name used for uniqueness",
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Scheme description",
    )
    sort_order: int = Field(default=0, description="Display order")

    __table_args__ = (
        UniqueConstraint("site_id", "slug", name="uq_range_scheme_site_slug"),
    )


class RangeSchemeEntry(TimestampModel, table=True):
    """One relative range of a scheme.

    Octets are last-octet bounds, placed after the first three octets of
    whichever subnet the scheme is applied to.
    """

    __tablename__ = "range_scheme_entries"

    id: Optional[int] = Field(default=None, primary_key=True)
    scheme_id: int = Field(
        foreign_key="range_schemes.id",
        index=True,
        nullable=False,
        description="Owning scheme",
    )
    start_octet: int = Field(ge=0, description="Last octet of the range start")
    end_octet: int = Field(ge=0, description="Last octet of the range end")
    role: str = Field(default="general", max_length=64, description="Range role")
    description: Optional[str] = Field(default=None, max_length=500)
    sort_order: int = Field(default=0, description="Position within the scheme")
