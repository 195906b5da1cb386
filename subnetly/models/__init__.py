"""Database models package."""

from subnetly.models.base import TimestampModel
from subnetly.models.subnet import Subnet
from subnetly.models.ip_address import IPAddress
from subnetly.models.device import Device
from subnetly.models.ip_range import IPRange
from subnetly.models.range_scheme import RangeScheme, RangeSchemeEntry
from subnetly.models.subnet_template import SubnetTemplate

__all__ = [
    "TimestampModel",
    "Subnet",
    "IPAddress",
    "Device",
    "IPRange",
    "RangeScheme",
    "RangeSchemeEntry",
    "SubnetTemplate",
]
