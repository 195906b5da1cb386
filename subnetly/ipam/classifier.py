"""Per-address classification of a subnet.

:class:`AddressPlan` takes one subnet together with its managed records,
ranges and the site's devices, builds its lookup maps once, and then
answers page and utilization queries without touching storage.

Status precedence, first match wins:

1. ``network``   - first address of the block (masks below /31)
2. ``broadcast`` - last address of the block (masks below /31)
3. ``gateway``   - the subnet's configured gateway
4. ``assigned``  - a managed record or a device holds the address
5. range role    - the role string of the first range covering the address
6. ``available``
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from subnetly.core.exceptions import ValidationError
from subnetly.ipam.arithmetic import (
    block_start_int,
    broadcast_int,
    int_to_ip,
    ip_to_int,
    is_valid_ipv4,
    network_int,
    subnet_block,
    usable_hosts,
)

GRID_PAGE_SIZE = 256


class CellStatus(str, Enum):
    """Fixed cell statuses. Range-covered cells use the range's role instead."""

    NETWORK = "network"
    BROADCAST = "broadcast"
    GATEWAY = "gateway"
    ASSIGNED = "assigned"
    AVAILABLE = "available"


@dataclass(frozen=True)
class AddressCell:
    """One classified address of a planner page."""

    address: str
    offset: int
    status: str
    ip_address: Optional[Any] = None
    ip_range: Optional[Any] = None
    device: Optional[Any] = None


@dataclass(frozen=True)
class Utilization:
    """Used (assigned + gateway) versus usable addresses."""

    used: int
    total: int
    percent: int


def _address_map(items: Iterable[Any], attr: str) -> Dict[int, Any]:
    # First holder of an address wins; malformed addresses are ignored
    mapping: Dict[int, Any] = {}
    for item in items:
        value = getattr(item, attr, None)
        if value and is_valid_ipv4(value):
            mapping.setdefault(ip_to_int(value), item)
    return mapping


def _range_sort_key(ip_range: Any) -> tuple:
    start = ip_range.start_addr
    return (ip_to_int(start) if is_valid_ipv4(start) else 0, ip_range.id or 0)


class AddressPlan:
    """Classified view of every address in a subnet's planner window."""

    def __init__(
        self,
        subnet: Any,
        ip_addresses: Iterable[Any] = (),
        ranges: Iterable[Any] = (),
        devices: Iterable[Any] = (),
    ):
        self.subnet = subnet
        self.block = subnet_block(subnet.prefix, subnet.mask)
        self.start = block_start_int(self.block)
        self.end = self.start + self.block.block_size - 1

        if subnet.mask < 31:
            self._network: Optional[int] = network_int(subnet.prefix, subnet.mask)
            self._broadcast: Optional[int] = broadcast_int(subnet.prefix, subnet.mask)
        else:
            self._network = None
            self._broadcast = None

        gateway = getattr(subnet, "gateway", None)
        self._gateway = ip_to_int(gateway) if gateway and is_valid_ipv4(gateway) else None

        self._records = _address_map(ip_addresses, "address")
        self._devices = _address_map(devices, "ip_address")
        self._ranges = self._build_range_map(ranges)

    def _build_range_map(self, ranges: Iterable[Any]) -> Dict[int, Any]:
        mapping: Dict[int, Any] = {}
        valid = [
            r for r in ranges if is_valid_ipv4(r.start_addr) and is_valid_ipv4(r.end_addr)
        ]
        for ip_range in sorted(valid, key=_range_sort_key):
            # Clip to the window so a stray range cannot blow up the map
            first = max(ip_to_int(ip_range.start_addr), self.start)
            last = min(ip_to_int(ip_range.end_addr), self.end)
            for value in range(first, last + 1):
                mapping.setdefault(value, ip_range)
        return mapping

    def _status(self, value: int) -> str:
        if value == self._network:
            return CellStatus.NETWORK.value
        if value == self._broadcast:
            return CellStatus.BROADCAST.value
        if value == self._gateway:
            return CellStatus.GATEWAY.value
        if value in self._records or value in self._devices:
            return CellStatus.ASSIGNED.value
        ip_range = self._ranges.get(value)
        if ip_range is not None:
            return ip_range.role
        return CellStatus.AVAILABLE.value

    def classify(self, address: str) -> AddressCell:
        """Classify a single address of the window."""
        value = ip_to_int(address)
        if not self.start <= value <= self.end:
            raise ValidationError(f"{address} is outside {self.subnet.prefix}/{self.subnet.mask}")
        return self._cell(value)

    def _cell(self, value: int) -> AddressCell:
        return AddressCell(
            address=int_to_ip(value),
            offset=value - self.start,
            status=self._status(value),
            ip_address=self._records.get(value),
            ip_range=self._ranges.get(value),
            device=self._devices.get(value),
        )

    def total_pages(self, page_size: int = GRID_PAGE_SIZE) -> int:
        if page_size < 1:
            raise ValidationError("page_size must be at least 1")
        return max(1, math.ceil(self.block.block_size / page_size))

    def cells(self, page: int = 0, page_size: int = GRID_PAGE_SIZE) -> List[AddressCell]:
        """
        Classify one page of the window.

        Args:
            page: Zero-based page index
            page_size: Addresses per page

        Returns:
            Cells of the page in address order; empty past the last page
        """
        if page < 0:
            raise ValidationError("page must not be negative")
        if page_size < 1:
            raise ValidationError("page_size must be at least 1")

        first = self.start + page * page_size
        last = min(first + page_size, self.end + 1)
        return [self._cell(value) for value in range(first, last)]

    def utilization(self) -> Utilization:
        """Count assigned and gateway cells across the whole window."""
        used = 0
        for value in range(self.start, self.end + 1):
            if value == self._network or value == self._broadcast:
                continue
            if value == self._gateway or value in self._records or value in self._devices:
                used += 1

        total = usable_hosts(self.subnet.mask)
        percent = math.floor(used * 100 / total + 0.5) if total > 0 else 0
        return Utilization(used=used, total=total, percent=percent)

    def device_only_bindings(self) -> List[Any]:
        """Devices holding an address in the window without a managed record."""
        return [
            device
            for value, device in sorted(self._devices.items())
            if self.start <= value <= self.end and value not in self._records
        ]
