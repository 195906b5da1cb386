"""IPv4 CIDR arithmetic.

Pure helpers for block sizes, address/integer conversion and gateway
suggestion. All integer values are unsigned 32-bit; Python integers never
overflow, so results are masked explicitly where shifts are involved.
"""

import ipaddress
import re
from typing import NamedTuple, Optional

from subnetly.core.exceptions import ValidationError

IPV4_PATTERN = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")

UINT32_MAX = 0xFFFFFFFF

# Blocks larger than this are paged through a fixed window of the first
# 65536 addresses instead of being materialised whole.
MAX_PLANNED_BLOCK = 65536


class SubnetBlock(NamedTuple):
    """Address window of a subnet as seen by the planner."""

    base: str
    start_octet: int
    block_size: int


def is_valid_ipv4(value: object) -> bool:
    """Check for a dotted-quad with every octet in 0-255."""
    if not isinstance(value, str) or not IPV4_PATTERN.fullmatch(value):
        return False
    return all(int(part) <= 255 for part in value.split("."))


def is_valid_mask(mask: object) -> bool:
    """Check for an integer prefix length in 1-32."""
    return isinstance(mask, int) and not isinstance(mask, bool) and 1 <= mask <= 32


def block_size(mask: int) -> int:
    """Number of addresses in a /mask block."""
    return 2 ** (32 - mask)


def usable_hosts(mask: int) -> int:
    """Number of host addresses in a /mask block.

    /31 point-to-point links use both addresses and a /32 is a single
    host route; every other block loses its network and broadcast address.
    """
    if mask >= 31:
        return 2 if mask == 31 else 1
    return block_size(mask) - 2


def ip_to_int(ip: str) -> int:
    """
    Convert a dotted-quad to its unsigned 32-bit value.

    Args:
        ip: IPv4 address string (e.g., "192.168.1.10")

    Returns:
        Integer in the range 0..2**32-1

    Raises:
        ValidationError: If the address is not a valid dotted-quad
    """
    if not is_valid_ipv4(ip):
        raise ValidationError(f"Invalid IPv4 address: {ip!r}")
    a, b, c, d = (int(part) for part in ip.split("."))
    return ((a << 24) | (b << 16) | (c << 8) | d) & UINT32_MAX


def int_to_ip(value: int) -> str:
    """
    Convert an unsigned 32-bit value back to a dotted-quad.

    Raises:
        ValidationError: If the value is outside the IPv4 space
    """
    if not 0 <= value <= UINT32_MAX:
        raise ValidationError(f"Value {value} is outside the IPv4 address space")
    return str(ipaddress.IPv4Address(value))


def canonical_ip(ip: str) -> str:
    """Normalise a dotted-quad, dropping leading zeros ("010.0.0.01" -> "10.0.0.1")."""
    return int_to_ip(ip_to_int(ip))


def netmask_int(mask: int) -> int:
    return (UINT32_MAX << (32 - mask)) & UINT32_MAX


def network_int(prefix: str, mask: int) -> int:
    """Integer value of the network address of prefix/mask."""
    return ip_to_int(prefix) & netmask_int(mask)


def broadcast_int(prefix: str, mask: int) -> int:
    """Integer value of the last address of prefix/mask."""
    return network_int(prefix, mask) + block_size(mask) - 1


def contains(prefix: str, mask: int, address: str) -> bool:
    """Whether address lies inside prefix/mask."""
    value = ip_to_int(address)
    return network_int(prefix, mask) <= value <= broadcast_int(prefix, mask)


def subnet_block(prefix: str, mask: int) -> SubnetBlock:
    """
    Describe the planner window for a subnet.

    For /24 and smaller blocks the window starts at the prefix's last octet
    and covers the whole block. Larger blocks start at octet 0 of the
    prefix's first three octets and are capped at MAX_PLANNED_BLOCK
    addresses.
    """
    parts = prefix.split(".")
    base = ".".join(parts[:3])
    if mask >= 24:
        return SubnetBlock(base, int(parts[3]), block_size(mask))
    return SubnetBlock(base, 0, min(block_size(mask), MAX_PLANNED_BLOCK))


def block_start_int(block: SubnetBlock) -> int:
    """Integer value of the first address of a planner window."""
    return ip_to_int(f"{block.base}.0") + block.start_octet


def suggest_gateway(prefix: str, mask: int) -> Optional[str]:
    """
    Suggest the first usable host as gateway.

    Only defined for masks 1-30; /31 and /32 have no spare address for a
    gateway, so None is returned for them and for malformed input.
    """
    if not is_valid_ipv4(prefix) or not is_valid_mask(mask) or mask > 30:
        return None
    return int_to_ip(network_int(prefix, mask) + 1)


def validate_subnet(prefix: str, mask: int, gateway: Optional[str] = None) -> None:
    """
    Validate a subnet definition.

    Raises:
        ValidationError: If the prefix is malformed or not the network
            address of the block, the mask is out of range, or the gateway
            is malformed or not a usable address inside the block
    """
    if not is_valid_ipv4(prefix):
        raise ValidationError(f"Invalid network prefix: {prefix!r}")
    if not is_valid_mask(mask):
        raise ValidationError(f"Invalid mask: {mask!r} (expected 1-32)")

    network = network_int(prefix, mask)
    if ip_to_int(prefix) != network:
        raise ValidationError(
            f"{prefix}/{mask} is not a network address "
            f"(did you mean {int_to_ip(network)}/{mask}?)"
        )

    if gateway:
        validate_gateway(prefix, mask, gateway)


def validate_gateway(prefix: str, mask: int, gateway: str) -> None:
    """
    Validate that gateway is a usable address of prefix/mask.

    Raises:
        ValidationError: If the gateway is malformed, outside the block, or
            the network/broadcast address of a /30-or-larger block
    """
    if not is_valid_ipv4(gateway):
        raise ValidationError(f"Invalid gateway address: {gateway!r}")

    value = ip_to_int(gateway)
    network = network_int(prefix, mask)
    broadcast = broadcast_int(prefix, mask)

    if not network <= value <= broadcast:
        raise ValidationError(f"Gateway {gateway} is outside {prefix}/{mask}")
    if mask < 31 and value in (network, broadcast):
        raise ValidationError(
            f"Gateway {gateway} cannot be the network or broadcast address"
        )
