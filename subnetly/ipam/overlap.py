"""Overlap detection between subnets and between ranges of one subnet."""

from dataclasses import dataclass
from itertools import combinations
from typing import Any, Iterable, List, Tuple

from subnetly.ipam.arithmetic import block_size, ip_to_int, is_valid_ipv4


@dataclass(frozen=True)
class SubnetOverlap:
    """Two subnets whose blocks intersect."""

    subnet_a: Any
    subnet_b: Any


@dataclass(frozen=True)
class RangeOverlap:
    """Two ranges of the same subnet that share addresses."""

    range_a: Any
    range_b: Any


def subnet_span(prefix: str, mask: int) -> Tuple[int, int]:
    """Inclusive integer bounds of prefix/mask."""
    start = ip_to_int(prefix)
    return start, start + block_size(mask) - 1


def spans_overlap(a: Tuple[int, int], b: Tuple[int, int]) -> bool:
    return a[0] <= b[1] and b[0] <= a[1]


def find_overlaps(subnets: Iterable[Any]) -> List[SubnetOverlap]:
    """
    Report every unordered pair of intersecting subnets.

    Pairs are checked exhaustively; per-site subnet counts are small.
    """
    spans = [
        (subnet, subnet_span(subnet.prefix, subnet.mask))
        for subnet in subnets
        if is_valid_ipv4(subnet.prefix)
    ]
    return [
        SubnetOverlap(subnet_a=a, subnet_b=b)
        for (a, span_a), (b, span_b) in combinations(spans, 2)
        if spans_overlap(span_a, span_b)
    ]


def find_range_overlaps(ranges: Iterable[Any]) -> List[RangeOverlap]:
    """Report every unordered pair of intersecting ranges."""
    spans = [
        (r, (ip_to_int(r.start_addr), ip_to_int(r.end_addr)))
        for r in ranges
        if is_valid_ipv4(r.start_addr) and is_valid_ipv4(r.end_addr)
    ]
    return [
        RangeOverlap(range_a=a, range_b=b)
        for (a, span_a), (b, span_b) in combinations(spans, 2)
        if spans_overlap(span_a, span_b)
    ]
