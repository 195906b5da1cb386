"""Address ranges and reusable range schemes.

A scheme stores each range as its last-octet bounds, so it can be replayed
onto any subnet by prefixing the target's first three octets.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from subnetly.core.exceptions import ConflictError, NotFoundError, ValidationError
from subnetly.ipam.arithmetic import (
    broadcast_int,
    int_to_ip,
    ip_to_int,
    network_int,
)
from subnetly.ipam.templates import slugify
from subnetly.models import IPRange, RangeScheme, RangeSchemeEntry, Subnet
from subnetly.store import InventoryStore
from subnetly.utils.context import operation_context
from subnetly.utils.logger import get_logger, log_duration
from subnetly.utils.telemetry import add_span_attributes, get_tracer, trace_operation

logger = get_logger(__name__)
tracer = get_tracer()


@dataclass
class SchemeEntryData:
    """Relative range definition used to create or edit a scheme."""

    start_octet: int
    end_octet: int
    role: str = "general"
    description: Optional[str] = None


@dataclass
class SchemeWithEntries:
    """A scheme together with its ordered entries."""

    scheme: RangeScheme
    entries: List[RangeSchemeEntry]


def _validate_entries(entries: Sequence[SchemeEntryData]) -> None:
    if not entries:
        raise ValidationError("A range scheme needs at least one entry")
    for entry in entries:
        if not (0 <= entry.start_octet <= 255 and 0 <= entry.end_octet <= 255):
            raise ValidationError("Scheme octets must lie in 0-255")
        if entry.start_octet > entry.end_octet:
            raise ValidationError(
                f"Scheme entry start {entry.start_octet} is after end {entry.end_octet}"
            )


class RangeService:
    """Service for range CRUD and range scheme snapshot/replay."""

    def __init__(self, store: InventoryStore):
        self.store = store

    async def _get_subnet(self, subnet_id: int, site_id: Optional[int]) -> Subnet:
        subnet = await self.store.get_subnet(subnet_id)
        if subnet is None or (site_id is not None and subnet.site_id != site_id):
            raise NotFoundError(f"Subnet {subnet_id} not found")
        return subnet

    async def _get_scheme(self, scheme_id: int, site_id: Optional[int]) -> RangeScheme:
        scheme = await self.store.get_scheme(scheme_id)
        if scheme is None or (site_id is not None and scheme.site_id != site_id):
            raise NotFoundError(f"Range scheme {scheme_id} not found")
        return scheme

    @staticmethod
    def _check_bounds(subnet: Subnet, start_addr: str, end_addr: str) -> tuple[str, str]:
        start = ip_to_int(start_addr)
        end = ip_to_int(end_addr)
        if start > end:
            raise ValidationError(f"Range start {start_addr} is after end {end_addr}")

        network = network_int(subnet.prefix, subnet.mask)
        broadcast = broadcast_int(subnet.prefix, subnet.mask)
        if start < network or end > broadcast:
            raise ValidationError(
                f"Range {start_addr}-{end_addr} is outside {subnet.cidr}"
            )
        return int_to_ip(start), int_to_ip(end)

    # Ranges

    async def list_ranges(self, subnet_id: int, site_id: Optional[int] = None) -> List[IPRange]:
        await self._get_subnet(subnet_id, site_id)
        return await self.store.list_ranges(subnet_id)

    async def get_range(self, range_id: int, site_id: Optional[int] = None) -> IPRange:
        ip_range = await self.store.get_range(range_id)
        if ip_range is None:
            raise NotFoundError(f"Range {range_id} not found")
        await self._get_subnet(ip_range.subnet_id, site_id)
        return ip_range

    async def create_range(
        self,
        subnet_id: int,
        start_addr: str,
        end_addr: str,
        role: str = "dhcp",
        description: Optional[str] = None,
        status: str = "active",
        site_id: Optional[int] = None,
    ) -> IPRange:
        """
        Create a range inside a subnet.

        Ranges of one subnet may overlap; the planner reports overlaps
        instead of rejecting them.

        Raises:
            NotFoundError: If the subnet does not exist
            ValidationError: If the bounds are malformed, reversed or outside the subnet
        """
        with tracer.start_as_current_span("service.range.create") as _span:
            add_span_attributes(
                **{"subnet.id": subnet_id, "range.start": start_addr, "range.end": end_addr}
            )
            subnet = await self._get_subnet(subnet_id, site_id)
            start_addr, end_addr = self._check_bounds(subnet, start_addr, end_addr)

            ip_range = await self.store.create_range(
                IPRange(
                    subnet_id=subnet_id,
                    start_addr=start_addr,
                    end_addr=end_addr,
                    role=role,
                    description=description,
                    status=status,
                )
            )
            logger.info(
                "Range created",
                extra={
                    "range_id": ip_range.id,
                    "subnet_id": subnet_id,
                    "start_addr": start_addr,
                    "end_addr": end_addr,
                    "role": role,
                },
            )
            return ip_range

    async def update_range(
        self, range_id: int, site_id: Optional[int] = None, **changes
    ) -> IPRange:
        """Update a range, re-checking its bounds against the subnet."""
        with tracer.start_as_current_span("service.range.update") as _span:
            ip_range = await self.get_range(range_id, site_id)
            subnet = await self._get_subnet(ip_range.subnet_id, site_id)

            start, end = self._check_bounds(
                subnet,
                changes.get("start_addr", ip_range.start_addr),
                changes.get("end_addr", ip_range.end_addr),
            )
            if "start_addr" in changes:
                changes["start_addr"] = start
            if "end_addr" in changes:
                changes["end_addr"] = end

            ip_range = await self.store.update_range(range_id, **changes)
            logger.info("Range updated", extra={"range_id": range_id})
            return ip_range

    async def delete_range(self, range_id: int, site_id: Optional[int] = None) -> None:
        with tracer.start_as_current_span("service.range.delete") as _span:
            await self.get_range(range_id, site_id)
            await self.store.delete_range(range_id)
            logger.info("Range deleted", extra={"range_id": range_id})

    # Schemes

    async def _with_entries(self, scheme: RangeScheme) -> SchemeWithEntries:
        return SchemeWithEntries(
            scheme=scheme, entries=await self.store.list_scheme_entries(scheme.id)
        )

    async def _ensure_unique_name(
        self, site_id: int, name: str, exclude_id: Optional[int] = None
    ) -> str:
        slug = slugify(name)
        if not slug:
            raise ValidationError("Scheme name must contain letters or digits")
        if await self.store.find_scheme_by_slug(site_id, slug, exclude_id=exclude_id):
            raise ConflictError(f"A range scheme named '{name}' already exists")
        return slug

    async def list_schemes(self, site_id: int) -> List[SchemeWithEntries]:
        return [
            await self._with_entries(scheme)
            for scheme in await self.store.list_schemes(site_id)
        ]

    async def get_scheme(self, scheme_id: int, site_id: Optional[int] = None) -> SchemeWithEntries:
        return await self._with_entries(await self._get_scheme(scheme_id, site_id))

    async def create_scheme(
        self,
        site_id: int,
        name: str,
        entries: Sequence[SchemeEntryData],
        description: Optional[str] = None,
    ) -> SchemeWithEntries:
        """
        Create a scheme from explicit relative entries.

        Raises:
            ValidationError: If there are no entries or an entry is reversed
            ConflictError: If a scheme with the same name exists in the site
        """
        with tracer.start_as_current_span("service.range_scheme.create") as _span:
            add_span_attributes(**{"scheme.name": name, "scheme.entries": len(entries)})
            _validate_entries(entries)
            slug = await self._ensure_unique_name(site_id, name)

            scheme = await self.store.create_scheme(
                RangeScheme(
                    site_id=site_id,
                    name=name,
                    slug=slug,
                    description=description,
                    sort_order=await self.store.next_scheme_sort_order(site_id),
                ),
                [
                    RangeSchemeEntry(
                        start_octet=e.start_octet,
                        end_octet=e.end_octet,
                        role=e.role,
                        description=e.description,
                    )
                    for e in entries
                ],
            )
            logger.info(
                "Range scheme created",
                extra={"scheme_id": scheme.id, "scheme_name": name, "entries": len(entries)},
            )
            return await self._with_entries(scheme)

    async def save_scheme(
        self,
        subnet_id: int,
        name: str,
        description: Optional[str] = None,
        site_id: Optional[int] = None,
    ) -> SchemeWithEntries:
        """
        Snapshot a subnet's ranges as a named scheme.

        Args:
            subnet_id: Subnet whose ranges are captured
            name: Scheme name, unique per site
            description: Scheme description
            site_id: Restrict the subnet lookup to this site

        Returns:
            The stored scheme and its entries

        Raises:
            NotFoundError: If the subnet does not exist
            ValidationError: If the subnet has no ranges
            ConflictError: If the name is already taken
        """
        with (
            trace_operation(
                "service.range_scheme.snapshot",
                {"subnet.id": subnet_id, "scheme.name": name},
            ),
            operation_context("range_scheme.snapshot", subnet_id=subnet_id),
        ):
            subnet = await self._get_subnet(subnet_id, site_id)
            ranges = await self.store.list_ranges(subnet_id)
            if not ranges:
                raise ValidationError(f"Subnet {subnet.cidr} has no ranges to save")

            ordered = sorted(ranges, key=lambda r: (ip_to_int(r.start_addr), r.id))
            for r in ordered:
                if ip_to_int(r.start_addr) >> 8 != ip_to_int(r.end_addr) >> 8:
                    raise ValidationError(
                        f"Range {r.start_addr}-{r.end_addr} spans more than one /24 "
                        "and cannot be stored as last-octet bounds"
                    )
            entries = [
                SchemeEntryData(
                    start_octet=ip_to_int(r.start_addr) & 0xFF,
                    end_octet=ip_to_int(r.end_addr) & 0xFF,
                    role=r.role,
                    description=r.description,
                )
                for r in ordered
            ]
            return await self.create_scheme(subnet.site_id, name, entries, description)

    async def update_scheme(
        self,
        scheme_id: int,
        site_id: Optional[int] = None,
        name: Optional[str] = None,
        description: Optional[str] = None,
        entries: Optional[Sequence[SchemeEntryData]] = None,
    ) -> SchemeWithEntries:
        """
        Rename, re-describe or replace the entries of a scheme.

        Replacing entries unlinks ranges previously materialised from them.
        """
        with tracer.start_as_current_span("service.range_scheme.update") as _span:
            scheme = await self._get_scheme(scheme_id, site_id)
            scheme_site = scheme.site_id

            changes = {}
            if name is not None:
                changes["name"] = name
                changes["slug"] = await self._ensure_unique_name(
                    scheme_site, name, exclude_id=scheme_id
                )
            if description is not None:
                changes["description"] = description
            if entries is not None:
                _validate_entries(entries)

            if changes:
                scheme = await self.store.update_scheme(scheme_id, **changes)
            if entries is not None:
                await self.store.replace_scheme_entries(
                    scheme_id,
                    [
                        RangeSchemeEntry(
                            start_octet=e.start_octet,
                            end_octet=e.end_octet,
                            role=e.role,
                            description=e.description,
                        )
                        for e in entries
                    ],
                )

            logger.info(
                "Range scheme updated",
                extra={"scheme_id": scheme_id, "replaced_entries": entries is not None},
            )
            return await self._with_entries(scheme)

    async def delete_scheme(self, scheme_id: int, site_id: Optional[int] = None) -> None:
        """Delete a scheme; ranges built from it stay and lose their link."""
        with tracer.start_as_current_span("service.range_scheme.delete") as _span:
            await self._get_scheme(scheme_id, site_id)
            await self.store.delete_scheme(scheme_id)
            logger.info("Range scheme deleted", extra={"scheme_id": scheme_id})

    @log_duration("range_scheme_apply")
    async def apply_scheme(
        self,
        subnet_id: int,
        scheme_id: int,
        replace_existing: bool = False,
        site_id: Optional[int] = None,
    ) -> List[IPRange]:
        """
        Materialise a scheme's entries onto a subnet.

        Every entry is checked against the target block before anything is
        written.

        Args:
            subnet_id: Target subnet
            scheme_id: Scheme to apply
            replace_existing: Delete the subnet's current ranges first
            site_id: Restrict lookups to this site

        Returns:
            The ranges created

        Raises:
            NotFoundError: If the subnet or scheme does not exist
            ValidationError: If an entry does not fit the subnet
        """
        with (
            trace_operation(
                "service.range_scheme.apply",
                {
                    "subnet.id": subnet_id,
                    "scheme.id": scheme_id,
                    "scheme.replace_existing": replace_existing,
                },
            ),
            operation_context("range_scheme.apply", subnet_id=subnet_id),
        ):
            subnet = await self._get_subnet(subnet_id, site_id)
            scheme = await self._get_scheme(scheme_id, subnet.site_id)
            entries = await self.store.list_scheme_entries(scheme.id)

            network = network_int(subnet.prefix, subnet.mask)
            broadcast = broadcast_int(subnet.prefix, subnet.mask)
            base = network & 0xFFFFFF00
            planned = []
            for entry in entries:
                start = base + entry.start_octet
                end = base + entry.end_octet
                if start < network or end > broadcast:
                    raise ValidationError(
                        f"Scheme entry {entry.start_octet}-{entry.end_octet} "
                        f"does not fit {subnet.cidr}"
                    )
                planned.append(
                    IPRange(
                        subnet_id=subnet_id,
                        start_addr=int_to_ip(start),
                        end_addr=int_to_ip(end),
                        role=entry.role,
                        description=entry.description,
                        scheme_entry_id=entry.id,
                    )
                )

            removed = 0
            if replace_existing:
                removed = await self.store.delete_ranges(subnet_id)

            created = [await self.store.create_range(ip_range) for ip_range in planned]

            logger.info(
                "Range scheme applied",
                extra={
                    "scheme_id": scheme_id,
                    "subnet_id": subnet_id,
                    "created_count": len(created),
                    "removed_count": removed,
                },
            )
            return created
