"""Subnet lifecycle and derived planner views."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from subnetly.config import settings
from subnetly.core.exceptions import NotFoundError, ValidationError
from subnetly.ipam.arithmetic import (
    canonical_ip,
    contains,
    suggest_gateway,
    validate_subnet,
)
from subnetly.ipam.classifier import AddressCell, AddressPlan, Utilization
from subnetly.ipam.overlap import (
    RangeOverlap,
    SubnetOverlap,
    find_overlaps,
    find_range_overlaps,
)
from subnetly.models import Device, Subnet
from subnetly.store import InventoryStore
from subnetly.utils.context import operation_context
from subnetly.utils.logger import get_logger, log_timer
from subnetly.utils.telemetry import add_span_attributes, get_tracer

logger = get_logger(__name__)
tracer = get_tracer()


@dataclass
class SubnetPlan:
    """One page of a subnet's address plan with its aggregates."""

    subnet: Subnet
    page: int
    page_size: int
    total_pages: int
    cells: List[AddressCell]
    utilization: Utilization
    range_overlaps: List[RangeOverlap] = field(default_factory=list)
    device_only: List[Device] = field(default_factory=list)


class SubnetService:
    """Service for subnet CRUD, planner pages and overlap warnings."""

    def __init__(self, store: InventoryStore):
        self.store = store

    async def get_subnet(self, subnet_id: int, site_id: Optional[int] = None) -> Subnet:
        """
        Get a subnet by id.

        Raises:
            NotFoundError: If the subnet does not exist in the site
        """
        subnet = await self.store.get_subnet(subnet_id)
        if subnet is None or (site_id is not None and subnet.site_id != site_id):
            raise NotFoundError(f"Subnet {subnet_id} not found")
        return subnet

    async def list_subnets(self, site_id: int) -> List[Subnet]:
        return await self.store.list_subnets(site_id)

    async def create_subnet(
        self,
        site_id: int,
        prefix: str,
        mask: int,
        gateway: Optional[str] = None,
        role: Optional[str] = None,
        description: Optional[str] = None,
        vlan_id: Optional[int] = None,
        status: str = "active",
        smart_gateway: Optional[bool] = None,
    ) -> Subnet:
        """
        Create a subnet.

        Args:
            site_id: Owning site
            prefix: Network address of the block
            mask: Prefix length (1-32)
            gateway: Gateway inside the block; suggested when empty and
                smart gateway is enabled
            role: Free-text role
            description: Subnet description
            vlan_id: Associated VLAN
            status: Subnet status
            smart_gateway: Override for settings.SMART_GATEWAY_ENABLED

        Returns:
            Created subnet

        Raises:
            ValidationError: If prefix, mask or gateway are invalid
        """
        with tracer.start_as_current_span("service.subnet.create") as _span:
            add_span_attributes(**{"subnet.prefix": prefix, "subnet.mask": mask})

            validate_subnet(prefix, mask, gateway)
            prefix = canonical_ip(prefix)
            if gateway:
                gateway = canonical_ip(gateway)
            else:
                if smart_gateway is None:
                    smart_gateway = settings.SMART_GATEWAY_ENABLED
                gateway = suggest_gateway(prefix, mask) if smart_gateway else None

            subnet = await self.store.create_subnet(
                Subnet(
                    site_id=site_id,
                    prefix=prefix,
                    mask=mask,
                    gateway=gateway,
                    role=role,
                    description=description,
                    vlan_id=vlan_id,
                    status=status,
                )
            )

            logger.info(
                "Subnet created",
                extra={"subnet_id": subnet.id, "cidr": subnet.cidr, "gateway": gateway},
            )
            return subnet

    async def update_subnet(
        self, subnet_id: int, site_id: Optional[int] = None, **changes: Any
    ) -> Subnet:
        """
        Update a subnet; prefix, mask and gateway are re-validated together.

        Raises:
            NotFoundError: If the subnet does not exist
            ValidationError: If the resulting definition is invalid, or a
                managed record or range would fall outside the new block
        """
        with (
            tracer.start_as_current_span("service.subnet.update") as _span,
            operation_context("subnet.update", subnet_id=subnet_id),
        ):
            subnet = await self.get_subnet(subnet_id, site_id)

            prefix = changes.get("prefix", subnet.prefix)
            mask = changes.get("mask", subnet.mask)
            gateway = changes.get("gateway", subnet.gateway)
            validate_subnet(prefix, mask, gateway)
            if "prefix" in changes or "mask" in changes:
                await self._check_children_fit(subnet_id, prefix, mask)

            if "prefix" in changes:
                changes["prefix"] = canonical_ip(prefix)
            if changes.get("gateway"):
                changes["gateway"] = canonical_ip(changes["gateway"])
            elif "gateway" in changes:
                changes["gateway"] = None

            subnet = await self.store.update_subnet(subnet_id, **changes)
            logger.info(
                "Subnet updated",
                extra={"subnet_id": subnet_id, "fields": sorted(changes)},
            )
            return subnet

    async def _check_children_fit(self, subnet_id: int, prefix: str, mask: int) -> None:
        cidr = f"{canonical_ip(prefix)}/{mask}"
        for record in await self.store.list_ip_addresses(subnet_id):
            if not contains(prefix, mask, record.address):
                raise ValidationError(
                    f"Managed address {record.address} would fall outside {cidr}"
                )
        for ip_range in await self.store.list_ranges(subnet_id):
            if not (
                contains(prefix, mask, ip_range.start_addr)
                and contains(prefix, mask, ip_range.end_addr)
            ):
                raise ValidationError(
                    f"Range {ip_range.start_addr}-{ip_range.end_addr} "
                    f"would fall outside {cidr}"
                )

    async def delete_subnet(self, subnet_id: int, site_id: Optional[int] = None) -> None:
        """
        Delete a subnet with its managed records and ranges.

        Devices of the site holding one of the deleted records' addresses
        are unbound first.
        """
        with (
            tracer.start_as_current_span("service.subnet.delete") as _span,
            operation_context("subnet.delete", subnet_id=subnet_id),
        ):
            subnet = await self.get_subnet(subnet_id, site_id)
            subnet_site = subnet.site_id

            records = await self.store.list_ip_addresses(subnet_id)
            cleared = await self.store.clear_device_addresses(
                subnet_site, {r.address for r in records}
            )
            await self.store.delete_subnet(subnet_id)

            logger.info(
                "Subnet deleted",
                extra={
                    "subnet_id": subnet_id,
                    "deleted_records": len(records),
                    "unbound_devices": cleared,
                },
            )

    async def get_plan(
        self,
        subnet_id: int,
        site_id: Optional[int] = None,
        page: int = 0,
        page_size: Optional[int] = None,
    ) -> SubnetPlan:
        """
        Classify one page of a subnet and compute its utilization.

        Raises:
            NotFoundError: If the subnet does not exist
            ValidationError: If page or page_size are out of range
        """
        with tracer.start_as_current_span("service.subnet.plan") as _span:
            page_size = page_size or settings.GRID_PAGE_SIZE
            add_span_attributes(
                **{"subnet.id": subnet_id, "plan.page": page, "plan.page_size": page_size}
            )

            subnet = await self.get_subnet(subnet_id, site_id)
            records = await self.store.list_ip_addresses(subnet_id)
            ranges = await self.store.list_ranges(subnet_id)
            devices = await self.store.list_devices(subnet.site_id)

            with log_timer("subnet_plan", logger):
                plan = AddressPlan(subnet, records, ranges, devices)
                # Pages past the end come back empty
                cells = plan.cells(page, page_size)
                utilization = plan.utilization()

            return SubnetPlan(
                subnet=subnet,
                page=page,
                page_size=page_size,
                total_pages=plan.total_pages(page_size),
                cells=cells,
                utilization=utilization,
                range_overlaps=find_range_overlaps(ranges),
                device_only=plan.device_only_bindings(),
            )

    async def find_overlaps(self, site_id: int) -> List[SubnetOverlap]:
        """Report intersecting subnet pairs of a site."""
        with tracer.start_as_current_span("service.subnet.overlaps") as _span:
            overlaps = find_overlaps(await self.store.list_subnets(site_id))
            if overlaps:
                logger.warning(
                    "Overlapping subnets detected",
                    extra={"site_id": site_id, "overlap_count": len(overlaps)},
                )
            return overlaps

