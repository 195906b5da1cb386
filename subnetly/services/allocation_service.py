"""Binding of addresses to devices.

An address binding lives in two places that share no transaction: the
managed :class:`IPAddress` record and the device's scalar ``ip_address``
field. :meth:`AllocationService.assign` reconciles both with a fixed
sequence of independently committed writes:

1. find the device currently holding the address
2. remember the target device's previous address, if it is moving
3. create or update the managed record (the primary write)
4. clear the address of any other device holding it
5. delete managed records left behind at the target device's old address
6. point the target device at the address

Validation and lookups happen before step 3, so a rejected request has no
side effects. Steps 4-6 never undo step 3; a failure there is raised as
:class:`PartialFailureError` naming the step that failed.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import partial
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from subnetly.core.exceptions import (
    ConflictError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)
from subnetly.ipam.arithmetic import canonical_ip, contains, is_valid_ipv4
from subnetly.models import Device, IPAddress, Subnet
from subnetly.store import InventoryStore
from subnetly.utils.context import operation_context
from subnetly.utils.logger import get_logger
from subnetly.utils.telemetry import add_span_attributes, add_span_event, get_tracer

logger = get_logger(__name__)
tracer = get_tracer()


class AllocationStep(str, Enum):
    """Writes performed by an assignment, in execution order."""

    WRITE_RECORD = "write_record"
    VACATE_PREVIOUS_HOLDER = "vacate_previous_holder"
    REMOVE_STALE_RECORD = "remove_stale_record"
    LINK_DEVICE = "link_device"


@dataclass
class BindingResult:
    """Outcome of a successful assignment."""

    record: IPAddress
    device: Optional[Device] = None
    vacated_device_id: Optional[int] = None
    removed_record_ids: List[int] = field(default_factory=list)
    completed_steps: List[str] = field(default_factory=list)


_UNSET: Any = object()


class AllocationService:
    """Service for binding managed address records to devices."""

    def __init__(self, store: InventoryStore):
        self.store = store

    async def _get_subnet(self, subnet_id: int, site_id: Optional[int] = None) -> Subnet:
        subnet = await self.store.get_subnet(subnet_id)
        if subnet is None or (site_id is not None and subnet.site_id != site_id):
            raise NotFoundError(f"Subnet {subnet_id} not found")
        return subnet

    async def _get_device(self, device_id: int, site_id: Optional[int] = None) -> Device:
        device = await self.store.get_device(device_id)
        if device is None or (site_id is not None and device.site_id != site_id):
            raise NotFoundError(f"Device {device_id} not found")
        return device

    async def get_ip_address(
        self, ip_address_id: int, site_id: Optional[int] = None
    ) -> IPAddress:
        record = await self.store.get_ip_address(ip_address_id)
        if record is None:
            raise NotFoundError(f"IP address {ip_address_id} not found")
        if site_id is not None:
            # Records are site-scoped through their subnet
            subnet = await self.store.get_subnet(record.subnet_id)
            if subnet is None or subnet.site_id != site_id:
                raise NotFoundError(f"IP address {ip_address_id} not found")
        return record

    async def list_ip_addresses(
        self, site_id: int, subnet_id: Optional[int] = None
    ) -> List[IPAddress]:
        """List managed records of a site, optionally narrowed to one subnet."""
        if subnet_id is not None:
            await self._get_subnet(subnet_id, site_id)
            return await self.store.list_ip_addresses(subnet_id)
        return await self.store.list_site_ip_addresses(site_id)

    @contextmanager
    def _follow_up(
        self,
        step: AllocationStep,
        record_id: int,
        address: str,
        completed: List[AllocationStep],
    ):
        try:
            yield
        except Exception as e:
            logger.error(
                "Binding follow-up step failed",
                extra={
                    "step": step.value,
                    "ip_address_id": record_id,
                    "address": address,
                    "completed_steps": [s.value for s in completed],
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise PartialFailureError(
                step.value,
                record_id=record_id,
                address=address,
                completed_steps=[s.value for s in completed],
            ) from e
        completed.append(step)

    async def assign(
        self,
        subnet_id: int,
        address: str,
        device_id: Optional[int] = None,
        ip_address_id: Optional[int] = None,
        status: str = "active",
        dns_name: Optional[str] = None,
        description: Optional[str] = None,
        site_id: Optional[int] = None,
    ) -> BindingResult:
        """
        Create or edit a managed record and bind it to a device.

        Args:
            subnet_id: Subnet the record belongs to
            address: IPv4 address to bind
            device_id: Device to bind the address to (None for an unowned record)
            ip_address_id: Existing record to edit instead of create-or-update by address
            status: Record status
            dns_name: DNS name; defaults to the device name
            description: Record description
            site_id: Restrict lookups to this site

        Returns:
            BindingResult describing every record touched

        Raises:
            ValidationError: If the address is malformed or outside the subnet
            NotFoundError: If the subnet, device or record does not exist
            ConflictError: If another record already holds the address
            PartialFailureError: If a step after the primary write failed
        """
        with (
            tracer.start_as_current_span("service.allocation.assign") as _span,
            operation_context("ipam.assign", subnet_id=subnet_id, device_id=device_id),
        ):
            add_span_attributes(
                **{
                    "subnet.id": subnet_id,
                    "ip.address": address,
                    "device.id": device_id,
                    "ip_address.id": ip_address_id,
                }
            )

            # Everything below until step 3 is read-only
            address = canonical_ip(address)
            subnet = await self._get_subnet(subnet_id, site_id)
            # Plain copies; a rollback expires ORM instances
            cidr = subnet.cidr
            subnet_site = subnet.site_id
            if not contains(subnet.prefix, subnet.mask, address):
                raise ValidationError(f"{address} is outside {cidr}")

            device = None
            if device_id is not None:
                device = await self._get_device(device_id)
                if device.site_id != subnet_site:
                    raise ValidationError(
                        f"Device {device_id} does not belong to the subnet's site"
                    )

            existing = await self.store.find_ip_address(subnet.id, address)
            if ip_address_id is not None:
                await self.get_ip_address(ip_address_id, site_id)
                if existing is not None and existing.id != ip_address_id:
                    raise ConflictError(
                        f"{address} already has a record in subnet {cidr}"
                    )

            # One managed record per literal address across the site
            for other in await self.store.list_site_ip_addresses(subnet_site):
                if (
                    other.address == address
                    and other.subnet_id != subnet.id
                    and other.id != ip_address_id
                ):
                    raise ConflictError(
                        f"{address} already has a record in subnet {other.subnet_id}"
                    )

            # Step 1
            devices = await self.store.list_devices(subnet_site)
            device_on_ip = next((d for d in devices if d.ip_address == address), None)

            # Step 2
            new_device_old_ip = None
            if device is not None and device.ip_address and device.ip_address != address:
                new_device_old_ip = device.ip_address

            logger.info(
                "Assigning address",
                extra={
                    "address": address,
                    "subnet_id": subnet.id,
                    "target_device_id": device_id,
                    "current_holder_id": device_on_ip.id if device_on_ip else None,
                    "previous_address": new_device_old_ip,
                },
            )

            # Step 3
            fields: Dict[str, Any] = {
                "subnet_id": subnet.id,
                "address": address,
                "mask": subnet.mask,
                "status": status,
                "dns_name": dns_name
                if dns_name is not None
                else (device.name if device else None),
                "description": description,
                "assigned_to": device.name if device else None,
            }
            target_id = ip_address_id if ip_address_id is not None else (
                existing.id if existing is not None else None
            )
            try:
                if target_id is not None:
                    record = await self.store.update_ip_address(target_id, **fields)
                else:
                    record = await self.store.create_ip_address(IPAddress(**fields))
            except IntegrityError as e:
                raise ConflictError(
                    f"{address} already has a record in subnet {cidr}"
                ) from e

            record_id = record.id
            completed: List[AllocationStep] = [AllocationStep.WRITE_RECORD]
            result = BindingResult(record=record, device=device)
            follow_up = partial(
                self._follow_up, record_id=record_id, address=address, completed=completed
            )

            # Step 4
            with follow_up(AllocationStep.VACATE_PREVIOUS_HOLDER):
                if device_on_ip is not None and (device is None or device_on_ip.id != device.id):
                    await self.store.update_device(device_on_ip.id, ip_address="")
                    result.vacated_device_id = device_on_ip.id
                    add_span_event("ipam.device_vacated", {"device.id": device_on_ip.id})

            # Step 5
            with follow_up(AllocationStep.REMOVE_STALE_RECORD):
                if new_device_old_ip:
                    for stale in await self.store.list_site_ip_addresses(subnet_site):
                        if stale.address == new_device_old_ip and stale.id != record_id:
                            await self.store.delete_ip_address(stale.id)
                            result.removed_record_ids.append(stale.id)

            # Step 6
            with follow_up(AllocationStep.LINK_DEVICE):
                if device is not None:
                    result.device = await self.store.update_device(
                        device.id, ip_address=address
                    )

            result.completed_steps = [s.value for s in completed]

            logger.info(
                "Address assigned",
                extra={
                    "ip_address_id": record_id,
                    "address": address,
                    "device_id": device_id,
                    "vacated_device_id": result.vacated_device_id,
                    "removed_record_ids": result.removed_record_ids,
                },
            )
            return result

    async def edit(
        self,
        ip_address_id: int,
        site_id: Optional[int] = None,
        subnet_id: Any = _UNSET,
        address: Any = _UNSET,
        device_id: Any = _UNSET,
        status: Any = _UNSET,
        dns_name: Any = _UNSET,
        description: Any = _UNSET,
    ) -> BindingResult:
        """
        Edit an existing record through the assignment sequence.

        Omitted fields keep their current value; an omitted ``device_id``
        keeps the device currently holding the record's address. A None
        subnet, address or status counts as omitted.
        """
        record = await self.get_ip_address(ip_address_id, site_id)

        if device_id is _UNSET:
            device_id = None
            subnet = await self._get_subnet(record.subnet_id)
            for device in await self.store.list_devices(subnet.site_id):
                if device.ip_address == record.address:
                    device_id = device.id
                    break

        return await self.assign(
            subnet_id=record.subnet_id if subnet_id in (_UNSET, None) else subnet_id,
            address=record.address if address in (_UNSET, None) else address,
            device_id=device_id,
            ip_address_id=ip_address_id,
            status=record.status if status in (_UNSET, None) else status,
            dns_name=record.dns_name if dns_name is _UNSET else dns_name,
            description=record.description if description is _UNSET else description,
            site_id=site_id,
        )

    async def unbind(self, device_id: int, site_id: Optional[int] = None) -> Device:
        """
        Clear a device's address without touching any managed record.

        Raises:
            NotFoundError: If the device does not exist
        """
        with (
            tracer.start_as_current_span("service.allocation.unbind") as _span,
            operation_context("ipam.unbind", device_id=device_id),
        ):
            add_span_attributes(**{"device.id": device_id})
            device = await self._get_device(device_id, site_id)
            previous = device.ip_address
            device = await self.store.update_device(device.id, ip_address="")

            logger.info(
                "Device unbound",
                extra={"device_id": device_id, "previous_address": previous},
            )
            return device

    async def promote(self, device_id: int, site_id: Optional[int] = None) -> BindingResult:
        """
        Create a managed record for a device-only binding.

        The record goes into the most specific subnet of the device's site
        that contains the address.

        Raises:
            NotFoundError: If the device does not exist
            ValidationError: If the device has no address or no subnet contains it
            ConflictError: If the address already has a managed record
        """
        with tracer.start_as_current_span("service.allocation.promote") as _span:
            add_span_attributes(**{"device.id": device_id})
            device = await self._get_device(device_id, site_id)

            if not device.ip_address or not is_valid_ipv4(device.ip_address):
                raise ValidationError(f"Device {device_id} has no address to promote")

            candidates = [
                s
                for s in await self.store.list_subnets(device.site_id)
                if contains(s.prefix, s.mask, device.ip_address)
            ]
            if not candidates:
                raise ValidationError(
                    f"No subnet contains {device.ip_address} for device {device.name}"
                )
            subnet = max(candidates, key=lambda s: s.mask)

            if await self.store.find_ip_address(subnet.id, device.ip_address):
                raise ConflictError(
                    f"{device.ip_address} already has a record in subnet {subnet.cidr}"
                )

            logger.info(
                "Promoting device-only binding",
                extra={
                    "device_id": device.id,
                    "address": device.ip_address,
                    "subnet_id": subnet.id,
                },
            )
            return await self.assign(
                subnet_id=subnet.id,
                address=device.ip_address,
                device_id=device.id,
                description=f"Assigned to {device.name}",
            )

    async def delete(self, ip_address_id: int, site_id: Optional[int] = None) -> None:
        """
        Delete a managed record.

        Devices pointing at the address keep their pointer, so the binding
        shows up again as device-only.
        """
        with tracer.start_as_current_span("service.allocation.delete") as _span:
            add_span_attributes(**{"ip_address.id": ip_address_id})
            record = await self.get_ip_address(ip_address_id, site_id)
            await self.store.delete_ip_address(record.id)

            logger.info(
                "IP address record deleted",
                extra={"ip_address_id": ip_address_id, "address": record.address},
            )
