"""Device registry for the devices that addresses are bound to."""

from typing import List, Optional

from subnetly.core.exceptions import ConflictError, NotFoundError
from subnetly.ipam.arithmetic import canonical_ip
from subnetly.models import Device
from subnetly.store import InventoryStore
from subnetly.utils.logger import get_logger
from subnetly.utils.telemetry import add_span_attributes, get_tracer

logger = get_logger(__name__)
tracer = get_tracer()


class DeviceService:
    """Service for device CRUD.

    Changing a device's address here never touches managed records;
    binding an address to a device goes through the allocation service.
    """

    def __init__(self, store: InventoryStore):
        self.store = store

    async def get_device(self, device_id: int, site_id: Optional[int] = None) -> Device:
        device = await self.store.get_device(device_id)
        if device is None or (site_id is not None and device.site_id != site_id):
            raise NotFoundError(f"Device {device_id} not found")
        return device

    async def list_devices(self, site_id: int) -> List[Device]:
        return await self.store.list_devices(site_id)

    async def _normalise_address(
        self, site_id: int, ip_address: Optional[str], device_id: Optional[int] = None
    ) -> str:
        if not ip_address:
            return ""
        ip_address = canonical_ip(ip_address)
        for other in await self.store.list_devices(site_id):
            if other.ip_address == ip_address and other.id != device_id:
                raise ConflictError(
                    f"{ip_address} is already held by device {other.name}"
                )
        return ip_address

    async def create_device(
        self,
        site_id: int,
        name: str,
        ip_address: Optional[str] = None,
        mac_address: Optional[str] = None,
        category: Optional[str] = None,
        status: str = "active",
        notes: Optional[str] = None,
    ) -> Device:
        """
        Create a device.

        Raises:
            ValidationError: If the address is malformed
            ConflictError: If another device already holds the address
        """
        with tracer.start_as_current_span("service.device.create") as _span:
            add_span_attributes(**{"device.name": name, "device.ip": ip_address})
            ip_address = await self._normalise_address(site_id, ip_address)

            device = await self.store.create_device(
                Device(
                    site_id=site_id,
                    name=name,
                    ip_address=ip_address,
                    mac_address=mac_address,
                    category=category,
                    status=status,
                    notes=notes,
                )
            )
            logger.info(
                "Device created",
                extra={"device_id": device.id, "device_name": name, "address": ip_address},
            )
            return device

    async def update_device(
        self, device_id: int, site_id: Optional[int] = None, **changes
    ) -> Device:
        """
        Update a device.

        Raises:
            NotFoundError: If the device does not exist
            ConflictError: If the new address is held by another device
        """
        with tracer.start_as_current_span("service.device.update") as _span:
            device = await self.get_device(device_id, site_id)
            if "ip_address" in changes:
                changes["ip_address"] = await self._normalise_address(
                    device.site_id, changes["ip_address"], device_id=device_id
                )

            device = await self.store.update_device(device_id, **changes)
            logger.info(
                "Device updated",
                extra={"device_id": device_id, "fields": sorted(changes)},
            )
            return device

    async def delete_device(self, device_id: int, site_id: Optional[int] = None) -> None:
        """Delete a device; managed records for its address are kept."""
        with tracer.start_as_current_span("service.device.delete") as _span:
            await self.get_device(device_id, site_id)
            await self.store.delete_device(device_id)
            logger.info("Device deleted", extra={"device_id": device_id})
