"""Persistence collaborator for the IPAM services.

Every write method commits on its own. There is deliberately no way to
group several writes into one transaction: callers that touch more than one
record (see :mod:`subnetly.services.allocation_service`) sequence the calls
themselves and must tolerate a later call failing after an earlier one
committed.
"""

from typing import Any, Iterable, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from subnetly.core.exceptions import NotFoundError
from subnetly.models import (
    Device,
    IPAddress,
    IPRange,
    RangeScheme,
    RangeSchemeEntry,
    Subnet,
    SubnetTemplate,
)
from subnetly.utils.logger import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)


class InventoryStore:
    """CRUD and list queries over the inventory tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # Generic helpers

    async def _commit(self, *instances: SQLModel) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Database commit failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            raise
        for instance in instances:
            await self.session.refresh(instance)

    async def _get(self, model: Type[ModelT], obj_id: int) -> Optional[ModelT]:
        return await self.session.get(model, obj_id)

    async def _get_or_raise(self, model: Type[ModelT], obj_id: int) -> ModelT:
        instance = await self._get(model, obj_id)
        if instance is None:
            raise NotFoundError(f"{model.__name__} {obj_id} not found")
        return instance

    async def _all(self, statement: Any) -> List[Any]:
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def _first(self, statement: Any) -> Optional[Any]:
        result = await self.session.execute(statement.limit(1))
        return result.scalars().first()

    async def _add(self, instance: ModelT) -> ModelT:
        self.session.add(instance)
        await self._commit(instance)
        return instance

    async def _update(self, model: Type[ModelT], obj_id: int, fields: dict) -> ModelT:
        instance = await self._get_or_raise(model, obj_id)
        for key, value in fields.items():
            setattr(instance, key, value)
        self.session.add(instance)
        await self._commit(instance)
        return instance

    async def _delete(self, model: Type[ModelT], obj_id: int) -> None:
        instance = await self._get_or_raise(model, obj_id)
        await self.session.delete(instance)
        await self._commit()

    # Subnets

    async def get_subnet(self, subnet_id: int) -> Optional[Subnet]:
        return await self._get(Subnet, subnet_id)

    async def list_subnets(self, site_id: int) -> List[Subnet]:
        return await self._all(
            select(Subnet).where(Subnet.site_id == site_id).order_by(Subnet.id)
        )

    async def create_subnet(self, subnet: Subnet) -> Subnet:
        return await self._add(subnet)

    async def update_subnet(self, subnet_id: int, **fields: Any) -> Subnet:
        return await self._update(Subnet, subnet_id, fields)

    async def delete_subnet(self, subnet_id: int) -> None:
        """Delete a subnet together with its address records and ranges."""
        subnet = await self._get_or_raise(Subnet, subnet_id)
        await self.session.execute(
            delete(IPAddress).where(IPAddress.subnet_id == subnet_id)
        )
        await self.session.execute(delete(IPRange).where(IPRange.subnet_id == subnet_id))
        await self.session.delete(subnet)
        await self._commit()

    # Managed address records

    async def get_ip_address(self, ip_address_id: int) -> Optional[IPAddress]:
        return await self._get(IPAddress, ip_address_id)

    async def list_ip_addresses(self, subnet_id: int) -> List[IPAddress]:
        return await self._all(
            select(IPAddress)
            .where(IPAddress.subnet_id == subnet_id)
            .order_by(IPAddress.id)
        )

    async def list_site_ip_addresses(self, site_id: int) -> List[IPAddress]:
        """Managed records of every subnet in a site."""
        return await self._all(
            select(IPAddress)
            .join(Subnet, IPAddress.subnet_id == Subnet.id)
            .where(Subnet.site_id == site_id)
            .order_by(IPAddress.id)
        )

    async def find_ip_address(self, subnet_id: int, address: str) -> Optional[IPAddress]:
        return await self._first(
            select(IPAddress).where(
                IPAddress.subnet_id == subnet_id, IPAddress.address == address
            )
        )

    async def create_ip_address(self, record: IPAddress) -> IPAddress:
        return await self._add(record)

    async def update_ip_address(self, ip_address_id: int, **fields: Any) -> IPAddress:
        return await self._update(IPAddress, ip_address_id, fields)

    async def delete_ip_address(self, ip_address_id: int) -> None:
        await self._delete(IPAddress, ip_address_id)

    # Devices

    async def get_device(self, device_id: int) -> Optional[Device]:
        return await self._get(Device, device_id)

    async def list_devices(self, site_id: int) -> List[Device]:
        return await self._all(
            select(Device).where(Device.site_id == site_id).order_by(Device.id)
        )

    async def create_device(self, device: Device) -> Device:
        return await self._add(device)

    async def update_device(self, device_id: int, **fields: Any) -> Device:
        return await self._update(Device, device_id, fields)

    async def delete_device(self, device_id: int) -> None:
        await self._delete(Device, device_id)

    async def clear_device_addresses(self, site_id: int, addresses: Iterable[str]) -> int:
        """Unbind every device of a site holding one of the given addresses."""
        addresses = list(addresses)
        if not addresses:
            return 0
        result = await self.session.execute(
            update(Device)
            .where(Device.site_id == site_id, Device.ip_address.in_(addresses))
            .values(ip_address="")
        )
        await self._commit()
        return result.rowcount or 0

    # Ranges

    async def get_range(self, range_id: int) -> Optional[IPRange]:
        return await self._get(IPRange, range_id)

    async def list_ranges(self, subnet_id: int) -> List[IPRange]:
        return await self._all(
            select(IPRange).where(IPRange.subnet_id == subnet_id).order_by(IPRange.id)
        )

    async def create_range(self, ip_range: IPRange) -> IPRange:
        return await self._add(ip_range)

    async def update_range(self, range_id: int, **fields: Any) -> IPRange:
        return await self._update(IPRange, range_id, fields)

    async def delete_range(self, range_id: int) -> None:
        await self._delete(IPRange, range_id)

    async def delete_ranges(self, subnet_id: int) -> int:
        result = await self.session.execute(
            delete(IPRange).where(IPRange.subnet_id == subnet_id)
        )
        await self._commit()
        return result.rowcount or 0

    # Range schemes

    async def get_scheme(self, scheme_id: int) -> Optional[RangeScheme]:
        return await self._get(RangeScheme, scheme_id)

    async def list_schemes(self, site_id: int) -> List[RangeScheme]:
        return await self._all(
            select(RangeScheme)
            .where(RangeScheme.site_id == site_id)
            .order_by(RangeScheme.sort_order, RangeScheme.name)
        )

    async def find_scheme_by_slug(
        self, site_id: int, slug: str, exclude_id: Optional[int] = None
    ) -> Optional[RangeScheme]:
        statement = select(RangeScheme).where(
            RangeScheme.site_id == site_id, RangeScheme.slug == slug
        )
        if exclude_id is not None:
            statement = statement.where(RangeScheme.id != exclude_id)
        return await self._first(statement)

    async def next_scheme_sort_order(self, site_id: int) -> int:
        result = await self.session.execute(
            select(func.max(RangeScheme.sort_order)).where(RangeScheme.site_id == site_id)
        )
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    async def list_scheme_entries(self, scheme_id: int) -> List[RangeSchemeEntry]:
        return await self._all(
            select(RangeSchemeEntry)
            .where(RangeSchemeEntry.scheme_id == scheme_id)
            .order_by(RangeSchemeEntry.sort_order, RangeSchemeEntry.id)
        )

    async def create_scheme(
        self, scheme: RangeScheme, entries: Sequence[RangeSchemeEntry]
    ) -> RangeScheme:
        """Insert a scheme and its entries in one commit."""
        self.session.add(scheme)
        try:
            await self.session.flush()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        for index, entry in enumerate(entries):
            entry.scheme_id = scheme.id
            entry.sort_order = index
            self.session.add(entry)
        await self._commit(scheme)
        return scheme

    async def update_scheme(self, scheme_id: int, **fields: Any) -> RangeScheme:
        return await self._update(RangeScheme, scheme_id, fields)

    async def _detach_scheme_entries(self, scheme_id: int) -> None:
        entry_ids = select(RangeSchemeEntry.id).where(
            RangeSchemeEntry.scheme_id == scheme_id
        )
        await self.session.execute(
            update(IPRange)
            .where(IPRange.scheme_entry_id.in_(entry_ids))
            .values(scheme_entry_id=None)
        )
        await self.session.execute(
            delete(RangeSchemeEntry).where(RangeSchemeEntry.scheme_id == scheme_id)
        )

    async def replace_scheme_entries(
        self, scheme_id: int, entries: Sequence[RangeSchemeEntry]
    ) -> None:
        """Swap a scheme's entries, unlinking ranges built from the old ones."""
        await self._get_or_raise(RangeScheme, scheme_id)
        await self._detach_scheme_entries(scheme_id)
        for index, entry in enumerate(entries):
            entry.scheme_id = scheme_id
            entry.sort_order = index
            self.session.add(entry)
        await self._commit()

    async def delete_scheme(self, scheme_id: int) -> None:
        scheme = await self._get_or_raise(RangeScheme, scheme_id)
        await self._detach_scheme_entries(scheme_id)
        await self.session.delete(scheme)
        await self._commit()

    # Subnet templates

    async def get_template(self, template_id: int) -> Optional[SubnetTemplate]:
        return await self._get(SubnetTemplate, template_id)

    async def list_templates(self, site_id: int) -> List[SubnetTemplate]:
        return await self._all(
            select(SubnetTemplate)
            .where(SubnetTemplate.site_id == site_id)
            .order_by(SubnetTemplate.sort_order, SubnetTemplate.name)
        )

    async def find_template_by_slug(
        self, site_id: int, slug: str, exclude_id: Optional[int] = None
    ) -> Optional[SubnetTemplate]:
        statement = select(SubnetTemplate).where(
            SubnetTemplate.site_id == site_id, SubnetTemplate.slug == slug
        )
        if exclude_id is not None:
            statement = statement.where(SubnetTemplate.id != exclude_id)
        return await self._first(statement)

    async def next_template_sort_order(self, site_id: int) -> int:
        result = await self.session.execute(
            select(func.max(SubnetTemplate.sort_order)).where(
                SubnetTemplate.site_id == site_id
            )
        )
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    async def create_template(self, template: SubnetTemplate) -> SubnetTemplate:
        return await self._add(template)

    async def update_template(self, template_id: int, **fields: Any) -> SubnetTemplate:
        return await self._update(SubnetTemplate, template_id, fields)

    async def delete_template(self, template_id: int) -> None:
        await self._delete(SubnetTemplate, template_id)
