"""Dependencies for API endpoints."""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from subnetly.config import settings
from subnetly.core.exceptions import ValidationError
from subnetly.database import get_async_session
from subnetly.services.allocation_service import AllocationService
from subnetly.services.device_service import DeviceService
from subnetly.services.range_service import RangeService
from subnetly.services.subnet_service import SubnetService
from subnetly.services.template_service import TemplateService
from subnetly.store import InventoryStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async for session in get_async_session():
        yield session


def get_store(db: Annotated[AsyncSession, Depends(get_db)]) -> InventoryStore:
    """Get the inventory store bound to the request's session."""
    return InventoryStore(db)


def get_site_id(
    x_site_id: Annotated[str | None, Header(alias="X-Site-ID")] = None,
) -> int:
    """Site selected by the caller, falling back to the default site."""
    if x_site_id is None or x_site_id == "":
        return settings.DEFAULT_SITE_ID
    try:
        return int(x_site_id)
    except ValueError as e:
        raise ValidationError(f"Invalid X-Site-ID header: {x_site_id!r}") from e


def get_allocation_service(
    store: Annotated[InventoryStore, Depends(get_store)],
) -> AllocationService:
    return AllocationService(store)


def get_subnet_service(
    store: Annotated[InventoryStore, Depends(get_store)],
) -> SubnetService:
    return SubnetService(store)


def get_range_service(
    store: Annotated[InventoryStore, Depends(get_store)],
) -> RangeService:
    return RangeService(store)


def get_template_service(
    store: Annotated[InventoryStore, Depends(get_store)],
) -> TemplateService:
    return TemplateService(store)


def get_device_service(
    store: Annotated[InventoryStore, Depends(get_store)],
) -> DeviceService:
    return DeviceService(store)


SiteID = Annotated[int, Depends(get_site_id)]
