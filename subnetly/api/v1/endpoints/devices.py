"""Device endpoints, including unbind and promote of device-only bindings."""

from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from subnetly.api.deps import (
    SiteID,
    get_allocation_service,
    get_device_service,
)
from subnetly.schemas.device import DeviceCreate, DeviceResponse, DeviceUpdate
from subnetly.schemas.ip_address import BindingResponse
from subnetly.services.allocation_service import AllocationService
from subnetly.services.device_service import DeviceService
from subnetly.utils.context import set_context

router = APIRouter()


@router.get("", response_model=List[DeviceResponse], summary="List devices")
async def list_devices(
    site_id: SiteID,
    device_service: Annotated[DeviceService, Depends(get_device_service)],
):
    return await device_service.list_devices(site_id)


@router.post(
    "",
    response_model=DeviceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a device",
)
async def create_device(
    device_data: DeviceCreate,
    site_id: SiteID,
    device_service: Annotated[DeviceService, Depends(get_device_service)],
):
    set_context(action="device.create")
    return await device_service.create_device(site_id=site_id, **device_data.model_dump())


@router.get("/{device_id}", response_model=DeviceResponse, summary="Get a device")
async def get_device(
    device_id: int,
    site_id: SiteID,
    device_service: Annotated[DeviceService, Depends(get_device_service)],
):
    return await device_service.get_device(device_id, site_id)


@router.patch(
    "/{device_id}",
    response_model=DeviceResponse,
    summary="Update a device",
    description="Update device fields. Changing ip_address here does not create "
    "or remove address records; use the IPAM endpoints to bind addresses.",
)
async def update_device(
    device_id: int,
    device_data: DeviceUpdate,
    site_id: SiteID,
    device_service: Annotated[DeviceService, Depends(get_device_service)],
):
    set_context(action="device.update", device_id=device_id)
    return await device_service.update_device(
        device_id, site_id=site_id, **device_data.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{device_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a device"
)
async def delete_device(
    device_id: int,
    site_id: SiteID,
    device_service: Annotated[DeviceService, Depends(get_device_service)],
):
    set_context(action="device.delete", device_id=device_id)
    await device_service.delete_device(device_id, site_id)


@router.post(
    "/{device_id}/unbind",
    response_model=DeviceResponse,
    summary="Unbind a device",
    description="Clear the device's address. Address records are left untouched.",
)
async def unbind_device(
    device_id: int,
    site_id: SiteID,
    allocation_service: Annotated[AllocationService, Depends(get_allocation_service)],
):
    return await allocation_service.unbind(device_id, site_id)


@router.post(
    "/{device_id}/promote",
    response_model=BindingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Promote a device-only binding",
    description="Create an address record for the device's current address in "
    "the most specific subnet containing it.",
)
async def promote_device(
    device_id: int,
    site_id: SiteID,
    allocation_service: Annotated[AllocationService, Depends(get_allocation_service)],
):
    set_context(action="ipam.promote", device_id=device_id)
    result = await allocation_service.promote(device_id, site_id)
    return BindingResponse.model_validate(result)
