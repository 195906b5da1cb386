"""Managed address record endpoints."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status

from subnetly.api.deps import SiteID, get_allocation_service
from subnetly.schemas.ip_address import (
    BindingResponse,
    IPAddressAssign,
    IPAddressResponse,
    IPAddressUpdate,
)
from subnetly.services.allocation_service import AllocationService
from subnetly.utils.context import set_context

router = APIRouter()


@router.get("", response_model=List[IPAddressResponse], summary="List address records")
async def list_ip_addresses(
    site_id: SiteID,
    allocation_service: Annotated[AllocationService, Depends(get_allocation_service)],
    subnet_id: Optional[int] = Query(None, description="Only records of this subnet"),
):
    return await allocation_service.list_ip_addresses(site_id, subnet_id=subnet_id)


@router.post(
    "",
    response_model=BindingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assign an address",
    description="Create or update the record for an address and bind it to a device. "
    "Any other device holding the address is unbound, and the target device's "
    "previous record is removed. If a follow-up step fails after the record was "
    "written, the response is 500 and names the failed step.",
)
async def assign_ip_address(
    assign_data: IPAddressAssign,
    site_id: SiteID,
    allocation_service: Annotated[AllocationService, Depends(get_allocation_service)],
):
    set_context(action="ipam.assign", subnet_id=assign_data.subnet_id)
    result = await allocation_service.assign(
        subnet_id=assign_data.subnet_id,
        address=assign_data.address,
        device_id=assign_data.device_id,
        status=assign_data.status,
        dns_name=assign_data.dns_name,
        description=assign_data.description,
        site_id=site_id,
    )
    return BindingResponse.model_validate(result)


@router.get("/{ip_address_id}", response_model=IPAddressResponse, summary="Get a record")
async def get_ip_address(
    ip_address_id: int,
    site_id: SiteID,
    allocation_service: Annotated[AllocationService, Depends(get_allocation_service)],
):
    return await allocation_service.get_ip_address(ip_address_id, site_id)


@router.patch(
    "/{ip_address_id}",
    response_model=BindingResponse,
    summary="Edit a record",
    description="Edit a record through the same sequence as an assignment. "
    "Omitting device_id keeps the device currently holding the address.",
)
async def update_ip_address(
    ip_address_id: int,
    update_data: IPAddressUpdate,
    site_id: SiteID,
    allocation_service: Annotated[AllocationService, Depends(get_allocation_service)],
):
    set_context(action="ipam.edit")
    result = await allocation_service.edit(
        ip_address_id, site_id=site_id, **update_data.model_dump(exclude_unset=True)
    )
    return BindingResponse.model_validate(result)


@router.delete(
    "/{ip_address_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a record",
    description="Delete the record only. A device pointing at the address keeps it "
    "and shows up as a device-only binding.",
)
async def delete_ip_address(
    ip_address_id: int,
    site_id: SiteID,
    allocation_service: Annotated[AllocationService, Depends(get_allocation_service)],
):
    set_context(action="ipam.delete")
    await allocation_service.delete(ip_address_id, site_id)
