"""Address range endpoints."""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, status

from subnetly.api.deps import SiteID, get_range_service
from subnetly.schemas.ip_range import IPRangeCreate, IPRangeResponse, IPRangeUpdate
from subnetly.services.range_service import RangeService
from subnetly.utils.context import set_context

router = APIRouter()


@router.get("", response_model=List[IPRangeResponse], summary="List ranges of a subnet")
async def list_ranges(
    site_id: SiteID,
    range_service: Annotated[RangeService, Depends(get_range_service)],
    subnet_id: int = Query(..., description="Subnet whose ranges are listed"),
):
    return await range_service.list_ranges(subnet_id, site_id)


@router.post(
    "",
    response_model=IPRangeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a range",
    description="Create a range inside a subnet. Ranges of one subnet may overlap; "
    "the address plan lists overlaps as warnings.",
)
async def create_range(
    range_data: IPRangeCreate,
    site_id: SiteID,
    range_service: Annotated[RangeService, Depends(get_range_service)],
):
    set_context(action="range.create", subnet_id=range_data.subnet_id)
    return await range_service.create_range(site_id=site_id, **range_data.model_dump())


@router.patch("/{range_id}", response_model=IPRangeResponse, summary="Update a range")
async def update_range(
    range_id: int,
    range_data: IPRangeUpdate,
    site_id: SiteID,
    range_service: Annotated[RangeService, Depends(get_range_service)],
):
    set_context(action="range.update")
    return await range_service.update_range(
        range_id, site_id=site_id, **range_data.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{range_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a range"
)
async def delete_range(
    range_id: int,
    site_id: SiteID,
    range_service: Annotated[RangeService, Depends(get_range_service)],
):
    set_context(action="range.delete")
    await range_service.delete_range(range_id, site_id)
