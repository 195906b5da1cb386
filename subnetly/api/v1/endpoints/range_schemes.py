"""Range scheme endpoints: CRUD, snapshot from a subnet and apply to a subnet."""

from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from subnetly.api.deps import SiteID, get_range_service
from subnetly.schemas.ip_range import (
    IPRangeResponse,
    RangeSchemeApply,
    RangeSchemeCreate,
    RangeSchemeResponse,
    RangeSchemeSnapshot,
    RangeSchemeUpdate,
    SchemeEntryResponse,
)
from subnetly.services.range_service import (
    RangeService,
    SchemeEntryData,
    SchemeWithEntries,
)
from subnetly.utils.context import set_context

router = APIRouter()


def _scheme_response(item: SchemeWithEntries) -> RangeSchemeResponse:
    scheme = item.scheme
    return RangeSchemeResponse(
        id=scheme.id,
        site_id=scheme.site_id,
        name=scheme.name,
        slug=scheme.slug,
        description=scheme.description,
        sort_order=scheme.sort_order,
        entries=[SchemeEntryResponse.model_validate(e) for e in item.entries],
    )


@router.get("", response_model=List[RangeSchemeResponse], summary="List range schemes")
async def list_schemes(
    site_id: SiteID,
    range_service: Annotated[RangeService, Depends(get_range_service)],
):
    return [_scheme_response(item) for item in await range_service.list_schemes(site_id)]


@router.post(
    "",
    response_model=RangeSchemeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a range scheme",
)
async def create_scheme(
    scheme_data: RangeSchemeCreate,
    site_id: SiteID,
    range_service: Annotated[RangeService, Depends(get_range_service)],
):
    set_context(action="range_scheme.create")
    item = await range_service.create_scheme(
        site_id=site_id,
        name=scheme_data.name,
        description=scheme_data.description,
        entries=[SchemeEntryData(**e.model_dump()) for e in scheme_data.entries],
    )
    return _scheme_response(item)


@router.post(
    "/snapshot",
    response_model=RangeSchemeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a subnet's ranges as a scheme",
    description="Store the subnet's current ranges as offsets from its network "
    "address. Fails with 422 when the subnet has no ranges and 409 when the name "
    "is taken.",
)
async def snapshot_scheme(
    snapshot_data: RangeSchemeSnapshot,
    site_id: SiteID,
    range_service: Annotated[RangeService, Depends(get_range_service)],
):
    item = await range_service.save_scheme(
        snapshot_data.subnet_id,
        name=snapshot_data.name,
        description=snapshot_data.description,
        site_id=site_id,
    )
    return _scheme_response(item)


@router.post(
    "/apply",
    response_model=List[IPRangeResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Apply a scheme to a subnet",
    description="Create one range per scheme entry on the subnet. With "
    "replace_existing the subnet's current ranges are deleted first.",
)
async def apply_scheme(
    apply_data: RangeSchemeApply,
    site_id: SiteID,
    range_service: Annotated[RangeService, Depends(get_range_service)],
):
    return await range_service.apply_scheme(
        apply_data.subnet_id,
        apply_data.scheme_id,
        replace_existing=apply_data.replace_existing,
        site_id=site_id,
    )


@router.patch(
    "/{scheme_id}", response_model=RangeSchemeResponse, summary="Update a range scheme"
)
async def update_scheme(
    scheme_id: int,
    scheme_data: RangeSchemeUpdate,
    site_id: SiteID,
    range_service: Annotated[RangeService, Depends(get_range_service)],
):
    set_context(action="range_scheme.update")
    entries = None
    if scheme_data.entries is not None:
        entries = [SchemeEntryData(**e.model_dump()) for e in scheme_data.entries]
    item = await range_service.update_scheme(
        scheme_id,
        site_id=site_id,
        name=scheme_data.name,
        description=scheme_data.description,
        entries=entries,
    )
    return _scheme_response(item)


@router.delete(
    "/{scheme_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a range scheme",
)
async def delete_scheme(
    scheme_id: int,
    site_id: SiteID,
    range_service: Annotated[RangeService, Depends(get_range_service)],
):
    set_context(action="range_scheme.delete")
    await range_service.delete_scheme(scheme_id, site_id)
