"""Subnet endpoints: CRUD, address plan, overlaps and template round-trip."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status

from subnetly.api.deps import SiteID, get_subnet_service, get_template_service
from subnetly.core.exceptions import IPAMError
from subnetly.ipam.classifier import AddressCell
from subnetly.schemas.plan import (
    CellResponse,
    RangeOverlapResponse,
    SubnetPlanResponse,
    UtilizationResponse,
)
from subnetly.schemas.subnet import (
    SubnetCreate,
    SubnetCreateResponse,
    SubnetOverlapResponse,
    SubnetResponse,
    SubnetUpdate,
)
from subnetly.schemas.device import DeviceResponse
from subnetly.schemas.template import SaveAsTemplateRequest, SubnetTemplateResponse
from subnetly.services.subnet_service import SubnetService
from subnetly.services.template_service import TemplateService
from subnetly.utils.context import set_context
from subnetly.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _cell_response(cell: AddressCell) -> CellResponse:
    return CellResponse(
        address=cell.address,
        offset=cell.offset,
        status=cell.status,
        ip_address_id=cell.ip_address.id if cell.ip_address else None,
        range_id=cell.ip_range.id if cell.ip_range else None,
        device_id=cell.device.id if cell.device else None,
        device_name=cell.device.name if cell.device else None,
    )


@router.get("", response_model=List[SubnetResponse], summary="List subnets")
async def list_subnets(
    site_id: SiteID,
    subnet_service: Annotated[SubnetService, Depends(get_subnet_service)],
):
    """List the subnets of the selected site."""
    return await subnet_service.list_subnets(site_id)


@router.post(
    "",
    response_model=SubnetCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a subnet",
    description="Create a subnet. An empty gateway is filled with the first usable "
    "host when smart gateway is enabled. With save_as_template the subnet is also "
    "stored as a template; a failed template save keeps the subnet and is reported "
    "in warnings.",
)
async def create_subnet(
    subnet_data: SubnetCreate,
    site_id: SiteID,
    subnet_service: Annotated[SubnetService, Depends(get_subnet_service)],
    template_service: Annotated[TemplateService, Depends(get_template_service)],
):
    set_context(action="subnet.create")

    subnet = await subnet_service.create_subnet(
        site_id=site_id,
        **subnet_data.model_dump(exclude={"save_as_template", "template_name"}),
    )
    response = SubnetCreateResponse(subnet=SubnetResponse.model_validate(subnet))

    if subnet_data.save_as_template:
        try:
            template = await template_service.save_subnet_as_template(
                subnet.id, name=subnet_data.template_name, site_id=site_id
            )
        except IPAMError as e:
            logger.warning(
                "Subnet created but template save failed",
                extra={"subnet_id": response.subnet.id, "error": e.detail},
            )
            response.warnings.append(
                f"Subnet created, but saving template failed: {e.detail}"
            )
        else:
            response.template = SubnetTemplateResponse.model_validate(template)

    return response


@router.get(
    "/overlaps",
    response_model=List[SubnetOverlapResponse],
    summary="Find overlapping subnets",
)
async def list_overlaps(
    site_id: SiteID,
    subnet_service: Annotated[SubnetService, Depends(get_subnet_service)],
):
    """Report every pair of subnets in the site whose blocks intersect."""
    overlaps = await subnet_service.find_overlaps(site_id)
    return [SubnetOverlapResponse.model_validate(o) for o in overlaps]


@router.get("/{subnet_id}", response_model=SubnetResponse, summary="Get a subnet")
async def get_subnet(
    subnet_id: int,
    site_id: SiteID,
    subnet_service: Annotated[SubnetService, Depends(get_subnet_service)],
):
    return await subnet_service.get_subnet(subnet_id, site_id)


@router.patch("/{subnet_id}", response_model=SubnetResponse, summary="Update a subnet")
async def update_subnet(
    subnet_id: int,
    subnet_data: SubnetUpdate,
    site_id: SiteID,
    subnet_service: Annotated[SubnetService, Depends(get_subnet_service)],
):
    set_context(action="subnet.update", subnet_id=subnet_id)
    return await subnet_service.update_subnet(
        subnet_id, site_id=site_id, **subnet_data.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{subnet_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a subnet",
    description="Delete a subnet with its address records and ranges. Devices "
    "bound to one of the deleted records are unbound.",
)
async def delete_subnet(
    subnet_id: int,
    site_id: SiteID,
    subnet_service: Annotated[SubnetService, Depends(get_subnet_service)],
):
    set_context(action="subnet.delete", subnet_id=subnet_id)
    await subnet_service.delete_subnet(subnet_id, site_id)


@router.get(
    "/{subnet_id}/plan",
    response_model=SubnetPlanResponse,
    summary="Get a page of the address plan",
)
async def get_plan(
    subnet_id: int,
    site_id: SiteID,
    subnet_service: Annotated[SubnetService, Depends(get_subnet_service)],
    page: int = Query(0, ge=0, description="Zero-based page index"),
    page_size: Optional[int] = Query(
        None, ge=1, le=4096, description="Addresses per page"
    ),
):
    """Classified addresses of one page plus utilization and warnings."""
    plan = await subnet_service.get_plan(
        subnet_id, site_id=site_id, page=page, page_size=page_size
    )
    return SubnetPlanResponse(
        subnet=SubnetResponse.model_validate(plan.subnet),
        page=plan.page,
        page_size=plan.page_size,
        total_pages=plan.total_pages,
        cells=[_cell_response(cell) for cell in plan.cells],
        utilization=UtilizationResponse.model_validate(plan.utilization),
        range_overlaps=[
            RangeOverlapResponse(range_a_id=o.range_a.id, range_b_id=o.range_b.id)
            for o in plan.range_overlaps
        ],
        device_only=[DeviceResponse.model_validate(d) for d in plan.device_only],
    )


@router.post(
    "/{subnet_id}/save-as-template",
    response_model=SubnetTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a subnet as a template",
)
async def save_as_template(
    subnet_id: int,
    site_id: SiteID,
    template_service: Annotated[TemplateService, Depends(get_template_service)],
    body: Optional[SaveAsTemplateRequest] = None,
):
    set_context(action="subnet_template.save", subnet_id=subnet_id)
    return await template_service.save_subnet_as_template(
        subnet_id, name=body.name if body else None, site_id=site_id
    )
