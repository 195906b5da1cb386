"""Subnet template endpoints."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, status

from subnetly.api.deps import SiteID, get_template_service
from subnetly.schemas.template import (
    SubnetTemplateCreate,
    SubnetTemplateResponse,
    SubnetTemplateUpdate,
    TemplateOptionResponse,
    TemplatePrefillResponse,
)
from subnetly.services.template_service import TemplateService
from subnetly.utils.context import set_context

router = APIRouter()


@router.get(
    "",
    response_model=List[TemplateOptionResponse],
    summary="List subnet templates",
    description="Built-in templates followed by the site's stored templates.",
)
async def list_templates(
    site_id: SiteID,
    template_service: Annotated[TemplateService, Depends(get_template_service)],
):
    return [
        TemplateOptionResponse.model_validate(option)
        for option in await template_service.list_templates(site_id)
    ]


@router.post(
    "",
    response_model=SubnetTemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a subnet template",
)
async def create_template(
    template_data: SubnetTemplateCreate,
    site_id: SiteID,
    template_service: Annotated[TemplateService, Depends(get_template_service)],
):
    set_context(action="subnet_template.create")
    return await template_service.create_template(
        site_id=site_id, **template_data.model_dump()
    )


@router.patch(
    "/{template_id}",
    response_model=SubnetTemplateResponse,
    summary="Update a subnet template",
)
async def update_template(
    template_id: int,
    template_data: SubnetTemplateUpdate,
    site_id: SiteID,
    template_service: Annotated[TemplateService, Depends(get_template_service)],
):
    set_context(action="subnet_template.update")
    return await template_service.update_template(
        template_id, site_id=site_id, **template_data.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a subnet template",
)
async def delete_template(
    template_id: int,
    site_id: SiteID,
    template_service: Annotated[TemplateService, Depends(get_template_service)],
):
    set_context(action="subnet_template.delete")
    await template_service.delete_template(template_id, site_id)


@router.get(
    "/{template_id}/apply",
    response_model=TemplatePrefillResponse,
    summary="Resolve a template into subnet prefill values",
    description="Accepts a built-in key (e.g. 'home-lan') or a stored template id.",
)
async def apply_template(
    template_id: str,
    site_id: SiteID,
    template_service: Annotated[TemplateService, Depends(get_template_service)],
    smart_gateway: Optional[bool] = Query(
        None, description="Suggest a gateway when the template has none"
    ),
):
    prefill = await template_service.apply_template(
        site_id, template_id, smart_gateway=smart_gateway
    )
    return TemplatePrefillResponse.model_validate(prefill)
