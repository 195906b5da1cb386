"""Subnet templates: built-in starting points plus user-defined ones."""

from dataclasses import dataclass
from typing import List, Optional

from subnetly.config import settings
from subnetly.core.exceptions import ConflictError, NotFoundError, ValidationError
from subnetly.ipam.arithmetic import canonical_ip, validate_subnet
from subnetly.ipam.templates import (
    BUILTIN_TEMPLATES,
    TemplatePrefill,
    get_builtin_template,
    prefill_from,
    slugify,
)
from subnetly.models import SubnetTemplate
from subnetly.store import InventoryStore
from subnetly.utils.logger import get_logger
from subnetly.utils.telemetry import add_span_attributes, get_tracer

logger = get_logger(__name__)
tracer = get_tracer()


@dataclass(frozen=True)
class TemplateOption:
    """Entry of the template picker.

    Built-in templates are keyed by their slug; stored templates by their
    numeric id as a string.
    """

    id: str
    name: str
    prefix: str
    mask: int
    gateway: Optional[str]
    role: Optional[str]
    description: Optional[str]
    builtin: bool


class TemplateService:
    """Service for subnet template CRUD and prefill."""

    def __init__(self, store: InventoryStore):
        self.store = store

    async def _get_template(self, template_id: int, site_id: Optional[int]) -> SubnetTemplate:
        template = await self.store.get_template(template_id)
        if template is None or (site_id is not None and template.site_id != site_id):
            raise NotFoundError(f"Subnet template {template_id} not found")
        return template

    async def _ensure_unique_name(
        self, site_id: int, name: str, exclude_id: Optional[int] = None
    ) -> str:
        slug = slugify(name)
        if not slug:
            raise ValidationError("Template name must contain letters or digits")
        if await self.store.find_template_by_slug(site_id, slug, exclude_id=exclude_id):
            raise ConflictError(f"A subnet template named '{name}' already exists")
        return slug

    async def list_templates(self, site_id: int) -> List[TemplateOption]:
        """Built-in templates first, then the site's stored templates."""
        options = [
            TemplateOption(
                id=t.key,
                name=t.name,
                prefix=t.prefix,
                mask=t.mask,
                gateway=t.gateway,
                role=t.role,
                description=t.description,
                builtin=True,
            )
            for t in BUILTIN_TEMPLATES
        ]
        for t in await self.store.list_templates(site_id):
            options.append(
                TemplateOption(
                    id=str(t.id),
                    name=t.name,
                    prefix=t.prefix,
                    mask=t.mask,
                    gateway=t.gateway,
                    role=t.role,
                    description=t.description,
                    builtin=False,
                )
            )
        return options

    async def create_template(
        self,
        site_id: int,
        name: str,
        prefix: str,
        mask: int,
        gateway: Optional[str] = None,
        role: Optional[str] = None,
        description: Optional[str] = None,
    ) -> SubnetTemplate:
        """
        Store a user-defined template.

        Raises:
            ValidationError: If the subnet definition is invalid
            ConflictError: If the name is already taken in the site
        """
        with tracer.start_as_current_span("service.template.create") as _span:
            add_span_attributes(**{"template.name": name, "template.prefix": prefix})
            validate_subnet(prefix, mask, gateway)
            slug = await self._ensure_unique_name(site_id, name)

            template = await self.store.create_template(
                SubnetTemplate(
                    site_id=site_id,
                    name=name,
                    slug=slug,
                    prefix=canonical_ip(prefix),
                    mask=mask,
                    gateway=canonical_ip(gateway) if gateway else None,
                    role=role,
                    description=description,
                    sort_order=await self.store.next_template_sort_order(site_id),
                )
            )
            logger.info(
                "Subnet template created",
                extra={"template_id": template.id, "template_name": name},
            )
            return template

    async def update_template(
        self, template_id: int, site_id: Optional[int] = None, **changes
    ) -> SubnetTemplate:
        """Update a stored template; built-in templates are read-only."""
        with tracer.start_as_current_span("service.template.update") as _span:
            template = await self._get_template(template_id, site_id)

            validate_subnet(
                changes.get("prefix", template.prefix),
                changes.get("mask", template.mask),
                changes.get("gateway", template.gateway),
            )
            if "name" in changes:
                changes["slug"] = await self._ensure_unique_name(
                    template.site_id, changes["name"], exclude_id=template_id
                )
            if "prefix" in changes:
                changes["prefix"] = canonical_ip(changes["prefix"])
            if changes.get("gateway"):
                changes["gateway"] = canonical_ip(changes["gateway"])
            elif "gateway" in changes:
                changes["gateway"] = None

            template = await self.store.update_template(template_id, **changes)
            logger.info("Subnet template updated", extra={"template_id": template_id})
            return template

    async def delete_template(self, template_id: int, site_id: Optional[int] = None) -> None:
        with tracer.start_as_current_span("service.template.delete") as _span:
            await self._get_template(template_id, site_id)
            await self.store.delete_template(template_id)
            logger.info("Subnet template deleted", extra={"template_id": template_id})

    async def apply_template(
        self,
        site_id: int,
        template_id: str,
        smart_gateway: Optional[bool] = None,
    ) -> TemplatePrefill:
        """
        Resolve a template into subnet prefill values.

        Args:
            site_id: Site owning stored templates
            template_id: Built-in key or stored template id
            smart_gateway: Suggest a gateway when the template has none;
                defaults to settings.SMART_GATEWAY_ENABLED

        Raises:
            NotFoundError: If no template matches the id
        """
        if smart_gateway is None:
            smart_gateway = settings.SMART_GATEWAY_ENABLED

        builtin = get_builtin_template(template_id)
        if builtin is not None:
            return prefill_from(builtin, smart_gateway)

        if not template_id.isdigit():
            raise NotFoundError(f"Subnet template {template_id} not found")
        template = await self._get_template(int(template_id), site_id)
        return prefill_from(template, smart_gateway)

    async def save_subnet_as_template(
        self,
        subnet_id: int,
        name: Optional[str] = None,
        site_id: Optional[int] = None,
    ) -> SubnetTemplate:
        """
        Store an existing subnet as a template.

        The name defaults to the subnet's CIDR.

        Raises:
            NotFoundError: If the subnet does not exist
            ConflictError: If the name is already taken
        """
        subnet = await self.store.get_subnet(subnet_id)
        if subnet is None or (site_id is not None and subnet.site_id != site_id):
            raise NotFoundError(f"Subnet {subnet_id} not found")

        return await self.create_template(
            site_id=subnet.site_id,
            name=name or subnet.cidr,
            prefix=subnet.prefix,
            mask=subnet.mask,
            gateway=subnet.gateway,
            role=subnet.role,
            description=subnet.description,
        )
