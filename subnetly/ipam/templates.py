"""Built-in subnet templates and template prefill logic."""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from subnetly.ipam.arithmetic import suggest_gateway


@dataclass(frozen=True)
class BuiltinTemplate:
    """Template shipped with the application; not stored in the database."""

    key: str
    name: str
    prefix: str
    mask: int
    gateway: Optional[str]
    role: Optional[str]
    description: Optional[str]


@dataclass(frozen=True)
class TemplatePrefill:
    """Values used to prefill a new subnet."""

    prefix: str
    mask: int
    gateway: Optional[str]
    role: Optional[str]
    description: Optional[str]


BUILTIN_TEMPLATES = (
    BuiltinTemplate(
        key="home-lan",
        name="Home LAN",
        prefix="192.168.1.0",
        mask=24,
        gateway="192.168.1.1",
        role="production",
        description="Primary user and workstation network",
    ),
    BuiltinTemplate(
        key="iot-segment",
        name="IoT Segment",
        prefix="192.168.20.0",
        mask=24,
        gateway="192.168.20.1",
        role="iot",
        description="Smart home and unmanaged IoT devices",
    ),
    BuiltinTemplate(
        key="guest-network",
        name="Guest WiFi",
        prefix="192.168.50.0",
        mask=24,
        gateway="192.168.50.1",
        role="guest",
        description="Isolated guest access network",
    ),
    BuiltinTemplate(
        key="management",
        name="Infrastructure Mgmt",
        prefix="10.0.10.0",
        mask=24,
        gateway="10.0.10.1",
        role="management",
        description="Switches, hypervisors, and core services",
    ),
)

_BUILTIN_BY_KEY: Dict[str, BuiltinTemplate] = {t.key: t for t in BUILTIN_TEMPLATES}


def get_builtin_template(key: str) -> Optional[BuiltinTemplate]:
    return _BUILTIN_BY_KEY.get(key)


def slugify(value: str) -> str:
    """Normalise a display name for uniqueness checks ("Home LAN" -> "home-lan")."""
    return re.sub(r"[^a-z0-9]+", "-", value.lower().strip()).strip("-")


def prefill_from(template: Any, smart_gateway: bool = True) -> TemplatePrefill:
    """
    Build subnet prefill values from a built-in or stored template.

    An empty template gateway is replaced by the first usable host when
    smart gateway is enabled.
    """
    gateway = template.gateway or None
    if gateway is None and smart_gateway:
        gateway = suggest_gateway(template.prefix, template.mask)

    return TemplatePrefill(
        prefix=template.prefix,
        mask=template.mask,
        gateway=gateway,
        role=template.role,
        description=template.description,
    )
