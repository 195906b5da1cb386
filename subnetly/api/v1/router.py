"""Main router for API v1."""

from fastapi import APIRouter

from subnetly.api.v1.endpoints import (
    devices,
    health,
    ipam,
    range_schemes,
    ranges,
    subnet_templates,
    subnets,
)

# Create main API v1 router
api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["Health"],
)

api_router.include_router(
    subnets.router,
    prefix="/subnets",
    tags=["Subnets"],
)

api_router.include_router(
    ipam.router,
    prefix="/ipam",
    tags=["IPAM"],
)

api_router.include_router(
    devices.router,
    prefix="/devices",
    tags=["Devices"],
)

api_router.include_router(
    ranges.router,
    prefix="/ranges",
    tags=["Ranges"],
)

api_router.include_router(
    range_schemes.router,
    prefix="/range-schemes",
    tags=["Range Schemes"],
)

api_router.include_router(
    subnet_templates.router,
    prefix="/subnet-templates",
    tags=["Subnet Templates"],
)
