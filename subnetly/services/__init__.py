"""Business logic services."""

# Note: Imports are intentionally not done here to avoid circular import issues.
# Import services directly from their modules:
#   from subnetly.services.allocation_service import AllocationService
#   from subnetly.services.subnet_service import SubnetService

__all__ = [
    "AllocationService",
    "DeviceService",
    "RangeService",
    "SubnetService",
    "TemplateService",
]
