"""Schemas package for request/response validation."""

from subnetly.schemas.common import (
    ResponseMessage,
    ErrorResponse,
    HealthCheckResponse,
)
from subnetly.schemas.template import (
    SubnetTemplateCreate,
    SubnetTemplateUpdate,
    SubnetTemplateResponse,
    TemplateOptionResponse,
    TemplatePrefillResponse,
    SaveAsTemplateRequest,
)
from subnetly.schemas.subnet import (
    SubnetCreate,
    SubnetUpdate,
    SubnetResponse,
    SubnetCreateResponse,
    SubnetOverlapResponse,
)
from subnetly.schemas.device import DeviceCreate, DeviceUpdate, DeviceResponse
from subnetly.schemas.ip_address import (
    IPAddressAssign,
    IPAddressUpdate,
    IPAddressResponse,
    BindingResponse,
)
from subnetly.schemas.ip_range import (
    IPRangeCreate,
    IPRangeUpdate,
    IPRangeResponse,
    SchemeEntrySchema,
    RangeSchemeCreate,
    RangeSchemeUpdate,
    RangeSchemeSnapshot,
    RangeSchemeApply,
    SchemeEntryResponse,
    RangeSchemeResponse,
)
from subnetly.schemas.plan import (
    CellResponse,
    UtilizationResponse,
    RangeOverlapResponse,
    SubnetPlanResponse,
)

__all__ = [
    "ResponseMessage",
    "ErrorResponse",
    "HealthCheckResponse",
    "SubnetTemplateCreate",
    "SubnetTemplateUpdate",
    "SubnetTemplateResponse",
    "TemplateOptionResponse",
    "TemplatePrefillResponse",
    "SaveAsTemplateRequest",
    "SubnetCreate",
    "SubnetUpdate",
    "SubnetResponse",
    "SubnetCreateResponse",
    "SubnetOverlapResponse",
    "DeviceCreate",
    "DeviceUpdate",
    "DeviceResponse",
    "IPAddressAssign",
    "IPAddressUpdate",
    "IPAddressResponse",
    "BindingResponse",
    "IPRangeCreate",
    "IPRangeUpdate",
    "IPRangeResponse",
    "SchemeEntrySchema",
    "RangeSchemeCreate",
    "RangeSchemeUpdate",
    "RangeSchemeSnapshot",
    "RangeSchemeApply",
    "SchemeEntryResponse",
    "RangeSchemeResponse",
    "CellResponse",
    "UtilizationResponse",
    "RangeOverlapResponse",
    "SubnetPlanResponse",
]
