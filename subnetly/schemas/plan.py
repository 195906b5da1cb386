"""Planner view schemas."""

from typing import List, Optional

from pydantic import BaseModel

from subnetly.schemas.device import DeviceResponse
from subnetly.schemas.subnet import SubnetResponse


class CellResponse(BaseModel):
    """One classified address."""

    address: str
    offset: int
    status: str
    ip_address_id: Optional[int] = None
    range_id: Optional[int] = None
    device_id: Optional[int] = None
    device_name: Optional[str] = None


class UtilizationResponse(BaseModel):
    used: int
    total: int
    percent: int

    model_config = {"from_attributes": True}


class RangeOverlapResponse(BaseModel):
    """Two ranges of the subnet sharing addresses."""

    range_a_id: int
    range_b_id: int


class SubnetPlanResponse(BaseModel):
    """One page of a subnet's address plan."""

    subnet: SubnetResponse
    page: int
    page_size: int
    total_pages: int
    cells: List[CellResponse]
    utilization: UtilizationResponse
    range_overlaps: List[RangeOverlapResponse]
    device_only: List[DeviceResponse]
