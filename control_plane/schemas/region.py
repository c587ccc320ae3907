# control_plane/schemas/region.py
"""
Region-related Pydantic schemas
"""

from pydantic import BaseModel, ConfigDict
from typing import List


class RegionCapacityResponse(BaseModel):
    """A region with its aggregated capacity, recomputed per request"""
    code: str
    name: str
    country_code: str
    capacity_score: float
    active_nodes: int

    model_config = ConfigDict(from_attributes=True)


class RegionListResponse(BaseModel):
    regions: List[RegionCapacityResponse]
