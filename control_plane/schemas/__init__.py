# control_plane/schemas/__init__.py
"""
Pydantic Schemas for the Control Plane API
Organized by domain: nodes, regions
"""

from .base import ErrorResponse, HealthResponse
from .node import (
    NodeRegister,
    NodeHealthReport,
    NodeRegisterResponse,
    NodeHealthResponse,
    NodeResponse,
)
from .region import RegionCapacityResponse, RegionListResponse

__all__ = [
    # Base
    "ErrorResponse",
    "HealthResponse",
    # Node
    "NodeRegister",
    "NodeHealthReport",
    "NodeRegisterResponse",
    "NodeHealthResponse",
    "NodeResponse",
    # Region
    "RegionCapacityResponse",
    "RegionListResponse",
]
