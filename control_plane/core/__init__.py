# control_plane/core/__init__.py
"""
Core business logic
"""

from .region_service import (
    RegionService,
    RegionNotFoundError,
    NodeNotFoundError,
    RegisterNodeInput,
    HealthReportInput,
    RegionCapacity,
    compute_capacity_score,
    region_service,
)

__all__ = [
    "RegionService",
    "RegionNotFoundError",
    "NodeNotFoundError",
    "RegisterNodeInput",
    "HealthReportInput",
    "RegionCapacity",
    "compute_capacity_score",
    "region_service",
]
