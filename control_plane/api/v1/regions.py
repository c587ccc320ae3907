# control_plane/api/v1/regions.py
"""
Region API Endpoints
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database.session import get_db
from ...schemas.region import RegionCapacityResponse, RegionListResponse
from ...core.region_service import region_service

router = APIRouter()


@router.get(
    "",
    response_model=RegionListResponse,
    summary="List regions with capacity",
    description="Average capacity score and active node count per region, computed per request"
)
async def list_regions(db: Session = Depends(get_db)):
    regions = region_service.list_regions_with_capacity(db)
    return RegionListResponse(
        regions=[RegionCapacityResponse.model_validate(r) for r in regions]
    )
