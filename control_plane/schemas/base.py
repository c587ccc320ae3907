# control_plane/schemas/base.py
"""
Shared response bodies: the error envelope and the service health probe
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorResponse(BaseModel):
    """Body returned by the validation and unexpected-error handlers"""
    success: bool = False
    error: str
    error_code: str = Field(..., examples=["VALIDATION_ERROR"])
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=_utcnow)


class HealthResponse(BaseModel):
    """GET /health; status follows database reachability"""
    status: str
    version: str
    database: str
    timestamp: datetime = Field(default_factory=_utcnow)
