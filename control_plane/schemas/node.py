# control_plane/schemas/node.py
"""
Node-related Pydantic schemas
"""

from pydantic import BaseModel, Field, field_validator, ConfigDict
from typing import Optional
from datetime import datetime
import re


# === Request Schemas ===

class NodeRegister(BaseModel):
    """
    Schema for registering a relay node
    Re-sending the same hostname updates the existing node
    """
    region_code: str = Field(..., min_length=2, max_length=16, examples=["EU-FRA"])
    hostname: str = Field(..., min_length=1, max_length=253, examples=["fra-relay-01"])
    public_ipv4: Optional[str] = Field(None, max_length=15, examples=["203.0.113.10"])
    public_ipv6: Optional[str] = Field(None, max_length=45)
    public_key: str = Field(
        ...,
        min_length=44,
        max_length=44,
        description="WireGuard public key (Base64 encoded)",
    )
    endpoint: str = Field(..., min_length=1, max_length=255, examples=["fra-relay-01.example.net:51820"])
    tunnel_port: int = Field(51820, ge=1, le=65535)

    @field_validator('region_code')
    @classmethod
    def normalize_region_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator('hostname')
    @classmethod
    def normalize_hostname(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError('hostname must not be blank')
        return v

    @field_validator('public_key')
    @classmethod
    def validate_wireguard_key(cls, v: str) -> str:
        """Validate WireGuard public key format (Base64, 44 chars ending with =)"""
        if not re.match(r'^[A-Za-z0-9+/]{43}=$', v):
            raise ValueError('Invalid WireGuard public key format. Must be 44 chars Base64 ending with =')
        return v


class NodeHealthReport(BaseModel):
    """Health sample reported for a node; drives its capacity score"""
    node_id: str = Field(..., min_length=1)
    active_peers: int = Field(0, ge=0)
    cpu_percent: float = Field(0.0, ge=0, allow_inf_nan=False)
    throughput_mbps: float = Field(0.0, ge=0, allow_inf_nan=False)
    packet_loss: float = Field(0.0, ge=0, le=1, allow_inf_nan=False, description="Packet loss ratio 0.0-1.0")


# === Response Schemas ===

class NodeRegisterResponse(BaseModel):
    node_id: str


class NodeHealthResponse(BaseModel):
    capacity_score: int


class NodeResponse(BaseModel):
    """Single node view"""
    id: str
    region_id: int
    hostname: str
    public_ipv4: Optional[str] = None
    public_ipv6: Optional[str] = None
    public_key: str
    endpoint: str
    tunnel_port: int
    status: str
    capacity_score: int
    last_seen: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
