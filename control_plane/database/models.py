# control_plane/database/models.py
"""
SQLAlchemy Database Models for the Relay Fleet Control Plane
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Index
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime
import enum
import uuid

Base = declarative_base()


class NodeStatus(str, enum.Enum):
    """Relay node lifecycle status"""
    ACTIVE = "active"
    DRAINING = "draining"
    OFFLINE = "offline"


def new_node_id() -> str:
    return str(uuid.uuid4())


class Region(Base):
    """
    Region table - a placement area grouping relay nodes
    """
    __tablename__ = "regions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(16), unique=True, nullable=False, index=True,
                  comment="Upper-case region code, e.g. EU-FRA")
    name = Column(String(100), nullable=False)
    country_code = Column(String(2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    nodes = relationship("Node", back_populates="region")

    def __repr__(self):
        return f"<Region(code={self.code}, name={self.name})>"


class Node(Base):
    """
    Node table - one row per VPN relay host
    Re-registration with the same hostname updates the row in place
    """
    __tablename__ = "nodes"

    id = Column(String(36), primary_key=True, default=new_node_id)
    region_id = Column(Integer, ForeignKey("regions.id"), nullable=False, index=True)

    # Identity
    hostname = Column(String(253), unique=True, nullable=False, index=True)
    public_key = Column(String(44), nullable=False,
                        comment="WireGuard public key (Base64)")

    # Network
    public_ipv4 = Column(String(15), nullable=True)
    public_ipv6 = Column(String(45), nullable=True)
    endpoint = Column(String(255), nullable=False,
                      comment="Reachable host:port for clients")
    tunnel_port = Column(Integer, default=51820, nullable=False)

    # Status
    status = Column(String(20), default=NodeStatus.ACTIVE.value, nullable=False, index=True)
    capacity_score = Column(Integer, default=100, nullable=False,
                            comment="0-100, higher = more headroom")

    # Timestamps
    last_seen = Column(DateTime, nullable=True,
                       comment="Last registration or health report")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    region = relationship("Region", back_populates="nodes")

    __table_args__ = (
        Index('ix_nodes_region_status', 'region_id', 'status'),
    )

    def __repr__(self):
        return f"<Node(id={self.id}, hostname={self.hostname}, status={self.status})>"

    @property
    def is_active(self) -> bool:
        return self.status == NodeStatus.ACTIVE.value
