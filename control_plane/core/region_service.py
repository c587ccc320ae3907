# control_plane/core/region_service.py
"""
Region Service - node registration, health ingestion and capacity scoring
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
import logging
import math

from sqlalchemy import case, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..database.models import Node, NodeStatus, Region, new_node_id

logger = logging.getLogger(__name__)

INITIAL_CAPACITY_SCORE = 100

DEFAULT_REGIONS = [
    ("TR-IST", "İstanbul", "TR"),
    ("TR-IZM", "İzmir", "TR"),
    ("EU-FRA", "Frankfurt", "DE"),
    ("EU-NL", "Amsterdam", "NL"),
]


class RegionNotFoundError(LookupError):
    """Registration referenced a region code that does not exist"""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"region {code} not found")


class NodeNotFoundError(LookupError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"node {node_id} not found")


@dataclass
class RegisterNodeInput:
    region_code: str
    hostname: str
    public_key: str
    endpoint: str
    tunnel_port: int = 51820
    public_ipv4: Optional[str] = None
    public_ipv6: Optional[str] = None


@dataclass
class HealthReportInput:
    node_id: str
    active_peers: int = 0
    cpu_percent: float = 0.0
    throughput_mbps: float = 0.0
    packet_loss: float = 0.0


@dataclass
class RegionCapacity:
    """Read-only per-region aggregate over active nodes"""
    code: str
    name: str
    country_code: str
    capacity_score: float
    active_nodes: int


def _round_half_away(value: float) -> int:
    # round() in Python rounds half to even; scoring rounds 0.5 up
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def compute_capacity_score(
    active_peers: int,
    cpu_percent: float,
    throughput_mbps: float,
    packet_loss: float,
) -> int:
    """
    Reduce a health sample to a 0-100 capacity score

    Start at 100 and subtract:
    - min(60, active_peers * 4)
    - round(cpu_percent / 2)
    - round(throughput_mbps / 100)
    - round(packet_loss * 50)

    The result is clamped to [0, 100] and is non-increasing in every input.
    A non-finite load figure saturates the score at 0.
    """
    if not all(math.isfinite(v) for v in (cpu_percent, throughput_mbps, packet_loss)):
        return 0

    score = INITIAL_CAPACITY_SCORE
    score -= min(60, active_peers * 4)
    score -= _round_half_away(cpu_percent / 2)
    score -= _round_half_away(throughput_mbps / 100)
    score -= _round_half_away(packet_loss * 50)
    return max(0, min(100, score))


def _dialect_insert(db: Session):
    """Dialect-specific INSERT supporting ON CONFLICT DO UPDATE"""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"upsert not supported on {dialect}")


class RegionService:
    """
    Region Service for relay node orchestration

    Responsibilities:
    1. Seed the default regions
    2. Register nodes (upsert keyed by hostname)
    3. Recompute capacity scores from health reports
    4. Aggregate capacity per region
    """

    def seed_default_regions(self, db: Session) -> None:
        """Ensure the predefined regions exist"""
        insert = _dialect_insert(db)
        now = datetime.utcnow()

        for code, name, country_code in DEFAULT_REGIONS:
            stmt = insert(Region).values(
                code=code,
                name=name,
                country_code=country_code,
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[Region.code],
                set_={
                    "name": stmt.excluded.name,
                    "country_code": stmt.excluded.country_code,
                    "is_active": stmt.excluded.is_active,
                    "updated_at": now,
                },
            )
            db.execute(stmt)

        db.commit()
        logger.info(f"Seeded {len(DEFAULT_REGIONS)} default regions")

    def get_region_by_code(self, db: Session, code: str) -> Optional[Region]:
        return db.query(Region).filter(Region.code == code.strip().upper()).first()

    def register_node(self, db: Session, data: RegisterNodeInput) -> Node:
        """
        Register a node or update the existing one with the same hostname

        A brand-new node starts with a capacity score of 100; re-registration
        keeps the node id and its current score.

        Raises:
            ValueError: If region code or hostname is empty
            RegionNotFoundError: If the region code is unknown
        """
        if not data.region_code or not data.hostname:
            raise ValueError("region code and hostname are required")

        region = self.get_region_by_code(db, data.region_code)
        if region is None:
            raise RegionNotFoundError(data.region_code.upper())

        now = datetime.utcnow()
        insert = _dialect_insert(db)
        stmt = insert(Node).values(
            id=new_node_id(),
            region_id=region.id,
            hostname=data.hostname,
            public_ipv4=data.public_ipv4,
            public_ipv6=data.public_ipv6,
            public_key=data.public_key,
            endpoint=data.endpoint,
            tunnel_port=data.tunnel_port,
            status=NodeStatus.ACTIVE.value,
            capacity_score=INITIAL_CAPACITY_SCORE,
            last_seen=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Node.hostname],
            set_={
                "region_id": stmt.excluded.region_id,
                "public_ipv4": stmt.excluded.public_ipv4,
                "public_ipv6": stmt.excluded.public_ipv6,
                "public_key": stmt.excluded.public_key,
                "endpoint": stmt.excluded.endpoint,
                "tunnel_port": stmt.excluded.tunnel_port,
                "status": stmt.excluded.status,
                "last_seen": stmt.excluded.last_seen,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        db.execute(stmt)
        db.commit()

        node = db.query(Node).filter(Node.hostname == data.hostname).one()
        logger.info(f"Node registered: {node.hostname} ({node.id}) in {region.code}")
        return node

    def report_health(self, db: Session, report: HealthReportInput) -> Node:
        """
        Recompute and store a node's capacity score

        Raises:
            NodeNotFoundError: If the node does not exist
        """
        node = self.get_node(db, report.node_id)

        node.capacity_score = compute_capacity_score(
            report.active_peers,
            report.cpu_percent,
            report.throughput_mbps,
            report.packet_loss,
        )
        node.last_seen = datetime.utcnow()
        db.commit()
        db.refresh(node)

        logger.debug(f"Node {node.hostname} capacity score: {node.capacity_score}")
        return node

    def get_node(self, db: Session, node_id: str) -> Node:
        node = db.get(Node, node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def list_regions_with_capacity(self, db: Session) -> List[RegionCapacity]:
        """
        Per-region average capacity and count of active nodes

        Recomputed on every call; regions without active nodes score 0.
        """
        is_active = Node.status == NodeStatus.ACTIVE.value
        avg_score = func.coalesce(func.avg(case((is_active, Node.capacity_score), else_=None)), 0)
        active_nodes = func.coalesce(func.sum(case((is_active, 1), else_=0)), 0)

        rows = (
            db.query(Region.code, Region.name, Region.country_code, avg_score, active_nodes)
            .outerjoin(Node, Node.region_id == Region.id)
            .group_by(Region.id, Region.code, Region.name, Region.country_code)
            .order_by(Region.code)
            .all()
        )

        return [
            RegionCapacity(
                code=code,
                name=name,
                country_code=country_code,
                capacity_score=float(score),
                active_nodes=int(count),
            )
            for code, name, country_code, score, count in rows
        ]


# Singleton instance
region_service = RegionService()
