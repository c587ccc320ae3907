# control_plane/api/v1/nodes.py
"""
Node API Endpoints
Called by relay node agents to register and report health
"""

from fastapi import APIRouter, Depends, HTTPException, Header, status
from sqlalchemy.orm import Session
from typing import Optional
import hmac
import logging

from ...config import Settings, get_settings
from ...database.session import get_db
from ...schemas.base import ErrorResponse
from ...schemas.node import (
    NodeRegister,
    NodeRegisterResponse,
    NodeHealthReport,
    NodeHealthResponse,
    NodeResponse,
)
from ...core.region_service import (
    region_service,
    RegisterNodeInput,
    HealthReportInput,
    RegionNotFoundError,
    NodeNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# === Authentication Dependency ===

async def verify_provision_token(
    x_provision_token: Optional[str] = Header(None, alias="X-Provision-Token"),
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
):
    """
    Verify the node provisioning token

    Accepted as X-Provision-Token or as an Authorization bearer token.
    """
    if not settings.NODE_PROVISION_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error": "Node provisioning disabled",
                "error_code": "PROVISIONING_DISABLED"
            }
        )

    token = x_provision_token
    if not token and authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()

    if not token or not hmac.compare_digest(token, settings.NODE_PROVISION_TOKEN):
        logger.warning("Invalid provision token attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing provision token",
                "error_code": "UNAUTHORIZED"
            },
            headers={"WWW-Authenticate": "Bearer"}
        )
    return True


def _node_not_found(node_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": f"Node {node_id} not found",
            "error_code": "NODE_NOT_FOUND"
        }
    )


# === Endpoints ===

@router.post(
    "/register",
    response_model=NodeRegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Node registered or updated"},
        401: {"description": "Invalid token", "model": ErrorResponse},
        404: {"description": "Region not found", "model": ErrorResponse},
    },
    summary="Register relay node",
)
async def register_node(
    node_in: NodeRegister,
    db: Session = Depends(get_db),
    _: bool = Depends(verify_provision_token)
):
    """Register a relay node; the same hostname updates the existing node"""
    try:
        node = region_service.register_node(
            db,
            RegisterNodeInput(
                region_code=node_in.region_code,
                hostname=node_in.hostname,
                public_key=node_in.public_key,
                endpoint=node_in.endpoint,
                tunnel_port=node_in.tunnel_port,
                public_ipv4=node_in.public_ipv4,
                public_ipv6=node_in.public_ipv6,
            )
        )
    except RegionNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": str(e),
                "error_code": "REGION_NOT_FOUND"
            }
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": str(e),
                "error_code": "INVALID_REQUEST"
            }
        )

    return NodeRegisterResponse(node_id=node.id)


@router.post(
    "/health",
    response_model=NodeHealthResponse,
    responses={
        404: {"description": "Node not found", "model": ErrorResponse},
    },
    summary="Report node health",
)
async def report_health(
    report: NodeHealthReport,
    db: Session = Depends(get_db),
    _: bool = Depends(verify_provision_token)
):
    """Recompute the node's capacity score from a health sample"""
    try:
        node = region_service.report_health(
            db,
            HealthReportInput(
                node_id=report.node_id,
                active_peers=report.active_peers,
                cpu_percent=report.cpu_percent,
                throughput_mbps=report.throughput_mbps,
                packet_loss=report.packet_loss,
            )
        )
    except NodeNotFoundError:
        raise _node_not_found(report.node_id)

    return NodeHealthResponse(capacity_score=node.capacity_score)


@router.get(
    "/{node_id}",
    response_model=NodeResponse,
    responses={
        404: {"description": "Node not found", "model": ErrorResponse},
    },
    summary="Get node by ID",
)
async def get_node(
    node_id: str,
    db: Session = Depends(get_db),
    _: bool = Depends(verify_provision_token)
):
    try:
        node = region_service.get_node(db, node_id)
    except NodeNotFoundError:
        raise _node_not_found(node_id)

    return NodeResponse.model_validate(node)
