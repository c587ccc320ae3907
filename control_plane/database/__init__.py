# control_plane/database/__init__.py
"""
Database modules
"""

from .session import get_db, init_db, check_connection, SessionLocal, engine
from .models import Base, Region, Node, NodeStatus

__all__ = [
    # Session
    "get_db",
    "init_db",
    "check_connection",
    "SessionLocal",
    "engine",
    # Models
    "Base",
    "Region",
    "Node",
    "NodeStatus",
]
