# control_plane/api/v1/__init__.py
"""
API v1 modules
"""

from . import nodes, regions

__all__ = ["nodes", "regions"]
