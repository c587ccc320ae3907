# control_plane/__init__.py
"""
Relay Fleet Control Plane
Node registration, health ingestion and per-region capacity
"""

__version__ = "1.0.0"
