"""
WireGuard Module

- Config rendering (wg-quick format)
- Interface bring-up, live reload and device counters
"""

from .config_builder import InterfaceConfig, PeerRecord, WireGuardConfigBuilder, WireGuardConfigError, render_config
from .manager import DeviceStats, WireGuardManager, ensure_keypair, parse_dump

__all__ = [
    "InterfaceConfig",
    "PeerRecord",
    "WireGuardConfigBuilder",
    "WireGuardConfigError",
    "render_config",
    "DeviceStats",
    "WireGuardManager",
    "ensure_keypair",
    "parse_dump",
]
