"""
Relay Node Agent

Runs on each VPN relay:
- Establishes an mTLS channel to the Control Plane
- Provisions the WireGuard interface, NAT and kill-switch rules
- Reports health periodically, retrying with jittered backoff
- Persists the last applied peer set for crash recovery
"""

__version__ = "1.0.0"
__all__ = ["NodeAgent", "AgentPhase"]

from .agent import AgentPhase, NodeAgent
