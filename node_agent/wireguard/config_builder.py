# node_agent/wireguard/config_builder.py
"""
WireGuard Configuration Builder
Renders {interface}.conf from the interface settings and the peer set
pushed by the Control Plane
"""

import os
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger('relay-agent.wireguard.config')


class WireGuardConfigError(Exception):
    """Invalid interface settings or peer set"""


@dataclass(frozen=True)
class InterfaceConfig:
    """Interface settings, fixed for the lifetime of the process"""
    name: str
    config_dir: str
    listen_port: int = 51820
    address: str = ""
    dns: Tuple[str, ...] = ()
    mtu: int = 0
    persistent_keepalive: int = 25
    private_key: Optional[str] = None

    @property
    def config_path(self) -> Path:
        return Path(self.config_dir) / f"{self.name}.conf"


class PeerRecord(BaseModel):
    """One [Peer] entry of the interface"""
    public_key: str = Field(..., min_length=1)
    preshared_key: Optional[str] = None
    allowed_ips: List[str] = Field(default_factory=list)
    endpoint: Optional[str] = None
    persistent_keepalive: Optional[int] = None

    @field_validator("allowed_ips", mode="before")
    @classmethod
    def split_allowed_ips(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [ip.strip() for ip in v.split(",") if ip.strip()]
        return v


def render_config(config: InterfaceConfig, peers: Sequence[PeerRecord]) -> str:
    """
    Render wg-quick configuration text

    Peer blocks keep the order of `peers`, so the same input always
    produces byte-identical output.
    """
    lines = ["[Interface]"]

    if config.address:
        lines.append(f"Address = {config.address}")
    if config.private_key:
        lines.append(f"PrivateKey = {config.private_key}")
    lines.append(f"ListenPort = {config.listen_port}")
    if config.mtu > 0:
        lines.append(f"MTU = {config.mtu}")
    if config.dns:
        lines.append(f"DNS = {','.join(config.dns)}")
    lines.append("")

    for peer in peers:
        lines.append("[Peer]")
        lines.append(f"PublicKey = {peer.public_key}")

        if peer.preshared_key:
            lines.append(f"PresharedKey = {peer.preshared_key}")

        if peer.allowed_ips:
            lines.append(f"AllowedIPs = {','.join(peer.allowed_ips)}")

        if peer.endpoint:
            lines.append(f"Endpoint = {peer.endpoint}")

        keepalive = peer.persistent_keepalive or config.persistent_keepalive
        if keepalive and keepalive > 0:
            lines.append(f"PersistentKeepalive = {keepalive}")

        lines.append("")

    return "\n".join(lines) + "\n"


def write_private_file(path: Path, content: str, mode: int = 0o600) -> None:
    """Atomically replace `path` with `content`, readable by the owner only"""
    path = Path(path)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class WireGuardConfigBuilder:
    """
    Writes the complete interface configuration to disk

    The agent never edits a single peer: every write renders the base
    interface settings plus the full peer set.
    """

    def __init__(self, config: InterfaceConfig):
        self.config = config

    @property
    def config_path(self) -> Path:
        return self.config.config_path

    def render(self, peers: Sequence[PeerRecord]) -> str:
        return render_config(self.config, peers)

    def ensure_base_config(self) -> Path:
        """Write the interface configuration without peers"""
        return self.write_peers([])

    def write_peers(self, peers: Sequence[PeerRecord]) -> Path:
        """
        Render and write the configuration for `peers`

        Returns:
            Path of the written config file
        """
        if not self.config.name:
            raise WireGuardConfigError("interface name required")
        if not self.config.config_dir:
            raise WireGuardConfigError("config directory required")

        seen = set()
        for peer in peers:
            if peer.public_key in seen:
                raise WireGuardConfigError(f"duplicate peer public key: {peer.public_key[:20]}...")
            seen.add(peer.public_key)

        config_dir = Path(self.config.config_dir)
        config_dir.mkdir(mode=0o750, parents=True, exist_ok=True)

        path = self.config_path
        write_private_file(path, self.render(peers))

        logger.info(f"Wrote WireGuard config to {path} ({len(peers)} peers)")
        return path
