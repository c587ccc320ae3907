# node_agent/wireguard/manager.py
"""
WireGuard Interface Manager
Bridges the agent to the platform WireGuard tooling

Responsibilities:
- Generate the interface keypair
- Bring the interface up/down with wg-quick
- Reload the peer set of a running interface without dropping sessions
- Read live per-peer counters from `wg show <iface> dump`
"""

import os
import time
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from ..command import CommandRunner, run_command
from .config_builder import (
    InterfaceConfig,
    PeerRecord,
    WireGuardConfigBuilder,
    write_private_file,
)

logger = logging.getLogger('relay-agent.wireguard')

# A peer counts as active if its latest handshake is within this window
ACTIVE_PEER_WINDOW = 180  # seconds


@dataclass
class DeviceStats:
    """Aggregated device counters, read fresh on every health cycle"""
    peer_count: int = 0
    active_peers: int = 0
    rx_bytes: int = 0
    tx_bytes: int = 0
    last_handshake: Optional[datetime] = None

    @property
    def handshake_ratio(self) -> float:
        if self.peer_count == 0:
            return 0.0
        return self.active_peers / self.peer_count


def parse_dump(output: str, now: Optional[float] = None, active_window: int = ACTIVE_PEER_WINDOW) -> DeviceStats:
    """
    Parse `wg show <iface> dump` output

    The first line describes the interface. Each following line is one peer:
    public-key, preshared-key, endpoint, allowed-ips, latest-handshake,
    transfer-rx, transfer-tx, persistent-keepalive (tab separated).
    A handshake of 0 means the peer never completed one.
    """
    if now is None:
        now = time.time()

    stats = DeviceStats()
    latest = 0

    lines = output.strip().split('\n')
    for line in lines[1:]:
        if not line.strip():
            continue
        parts = line.split('\t')
        if len(parts) < 8:
            continue

        try:
            handshake = int(parts[4])
            rx = int(parts[5])
            tx = int(parts[6])
        except ValueError:
            logger.warning(f"Skipping malformed dump line for peer {parts[0][:20]}...")
            continue

        stats.peer_count += 1
        stats.rx_bytes += rx
        stats.tx_bytes += tx

        if handshake > 0:
            latest = max(latest, handshake)
            if now - handshake <= active_window:
                stats.active_peers += 1

    if latest:
        stats.last_handshake = datetime.fromtimestamp(latest, tz=timezone.utc)

    return stats


def ensure_keypair(private_key_path: Path, runner: CommandRunner = run_command) -> str:
    """
    Load the interface private key, generating a keypair with
    `wg genkey` / `wg pubkey` if it does not exist yet

    The public key is written beside it as public.key.

    Returns:
        The private key
    """
    private_key_path = Path(private_key_path)
    public_key_path = private_key_path.with_name("public.key")

    if private_key_path.exists():
        return private_key_path.read_text().strip()

    private_key = runner("wg", "genkey").strip()
    public_key = runner("wg", "pubkey", input=private_key + "\n").strip()

    private_key_path.parent.mkdir(mode=0o750, parents=True, exist_ok=True)
    write_private_file(private_key_path, private_key + "\n")
    write_private_file(public_key_path, public_key + "\n", mode=0o644)

    logger.info(f"Generated keypair, public key: {public_key}")
    return private_key


class WireGuardManager:
    """
    Manages the relay's WireGuard interface

    All tool invocations go through `runner`, so an alternative backend
    can be substituted without touching callers.
    """

    def __init__(
        self,
        config: InterfaceConfig,
        runner: CommandRunner = run_command,
        active_window: int = ACTIVE_PEER_WINDOW,
    ):
        self.config = config
        self.interface = config.name
        self.config_dir = Path(config.config_dir)
        self.active_window = active_window
        self._run = runner
        self.builder = WireGuardConfigBuilder(config)

    @property
    def config_path(self) -> Path:
        return self.builder.config_path

    def ensure_base_config(self) -> Path:
        return self.builder.ensure_base_config()

    def write_peers(self, peers: Sequence[PeerRecord]) -> Path:
        return self.builder.write_peers(peers)

    def up(self, config_path: str) -> None:
        """Bring the interface up from a rendered config file"""
        self._run("wg-quick", "up", str(config_path))
        logger.info(f"Brought up {self.interface}")

    def down(self, config_path: str) -> None:
        """Bring the interface down"""
        self._run("wg-quick", "down", str(config_path))
        logger.info(f"Brought down {self.interface}")

    def sync_peers(self, config_path: str) -> None:
        """
        Apply the peer set of `config_path` to the running interface

        wg syncconf only understands the wg(8) subset, so wg-quick fields
        are stripped first. Peers whose keys are unchanged keep their sessions.
        """
        stripped = self._run("wg-quick", "strip", str(config_path))

        sync_path = Path(config_path).with_suffix(".sync")
        write_private_file(sync_path, stripped)
        try:
            self._run("wg", "syncconf", self.interface, str(sync_path))
        finally:
            if sync_path.exists():
                os.unlink(sync_path)

        logger.info(f"Synced peers on {self.interface} from {config_path}")

    def stats(self) -> DeviceStats:
        """Read current device counters"""
        if not self.interface:
            raise ValueError("interface name required")
        output = self._run("wg", "show", self.interface, "dump")
        return parse_dump(output, active_window=self.active_window)

