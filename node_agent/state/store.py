# node_agent/state/store.py
"""
Local State Store
Persists the last applied peer set and the drain flag so the agent can
recover after a crash without losing active tunnels

Layout:
    {state_dir}/peers.json   last applied peers (pretty-printed JSON)
    {state_dir}/drain        zero-byte marker, present = drain enabled
"""

import json
import logging
import threading
from pathlib import Path
from typing import List, Sequence

from ..wireguard.config_builder import PeerRecord, write_private_file

logger = logging.getLogger('relay-agent.state')

PEERS_FILE = "peers.json"
DRAIN_FILE = "drain"


class StateStore:
    """
    File-backed agent state

    Every operation holds the store lock; calls are bounded by the health
    report interval, so contention is not a concern.
    """

    def __init__(self, state_dir: str):
        if not state_dir:
            raise ValueError("state dir required")
        self.dir = Path(state_dir)
        self.dir.mkdir(mode=0o750, parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def peers_path(self) -> Path:
        return self.dir / PEERS_FILE

    @property
    def drain_path(self) -> Path:
        return self.dir / DRAIN_FILE

    def save_peers(self, peers: Sequence[PeerRecord]) -> None:
        """Overwrite the persisted peer set"""
        data = json.dumps([peer.model_dump() for peer in peers], indent=2)
        with self._lock:
            write_private_file(self.peers_path, data + "\n")
        logger.debug(f"Persisted {len(peers)} peers to {self.peers_path}")

    def load_peers(self) -> List[PeerRecord]:
        """Load the persisted peer set; empty if nothing was saved yet"""
        with self._lock:
            try:
                content = self.peers_path.read_text()
            except FileNotFoundError:
                return []

        raw = json.loads(content) or []
        return [PeerRecord.model_validate(item) for item in raw]

    def drain_enabled(self) -> bool:
        with self._lock:
            return self.drain_path.exists()

    def set_drain(self, enabled: bool) -> None:
        """Create or remove the drain marker"""
        with self._lock:
            if enabled:
                self.drain_path.touch(mode=0o600, exist_ok=True)
                logger.info("Drain mode enabled")
            else:
                self.drain_path.unlink(missing_ok=True)
                logger.info("Drain mode disabled")
