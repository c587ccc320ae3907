# node_agent/agent.py
"""
Relay Node Agent
Runs on each VPN relay to keep its WireGuard interface in line with the
Control Plane and report health for capacity scoring
"""

import time
import logging
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .client import ControlPlaneClient
from .retry import (
    DEFAULT_RETRY_BASE,
    DEFAULT_RETRY_MAX,
    AgentCancelled,
    DelayFunc,
    sleep_delay,
    with_retry,
)
from .throughput import ThroughputTracker
from .wireguard.config_builder import PeerRecord
from .wireguard.manager import DeviceStats

logger = logging.getLogger('relay-agent')


class AgentPhase(Enum):
    """Control loop phase"""
    INITIALIZING = "initializing"
    REGISTERING = "registering"
    STEADY = "steady"
    DRAINING = "draining"
    STOPPED = "stopped"


class WireGuardBackend(Protocol):
    def write_peers(self, peers: Sequence[PeerRecord]) -> Path: ...

    def stats(self) -> DeviceStats: ...


class MetricsSink(Protocol):
    def update(self, stats: DeviceStats) -> None: ...


class StateBackend(Protocol):
    def save_peers(self, peers: Sequence[PeerRecord]) -> None: ...

    def load_peers(self) -> List[PeerRecord]: ...

    def drain_enabled(self) -> bool: ...


InterfaceHook = Callable[[str], None]


class NodeAgent:
    """
    Relay Node Agent - control loop

    Responsibilities:
    1. Bring the WireGuard interface up (best effort)
    2. Register with the Control Plane, retrying until it answers
    3. Report health on a fixed interval, retrying each report
    4. Apply peer sets and persist the last applied one
    """

    def __init__(
        self,
        client: ControlPlaneClient,
        poll_interval: float = 30.0,
        retry_base: float = DEFAULT_RETRY_BASE,
        max_retry: float = DEFAULT_RETRY_MAX,
        delay: DelayFunc = sleep_delay,
        clock: Callable[[], float] = time.time,
    ):
        if client is None:
            raise ValueError("control plane client required")
        self.client = client
        self.poll_interval = poll_interval
        self.retry_base = retry_base
        self.max_retry = max_retry if max_retry > 0 else 30.0
        self._delay = delay
        self._clock = clock

        self._wg: Optional[WireGuardBackend] = None
        self._wg_config_path: Optional[Path] = None
        self._wg_up: Optional[InterfaceHook] = None
        self._wg_sync: Optional[InterfaceHook] = None
        self._metrics: Optional[MetricsSink] = None
        self._state: Optional[StateBackend] = None

        self._throughput = ThroughputTracker()
        self._cancel = threading.Event()
        self.phase = AgentPhase.INITIALIZING

    # === Wiring ===

    def with_wireguard(
        self,
        manager: WireGuardBackend,
        config_path: Optional[Path],
        up_fn: Optional[InterfaceHook] = None,
        sync_fn: Optional[InterfaceHook] = None,
    ) -> None:
        self._wg = manager
        self._wg_config_path = config_path
        self._wg_up = up_fn
        self._wg_sync = sync_fn

    def with_metrics(self, exporter: MetricsSink) -> None:
        self._metrics = exporter

    def with_state(self, store: StateBackend) -> None:
        self._state = store

    # === Peers ===

    def apply_peers(self, peers: Sequence[PeerRecord]) -> Path:
        """
        Write the complete peer set, reload the interface and persist it

        The persisted set is only updated after the interface accepted it,
        so a restart recovers the last applied configuration.
        """
        if self._wg is None:
            raise RuntimeError("wireguard manager not configured")

        path = self._wg.write_peers(peers)
        self._wg_config_path = path

        if self._wg_sync is not None:
            self._wg_sync(str(path))

        if self._state is not None:
            try:
                self._state.save_peers(peers)
            except Exception as e:
                logger.error(f"Persist peers failed: {e}")

        logger.info(f"Applied {len(peers)} peers")
        return path

    def restore_peers(self, peers: Sequence[PeerRecord]) -> Path:
        """Render the persisted peer set before the interface is brought up"""
        if self._wg is None:
            raise RuntimeError("wireguard manager not configured")
        path = self._wg.write_peers(peers)
        self._wg_config_path = path
        logger.info(f"Restored {len(peers)} peers from local state")
        return path

    # === Control Plane calls ===

    def register(self) -> None:
        self.client.register()
        logger.info("Registered with Control Plane")

        if self._wg_sync is not None and self._wg_config_path:
            try:
                self._wg_sync(str(self._wg_config_path))
            except Exception as e:
                logger.error(f"WireGuard sync failed: {e}")

    def build_health_body(self) -> Dict[str, Any]:
        """Health report payload; the wireguard section is omitted if stats can't be read"""
        body: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        if self._wg is None:
            return body

        try:
            stats = self._wg.stats()
        except Exception as e:
            logger.warning(f"WireGuard stats unavailable: {e}")
            return body

        rx_bps, tx_bps = self._throughput.observe(stats.rx_bytes, stats.tx_bytes, self._clock())
        if self._metrics is not None:
            self._metrics.update(stats)

        wg_state: Dict[str, Any] = {
            "peer_count": stats.peer_count,
            "active_peer_count": stats.active_peers,
            "handshake_ratio": stats.handshake_ratio,
            "last_handshake": stats.last_handshake.isoformat() if stats.last_handshake else None,
            "rx_bytes": stats.rx_bytes,
            "tx_bytes": stats.tx_bytes,
            "rx_bps": rx_bps,
            "tx_bps": tx_bps,
        }

        if self._state is not None:
            try:
                drain = self._state.drain_enabled()
            except Exception as e:
                logger.error(f"Drain state read failed: {e}")
            else:
                wg_state["drain"] = drain
                self._set_drain_phase(drain)

        body["wireguard"] = wg_state
        return body

    def report_health(self) -> Dict[str, Any]:
        return self.client.report_health(self.build_health_body())

    # === Loop ===

    def stop(self) -> None:
        """Request cancellation; the loop exits at its next wait"""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def _retry(self, label: str, fn: Callable[[], Any]) -> Any:
        return with_retry(
            fn,
            self._cancel,
            label=label,
            base=self.retry_base,
            maximum=self.max_retry,
            delay=self._delay,
        )

    def _set_drain_phase(self, drain: bool) -> None:
        if self.phase == AgentPhase.STEADY and drain:
            logger.info("Drain flag set, node is draining")
            self.phase = AgentPhase.DRAINING
        elif self.phase == AgentPhase.DRAINING and not drain:
            logger.info("Drain flag cleared")
            self.phase = AgentPhase.STEADY

    def _health_cycle(self) -> None:
        response = self._retry("health", self.report_health)
        peers = response.get("peers") if response else None
        if peers is None:
            return

        try:
            records = [PeerRecord.model_validate(p) for p in peers]
            self.apply_peers(records)
        except Exception as e:
            logger.error(f"Applying pushed peer set failed: {e}")

    def run(self) -> None:
        """Main daemon loop, returns once stop() is called"""
        logger.info("Starting relay node agent")
        self.phase = AgentPhase.INITIALIZING

        if self._wg_up is not None and self._wg_config_path:
            try:
                self._wg_up(str(self._wg_config_path))
            except Exception as e:
                logger.error(f"WireGuard setup failed: {e}")

        try:
            self.phase = AgentPhase.REGISTERING
            self._retry("register", self.register)

            self.phase = AgentPhase.STEADY
            self._health_cycle()

            while not self._cancel.wait(self.poll_interval):
                self._health_cycle()

        except AgentCancelled:
            logger.info("Agent cancelled")
        finally:
            self.phase = AgentPhase.STOPPED
            logger.info("Agent stopped")
