# node_agent/metrics/exporter.py
"""
Prometheus exporter for WireGuard device statistics

The control loop pushes each fresh DeviceStats through update(); a
separate uvicorn thread serves the registry at /metrics. The two only
meet through the exporter lock.
"""

import time
import logging
import threading
from typing import Callable, Optional, Tuple

import uvicorn
from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, generate_latest

from ..throughput import ThroughputTracker, counter_delta
from ..wireguard.manager import DeviceStats

logger = logging.getLogger('relay-agent.metrics')


class MetricsExporter:
    """Keeps WireGuard gauges/counters in a private registry"""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._lock = threading.Lock()
        self._clock = clock
        self.registry = CollectorRegistry()

        self.peers = Gauge("node_agent_wireguard_peers", "Current WireGuard peer count", registry=self.registry)
        self.active_peers = Gauge("node_agent_wireguard_active_peers", "Peers with a recent handshake", registry=self.registry)
        self.handshake_ratio = Gauge("node_agent_wireguard_handshake_ratio", "Active peers / total peers", registry=self.registry)
        self.last_handshake = Gauge("node_agent_wireguard_last_handshake", "Timestamp of the latest peer handshake", registry=self.registry)
        self.rx_bytes = Counter("node_agent_wireguard_rx_bytes", "Cumulative received bytes", registry=self.registry)
        self.tx_bytes = Counter("node_agent_wireguard_tx_bytes", "Cumulative transmitted bytes", registry=self.registry)
        self.rx_bps = Gauge("node_agent_wireguard_rx_throughput_bps", "Receive throughput in bits per second", registry=self.registry)
        self.tx_bps = Gauge("node_agent_wireguard_tx_throughput_bps", "Transmit throughput in bits per second", registry=self.registry)

        self._last_rx = 0
        self._last_tx = 0
        self._throughput = ThroughputTracker()

    def update(self, stats: DeviceStats) -> None:
        """Record the latest device statistics"""
        with self._lock:
            self.peers.set(stats.peer_count)
            self.active_peers.set(stats.active_peers)
            self.handshake_ratio.set(stats.handshake_ratio)
            if stats.last_handshake is None:
                self.last_handshake.set(0)
            else:
                self.last_handshake.set(stats.last_handshake.timestamp())

            # Counters only move forward; a device reset contributes its new value
            self.rx_bytes.inc(counter_delta(stats.rx_bytes, self._last_rx))
            self.tx_bytes.inc(counter_delta(stats.tx_bytes, self._last_tx))
            self._last_rx = stats.rx_bytes
            self._last_tx = stats.tx_bytes

            rx_bps, tx_bps = self._throughput.observe(stats.rx_bytes, stats.tx_bytes, self._clock())
            self.rx_bps.set(rx_bps)
            self.tx_bps.set(tx_bps)

    def render(self) -> bytes:
        """Prometheus text exposition of the registry"""
        with self._lock:
            return generate_latest(self.registry)

    def create_app(self) -> FastAPI:
        app = FastAPI(title="Relay Node Agent Metrics", docs_url=None, redoc_url=None, openapi_url=None)

        @app.get("/metrics")
        def metrics():
            return Response(content=self.render(), media_type=CONTENT_TYPE_LATEST)

        return app


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split "host:port" (host optional, as in ":9102") into its parts"""
    host, sep, port = address.rpartition(":")
    if not sep or not port:
        raise ValueError(f"invalid listen address: {address!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


class MetricsServer:
    """Serves an exporter on a background thread"""

    def __init__(self, exporter: MetricsExporter, address: str):
        host, port = parse_listen_address(address)
        config = uvicorn.Config(exporter.create_app(), host=host, port=port, log_level="warning")
        self._server = uvicorn.Server(config)
        self._thread: Optional[threading.Thread] = None
        self.address = address

    def start(self, timeout: float = 5.0) -> bool:
        """
        Start serving and wait until the socket is bound

        Returns False if the server exited or did not come up in time.
        The agent keeps running without metrics in that case.
        """
        self._thread = threading.Thread(target=self._serve, name="metrics-server", daemon=True)
        self._thread.start()

        deadline = time.monotonic() + timeout
        while not self._server.started and self._thread.is_alive() and time.monotonic() < deadline:
            time.sleep(0.05)

        if self._server.started:
            logger.info(f"Metrics server listening on {self.address}")
            return True
        logger.error(f"Metrics server failed to start on {self.address}")
        return False

    def _serve(self) -> None:
        # uvicorn exits via sys.exit when the bind fails
        try:
            self._server.run()
        except SystemExit as e:
            logger.error(f"Metrics server exited with code {e.code}")

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return
        self._server.should_exit = True
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Metrics server did not stop in time")
        self._thread = None
