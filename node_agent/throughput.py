# node_agent/throughput.py
"""
Throughput derivation from cumulative WireGuard byte counters

Counters are monotonic but drop back to zero when the interface restarts.
A value below the previous sample is treated as a reset: the true delta
across the reset is lost, which is accepted for monitoring purposes.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


def counter_delta(current: int, previous: int) -> int:
    """Difference between two counter readings, never negative"""
    if current >= previous:
        return current - previous
    return current


@dataclass
class ThroughputSample:
    rx_bytes: int
    tx_bytes: int
    sampled_at: float


class ThroughputTracker:
    """
    Keeps the previous sample between two health cycles and derives
    bits per second from it
    """

    def __init__(self):
        self.previous: Optional[ThroughputSample] = None

    def observe(self, rx_bytes: int, tx_bytes: int, now: float) -> Tuple[float, float]:
        """
        Record a new sample

        Returns:
            (rx_bps, tx_bps) since the previous sample. Both are 0 on the
            first sample or when no time has elapsed; a direction whose
            counter was reset reports 0 and takes the new value as baseline.
        """
        previous = self.previous
        self.previous = ThroughputSample(rx_bytes, tx_bytes, now)

        if previous is None:
            return 0.0, 0.0

        elapsed = now - previous.sampled_at
        if elapsed <= 0:
            return 0.0, 0.0

        return (
            self._rate(rx_bytes, previous.rx_bytes, elapsed),
            self._rate(tx_bytes, previous.tx_bytes, elapsed),
        )

    @staticmethod
    def _rate(current: int, previous: int, elapsed: float) -> float:
        if current < previous:
            return 0.0
        return counter_delta(current, previous) * 8 / elapsed
