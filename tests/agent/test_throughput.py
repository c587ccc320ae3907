# tests/agent/test_throughput.py
"""
Unit Tests for throughput derivation from byte counters
"""

import pytest

from node_agent.throughput import ThroughputTracker, counter_delta


class TestCounterDelta:
    """Tests for counter_delta"""

    def test_forward(self):
        assert counter_delta(150, 100) == 50

    def test_unchanged(self):
        assert counter_delta(100, 100) == 0

    def test_reset_returns_current(self):
        """Test a counter below the previous reading counts from zero"""
        assert counter_delta(20, 150) == 20

    @pytest.mark.parametrize("current,previous", [(0, 0), (0, 10), (5, 2**63), (2**40, 3)])
    def test_never_negative(self, current, previous):
        assert counter_delta(current, previous) >= 0


class TestThroughputTracker:
    """Tests for ThroughputTracker"""

    def test_first_sample_reports_zero(self):
        tracker = ThroughputTracker()

        assert tracker.observe(100, 200, 1000.0) == (0.0, 0.0)
        assert tracker.previous.rx_bytes == 100

    def test_bits_per_second(self):
        """Test (150-100)*8/10 = 40 bps"""
        tracker = ThroughputTracker()
        tracker.observe(100, 1000, 1000.0)

        rx_bps, tx_bps = tracker.observe(150, 2000, 1010.0)

        assert rx_bps == 40.0
        assert tx_bps == 800.0

    def test_counter_reset_reports_zero_and_rebaselines(self):
        """Test a reset interval yields 0 and the new value becomes the baseline"""
        tracker = ThroughputTracker()
        tracker.observe(100, 100, 1000.0)
        tracker.observe(150, 150, 1010.0)

        rx_bps, _ = tracker.observe(20, 160, 1020.0)

        assert rx_bps == 0.0
        assert tracker.previous.rx_bytes == 20

        rx_bps, _ = tracker.observe(30, 170, 1030.0)
        assert rx_bps == 8.0

    def test_non_positive_elapsed(self):
        """Test no division when the clock did not advance"""
        tracker = ThroughputTracker()
        tracker.observe(100, 100, 1000.0)

        assert tracker.observe(500, 500, 1000.0) == (0.0, 0.0)
        assert tracker.observe(900, 900, 990.0) == (0.0, 0.0)
