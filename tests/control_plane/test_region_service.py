# tests/control_plane/test_region_service.py
"""
Unit Tests for the Region Service and capacity scoring

Run with:
    pytest tests/control_plane/test_region_service.py -v
"""

import itertools

import pytest

from control_plane.core.region_service import (
    HealthReportInput,
    NodeNotFoundError,
    RegionNotFoundError,
    RegisterNodeInput,
    compute_capacity_score,
    region_service,
)
from control_plane.database.models import Node, NodeStatus, Region


def register(db, hostname="node-1", region_code="EU-FRA", **kwargs):
    data = RegisterNodeInput(
        region_code=region_code,
        hostname=hostname,
        public_key=kwargs.pop("public_key", "K" * 43 + "="),
        endpoint=kwargs.pop("endpoint", f"{hostname}.example.net:51820"),
        **kwargs,
    )
    return region_service.register_node(db, data)


class TestComputeCapacityScore:
    """Tests for compute_capacity_score"""

    def test_idle_node(self):
        assert compute_capacity_score(0, 0, 0, 0) == 100

    def test_reference_sample(self):
        """Test 100 - 40 - 20 - round(0.5) - round(0.5) = 38"""
        assert compute_capacity_score(10, 40, 50, 0.01) == 38

    def test_peer_penalty_saturates(self):
        assert compute_capacity_score(15, 0, 0, 0) == 40
        assert compute_capacity_score(1000, 0, 0, 0) == 40

    def test_clamped_at_zero(self):
        assert compute_capacity_score(100, 100, 5000, 1.0) == 0

    def test_non_finite_load_scores_zero(self):
        assert compute_capacity_score(0, 0.0, float("inf"), 0.0) == 0
        assert compute_capacity_score(0, float("nan"), 0.0, 0.0) == 0
        assert compute_capacity_score(0, 0.0, 0.0, float("-inf")) == 0

    def test_bounds(self):
        for peers, cpu, mbps, loss in itertools.product(
            [0, 3, 15, 500], [0, 1, 49.5, 100, 400], [0, 50, 149, 10_000], [0, 0.01, 0.5, 1.0]
        ):
            assert 0 <= compute_capacity_score(peers, cpu, mbps, loss) <= 100

    @pytest.mark.parametrize("index", range(4))
    def test_monotonic_in_each_input(self, index):
        """Test raising one input never raises the score"""
        base = [5, 20.0, 100.0, 0.02]
        steps = [1, 0.5, 25.0, 0.005]
        previous = compute_capacity_score(*base)
        for _ in range(200):
            base[index] += steps[index]
            score = compute_capacity_score(*base)
            assert score <= previous
            previous = score


class TestSeedDefaultRegions:
    def test_seeds_defaults(self, db):
        codes = [r.code for r in db.query(Region).order_by(Region.code)]
        assert codes == ["EU-FRA", "EU-NL", "TR-IST", "TR-IZM"]

    def test_idempotent(self, db):
        region_service.seed_default_regions(db)
        assert db.query(Region).count() == 4


class TestRegisterNode:
    """Tests for RegionService.register_node"""

    def test_new_node_scores_100(self, db):
        node = register(db)

        assert node.capacity_score == 100
        assert node.status == NodeStatus.ACTIVE.value
        assert node.region.code == "EU-FRA"
        assert len(node.id) == 36

    def test_region_code_case_insensitive(self, db):
        node = register(db, region_code="eu-nl")
        assert node.region.code == "EU-NL"

    def test_unknown_region(self, db):
        with pytest.raises(RegionNotFoundError) as exc_info:
            register(db, region_code="XX-NOPE")
        assert isinstance(exc_info.value, LookupError)
        assert db.query(Node).count() == 0

    def test_required_fields(self, db):
        with pytest.raises(ValueError):
            register(db, hostname="")

    def test_reregister_updates_same_row(self, db):
        """Test the same hostname keeps the node id and updates its fields"""
        first = register(db, endpoint="old.example.net:51820")
        first_id = first.id

        second = register(db, endpoint="new.example.net:51820", region_code="EU-NL")

        assert second.id == first_id
        assert second.endpoint == "new.example.net:51820"
        assert second.region.code == "EU-NL"
        assert db.query(Node).count() == 1

    def test_reregister_keeps_capacity_score(self, db):
        node = register(db)
        region_service.report_health(db, HealthReportInput(node_id=node.id, active_peers=10))

        again = register(db)

        assert again.capacity_score == 60


class TestReportHealth:
    """Tests for RegionService.report_health"""

    def test_register_then_report(self, db):
        """Test EU-FRA/node-1 registers at 100 and drops to 38"""
        node = register(db, hostname="node-1", region_code="EU-FRA")
        assert node.capacity_score == 100

        updated = region_service.report_health(db, HealthReportInput(
            node_id=node.id, active_peers=10, cpu_percent=40, throughput_mbps=50, packet_loss=0.01,
        ))

        assert updated.capacity_score == 38
        assert updated.last_seen is not None

    def test_unknown_node(self, db):
        with pytest.raises(NodeNotFoundError):
            region_service.report_health(db, HealthReportInput(node_id="missing"))


class TestListRegionsWithCapacity:
    """Tests for RegionService.list_regions_with_capacity"""

    def test_empty_regions(self, db):
        regions = region_service.list_regions_with_capacity(db)

        assert [r.code for r in regions] == ["EU-FRA", "EU-NL", "TR-IST", "TR-IZM"]
        assert all(r.capacity_score == 0 and r.active_nodes == 0 for r in regions)

    def test_averages_active_nodes_only(self, db):
        a = register(db, hostname="fra-1")
        register(db, hostname="fra-2")
        offline = register(db, hostname="fra-3")
        region_service.report_health(db, HealthReportInput(
            node_id=a.id, active_peers=10, cpu_percent=40, throughput_mbps=50, packet_loss=0.01,
        ))
        offline.status = NodeStatus.OFFLINE.value
        offline.capacity_score = 0
        db.commit()

        regions = {r.code: r for r in region_service.list_regions_with_capacity(db)}

        assert regions["EU-FRA"].active_nodes == 2
        assert regions["EU-FRA"].capacity_score == pytest.approx(69.0)
        assert regions["EU-FRA"].name == "Frankfurt"
        assert regions["EU-FRA"].country_code == "DE"
        assert regions["TR-IST"].active_nodes == 0


def test_get_node(db):
    node = register(db)
    assert region_service.get_node(db, node.id).hostname == "node-1"
    with pytest.raises(NodeNotFoundError):
        region_service.get_node(db, "does-not-exist")
