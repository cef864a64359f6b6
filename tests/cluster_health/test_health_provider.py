"""
Tests for the data provider contract, snapshots and node views.
"""

import pytest

from cluster_health.display import (
    format_check_line,
    status_color,
    status_icon,
    tier_color,
    utilization_color,
)
from cluster_health.exceptions import DataProviderError
from cluster_health.models import CheckResult, HealthStatus, HealthTier
from cluster_health.node_health import (
    NODE_CRITICAL,
    NODE_HEALTHY,
    NODE_UNHEALTHY,
    NODE_WARNING,
    aggregate_node_metrics,
    classify_node,
    summarize_node_states,
)
from cluster_health.provider import (
    ClusterMetrics,
    Job,
    JobState,
    ListJobsOptions,
    ListNodesOptions,
    Node,
    NodeState,
    StaticDataProvider,
    collect_snapshot,
    is_node_down,
    is_node_draining,
    normalize_state,
)


# ============================================================
# STATE TAGS
# ============================================================

class TestStateTags:
    """Tests for state normalization."""

    @pytest.mark.parametrize("raw, expected", [
        ("down", "DOWN"),
        ("DOWN*", "DOWN"),
        ("idle~", "IDLE"),
        (" mixed ", "MIXED"),
        ("", ""),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        """Test case and flag normalization."""
        assert normalize_state(raw) == expected

    def test_predicates(self):
        """Test down and drain predicates."""
        assert is_node_down("down*")
        assert not is_node_down("DRAIN")
        assert is_node_draining("draining")
        assert is_node_draining("DRAINED")
        assert not is_node_draining("IDLE")


# ============================================================
# STATIC PROVIDER
# ============================================================

class TestStaticDataProvider:
    """Tests for StaticDataProvider."""

    def test_list_nodes_filter(self, make_nodes):
        """Test state filtering of nodes."""
        provider = StaticDataProvider(nodes=make_nodes(3, down=2))

        assert provider.list_nodes().total == 5
        down = provider.list_nodes(ListNodesOptions(states=[NodeState.DOWN]))
        assert down.total == 2

    def test_list_jobs_filter_and_limit(self, make_jobs):
        """Test state filter and limit for jobs."""
        provider = StaticDataProvider(jobs=make_jobs(5, pending=4))

        pending = provider.list_jobs(ListJobsOptions(states=[JobState.PENDING]))
        assert pending.total == 4
        limited = provider.list_jobs(ListJobsOptions(limit=3))
        assert len(limited.jobs) == 3

    def test_set_snapshots(self):
        """Test replacing snapshots."""
        provider = StaticDataProvider()
        provider.set_nodes([Node("n1")])
        provider.set_jobs([Job("1", JobState.RUNNING)])

        assert provider.list_nodes().total == 1
        assert provider.list_jobs().jobs[0].state == JobState.RUNNING

    def test_metrics_availability(self):
        """Test metrics source toggles with set_metrics."""
        provider = StaticDataProvider(metrics=ClusterMetrics(cpu_usage=10.0, memory_usage=20.0))
        assert provider.metrics_source().get_stats().cpu_usage == 10.0

        provider.set_metrics(None)
        assert provider.metrics_source() is None

        provider.set_metrics(ClusterMetrics(cpu_usage=30.0))
        assert provider.metrics_source().get_stats().cpu_usage == 30.0

    def test_fail_and_recover(self):
        """Test injected errors."""
        provider = StaticDataProvider()
        provider.fail("nodes", DataProviderError("nodes", "refused"))

        with pytest.raises(DataProviderError):
            provider.list_nodes()

        provider.recover("nodes")
        assert provider.list_nodes().total == 0

    def test_memory_sentinel(self):
        """Test negative memory means unavailable."""
        assert ClusterMetrics(memory_usage=-1).memory_available is False
        assert ClusterMetrics(memory_usage=0).memory_available is True


# ============================================================
# SNAPSHOT COLLECTION
# ============================================================

class TestCollectSnapshot:
    """Tests for collect_snapshot."""

    def test_complete(self, healthy_provider):
        """Test a healthy provider yields a complete snapshot."""
        snapshot = collect_snapshot(healthy_provider)

        assert snapshot.complete
        assert len(snapshot.nodes) == 10
        assert len(snapshot.jobs) == 15
        assert snapshot.metrics.cpu_usage == 50.0

    def test_partial(self, healthy_provider):
        """Test failures are recorded per resource."""
        healthy_provider.fail("jobs", DataProviderError("jobs", "timeout"))
        healthy_provider.set_metrics(None)

        snapshot = collect_snapshot(healthy_provider)

        assert not snapshot.complete
        assert snapshot.errors["jobs"] == "timeout"
        assert snapshot.errors["metrics"] == "Cluster metrics not available"
        assert snapshot.jobs == []
        assert len(snapshot.nodes) == 10


# ============================================================
# NODE HEALTH
# ============================================================

class TestNodeHealth:
    """Tests for per-node classification and aggregation."""

    @pytest.mark.parametrize("node, expected", [
        (Node("n", NodeState.DOWN), NODE_UNHEALTHY),
        (Node("n", NodeState.DRAINING), NODE_UNHEALTHY),
        (Node("n", cpu_usage=96.0), NODE_CRITICAL),
        (Node("n", memory_usage=97.0), NODE_CRITICAL),
        (Node("n", cpu_cores=4, cpu_load=9.0), NODE_WARNING),
        (Node("n", cpu_usage=85.0), NODE_WARNING),
        (Node("n", cpu_cores=0, cpu_load=9.0), NODE_HEALTHY),
        (Node("n", cpu_usage=0.0, memory_usage=0.0), NODE_HEALTHY),
    ])
    def test_classify(self, node, expected):
        """Test node classification rules."""
        assert classify_node(node) == expected

    def test_summarize_states(self):
        """Test state counts."""
        nodes = [Node("a", "idle"), Node("b", "IDLE"), Node("c", "down*"), Node("d", ""), None]
        assert summarize_node_states(nodes) == {"IDLE": 2, "DOWN": 1, "UNKNOWN": 1}

    def test_aggregate_skips_unavailable(self):
        """Test aggregation excludes down and draining nodes."""
        nodes = [
            Node("a", cpu_cores=4, cpu_load=2.0, cpu_usage=40.0, memory_usage=50.0, job_count=2),
            Node("b", cpu_cores=4, cpu_load=6.0, cpu_usage=60.0, memory_usage=70.0, job_count=3),
            Node("c", NodeState.DOWN, cpu_cores=4, cpu_usage=99.0),
            None,
        ]

        agg = aggregate_node_metrics(nodes)

        assert agg.active_nodes == 2
        assert agg.total_cpu_cores == 8
        assert agg.total_jobs == 5
        assert agg.average_cpu_usage == pytest.approx(50.0)
        assert agg.average_memory_usage == pytest.approx(60.0)
        assert agg.average_load_per_core == pytest.approx(1.0)
        assert agg.by_health == {NODE_HEALTHY: 2, NODE_UNHEALTHY: 1}

    def test_aggregate_empty(self):
        """Test aggregation of nothing."""
        agg = aggregate_node_metrics([])
        assert agg.active_nodes == 0
        assert agg.to_dict()["average_cpu_usage"] == 0.0


# ============================================================
# DISPLAY
# ============================================================

class TestDisplay:
    """Tests for display helpers."""

    def test_status_mappings(self):
        """Test status colors and icons."""
        assert status_color(HealthStatus.HEALTHY) == "green"
        assert status_color(HealthStatus.CRITICAL) == "red"
        assert status_icon(HealthStatus.WARNING) == "⚠"
        assert status_icon(HealthStatus.UNKNOWN) == "?"

    def test_tier_color(self):
        """Test tier colors."""
        assert tier_color(HealthTier.EXCELLENT) == "green"
        assert tier_color("POOR") == "orange"
        assert tier_color("bogus") == "white"

    @pytest.mark.parametrize("percent, color", [
        (0, "green"), (49.9, "green"), (50, "yellow"), (79.9, "yellow"), (80, "red"),
    ])
    def test_utilization_color(self, percent, color):
        """Test utilization color bands."""
        assert utilization_color(percent) == color

    def test_format_check_line(self):
        """Test one-line check rendering."""
        result = CheckResult(
            name="nodes", status=HealthStatus.HEALTHY, message="All good", check_count=3,
        )
        assert format_check_line(result) == "✓ nodes [healthy] All good (runs: 3)"
