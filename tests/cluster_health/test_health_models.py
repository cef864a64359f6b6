"""
Tests for health status, thresholds and snapshot models.
"""

import pytest

from cluster_health.models import (
    Alert,
    AlertType,
    CheckResult,
    ClusterHealth,
    HealthStatus,
    HealthThreshold,
    aggregate_status,
)


# ============================================================
# THRESHOLD TESTS
# ============================================================

class TestHealthThreshold:
    """Tests for HealthThreshold classification."""

    @pytest.mark.parametrize("value, warning, critical, expected", [
        (50, 80, 95, HealthStatus.HEALTHY),
        (80, 80, 95, HealthStatus.HEALTHY),
        (85, 80, 95, HealthStatus.WARNING),
        (95, 80, 95, HealthStatus.WARNING),
        (96, 80, 95, HealthStatus.CRITICAL),
        (96, None, 95, HealthStatus.CRITICAL),
        (90, None, 95, HealthStatus.HEALTHY),
        (1000, 80, None, HealthStatus.WARNING),
        (1000, None, None, HealthStatus.HEALTHY),
        (0, 0, 0, HealthStatus.HEALTHY),
    ])
    def test_classify(self, value, warning, critical, expected):
        """Test classification against optional bounds."""
        threshold = HealthThreshold(warning_max=warning, critical_max=critical)
        assert threshold.classify(value) == expected

    def test_describe_formats_integral_bounds(self):
        """Test integral bounds render without decimals."""
        threshold = HealthThreshold(warning_max=100.0, critical_max=500.0)
        assert threshold.describe() == "warning 100, critical 500"

    def test_describe_missing_bound(self):
        """Test absent bound renders as none."""
        threshold = HealthThreshold(warning_max=2.5)
        assert threshold.describe() == "warning 2.5, critical none"


# ============================================================
# AGGREGATION TESTS
# ============================================================

class TestAggregateStatus:
    """Tests for overall status aggregation."""

    def test_empty_is_healthy(self):
        """Test that no checks means healthy."""
        assert aggregate_status([]) == HealthStatus.HEALTHY

    @pytest.mark.parametrize("statuses", [
        [HealthStatus.CRITICAL],
        [HealthStatus.HEALTHY, HealthStatus.CRITICAL],
        [HealthStatus.UNKNOWN, HealthStatus.CRITICAL, HealthStatus.WARNING],
        [HealthStatus.WARNING, HealthStatus.HEALTHY, HealthStatus.CRITICAL],
    ])
    def test_any_critical_is_critical(self, statuses):
        """Test that a single critical check dominates."""
        assert aggregate_status(statuses) == HealthStatus.CRITICAL

    @pytest.mark.parametrize("statuses", [
        [HealthStatus.UNKNOWN],
        [HealthStatus.HEALTHY, HealthStatus.UNKNOWN],
        [HealthStatus.WARNING, HealthStatus.UNKNOWN],
        [HealthStatus.UNKNOWN, HealthStatus.WARNING, HealthStatus.HEALTHY],
    ])
    def test_unknown_outranks_warning(self, statuses):
        """Test unknown wins when nothing is critical."""
        assert aggregate_status(statuses) == HealthStatus.UNKNOWN

    def test_warning_over_healthy(self):
        """Test warning beats healthy."""
        statuses = [HealthStatus.HEALTHY, HealthStatus.WARNING]
        assert aggregate_status(statuses) == HealthStatus.WARNING

    def test_all_healthy(self):
        """Test all healthy stays healthy."""
        assert aggregate_status([HealthStatus.HEALTHY] * 3) == HealthStatus.HEALTHY

    def test_severity_rank_order(self):
        """Test the severity ranks are strictly ordered."""
        assert HealthStatus.CRITICAL.is_worse_than(HealthStatus.UNKNOWN)
        assert HealthStatus.UNKNOWN.is_worse_than(HealthStatus.WARNING)
        assert HealthStatus.WARNING.is_worse_than(HealthStatus.HEALTHY)
        assert not HealthStatus.HEALTHY.is_worse_than(HealthStatus.HEALTHY)


# ============================================================
# CLUSTER HEALTH TESTS
# ============================================================

class TestClusterHealth:
    """Tests for ClusterHealth snapshots."""

    def test_initial_state(self):
        """Test that a new snapshot is unknown with no checks."""
        health = ClusterHealth()
        assert health.overall_status == HealthStatus.UNKNOWN
        assert health.checks == {}
        assert health.issues == []
        assert health.last_updated is None

    def test_copy_is_independent(self):
        """Test that mutating a copy leaves the original untouched."""
        health = ClusterHealth(overall_status=HealthStatus.HEALTHY)
        health.checks["nodes"] = CheckResult(
            name="nodes", status=HealthStatus.HEALTHY, message="ok", check_count=3,
        )

        clone = health.copy()
        clone.checks["nodes"].check_count = 99
        clone.checks["nodes"].status = HealthStatus.CRITICAL
        clone.checks["extra"] = CheckResult(
            name="extra", status=HealthStatus.WARNING, message="x",
        )

        assert health.checks["nodes"].check_count == 3
        assert health.checks["nodes"].status == HealthStatus.HEALTHY
        assert "extra" not in health.checks

    def test_status_counts(self):
        """Test per-status counting."""
        health = ClusterHealth()
        for name, status in [
            ("a", HealthStatus.HEALTHY),
            ("b", HealthStatus.HEALTHY),
            ("c", HealthStatus.WARNING),
            ("d", HealthStatus.CRITICAL),
        ]:
            health.checks[name] = CheckResult(name=name, status=status, message="")

        counts = health.status_counts()
        assert counts["healthy"] == 2
        assert counts["warning"] == 1
        assert counts["critical"] == 1
        assert counts["unknown"] == 0
        assert counts["total"] == 4

    def test_to_dict(self):
        """Test serialization."""
        health = ClusterHealth()
        health.checks["queue"] = CheckResult(
            name="queue",
            status=HealthStatus.WARNING,
            message="150 pending jobs",
            threshold=HealthThreshold(100, 500),
        )
        data = health.to_dict()
        assert data["overall_status"] == "unknown"
        assert data["checks"]["queue"]["status"] == "warning"
        assert data["checks"]["queue"]["threshold"] == {
            "warning_max": 100, "critical_max": 500,
        }


class TestAlertModel:
    """Tests for the Alert model."""

    def test_defaults(self):
        """Test alert defaults."""
        alert = Alert(
            severity=HealthStatus.WARNING,
            title="Health check queue: WARNING",
            message="150 pending jobs",
            component="queue",
        )
        assert alert.alert_type == AlertType.HEALTH
        assert alert.alert_type.value == "Health"
        assert alert.acknowledged is False
        assert alert.alert_id
        assert alert.occurrences == 1

    def test_unique_ids(self):
        """Test that each alert gets its own id."""
        a = Alert(HealthStatus.WARNING, "t", "m", "c")
        b = Alert(HealthStatus.WARNING, "t", "m", "c")
        assert a.alert_id != b.alert_id
