"""
Shared fixtures for cluster health tests.
"""

from typing import Callable, List

import pytest

from cluster_health.config import MonitorConfig
from cluster_health.monitor import set_monitor
from cluster_health.provider import (
    ClusterMetrics,
    Job,
    JobState,
    Node,
    NodeState,
    StaticDataProvider,
)


@pytest.fixture
def make_nodes() -> Callable[..., List[Node]]:
    """Factory for node lists: make_nodes(healthy, down=0, drain=0)."""
    def _make(healthy: int, down: int = 0, drain: int = 0) -> List[Node]:
        nodes = [Node(f"node-healthy-{i}", NodeState.IDLE) for i in range(healthy)]
        nodes += [Node(f"node-down-{i}", NodeState.DOWN) for i in range(down)]
        nodes += [Node(f"node-drain-{i}", NodeState.DRAIN) for i in range(drain)]
        return nodes
    return _make


@pytest.fixture
def make_jobs() -> Callable[..., List[Job]]:
    """Factory for job lists: make_jobs(completed, failed=0, running=0, pending=0)."""
    def _make(
        completed: int,
        failed: int = 0,
        running: int = 0,
        pending: int = 0,
    ) -> List[Job]:
        jobs = [Job(f"job-ok-{i}", JobState.COMPLETED) for i in range(completed)]
        jobs += [Job(f"job-failed-{i}", JobState.FAILED) for i in range(failed)]
        jobs += [Job(f"job-running-{i}", JobState.RUNNING) for i in range(running)]
        jobs += [Job(f"job-pending-{i}", JobState.PENDING) for i in range(pending)]
        return jobs
    return _make


@pytest.fixture
def healthy_provider(make_nodes, make_jobs) -> StaticDataProvider:
    """Provider for a healthy 10-node cluster."""
    return StaticDataProvider(
        nodes=make_nodes(10),
        jobs=make_jobs(10, pending=5),
        metrics=ClusterMetrics(cpu_usage=50.0, memory_usage=60.0),
    )


@pytest.fixture
def fast_config() -> MonitorConfig:
    """Config with a short tick interval."""
    return MonitorConfig(check_interval_seconds=0.05)


@pytest.fixture(autouse=True)
def reset_monitor_singleton():
    """Clear the global monitor between tests."""
    yield
    set_monitor(None)
