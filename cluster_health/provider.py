"""
Cluster Health - Data Provider Contract.

============================================================
PURPOSE
============================================================
Narrow, read-only contract through which the engine reads
cluster data from the workload manager client.

PRINCIPLES:
- Read-only: the engine never mutates the cluster
- Providers may fail; failures are raised as exceptions
- Metrics may be structurally unavailable (no source at all)

============================================================
SNAPSHOT TYPES
============================================================
- Node:           name + state tag (+ optional usage figures)
- Job:            id + state tag + submit time
- ClusterMetrics: CPU / memory utilization percentages
                  (negative memory = data unavailable)

============================================================
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .models import utc_now


logger = logging.getLogger(__name__)


# ============================================================
# STATE TAGS
# ============================================================

class NodeState:
    """Node state tags reported by the workload manager."""
    IDLE = "IDLE"
    ALLOCATED = "ALLOCATED"
    MIXED = "MIXED"
    DOWN = "DOWN"
    DRAIN = "DRAIN"
    DRAINING = "DRAINING"
    DRAINED = "DRAINED"
    UNKNOWN = "UNKNOWN"

    DRAIN_STATES = frozenset({DRAIN, DRAINING, DRAINED})


class JobState:
    """Job state tags reported by the workload manager."""
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    TIMEOUT = "TIMEOUT"


# Flag characters the workload manager appends to node states (e.g. "DOWN*")
_STATE_FLAGS = "*~#!%$@^-+"


def normalize_state(state: Optional[str]) -> str:
    """Upper-case a state tag and strip trailing flag characters."""
    if not state:
        return ""
    return state.strip().upper().rstrip(_STATE_FLAGS)


def is_node_down(state: Optional[str]) -> bool:
    """Check if a node state tag means DOWN."""
    return normalize_state(state) == NodeState.DOWN


def is_node_draining(state: Optional[str]) -> bool:
    """Check if a node state tag means DRAIN / DRAINING / DRAINED."""
    return normalize_state(state) in NodeState.DRAIN_STATES


# ============================================================
# SNAPSHOT TYPES
# ============================================================

# Memory value meaning "no memory data"
MEMORY_UNAVAILABLE = -1.0


@dataclass
class Node:
    """A compute node."""
    name: str
    state: str = NodeState.IDLE
    cpu_cores: int = 0
    cpu_load: float = 0.0
    cpu_usage: float = 0.0
    memory_usage: float = 0.0
    job_count: int = 0


@dataclass
class Job:
    """A job known to the workload manager."""
    job_id: str
    state: str = JobState.PENDING
    submit_time: Optional[datetime] = None
    name: Optional[str] = None


@dataclass
class ClusterMetrics:
    """Point-in-time cluster utilization."""
    cpu_usage: float = 0.0
    memory_usage: float = 0.0
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def memory_available(self) -> bool:
        """False when memory carries the unavailable sentinel."""
        return self.memory_usage >= 0


@dataclass
class NodeList:
    """Result of listing nodes. Entries may contain None."""
    nodes: List[Optional[Node]] = field(default_factory=list)
    total: int = 0


@dataclass
class JobList:
    """Result of listing jobs."""
    jobs: List[Optional[Job]] = field(default_factory=list)
    total: int = 0


@dataclass
class ListNodesOptions:
    """Filter for node listing."""
    states: List[str] = field(default_factory=list)
    partitions: List[str] = field(default_factory=list)


@dataclass
class ListJobsOptions:
    """Filter for job listing."""
    states: List[str] = field(default_factory=list)
    users: List[str] = field(default_factory=list)
    partitions: List[str] = field(default_factory=list)
    limit: Optional[int] = None


# ============================================================
# PROVIDER CONTRACT
# ============================================================

class MetricsSource(ABC):
    """Source of point-in-time cluster metrics."""

    @abstractmethod
    def get_stats(self) -> ClusterMetrics:
        """
        Read current cluster metrics.

        Raises:
            Exception: When metrics cannot be read
        """


class ClusterDataProvider(ABC):
    """
    Read-only access to cluster data.

    Implementations wrap the workload manager client. Any method
    may raise; the engine turns failures into UNKNOWN status.
    """

    @abstractmethod
    def list_nodes(self, options: Optional[ListNodesOptions] = None) -> NodeList:
        """List nodes matching the filter."""

    @abstractmethod
    def list_jobs(self, options: Optional[ListJobsOptions] = None) -> JobList:
        """List jobs matching the filter."""

    @abstractmethod
    def metrics_source(self) -> Optional[MetricsSource]:
        """
        Get the metrics source.

        Returns None when the cluster exposes no metrics at all,
        which is distinct from a source that fails when read.
        """


# ============================================================
# IN-MEMORY PROVIDER
# ============================================================

class _StaticMetricsSource(MetricsSource):
    def __init__(self, provider: "StaticDataProvider") -> None:
        self._provider = provider

    def get_stats(self) -> ClusterMetrics:
        return self._provider._read_metrics()


class StaticDataProvider(ClusterDataProvider):
    """
    Provider serving fixed snapshots.

    Used by embedding applications that already hold cluster data
    and by tests. Errors can be injected per resource.

    ```python
    provider = StaticDataProvider(
        nodes=[Node("n1", NodeState.IDLE)],
        metrics=ClusterMetrics(cpu_usage=40.0, memory_usage=55.0),
    )
    provider.fail("jobs", DataProviderError("jobs", "timeout"))
    ```
    """

    def __init__(
        self,
        nodes: Optional[List[Optional[Node]]] = None,
        jobs: Optional[List[Optional[Job]]] = None,
        metrics: Optional[ClusterMetrics] = None,
        metrics_available: bool = True,
    ) -> None:
        self._nodes: List[Optional[Node]] = list(nodes or [])
        self._jobs: List[Optional[Job]] = list(jobs or [])
        self._metrics = metrics or ClusterMetrics()
        self._metrics_available = metrics_available
        self._errors: Dict[str, Exception] = {}
        self._lock = threading.RLock()

    # --------------------------------------------------------
    # SNAPSHOT UPDATES
    # --------------------------------------------------------

    def set_nodes(self, nodes: List[Optional[Node]]) -> None:
        """Replace the node snapshot."""
        with self._lock:
            self._nodes = list(nodes)

    def set_jobs(self, jobs: List[Optional[Job]]) -> None:
        """Replace the job snapshot."""
        with self._lock:
            self._jobs = list(jobs)

    def set_metrics(
        self,
        metrics: Optional[ClusterMetrics],
    ) -> None:
        """Replace metrics. None makes metrics structurally unavailable."""
        with self._lock:
            if metrics is None:
                self._metrics_available = False
            else:
                self._metrics = metrics
                self._metrics_available = True

    def fail(self, resource: str, error: Exception) -> None:
        """Make reads of a resource ('nodes', 'jobs', 'metrics') raise."""
        with self._lock:
            self._errors[resource] = error

    def recover(self, resource: Optional[str] = None) -> None:
        """Clear injected errors for one resource or all."""
        with self._lock:
            if resource is None:
                self._errors.clear()
            else:
                self._errors.pop(resource, None)

    def _raise_if_failing(self, resource: str) -> None:
        error = self._errors.get(resource)
        if error is not None:
            raise error

    # --------------------------------------------------------
    # PROVIDER CONTRACT
    # --------------------------------------------------------

    def list_nodes(self, options: Optional[ListNodesOptions] = None) -> NodeList:
        with self._lock:
            self._raise_if_failing("nodes")
            nodes = list(self._nodes)

        if options and options.states:
            wanted = {normalize_state(s) for s in options.states}
            nodes = [
                n for n in nodes
                if n is not None and normalize_state(n.state) in wanted
            ]
        return NodeList(nodes=nodes, total=len(nodes))

    def list_jobs(self, options: Optional[ListJobsOptions] = None) -> JobList:
        with self._lock:
            self._raise_if_failing("jobs")
            jobs = list(self._jobs)

        if options and options.states:
            wanted = {normalize_state(s) for s in options.states}
            jobs = [
                j for j in jobs
                if j is not None and normalize_state(j.state) in wanted
            ]
        if options and options.limit is not None:
            jobs = jobs[:options.limit]
        return JobList(jobs=jobs, total=len(jobs))

    def metrics_source(self) -> Optional[MetricsSource]:
        with self._lock:
            if not self._metrics_available:
                return None
        return _StaticMetricsSource(self)

    def _read_metrics(self) -> ClusterMetrics:
        with self._lock:
            self._raise_if_failing("metrics")
            return ClusterMetrics(
                cpu_usage=self._metrics.cpu_usage,
                memory_usage=self._metrics.memory_usage,
                timestamp=utc_now(),
            )


# ============================================================
# SNAPSHOT COLLECTION
# ============================================================

@dataclass
class ClusterSnapshot:
    """
    Nodes, jobs and metrics read together from one provider.

    errors maps resource name to the failure message for any
    resource that could not be read.
    """
    nodes: List[Optional[Node]] = field(default_factory=list)
    jobs: List[Optional[Job]] = field(default_factory=list)
    metrics: Optional[ClusterMetrics] = None
    errors: Dict[str, str] = field(default_factory=dict)
    collected_at: datetime = field(default_factory=utc_now)

    @property
    def complete(self) -> bool:
        """True when every resource was read."""
        return not self.errors


def collect_snapshot(provider: ClusterDataProvider) -> ClusterSnapshot:
    """
    Read nodes, all jobs and metrics from a provider.

    A failing resource is recorded in ``errors`` and left empty.
    """
    snapshot = ClusterSnapshot()

    try:
        snapshot.nodes = provider.list_nodes(ListNodesOptions()).nodes
    except Exception as e:
        logger.warning(f"Snapshot: failed to list nodes: {e}")
        snapshot.errors["nodes"] = str(e)

    try:
        snapshot.jobs = provider.list_jobs(ListJobsOptions()).jobs
    except Exception as e:
        logger.warning(f"Snapshot: failed to list jobs: {e}")
        snapshot.errors["jobs"] = str(e)

    try:
        source = provider.metrics_source()
        if source is None:
            snapshot.errors["metrics"] = "Cluster metrics not available"
        else:
            snapshot.metrics = source.get_stats()
    except Exception as e:
        logger.warning(f"Snapshot: failed to get cluster metrics: {e}")
        snapshot.errors["metrics"] = str(e)

    return snapshot

