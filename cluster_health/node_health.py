"""
Cluster Health - Per-Node Health.

============================================================
PURPOSE
============================================================
Node-level views used by dashboards next to the cluster
checks: per-node status, state counts and aggregate usage.

PER-NODE STATUS:
- unhealthy: node is down or draining
- critical:  CPU or memory above 95%
- warning:   load above 2x cores, or CPU / memory above 80%
- healthy:   otherwise

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional

from .models import utc_now
from .provider import Node, is_node_down, is_node_draining, normalize_state


NODE_HEALTHY = "healthy"
NODE_WARNING = "warning"
NODE_CRITICAL = "critical"
NODE_UNHEALTHY = "unhealthy"

NODE_CRITICAL_USAGE = 95.0
NODE_WARNING_USAGE = 80.0
NODE_LOAD_FACTOR = 2.0


def classify_node(node: Node) -> str:
    """Health status of a single node."""
    if is_node_down(node.state) or is_node_draining(node.state):
        return NODE_UNHEALTHY

    if node.cpu_usage > NODE_CRITICAL_USAGE or node.memory_usage > NODE_CRITICAL_USAGE:
        return NODE_CRITICAL
    if node.cpu_cores > 0 and node.cpu_load > node.cpu_cores * NODE_LOAD_FACTOR:
        return NODE_WARNING
    if node.cpu_usage > NODE_WARNING_USAGE or node.memory_usage > NODE_WARNING_USAGE:
        return NODE_WARNING

    return NODE_HEALTHY


def summarize_node_states(nodes: Iterable[Optional[Node]]) -> Dict[str, int]:
    """Count nodes per state tag. Missing tags count as 'UNKNOWN'."""
    summary: Dict[str, int] = {}
    for node in nodes:
        if node is None:
            continue
        state = normalize_state(node.state) or "UNKNOWN"
        summary[state] = summary.get(state, 0) + 1
    return summary


@dataclass
class AggregateNodeMetrics:
    """Usage aggregated over nodes that are neither down nor draining."""
    active_nodes: int = 0
    total_cpu_cores: int = 0
    total_jobs: int = 0
    average_cpu_usage: float = 0.0
    average_memory_usage: float = 0.0
    average_load_per_core: float = 0.0
    by_health: Dict[str, int] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "active_nodes": self.active_nodes,
            "total_cpu_cores": self.total_cpu_cores,
            "total_jobs": self.total_jobs,
            "average_cpu_usage": round(self.average_cpu_usage, 2),
            "average_memory_usage": round(self.average_memory_usage, 2),
            "average_load_per_core": round(self.average_load_per_core, 2),
            "by_health": dict(self.by_health),
            "timestamp": self.timestamp.isoformat(),
        }


def aggregate_node_metrics(nodes: Iterable[Optional[Node]]) -> AggregateNodeMetrics:
    """Aggregate usage figures across available nodes."""
    agg = AggregateNodeMetrics()
    cpu_total = memory_total = load_total = 0.0

    for node in nodes:
        if node is None:
            continue
        status = classify_node(node)
        agg.by_health[status] = agg.by_health.get(status, 0) + 1
        if status == NODE_UNHEALTHY:
            continue

        agg.active_nodes += 1
        agg.total_cpu_cores += node.cpu_cores
        agg.total_jobs += node.job_count
        cpu_total += node.cpu_usage
        memory_total += node.memory_usage
        load_total += node.cpu_load

    if agg.active_nodes > 0:
        agg.average_cpu_usage = cpu_total / agg.active_nodes
        agg.average_memory_usage = memory_total / agg.active_nodes
    if agg.total_cpu_cores > 0:
        agg.average_load_per_core = load_total / agg.total_cpu_cores

    return agg
