"""
Cluster Health Assessment & Alerting Engine.

============================================================
CONTINUOUS CLUSTER HEALTH ASSESSMENT
============================================================

This package turns raw operational signals of a compute
cluster (node availability, job-queue depth, resource
utilization) into a small set of human-interpretable states,
operator alerts and a single composite score.

CORE PHILOSOPHY:
- A failed measurement is never treated as "probably fine"
- Read-only: the engine never acts on the cluster
- Evaluation never blocks readers of the health state

============================================================
HEALTH CHECKS
============================================================

1. nodes       - Percent of nodes down or draining (10 / 25)
2. queue       - Pending jobs in the queue (100 / 500)
3. utilization - CPU / memory usage percent (90 / 95)

============================================================
HEALTH STATES
============================================================

- CRITICAL: Critical threshold exceeded
- UNKNOWN:  Check could not be evaluated
- WARNING:  Warning threshold exceeded
- HEALTHY:  Within thresholds

Overall status is the most severe, in the order above.

============================================================
USAGE
============================================================

```python
from cluster_health import HealthMonitor, compute_health_score

monitor = HealthMonitor(provider)
await monitor.start()

health = monitor.get_health()
print(health.overall_status, health.status_counts())

for alert in monitor.get_alert_manager().get_active_alerts():
    print(alert.title, alert.message)

score = compute_health_score(nodes, jobs, metrics)
print(f"Score: {score.score:.1f} ({score.tier.value})")

await monitor.stop()
```

============================================================
"""

from .models import (
    HealthStatus,
    HealthThreshold,
    CheckResult,
    HealthIssue,
    ClusterHealth,
    AlertType,
    Alert,
    HealthTier,
    HealthScore,
    aggregate_status,
)
from .config import (
    MonitorConfig,
    CheckThresholds,
    ScoringConfig,
    AlertConfig,
    load_config,
    get_config,
    set_config,
)
from .exceptions import (
    ClusterHealthError,
    DataProviderError,
    CheckEvaluationError,
    AlertNotFoundError,
    ConfigurationError,
)
from .provider import (
    NodeState,
    JobState,
    MEMORY_UNAVAILABLE,
    Node,
    Job,
    ClusterMetrics,
    NodeList,
    JobList,
    ListNodesOptions,
    ListJobsOptions,
    MetricsSource,
    ClusterDataProvider,
    StaticDataProvider,
    ClusterSnapshot,
    collect_snapshot,
)
from .checks import (
    HealthCheck,
    NodeAvailabilityCheck,
    QueueDepthCheck,
    ResourceUtilizationCheck,
    count_node_states,
    get_default_checks,
)
from .state import AggregateHealthState
from .alerts import AlertHistory, AlertManager
from .scoring import (
    compute_health_score,
    score_cluster,
    score_to_tier,
    calculate_node_deduction,
    calculate_job_deduction,
    calculate_resource_deduction,
)
from .node_health import (
    classify_node,
    summarize_node_states,
    aggregate_node_metrics,
    AggregateNodeMetrics,
)
from .notifications import AlertFormatter, WebhookRateLimiter, WebhookNotifier
from .monitor import HealthMonitor, create_health_monitor, get_monitor, set_monitor


__all__ = [
    # Models
    "HealthStatus",
    "HealthThreshold",
    "CheckResult",
    "HealthIssue",
    "ClusterHealth",
    "AlertType",
    "Alert",
    "HealthTier",
    "HealthScore",
    "aggregate_status",
    # Config
    "MonitorConfig",
    "CheckThresholds",
    "ScoringConfig",
    "AlertConfig",
    "load_config",
    "get_config",
    "set_config",
    # Exceptions
    "ClusterHealthError",
    "DataProviderError",
    "CheckEvaluationError",
    "AlertNotFoundError",
    "ConfigurationError",
    # Provider
    "NodeState",
    "JobState",
    "MEMORY_UNAVAILABLE",
    "Node",
    "Job",
    "ClusterMetrics",
    "NodeList",
    "JobList",
    "ListNodesOptions",
    "ListJobsOptions",
    "MetricsSource",
    "ClusterDataProvider",
    "StaticDataProvider",
    "ClusterSnapshot",
    "collect_snapshot",
    # Checks
    "HealthCheck",
    "NodeAvailabilityCheck",
    "QueueDepthCheck",
    "ResourceUtilizationCheck",
    "count_node_states",
    "get_default_checks",
    # Core
    "AggregateHealthState",
    "AlertHistory",
    "AlertManager",
    "HealthMonitor",
    "create_health_monitor",
    "get_monitor",
    "set_monitor",
    # Scoring
    "compute_health_score",
    "score_cluster",
    "score_to_tier",
    "calculate_node_deduction",
    "calculate_job_deduction",
    "calculate_resource_deduction",
    # Node health
    "classify_node",
    "summarize_node_states",
    "aggregate_node_metrics",
    "AggregateNodeMetrics",
    # Notifications
    "AlertFormatter",
    "WebhookRateLimiter",
    "WebhookNotifier",
]
