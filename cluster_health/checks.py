"""
Cluster Health - Check Evaluators.

============================================================
PURPOSE
============================================================
Turn provider data into CheckResults.

PRINCIPLES:
- Each check reads the provider and applies one threshold
- Provider failures become UNKNOWN, never exceptions
- Messages restate the measured values and thresholds
- New checks subclass HealthCheck; the scheduler is unchanged

============================================================
BUILT-IN CHECKS
============================================================
- nodes:       percent of nodes down or draining (10 / 25)
- queue:       number of pending jobs (100 / 500)
- utilization: CPU / memory usage percent (90 / 95)

============================================================
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Tuple

from .config import MonitorConfig
from .exceptions import CheckEvaluationError
from .models import CheckResult, HealthStatus, HealthThreshold, utc_now
from .provider import (
    ClusterDataProvider,
    JobState,
    ListJobsOptions,
    ListNodesOptions,
    Node,
    is_node_down,
    is_node_draining,
)


logger = logging.getLogger(__name__)


# ============================================================
# HELPERS
# ============================================================

def count_node_states(nodes: Iterable[Optional[Node]]) -> Tuple[int, int, int]:
    """
    Count nodes that are down or draining.

    None entries count toward the total only.

    Returns:
        (total, down, drain)
    """
    total = down = drain = 0
    for node in nodes:
        total += 1
        if node is None:
            continue
        if is_node_down(node.state):
            down += 1
        elif is_node_draining(node.state):
            drain += 1
    return total, down, drain


# ============================================================
# BASE CHECK
# ============================================================

class HealthCheck(ABC):
    """
    Base class for all health checks.

    Subclasses implement ``evaluate``. The scheduler calls
    ``safe_evaluate``, which never raises.
    """

    name: str = "base"
    description: str = ""

    def __init__(self, threshold: Optional[HealthThreshold] = None) -> None:
        self.threshold = (
            copy.deepcopy(threshold) if threshold else self.default_threshold()
        )
        self._evaluation_count = 0
        self._error_count = 0

    @classmethod
    def default_threshold(cls) -> HealthThreshold:
        """Threshold used when none is configured."""
        return HealthThreshold()

    @abstractmethod
    def evaluate(self, provider: ClusterDataProvider) -> CheckResult:
        """
        Evaluate the check against current provider data.

        Must return UNKNOWN results for provider failures
        instead of raising.
        """

    def safe_evaluate(self, provider: ClusterDataProvider) -> CheckResult:
        """
        Evaluate, converting any unexpected fault into UNKNOWN.
        """
        self._evaluation_count += 1
        try:
            return self.evaluate(provider)
        except Exception as e:
            self._error_count += 1
            error = CheckEvaluationError(self.name, str(e))
            logger.error(f"{error}", exc_info=True)
            return self._result(HealthStatus.UNKNOWN, error.message)

    def _result(
        self,
        status: HealthStatus,
        message: str,
        value: Optional[float] = None,
    ) -> CheckResult:
        return CheckResult(
            name=self.name,
            status=status,
            message=message,
            threshold=self.threshold,
            last_check=utc_now(),
            value=value,
        )

    def get_stats(self) -> dict:
        """Get evaluation statistics."""
        return {
            "name": self.name,
            "evaluation_count": self._evaluation_count,
            "error_count": self._error_count,
            "threshold": self.threshold.to_dict(),
        }


# ============================================================
# NODE AVAILABILITY
# ============================================================

class NodeAvailabilityCheck(HealthCheck):
    """Percent of nodes that are down or draining."""

    name = "nodes"
    description = "Node availability"

    @classmethod
    def default_threshold(cls) -> HealthThreshold:
        return HealthThreshold(warning_max=10.0, critical_max=25.0)

    def evaluate(self, provider: ClusterDataProvider) -> CheckResult:
        try:
            node_list = provider.list_nodes(ListNodesOptions())
        except Exception as e:
            logger.warning(f"Node check: provider failure: {e}")
            return self._result(
                HealthStatus.UNKNOWN, f"Failed to get node list: {e}"
            )

        total, down, drain = count_node_states(node_list.nodes)
        if total == 0:
            return self._result(
                HealthStatus.CRITICAL, "No nodes found in cluster", value=0.0
            )

        unavailable = (down + drain) / total * 100
        status = self.threshold.classify(unavailable)

        if status == HealthStatus.HEALTHY:
            message = (
                f"All nodes healthy ({total} total, {down} down, {drain} drain)"
            )
        else:
            message = (
                f"{unavailable:.1f}% of nodes unavailable "
                f"({down} down, {drain} drain out of {total} total)"
            )
        return self._result(status, message, value=unavailable)


# ============================================================
# QUEUE DEPTH
# ============================================================

class QueueDepthCheck(HealthCheck):
    """Number of jobs waiting in the pending state."""

    name = "queue"
    description = "Job queue depth"

    @classmethod
    def default_threshold(cls) -> HealthThreshold:
        return HealthThreshold(warning_max=100.0, critical_max=500.0)

    def evaluate(self, provider: ClusterDataProvider) -> CheckResult:
        try:
            job_list = provider.list_jobs(
                ListJobsOptions(states=[JobState.PENDING])
            )
        except Exception as e:
            logger.warning(f"Queue check: provider failure: {e}")
            return self._result(
                HealthStatus.UNKNOWN, f"Failed to get job list: {e}"
            )

        pending = len(job_list.jobs)
        status = self.threshold.classify(pending)

        if status == HealthStatus.HEALTHY:
            message = f"Queue healthy with {pending} pending jobs"
        else:
            message = (
                f"{pending} pending jobs "
                f"(threshold: {self.threshold.describe()})"
            )
        return self._result(status, message, value=float(pending))


# ============================================================
# RESOURCE UTILIZATION
# ============================================================

class ResourceUtilizationCheck(HealthCheck):
    """
    Cluster CPU and memory utilization.

    Memory below zero means memory data is unavailable; CPU is
    then classified alone.
    """

    name = "utilization"
    description = "Resource utilization"

    @classmethod
    def default_threshold(cls) -> HealthThreshold:
        return HealthThreshold(warning_max=90.0, critical_max=95.0)

    def evaluate(self, provider: ClusterDataProvider) -> CheckResult:
        try:
            source = provider.metrics_source()
            if source is None:
                return self._result(
                    HealthStatus.UNKNOWN, "Cluster metrics not available"
                )
            metrics = source.get_stats()
        except Exception as e:
            logger.warning(f"Utilization check: provider failure: {e}")
            return self._result(
                HealthStatus.UNKNOWN, f"Failed to get cluster metrics: {e}"
            )

        cpu = metrics.cpu_usage

        if not metrics.memory_available:
            status = self.threshold.classify(cpu)
            if status == HealthStatus.HEALTHY:
                message = (
                    f"CPU utilization healthy: {cpu:.1f}% "
                    f"(memory data unavailable)"
                )
            else:
                message = (
                    f"High CPU utilization: {cpu:.1f}% "
                    f"(memory data unavailable)"
                )
            return self._result(status, message, value=cpu)

        memory = metrics.memory_usage
        peak = max(cpu, memory)
        status = self.threshold.classify(peak)

        if status == HealthStatus.HEALTHY:
            message = (
                f"Resource utilization healthy: CPU {cpu:.1f}%, "
                f"Memory {memory:.1f}%"
            )
        else:
            message = (
                f"High resource utilization: CPU {cpu:.1f}%, "
                f"Memory {memory:.1f}% (max {peak:.1f}%)"
            )
        return self._result(status, message, value=peak)


# ============================================================
# DEFAULT CHECKS
# ============================================================

def get_default_checks(config: Optional[MonitorConfig] = None) -> List[HealthCheck]:
    """Create the built-in checks using configured thresholds."""
    config = config or MonitorConfig()
    return [
        NodeAvailabilityCheck(config.thresholds.nodes),
        QueueDepthCheck(config.thresholds.queue),
        ResourceUtilizationCheck(config.thresholds.utilization),
    ]
