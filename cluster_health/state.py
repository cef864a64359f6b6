"""
Cluster Health - Aggregate Health State.

============================================================
SINGLE SOURCE OF TRUTH
============================================================

Holds the latest CheckResult of every check, the derived
overall status and the open issues:
- Results are merged under one exclusive lock
- Run counters accumulate across merges, never reset
- Readers receive deep copies

============================================================
THREAD SAFETY
============================================================

One writer (the scheduler), many readers. The lock is held
only while merging or copying, never during evaluation.

============================================================
"""

import copy
import threading
from typing import Callable, Dict, Iterable, List, Optional
import logging

from .models import (
    CheckResult,
    ClusterHealth,
    HealthIssue,
    HealthStatus,
    aggregate_status,
    utc_now,
)


logger = logging.getLogger(__name__)


# =============================================================
# CALLBACK TYPES
# =============================================================

StatusChangeCallback = Callable[[HealthStatus, HealthStatus], None]


# =============================================================
# AGGREGATE HEALTH STATE
# =============================================================


class AggregateHealthState:
    """
    Concurrency-safe store for cluster health.

    ```python
    state = AggregateHealthState()
    state.merge(results)
    health = state.snapshot()   # independent copy
    ```
    """

    def __init__(self) -> None:
        self._health = ClusterHealth()
        self._lock = threading.RLock()
        self._status_callbacks: List[StatusChangeCallback] = []

        # Statistics
        self._total_merges = 0
        self._total_transitions = 0

    # =========================================================
    # UPDATES
    # =========================================================

    def merge(self, results: Iterable[CheckResult]) -> List[CheckResult]:
        """
        Merge check results and recompute the overall status.

        Existing entries are updated in place and their run counter
        incremented; new entries start at 1.

        Returns:
            Copies of the merged results, with updated counters
        """
        merged: List[CheckResult] = []
        transition = None

        with self._lock:
            now = utc_now()
            for result in results:
                merged.append(self._merge_result(result))
                self._track_issue(result)

            previous = self._health.overall_status
            current = aggregate_status(
                r.status for r in self._health.checks.values()
            )
            self._health.overall_status = current
            self._health.last_updated = now
            self._total_merges += 1

            if current != previous:
                self._total_transitions += 1
                transition = (previous, current)

            merged = [copy.deepcopy(r) for r in merged]

        if transition is not None:
            self._notify_status_change(*transition)

        return merged

    def _merge_result(self, result: CheckResult) -> CheckResult:
        existing = self._health.checks.get(result.name)
        if existing is None:
            stored = CheckResult(
                name=result.name,
                status=result.status,
                message=result.message,
                threshold=copy.deepcopy(result.threshold),
                last_check=result.last_check,
                check_count=1,
                value=result.value,
            )
            self._health.checks[result.name] = stored
            return stored

        existing.status = result.status
        existing.message = result.message
        existing.threshold = copy.deepcopy(result.threshold)
        existing.last_check = result.last_check
        existing.value = result.value
        existing.check_count += 1
        return existing

    def _track_issue(self, result: CheckResult) -> None:
        issue = self._find_issue(result.name)

        if result.status == HealthStatus.HEALTHY:
            if issue is not None:
                self._health.issues.remove(issue)
                logger.info(f"Issue resolved: {result.name}")
            return

        if issue is None:
            self._health.issues.append(HealthIssue(
                component=result.name,
                severity=result.status,
                message=result.message,
                first_seen=result.last_check,
                last_seen=result.last_check,
            ))
        else:
            issue.severity = result.status
            issue.message = result.message
            issue.last_seen = result.last_check
            issue.occurrences += 1

    def _find_issue(self, component: str) -> Optional[HealthIssue]:
        for issue in self._health.issues:
            if issue.component == component:
                return issue
        return None

    def remove_check(self, name: str) -> bool:
        """Drop a check and its issue, then recompute overall status."""
        with self._lock:
            if name not in self._health.checks:
                return False
            del self._health.checks[name]
            issue = self._find_issue(name)
            if issue is not None:
                self._health.issues.remove(issue)
            self._health.overall_status = aggregate_status(
                r.status for r in self._health.checks.values()
            )
            return True

    def reset(self) -> None:
        """Return to the initial UNKNOWN state with no checks."""
        with self._lock:
            self._health = ClusterHealth()

    # =========================================================
    # QUERIES
    # =========================================================

    def snapshot(self) -> ClusterHealth:
        """Get an independent deep copy of current health."""
        with self._lock:
            return self._health.copy()

    def get_overall_status(self) -> HealthStatus:
        """Get current overall status."""
        with self._lock:
            return self._health.overall_status

    def get_check(self, name: str) -> Optional[CheckResult]:
        """Get a copy of one check result."""
        with self._lock:
            result = self._health.checks.get(name)
            if result is None:
                return None
            return copy.deepcopy(result)

    def get_check_counts(self) -> Dict[str, int]:
        """Run counter per check."""
        with self._lock:
            return {
                name: result.check_count
                for name, result in self._health.checks.items()
            }

    # =========================================================
    # CALLBACKS
    # =========================================================

    def on_status_change(self, callback: StatusChangeCallback) -> None:
        """Register callback for overall status transitions."""
        self._status_callbacks.append(callback)

    def _notify_status_change(
        self,
        previous: HealthStatus,
        current: HealthStatus,
    ) -> None:
        logger.warning(
            f"Cluster health changed: {previous.value} -> {current.value}"
        )
        for callback in self._status_callbacks:
            try:
                callback(previous, current)
            except Exception as e:
                logger.error(f"Status change callback error: {e}")

    # =========================================================
    # DIAGNOSTICS
    # =========================================================

    def get_statistics(self) -> Dict[str, int]:
        """Get state statistics."""
        with self._lock:
            return {
                "total_merges": self._total_merges,
                "total_transitions": self._total_transitions,
                "checks": len(self._health.checks),
                "open_issues": len(self._health.issues),
            }
