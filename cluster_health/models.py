"""
Cluster Health - Data Models.

============================================================
CORE DATA STRUCTURES
============================================================

Defines all data models for cluster health assessment:
- HealthStatus: Status of a single check or the whole cluster
- HealthThreshold: Warning / critical ceilings for a check
- CheckResult: Latest outcome of one named check
- HealthIssue: Open problem tracked while a check is unhealthy
- ClusterHealth: Aggregate health snapshot
- Alert: Operator-facing record derived from a check
- HealthTier / HealthScore: Composite score output

============================================================
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# =============================================================
# ENUMS
# =============================================================


class HealthStatus(str, Enum):
    """
    Health status of a check or of the cluster.

    Aggregation order (most severe first):
    - CRITICAL: A threshold was exceeded at the critical tier
    - UNKNOWN:  The check could not be evaluated
    - WARNING:  A threshold was exceeded at the warning tier
    - HEALTHY:  Within thresholds
    """
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"

    @property
    def severity_rank(self) -> int:
        """Rank used for aggregation. Higher is worse."""
        return _SEVERITY_RANK[self]

    def is_healthy(self) -> bool:
        """Check if status is HEALTHY."""
        return self == HealthStatus.HEALTHY

    def is_worse_than(self, other: "HealthStatus") -> bool:
        """Check if this status outranks another."""
        return self.severity_rank > other.severity_rank


_SEVERITY_RANK = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.WARNING: 1,
    HealthStatus.UNKNOWN: 2,
    HealthStatus.CRITICAL: 3,
}


class AlertType(str, Enum):
    """Types of alerts raised by the engine."""
    HEALTH = "Health"


class HealthTier(str, Enum):
    """Qualitative tier for the composite health score."""
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    CRITICAL = "CRITICAL"


# =============================================================
# THRESHOLDS
# =============================================================


def _format_bound(value: Optional[float]) -> str:
    if value is None:
        return "none"
    if float(value).is_integer():
        return str(int(value))
    return str(value)


@dataclass
class HealthThreshold:
    """
    Warning / critical ceilings for a measured value.

    - HEALTHY:  warning_max absent or value <= warning_max
    - WARNING:  value > warning_max and not critical
    - CRITICAL: critical_max present and value > critical_max

    Either bound may be absent. With no bounds, always HEALTHY.
    """
    warning_max: Optional[float] = None
    critical_max: Optional[float] = None

    def classify(self, value: float) -> HealthStatus:
        """Determine status for a measured value."""
        if self.critical_max is not None and value > self.critical_max:
            return HealthStatus.CRITICAL
        if self.warning_max is not None and value > self.warning_max:
            return HealthStatus.WARNING
        return HealthStatus.HEALTHY

    def describe(self) -> str:
        """Human-readable bounds, e.g. 'warning 100, critical 500'."""
        return (
            f"warning {_format_bound(self.warning_max)}, "
            f"critical {_format_bound(self.critical_max)}"
        )

    def to_dict(self) -> Dict[str, Optional[float]]:
        """Convert to dictionary."""
        return {
            "warning_max": self.warning_max,
            "critical_max": self.critical_max,
        }


# =============================================================
# CHECK RESULTS
# =============================================================


@dataclass
class CheckResult:
    """
    Latest outcome of a single named check.

    check_count is cumulative across scheduler ticks.
    """
    name: str
    status: HealthStatus
    message: str
    threshold: Optional[HealthThreshold] = None
    last_check: datetime = field(default_factory=utc_now)
    check_count: int = 0
    value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "threshold": self.threshold.to_dict() if self.threshold else None,
            "last_check": self.last_check.isoformat(),
            "check_count": self.check_count,
            "value": self.value,
        }


@dataclass
class HealthIssue:
    """An open problem, kept while its check stays unhealthy."""
    component: str
    severity: HealthStatus
    message: str
    issue_id: str = field(default_factory=lambda: str(uuid4()))
    first_seen: datetime = field(default_factory=utc_now)
    last_seen: datetime = field(default_factory=utc_now)
    occurrences: int = 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "issue_id": self.issue_id,
            "component": self.component,
            "severity": self.severity.value,
            "message": self.message,
            "first_seen": self.first_seen.isoformat(),
            "last_seen": self.last_seen.isoformat(),
            "occurrences": self.occurrences,
        }


def aggregate_status(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """
    Derive overall status from individual statuses.

    CRITICAL beats UNKNOWN beats WARNING beats HEALTHY.
    An empty set is HEALTHY.
    """
    overall = HealthStatus.HEALTHY
    for status in statuses:
        if status.is_worse_than(overall):
            overall = status
    return overall


@dataclass
class ClusterHealth:
    """
    Aggregate health snapshot of the cluster.

    Before the first evaluation the status is UNKNOWN
    and no checks are present.
    """
    overall_status: HealthStatus = HealthStatus.UNKNOWN
    checks: Dict[str, CheckResult] = field(default_factory=dict)
    issues: List[HealthIssue] = field(default_factory=list)
    last_updated: Optional[datetime] = None

    def copy(self) -> "ClusterHealth":
        """Independent deep copy."""
        return copy.deepcopy(self)

    def get_check(self, name: str) -> Optional[CheckResult]:
        """Get a check result by name."""
        return self.checks.get(name)

    def status_counts(self) -> Dict[str, int]:
        """Count checks per status."""
        counts = {status.value: 0 for status in HealthStatus}
        for result in self.checks.values():
            counts[result.status.value] += 1
        counts["total"] = len(self.checks)
        return counts

    def summary(self) -> Dict[str, Any]:
        """Compact summary for dashboards."""
        return {
            "overall_status": self.overall_status.value,
            "counts": self.status_counts(),
            "open_issues": len(self.issues),
            "last_updated": (
                self.last_updated.isoformat() if self.last_updated else None
            ),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "overall_status": self.overall_status.value,
            "checks": {
                name: result.to_dict() for name, result in self.checks.items()
            },
            "issues": [issue.to_dict() for issue in self.issues],
            "last_updated": (
                self.last_updated.isoformat() if self.last_updated else None
            ),
        }


# =============================================================
# ALERTS
# =============================================================


@dataclass
class Alert:
    """
    Operator-facing alert derived from a non-healthy check.

    Lifecycle: created -> acknowledged. Never cleared automatically.
    """
    severity: HealthStatus
    title: str
    message: str
    component: str
    alert_type: AlertType = AlertType.HEALTH
    alert_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=utc_now)
    updated_at: Optional[datetime] = None
    occurrences: int = 1

    # Acknowledgment
    acknowledged: bool = False
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "alert_id": self.alert_id,
            "type": self.alert_type.value,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "component": self.component,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "occurrences": self.occurrences,
            "acknowledged": self.acknowledged,
            "acknowledged_at": (
                self.acknowledged_at.isoformat() if self.acknowledged_at else None
            ),
            "acknowledged_by": self.acknowledged_by,
        }


# =============================================================
# HEALTH SCORE
# =============================================================


@dataclass
class HealthScore:
    """Composite 0-100 cluster score with its qualitative tier."""
    score: float
    tier: HealthTier
    node_deduction: float = 0.0
    job_deduction: float = 0.0
    resource_deduction: float = 0.0
    computed_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "score": round(self.score, 2),
            "tier": self.tier.value,
            "deductions": {
                "nodes": round(self.node_deduction, 2),
                "jobs": round(self.job_deduction, 2),
                "resources": round(self.resource_deduction, 2),
            },
            "computed_at": self.computed_at.isoformat(),
        }
