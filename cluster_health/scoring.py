"""
Cluster Health - Composite Health Score.

============================================================
PURPOSE
============================================================
Single 0-100 number summarizing node, job and resource
health, plus a qualitative tier for dashboards.

PRINCIPLES:
- Stateless and synchronous
- Independent of the check scheduler
- Absence of data is not evidence of a problem

============================================================
SCORING
============================================================
Start at 100 and subtract:
- Nodes:     (down + drain) / total * 100 * 2
- Jobs:      failed / all jobs * 100
- Resources: 10 for CPU > 95, 10 for memory > 95
Floor at 0.

Tiers: >=90 EXCELLENT, >=75 GOOD, >=60 FAIR, >=40 POOR,
       otherwise CRITICAL

============================================================
"""

import logging
from typing import Iterable, Optional, Sequence

from .checks import count_node_states
from .config import ScoringConfig
from .models import HealthScore, HealthTier
from .provider import (
    ClusterDataProvider,
    ClusterMetrics,
    Job,
    JobState,
    Node,
    collect_snapshot,
    normalize_state,
)


logger = logging.getLogger(__name__)


# ============================================================
# DEDUCTIONS
# ============================================================

def calculate_node_deduction(
    nodes: Sequence[Optional[Node]],
    config: Optional[ScoringConfig] = None,
) -> float:
    """Penalty for nodes that are down or draining."""
    config = config or ScoringConfig()
    total, down, drain = count_node_states(nodes)
    if total == 0:
        return 0.0
    return (down + drain) / total * 100 * config.node_weight


def calculate_job_deduction(
    jobs: Sequence[Optional[Job]],
    config: Optional[ScoringConfig] = None,
) -> float:
    """Penalty for failed jobs, as a share of all jobs."""
    config = config or ScoringConfig()
    total = len(jobs)
    if total == 0:
        return 0.0
    failed = sum(
        1 for job in jobs
        if job is not None and normalize_state(job.state) == JobState.FAILED
    )
    return failed / total * 100 * config.job_weight


def calculate_resource_deduction(
    metrics: Optional[ClusterMetrics],
    config: Optional[ScoringConfig] = None,
) -> float:
    """Fixed penalty per resource strictly above the limit."""
    config = config or ScoringConfig()
    if metrics is None:
        return 0.0

    deduction = 0.0
    if metrics.cpu_usage > config.resource_limit:
        deduction += config.resource_penalty
    if metrics.memory_usage > config.resource_limit:
        deduction += config.resource_penalty
    return deduction


# ============================================================
# TIERS
# ============================================================

def score_to_tier(
    score: float,
    config: Optional[ScoringConfig] = None,
) -> HealthTier:
    """Map a score onto its qualitative tier."""
    config = config or ScoringConfig()
    if score >= config.excellent_min:
        return HealthTier.EXCELLENT
    elif score >= config.good_min:
        return HealthTier.GOOD
    elif score >= config.fair_min:
        return HealthTier.FAIR
    elif score >= config.poor_min:
        return HealthTier.POOR
    else:
        return HealthTier.CRITICAL


# ============================================================
# COMPOSITE SCORE
# ============================================================

def compute_health_score(
    nodes: Optional[Iterable[Optional[Node]]] = None,
    jobs: Optional[Iterable[Optional[Job]]] = None,
    metrics: Optional[ClusterMetrics] = None,
    config: Optional[ScoringConfig] = None,
) -> HealthScore:
    """
    Compute the composite cluster health score.

    Args:
        nodes: Node snapshot (None entries count toward total)
        jobs: Job snapshot, all states
        metrics: Cluster metrics, optional
        config: Scoring parameters

    Returns:
        HealthScore with score in [0, 100] and its tier
    """
    config = config or ScoringConfig()
    node_list = list(nodes or [])
    job_list = list(jobs or [])

    node_deduction = calculate_node_deduction(node_list, config)
    job_deduction = calculate_job_deduction(job_list, config)
    resource_deduction = calculate_resource_deduction(metrics, config)

    score = max(0.0, 100.0 - node_deduction - job_deduction - resource_deduction)

    return HealthScore(
        score=score,
        tier=score_to_tier(score, config),
        node_deduction=node_deduction,
        job_deduction=job_deduction,
        resource_deduction=resource_deduction,
    )


def score_cluster(
    provider: ClusterDataProvider,
    config: Optional[ScoringConfig] = None,
) -> HealthScore:
    """
    Read a fresh snapshot from the provider and score it.

    Resources that fail to load contribute no deduction.
    """
    snapshot = collect_snapshot(provider)
    if snapshot.errors:
        logger.debug(f"Scoring with partial snapshot: {snapshot.errors}")
    return compute_health_score(
        snapshot.nodes, snapshot.jobs, snapshot.metrics, config
    )
