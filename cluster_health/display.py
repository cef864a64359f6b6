"""
Cluster Health - Display Helpers.

Color and icon mappings used by views rendering health data.
Colors are plain names; rendering is left to the caller.
"""

from typing import Dict

from .models import CheckResult, HealthStatus, HealthTier


STATUS_COLORS: Dict[HealthStatus, str] = {
    HealthStatus.HEALTHY: "green",
    HealthStatus.WARNING: "yellow",
    HealthStatus.CRITICAL: "red",
    HealthStatus.UNKNOWN: "gray",
}

STATUS_ICONS: Dict[HealthStatus, str] = {
    HealthStatus.HEALTHY: "✓",
    HealthStatus.WARNING: "⚠",
    HealthStatus.CRITICAL: "✗",
    HealthStatus.UNKNOWN: "?",
}

TIER_COLORS: Dict[HealthTier, str] = {
    HealthTier.EXCELLENT: "green",
    HealthTier.GOOD: "cyan",
    HealthTier.FAIR: "yellow",
    HealthTier.POOR: "orange",
    HealthTier.CRITICAL: "red",
}


def status_color(status: HealthStatus) -> str:
    """Color for a health status."""
    return STATUS_COLORS.get(status, "white")


def status_icon(status: HealthStatus) -> str:
    """Icon for a health status."""
    return STATUS_ICONS.get(status, "?")


def tier_color(tier: str) -> str:
    """Color for a score tier. Unrecognized tiers are white."""
    try:
        return TIER_COLORS[HealthTier(tier)]
    except ValueError:
        return "white"


def utilization_color(percent: float) -> str:
    """Color for a utilization percentage."""
    if percent < 50:
        return "green"
    if percent < 80:
        return "yellow"
    return "red"


def format_check_line(result: CheckResult) -> str:
    """One-line rendering of a check, e.g. '✓ nodes [healthy] All nodes ...'."""
    return (
        f"{status_icon(result.status)} {result.name} "
        f"[{result.status.value}] {result.message} (runs: {result.check_count})"
    )
