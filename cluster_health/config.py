"""
Cluster Health - Configuration.

============================================================
CONFIGURABLE HEALTH ASSESSMENT
============================================================

All engine parameters are configurable:
- Check interval
- Per-check warning / critical thresholds
- Composite score weights and tier boundaries
- Alert history and notification settings

Configuration can be loaded from:
- Default values
- Environment variables (a .env file is honoured)
- YAML config file

============================================================
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .models import HealthStatus, HealthThreshold


logger = logging.getLogger(__name__)


ENV_PREFIX = "CLUSTER_HEALTH_"


# =============================================================
# CHECK THRESHOLDS
# =============================================================


def _nodes_default() -> HealthThreshold:
    return HealthThreshold(warning_max=10.0, critical_max=25.0)


def _queue_default() -> HealthThreshold:
    return HealthThreshold(warning_max=100.0, critical_max=500.0)


def _utilization_default() -> HealthThreshold:
    return HealthThreshold(warning_max=90.0, critical_max=95.0)


@dataclass
class CheckThresholds:
    """
    Thresholds for the built-in checks.

    - nodes:       percent of nodes down or draining
    - queue:       number of pending jobs
    - utilization: percent CPU / memory usage
    """
    nodes: HealthThreshold = field(default_factory=_nodes_default)
    queue: HealthThreshold = field(default_factory=_queue_default)
    utilization: HealthThreshold = field(default_factory=_utilization_default)

    def get(self, check_name: str) -> Optional[HealthThreshold]:
        """Get the threshold for a check by name."""
        return {
            "nodes": self.nodes,
            "queue": self.queue,
            "utilization": self.utilization,
        }.get(check_name)

    def validate(self) -> None:
        """Validate warning bound never exceeds critical bound."""
        invalid = []
        for name in ("nodes", "queue", "utilization"):
            threshold = self.get(name)
            if (
                threshold.warning_max is not None
                and threshold.critical_max is not None
                and threshold.warning_max > threshold.critical_max
            ):
                invalid.append(name)
        if invalid:
            raise ConfigurationError(
                f"warning_max must be <= critical_max for: {', '.join(invalid)}",
                invalid_fields=invalid,
            )

    def to_dict(self) -> Dict[str, Dict[str, Optional[float]]]:
        """Convert to dictionary."""
        return {
            "nodes": self.nodes.to_dict(),
            "queue": self.queue.to_dict(),
            "utilization": self.utilization.to_dict(),
        }


# =============================================================
# SCORING
# =============================================================


@dataclass
class ScoringConfig:
    """
    Parameters of the composite health score.

    - Node deduction:     unavailable fraction * 100 * node_weight
    - Job deduction:      failed fraction * 100 * job_weight
    - Resource deduction: resource_penalty per resource above resource_limit
    """
    node_weight: float = 2.0
    job_weight: float = 1.0
    resource_limit: float = 95.0
    resource_penalty: float = 10.0

    # Tier boundaries (score >= boundary)
    excellent_min: float = 90.0
    good_min: float = 75.0
    fair_min: float = 60.0
    poor_min: float = 40.0

    def validate(self) -> None:
        """Validate tier boundaries are strictly descending."""
        if not (
            100 >= self.excellent_min > self.good_min
            > self.fair_min > self.poor_min >= 0
        ):
            raise ConfigurationError(
                "Tier boundaries must satisfy 100 >= excellent > good > fair > poor >= 0",
                invalid_fields=["excellent_min", "good_min", "fair_min", "poor_min"],
            )

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return {
            "node_weight": self.node_weight,
            "job_weight": self.job_weight,
            "resource_limit": self.resource_limit,
            "resource_penalty": self.resource_penalty,
            "excellent_min": self.excellent_min,
            "good_min": self.good_min,
            "fair_min": self.fair_min,
            "poor_min": self.poor_min,
        }


# =============================================================
# ALERTING
# =============================================================


@dataclass
class AlertConfig:
    """Alert manager settings."""
    max_history: int = 10000

    # Also notify when a deduplicated alert is refreshed
    notify_on_update: bool = False

    # Statuses below this severity are not sent to notification handlers
    min_severity: HealthStatus = HealthStatus.WARNING

    # Optional webhook target for WebhookNotifier
    webhook_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "max_history": self.max_history,
            "notify_on_update": self.notify_on_update,
            "min_severity": self.min_severity.value,
            "webhook_url": self.webhook_url,
        }


# =============================================================
# PARSING HELPERS
# =============================================================


def _env_float(suffix: str) -> Optional[float]:
    """Read CLUSTER_HEALTH_<suffix> as a float, None when unset."""
    name = f"{ENV_PREFIX}{suffix}"
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(
            f"{name} must be a number, got {raw!r}",
            invalid_fields=[name],
        ) from None


def _pick(values: Dict[str, Any], key: str, default: Any, suffix: str = "_max") -> Any:
    """Value under the short key or its field name (key + suffix)."""
    if key in values:
        return values[key]
    return values.get(f"{key}{suffix}", default)


# =============================================================
# MAIN CONFIGURATION
# =============================================================


@dataclass
class MonitorConfig:
    """
    Main configuration for the health monitor.

    Combines all sub-configurations.
    """
    check_interval_seconds: float = 30.0

    # Run evaluators of one tick in parallel worker threads
    run_checks_concurrently: bool = True

    thresholds: CheckThresholds = field(default_factory=CheckThresholds)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)

    # Logging
    log_all_results: bool = False

    def validate(self) -> "MonitorConfig":
        """
        Validate the configuration.

        Raises:
            ConfigurationError: If any value is out of range
        """
        if self.check_interval_seconds <= 0:
            raise ConfigurationError(
                "check_interval_seconds must be > 0",
                invalid_fields=["check_interval_seconds"],
            )
        if self.alerts.max_history <= 0:
            raise ConfigurationError(
                "alerts.max_history must be > 0",
                invalid_fields=["alerts.max_history"],
            )
        self.thresholds.validate()
        self.scoring.validate()
        return self

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        """
        Load configuration from environment variables.

        Environment variables:
        - CLUSTER_HEALTH_INTERVAL
        - CLUSTER_HEALTH_CONCURRENT_CHECKS
        - CLUSTER_HEALTH_NODES_WARNING / CLUSTER_HEALTH_NODES_CRITICAL
        - CLUSTER_HEALTH_QUEUE_WARNING / CLUSTER_HEALTH_QUEUE_CRITICAL
        - CLUSTER_HEALTH_UTILIZATION_WARNING / CLUSTER_HEALTH_UTILIZATION_CRITICAL
        - CLUSTER_HEALTH_WEBHOOK_URL

        Raises:
            ConfigurationError: If a numeric variable does not parse
        """
        config = cls()

        interval = _env_float("INTERVAL")
        if interval is not None:
            config.check_interval_seconds = interval
        if os.getenv(f"{ENV_PREFIX}CONCURRENT_CHECKS"):
            config.run_checks_concurrently = (
                os.getenv(f"{ENV_PREFIX}CONCURRENT_CHECKS").lower() in ("1", "true", "yes")
            )

        # Per-check threshold overrides
        for name in ("nodes", "queue", "utilization"):
            threshold = config.thresholds.get(name)
            warning = _env_float(f"{name.upper()}_WARNING")
            critical = _env_float(f"{name.upper()}_CRITICAL")
            if warning is not None:
                threshold.warning_max = warning
            if critical is not None:
                threshold.critical_max = critical

        if os.getenv(f"{ENV_PREFIX}WEBHOOK_URL"):
            config.alerts.webhook_url = os.getenv(f"{ENV_PREFIX}WEBHOOK_URL")

        return config.validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MonitorConfig":
        """
        Build configuration from a plain mapping.

        Accepts both the short keys used in YAML files
        (``warning``, ``excellent``) and the field names written
        by ``to_dict`` (``warning_max``, ``excellent_min``).
        """
        config = cls()

        if "check_interval_seconds" in data:
            config.check_interval_seconds = float(data["check_interval_seconds"])
        if "run_checks_concurrently" in data:
            config.run_checks_concurrently = bool(data["run_checks_concurrently"])

        # Thresholds
        if "thresholds" in data:
            t = data["thresholds"] or {}
            for name in ("nodes", "queue", "utilization"):
                if name in t:
                    current = config.thresholds.get(name)
                    values = t[name] or {}
                    setattr(config.thresholds, name, HealthThreshold(
                        warning_max=_pick(values, "warning", current.warning_max),
                        critical_max=_pick(values, "critical", current.critical_max),
                    ))

        # Scoring
        if "scoring" in data:
            s = data["scoring"] or {}
            defaults = ScoringConfig()
            config.scoring = ScoringConfig(
                node_weight=s.get("node_weight", defaults.node_weight),
                job_weight=s.get("job_weight", defaults.job_weight),
                resource_limit=s.get("resource_limit", defaults.resource_limit),
                resource_penalty=s.get("resource_penalty", defaults.resource_penalty),
                excellent_min=_pick(s, "excellent", defaults.excellent_min, "_min"),
                good_min=_pick(s, "good", defaults.good_min, "_min"),
                fair_min=_pick(s, "fair", defaults.fair_min, "_min"),
                poor_min=_pick(s, "poor", defaults.poor_min, "_min"),
            )

        # Alerts
        if "alerts" in data:
            a = data["alerts"] or {}
            config.alerts = AlertConfig(
                max_history=a.get("max_history", 10000),
                notify_on_update=a.get("notify_on_update", False),
                min_severity=HealthStatus(a.get("min_severity", "warning")),
                webhook_url=a.get("webhook_url"),
            )

        return config.validate()

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "MonitorConfig":
        """
        Load configuration from YAML file.

        A missing or unreadable file falls back to defaults.
        Invalid values raise ConfigurationError.
        """
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            logger.warning(f"Failed to load YAML config from {path}: {e}")
            return cls()

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "check_interval_seconds": self.check_interval_seconds,
            "run_checks_concurrently": self.run_checks_concurrently,
            "thresholds": self.thresholds.to_dict(),
            "scoring": self.scoring.to_dict(),
            "alerts": self.alerts.to_dict(),
        }


def load_config(path: Optional[Union[str, Path]] = None) -> MonitorConfig:
    """
    Load configuration.

    Reads a .env file into the environment first, then uses the
    YAML file when given, otherwise environment variables.
    """
    load_dotenv()
    if path is not None:
        return MonitorConfig.from_yaml(path)
    return MonitorConfig.from_env()


# =============================================================
# GLOBAL CONFIG SINGLETON
# =============================================================


_default_config: Optional[MonitorConfig] = None


def get_config() -> MonitorConfig:
    """Get the global monitor configuration."""
    global _default_config
    if _default_config is None:
        _default_config = MonitorConfig.from_env()
    return _default_config


def set_config(config: MonitorConfig) -> None:
    """Set the global monitor configuration."""
    global _default_config
    _default_config = config
