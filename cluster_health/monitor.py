"""
Cluster Health - Health Monitor.

============================================================
MAIN ORCHESTRATOR
============================================================

The HealthMonitor is the main entry point for the engine:
- Registers checks
- Runs them on a recurring schedule
- Merges results into the aggregate health state
- Hands non-healthy results to the alert manager

============================================================
PUBLIC INTERFACE
============================================================

```python
monitor = HealthMonitor(provider)

await monitor.start()            # idempotent
health = monitor.get_health()    # deep copy, safe to mutate
alerts = monitor.get_alert_manager().get_active_alerts()
await monitor.stop()             # idempotent, waits for in-flight tick
```

============================================================
CONCURRENCY
============================================================

- One background task runs the tick loop
- Evaluators run in worker threads, outside the state lock
- Results are merged under the state lock
- stop() lets an in-flight tick finish; no tick fires after

============================================================
"""

import asyncio
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from .alerts import AlertManager
from .checks import HealthCheck, get_default_checks
from .config import MonitorConfig, get_config, load_config
from .exceptions import ConfigurationError
from .models import CheckResult, ClusterHealth, HealthScore, HealthStatus, utc_now
from .notifications import WebhookNotifier
from .provider import ClusterDataProvider
from .scoring import score_cluster
from .state import AggregateHealthState


logger = logging.getLogger(__name__)


class HealthMonitor:
    """
    Periodic scheduler for cluster health checks.

    ============================================================
    RESPONSIBILITIES
    ============================================================

    - Owns the registered checks and the tick loop
    - Owns the aggregate health state
    - Owns the alert manager

    ============================================================
    """

    def __init__(
        self,
        provider: ClusterDataProvider,
        config: Optional[MonitorConfig] = None,
        checks: Optional[List[HealthCheck]] = None,
        alert_manager: Optional[AlertManager] = None,
    ) -> None:
        """
        Initialize health monitor.

        Args:
            provider: Cluster data provider
            config: Monitor configuration
            checks: Checks to register (default: the built-in three)
            alert_manager: Alert manager (default: a new one)
        """
        self._provider = provider
        self._config = config or get_config()

        self._state = AggregateHealthState()
        self._alert_manager = alert_manager or AlertManager(self._config.alerts)

        # Registered checks
        self._checks: Dict[str, HealthCheck] = {}
        self._checks_lock = threading.RLock()
        for check in (checks if checks is not None else get_default_checks(self._config)):
            self.register_check(check)

        # Background loop
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._lifecycle_lock = asyncio.Lock()
        self._running = False

        # Statistics
        self._tick_count = 0
        self._tick_errors = 0
        self._last_tick_at: Optional[datetime] = None

        logger.info(
            f"HealthMonitor initialized with {len(self._checks)} checks "
            f"(interval={self._config.check_interval_seconds}s)"
        )

    # =========================================================
    # CHECK REGISTRATION
    # =========================================================

    def register_check(self, check: HealthCheck) -> None:
        """Register a check. Replaces a check with the same name."""
        with self._checks_lock:
            if check.name in self._checks:
                logger.info(f"Replacing health check: {check.name}")
            self._checks[check.name] = check
        logger.debug(f"Registered health check: {check.name}")

    def unregister_check(self, name: str) -> bool:
        """Unregister a check and drop its state."""
        with self._checks_lock:
            if name not in self._checks:
                return False
            del self._checks[name]
        self._state.remove_check(name)
        logger.info(f"Unregistered health check: {name}")
        return True

    def get_checks(self) -> List[HealthCheck]:
        """Get registered checks."""
        with self._checks_lock:
            return list(self._checks.values())

    # =========================================================
    # LIFECYCLE
    # =========================================================

    @property
    def provider(self) -> ClusterDataProvider:
        """Cluster data provider used by the checks."""
        return self._provider

    @property
    def is_running(self) -> bool:
        """Whether the tick loop is running."""
        return self._running

    async def start(self) -> None:
        """Start the tick loop. No-op if already running."""
        async with self._lifecycle_lock:
            if self._running:
                return

            self._running = True
            self._stop_event = asyncio.Event()
            self._task = asyncio.create_task(self._run_loop())
            logger.info("Health monitor started")

    async def stop(self) -> None:
        """
        Stop the tick loop. No-op if not running.

        Returns after any in-flight tick has completed.
        """
        async with self._lifecycle_lock:
            if not self._running:
                return

            self._running = False
            if self._stop_event is not None:
                self._stop_event.set()

            task, self._task = self._task, None
            if task is not None:
                await task
            self._stop_event = None
            logger.info("Health monitor stopped")

    async def _run_loop(self) -> None:
        """Main tick loop."""
        stop_event = self._stop_event
        while self._running:
            try:
                await self.perform_health_checks()
            except Exception as e:
                self._tick_errors += 1
                logger.error(f"Health check tick failed: {e}", exc_info=True)

            if not self._running:
                break
            try:
                await asyncio.wait_for(
                    stop_event.wait(),
                    timeout=self._config.check_interval_seconds,
                )
            except asyncio.TimeoutError:
                pass

    # =========================================================
    # EVALUATION
    # =========================================================

    async def perform_health_checks(self) -> List[CheckResult]:
        """
        Run one evaluation cycle.

        Evaluates every registered check, merges results into
        the aggregate state and raises alerts for non-healthy ones.

        Returns:
            Merged results with updated run counters
        """
        checks = self.get_checks()

        if self._config.run_checks_concurrently:
            results = await asyncio.gather(*(
                asyncio.to_thread(check.safe_evaluate, self._provider)
                for check in checks
            ))
        else:
            results = []
            for check in checks:
                results.append(
                    await asyncio.to_thread(check.safe_evaluate, self._provider)
                )

        merged = self._state.merge(results)

        for result in merged:
            if self._config.log_all_results:
                logger.info(
                    f"Check {result.name}: {result.status.value} - {result.message}"
                )
            else:
                logger.debug(
                    f"Check {result.name}: {result.status.value} - {result.message}"
                )

        await self._alert_manager.process_results(merged)

        self._tick_count += 1
        self._last_tick_at = utc_now()
        return merged

    # =========================================================
    # QUERIES
    # =========================================================

    def get_health(self) -> ClusterHealth:
        """Get an independent snapshot of cluster health."""
        return self._state.snapshot()

    def get_overall_status(self) -> HealthStatus:
        """Get current overall status."""
        return self._state.get_overall_status()

    def get_alert_manager(self) -> AlertManager:
        """Get the alert manager."""
        return self._alert_manager

    def get_state(self) -> AggregateHealthState:
        """Get the aggregate health state store."""
        return self._state

    def compute_score(self) -> HealthScore:
        """Score a fresh provider snapshot."""
        return score_cluster(self._provider, self._config.scoring)

    # =========================================================
    # DIAGNOSTICS
    # =========================================================

    def get_statistics(self) -> Dict[str, Any]:
        """Get monitor statistics."""
        return {
            "running": self._running,
            "tick_count": self._tick_count,
            "tick_errors": self._tick_errors,
            "last_tick_at": (
                self._last_tick_at.isoformat() if self._last_tick_at else None
            ),
            "interval_seconds": self._config.check_interval_seconds,
            "checks": [check.get_stats() for check in self.get_checks()],
            "state": self._state.get_statistics(),
        }


# =============================================================
# FACTORY
# =============================================================


def create_health_monitor(
    provider: ClusterDataProvider,
    config_path: Optional[Union[str, Path]] = None,
    config: Optional[MonitorConfig] = None,
) -> HealthMonitor:
    """
    Create a monitor with configuration and notifications wired.

    A webhook notifier is attached when a webhook URL is configured.
    """
    config = config or load_config(config_path)
    monitor = HealthMonitor(provider, config=config)

    if config.alerts.webhook_url:
        notifier = WebhookNotifier(
            url=config.alerts.webhook_url,
            min_severity=config.alerts.min_severity,
        )
        monitor.get_alert_manager().add_handler(notifier)

    return monitor


# =============================================================
# GLOBAL MONITOR SINGLETON
# =============================================================


_default_monitor: Optional[HealthMonitor] = None
_monitor_lock = threading.Lock()


def get_monitor(provider: Optional[ClusterDataProvider] = None) -> HealthMonitor:
    """
    Get the global health monitor.

    Creates one on first use, which requires a provider.
    """
    global _default_monitor

    with _monitor_lock:
        if _default_monitor is None:
            if provider is None:
                raise ConfigurationError(
                    "No health monitor configured; pass a provider on first use"
                )
            _default_monitor = HealthMonitor(provider)
        return _default_monitor


def set_monitor(monitor: Optional[HealthMonitor]) -> None:
    """Set (or clear) the global health monitor."""
    global _default_monitor

    with _monitor_lock:
        _default_monitor = monitor
