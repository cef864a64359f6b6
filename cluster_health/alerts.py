"""
Cluster Health - Alert Manager.

============================================================
PURPOSE
============================================================
Derives operator alerts from non-healthy check results and
manages their lifecycle.

PRINCIPLES:
- One active alert per component and type (dedup)
- Clear lifecycle (created -> acknowledged)
- Alerts are never cleared automatically
- Notification-only, NO control actions

============================================================
"""

import copy
import logging
import threading
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .config import AlertConfig
from .exceptions import AlertNotFoundError
from .models import Alert, AlertType, CheckResult, HealthStatus, utc_now


logger = logging.getLogger(__name__)


def alert_title(result: CheckResult) -> str:
    """Title for an alert raised by a check."""
    return f"Health check {result.name}: {result.status.value.upper()}"


# ============================================================
# ALERT HISTORY
# ============================================================

class AlertHistory:
    """
    Ordered store of alerts, oldest first.

    Not thread-safe on its own; AlertManager serializes access.
    """

    def __init__(self, max_history: int = 10000):
        self._alerts: List[Alert] = []
        self._max_history = max_history
        self._alerts_by_id: Dict[str, Alert] = {}

    def __len__(self) -> int:
        return len(self._alerts)

    def add(self, alert: Alert) -> None:
        """Add alert to history."""
        self._alerts.append(alert)
        self._alerts_by_id[alert.alert_id] = alert

        # Trim history if needed
        if len(self._alerts) > self._max_history:
            removed = self._alerts[:-self._max_history]
            self._alerts = self._alerts[-self._max_history:]
            for old in removed:
                self._alerts_by_id.pop(old.alert_id, None)

    def get(self, alert_id: str) -> Optional[Alert]:
        """Get alert by ID."""
        return self._alerts_by_id.get(alert_id)

    def get_recent(self, limit: int = 100) -> List[Alert]:
        """Get recent alerts, newest first."""
        return self._alerts[-limit:][::-1]

    def get_unacknowledged(self) -> List[Alert]:
        """Get unacknowledged alerts in creation order."""
        return [a for a in self._alerts if not a.acknowledged]

    def get_by_severity(self, severity: HealthStatus) -> List[Alert]:
        """Get alerts by severity."""
        return [a for a in self._alerts if a.severity == severity]

    def get_by_component(self, component: str) -> List[Alert]:
        """Get alerts raised for a component."""
        return [a for a in self._alerts if a.component == component]

    def find_active(self, component: str, alert_type: AlertType) -> Optional[Alert]:
        """Find the unacknowledged alert for a component and type."""
        for alert in reversed(self._alerts):
            if (
                not alert.acknowledged
                and alert.component == component
                and alert.alert_type == alert_type
            ):
                return alert
        return None

    def acknowledge(
        self,
        alert_id: str,
        acknowledged_by: str,
    ) -> bool:
        """Acknowledge an alert."""
        alert = self._alerts_by_id.get(alert_id)
        if alert is None:
            return False

        if not alert.acknowledged:
            alert.acknowledged = True
            alert.acknowledged_at = utc_now()
            alert.acknowledged_by = acknowledged_by
        return True

    def stats(self) -> Dict[str, Any]:
        """Get alert statistics."""
        now = utc_now()
        last_hour = now - timedelta(hours=1)
        last_day = now - timedelta(days=1)

        return {
            "total_alerts": len(self._alerts),
            "unacknowledged": len(self.get_unacknowledged()),
            "alerts_last_hour": sum(
                1 for a in self._alerts if a.created_at >= last_hour
            ),
            "alerts_last_24h": sum(
                1 for a in self._alerts if a.created_at >= last_day
            ),
            "by_severity": {
                status.value: len(self.get_by_severity(status))
                for status in HealthStatus
                if status != HealthStatus.HEALTHY
            },
        }


# ============================================================
# ALERT MANAGER
# ============================================================

# Type for notification handlers
NotificationHandler = Callable[[Alert], Awaitable[bool]]


class AlertManager:
    """
    Creates, deduplicates and acknowledges health alerts.

    ```python
    manager = AlertManager()
    alert = manager.generate_alert(result)      # non-healthy result
    for alert in manager.get_active_alerts():
        manager.acknowledge(alert.alert_id, "operator")
    ```
    """

    def __init__(
        self,
        config: Optional[AlertConfig] = None,
        notification_handlers: Optional[List[NotificationHandler]] = None,
    ):
        self._config = config or AlertConfig()
        self._handlers = list(notification_handlers or [])
        self._history = AlertHistory(max_history=self._config.max_history)
        self._lock = threading.RLock()
        self._enabled = True

    @property
    def history(self) -> AlertHistory:
        """Get alert history."""
        return self._history

    # --------------------------------------------------------
    # HANDLERS
    # --------------------------------------------------------

    def add_handler(self, handler: NotificationHandler) -> None:
        """Add a notification handler."""
        self._handlers.append(handler)

    def remove_handler(self, handler: NotificationHandler) -> None:
        """Remove a notification handler."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def enable(self) -> None:
        """Enable alert generation."""
        self._enabled = True

    def disable(self) -> None:
        """Disable alert generation."""
        self._enabled = False

    # --------------------------------------------------------
    # GENERATION
    # --------------------------------------------------------

    def generate_alert(self, result: CheckResult) -> Optional[Alert]:
        """
        Raise or refresh the alert for a non-healthy result.

        An unacknowledged alert for the same component is updated
        in place rather than duplicated.

        Returns:
            Copy of the created or updated alert, None for a
            healthy result or while disabled
        """
        alert, _ = self._upsert(result)
        return alert

    def _upsert(self, result: CheckResult) -> Tuple[Optional[Alert], bool]:
        """Create or update an alert. Second value: notify handlers."""
        if not self._enabled or result.status == HealthStatus.HEALTHY:
            return None, False

        with self._lock:
            existing = self._history.find_active(result.name, AlertType.HEALTH)

            if existing is None:
                alert = Alert(
                    severity=result.status,
                    title=alert_title(result),
                    message=result.message,
                    component=result.name,
                    alert_type=AlertType.HEALTH,
                )
                self._history.add(alert)
                logger.info(
                    f"Alert created: {alert.title} [{alert.severity.value}] "
                    f"({alert.alert_id})"
                )
                return copy.copy(alert), True

            escalated = result.status.is_worse_than(existing.severity)
            existing.severity = result.status
            existing.title = alert_title(result)
            existing.message = result.message
            existing.updated_at = utc_now()
            existing.occurrences += 1

            if escalated:
                logger.info(
                    f"Alert escalated: {existing.title} ({existing.alert_id})"
                )
            notify = escalated or self._config.notify_on_update
            return copy.copy(existing), notify

    async def process_results(self, results: List[CheckResult]) -> List[Alert]:
        """
        Generate alerts for every non-healthy result and notify.

        Returns:
            Alerts created or updated by this call
        """
        touched: List[Alert] = []
        to_notify: List[Alert] = []

        for result in results:
            if result.status == HealthStatus.HEALTHY:
                continue
            try:
                alert, notify = self._upsert(result)
            except Exception as e:
                logger.error(f"Error generating alert for {result.name}: {e}")
                continue
            if alert is None:
                continue
            touched.append(alert)
            if notify and self._should_notify(alert):
                to_notify.append(alert)

        if to_notify:
            await self._dispatch_notifications(to_notify)

        return touched

    def _should_notify(self, alert: Alert) -> bool:
        return alert.severity.severity_rank >= self._config.min_severity.severity_rank

    async def _dispatch_notifications(self, alerts: List[Alert]) -> None:
        """Dispatch alerts to notification handlers."""
        for alert in alerts:
            for handler in self._handlers:
                try:
                    await handler(alert)
                except Exception as e:
                    logger.error(f"Notification handler error: {e}")

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    def acknowledge(
        self,
        alert_id: str,
        acknowledged_by: str = "operator",
    ) -> Alert:
        """
        Acknowledge an alert.

        Raises:
            AlertNotFoundError: If no alert has this id
        """
        with self._lock:
            if not self._history.acknowledge(alert_id, acknowledged_by):
                logger.warning(f"Acknowledge requested for unknown alert {alert_id}")
                raise AlertNotFoundError(alert_id)
            alert = self._history.get(alert_id)
            logger.info(f"Alert acknowledged: {alert.title} by {acknowledged_by}")
            return copy.copy(alert)

    # --------------------------------------------------------
    # QUERIES
    # --------------------------------------------------------

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        """Get a copy of an alert by id."""
        with self._lock:
            alert = self._history.get(alert_id)
            return copy.copy(alert) if alert else None

    def get_active_alerts(self) -> List[Alert]:
        """Get unacknowledged alerts in creation order."""
        with self._lock:
            return [copy.copy(a) for a in self._history.get_unacknowledged()]

    def get_critical_alerts(self) -> List[Alert]:
        """Get unacknowledged CRITICAL alerts."""
        return [
            a for a in self.get_active_alerts()
            if a.severity == HealthStatus.CRITICAL
        ]

    def get_recent(self, limit: int = 100) -> List[Alert]:
        """Get recent alerts, acknowledged or not, newest first."""
        with self._lock:
            return [copy.copy(a) for a in self._history.get_recent(limit)]

    def get_alert_summary(self) -> Dict[str, Any]:
        """Get alert summary for dashboards."""
        with self._lock:
            active = self._history.get_unacknowledged()
            return {
                "active_count": len(active),
                "critical_count": sum(
                    1 for a in active if a.severity == HealthStatus.CRITICAL
                ),
                "unknown_count": sum(
                    1 for a in active if a.severity == HealthStatus.UNKNOWN
                ),
                "warning_count": sum(
                    1 for a in active if a.severity == HealthStatus.WARNING
                ),
                "stats": self._history.stats(),
            }
