"""
Webhook Notification Handler.

============================================================
PURPOSE
============================================================
Deliver health alerts to a chat or incident webhook.

PRINCIPLES:
- Notification-only, NO control commands
- Rate limiting to prevent spam
- Clear, actionable messages
- Severity filtering

============================================================
"""

import asyncio
import logging
import os
import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Any, Deque, Dict, List, Optional, Tuple

import aiohttp

from .display import status_icon
from .models import Alert, ClusterHealth, HealthStatus, utc_now


logger = logging.getLogger(__name__)


# ============================================================
# MESSAGE FORMATTER
# ============================================================

class AlertFormatter:
    """Formats alerts and health snapshots as plain text."""

    @classmethod
    def format_alert(cls, alert: Alert) -> str:
        """Format one alert."""
        lines = [
            f"{status_icon(alert.severity)} {alert.title}",
            "",
            alert.message,
            "",
            f"Severity: {alert.severity.value.upper()}",
            f"Component: {alert.component}",
            f"Raised: {alert.created_at.strftime('%Y-%m-%d %H:%M:%S UTC')}",
        ]
        if alert.occurrences > 1:
            lines.append(f"Occurrences: {alert.occurrences}")
        return "\n".join(lines)

    @classmethod
    def format_summary(cls, alerts: List[Alert]) -> str:
        """Format a summary of active alerts."""
        if not alerts:
            return "No active alerts"

        critical = sum(1 for a in alerts if a.severity == HealthStatus.CRITICAL)
        unknown = sum(1 for a in alerts if a.severity == HealthStatus.UNKNOWN)
        warning = sum(1 for a in alerts if a.severity == HealthStatus.WARNING)

        lines = [
            "Alert Summary",
            "",
            f"Critical: {critical}",
            f"Unknown: {unknown}",
            f"Warning: {warning}",
            "",
            f"Total Active: {len(alerts)}",
        ]
        if critical > 0:
            lines.append("")
            lines.append("Critical Alerts:")
            for alert in alerts:
                if alert.severity == HealthStatus.CRITICAL:
                    lines.append(f"- {alert.title}")
        return "\n".join(lines)

    @classmethod
    def format_health(cls, health: ClusterHealth) -> str:
        """Format a cluster health snapshot."""
        lines = [
            f"Cluster health: {health.overall_status.value.upper()}",
            "",
        ]
        for name in sorted(health.checks):
            result = health.checks[name]
            lines.append(f"{status_icon(result.status)} {name}: {result.message}")
        return "\n".join(lines)


# ============================================================
# RATE LIMITER
# ============================================================

class WebhookRateLimiter:
    """
    Per-minute and per-hour send budget.

    One timeline of send times serves both windows; entries older
    than the longest window are discarded on each call.
    """

    MINUTE = timedelta(minutes=1)
    HOUR = timedelta(hours=1)

    def __init__(
        self,
        max_per_minute: int = 20,
        max_per_hour: int = 100,
    ):
        self._limits: List[Tuple[timedelta, int]] = [
            (self.MINUTE, max_per_minute),
            (self.HOUR, max_per_hour),
        ]
        self._sent: Deque[datetime] = deque()
        self._lock = threading.Lock()

    def _prune(self, now: datetime) -> None:
        horizon = now - self.HOUR
        while self._sent and self._sent[0] <= horizon:
            self._sent.popleft()

    def _count_since(self, since: datetime) -> int:
        return sum(1 for t in self._sent if t > since)

    async def acquire(self) -> bool:
        """Try to take a send slot. False when any window is exhausted."""
        with self._lock:
            now = utc_now()
            self._prune(now)
            for window, limit in self._limits:
                if self._count_since(now - window) >= limit:
                    return False
            self._sent.append(now)
            return True

    def retry_after(self) -> float:
        """Seconds until a slot frees up in every window (0 if one is free now)."""
        with self._lock:
            now = utc_now()
            self._prune(now)
            wait = 0.0
            for window, limit in self._limits:
                recent = [t for t in self._sent if t > now - window]
                if len(recent) >= limit:
                    # Oldest send that still blocks this window
                    blocking = recent[len(recent) - limit]
                    wait = max(wait, (blocking + window - now).total_seconds())
            return wait

    @property
    def remaining_minute(self) -> int:
        """Remaining sends in current minute."""
        with self._lock:
            now = utc_now()
            used = self._count_since(now - self.MINUTE)
        return max(0, self._limits[0][1] - used)


# ============================================================
# WEBHOOK NOTIFIER
# ============================================================

class WebhookNotifier:
    """
    Posts alerts as JSON to a webhook URL.

    The payload carries a ``text`` field (accepted by most chat
    webhooks) and the structured alert under ``alert``.
    Usable directly as an AlertManager notification handler.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        rate_limiter: Optional[WebhookRateLimiter] = None,
        min_severity: HealthStatus = HealthStatus.WARNING,
        timeout_seconds: float = 10.0,
    ):
        self._url = url or os.getenv("CLUSTER_HEALTH_WEBHOOK_URL", "")
        self._rate_limiter = rate_limiter or WebhookRateLimiter()
        self._min_severity = min_severity
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._formatter = AlertFormatter()

        self._session: Optional[aiohttp.ClientSession] = None
        self._enabled = bool(self._url)

        # Statistics
        self._sent_count = 0
        self._failed_count = 0

        if self._enabled:
            logger.info("WebhookNotifier enabled")
        else:
            logger.warning("WebhookNotifier NOT configured - check CLUSTER_HEALTH_WEBHOOK_URL")

    async def __call__(self, alert: Alert) -> bool:
        return await self.send_alert(alert)

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def enable(self) -> None:
        self._enabled = bool(self._url)

    def disable(self) -> None:
        self._enabled = False

    async def send_alert(self, alert: Alert) -> bool:
        """
        Send an alert notification.

        Returns True if sent successfully.
        """
        if not self._enabled:
            return False
        if alert.severity.severity_rank < self._min_severity.severity_rank:
            return False

        return await self._post({
            "text": self._formatter.format_alert(alert),
            "alert": alert.to_dict(),
        })

    async def send_summary(self, alerts: List[Alert]) -> bool:
        """Send active alert summary."""
        if not self._enabled:
            return False
        return await self._post({
            "text": self._formatter.format_summary(alerts),
            "alerts": [a.to_dict() for a in alerts],
        })

    async def send_health(self, health: ClusterHealth) -> bool:
        """Send a cluster health snapshot."""
        if not self._enabled:
            return False
        return await self._post({
            "text": self._formatter.format_health(health),
            "health": health.summary(),
        })

    async def _post(self, payload: Dict[str, Any]) -> bool:
        if not await self._rate_limiter.acquire():
            logger.warning("Webhook rate limit reached, message not sent")
            return False

        try:
            session = await self._get_session()
            async with session.post(self._url, json=payload) as response:
                if 200 <= response.status < 300:
                    self._sent_count += 1
                    return True
                body = await response.text()
                logger.error(f"Webhook error: {response.status} - {body}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error sending webhook message: {e}")

        self._failed_count += 1
        return False

    def get_stats(self) -> Dict[str, Any]:
        """Get delivery statistics."""
        return {
            "enabled": self._enabled,
            "sent": self._sent_count,
            "failed": self._failed_count,
            "remaining_minute": self._rate_limiter.remaining_minute,
        }
