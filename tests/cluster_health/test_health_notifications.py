"""
Tests for alert formatting and webhook delivery.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from cluster_health.models import Alert, CheckResult, ClusterHealth, HealthStatus
from cluster_health.notifications import (
    AlertFormatter,
    WebhookNotifier,
    WebhookRateLimiter,
)


def _alert(severity=HealthStatus.CRITICAL, component="nodes"):
    return Alert(
        severity=severity,
        title=f"Health check {component}: {severity.value.upper()}",
        message="30.0% of nodes unavailable",
        component=component,
    )


def _mock_session(status=200, text="ok", post_side_effect=None):
    """Session whose post() works as an async context manager."""
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=text)

    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=response)
    context.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    session.closed = False
    if post_side_effect is not None:
        session.post = MagicMock(side_effect=post_side_effect)
    else:
        session.post = MagicMock(return_value=context)
    return session


# ============================================================
# FORMATTER
# ============================================================

class TestAlertFormatter:
    """Tests for AlertFormatter."""

    def test_format_alert(self):
        """Test alert text content."""
        text = AlertFormatter.format_alert(_alert())

        assert "Health check nodes: CRITICAL" in text
        assert "30.0% of nodes unavailable" in text
        assert "Severity: CRITICAL" in text
        assert "Component: nodes" in text
        assert "Occurrences" not in text

    def test_format_summary_empty(self):
        """Test empty summary."""
        assert AlertFormatter.format_summary([]) == "No active alerts"

    def test_format_summary(self):
        """Test summary counts and critical listing."""
        text = AlertFormatter.format_summary([
            _alert(HealthStatus.CRITICAL, "nodes"),
            _alert(HealthStatus.WARNING, "queue"),
        ])

        assert "Critical: 1" in text
        assert "Warning: 1" in text
        assert "Total Active: 2" in text
        assert "- Health check nodes: CRITICAL" in text

    def test_format_health(self):
        """Test health snapshot text."""
        health = ClusterHealth(overall_status=HealthStatus.WARNING)
        health.checks["queue"] = CheckResult(
            name="queue", status=HealthStatus.WARNING, message="150 pending jobs",
        )

        text = AlertFormatter.format_health(health)

        assert text.startswith("Cluster health: WARNING")
        assert "queue: 150 pending jobs" in text


# ============================================================
# RATE LIMITER
# ============================================================

class TestWebhookRateLimiter:
    """Tests for WebhookRateLimiter."""

    @pytest.mark.asyncio
    async def test_minute_limit(self):
        """Test sends beyond the per-minute limit are refused."""
        limiter = WebhookRateLimiter(max_per_minute=2, max_per_hour=10)

        assert await limiter.acquire() is True
        assert await limiter.acquire() is True
        assert await limiter.acquire() is False
        assert limiter.remaining_minute == 0

    @pytest.mark.asyncio
    async def test_hour_limit(self):
        """Test the hourly limit applies too."""
        limiter = WebhookRateLimiter(max_per_minute=10, max_per_hour=1)

        assert await limiter.acquire() is True
        assert await limiter.acquire() is False

    @pytest.mark.asyncio
    async def test_retry_after(self):
        """Test retry_after reports the wait for the exhausted window."""
        limiter = WebhookRateLimiter(max_per_minute=3, max_per_hour=10)
        assert limiter.retry_after() == 0.0

        await limiter.acquire()
        assert limiter.remaining_minute == 2
        await limiter.acquire()
        await limiter.acquire()

        assert limiter.remaining_minute == 0
        assert 0.0 < limiter.retry_after() <= 60.0

    @pytest.mark.asyncio
    async def test_hour_window_dominates_retry_after(self):
        """Test retry_after waits for the hourly window when it is the one full."""
        limiter = WebhookRateLimiter(max_per_minute=10, max_per_hour=1)
        await limiter.acquire()

        assert limiter.remaining_minute == 9
        assert 60.0 < limiter.retry_after() <= 3600.0

    def test_built_without_event_loop(self):
        """Test the limiter can be built and used outside a running loop."""
        limiter = WebhookRateLimiter(max_per_minute=1)
        assert asyncio.run(limiter.acquire()) is True
        assert asyncio.run(limiter.acquire()) is False


# ============================================================
# WEBHOOK NOTIFIER
# ============================================================

class TestWebhookNotifier:
    """Tests for WebhookNotifier."""

    def test_disabled_without_url(self, monkeypatch):
        """Test notifier is disabled with no URL."""
        monkeypatch.delenv("CLUSTER_HEALTH_WEBHOOK_URL", raising=False)
        notifier = WebhookNotifier()
        assert notifier.enabled is False

    def test_url_from_env(self, monkeypatch):
        """Test URL is read from the environment."""
        monkeypatch.setenv("CLUSTER_HEALTH_WEBHOOK_URL", "http://hooks.local/a")
        assert WebhookNotifier().enabled is True

    @pytest.mark.asyncio
    async def test_send_alert(self):
        """Test alert payload is posted."""
        notifier = WebhookNotifier(url="http://hooks.local/alert")
        session = _mock_session()
        notifier._session = session

        assert await notifier(_alert()) is True

        args, kwargs = session.post.call_args
        assert args[0] == "http://hooks.local/alert"
        assert "Health check nodes: CRITICAL" in kwargs["json"]["text"]
        assert kwargs["json"]["alert"]["component"] == "nodes"
        assert notifier.get_stats()["sent"] == 1

    @pytest.mark.asyncio
    async def test_below_min_severity_not_sent(self):
        """Test severity filter."""
        notifier = WebhookNotifier(
            url="http://hooks.local/alert", min_severity=HealthStatus.CRITICAL,
        )
        session = _mock_session()
        notifier._session = session

        assert await notifier.send_alert(_alert(HealthStatus.WARNING)) is False
        session.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_disabled_not_sent(self):
        """Test disabled notifier sends nothing."""
        notifier = WebhookNotifier(url="http://hooks.local/alert")
        session = _mock_session()
        notifier._session = session
        notifier.disable()

        assert await notifier.send_alert(_alert()) is False
        session.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_http_error_counted(self):
        """Test non-2xx response is a failure."""
        notifier = WebhookNotifier(url="http://hooks.local/alert")
        notifier._session = _mock_session(status=500, text="boom")

        assert await notifier.send_alert(_alert()) is False
        assert notifier.get_stats()["failed"] == 1

    @pytest.mark.asyncio
    async def test_client_error_counted(self):
        """Test connection errors are contained."""
        notifier = WebhookNotifier(url="http://hooks.local/alert")
        notifier._session = _mock_session(
            post_side_effect=aiohttp.ClientConnectionError("refused"),
        )

        assert await notifier.send_alert(_alert()) is False
        assert notifier.get_stats()["failed"] == 1

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        """Test rate limiter blocks delivery."""
        limiter = WebhookRateLimiter(max_per_minute=1)
        notifier = WebhookNotifier(url="http://hooks.local/alert", rate_limiter=limiter)
        session = _mock_session()
        notifier._session = session

        assert await notifier.send_alert(_alert()) is True
        assert await notifier.send_alert(_alert()) is False
        assert session.post.call_count == 1

    @pytest.mark.asyncio
    async def test_send_summary_and_health(self):
        """Test summary and health payloads."""
        notifier = WebhookNotifier(url="http://hooks.local/alert")
        session = _mock_session()
        notifier._session = session

        assert await notifier.send_summary([_alert()]) is True
        assert await notifier.send_health(ClusterHealth()) is True

        payloads = [call.kwargs["json"] for call in session.post.call_args_list]
        assert payloads[0]["text"].startswith("Alert Summary")
        assert payloads[1]["text"].startswith("Cluster health: UNKNOWN")
