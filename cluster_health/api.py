"""
Cluster Health API Endpoints.

============================================================
PURPOSE
============================================================
HTTP API for health data access.

PRINCIPLES:
- Endpoints are READ-ONLY except alert acknowledgment
- NO cluster control endpoints
- Pure data retrieval

============================================================
"""

import asyncio
import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any

from aiohttp import web

from .exceptions import AlertNotFoundError
from .models import HealthStatus, utc_now
from .monitor import HealthMonitor
from .node_health import aggregate_node_metrics, summarize_node_states
from .provider import ListNodesOptions


logger = logging.getLogger(__name__)


# ============================================================
# JSON ENCODER
# ============================================================

class HealthJSONEncoder(json.JSONEncoder):
    """JSON encoder for health data."""

    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        return super().default(obj)


def json_response(data: Any, status: int = 200) -> web.Response:
    """Create JSON response."""
    return web.Response(
        text=json.dumps(data, cls=HealthJSONEncoder, indent=2),
        status=status,
        content_type="application/json",
    )


def error_response(message: str, status: int) -> web.Response:
    return json_response({"status": "error", "error": message}, status=status)


# ============================================================
# API HANDLERS
# ============================================================

class HealthAPI:
    """
    HTTP API over a HealthMonitor.

    Acknowledging an alert is the only non-read endpoint.
    """

    def __init__(self, monitor: HealthMonitor):
        self._monitor = monitor

    # --------------------------------------------------------
    # HEALTH ENDPOINTS
    # --------------------------------------------------------

    async def get_health(self, request: web.Request) -> web.Response:
        """
        GET /health

        Full cluster health snapshot.
        """
        health = self._monitor.get_health()
        return json_response({
            "status": "ok",
            "data": health,
            "summary": health.summary(),
        })

    async def get_checks(self, request: web.Request) -> web.Response:
        """
        GET /health/checks

        All check results. Optional query: status=<healthy|warning|...>
        """
        health = self._monitor.get_health()
        checks = list(health.checks.values())

        status = request.query.get("status")
        if status:
            try:
                wanted = HealthStatus(status.lower())
            except ValueError:
                return error_response(f"Invalid status: {status}", 400)
            checks = [c for c in checks if c.status == wanted]

        return json_response({"status": "ok", "data": checks})

    async def get_check(self, request: web.Request) -> web.Response:
        """
        GET /health/checks/{name}
        """
        name = request.match_info["name"]
        result = self._monitor.get_health().get_check(name)
        if result is None:
            return error_response(f"Check {name} not found", 404)
        return json_response({"status": "ok", "data": result})

    async def get_score(self, request: web.Request) -> web.Response:
        """
        GET /score

        Composite score of a fresh provider snapshot.
        """
        try:
            score = await asyncio.to_thread(self._monitor.compute_score)
        except Exception as e:
            logger.error(f"Error computing health score: {e}")
            return error_response(str(e), 500)
        return json_response({"status": "ok", "data": score})

    async def get_nodes_summary(self, request: web.Request) -> web.Response:
        """
        GET /nodes/summary

        Node counts per state and aggregate usage.
        """
        try:
            node_list = await asyncio.to_thread(
                self._monitor.provider.list_nodes, ListNodesOptions()
            )
        except Exception as e:
            logger.error(f"Error listing nodes: {e}")
            return error_response(f"Failed to get node list: {e}", 502)

        return json_response({
            "status": "ok",
            "data": {
                "states": summarize_node_states(node_list.nodes),
                "aggregate": aggregate_node_metrics(node_list.nodes),
            },
        })

    # --------------------------------------------------------
    # ALERT ENDPOINTS
    # --------------------------------------------------------

    async def get_alerts(self, request: web.Request) -> web.Response:
        """
        GET /alerts

        Query params:
        - active_only: Only unacknowledged alerts (default true)
        - severity: Filter by severity
        - limit: Max number of alerts when active_only=false
        """
        manager = self._monitor.get_alert_manager()

        active_only = request.query.get("active_only", "true").lower() == "true"
        try:
            limit = int(request.query.get("limit", 100))
        except ValueError:
            return error_response("limit must be an integer", 400)

        if active_only:
            alerts = manager.get_active_alerts()
        else:
            alerts = manager.get_recent(limit)

        severity = request.query.get("severity")
        if severity:
            try:
                wanted = HealthStatus(severity.lower())
            except ValueError:
                return error_response(f"Invalid severity: {severity}", 400)
            alerts = [a for a in alerts if a.severity == wanted]

        return json_response({
            "status": "ok",
            "data": {
                "alerts": alerts,
                "summary": manager.get_alert_summary(),
            },
        })

    async def acknowledge_alert(self, request: web.Request) -> web.Response:
        """
        POST /alerts/{alert_id}/acknowledge

        Body (optional): {"acknowledged_by": "<name>"}
        """
        alert_id = request.match_info["alert_id"]

        acknowledged_by = "operator"
        if request.can_read_body:
            try:
                body = await request.json()
            except json.JSONDecodeError:
                return error_response("Body must be JSON", 400)
            if isinstance(body, dict):
                acknowledged_by = body.get("acknowledged_by", acknowledged_by)

        try:
            alert = self._monitor.get_alert_manager().acknowledge(
                alert_id, acknowledged_by
            )
        except AlertNotFoundError as e:
            return error_response(e.message, 404)

        return json_response({
            "status": "ok",
            "message": f"Alert {alert_id} acknowledged",
            "data": alert,
        })

    # --------------------------------------------------------
    # SERVICE HEALTH
    # --------------------------------------------------------

    async def ping(self, request: web.Request) -> web.Response:
        """
        GET /ping

        Liveness of the API itself.
        """
        return json_response({
            "status": "ok",
            "timestamp": utc_now().isoformat(),
            "service": "cluster_health",
            "monitor_running": self._monitor.is_running,
        })


# ============================================================
# ROUTER FACTORY
# ============================================================

def create_health_router(monitor: HealthMonitor) -> web.Application:
    """
    Create health API application.

    Returns an aiohttp Application with all routes configured.
    """
    api = HealthAPI(monitor)

    app = web.Application()

    app.router.add_get("/ping", api.ping)
    app.router.add_get("/health", api.get_health)
    app.router.add_get("/health/checks", api.get_checks)
    app.router.add_get("/health/checks/{name}", api.get_check)
    app.router.add_get("/score", api.get_score)
    app.router.add_get("/nodes/summary", api.get_nodes_summary)
    app.router.add_get("/alerts", api.get_alerts)

    # Only non-read endpoint; does NOT act on the cluster
    app.router.add_post("/alerts/{alert_id}/acknowledge", api.acknowledge_alert)

    return app


def setup_health_routes(
    app: web.Application,
    monitor: HealthMonitor,
    prefix: str = "/api/cluster",
) -> None:
    """Mount the health routes on an existing application."""
    app.add_subapp(prefix, create_health_router(monitor))
