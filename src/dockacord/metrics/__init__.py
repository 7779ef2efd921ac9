"""Prometheus metrics for DockaCord.

Usage:
    from dockacord.metrics import start_metrics_server, NOTIFICATIONS

    start_metrics_server(port=9100)
    NOTIFICATIONS.labels(severity="error", status="sent").inc()
"""

from dockacord.metrics.notifier import (
    EVENT_STREAM_ERRORS,
    EVENTS_RECEIVED,
    NOTIFICATIONS,
    SERVICE_INFO,
)
from dockacord.metrics.server import make_app, start_metrics_server

__all__ = [
    "start_metrics_server",
    "make_app",
    "EVENTS_RECEIVED",
    "NOTIFICATIONS",
    "EVENT_STREAM_ERRORS",
    "SERVICE_INFO",
]
