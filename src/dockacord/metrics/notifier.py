"""Prometheus metrics for the notifier.

All metrics use the 'dockacord_' prefix.
"""

from prometheus_client import Counter, Info

SERVICE_INFO = Info(
    "dockacord_service",
    "Service metadata",
)

EVENTS_RECEIVED = Counter(
    "dockacord_events_total",
    "Docker events received from the event stream",
    ["type", "action"],
)

NOTIFICATIONS = Counter(
    "dockacord_notifications_total",
    "Webhook notifications attempted",
    ["severity", "status"],  # status: sent, failed
)

EVENT_STREAM_ERRORS = Counter(
    "dockacord_event_stream_errors_total",
    "Errors reported by the Docker event stream",
)
