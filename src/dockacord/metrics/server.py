"""HTTP server exposing Prometheus metrics and a liveness check.

Started by ``dockacord run --metrics-port PORT``. ``/metrics`` serves the
``dockacord_*`` counters; ``/health`` answers 200 while the notifier loop is
RUNNING and 503 once it has STOPPED, so a container healthcheck can notice a
loop that exited while the process lingers.
"""

import threading
from collections.abc import Callable
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, make_server

import structlog
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

log = structlog.get_logger()

_server_lock = threading.Lock()
_server_thread: threading.Thread | None = None

StartResponse = Callable[[str, list[tuple[str, str]]], Any]
HealthCheck = Callable[[], bool]


class _QuietHandler(WSGIRequestHandler):
    """WSGI handler without per-request access logs."""

    def log_message(self, format: str, *args: object) -> None:
        pass


def make_app(health_check: HealthCheck | None = None) -> Callable[..., list[bytes]]:
    """Build the WSGI app serving ``/metrics`` and ``/health``.

    Args:
        health_check: Returns True while the notifier loop is running. Without
            one, ``/health`` always reports ok.
    """

    def app(environ: dict[str, Any], start_response: StartResponse) -> list[bytes]:
        path = environ.get("PATH_INFO", "/")

        if path == "/metrics":
            output = generate_latest(REGISTRY)
            status = "200 OK"
            headers = [("Content-Type", CONTENT_TYPE_LATEST)]
        elif path == "/health":
            healthy = health_check() if health_check is not None else True
            output = b"ok" if healthy else b"stopped"
            status = "200 OK" if healthy else "503 Service Unavailable"
            headers = [("Content-Type", "text/plain")]
        else:
            output = b"Not Found"
            status = "404 Not Found"
            headers = [("Content-Type", "text/plain")]

        start_response(status, headers)
        return [output]

    return app


def start_metrics_server(
    port: int = 9100,
    host: str = "0.0.0.0",
    health_check: HealthCheck | None = None,
) -> threading.Thread:
    """Serve metrics from a daemon thread.

    Calling it again while the server is alive returns the existing thread.
    """
    global _server_thread
    with _server_lock:
        if _server_thread is not None and _server_thread.is_alive():
            log.debug("Metrics server already running")
            return _server_thread

        server = make_server(host, port, make_app(health_check), handler_class=_QuietHandler)

        def serve_forever() -> None:
            try:
                log.info("Metrics server listening", host=host, port=port)
                server.serve_forever()
            except Exception:
                log.exception("Metrics server failed unexpectedly")

        thread = threading.Thread(target=serve_forever, name="metrics-server", daemon=True)
        thread.start()
        _server_thread = thread
        return thread
