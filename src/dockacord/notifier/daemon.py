"""Notifier daemon that watches Docker events and sends them to Discord.

Three sources feed a single inbox queue: a pump thread reading the blocking
Docker event stream (events and stream errors), and the SIGINT/SIGTERM
handlers. The loop thread blocks on that queue and handles one item at a
time, so deliveries never overlap.
"""

import queue
import signal
import threading
from enum import Enum
from pathlib import Path
from types import FrameType
from typing import Any

import docker
import structlog

from dockacord import __version__
from dockacord.config import DEFAULT_CONFIG_PATH, Config, load_config
from dockacord.errors import ClientInitError
from dockacord.metrics import (
    EVENT_STREAM_ERRORS,
    EVENTS_RECEIVED,
    NOTIFICATIONS,
    SERVICE_INFO,
    start_metrics_server,
)

from .classifier import RuleSet, Severity
from .discord import DiscordClient
from .events import CONTAINER_EVENT_TYPE, ContainerEvent

log = structlog.get_logger()

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# Inbox item kinds
_EVENT = "event"
_ERROR = "error"
_SIGNAL = "signal"


class LoopState(Enum):
    """Dispatcher loop states."""

    RUNNING = "running"
    STOPPED = "stopped"


class NotifierDaemon:
    """Watches the Docker event stream and notifies Discord."""

    def __init__(
        self,
        config: Config,
        docker_client: docker.DockerClient | None = None,
        discord: DiscordClient | None = None,
    ):
        """Initialize the notifier daemon.

        Args:
            config: Loaded configuration
            docker_client: Docker client to use (default: created from the
                environment on start)
            discord: Webhook client (default: one for ``config.webhook``)
        """
        self.config = config
        self.rules = RuleSet.from_config(config)
        self.discord = discord or DiscordClient(config.webhook)
        self.docker_client = docker_client
        self.state = LoopState.STOPPED

        # SimpleQueue.put is safe to call from a signal handler
        self._inbox: queue.SimpleQueue[tuple[str, Any]] = queue.SimpleQueue()
        self._stream: Any = None
        self._pump_thread: threading.Thread | None = None
        self._loop_thread: threading.Thread | None = None
        self._previous_handlers: dict[int, Any] = {}

    @property
    def is_running(self) -> bool:
        return self.state is LoopState.RUNNING

    def _connect_docker(self) -> docker.DockerClient:
        """Connect to the Docker daemon."""
        try:
            client = docker.from_env()
            client.ping()
        except (docker.errors.DockerException, OSError) as e:
            raise ClientInitError(f"Failed to create Docker client: {e}") from e
        log.info("Docker client created")
        return client

    def _subscribe(self) -> Any:
        """Subscribe to container events, filtered by the daemon."""
        assert self.docker_client is not None
        try:
            return self.docker_client.events(
                decode=True, filters={"type": CONTAINER_EVENT_TYPE}
            )
        except (docker.errors.DockerException, OSError) as e:
            raise ClientInitError(f"Failed to subscribe to Docker events: {e}") from e

    def _pump_events(self, stream: Any) -> None:
        """Copy the blocking event stream into the inbox."""
        try:
            for raw in stream:
                self._inbox.put((_EVENT, raw))
        except Exception as e:
            if self.state is LoopState.STOPPED:
                return
            self._inbox.put((_ERROR, e))
            return
        log.debug("Docker event stream ended")

    def handle_event(self, raw: dict[str, Any]) -> None:
        """Classify one decoded Docker event and notify if it matches a rule."""
        event = ContainerEvent.from_docker(raw)
        EVENTS_RECEIVED.labels(type=event.type or "unknown", action=event.verb).inc()

        if not event.is_container:
            log.debug("Ignoring non-container event", type=event.type, action=event.action)
            return

        severity = self.rules.classify(event.action)
        if severity is Severity.NONE:
            return

        log.info(
            "Event",
            action=event.action,
            level=severity.value,
            container=event.name,
        )
        sent = self.discord.notify(event, severity)
        NOTIFICATIONS.labels(
            severity=severity.value, status="sent" if sent else "failed"
        ).inc()

    def _loop(self) -> None:
        """Dispatch inbox items until a termination signal arrives."""
        log.info("Listening for Docker container events and signals")
        while True:
            kind, item = self._inbox.get()

            if kind == _SIGNAL:
                log.info("Received signal, shutting down", signal=signal.Signals(item).name)
                self._shutdown()
                return

            if kind == _ERROR:
                EVENT_STREAM_ERRORS.inc()
                log.error("Error receiving Docker event", error=str(item))
                continue

            try:
                self.handle_event(item)
            except Exception:
                log.exception("Unexpected error handling event", raw=item)

    def _shutdown(self) -> None:
        self.state = LoopState.STOPPED
        if self._stream is not None:
            try:
                self._stream.close()
            except Exception as e:
                log.warning("Failed to close Docker event stream", error=str(e))

    def request_stop(self, signum: int = signal.SIGTERM) -> None:
        """Ask the loop to stop at its next wait point."""
        self._inbox.put((_SIGNAL, signum))

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        self.request_stop(signum)

    def install_signal_handlers(self) -> None:
        """Route SIGINT and SIGTERM to the loop. Must run on the main thread."""
        for sig in HANDLED_SIGNALS:
            self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)

    def restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def start(self) -> threading.Thread:
        """Connect, subscribe and launch the loop thread.

        Returns:
            The running loop thread

        Raises:
            ClientInitError: If the Docker client or the subscription fails
        """
        if self.docker_client is None:
            self.docker_client = self._connect_docker()
        self._stream = self._subscribe()

        overlapping = self.rules.overlaps()
        if overlapping:
            log.warning(
                "Actions configured at more than one severity, highest wins",
                actions=sorted(overlapping),
            )

        self.state = LoopState.RUNNING
        self._pump_thread = threading.Thread(
            target=self._pump_events,
            args=(self._stream,),
            name="docker-events",
            daemon=True,
        )
        self._pump_thread.start()

        self._loop_thread = threading.Thread(target=self._loop, name="notifier-loop")
        self._loop_thread.start()
        return self._loop_thread

    def run(self) -> None:
        """Start the daemon and block until a termination signal stops it."""
        self.install_signal_handlers()
        try:
            loop_thread = self.start()
            loop_thread.join()
        finally:
            self.restore_signal_handlers()
            self.discord.close()
        log.info("Notifier stopped")


def run_notifier(
    config_path: Path | str = DEFAULT_CONFIG_PATH,
    webhook_url: str | None = None,
    metrics_port: int | None = None,
) -> None:
    """Run the notifier daemon.

    Args:
        config_path: Path of config.json (created with defaults if absent)
        webhook_url: Overrides the webhook from the config file
        metrics_port: Serve Prometheus metrics on this port if set

    Raises:
        ConfigError: If the config file cannot be loaded
        ClientInitError: If Docker is unreachable
    """
    config = load_config(config_path)
    if webhook_url:
        config = config.with_webhook(webhook_url)

    SERVICE_INFO.info({"version": __version__})
    daemon = NotifierDaemon(config)

    if metrics_port is not None:
        start_metrics_server(port=metrics_port, health_check=lambda: daemon.is_running)

    daemon.run()
