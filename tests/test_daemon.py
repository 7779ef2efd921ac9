"""Tests for the notifier daemon loop."""

import json
import os
import signal
import threading

import docker
import pytest
from prometheus_client import REGISTRY

from dockacord.config import Config
from dockacord.errors import ClientInitError, ConfigError
from dockacord.notifier import LoopState, NotifierDaemon, Severity, run_notifier

JOIN_TIMEOUT = 5


def docker_event(action: str, name: str = "web-1", type_: str = "container") -> dict:
    return {
        "Type": type_,
        "Action": action,
        "Actor": {"ID": f"{name}-id", "Attributes": {"name": name}},
        "time": 1700000000,
    }


class FakeStream:
    """Stands in for docker's CancellableStream."""

    def __init__(self, items, error: Exception | None = None, on_exhausted=None):
        self.items = list(items)
        self.error = error
        self.on_exhausted = on_exhausted
        self.closed = False

    def __iter__(self):
        yield from self.items
        if self.on_exhausted is not None:
            self.on_exhausted()
        if self.error is not None:
            raise self.error

    def close(self) -> None:
        self.closed = True


class FakeDockerClient:
    def __init__(self, stream: FakeStream | None = None, error: Exception | None = None):
        self.stream = stream or FakeStream([])
        self.error = error
        self.subscriptions: list[dict] = []

    def ping(self) -> bool:
        return True

    def events(self, **kwargs):
        self.subscriptions.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.stream


class RecordingDiscord:
    """Records notifications instead of posting them."""

    def __init__(self, result: bool = True):
        self.result = result
        self.sent: list[tuple] = []
        self.closed = False

    def notify(self, event, severity) -> bool:
        self.sent.append((event, severity))
        return self.result

    def close(self) -> None:
        self.closed = True


def make_daemon(stream: FakeStream, discord: RecordingDiscord | None = None) -> NotifierDaemon:
    return NotifierDaemon(
        Config.default(),
        docker_client=FakeDockerClient(stream),
        discord=discord or RecordingDiscord(),
    )


def drain_and_stop(daemon: NotifierDaemon, loop_thread: threading.Thread) -> None:
    """Wait for the fake stream to be consumed, then stop the loop."""
    assert daemon._pump_thread is not None
    daemon._pump_thread.join(JOIN_TIMEOUT)
    daemon.request_stop(signal.SIGTERM)
    loop_thread.join(JOIN_TIMEOUT)
    assert not loop_thread.is_alive()


class TestHandleEvent:
    """Tests for single-event dispatch."""

    def test_die_event_notifies_error(self):
        discord = RecordingDiscord()
        daemon = make_daemon(FakeStream([]), discord)

        daemon.handle_event(docker_event("die"))

        assert len(discord.sent) == 1
        event, severity = discord.sent[0]
        assert severity == Severity.ERROR
        assert event.name == "web-1"
        assert event.action == "die"

    def test_non_container_event_dropped(self):
        discord = RecordingDiscord()
        daemon = make_daemon(FakeStream([]), discord)

        daemon.handle_event(docker_event("die", type_="network"))

        assert discord.sent == []

    def test_unmatched_action_dropped(self):
        discord = RecordingDiscord()
        daemon = make_daemon(FakeStream([]), discord)

        daemon.handle_event(docker_event("exec_start"))

        assert discord.sent == []

    def test_exec_actions_counted_by_verb(self):
        """Command text in exec actions does not become a metric label."""
        labels = {"type": "container", "action": "exec_start"}
        before = REGISTRY.get_sample_value("dockacord_events_total", labels) or 0.0
        daemon = make_daemon(FakeStream([]))

        for i in range(50):
            daemon.handle_event(docker_event(f"exec_start: sh -c echo {i}"))

        assert REGISTRY.get_sample_value("dockacord_events_total", labels) == before + 50
        assert (
            REGISTRY.get_sample_value(
                "dockacord_events_total",
                {"type": "container", "action": "exec_start: sh -c echo 0"},
            )
            is None
        )

    def test_failed_delivery_is_counted(self):
        before = (
            REGISTRY.get_sample_value(
                "dockacord_notifications_total", {"severity": "warning", "status": "failed"}
            )
            or 0.0
        )
        daemon = make_daemon(FakeStream([]), RecordingDiscord(result=False))

        daemon.handle_event(docker_event("stop"))

        after = REGISTRY.get_sample_value(
            "dockacord_notifications_total", {"severity": "warning", "status": "failed"}
        )
        assert after == before + 1


class TestLoop:
    """Tests for the running loop."""

    def test_subscribes_with_container_filter(self):
        client = FakeDockerClient()
        daemon = NotifierDaemon(Config.default(), docker_client=client, discord=RecordingDiscord())

        thread = daemon.start()
        drain_and_stop(daemon, thread)

        assert client.subscriptions == [{"decode": True, "filters": {"type": "container"}}]

    def test_events_dispatched_in_order(self):
        discord = RecordingDiscord()
        stream = FakeStream(
            [
                docker_event("start", name="a"),
                docker_event("create", name="b"),
                docker_event("die", name="c", type_="image"),
                docker_event("stop", name="d"),
                docker_event("die", name="e"),
            ]
        )
        daemon = make_daemon(stream, discord)

        thread = daemon.start()
        assert daemon.state is LoopState.RUNNING
        drain_and_stop(daemon, thread)

        assert [(e.name, s) for e, s in discord.sent] == [
            ("a", Severity.INFO),
            ("d", Severity.WARNING),
            ("e", Severity.ERROR),
        ]

    def test_signal_stops_loop(self):
        stream = FakeStream([])
        daemon = make_daemon(stream)

        thread = daemon.start()
        daemon.request_stop(signal.SIGINT)
        thread.join(JOIN_TIMEOUT)

        assert not thread.is_alive()
        assert daemon.state is LoopState.STOPPED
        assert stream.closed

    def test_stream_error_keeps_running(self):
        """Errors from the event stream are logged and the loop continues."""
        before = REGISTRY.get_sample_value("dockacord_event_stream_errors_total") or 0.0
        discord = RecordingDiscord()
        stream = FakeStream([docker_event("die")], error=RuntimeError("stream broken"))
        daemon = make_daemon(stream, discord)

        thread = daemon.start()
        daemon._pump_thread.join(JOIN_TIMEOUT)

        assert thread.is_alive()
        assert daemon.state is LoopState.RUNNING

        drain_and_stop(daemon, thread)

        assert len(discord.sent) == 1
        assert REGISTRY.get_sample_value("dockacord_event_stream_errors_total") == before + 1

    def test_malformed_event_does_not_stop_loop(self):
        discord = RecordingDiscord()
        bad = {"Type": "container", "Action": "die", "time": "not-a-number"}
        daemon = make_daemon(FakeStream([bad, docker_event("die")]), discord)

        thread = daemon.start()
        drain_and_stop(daemon, thread)

        assert len(discord.sent) == 1


class TestStartup:
    """Tests for fatal startup failures."""

    def test_subscription_failure(self):
        client = FakeDockerClient(error=docker.errors.APIError("events unavailable"))
        daemon = NotifierDaemon(Config.default(), docker_client=client, discord=RecordingDiscord())

        with pytest.raises(ClientInitError):
            daemon.start()

        assert daemon.state is LoopState.STOPPED

    def test_docker_unreachable(self, monkeypatch):
        def from_env():
            raise docker.errors.DockerException("Error while fetching server API version")

        monkeypatch.setattr(docker, "from_env", from_env)
        daemon = NotifierDaemon(Config.default(), discord=RecordingDiscord())

        with pytest.raises(ClientInitError):
            daemon.start()

    def test_run_failure_closes_discord(self):
        discord = RecordingDiscord()
        client = FakeDockerClient(error=docker.errors.APIError("events unavailable"))
        daemon = NotifierDaemon(Config.default(), docker_client=client, discord=discord)

        with pytest.raises(ClientInitError):
            daemon.run()

        assert discord.closed
        assert signal.getsignal(signal.SIGTERM) != daemon._handle_signal


class TestRun:
    """Tests for running with real signal delivery."""

    def test_sigterm_stops_run(self):
        discord = RecordingDiscord()
        previous = signal.getsignal(signal.SIGTERM)
        stream = FakeStream(
            [docker_event("die")],
            on_exhausted=lambda: os.kill(os.getpid(), signal.SIGTERM),
        )
        daemon = make_daemon(stream, discord)

        daemon.run()

        assert daemon.state is LoopState.STOPPED
        assert len(discord.sent) == 1
        assert discord.closed
        assert signal.getsignal(signal.SIGTERM) == previous

    def test_run_notifier_survives_malformed_event(self, tmp_path, monkeypatch):
        """A bad event is logged and skipped; the loop still stops on SIGTERM."""
        config_path = tmp_path / "config.json"
        config_path.write_text(
            json.dumps({"webhook": "", "error": ["die"], "warning": ["stop"], "info": None})
        )
        bad = {"Type": "container", "Action": "die", "time": "not-a-number"}
        stream = FakeStream(
            [bad, docker_event("create")],
            on_exhausted=lambda: os.kill(os.getpid(), signal.SIGTERM),
        )
        monkeypatch.setattr(docker, "from_env", lambda: FakeDockerClient(stream))
        labels = {"type": "container", "action": "create"}
        before = REGISTRY.get_sample_value("dockacord_events_total", labels) or 0.0

        run_notifier(config_path=config_path)

        # Closed only by the signal-driven shutdown, not by a crashed loop
        assert stream.closed
        assert REGISTRY.get_sample_value("dockacord_events_total", labels) == before + 1

    def test_run_notifier_rejects_wrong_config_types(self, tmp_path, monkeypatch):
        config_path = tmp_path / "config.json"
        config_path.write_text(json.dumps({"webhook": 123, "error": "die"}))
        monkeypatch.setattr(docker, "from_env", lambda: pytest.fail("Docker contacted"))

        with pytest.raises(ConfigError):
            run_notifier(config_path=config_path)
