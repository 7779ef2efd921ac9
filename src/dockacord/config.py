"""Configuration loading for DockaCord."""

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import structlog

from dockacord.errors import ConfigError

log = structlog.get_logger()

DEFAULT_CONFIG_PATH = Path("config.json")
DEFAULT_WEBHOOK = "discord-webhook-url"


@dataclass(frozen=True)
class Config:
    """Application configuration.

    Action lists are ordered as written in the file. If an action appears in
    more than one list, error wins over warning, which wins over info.
    """

    webhook: str = DEFAULT_WEBHOOK
    error: tuple[str, ...] = ("die",)
    warning: tuple[str, ...] = ("stop",)
    info: tuple[str, ...] = ("start",)

    def __post_init__(self) -> None:
        for name in ("error", "warning", "info"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))

    @classmethod
    def default(cls) -> "Config":
        """Return the built-in default configuration."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Build a Config from the parsed JSON document.

        Missing or null keys default to empty values.

        Raises:
            ConfigError: If the webhook is not a string or an action list is
                not a list of strings
        """
        webhook = data.get("webhook")
        if webhook is None:
            webhook = ""
        elif not isinstance(webhook, str):
            raise ConfigError(
                f"config key 'webhook' must be a string, got {type(webhook).__name__}"
            )

        return cls(
            webhook=webhook,
            error=_action_list(data, "error"),
            warning=_action_list(data, "warning"),
            info=_action_list(data, "info"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON shape written to config.json."""
        return {
            "webhook": self.webhook,
            "error": list(self.error),
            "warning": list(self.warning),
            "info": list(self.info),
        }

    def with_webhook(self, webhook: str) -> "Config":
        """Return a copy with the webhook URL replaced."""
        return replace(self, webhook=webhook)


def _action_list(data: dict[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"config key '{key}' must be a list of strings")
    return tuple(value)


def _write_default(path: Path) -> Config:
    config = Config.default()
    try:
        path.write_text(json.dumps(config.to_dict(), indent=2) + "\n")
    except OSError as e:
        raise ConfigError(f"failed to create default config {path}: {e}") from e
    return config


def load_config(path: Path | str = DEFAULT_CONFIG_PATH) -> Config:
    """Load configuration from a JSON file, creating it with defaults if absent.

    Args:
        path: Location of the config file (default: ./config.json)

    Returns:
        The parsed Config

    Raises:
        ConfigError: If the file cannot be read, is not valid JSON, is not
            a JSON object, or has a key of the wrong type. The file is left
            untouched in that case.
    """
    path = Path(path)

    if not path.exists():
        log.info("Config file not found, creating default", path=str(path))
        return _write_default(path)

    try:
        raw = path.read_text()
    except OSError as e:
        raise ConfigError(f"cannot read config file {path}: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")

    config = Config.from_dict(data)
    log.debug("Config loaded", path=str(path))
    return config
