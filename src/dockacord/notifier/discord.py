"""Discord webhook rendering and delivery for container events."""

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from dockacord.errors import (
    ConfigError,
    DeliveryError,
    NetworkError,
    NotifierError,
    ResourceReleaseError,
)

from .classifier import Severity
from .events import ContainerEvent

log = structlog.get_logger()

# Discord embed colors
COLOR_ERROR = 0xFF0000  # Red
COLOR_WARNING = 0xFFFF00  # Yellow
COLOR_INFO = 0x2ECC71  # Green

TITLE_PREFIX = "Docker Event Notification"
SUCCESS_STATUSES = frozenset({200, 204})
DEFAULT_TIMEOUT = 10.0

_ASSET_URL = "https://raw.githubusercontent.com/Lyzev/DockaCord/refs/heads/master/assets/docker-mark-blue.png"


@dataclass(frozen=True)
class Branding:
    """Cosmetic fields attached to every notification."""

    username: str = "DockaCord"
    avatar_url: str = _ASSET_URL
    embed_url: str = "https://lyzev.dev/"
    footer_text: str = "© 2025 Lyzev."
    author_name: str = "Notification Bot"
    author_icon_url: str = _ASSET_URL


DEFAULT_BRANDING = Branding()


def color_for(severity: Severity) -> int:
    if severity == Severity.WARNING:
        return COLOR_WARNING
    if severity == Severity.ERROR:
        return COLOR_ERROR
    return COLOR_INFO


def render(
    event: ContainerEvent,
    severity: Severity,
    branding: Branding = DEFAULT_BRANDING,
) -> dict[str, Any]:
    """Build the webhook payload for an event.

    Timestamps use Discord's ``<t:EPOCH:STYLE>`` markup, so the client renders
    them in the reader's locale: ``F`` is the full date and time, ``R`` the
    relative form ("3 minutes ago").

    Args:
        event: The container event to report
        severity: Severity assigned by the classifier
        branding: Username, avatar, footer and author fields

    Returns:
        JSON-serializable webhook payload with a single embed
    """
    full_time = f"<t:{event.time}:F>"
    relative_time = f"<t:{event.time}:R>"

    embed = {
        "title": f"{TITLE_PREFIX} - {severity.value.upper()}",
        "url": branding.embed_url,
        "description": (
            f"**Container**: `{event.name}`\n"
            f"**Action**: `{event.action}`\n"
            f"**At**: {full_time} ({relative_time})"
        ),
        "color": color_for(severity),
        "footer": {"text": branding.footer_text},
        "author": {
            "name": branding.author_name,
            "icon_url": branding.author_icon_url,
        },
    }

    return {
        "username": branding.username,
        "avatar_url": branding.avatar_url,
        "embeds": [embed],
    }


def _release(response: httpx.Response) -> None:
    """Close the response.

    Raises:
        ResourceReleaseError: If closing the underlying stream fails
    """
    try:
        response.close()
    except Exception as e:
        raise ResourceReleaseError(f"Failed to close response body: {e}") from e


def _post(client: httpx.Client, payload: dict[str, Any], webhook_url: str) -> None:
    try:
        request = client.build_request("POST", webhook_url, json=payload)
        response = client.send(request, stream=True)
    except httpx.InvalidURL as e:
        raise ConfigError(f"invalid webhook URL: {e}") from e
    except httpx.RequestError as e:
        raise NetworkError(f"Failed to send webhook: {e}") from e

    try:
        status_code = response.status_code
    finally:
        try:
            _release(response)
        except ResourceReleaseError as e:
            log.warning("Response release failed", error=str(e))

    if status_code not in SUCCESS_STATUSES:
        raise DeliveryError(status_code)


def deliver(
    payload: dict[str, Any],
    webhook_url: str,
    client: httpx.Client | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """POST a payload to the webhook once.

    Args:
        payload: Rendered webhook payload
        webhook_url: Target URL; empty means not configured
        client: Optional httpx client to send with (a short-lived one is
            created otherwise)
        timeout: Request timeout in seconds when no client is given

    Raises:
        ConfigError: If ``webhook_url`` is empty. No request is made.
        NetworkError: On transport failure
        DeliveryError: If the response status is not 200 or 204
    """
    if not webhook_url:
        raise ConfigError("missing webhook")

    if client is not None:
        _post(client, payload, webhook_url)
        return

    with httpx.Client(timeout=timeout) as owned:
        _post(owned, payload, webhook_url)


class DiscordClient:
    """Discord webhook client for container event notifications."""

    def __init__(
        self,
        webhook_url: str,
        branding: Branding = DEFAULT_BRANDING,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.webhook_url = webhook_url
        self.branding = branding
        self._client = client or httpx.Client(timeout=timeout)

    def send_payload(self, payload: dict[str, Any]) -> bool:
        """Deliver a rendered payload.

        Returns:
            True if the webhook accepted it, False otherwise
        """
        try:
            deliver(payload, self.webhook_url, client=self._client)
        except ConfigError as e:
            log.error("Discord webhook not usable", error=str(e))
            return False
        except DeliveryError as e:
            log.error("Discord API error", status=e.status_code)
            return False
        except NotifierError as e:
            log.error("Discord request failed", error=str(e))
            return False

        log.info("Discord notification sent")
        return True

    def notify(self, event: ContainerEvent, severity: Severity) -> bool:
        """Render and send a notification for an event."""
        return self.send_payload(render(event, severity, self.branding))

    def close(self) -> None:
        self._client.close()
