"""Docker event notifier.

Watches container lifecycle events, classifies them by action, and sends
Discord webhook notifications.
"""

from .classifier import RuleSet, Severity, classify
from .daemon import LoopState, NotifierDaemon, run_notifier
from .discord import (
    COLOR_ERROR,
    COLOR_INFO,
    COLOR_WARNING,
    DEFAULT_BRANDING,
    Branding,
    DiscordClient,
    color_for,
    deliver,
    render,
)
from .events import ContainerEvent

__all__ = [
    # Daemon
    "NotifierDaemon",
    "LoopState",
    "run_notifier",
    # Discord rendering and delivery
    "DiscordClient",
    "Branding",
    "DEFAULT_BRANDING",
    "render",
    "deliver",
    "color_for",
    "COLOR_ERROR",
    "COLOR_WARNING",
    "COLOR_INFO",
    # Classifier
    "classify",
    "RuleSet",
    "Severity",
    # Events
    "ContainerEvent",
]
