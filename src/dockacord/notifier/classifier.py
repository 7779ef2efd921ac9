"""Action classifier for Docker container events."""

from dataclasses import dataclass
from enum import Enum

from dockacord.config import Config


class Severity(Enum):
    """Notification severity levels."""

    ERROR = "error"  # Red embed
    WARNING = "warning"  # Yellow embed
    INFO = "info"  # Green embed
    NONE = "none"  # No notification


@dataclass(frozen=True)
class RuleSet:
    """Action lookup tables compiled from the config.

    Built once at startup and shared read-only by the dispatcher.
    """

    error: frozenset[str] = frozenset()
    warning: frozenset[str] = frozenset()
    info: frozenset[str] = frozenset()

    @classmethod
    def from_config(cls, config: Config) -> "RuleSet":
        return cls(
            error=frozenset(config.error),
            warning=frozenset(config.warning),
            info=frozenset(config.info),
        )

    def classify(self, action: str) -> Severity:
        """Return the severity for an action, checking error, warning, info in order."""
        if action in self.error:
            return Severity.ERROR
        if action in self.warning:
            return Severity.WARNING
        if action in self.info:
            return Severity.INFO
        return Severity.NONE

    def overlaps(self) -> set[str]:
        """Actions configured in more than one list."""
        return (
            (self.error & self.warning)
            | (self.error & self.info)
            | (self.warning & self.info)
        )


def classify(action: str, rules: RuleSet) -> Severity:
    """Classify a Docker event action against a rule set.

    Args:
        action: Event action string (e.g., "die", "start")
        rules: Compiled rule set

    Returns:
        The matching Severity, or Severity.NONE if no list contains the action
    """
    return rules.classify(action)
