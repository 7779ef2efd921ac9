"""Exception types raised by DockaCord."""


class NotifierError(Exception):
    """Base class for all DockaCord errors."""


class ConfigError(NotifierError):
    """Config file unreadable or malformed, or webhook missing at delivery time."""


class ClientInitError(NotifierError):
    """Docker client could not be created or the event subscription failed."""


class NetworkError(NotifierError):
    """Transport-level failure while posting to the webhook."""


class DeliveryError(NotifierError):
    """Webhook answered with a status other than 200 or 204."""

    def __init__(self, status_code: int):
        super().__init__(f"Unexpected HTTP status: {status_code}")
        self.status_code = status_code


class ResourceReleaseError(NotifierError):
    """Closing the webhook response failed."""
