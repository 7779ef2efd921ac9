"""DockaCord: Docker container event notifications for Discord."""

__version__ = "0.1.0"
