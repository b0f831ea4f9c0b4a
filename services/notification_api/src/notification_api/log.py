"""Logging setup for notification_api (delegates to shared)."""

from notify_shared.log import JsonFormatter, setup_logging as _setup

__all__ = ["JsonFormatter", "setup_logging"]


def setup_logging(level: str = "INFO") -> None:
    _setup(level, suppress=["werkzeug", "httpx", "httpcore"])
