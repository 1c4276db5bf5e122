"""Logging setup for push_gateway (delegates to push_core)."""

from push_core.log import setup_logging as _setup

__all__ = ["setup_logging"]


def setup_logging(level: str = "INFO") -> None:
    _setup(level, service="push_gateway", suppress=["werkzeug", "kombu"])
