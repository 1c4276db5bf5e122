"""Logging push driver (dev stub)."""

import logging
from collections.abc import Iterable

from push_core.drivers.base import Driver
from push_core.payload import Payload
from push_core.results import FailureRecord

logger = logging.getLogger(__name__)


class LogDriver(Driver):
    """Stub driver that logs instead of sending.

    Ready for integration with FCM/APNs/Web Push: replace the deliver()
    body with actual API calls.
    """

    def __init__(self, platform: str) -> None:
        self.name = f"log:{platform}"
        self.platform = platform

    def deliver(
        self, recipients: list[str], payload: Payload
    ) -> Iterable[FailureRecord]:
        title = payload.notification.title if payload.notification else ""
        logger.info(
            "Push sent (stub)",
            extra={
                "driver": self.name,
                "recipient_count": len(recipients),
                "title_preview": title[:50] if title else "(empty)",
                "data_keys": sorted(payload.data),
            },
        )
        return ()
