"""Dispatch client: one driver plus a failure accumulator."""

import logging
from collections.abc import Sequence

from push_core.drivers.base import Driver
from push_core.payload import Payload
from push_core.results import DispatchResult, FailureRecord

logger = logging.getLogger(__name__)


class DispatchClient:
    """Sends batches through a single driver and remembers who failed.

    With ``accumulate=True`` failures are kept across calls until
    :meth:`reset`; a recipient that later succeeds is dropped from the
    accumulator. With ``accumulate=False`` every call replaces it.
    Either way, after a call the accumulator holds every recipient that
    call failed and none that it delivered.
    """

    def __init__(self, driver: Driver, *, accumulate: bool = True) -> None:
        self._driver = driver
        self._accumulate = accumulate
        self._failures: dict[str, FailureRecord] = {}

    @property
    def driver(self) -> Driver:
        return self._driver

    def send(
        self, recipients: Sequence[str], payload: Payload | None
    ) -> DispatchResult:
        """Deliver *payload* to *recipients* and return this call's outcome.

        DriverError and PayloadValidationError propagate unchanged and leave
        the accumulator untouched.
        """
        failures = self._driver.attempt(recipients, payload)
        result = DispatchResult.from_failures(recipients, failures)

        if not self._accumulate:
            self._failures.clear()
        for recipient in result.delivered:
            self._failures.pop(recipient, None)
        for record in result.failures:
            self._failures[record.recipient] = record

        if result.failures:
            logger.info(
                "Driver rejected recipients",
                extra={
                    "driver": self._driver.name,
                    "recipient_count": len(result.recipients),
                    "failed_count": len(result.failures),
                },
            )
        return result

    def failures(self) -> list[FailureRecord]:
        return list(self._failures.values())

    def reset(self) -> None:
        self._failures.clear()
