"""Fan a recipient batch out across several drivers."""

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor

from push_core.client import DispatchClient
from push_core.drivers import DriverRegistry
from push_core.errors import DriverError
from push_core.payload import Payload
from push_core.results import DispatchResult, FailureRecord

logger = logging.getLogger(__name__)


class FanOutDispatcher:
    """Sends per-driver batches independently and merges the outcomes.

    Failures are merged keyed by recipient, so one driver's report never
    overwrites another driver's entries. A driver that raises DriverError
    while others complete fails only its own recipients; if every invoked
    driver raises, the first error propagates.
    """

    def __init__(self, registry: DriverRegistry, *, max_workers: int = 4) -> None:
        self._registry = registry
        self._max_workers = max_workers

    def dispatch(
        self, batches: Mapping[str, Sequence[str]], payload: Payload | None
    ) -> DispatchResult:
        results: list[DispatchResult] = []
        runnable: dict[str, list[str]] = {}

        for key, recipients in batches.items():
            if not recipients:
                continue
            if key not in self._registry:
                logger.warning(
                    "No driver registered",
                    extra={"driver": key, "recipient_count": len(recipients)},
                )
                results.append(
                    _fail_all(recipients, f"no driver registered for {key!r}")
                )
                continue
            runnable[key] = list(recipients)

        errors: list[DriverError] = []
        for key, outcome in self._run(runnable, payload).items():
            if isinstance(outcome, DriverError):
                logger.error(
                    "Driver failed for whole batch",
                    extra={
                        "driver": key,
                        "recipient_count": len(runnable[key]),
                        "reason": outcome.message,
                    },
                )
                errors.append(outcome)
                results.append(
                    _fail_all(runnable[key], f"driver error: {outcome.message}")
                )
            else:
                results.append(outcome)

        if runnable and len(errors) == len(runnable):
            raise errors[0]

        return DispatchResult.combine(results)

    def _run(
        self, runnable: dict[str, list[str]], payload: Payload | None
    ) -> dict[str, DispatchResult | DriverError]:
        def send(key: str) -> DispatchResult | DriverError:
            client = DispatchClient(self._registry.get(key), accumulate=False)
            try:
                return client.send(runnable[key], payload)
            except DriverError as exc:
                return exc

        if len(runnable) <= 1 or self._max_workers <= 1:
            return {key: send(key) for key in runnable}

        workers = min(self._max_workers, len(runnable))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {key: pool.submit(send, key) for key in runnable}
            return {key: future.result() for key, future in futures.items()}


def _fail_all(recipients: Sequence[str], reason: str) -> DispatchResult:
    return DispatchResult.from_failures(
        recipients, [FailureRecord(r, reason) for r in recipients]
    )
