"""Abstract delivery driver interface."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from push_core.errors import DriverError, PayloadValidationError, PushError
from push_core.payload import Payload
from push_core.results import DispatchResult, FailureRecord


class Driver(ABC):
    """Base class for all push delivery backends.

    Callers use :meth:`attempt`; implementations override :meth:`deliver`
    and, where the backend has stricter rules, :meth:`validate`.
    """

    name: str = "driver"

    def attempt(
        self, recipients: Sequence[str], payload: Payload | None
    ) -> frozenset[FailureRecord]:
        """Send *payload* to *recipients* and return the rejected ones.

        An empty batch is a no-op. A rejected payload raises
        PayloadValidationError before any I/O; a backend-wide failure raises
        DriverError. Partial failure is reported, never raised.
        """
        if not recipients:
            return frozenset()

        self.validate(payload)

        batch = list(recipients)
        try:
            reported = list(self.deliver(batch, payload))
        except PushError:
            raise
        except Exception as exc:
            raise DriverError(self.name, str(exc) or type(exc).__name__) from exc

        result = DispatchResult.from_failures(batch, reported)
        return frozenset(result.failures)

    def validate(self, payload: Payload | None) -> None:
        if payload is None or payload.is_empty():
            raise PayloadValidationError(f"{self.name}: payload must not be empty")

    @abstractmethod
    def deliver(
        self, recipients: list[str], payload: Payload
    ) -> Iterable[FailureRecord]:
        """Hand the batch to the backend.

        Return a record for every recipient the backend rejected. Raise
        DriverError when the backend cannot be reached at all.
        """
