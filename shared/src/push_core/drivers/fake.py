"""In-memory driver for tests and local development."""

import threading
from collections.abc import Iterable, Mapping

from push_core.drivers.base import Driver
from push_core.payload import Payload
from push_core.results import FailureRecord


class FakeDriver(Driver):
    """Records every batch instead of sending it.

    Recipients listed in *fail* are reported as rejected with the mapped
    reason. When *error* is set, every non-empty batch raises it, which
    simulates an unreachable backend.
    """

    def __init__(
        self,
        name: str = "fake",
        *,
        fail: Mapping[str, str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.fail = dict(fail or {})
        self.error = error
        self.sent: list[tuple[tuple[str, ...], Payload]] = []
        self._lock = threading.Lock()

    def deliver(
        self, recipients: list[str], payload: Payload
    ) -> Iterable[FailureRecord]:
        if self.error is not None:
            raise self.error
        with self._lock:
            self.sent.append((tuple(recipients), payload))
        return [FailureRecord(r, self.fail[r]) for r in recipients if r in self.fail]

    def fail_recipient(self, recipient: str, reason: str = "rejected") -> None:
        self.fail[recipient] = reason

    @property
    def sent_recipients(self) -> list[str]:
        return [r for batch, _ in self.sent for r in batch]

    def assert_sent(self, recipients: Iterable[str], times: int = 1) -> None:
        """Check that exactly this batch was handed over *times* times."""
        expected = tuple(recipients)
        count = sum(1 for batch, _ in self.sent if batch == expected)
        if count != times:
            raise AssertionError(
                f"Expected batch {list(expected)} sent {times} time(s), "
                f"got {count}"
            )

    def assert_nothing_sent(self) -> None:
        if self.sent:
            raise AssertionError(f"Expected no sends, got {len(self.sent)}")
