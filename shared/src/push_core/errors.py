"""Exception hierarchy for the dispatch core.

Per-recipient rejections are not exceptions: drivers report them as
``FailureRecord`` values. Only problems that concern the whole batch are
raised.
"""

from uuid import UUID


class PushError(Exception):
    """Base class for dispatch errors."""


class PayloadValidationError(PushError, ValueError):
    """Payload rejected before any network I/O. Never retried."""


class DriverError(PushError):
    """Backend unreachable or failed in a way not tied to specific recipients."""

    def __init__(self, driver: str, message: str) -> None:
        super().__init__(f"{driver}: {message}")
        self.driver = driver
        self.message = message


class DispatchFailedError(PushError):
    """A synchronous dispatch ended with a catastrophic driver error."""

    def __init__(self, attempt_id: UUID, message: str) -> None:
        super().__init__(message)
        self.attempt_id = attempt_id


class AttemptNotFoundError(PushError, LookupError):
    def __init__(self, attempt_id: UUID) -> None:
        super().__init__(f"Dispatch attempt not found: {attempt_id}")
        self.attempt_id = attempt_id


class InvalidTransitionError(PushError):
    def __init__(self, attempt_id: UUID, current: str, target: str) -> None:
        super().__init__(
            f"Attempt {attempt_id} cannot move from {current!r} to {target!r}"
        )
        self.attempt_id = attempt_id
        self.current = current
        self.target = target
