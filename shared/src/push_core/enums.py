from enum import StrEnum


class Platform(StrEnum):
    ANDROID = "android"
    IOS = "ios"
    WEB = "web"


class DispatchStatus(StrEnum):
    PENDING = "pending"
    QUEUED = "queued"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"


TERMINAL_STATUSES: frozenset[str] = frozenset(
    {DispatchStatus.SENT, DispatchStatus.FAILED}
)

# sending -> queued is a retry after a driver error; sending -> sending is a
# redelivered job whose previous worker died mid-flight.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    DispatchStatus.PENDING: frozenset(
        {DispatchStatus.QUEUED, DispatchStatus.SENDING, DispatchStatus.FAILED}
    ),
    DispatchStatus.QUEUED: frozenset(
        {DispatchStatus.SENDING, DispatchStatus.FAILED}
    ),
    DispatchStatus.SENDING: frozenset(
        {
            DispatchStatus.SENT,
            DispatchStatus.FAILED,
            DispatchStatus.QUEUED,
            DispatchStatus.SENDING,
        }
    ),
    DispatchStatus.SENT: frozenset(),
    DispatchStatus.FAILED: frozenset(),
}
