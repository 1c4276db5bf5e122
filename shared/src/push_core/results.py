"""Per-recipient outcome of a dispatch."""

from collections.abc import Iterable
from dataclasses import dataclass
from itertools import chain
from typing import Self

from push_core.enums import DispatchStatus


@dataclass(frozen=True, slots=True)
class FailureRecord:
    """A recipient the backend rejected, with driver-specific diagnostics."""

    recipient: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"recipient": self.recipient, "reason": self.reason}

    @classmethod
    def from_dict(cls, raw: dict[str, str]) -> Self:
        return cls(recipient=raw["recipient"], reason=raw["reason"])


def merge_failures(*groups: Iterable[FailureRecord]) -> list[FailureRecord]:
    """Merge failure groups keyed by recipient.

    A later record for the same recipient replaces the reason of an earlier
    one; records for different recipients never overwrite each other.
    """
    merged: dict[str, FailureRecord] = {}
    for record in chain.from_iterable(groups):
        merged[record.recipient] = record
    return list(merged.values())


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of sending one batch.

    ``failures`` holds at most one record per recipient, in batch order.
    Every recipient without a record was accepted by its backend.
    """

    recipients: tuple[str, ...]
    failures: tuple[FailureRecord, ...]

    @classmethod
    def from_failures(
        cls, recipients: Iterable[str], failures: Iterable[FailureRecord]
    ) -> Self:
        batch = tuple(dict.fromkeys(recipients))
        members = set(batch)
        by_recipient = {
            f.recipient: f for f in merge_failures(failures) if f.recipient in members
        }
        return cls(
            recipients=batch,
            failures=tuple(by_recipient[r] for r in batch if r in by_recipient),
        )

    @classmethod
    def combine(cls, results: Iterable["DispatchResult"]) -> Self:
        results = list(results)
        return cls.from_failures(
            chain.from_iterable(r.recipients for r in results),
            merge_failures(*(r.failures for r in results)),
        )

    @property
    def failed_recipients(self) -> tuple[str, ...]:
        return tuple(f.recipient for f in self.failures)

    @property
    def delivered(self) -> tuple[str, ...]:
        failed = set(self.failed_recipients)
        return tuple(r for r in self.recipients if r not in failed)

    @property
    def all_failed(self) -> bool:
        return bool(self.recipients) and len(self.failures) == len(self.recipients)

    @property
    def status(self) -> DispatchStatus:
        """Terminal status: partial failures still count as sent."""
        return DispatchStatus.FAILED if self.all_failed else DispatchStatus.SENT
