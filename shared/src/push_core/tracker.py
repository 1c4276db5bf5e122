"""Dispatch attempt status tracking."""

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from push_core.db.models import DispatchAttempt
from push_core.db.repositories import DispatchAttemptRepository
from push_core.enums import ALLOWED_TRANSITIONS, TERMINAL_STATUSES, DispatchStatus
from push_core.errors import AttemptNotFoundError, InvalidTransitionError
from push_core.results import FailureRecord

logger = logging.getLogger(__name__)


class StatusTracker(Protocol):
    def create(
        self,
        attempt_id: UUID,
        recipients: Sequence[str],
        initial_status: DispatchStatus,
        *,
        credential_id: UUID,
        payload: dict[str, Any],
        driver_key: str | None = None,
    ) -> DispatchAttempt: ...

    def update(
        self,
        attempt_id: UUID,
        status: DispatchStatus,
        failures: Iterable[FailureRecord] = (),
        *,
        error: str | None = None,
        increment_attempts: bool = False,
    ) -> DispatchAttempt: ...

    def get(self, attempt_id: UUID) -> DispatchAttempt: ...

    def latest(self, credential_id: UUID, limit: int) -> list[DispatchAttempt]: ...


class SqlStatusTracker:
    """Status tracker backed by the dispatch_attempts table.

    Every call runs in its own session and commits before returning. Each
    attempt is written by one owner at a time (the request that created it,
    then the worker that picked up its job), so no locking is done here.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create(
        self,
        attempt_id: UUID,
        recipients: Sequence[str],
        initial_status: DispatchStatus,
        *,
        credential_id: UUID,
        payload: dict[str, Any],
        driver_key: str | None = None,
    ) -> DispatchAttempt:
        if initial_status not in (DispatchStatus.PENDING, DispatchStatus.QUEUED):
            raise ValueError(
                f"Attempts start as pending or queued, not {initial_status!r}"
            )
        with self._session_factory() as session:
            attempt = DispatchAttemptRepository(session).create(
                DispatchAttempt(
                    id=attempt_id,
                    credential_id=credential_id,
                    status=initial_status,
                    recipients=list(recipients),
                    failures=[],
                    payload=payload,
                    driver_key=driver_key,
                )
            )
            session.commit()
        logger.info(
            "Dispatch attempt created",
            extra={
                "attempt_id": str(attempt_id),
                "credential_id": str(credential_id),
                "status": str(initial_status),
                "recipient_count": len(recipients),
            },
        )
        return attempt

    def update(
        self,
        attempt_id: UUID,
        status: DispatchStatus,
        failures: Iterable[FailureRecord] = (),
        *,
        error: str | None = None,
        increment_attempts: bool = False,
    ) -> DispatchAttempt:
        """Move an attempt to *status*, enforcing the allowed transitions.

        Raises AttemptNotFoundError or InvalidTransitionError.
        """
        with self._session_factory() as session:
            repo = DispatchAttemptRepository(session)
            current = repo.get_by_id(attempt_id)
            if current is None:
                raise AttemptNotFoundError(attempt_id)
            if status not in ALLOWED_TRANSITIONS[current.status]:
                raise InvalidTransitionError(attempt_id, current.status, status)

            completed_at = (
                datetime.now(timezone.utc) if status in TERMINAL_STATUSES else None
            )
            attempt = repo.update_status(
                attempt_id,
                status,
                failures=list(failures),
                error=error,
                clear_error=status == DispatchStatus.SENT,
                completed_at=completed_at,
                increment_attempts=increment_attempts,
            )
            if attempt is None:
                raise AttemptNotFoundError(attempt_id)
            session.commit()
        return attempt

    def get(self, attempt_id: UUID) -> DispatchAttempt:
        with self._session_factory() as session:
            attempt = DispatchAttemptRepository(session).get_by_id(attempt_id)
        if attempt is None:
            raise AttemptNotFoundError(attempt_id)
        return attempt

    def latest(self, credential_id: UUID, limit: int) -> list[DispatchAttempt]:
        with self._session_factory() as session:
            return DispatchAttemptRepository(session).latest_for_credential(
                credential_id, limit
            )
