"""Tests for the SQL-backed status tracker."""

import uuid
from unittest.mock import patch

import pytest

from push_core.db.repositories import DispatchAttemptRepository
from push_core.enums import DispatchStatus
from push_core.errors import AttemptNotFoundError, InvalidTransitionError
from push_core.results import FailureRecord
from push_core.tracker import SqlStatusTracker


def _create(
    tracker: SqlStatusTracker,
    status: DispatchStatus = DispatchStatus.QUEUED,
    credential_id: uuid.UUID | None = None,
) -> uuid.UUID:
    attempt_id = uuid.uuid4()
    tracker.create(
        attempt_id,
        ["UID:1", "UID:2"],
        status,
        credential_id=credential_id or uuid.uuid4(),
        payload={"data": {"a": "A"}},
    )
    return attempt_id


class TestCreate:
    def test_create_records_initial_state(self, tracker: SqlStatusTracker) -> None:
        attempt_id = _create(tracker)

        attempt = tracker.get(attempt_id)
        assert attempt.status == DispatchStatus.QUEUED
        assert attempt.recipients == ["UID:1", "UID:2"]
        assert attempt.failures == []
        assert attempt.completed_at is None

    @pytest.mark.parametrize(
        "status", [DispatchStatus.SENDING, DispatchStatus.SENT, DispatchStatus.FAILED]
    )
    def test_create_rejects_non_initial_status(
        self, tracker: SqlStatusTracker, status: DispatchStatus
    ) -> None:
        with pytest.raises(ValueError):
            _create(tracker, status)


class TestUpdate:
    def test_queued_to_sent_via_sending(self, tracker: SqlStatusTracker) -> None:
        attempt_id = _create(tracker)

        tracker.update(attempt_id, DispatchStatus.SENDING)
        attempt = tracker.update(attempt_id, DispatchStatus.SENT)

        assert attempt.status == DispatchStatus.SENT
        assert attempt.failures == []
        assert attempt.completed_at is not None

    def test_failures_are_recorded(self, tracker: SqlStatusTracker) -> None:
        attempt_id = _create(tracker, DispatchStatus.PENDING)
        tracker.update(attempt_id, DispatchStatus.SENDING)

        attempt = tracker.update(
            attempt_id, DispatchStatus.SENT, [FailureRecord("UID:2", "NotRegistered")]
        )

        assert attempt.failure_records == (FailureRecord("UID:2", "NotRegistered"),)

    def test_recovered_retry_clears_failures_and_error(
        self, tracker: SqlStatusTracker
    ) -> None:
        attempt_id = _create(tracker)
        tracker.update(attempt_id, DispatchStatus.SENDING)
        tracker.update(
            attempt_id,
            DispatchStatus.QUEUED,
            [FailureRecord("UID:1", "x")],
            error="down",
            increment_attempts=True,
        )
        tracker.update(attempt_id, DispatchStatus.SENDING)

        attempt = tracker.update(attempt_id, DispatchStatus.SENT)

        assert attempt.failures == []
        assert attempt.attempts == 1
        assert attempt.error is None

    def test_queued_cannot_skip_sending(self, tracker: SqlStatusTracker) -> None:
        attempt_id = _create(tracker)

        with pytest.raises(InvalidTransitionError) as exc_info:
            tracker.update(attempt_id, DispatchStatus.SENT)

        assert exc_info.value.current == DispatchStatus.QUEUED
        assert exc_info.value.target == DispatchStatus.SENT

    @pytest.mark.parametrize("terminal", [DispatchStatus.SENT, DispatchStatus.FAILED])
    def test_terminal_states_are_final(
        self, tracker: SqlStatusTracker, terminal: DispatchStatus
    ) -> None:
        attempt_id = _create(tracker)
        tracker.update(attempt_id, DispatchStatus.SENDING)
        tracker.update(attempt_id, terminal)

        with pytest.raises(InvalidTransitionError):
            tracker.update(attempt_id, DispatchStatus.SENDING)

    def test_queued_can_fail_directly(self, tracker: SqlStatusTracker) -> None:
        attempt_id = _create(tracker)

        attempt = tracker.update(attempt_id, DispatchStatus.FAILED, error="enqueue")

        assert attempt.status == DispatchStatus.FAILED
        assert attempt.completed_at is not None

    def test_unknown_attempt(self, tracker: SqlStatusTracker) -> None:
        with pytest.raises(AttemptNotFoundError):
            tracker.update(uuid.uuid4(), DispatchStatus.SENDING)

    def test_row_vanishing_mid_update_raises(self, tracker: SqlStatusTracker) -> None:
        attempt_id = _create(tracker)

        with patch.object(
            DispatchAttemptRepository, "update_status", return_value=None
        ):
            with pytest.raises(AttemptNotFoundError):
                tracker.update(attempt_id, DispatchStatus.SENDING)


class TestLookup:
    def test_get_unknown_raises(self, tracker: SqlStatusTracker) -> None:
        with pytest.raises(AttemptNotFoundError):
            tracker.get(uuid.uuid4())

    def test_latest_is_scoped_to_credential(self, tracker: SqlStatusTracker) -> None:
        credential_id = uuid.uuid4()
        mine = {_create(tracker, credential_id=credential_id) for _ in range(2)}
        _create(tracker)

        latest = tracker.latest(credential_id, 10)

        assert {a.id for a in latest} == mine
