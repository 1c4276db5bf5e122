"""Push service: orchestrates device lookup, dispatch and status tracking.

Shared by the HTTP gateway (send-now and queue paths) and the worker
(queued job execution).
"""

import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence
from uuid import UUID, uuid4

from celery import Celery
from sqlalchemy.orm import Session, sessionmaker

from push_core.config import DispatchConfig
from push_core.db.base import ping
from push_core.db.models import Credential, Device, DispatchAttempt
from push_core.db.repositories import (
    CredentialRepository,
    DeviceRepository,
    PushSettingRepository,
)
from push_core.drivers import DriverRegistry, create_default_registry
from push_core.enums import DispatchStatus
from push_core.errors import (
    AttemptNotFoundError,
    DispatchFailedError,
    DriverError,
    PayloadValidationError,
)
from push_core.fanout import FanOutDispatcher
from push_core.jobs import SEND_PUSH_TASK, CeleryQueueAdapter, DispatchJob, QueueAdapter
from push_core.payload import Payload
from push_core.results import DispatchResult, FailureRecord
from push_core.tracker import SqlStatusTracker, StatusTracker

logger = logging.getLogger(__name__)

UNKNOWN_RECIPIENT = "unknown recipient"


class PushService:
    """Entry point for every dispatch, synchronous or queued."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        registry: DriverRegistry,
        tracker: StatusTracker,
        queue: QueueAdapter,
        *,
        max_workers: int = 4,
    ) -> None:
        self._session_factory = session_factory
        self._tracker = tracker
        self._queue = queue
        self._fanout = FanOutDispatcher(registry, max_workers=max_workers)

    @property
    def tracker(self) -> StatusTracker:
        return self._tracker

    # -- credentials and devices -------------------------------------------

    def create_credential(
        self, name: str, drivers: Mapping[str, str] | None = None
    ) -> Credential:
        with self._session_factory() as session:
            credential = CredentialRepository(session).create(name)
            if drivers:
                PushSettingRepository(session).set_driver_map(credential.id, drivers)
            session.commit()
        logger.info(
            "Credential created",
            extra={"credential_id": str(credential.id), "drivers": dict(drivers or {})},
        )
        return credential

    def authenticate(self, api_key: str | None) -> Credential | None:
        if not api_key:
            return None
        with self._session_factory() as session:
            return CredentialRepository(session).get_by_api_key(api_key)

    def register_device(
        self, credential_id: UUID, platform: str, identity: str, regid: str
    ) -> Device:
        with self._session_factory() as session:
            device = DeviceRepository(session).register(
                credential_id, platform, identity, regid
            )
            session.commit()
        logger.info(
            "Device registered",
            extra={"credential_id": str(credential_id), "platform": platform},
        )
        return device

    # -- dispatch ------------------------------------------------------------

    def send_now(
        self,
        credential_id: UUID,
        recipients: Sequence[str],
        payload: Payload,
        driver_key: str | None = None,
    ) -> DispatchAttempt:
        """Dispatch synchronously: pending -> sending -> sent | failed.

        Raises DispatchFailedError when a driver error ended the attempt and
        PayloadValidationError when a driver rejected the payload; the
        attempt is recorded as failed in both cases.
        """
        attempt_id = uuid4()
        self._tracker.create(
            attempt_id,
            recipients,
            DispatchStatus.PENDING,
            credential_id=credential_id,
            payload=payload.model_dump(mode="json"),
            driver_key=driver_key,
        )
        self._tracker.update(attempt_id, DispatchStatus.SENDING)

        try:
            result = self._deliver(credential_id, recipients, payload, driver_key)
        except DriverError as exc:
            self._tracker.update(attempt_id, DispatchStatus.FAILED, error=str(exc))
            raise DispatchFailedError(attempt_id, str(exc)) from exc
        except PayloadValidationError as exc:
            self._tracker.update(attempt_id, DispatchStatus.FAILED, error=str(exc))
            raise

        return self._finish(attempt_id, result)

    def queue(
        self,
        credential_id: UUID,
        recipients: Sequence[str],
        payload: Payload,
        driver_key: str | None = None,
    ) -> DispatchAttempt:
        """Record a queued attempt and hand its job to the queue adapter.

        If the job cannot be enqueued the attempt is marked failed and the
        broker error propagates.
        """
        job = DispatchJob(
            attempt_id=uuid4(),
            credential_id=credential_id,
            recipients=list(recipients),
            payload=payload,
            driver_key=driver_key,
        )
        attempt = self._tracker.create(
            job.attempt_id,
            job.recipients,
            DispatchStatus.QUEUED,
            credential_id=credential_id,
            payload=payload.model_dump(mode="json"),
            driver_key=driver_key,
        )
        try:
            self._queue.enqueue(job)
        except Exception as exc:
            logger.exception(
                "Failed to enqueue dispatch job",
                extra={"attempt_id": str(job.attempt_id)},
            )
            self._tracker.update(
                job.attempt_id, DispatchStatus.FAILED, error=f"enqueue failed: {exc}"
            )
            raise
        return attempt

    def run_job(self, job: DispatchJob) -> DispatchResult:
        """Execute a queued job: -> sending -> sent | failed.

        DriverError and PayloadValidationError propagate with the attempt
        left in ``sending``; the caller owns retry policy.
        """
        self._tracker.update(job.attempt_id, DispatchStatus.SENDING)
        result = self._deliver(
            job.credential_id, job.recipients, job.payload, job.driver_key
        )
        self._finish(job.attempt_id, result)
        return result

    # -- lookups -------------------------------------------------------------

    def status(self, credential_id: UUID, attempt_id: UUID) -> DispatchAttempt:
        """Fetch an attempt owned by the credential.

        Raises AttemptNotFoundError for unknown ids and for other tenants'
        attempts alike.
        """
        attempt = self._tracker.get(attempt_id)
        if attempt.credential_id != credential_id:
            raise AttemptNotFoundError(attempt_id)
        return attempt

    def latest(self, credential_id: UUID, limit: int = 25) -> list[DispatchAttempt]:
        return self._tracker.latest(credential_id, limit)

    def health_check(self) -> bool:
        return ping(self._session_factory)

    # -- internals -----------------------------------------------------------

    def _deliver(
        self,
        credential_id: UUID,
        recipients: Sequence[str],
        payload: Payload,
        driver_key: str | None,
    ) -> DispatchResult:
        """Resolve recipients to device tokens, fan out, map failures back."""
        unique = list(dict.fromkeys(recipients))
        if not unique:
            return DispatchResult.from_failures((), ())

        with self._session_factory() as session:
            devices = DeviceRepository(session).get_many(credential_id, unique)
            driver_map = PushSettingRepository(session).get_driver_map(credential_id)

        unknown: list[FailureRecord] = []
        batches: defaultdict[str, list[str]] = defaultdict(list)
        owners: defaultdict[str, list[str]] = defaultdict(list)

        for uid in unique:
            device = devices.get(uid)
            if device is None:
                unknown.append(FailureRecord(uid, UNKNOWN_RECIPIENT))
                continue
            key = driver_key or driver_map.get(device.platform, device.platform)
            if device.regid not in owners:
                batches[key].append(device.regid)
            owners[device.regid].append(uid)

        if unknown:
            logger.warning(
                "Unknown recipients in batch",
                extra={
                    "credential_id": str(credential_id),
                    "unknown_count": len(unknown),
                },
            )

        token_result = self._fanout.dispatch(batches, payload)
        failures = unknown + [
            FailureRecord(uid, record.reason)
            for record in token_result.failures
            for uid in owners[record.recipient]
        ]
        return DispatchResult.from_failures(unique, failures)

    def _finish(self, attempt_id: UUID, result: DispatchResult) -> DispatchAttempt:
        attempt = self._tracker.update(attempt_id, result.status, result.failures)
        logger.info(
            "Dispatch finished",
            extra={
                "attempt_id": str(attempt_id),
                "status": str(result.status),
                "recipient_count": len(result.recipients),
                "failed_count": len(result.failures),
            },
        )
        return attempt


def build_push_service(
    session_factory: sessionmaker[Session],
    celery_app: Celery,
    config: DispatchConfig | None = None,
    *,
    registry: DriverRegistry | None = None,
    task_name: str = SEND_PUSH_TASK,
    queue: str = "push",
) -> PushService:
    """Wire a PushService with the SQL tracker and the Celery queue adapter."""
    config = config or DispatchConfig()
    return PushService(
        session_factory,
        registry or create_default_registry(),
        SqlStatusTracker(session_factory),
        CeleryQueueAdapter(celery_app, task_name=task_name, queue=queue),
        max_workers=config.max_workers,
    )
