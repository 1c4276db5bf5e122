"""Celery task for queued push dispatch."""

import logging
import math
from typing import Any

from pydantic import ValidationError

from push_core.enums import TERMINAL_STATUSES, DispatchStatus
from push_core.errors import AttemptNotFoundError, DriverError, PayloadValidationError
from push_core.jobs import SEND_PUSH_TASK, DispatchJob
from push_core.service import PushService
from push_core.tracker import StatusTracker

from push_worker.celery import app
from push_worker.config import RateLimitConfig, WorkerConfig
from push_worker.rate_limiter import RateLimiter
from push_worker.status_publisher import KafkaStatusPublisher

logger = logging.getLogger(__name__)


@app.task(name=SEND_PUSH_TASK)
def send_push(job: dict[str, Any]) -> None:
    """Execute one queued dispatch job.

    The job descriptor is produced by ``PushService.queue``. The task is
    safe to run more than once for the same attempt: terminal attempts are
    skipped, and a redelivered in-flight attempt is simply sent again.
    Driver errors are retried with backoff up to ``max_attempts``; a
    rejected payload fails the attempt immediately.
    """
    push_service: PushService = app.conf._push_service
    rate_limiter: RateLimiter = app.conf._rate_limiter
    status_publisher: KafkaStatusPublisher = app.conf._status_publisher
    worker_config: WorkerConfig = app.conf._worker_config
    rate_limit_config: RateLimitConfig = app.conf._rate_limit_config

    try:
        dispatch_job = DispatchJob.model_validate(job)
    except ValidationError as exc:
        logger.error(
            "Malformed dispatch job, dropping",
            extra={"errors": exc.errors(include_url=False, include_input=False)},
        )
        return

    attempt_id = dispatch_job.attempt_id
    credential_id = dispatch_job.credential_id
    tracker = push_service.tracker

    try:
        attempt = tracker.get(attempt_id)
    except AttemptNotFoundError:
        logger.warning(
            "Dispatch attempt not found, skipping",
            extra={"attempt_id": str(attempt_id)},
        )
        return

    log_ctx: dict[str, Any] = {
        "attempt_id": str(attempt_id),
        "credential_id": str(credential_id),
        "attempt": attempt.attempts,
    }

    # Idempotency: a redelivered job for a finished attempt is a no-op
    if attempt.status in TERMINAL_STATUSES:
        logger.info(
            "Attempt already finished, skipping",
            extra={**log_ctx, "status": attempt.status},
        )
        return

    wait = rate_limiter.acquire(str(credential_id))
    if wait:
        countdown = max(math.ceil(wait), rate_limit_config.min_retry_after_seconds)
        logger.info(
            "Rate limited, rescheduling",
            extra={**log_ctx, "countdown": countdown},
        )
        _requeue(dispatch_job, countdown)
        return

    try:
        result = push_service.run_job(dispatch_job)
    except PayloadValidationError as exc:
        tracker.update(attempt_id, DispatchStatus.FAILED, error=str(exc))
        logger.error(
            "Payload rejected, not retrying",
            extra={**log_ctx, "reason": str(exc)},
        )
        status_publisher.publish_status(
            attempt_id, credential_id, DispatchStatus.FAILED
        )
        return
    except DriverError as exc:
        _handle_driver_error(
            tracker,
            dispatch_job,
            attempt.attempts,
            exc,
            worker_config,
            status_publisher,
        )
        return

    logger.info(
        "Dispatch completed",
        extra={
            **log_ctx,
            "status": str(result.status),
            "failed_count": len(result.failures),
        },
    )
    status_publisher.publish_status(
        attempt_id, credential_id, result.status, result.failed_recipients
    )


def _handle_driver_error(
    tracker: StatusTracker,
    job: DispatchJob,
    previous_attempts: int,
    exc: DriverError,
    worker_config: WorkerConfig,
    status_publisher: KafkaStatusPublisher,
) -> None:
    new_attempts = previous_attempts + 1
    log_ctx = {
        "attempt_id": str(job.attempt_id),
        "credential_id": str(job.credential_id),
        "attempt": new_attempts,
        "reason": str(exc),
    }

    if new_attempts < worker_config.max_attempts:
        backoff = _get_backoff(new_attempts, worker_config.retry_backoff_seconds)
        tracker.update(
            job.attempt_id,
            DispatchStatus.QUEUED,
            error=str(exc),
            increment_attempts=True,
        )
        logger.warning(
            "Driver error, scheduling retry",
            extra={**log_ctx, "backoff_seconds": backoff},
        )
        _requeue(job, backoff)
        return

    tracker.update(
        job.attempt_id,
        DispatchStatus.FAILED,
        error=str(exc),
        increment_attempts=True,
    )
    logger.error("Dispatch permanently failed", extra=log_ctx)
    status_publisher.publish_status(
        job.attempt_id, job.credential_id, DispatchStatus.FAILED
    )


def _requeue(job: DispatchJob, countdown: int) -> None:
    """Re-enqueue the job with a delay."""
    app.send_task(
        SEND_PUSH_TASK,
        kwargs={"job": job.model_dump(mode="json")},
        countdown=countdown,
    )


def _get_backoff(attempt: int, schedule: list[int]) -> int:
    """Return backoff seconds for the given attempt number (1-based).

    Falls back to the last value in *schedule* when attempt exceeds the
    length of the list.
    """
    idx = min(attempt - 1, len(schedule) - 1)
    return schedule[idx]
