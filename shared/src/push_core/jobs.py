"""Deferred dispatch: job descriptor and queue adapters."""

import logging
from typing import Protocol
from uuid import UUID

from celery import Celery
from pydantic import BaseModel, Field

from push_core.payload import Payload

logger = logging.getLogger(__name__)

SEND_PUSH_TASK = "push_worker.tasks.send_push"


class DispatchJob(BaseModel):
    """Everything a worker needs to replay a dispatch later."""

    attempt_id: UUID
    credential_id: UUID
    recipients: list[str] = Field(min_length=1)
    payload: Payload
    driver_key: str | None = None


class QueueAdapter(Protocol):
    def enqueue(self, job: DispatchJob, *, countdown: int | None = None) -> None: ...


class CeleryQueueAdapter:
    """Enqueues dispatch jobs as Celery tasks by name.

    The producer side only needs a broker connection; the task itself lives
    in the push_worker service.
    """

    def __init__(
        self,
        celery_app: Celery,
        *,
        task_name: str = SEND_PUSH_TASK,
        queue: str = "push",
    ) -> None:
        self._celery = celery_app
        self._task_name = task_name
        self._queue = queue

    def enqueue(self, job: DispatchJob, *, countdown: int | None = None) -> None:
        options: dict[str, object] = {"queue": self._queue}
        if countdown is not None:
            options["countdown"] = countdown
        self._celery.send_task(
            self._task_name,
            kwargs={"job": job.model_dump(mode="json")},
            **options,
        )
        logger.info(
            "Dispatch job enqueued",
            extra={
                "attempt_id": str(job.attempt_id),
                "queue": self._queue,
                "countdown": countdown,
            },
        )
