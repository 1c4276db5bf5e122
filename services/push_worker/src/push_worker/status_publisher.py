"""Kafka producer for dispatch status events."""

import json
import logging
from collections.abc import Sequence
from uuid import UUID

from confluent_kafka import KafkaError, Message, Producer

from push_core.config import KafkaConfig

logger = logging.getLogger(__name__)


class KafkaStatusPublisher:
    """Publishes dispatch attempt status changes to the push.status topic."""

    def __init__(self, config: KafkaConfig) -> None:
        self._topic = config.status_topic
        self._producer = Producer({
            "bootstrap.servers": config.bootstrap_servers,
            "acks": "all",
            "enable.idempotence": True,
            "linger.ms": 5,
            "compression.type": "lz4",
        })

    def publish_status(
        self,
        attempt_id: UUID,
        credential_id: UUID,
        status: str,
        failed_recipients: Sequence[str] = (),
    ) -> None:
        """Publish a status event keyed by attempt id (per-attempt ordering)."""
        value = json.dumps({
            "attempt_id": str(attempt_id),
            "credential_id": str(credential_id),
            "status": status,
            "failed_recipients": list(failed_recipients),
        }).encode("utf-8")

        self._producer.produce(
            topic=self._topic,
            key=str(attempt_id).encode("utf-8"),
            value=value,
            on_delivery=self._on_delivery,
        )
        self._producer.poll(0)

    def close(self) -> None:
        """Flush remaining messages before shutdown."""
        remaining = self._producer.flush(timeout=10.0)
        if remaining > 0:
            logger.warning(
                "Status publisher closed with unflushed messages",
                extra={"remaining": remaining},
            )

    @staticmethod
    def _on_delivery(err: KafkaError | None, msg: Message) -> None:
        if err is not None:
            logger.error("Kafka delivery failed: %s", err)
