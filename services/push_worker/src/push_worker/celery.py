"""Celery application setup and worker initialization."""

import logging

from celery import Celery, signals
from kombu import Queue
from redis import Redis
from sqlalchemy import Engine

from push_core.config import DispatchConfig, KafkaConfig, PostgresConfig, RedisConfig
from push_core.db.base import create_db_engine, create_session_factory
from push_core.service import build_push_service

from push_worker.config import CeleryConfig, RateLimitConfig, WorkerConfig
from push_worker.log import setup_logging
from push_worker.rate_limiter import RateLimiter
from push_worker.status_publisher import KafkaStatusPublisher

logger = logging.getLogger(__name__)

celery_config = CeleryConfig()

app = Celery("push_worker", broker=celery_config.broker_url)

app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_queues=[Queue(celery_config.queue)],
    task_default_queue=celery_config.queue,
)

app.autodiscover_tasks(["push_worker"])


@signals.worker_init.connect
def _init_worker(**_kwargs: object) -> None:
    """Initialize shared resources once per worker process."""
    worker_config = WorkerConfig()
    setup_logging(worker_config.log_level)

    engine = create_db_engine(PostgresConfig().dsn, pool_pre_ping=True)
    session_factory = create_session_factory(engine)

    push_service = build_push_service(
        session_factory,
        app,
        DispatchConfig(),
        queue=celery_config.queue,
    )

    redis_config = RedisConfig()
    redis_client = Redis(
        host=redis_config.host,
        port=redis_config.port,
        db=redis_config.db,
    )
    rate_limit_config = RateLimitConfig()
    rate_limiter = RateLimiter(redis_client, rate_limit_config)

    status_publisher = KafkaStatusPublisher(KafkaConfig())

    app.conf.update(
        _engine=engine,
        _push_service=push_service,
        _rate_limiter=rate_limiter,
        _status_publisher=status_publisher,
        _worker_config=worker_config,
        _rate_limit_config=rate_limit_config,
    )
    logger.info("Worker initialized")


@signals.worker_shutdown.connect
def _shutdown_worker(**_kwargs: object) -> None:
    """Clean up resources on worker shutdown."""
    publisher: KafkaStatusPublisher | None = getattr(
        app.conf, "_status_publisher", None
    )
    if publisher is not None:
        publisher.close()
    engine: Engine | None = getattr(app.conf, "_engine", None)
    if engine is not None:
        engine.dispose()
    logger.info("Worker shut down")
