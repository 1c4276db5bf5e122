"""Test fixtures for push_worker tests."""

from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from push_core.db.base import Base
from push_core.db.models import Credential
from push_core.db.repositories import CredentialRepository, DeviceRepository
from push_core.drivers import DriverRegistry
from push_core.drivers.fake import FakeDriver
from push_core.jobs import DispatchJob, QueueAdapter
from push_core.payload import Payload
from push_core.service import PushService
from push_core.tracker import SqlStatusTracker

from push_worker.config import RateLimitConfig, WorkerConfig
from push_worker.rate_limiter import RateLimiter
from push_worker.status_publisher import KafkaStatusPublisher


@pytest.fixture(scope="session")
def db_engine() -> Engine:
    """Create a single in-memory SQLite engine for the test session."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
    """Transactional session that rolls back after each test."""
    connection = db_engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection)

    yield session

    session.close()
    if transaction.is_active:
        transaction.rollback()
    connection.close()


@pytest.fixture()
def session_factory(db_session: Session) -> MagicMock:
    """Session factory that always returns the test session."""
    factory = MagicMock(spec=sessionmaker)
    ctx = MagicMock()
    ctx.__enter__ = MagicMock(return_value=db_session)
    ctx.__exit__ = MagicMock(return_value=False)
    factory.return_value = ctx
    return factory


@pytest.fixture()
def fake_driver() -> FakeDriver:
    return FakeDriver("android")


@pytest.fixture()
def mock_queue() -> MagicMock:
    return MagicMock(spec=QueueAdapter)


@pytest.fixture()
def push_service(
    session_factory: MagicMock, fake_driver: FakeDriver, mock_queue: MagicMock
) -> PushService:
    registry = DriverRegistry()
    registry.register("android", fake_driver)
    return PushService(
        session_factory, registry, SqlStatusTracker(session_factory), mock_queue
    )


@pytest.fixture()
def mock_rate_limiter() -> MagicMock:
    """Rate limiter that always has a free slot."""
    limiter = MagicMock(spec=RateLimiter)
    limiter.acquire.return_value = 0.0
    return limiter


@pytest.fixture()
def mock_status_publisher() -> MagicMock:
    return MagicMock(spec=KafkaStatusPublisher)


@pytest.fixture()
def worker_config() -> WorkerConfig:
    return WorkerConfig()


@pytest.fixture()
def rate_limit_config() -> RateLimitConfig:
    return RateLimitConfig()


@pytest.fixture()
def credential(db_session: Session) -> Credential:
    return CredentialRepository(db_session).create("acme")


@pytest.fixture()
def device_uid(db_session: Session, credential: Credential) -> str:
    return DeviceRepository(db_session).register(
        credential.id, "android", "phone", "fcm-token"
    ).id


@pytest.fixture()
def queued_job(
    push_service: PushService,
    mock_queue: MagicMock,
    credential: Credential,
    device_uid: str,
) -> DispatchJob:
    """A job for a freshly queued single-recipient attempt."""
    payload = Payload.model_validate({"title": "Hi", "data": {"a": "A"}})
    push_service.queue(credential.id, [device_uid], payload)
    return mock_queue.enqueue.call_args.args[0]
