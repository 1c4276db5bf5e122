"""Shared test fixtures for the dispatch core (SQLite in-memory)."""

from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from push_core.db.base import Base
from push_core.db.models import Credential
from push_core.db.repositories import CredentialRepository
from push_core.drivers import DriverRegistry
from push_core.drivers.fake import FakeDriver
from push_core.jobs import QueueAdapter
from push_core.payload import Payload
from push_core.service import PushService
from push_core.tracker import SqlStatusTracker


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
    """Session factory that always returns the test session.

    Wraps db_session so that ``with session_factory() as session:``
    returns our transactional test session.
    """
    factory = MagicMock(spec=sessionmaker)
    ctx = MagicMock()
    ctx.__enter__ = MagicMock(return_value=db_session)
    ctx.__exit__ = MagicMock(return_value=False)
    factory.return_value = ctx
    return factory


@pytest.fixture()
def tracker(session_factory: MagicMock) -> SqlStatusTracker:
    return SqlStatusTracker(session_factory)


@pytest.fixture()
def android_driver() -> FakeDriver:
    return FakeDriver("android")


@pytest.fixture()
def ios_driver() -> FakeDriver:
    return FakeDriver("ios")


@pytest.fixture()
def registry(android_driver: FakeDriver, ios_driver: FakeDriver) -> DriverRegistry:
    registry = DriverRegistry()
    registry.register("android", android_driver)
    registry.register("ios", ios_driver)
    return registry


@pytest.fixture()
def mock_queue() -> MagicMock:
    return MagicMock(spec=QueueAdapter)


@pytest.fixture()
def push_service(
    session_factory: MagicMock,
    registry: DriverRegistry,
    tracker: SqlStatusTracker,
    mock_queue: MagicMock,
) -> PushService:
    return PushService(session_factory, registry, tracker, mock_queue)


@pytest.fixture()
def credential(db_session: Session) -> Credential:
    return CredentialRepository(db_session).create("acme")


@pytest.fixture()
def payload() -> Payload:
    return Payload.model_validate({
        "notification": {"title": "Hello", "body": "World"},
        "data": {"order_id": "42"},
    })
