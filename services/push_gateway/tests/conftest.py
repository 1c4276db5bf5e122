from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from flask import Flask
from flask.testing import FlaskClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from push_core.db.base import Base
from push_core.db.models import Credential
from push_core.db.repositories import CredentialRepository
from push_core.drivers import DriverRegistry
from push_core.drivers.fake import FakeDriver
from push_core.enums import Platform
from push_core.jobs import QueueAdapter
from push_core.service import PushService
from push_core.tracker import SqlStatusTracker

from push_gateway.app import create_app
from push_gateway.auth import API_KEY_HEADER
from push_gateway.config import GatewayConfig


@pytest.fixture(scope="session")
def db_engine() -> Engine:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(db_engine: Engine) -> Generator[Session, None, None]:
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
    factory = MagicMock(spec=sessionmaker)
    ctx = MagicMock()
    ctx.__enter__ = MagicMock(return_value=db_session)
    ctx.__exit__ = MagicMock(return_value=False)
    factory.return_value = ctx
    return factory


@pytest.fixture()
def drivers() -> dict[str, FakeDriver]:
    return {platform.value: FakeDriver(platform.value) for platform in Platform}


@pytest.fixture()
def mock_queue() -> MagicMock:
    return MagicMock(spec=QueueAdapter)


@pytest.fixture()
def push_service(
    session_factory: MagicMock,
    drivers: dict[str, FakeDriver],
    mock_queue: MagicMock,
) -> PushService:
    registry = DriverRegistry()
    for key, driver in drivers.items():
        registry.register(key, driver)
    return PushService(
        session_factory, registry, SqlStatusTracker(session_factory), mock_queue
    )


@pytest.fixture()
def app(push_service: PushService) -> Flask:
    app = create_app(push_service, GatewayConfig(default_page_size=2, max_page_size=3))
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    return app.test_client()


@pytest.fixture()
def credential(db_session: Session) -> Credential:
    return CredentialRepository(db_session).create("acme")


@pytest.fixture()
def auth_headers(credential: Credential) -> dict[str, str]:
    return {API_KEY_HEADER: credential.api_key}
