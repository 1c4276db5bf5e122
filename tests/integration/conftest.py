"""In-process integration fixtures.

The gateway, the dispatch core and the worker task run against one shared
in-memory SQLite database. The Celery broker is replaced by a recorder that
captures enqueued jobs so tests can hand them to the worker task directly.
"""

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from celery import Celery
from flask import Flask
from flask.testing import FlaskClient
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from push_core.db.base import Base, create_session_factory
from push_core.drivers import DriverRegistry
from push_core.drivers.fake import FakeDriver
from push_core.enums import Platform
from push_core.service import PushService, build_push_service

from push_gateway.app import create_app
from push_gateway.auth import API_KEY_HEADER
from push_gateway.config import GatewayConfig

from push_worker.config import RateLimitConfig, WorkerConfig
from push_worker.rate_limiter import RateLimiter
from push_worker.status_publisher import KafkaStatusPublisher

pytestmark = pytest.mark.integration


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture()
def drivers() -> dict[str, FakeDriver]:
    return {platform.value: FakeDriver(platform.value) for platform in Platform}


@pytest.fixture()
def broker() -> MagicMock:
    """Celery app stand-in that records every send_task call."""
    return MagicMock(spec=Celery)


@pytest.fixture()
def push_service(
    session_factory: sessionmaker[Session],
    broker: MagicMock,
    drivers: dict[str, FakeDriver],
) -> PushService:
    registry = DriverRegistry()
    for key, driver in drivers.items():
        registry.register(key, driver)
    return build_push_service(session_factory, broker, registry=registry)


@pytest.fixture()
def app(push_service: PushService) -> Flask:
    app = create_app(push_service, GatewayConfig())
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    return app.test_client()


@pytest.fixture()
def auth_headers(push_service: PushService) -> dict[str, str]:
    credential = push_service.create_credential("integration")
    return {API_KEY_HEADER: credential.api_key}


@pytest.fixture()
def status_publisher() -> MagicMock:
    return MagicMock(spec=KafkaStatusPublisher)


@pytest.fixture()
def worker(
    push_service: PushService, status_publisher: MagicMock
) -> Generator[MagicMock, None, None]:
    """Worker-side Celery app with resources wired as worker_init would."""
    limiter = MagicMock(spec=RateLimiter)
    limiter.acquire.return_value = 0.0
    with patch("push_worker.tasks.app") as worker_app:
        worker_app.conf._push_service = push_service
        worker_app.conf._rate_limiter = limiter
        worker_app.conf._status_publisher = status_publisher
        worker_app.conf._worker_config = WorkerConfig()
        worker_app.conf._rate_limit_config = RateLimitConfig()
        worker_app.send_task = MagicMock()
        yield worker_app

