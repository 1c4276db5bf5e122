import atexit
import logging

from celery import Celery
from flask import Flask

from push_core.config import DispatchConfig, PostgresConfig
from push_core.db.base import create_db_engine, create_session_factory
from push_core.service import PushService, build_push_service

from push_gateway.config import CeleryConfig, GatewayConfig
from push_gateway.log import setup_logging
from push_gateway.routes import api_bp, health_bp

logger = logging.getLogger(__name__)


def create_app(service: PushService, config: GatewayConfig | None = None) -> Flask:
    """Flask application factory.

    Args:
        service: Push service instance (real, or wired to fakes for tests).
        config: Gateway settings; read from the environment when omitted.
    """
    config = config or GatewayConfig()
    setup_logging(config.log_level)

    app = Flask(__name__)
    app.extensions["push_service"] = service
    app.extensions["gateway_config"] = config

    app.register_blueprint(api_bp)
    app.register_blueprint(health_bp)

    logger.info("Push Gateway initialized")
    return app


def build_service() -> PushService:
    """Wire a PushService against PostgreSQL and the Celery broker.

    The gateway only produces jobs; no Celery worker runs in this process.
    """
    engine = create_db_engine(PostgresConfig().dsn, pool_pre_ping=True)
    atexit.register(engine.dispose)

    celery_config = CeleryConfig()
    celery_app = Celery(broker=celery_config.broker_url)

    return build_push_service(
        create_session_factory(engine),
        celery_app,
        DispatchConfig(),
        queue=celery_config.queue,
    )
