"""Database foundation: declarative base class, engine and session factories."""

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""


def create_db_engine(dsn: str, **kwargs: object) -> Engine:
    """Create a SQLAlchemy engine from a DSN string.

    The gateway and the worker pass ``pool_pre_ping=True`` so that stale
    connections are replaced after a PostgreSQL restart.
    """
    return create_engine(dsn, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create a sessionmaker bound to the given engine.

    ``expire_on_commit=False`` keeps dispatch attempts readable after the
    tracker closes its session, in Flask requests and Celery tasks alike.
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


def ping(session_factory: sessionmaker[Session]) -> bool:
    """Return True if the database answers a trivial query."""
    try:
        with session_factory() as session:
            session.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
