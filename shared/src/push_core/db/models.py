"""SQLAlchemy ORM models for credentials, devices and dispatch attempts."""

import datetime
import uuid

import sqlalchemy as sa
from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from push_core.db.base import Base
from push_core.enums import DispatchStatus
from push_core.results import FailureRecord

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONDocument = sa.JSON().with_variant(JSONB(), "postgresql")


class Credential(Base):
    """A tenant of the push service, authenticated by API key."""

    __tablename__ = "credentials"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    api_key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class PushSetting(Base):
    """Per-credential driver selection: platform -> driver key."""

    __tablename__ = "push_settings"

    credential_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    drivers: Mapped[dict] = mapped_column(JSONDocument, nullable=False, default=dict)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class Device(Base):
    __tablename__ = "devices"

    # The recipient identifier handed back to the registering client.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    credential_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    platform: Mapped[str] = mapped_column(String(16), nullable=False)
    identity: Mapped[str] = mapped_column(String(255), nullable=False)
    regid: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "credential_id", "platform", "identity", name="uq_device_identity"
        ),
    )


class DispatchAttempt(Base):
    """One send operation: its recipients, status and rejected recipients."""

    __tablename__ = "dispatch_attempts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    credential_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=DispatchStatus.PENDING, index=True
    )
    recipients: Mapped[list] = mapped_column(JSONDocument, nullable=False)
    failures: Mapped[list] = mapped_column(JSONDocument, nullable=False, default=list)
    payload: Mapped[dict] = mapped_column(JSONDocument, nullable=False)
    driver_key: Mapped[str | None] = mapped_column(String(64), nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    completed_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def failure_records(self) -> tuple[FailureRecord, ...]:
        return tuple(FailureRecord.from_dict(raw) for raw in self.failures or ())

    def to_dict(self) -> dict[str, object]:
        return {
            "push_uuid": str(self.id),
            "status": self.status,
            "recipients": list(self.recipients),
            "failures": list(self.failures or ()),
            "error": self.error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }
