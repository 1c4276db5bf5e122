"""Database layer: models, repositories, engine/session utilities."""

from push_core.db.base import Base, create_db_engine, create_session_factory, ping
from push_core.db.models import Credential, Device, DispatchAttempt, PushSetting
from push_core.db.repositories import (
    CredentialRepository,
    DeviceRepository,
    DispatchAttemptRepository,
    PushSettingRepository,
)

__all__ = [
    "Base",
    "create_db_engine",
    "create_session_factory",
    "ping",
    "Credential",
    "Device",
    "DispatchAttempt",
    "PushSetting",
    "CredentialRepository",
    "DeviceRepository",
    "DispatchAttemptRepository",
    "PushSettingRepository",
]
