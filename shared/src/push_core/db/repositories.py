"""Data access repositories with constructor-injected sessions."""

import datetime
import secrets
from collections.abc import Iterable, Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from push_core.db.models import Credential, Device, DispatchAttempt, PushSetting
from push_core.devices import recipient_id
from push_core.results import FailureRecord


class CredentialRepository:
    """Data access for tenants and their API keys."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, name: str) -> Credential:
        """Create a credential with a freshly generated API key."""
        credential = Credential(name=name, api_key=secrets.token_hex(32))
        self._session.add(credential)
        self._session.flush()
        return credential

    def get_by_id(self, credential_id: UUID) -> Credential | None:
        return self._session.get(Credential, credential_id)

    def get_by_api_key(self, api_key: str) -> Credential | None:
        stmt = select(Credential).where(Credential.api_key == api_key)
        return self._session.scalars(stmt).first()


class PushSettingRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_driver_map(self, credential_id: UUID) -> dict[str, str]:
        """Platform -> driver key overrides; empty when none are configured."""
        setting = self._session.get(PushSetting, credential_id)
        if setting is None:
            return {}
        return dict(setting.drivers)

    def set_driver_map(
        self, credential_id: UUID, drivers: Mapping[str, str]
    ) -> PushSetting:
        setting = self._session.get(PushSetting, credential_id)
        if setting is None:
            setting = PushSetting(credential_id=credential_id, drivers=dict(drivers))
            self._session.add(setting)
        else:
            setting.drivers = dict(drivers)
        self._session.flush()
        return setting


class DeviceRepository:
    """Data access for registered devices."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def register(
        self, credential_id: UUID, platform: str, identity: str, regid: str
    ) -> Device:
        """Insert a device, or refresh the token of an already known one.

        The device id is derived from (credential, platform, identity), so a
        re-registration never changes the recipient identifier.
        """
        device_id = recipient_id(credential_id, platform, identity)
        device = self._session.get(Device, device_id)
        if device is None:
            device = Device(
                id=device_id,
                credential_id=credential_id,
                platform=platform,
                identity=identity,
                regid=regid,
            )
            self._session.add(device)
        else:
            device.regid = regid
        self._session.flush()
        return device

    def get_many(
        self, credential_id: UUID, device_ids: Iterable[str]
    ) -> dict[str, Device]:
        """Fetch the credential's devices among *device_ids*, keyed by id.

        Ids belonging to other credentials are silently absent.
        """
        ids = list(dict.fromkeys(device_ids))
        if not ids:
            return {}
        stmt = select(Device).where(
            Device.credential_id == credential_id,
            Device.id.in_(ids),
        )
        return {device.id: device for device in self._session.scalars(stmt).all()}


class DispatchAttemptRepository:
    """Data access for the dispatch_attempts table."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, attempt: DispatchAttempt) -> DispatchAttempt:
        """Add a new attempt and flush to populate server defaults."""
        self._session.add(attempt)
        self._session.flush()
        return attempt

    def get_by_id(self, attempt_id: UUID) -> DispatchAttempt | None:
        return self._session.get(DispatchAttempt, attempt_id)

    def update_status(
        self,
        attempt_id: UUID,
        status: str,
        *,
        failures: Iterable[FailureRecord] | None = None,
        error: str | None = None,
        clear_error: bool = False,
        completed_at: datetime.datetime | None = None,
        increment_attempts: bool = False,
    ) -> DispatchAttempt | None:
        """Update attempt status and related fields.

        *clear_error* drops an error left by an earlier run.
        Returns the updated attempt, or None if not found.
        """
        attempt = self.get_by_id(attempt_id)
        if attempt is None:
            return None

        attempt.status = status

        if failures is not None:
            attempt.failures = [record.to_dict() for record in failures]
        if error is not None:
            attempt.error = error
        elif clear_error:
            attempt.error = None
        if completed_at is not None:
            attempt.completed_at = completed_at
        if increment_attempts:
            attempt.attempts += 1

        self._session.flush()
        return attempt

    def latest_for_credential(
        self, credential_id: UUID, limit: int = 25
    ) -> list[DispatchAttempt]:
        """Newest attempts of a credential first, capped by limit."""
        stmt = (
            select(DispatchAttempt)
            .where(DispatchAttempt.credential_id == credential_id)
            .order_by(DispatchAttempt.created_at.desc())
            .limit(limit)
        )
        return list(self._session.scalars(stmt).all())
