import hashlib
from uuid import UUID

RECIPIENT_PREFIX = "UID:"


def recipient_id(credential_id: UUID | str, platform: str, identity: str) -> str:
    """Deterministic recipient identifier for a device of a credential.

    Re-registering the same (credential, platform, identity) yields the same
    identifier, so callers can keep addressing a device whose token changed.
    """
    digest = hashlib.sha1(
        f"{credential_id}{platform}{identity}".encode("utf-8")
    ).hexdigest()
    return f"{RECIPIENT_PREFIX}{digest}"
