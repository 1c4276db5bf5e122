"""Request bodies accepted by the push API."""

import json
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator

from push_core.enums import Platform
from push_core.payload import Payload

RecipientId = Annotated[str, Field(min_length=1, max_length=64)]


def _decode_json_string(value: Any) -> Any:
    # Form posts carry `to` and `payload` as JSON-encoded strings.
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError("must be valid JSON") from exc
    return value


class RegisterDeviceRequest(BaseModel):
    platform: Platform
    identity: str = Field(min_length=1, max_length=255)
    regid: str = Field(min_length=1)


class PushRequest(BaseModel):
    to: list[RecipientId] = Field(min_length=1)
    payload: Payload
    driver: str | None = Field(default=None, min_length=1, max_length=64)

    @field_validator("to", "payload", mode="before")
    @classmethod
    def _decode(cls, value: Any) -> Any:
        return _decode_json_string(value)

    @field_validator("payload")
    @classmethod
    def _require_content(cls, payload: Payload) -> Payload:
        if payload.is_empty():
            raise ValueError("payload must not be empty")
        return payload
