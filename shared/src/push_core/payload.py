"""Push payload model.

The dispatch core never looks inside a payload beyond checking that it is
not empty; drivers decide how it maps onto their backend.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

_NOTIFICATION_FIELDS = ("title", "body", "click_action")


class NotificationContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str = ""
    body: str = ""
    click_action: str = ""


class Payload(BaseModel):
    """Notification metadata plus arbitrary key/value data."""

    model_config = ConfigDict(extra="allow")

    notification: NotificationContent | None = None
    data: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _lift_flat_notification(cls, data: Any) -> Any:
        # {"title": ..., "body": ..., "data": ...} is shorthand for the
        # nested {"notification": {...}, "data": ...} form.
        if isinstance(data, dict) and "notification" not in data:
            flat = {k: data[k] for k in _NOTIFICATION_FIELDS if k in data}
            if flat:
                data = {k: v for k, v in data.items() if k not in flat}
                data["notification"] = flat
        return data

    def is_empty(self) -> bool:
        if self.data or self.model_extra:
            return False
        if self.notification is None:
            return True
        return not any(self.notification.model_dump().values())
