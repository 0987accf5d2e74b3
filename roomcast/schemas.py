from datetime import timedelta
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _reject_line_breaks(value: Optional[str], field: str) -> Optional[str]:
    if value is not None and ("\n" in value or "\r" in value):
        raise ValueError(f"{field} must not contain line breaks")
    return value


class PublishOptions(BaseModel):
    """Structured form of the second ``publish()`` argument."""

    model_config = ConfigDict(extra="forbid")

    event: Optional[str] = Field(default=None, description="Event name; default event when omitted")
    data: Any = Field(default=None, description="JSON-capable payload or bytes")
    id: Optional[Union[str, int]] = Field(default=None, description="Event id sent as `id:`")
    retry: Optional[Union[int, timedelta]] = Field(
        default=None,
        description="Client reconnection delay, milliseconds or timedelta",
    )

    @field_validator("event")
    @classmethod
    def check_event(cls, value: Optional[str]) -> Optional[str]:
        return _reject_line_breaks(value, "event")

    @field_validator("id")
    @classmethod
    def check_id(cls, value: Optional[Union[str, int]]) -> Optional[str]:
        if value is None:
            return None
        return _reject_line_breaks(str(value), "id")

    @field_validator("retry")
    @classmethod
    def check_retry(cls, value: Optional[Union[int, timedelta]]) -> Optional[Union[int, timedelta]]:
        if value is None:
            return None
        ms = value if isinstance(value, int) else int(value.total_seconds() * 1000)
        if ms < 0:
            raise ValueError("retry must not be negative")
        return value

    @property
    def retry_ms(self) -> Optional[int]:
        if self.retry is None:
            return None
        if isinstance(self.retry, timedelta):
            return int(self.retry.total_seconds() * 1000)
        return self.retry


class PublishIn(BaseModel):
    event: Optional[str] = Field(default=None, description="Event name")
    data: Any = Field(default=None, description="JSON payload")
    id: Optional[str] = Field(default=None, description="Event id")
    retry: Optional[int] = Field(default=None, ge=0, description="Reconnection delay in milliseconds")


class PublishOut(BaseModel):
    status: str = "published"
    room: str
    subscribers: int
    failures: int = 0
