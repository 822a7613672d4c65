from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from mqtt_publisher.contracts.broker import QoS
from mqtt_publisher.core.publisher import MAX_MESSAGE_LENGTH, validate_message


class MessageRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = Field(min_length=1, max_length=MAX_MESSAGE_LENGTH)
    # accepted for API compatibility; delivery always uses qos 1, not retained
    qos: QoS = QoS.AT_LEAST_ONCE
    retained: bool = False

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        return validate_message(value)


class ApiResponse(BaseModel):
    """Uniform response envelope. Unset fields are left out of the JSON body."""

    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    data: Any = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, message: str, data: Any = None) -> ApiResponse:
        return cls(success=True, message=message, data=data)

    @classmethod
    def failure(cls, message: str, error: str) -> ApiResponse:
        return cls(success=False, message=message, error=error)

    def to_response(self, status_code: int = 200) -> JSONResponse:
        return JSONResponse(
            status_code=status_code,
            content=self.model_dump(mode="json", exclude_none=True),
        )
