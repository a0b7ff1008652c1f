"""Shared wire types: timestamps and the structured API error envelope."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Optional, Union

from pydantic import AfterValidator, BaseModel, Field, field_validator


def as_utc(value: datetime) -> datetime:
    """Treat naive server timestamps as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDateTime = Annotated[datetime, AfterValidator(as_utc)]


class APIErrorDetail(BaseModel):
    """Body of the ``error`` field returned by the backend."""

    message: str
    code: str = "unknown"
    field: Optional[str] = None


class APIErrorEnvelope(BaseModel):
    """Standardized error response: ``{"error": {...}}``."""

    error: APIErrorDetail

    @field_validator("error", mode="before")
    @classmethod
    def _accept_plain_message(
        cls, value: Union[str, dict, APIErrorDetail]
    ) -> Union[dict, APIErrorDetail]:
        """Some endpoints return ``{"error": "message"}``."""
        if isinstance(value, str):
            return {"message": value, "code": "error"}
        return value


class EmptyResponse(BaseModel):
    """Placeholder shape for endpoints whose body is ignored."""

    detail: Optional[str] = Field(None, description="Optional server message.")


__all__ = [
    "APIErrorDetail",
    "APIErrorEnvelope",
    "EmptyResponse",
    "UtcDateTime",
    "as_utc",
]
