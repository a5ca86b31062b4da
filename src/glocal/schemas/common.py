"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, Strict, field_validator

from glocal.db.time import as_utc

_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}[Tt ]")


class NotificationCursor(BaseModel):
    """Keyset position of the last notification handed to a client.

    Serialised as ``{"createdAt": ..., "id": ...}``; any other shape is rejected.
    ``createdAt`` must be an ISO-8601 string when decoded from JSON; numeric
    epoch values are refused.
    """

    created_at: Annotated[datetime, Strict()] = Field(..., alias="createdAt")
    id: UUID

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("created_at", mode="before")
    @classmethod
    def _require_iso_string(cls, value: Any) -> Any:
        if isinstance(value, str) and not _ISO_DATE_PREFIX.match(value):
            raise ValueError("createdAt must be an ISO-8601 timestamp")
        return value

    @field_validator("created_at")
    @classmethod
    def _normalise_timezone(cls, value: datetime) -> datetime:
        return as_utc(value)
