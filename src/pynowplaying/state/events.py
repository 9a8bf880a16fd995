"""Normalized ingestion events.

Every ingest path converts its input into these events. Only the
state/store layer is allowed to merge them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class IngestSource(StrEnum):
    HTTP = "http"
    LOCAL = "local"


class IngestEvent(BaseModel):
    """A normalized update to apply to the state store."""

    model_config = ConfigDict(frozen=True)

    source: IngestSource
    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = Field(default_factory=dict, description="Snake_case patch of recognized fields")
    raw: dict[str, Any] = Field(default_factory=dict, description="Original payload (as received)")

    @field_validator("received_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
