"""Base model and shared field types for pynowplaying wire models.

Every wire model inherits from :class:`NowPlayingBaseModel` which provides:

* ``alias_generator=to_camel`` so the camelCase wire keys
  (``positionSeconds``, ``thumbnailUrl``) map to snake_case fields.
* A ``model_validator(mode="before")`` that renames legacy keys emitted
  by older producers (``position``, ``thumbnail``, ``videoId``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer, model_validator
from pydantic.alias_generators import to_camel

from pynowplaying.ingestion.normalize import coerce_seconds, coerce_text, parse_epoch_timestamp, to_epoch_millis

Seconds = Annotated[float, BeforeValidator(coerce_seconds)]
"""Finite, non-negative seconds; anything else is coerced to ``0.0``."""

Text = Annotated[str, BeforeValidator(coerce_text)]
"""String field that never fails validation; ``None`` becomes ``""``."""

EpochMillis = Annotated[
    datetime,
    BeforeValidator(parse_epoch_timestamp),
    PlainSerializer(to_epoch_millis, return_type=int, when_used="json"),
]
"""UTC datetime carried as epoch milliseconds on the wire."""

# Keys used by the first version of the browser extension.
LEGACY_KEY_ALIASES: dict[str, str] = {
    "duration": "durationSeconds",
    "position": "positionSeconds",
    "thumbnail": "thumbnailUrl",
    "videoId": "mediaId",
}


class NowPlayingBaseModel(BaseModel):
    """Base for pynowplaying wire models."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = LEGACY_KEY_ALIASES

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @staticmethod
    def _apply_aliases(values: dict[str, Any], aliases: dict[str, str]) -> dict[str, Any]:
        working = dict(values)
        for old_key, new_key in aliases.items():
            if old_key in working and new_key not in working:
                working[new_key] = working.pop(old_key)
        return working

    @model_validator(mode="before")
    @classmethod
    def _rename_legacy_keys(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        aliases: dict[str, str] = getattr(cls, "_KEY_ALIASES", {})
        return NowPlayingBaseModel._apply_aliases(values, aliases)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready camelCase dict, without unset optional timestamps."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
