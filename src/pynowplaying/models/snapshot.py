"""Playback snapshot models."""

from __future__ import annotations

import math
from typing import Any

from pydantic import Field, model_validator

from pynowplaying._constants import DEFAULT_SOURCE
from pynowplaying.models._base import EpochMillis, NowPlayingBaseModel, Seconds, Text


class PlaybackSnapshot(NowPlayingBaseModel):
    """A point-in-time description of playback state.

    ``observed_at`` is assigned by the store when the snapshot is merged;
    producers leave it unset.
    """

    source: Text = DEFAULT_SOURCE
    title: Text = ""
    channel: Text = ""
    url: Text = ""
    media_id: Text = ""
    thumbnail_url: Text = ""
    duration_seconds: Seconds = 0.0
    """Media duration; ``0`` means unknown."""
    position_seconds: Seconds = 0.0
    playing: bool = False
    observed_at: EpochMillis | None = None

    def dedup_key(self) -> str:
        """Composite used to decide whether this snapshot materially differs.

        Position is deliberately excluded; it is rate-limited separately.
        """
        playing = "true" if self.playing else "false"
        duration = math.floor(self.duration_seconds + 0.5)
        return f"{self.url}|{self.media_id}|{self.title}|{self.channel}|{self.thumbnail_url}|{playing}|{duration}"


class SnapshotPatch(NowPlayingBaseModel):
    """A partial snapshot as received on ingest.

    Only the fields present in the incoming payload are part of the patch
    (see :meth:`as_patch`).  Unknown keys are ignored.
    """

    source: Text = ""
    title: Text = ""
    channel: Text = ""
    url: Text = ""
    media_id: Text = ""
    thumbnail_url: Text = ""
    duration_seconds: Seconds = 0.0
    position_seconds: Seconds = 0.0
    playing: bool = Field(default=False, strict=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_non_boolean_playing(cls, values: Any) -> Any:
        # A non-boolean flag would otherwise fail the whole patch; drop it so
        # the stored value survives.
        if isinstance(values, dict) and "playing" in values and not isinstance(values["playing"], bool):
            values = {k: v for k, v in values.items() if k != "playing"}
        return values

    def as_patch(self) -> dict[str, Any]:
        """Snake_case dict of the fields that were present in the payload."""
        return self.model_dump(include=set(self.model_fields_set))
