"""Observer → relay message envelope."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from pynowplaying._constants import MESSAGE_TYPE_PLAYBACK_UPDATE
from pynowplaying.models.snapshot import PlaybackSnapshot


class RelayMessage(BaseModel):
    """``{type: "PLAYBACK_UPDATE", payload: PlaybackSnapshot}``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["PLAYBACK_UPDATE"] = MESSAGE_TYPE_PLAYBACK_UPDATE
    payload: PlaybackSnapshot
