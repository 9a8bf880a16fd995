"""Data models for playback snapshots and the shared state record."""

from pynowplaying.models._base import EpochMillis, NowPlayingBaseModel, Seconds, Text
from pynowplaying.models.message import RelayMessage
from pynowplaying.models.snapshot import PlaybackSnapshot, SnapshotPatch
from pynowplaying.models.state import SharedStateRecord

__all__ = [
    "EpochMillis",
    "NowPlayingBaseModel",
    "PlaybackSnapshot",
    "RelayMessage",
    "Seconds",
    "SharedStateRecord",
    "SnapshotPatch",
    "Text",
]
