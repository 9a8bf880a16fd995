"""Shared state record held by the store."""

from __future__ import annotations

from datetime import datetime

from pynowplaying.models._base import EpochMillis
from pynowplaying.models.snapshot import PlaybackSnapshot


class SharedStateRecord(PlaybackSnapshot):
    """The store's single slot: the latest merged snapshot plus ``updated_at``.

    ``updated_at`` is stamped on every merge, whether or not the incoming
    payload changed anything.
    """

    updated_at: EpochMillis

    @classmethod
    def empty(cls, now: datetime) -> SharedStateRecord:
        return cls(updated_at=now)
