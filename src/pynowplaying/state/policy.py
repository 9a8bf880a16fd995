"""Read-time staleness policy.

Staleness is derived whenever a record is read and is never stored.  A
stale record is displayed as not playing even if its ``playing`` flag is
still set, which is how the display falls back to a waiting state when
the observer goes silent without ever sending a "stopped" update.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from pynowplaying._constants import STALE_AFTER_SECONDS
from pynowplaying.models.state import SharedStateRecord


def is_stale(now: datetime, updated_at: datetime, stale_after: float = STALE_AFTER_SECONDS) -> bool:
    return now - updated_at > timedelta(seconds=stale_after)


def effective_playing(record: SharedStateRecord, now: datetime, stale_after: float = STALE_AFTER_SECONDS) -> bool:
    """Whether the record should be displayed as playing at *now*."""
    return record.playing and not is_stale(now, record.updated_at, stale_after)
