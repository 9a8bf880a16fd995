"""Transmission-worthiness policy.

Decides, for a candidate snapshot, whether it should be sent:

- forced requests (hook, navigation, visibility) always go out
- otherwise nothing is sent within ``rate_limit`` of the previous send
- otherwise send when the dedup key changed, when the whole-second
  position moved while playing, or every ``paused_heartbeat`` while not
  playing so the store's freshness timestamp keeps moving
"""

from __future__ import annotations

import math

from pynowplaying._constants import PAUSED_HEARTBEAT_SECONDS, RATE_LIMIT_SECONDS
from pynowplaying.models.snapshot import PlaybackSnapshot
from pynowplaying.observer.session import ObserverSession


def _elapsed(session: ObserverSession, now: float) -> float:
    return math.inf if session.last_sent_at is None else now - session.last_sent_at


def is_rate_limited(session: ObserverSession, now: float, rate_limit: float = RATE_LIMIT_SECONDS) -> bool:
    """True while *now* is within *rate_limit* of the previous send."""
    return _elapsed(session, now) < rate_limit


def should_transmit(
    candidate: PlaybackSnapshot,
    session: ObserverSession,
    now: float,
    *,
    force: bool = False,
    rate_limit: float = RATE_LIMIT_SECONDS,
    paused_heartbeat: float = PAUSED_HEARTBEAT_SECONDS,
) -> bool:
    if force:
        return True

    if is_rate_limited(session, now, rate_limit):
        return False

    elapsed = _elapsed(session, now)
    if candidate.dedup_key() != session.last_key:
        return True
    if candidate.playing:
        return math.floor(candidate.position_seconds) != session.last_pos
    return elapsed > paused_heartbeat
