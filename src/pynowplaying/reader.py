"""Polling reader for the now-playing record.

Readers never subscribe; they poll ``GET /state`` on a fixed interval and
derive what to display, including read-time staleness.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import aiohttp
from pydantic import ValidationError

from pynowplaying._constants import READER_POLL_INTERVAL_SECONDS, STALE_AFTER_SECONDS, STATE_PATH
from pynowplaying.exceptions import StoreTransportError
from pynowplaying.models.state import SharedStateRecord
from pynowplaying.state.policy import effective_playing, is_stale

_logger = logging.getLogger(__name__)

NOTHING_PLAYING = "Nothing playing"
WAITING_BADGE = "Waiting for video..."


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class NowPlayingView:
    """What a display should show for one poll."""

    title: str
    channel: str = ""
    time_text: str = ""
    progress: float = 0.0
    playing: bool = False
    stale: bool = True
    badge: str = WAITING_BADGE
    thumbnail_url: str = ""


def format_clock(seconds: float) -> str:
    """``m:ss`` for a non-negative number of seconds."""
    total = max(0, int(seconds or 0))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def build_view(record: SharedStateRecord, now: datetime, stale_after: float = STALE_AFTER_SECONDS) -> NowPlayingView:
    """Derive the display state of *record* at *now*.

    A stale record is never shown as playing, whatever its flag says.
    """
    stale = is_stale(now, record.updated_at, stale_after)
    playing = effective_playing(record, now, stale_after)
    duration = record.duration_seconds
    position = record.position_seconds

    time_text = ""
    progress = 0.0
    if duration > 0:
        time_text = f"{format_clock(position)} / {format_clock(duration)}"
        progress = min(1.0, max(0.0, position / duration))

    if stale:
        badge = WAITING_BADGE
    else:
        badge = "Playing" if playing else "Paused"

    thumbnail = record.thumbnail_url if record.thumbnail_url.startswith(("http://", "https://")) else ""
    return NowPlayingView(
        title=record.title or NOTHING_PLAYING,
        channel=record.channel,
        time_text=time_text,
        progress=progress,
        playing=playing,
        stale=stale,
        badge=badge,
        thumbnail_url=thumbnail,
    )


def waiting_view() -> NowPlayingView:
    """View shown when the store could not be read."""
    return NowPlayingView(title="Server running, no data")


class StateReader:
    """Polls the store and hands a :class:`NowPlayingView` to *on_view*."""

    def __init__(
        self,
        base_url: str,
        http_session: aiohttp.ClientSession,
        *,
        on_view: Callable[[NowPlayingView], None],
        interval: float = READER_POLL_INTERVAL_SECONDS,
        stale_after: float = STALE_AFTER_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}{STATE_PATH}"
        self._http = http_session
        self._on_view = on_view
        self._interval = interval
        self._stale_after = stale_after
        self._clock = clock

    async def read(self) -> SharedStateRecord:
        """Fetch and parse the current record.

        Raises
        ------
        StoreTransportError
            On network failure, non-200 or an unparseable body.
        """
        try:
            async with self._http.get(self._url, headers={"Cache-Control": "no-store"}) as resp:
                if resp.status != 200:
                    raise StoreTransportError(
                        f"HTTP {resp.status} from {STATE_PATH}",
                        status_code=resp.status,
                        endpoint=STATE_PATH,
                    )
                body = await resp.json()
        except StoreTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError, ValueError) as exc:
            raise StoreTransportError(f"Request to {STATE_PATH} failed: {exc}", endpoint=STATE_PATH) from exc

        try:
            return SharedStateRecord.model_validate(body)
        except ValidationError as exc:
            raise StoreTransportError(f"Invalid record from {STATE_PATH}", endpoint=STATE_PATH) from exc

    async def poll_once(self) -> NowPlayingView:
        try:
            record = await self.read()
        except StoreTransportError as exc:
            _logger.debug("State poll failed: %s", exc)
            view = waiting_view()
        else:
            view = build_view(record, self._clock(), self._stale_after)
        try:
            self._on_view(view)
        except Exception:
            _logger.debug("on_view callback failed", exc_info=True)
        return view

    async def run(self) -> None:
        """Poll until cancelled."""
        while True:
            await self.poll_once()
            await asyncio.sleep(self._interval)
