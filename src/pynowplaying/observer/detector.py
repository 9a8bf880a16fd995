"""Media element detector and playback change observer."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from pynowplaying._redact import summarize_for_log
from pynowplaying.config import ObserverTiming
from pynowplaying.models.message import RelayMessage
from pynowplaying.models.snapshot import PlaybackSnapshot
from pynowplaying.observer.dom import MediaElement, MediaEvent, MutationWatcher, PageContext, PageSignal
from pynowplaying.observer.metadata import MetadataExtractor, extract_page_metadata
from pynowplaying.observer.policy import is_rate_limited, should_transmit
from pynowplaying.observer.session import ObserverSession, ObserverState
from pynowplaying.relay import Channel

_logger = logging.getLogger(__name__)


class Observer:
    """Keeps a single hook on the page's media element and reports playback.

    Usage::

        observer = Observer(page, relay)
        observer.start()

    Four triggers feed one idempotent :meth:`reacquire`: the initial
    setup, navigation signals, document mutations and a slow polling
    timer.  Media events and a fast heartbeat evaluate the hooked element
    and send whatever :func:`~pynowplaying.observer.policy.should_transmit`
    lets through.

    All callbacks run on one event loop, so the session needs no locking.
    A synchronous failure of ``channel.send`` kills the observer for good.
    """

    def __init__(
        self,
        page: PageContext,
        channel: Channel,
        *,
        timing: ObserverTiming | None = None,
        extract_metadata: MetadataExtractor = extract_page_metadata,
        clock: Callable[[], float] = time.monotonic,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._page = page
        self._channel = channel
        self._timing = timing or ObserverTiming()
        self._extract_metadata = extract_metadata
        self._clock = clock
        self._loop = loop
        self._session = ObserverSession()
        self._started = False

        self._watcher: MutationWatcher | None = None
        self._heartbeat_timer: asyncio.TimerHandle | None = None
        self._reacquire_timer: asyncio.TimerHandle | None = None
        self._pokes: set[asyncio.TimerHandle] = set()

        # Stable callables so remove_event_listener sees the same objects.
        self._media_listener = self._on_media_event
        self._page_listeners: dict[PageSignal, Callable[[], None]] = {
            PageSignal.NAVIGATE_FINISH: self._on_navigate_finish,
            PageSignal.POPSTATE: self._on_popstate,
            PageSignal.VISIBILITY_CHANGE: self._on_visibility_change,
        }

    @property
    def session(self) -> ObserverSession:
        return self._session

    @property
    def state(self) -> ObserverState:
        return self._session.state

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Install page hooks and timers, then hook the current element."""
        if self._started or self._session.killed:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._started = True

        for signal, listener in self._page_listeners.items():
            self._guard(self._page.add_event_listener, signal.value, listener)
        try:
            self._watcher = self._page.observe_mutations(self._on_mutation)
        except Exception:
            _logger.debug("Could not start mutation watcher", exc_info=True)

        self._schedule_heartbeat()
        self._schedule_reacquire()
        self.reacquire(force=True)

    def stop(self) -> None:
        """Remove every hook and cancel every timer."""
        self._started = False
        for handle in (self._heartbeat_timer, self._reacquire_timer, *self._pokes):
            if handle is not None:
                handle.cancel()
        self._heartbeat_timer = None
        self._reacquire_timer = None
        self._pokes.clear()

        self._unhook()

        watcher = self._watcher
        self._watcher = None
        if watcher is not None:
            self._guard(watcher.disconnect)
        for signal, listener in self._page_listeners.items():
            self._guard(self._page.remove_event_listener, signal.value, listener)

    def _kill(self) -> None:
        if self._session.killed:
            return
        self._session.killed = True
        _logger.info("Delivery channel gone; observer stopped permanently")
        self.stop()

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    def reacquire(self, force: bool = False) -> None:
        """Locate the media element and (re)hook it if it changed.

        With *force*, a snapshot of the found element is sent even when the
        element is the one already hooked.
        """
        if self._session.killed:
            return
        try:
            element = self._page.query_selector(self._timing.selector)
        except Exception:
            _logger.debug("Media element lookup failed", exc_info=True)
            element = None

        if element is None:
            self._unhook()
            return

        if element is not self._session.hooked_element:
            self._hook(element)
        elif force:
            self._evaluate(element, force=True)

    def _hook(self, element: MediaElement) -> None:
        self._unhook()
        self._session.hooked_element = element
        for event in MediaEvent:
            try:
                element.add_event_listener(event.value, self._media_listener)
            except Exception:
                _logger.debug("Could not attach %s listener", event.value, exc_info=True)
        _logger.debug("Hooked media element %r", element)
        self._evaluate(element, force=True)

    def _unhook(self) -> None:
        element = self._session.hooked_element
        self._session.hooked_element = None
        if element is None:
            return
        # The old element may already be detached from the document.
        for event in MediaEvent:
            try:
                element.remove_event_listener(event.value, self._media_listener)
            except Exception:
                _logger.debug("Could not detach %s listener", event.value, exc_info=True)

    # ------------------------------------------------------------------
    # Snapshot + transmission
    # ------------------------------------------------------------------

    def _build_snapshot(self, element: MediaElement) -> PlaybackSnapshot:
        meta = self._extract_metadata(self._page)
        return PlaybackSnapshot(
            source=self._timing.source,
            title=meta.title,
            channel=meta.channel,
            url=meta.url,
            media_id=meta.media_id,
            thumbnail_url=meta.thumbnail_url,
            duration_seconds=element.duration,
            position_seconds=element.current_time,
            playing=not element.paused and not element.ended,
        )

    def _evaluate(self, element: MediaElement, force: bool = False) -> None:
        session = self._session
        if session.killed:
            return
        now = self._clock()
        # Skip the metadata scrape for events the limiter would drop anyway.
        if not force and is_rate_limited(session, now, self._timing.rate_limit):
            return
        try:
            candidate = self._build_snapshot(element)
        except Exception:
            _logger.debug("Could not read media element state", exc_info=True)
            return

        if not should_transmit(
            candidate,
            session,
            now,
            force=force,
            rate_limit=self._timing.rate_limit,
            paused_heartbeat=self._timing.paused_heartbeat,
        ):
            return

        # Optimistic: a failed delivery is not rolled back.
        session.record_send(candidate.dedup_key(), candidate.position_seconds, now)
        self._send(candidate)

    def _send(self, snapshot: PlaybackSnapshot) -> None:
        _logger.debug("Sending snapshot %s", summarize_for_log(snapshot.to_wire()))
        try:
            self._channel.send(RelayMessage(payload=snapshot))
        except Exception:
            _logger.debug("Delivery primitive failed", exc_info=True)
            self._kill()

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def _guard(self, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception:
            _logger.debug("Observer callback %s failed", getattr(fn, "__name__", fn), exc_info=True)

    def _on_media_event(self) -> None:
        element = self._session.hooked_element
        if element is not None:
            self._guard(self._evaluate, element, False)

    def _on_mutation(self) -> None:
        self._guard(self.reacquire, False)

    def _on_navigate_finish(self) -> None:
        self._poke(self._timing.navigate_pokes)

    def _on_popstate(self) -> None:
        self._poke(self._timing.popstate_pokes)

    def _on_visibility_change(self) -> None:
        try:
            hidden = self._page.hidden
        except Exception:
            _logger.debug("Could not read page visibility", exc_info=True)
            return
        if not hidden:
            self._poke(self._timing.visible_pokes)

    def _poke(self, delays: tuple[float, ...]) -> None:
        """Schedule forced re-acquisitions after each delay."""
        if self._session.killed or self._loop is None:
            return
        for delay in delays:
            holder: list[asyncio.TimerHandle] = []
            handle = self._loop.call_later(delay, self._on_poke, holder)
            holder.append(handle)
            self._pokes.add(handle)

    def _on_poke(self, holder: list[asyncio.TimerHandle]) -> None:
        for handle in holder:
            self._pokes.discard(handle)
        self._guard(self.reacquire, True)

    def _schedule_heartbeat(self) -> None:
        assert self._loop is not None  # noqa: S101
        self._heartbeat_timer = self._loop.call_later(self._timing.heartbeat_interval, self._on_heartbeat)

    def _schedule_reacquire(self) -> None:
        assert self._loop is not None  # noqa: S101
        self._reacquire_timer = self._loop.call_later(self._timing.reacquire_interval, self._on_reacquire_tick)

    def _on_heartbeat(self) -> None:
        self._heartbeat_timer = None
        element = self._session.hooked_element
        if element is not None:
            self._guard(self._evaluate, element, False)
        if self._started and not self._session.killed:
            self._schedule_heartbeat()

    def _on_reacquire_tick(self) -> None:
        self._reacquire_timer = None
        self._guard(self.reacquire, False)
        if self._started and not self._session.killed:
            self._schedule_reacquire()
