from __future__ import annotations

import gc
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from pynowplaying.config import ObserverTiming
from pynowplaying.exceptions import ChannelClosedError
from pynowplaying.models.message import RelayMessage
from pynowplaying.observer import MediaEvent, Observer, ObserverState, PageMetadata, PageSignal

# ------------------------------------------------------------------
# Fakes
# ------------------------------------------------------------------


@dataclass
class FakeClock:
    now: float = 1000.0

    def __call__(self) -> float:
        return self.now


@dataclass(eq=False)
class _FakeHandle:
    when: float
    callback: Callable[..., None]
    args: tuple[Any, ...]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeLoop:
    """Just enough of an event loop for ``call_later`` driven by a fake clock."""

    clock: FakeClock
    handles: list[_FakeHandle] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[..., None], *args: Any) -> _FakeHandle:
        handle = _FakeHandle(self.clock.now + delay, callback, args)
        self.handles.append(handle)
        return handle

    def advance(self, seconds: float) -> None:
        target = self.clock.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.handles.remove(handle)
            self.clock.now = max(self.clock.now, handle.when)
            handle.callback(*handle.args)
        self.clock.now = target

    @property
    def pending(self) -> int:
        return sum(1 for h in self.handles if not h.cancelled)


class FakeElement:
    def __init__(self, *, duration: float = 120.0, current_time: float = 0.0, paused: bool = True) -> None:
        self.duration = duration
        self.current_time = current_time
        self.paused = paused
        self.ended = False
        self.detached = False
        self.listeners: dict[str, list[Callable[[], None]]] = {}

    def add_event_listener(self, event: str, listener: Callable[[], None]) -> None:
        self.listeners.setdefault(event, []).append(listener)

    def remove_event_listener(self, event: str, listener: Callable[[], None]) -> None:
        if self.detached:
            raise RuntimeError("element is detached")
        self.listeners.get(event, []).remove(listener)

    def listener_count(self) -> int:
        return sum(len(v) for v in self.listeners.values())

    def fire(self, event: MediaEvent | str = MediaEvent.PROGRESS) -> None:
        for listener in list(self.listeners.get(str(event), [])):
            listener()


class FakeWatcher:
    def __init__(self, callback: Callable[[], None]) -> None:
        self.callback = callback
        self.connected = True

    def disconnect(self) -> None:
        self.connected = False


class FakePage:
    def __init__(self, element: FakeElement | None = None) -> None:
        self.element = element
        self.hidden = False
        self.location_href = "https://www.youtube.com/watch?v=abcdefghijk"
        self.document_title = "Some video - YouTube"
        self.listeners: dict[str, list[Callable[[], None]]] = {}
        self.watchers: list[FakeWatcher] = []

    def query_selector(self, selector: str) -> FakeElement | None:
        return self.element if selector == "video" else None

    def query_text(self, selector: str) -> str | None:
        return None

    def query_attribute(self, selector: str, attribute: str) -> str | None:
        return None

    def add_event_listener(self, signal: str, listener: Callable[[], None]) -> None:
        self.listeners.setdefault(signal, []).append(listener)

    def remove_event_listener(self, signal: str, listener: Callable[[], None]) -> None:
        self.listeners.get(signal, []).remove(listener)

    def observe_mutations(self, callback: Callable[[], None]) -> FakeWatcher:
        watcher = FakeWatcher(callback)
        self.watchers.append(watcher)
        return watcher

    def mutate(self) -> None:
        for watcher in self.watchers:
            if watcher.connected:
                watcher.callback()

    def dispatch(self, signal: PageSignal) -> None:
        for listener in list(self.listeners.get(signal.value, [])):
            listener()


@dataclass
class RecordingChannel:
    sent: list[RelayMessage] = field(default_factory=list)
    calls: int = 0
    fail: bool = False

    def send(self, message: RelayMessage) -> None:
        self.calls += 1
        if self.fail:
            raise ChannelClosedError("extension context invalidated")
        self.sent.append(message)

    @property
    def positions(self) -> list[float]:
        return [m.payload.position_seconds for m in self.sent]


def _metadata(page: Any) -> PageMetadata:
    return PageMetadata(title=page.document_title, url=page.location_href, media_id="abcdefghijk")


@dataclass
class Harness:
    page: FakePage
    channel: RecordingChannel
    clock: FakeClock
    loop: FakeLoop
    observer: Observer


@pytest.fixture
def harness() -> Harness:
    clock = FakeClock()
    loop = FakeLoop(clock)
    page = FakePage(FakeElement(duration=120.0, current_time=30.0, paused=False))
    channel = RecordingChannel()
    observer = Observer(
        page,
        channel,
        timing=ObserverTiming(),
        extract_metadata=_metadata,
        clock=clock,
        loop=loop,  # type: ignore[arg-type]
    )
    return Harness(page=page, channel=channel, clock=clock, loop=loop, observer=observer)


# ------------------------------------------------------------------
# End-to-end scenario
# ------------------------------------------------------------------


def test_hook_then_progress_ticks_scenario(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None

    harness.observer.start()

    assert harness.observer.state == ObserverState.HOOKED
    assert len(harness.channel.sent) == 1
    first = harness.channel.sent[0].payload
    assert first.playing is True
    assert first.position_seconds == 30
    assert first.duration_seconds == 120

    harness.clock.now += 0.4
    element.current_time = 31.0
    element.fire(MediaEvent.PROGRESS)
    assert harness.channel.positions == [30, 31]

    element.current_time = 31.2
    element.fire(MediaEvent.PROGRESS)
    assert harness.channel.positions == [30, 31]


def test_wire_message_shape(harness: Harness) -> None:
    harness.observer.start()

    message = harness.channel.sent[0]
    assert message.type == "PLAYBACK_UPDATE"
    wire = message.payload.to_wire()
    assert wire["positionSeconds"] == 30
    assert wire["durationSeconds"] == 120
    assert wire["mediaId"] == "abcdefghijk"
    assert "observedAt" not in wire


# ------------------------------------------------------------------
# Transmission policy through the observer
# ------------------------------------------------------------------


def test_events_within_rate_limit_are_dropped_even_when_key_changes(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    harness.observer.start()

    harness.clock.now += 0.1
    element.paused = True
    element.fire(MediaEvent.PAUSE)
    assert len(harness.channel.sent) == 1

    harness.clock.now += 0.3
    element.fire(MediaEvent.PAUSE)
    assert len(harness.channel.sent) == 2
    assert harness.channel.sent[-1].payload.playing is False


def test_accepted_sends_are_at_least_rate_limit_apart(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    harness.observer.start()

    send_times = [harness.clock.now]
    for _ in range(100):
        harness.clock.now += 0.05
        element.current_time += 0.3
        before = len(harness.channel.sent)
        element.fire(MediaEvent.PROGRESS)
        if len(harness.channel.sent) > before:
            send_times.append(harness.clock.now)

    gaps = [b - a for a, b in zip(send_times, send_times[1:])]
    assert gaps
    assert min(gaps) >= 0.35 - 1e-9


def test_position_change_while_playing_transmits(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    harness.observer.start()

    for second in range(31, 36):
        harness.clock.now += 1.0
        element.current_time = float(second)
        element.fire(MediaEvent.PROGRESS)

    assert harness.channel.positions == [30, 31, 32, 33, 34, 35]


def test_rate_limited_events_skip_metadata_scrape() -> None:
    scrapes: list[float] = []
    clock = FakeClock()
    loop = FakeLoop(clock)
    element = FakeElement(current_time=30.0, paused=False)
    page = FakePage(element)
    channel = RecordingChannel()

    def counting_metadata(page: Any) -> PageMetadata:
        scrapes.append(clock.now)
        return _metadata(page)

    observer = Observer(
        page, channel, extract_metadata=counting_metadata, clock=clock, loop=loop  # type: ignore[arg-type]
    )
    observer.start()
    assert len(scrapes) == 1

    for _ in range(5):
        clock.now += 0.05
        element.current_time += 0.25
        element.fire(MediaEvent.PROGRESS)
    assert len(scrapes) == 1

    clock.now += 0.2
    element.fire(MediaEvent.PROGRESS)
    assert len(scrapes) == 2
    assert len(channel.sent) == 2


def test_paused_identical_state_refreshes_at_most_every_heartbeat(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    element.paused = True
    harness.observer.start()
    assert len(harness.channel.sent) == 1

    for _ in range(29):
        harness.clock.now += 0.1
        element.fire(MediaEvent.PROGRESS)

    # 2.9 s elapsed: one paused heartbeat after the initial forced send.
    assert len(harness.channel.sent) == 2


def test_forced_reacquire_bypasses_rate_limit_and_dedup(harness: Harness) -> None:
    harness.observer.start()

    harness.clock.now += 0.01
    harness.observer.reacquire(force=True)

    assert len(harness.channel.sent) == 2
    assert harness.channel.sent[0].payload == harness.channel.sent[1].payload


def test_non_finite_element_values_are_sent_as_zero(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    element.duration = float("nan")
    element.current_time = float("inf")

    harness.observer.start()

    payload = harness.channel.sent[0].payload
    assert payload.duration_seconds == 0.0
    assert payload.position_seconds == 0.0


def test_ended_element_is_not_playing(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    element.ended = True

    harness.observer.start()

    assert harness.channel.sent[0].payload.playing is False


# ------------------------------------------------------------------
# Acquisition
# ------------------------------------------------------------------


def test_mutation_with_same_element_does_not_rehook(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    harness.observer.start()
    count = element.listener_count()

    harness.clock.now += 0.01
    harness.page.mutate()
    harness.page.mutate()

    assert element.listener_count() == count == len(MediaEvent)
    assert len(harness.channel.sent) == 1


def test_element_replacement_rehooks_and_forces_send(harness: Harness) -> None:
    old = harness.page.element
    assert old is not None
    harness.observer.start()

    new = FakeElement(duration=300.0, current_time=5.0, paused=False)
    harness.page.element = new
    harness.clock.now += 0.01
    harness.page.mutate()

    assert old.listener_count() == 0
    assert new.listener_count() == len(MediaEvent)
    assert harness.observer.session.hooked_element is new
    assert len(harness.channel.sent) == 2
    assert harness.channel.sent[-1].payload.duration_seconds == 300.0

    # Events from the old element no longer reach the observer.
    harness.clock.now += 1.0
    old.fire(MediaEvent.PLAY)
    assert len(harness.channel.sent) == 2


def test_detached_old_element_does_not_abort_rehook(harness: Harness) -> None:
    old = harness.page.element
    assert old is not None
    harness.observer.start()
    old.detached = True

    new = FakeElement(current_time=1.0, paused=False)
    harness.page.element = new
    harness.page.mutate()

    assert harness.observer.session.hooked_element is new
    assert new.listener_count() == len(MediaEvent)
    assert len(harness.channel.sent) == 2


def test_missing_element_unhooks_and_keeps_trying(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    harness.observer.start()

    harness.page.element = None
    harness.page.mutate()
    assert harness.observer.state == ObserverState.UNHOOKED
    assert element.listener_count() == 0

    harness.loop.advance(3.0)
    assert harness.observer.state == ObserverState.UNHOOKED

    harness.page.element = element
    harness.loop.advance(3.0)
    assert harness.observer.state == ObserverState.HOOKED
    assert len(harness.channel.sent) == 2


def test_reacquire_poll_catches_silent_replacement(harness: Harness) -> None:
    harness.observer.start()
    new = FakeElement(current_time=2.0, paused=False)
    harness.page.element = new

    harness.loop.advance(2.9)
    assert harness.observer.session.hooked_element is not new

    harness.loop.advance(0.2)
    assert harness.observer.session.hooked_element is new


def test_garbage_collected_element_reads_as_unhooked(harness: Harness) -> None:
    harness.observer.start()
    assert harness.observer.state == ObserverState.HOOKED

    harness.page.element = None
    gc.collect()

    assert harness.observer.session.hooked_element is None
    assert harness.observer.state == ObserverState.UNHOOKED


# ------------------------------------------------------------------
# Navigation and timers
# ------------------------------------------------------------------


def test_navigate_finish_pokes_three_forced_sends(harness: Harness) -> None:
    harness.observer.start()
    harness.page.dispatch(PageSignal.NAVIGATE_FINISH)

    harness.loop.advance(0.2)
    assert len(harness.channel.sent) == 2
    harness.loop.advance(0.7)
    assert len(harness.channel.sent) == 3
    harness.loop.advance(0.9)
    # Heartbeats in between see no new whole second and stay quiet.
    assert len(harness.channel.sent) == 4


def test_navigate_poke_is_forced_within_rate_limit() -> None:
    clock = FakeClock()
    loop = FakeLoop(clock)
    page = FakePage(FakeElement(current_time=10.0, paused=True))
    channel = RecordingChannel()
    timing = ObserverTiming(heartbeat_interval=100.0, reacquire_interval=100.0)
    observer = Observer(
        page, channel, timing=timing, extract_metadata=_metadata, clock=clock, loop=loop  # type: ignore[arg-type]
    )
    observer.start()

    page.dispatch(PageSignal.POPSTATE)
    loop.advance(0.25)

    # Identical paused state 0.25 s after the last send still goes out.
    assert len(channel.sent) == 2


def test_visibility_change_only_pokes_when_visible() -> None:
    clock = FakeClock()
    loop = FakeLoop(clock)
    page = FakePage(FakeElement(current_time=10.0, paused=True))
    channel = RecordingChannel()
    timing = ObserverTiming(heartbeat_interval=100.0, reacquire_interval=100.0)
    observer = Observer(
        page, channel, timing=timing, extract_metadata=_metadata, clock=clock, loop=loop  # type: ignore[arg-type]
    )
    observer.start()

    page.hidden = True
    page.dispatch(PageSignal.VISIBILITY_CHANGE)
    loop.advance(1.0)
    assert len(channel.sent) == 1

    page.hidden = False
    page.dispatch(PageSignal.VISIBILITY_CHANGE)
    loop.advance(0.15)
    assert len(channel.sent) == 2


def test_heartbeat_reports_progress_without_media_events(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    harness.observer.start()

    element.current_time = 31.0
    harness.loop.advance(0.75)
    element.current_time = 32.0
    harness.loop.advance(0.75)

    assert harness.channel.positions == [30, 31, 32]


def test_stop_cancels_timers_and_hooks(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    harness.observer.start()
    harness.page.dispatch(PageSignal.NAVIGATE_FINISH)

    harness.observer.stop()

    assert harness.loop.pending == 0
    assert element.listener_count() == 0
    assert not harness.page.watchers[0].connected
    assert all(not listeners for listeners in harness.page.listeners.values())
    assert harness.observer.state == ObserverState.UNHOOKED


# ------------------------------------------------------------------
# Terminal kill
# ------------------------------------------------------------------


def test_channel_failure_kills_observer_permanently(harness: Harness) -> None:
    element = harness.page.element
    assert element is not None
    harness.observer.start()
    assert harness.channel.calls == 1

    harness.channel.fail = True
    harness.clock.now += 1.0
    element.current_time = 31.0
    element.fire(MediaEvent.PROGRESS)

    assert harness.channel.calls == 2
    assert harness.observer.state == ObserverState.KILLED
    assert harness.observer.session.killed is True

    # Teardown: timers, element hooks, mutation watcher, page listeners.
    assert harness.loop.pending == 0
    assert element.listener_count() == 0
    assert not harness.page.watchers[0].connected

    harness.channel.fail = False
    for second in range(32, 60):
        harness.clock.now += 1.0
        element.current_time = float(second)
        element.fire(MediaEvent.PROGRESS)
        harness.page.mutate()
        harness.page.dispatch(PageSignal.NAVIGATE_FINISH)
        harness.observer.reacquire(force=True)
        harness.loop.advance(5.0)

    harness.observer.start()
    harness.loop.advance(5.0)

    assert harness.channel.calls == 2
    assert harness.observer.state == ObserverState.KILLED


def test_channel_failure_on_first_hook_kills(harness: Harness) -> None:
    harness.channel.fail = True

    harness.observer.start()

    assert harness.channel.calls == 1
    assert harness.observer.state == ObserverState.KILLED
    assert harness.loop.pending == 0


def test_dom_errors_are_absorbed() -> None:
    class ExplodingPage(FakePage):
        def query_selector(self, selector: str) -> FakeElement | None:
            raise RuntimeError("document is gone")

    clock = FakeClock()
    loop = FakeLoop(clock)
    page = ExplodingPage()
    channel = RecordingChannel()
    observer = Observer(page, channel, extract_metadata=_metadata, clock=clock, loop=loop)  # type: ignore[arg-type]

    observer.start()
    page.mutate()
    loop.advance(10.0)

    assert observer.state == ObserverState.UNHOOKED
    assert channel.calls == 0
