"""Structural interfaces to the host page.

The observer never owns DOM nodes.  It borrows them through these
protocols, which a browser binding (or a test double) implements.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from typing import Protocol

Listener = Callable[[], None]


class MediaEvent(StrEnum):
    PROGRESS = "timeupdate"
    PLAY = "play"
    PAUSE = "pause"
    SEEK_START = "seeking"
    SEEK_END = "seeked"
    END = "ended"
    METADATA_READY = "loadedmetadata"


class PageSignal(StrEnum):
    NAVIGATE_FINISH = "navigate-finish"
    """The single-page app finished a route change."""
    POPSTATE = "popstate"
    """Browser back/forward."""
    VISIBILITY_CHANGE = "visibilitychange"


class MediaElement(Protocol):
    """A live media element (e.g. ``<video>``).

    Implementations must be weak-referenceable.  Listener methods may raise
    if the element has already been detached from the document.
    """

    @property
    def duration(self) -> float: ...

    @property
    def current_time(self) -> float: ...

    @property
    def paused(self) -> bool: ...

    @property
    def ended(self) -> bool: ...

    def add_event_listener(self, event: str, listener: Listener) -> None: ...

    def remove_event_listener(self, event: str, listener: Listener) -> None: ...


class MutationWatcher(Protocol):
    def disconnect(self) -> None: ...


class PageContext(Protocol):
    """The document hosting the media element."""

    @property
    def hidden(self) -> bool: ...

    @property
    def location_href(self) -> str: ...

    @property
    def document_title(self) -> str: ...

    def query_selector(self, selector: str) -> MediaElement | None:
        """First element matching *selector*, or ``None``.

        Repeated queries must return the same object for the same DOM node,
        and the binding must keep that object alive for as long as the node
        is attached.  The observer compares elements by identity and holds
        them only weakly, so a fresh proxy per query reads as a new element
        on every call.
        """
        ...

    def query_text(self, selector: str) -> str | None:
        """Text content of the first element matching *selector*."""
        ...

    def query_attribute(self, selector: str, attribute: str) -> str | None: ...

    def add_event_listener(self, signal: str, listener: Listener) -> None: ...

    def remove_event_listener(self, signal: str, listener: Listener) -> None: ...

    def observe_mutations(self, callback: Listener) -> MutationWatcher:
        """Call *callback* whenever the document subtree changes."""
        ...
