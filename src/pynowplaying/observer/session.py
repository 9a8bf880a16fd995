"""Observer session state."""

from __future__ import annotations

import math
import weakref
from dataclasses import dataclass
from enum import StrEnum

from pynowplaying.observer.dom import MediaElement


class ObserverState(StrEnum):
    UNHOOKED = "unhooked"
    HOOKED = "hooked"
    KILLED = "killed"


@dataclass(slots=True)
class ObserverSession:
    """Mutable per-page-load state of an :class:`~pynowplaying.observer.Observer`.

    The hooked element is held through a weak reference: the page owns it,
    and once the page drops it the session simply reads as unhooked.
    ``killed`` is a one-way flag; nothing resets it.
    """

    # Liveness comes from the binding; see PageContext.query_selector.
    hooked_ref: weakref.ReferenceType[MediaElement] | None = None
    last_key: str = ""
    last_pos: int = -1
    last_sent_at: float | None = None
    killed: bool = False

    @property
    def hooked_element(self) -> MediaElement | None:
        if self.hooked_ref is None:
            return None
        return self.hooked_ref()

    @hooked_element.setter
    def hooked_element(self, element: MediaElement | None) -> None:
        self.hooked_ref = weakref.ref(element) if element is not None else None

    @property
    def state(self) -> ObserverState:
        if self.killed:
            return ObserverState.KILLED
        if self.hooked_element is not None:
            return ObserverState.HOOKED
        return ObserverState.UNHOOKED

    def record_send(self, key: str, position: float, now: float) -> None:
        self.last_key = key
        self.last_pos = math.floor(position)
        self.last_sent_at = now
