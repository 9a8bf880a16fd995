"""Page observer.

Hooks the page's media element through the :mod:`pynowplaying.observer.dom`
protocols, re-acquires it whenever the single-page app swaps it out, and
decides which playback changes are worth sending to the relay.
"""

from pynowplaying.observer.detector import Observer
from pynowplaying.observer.dom import MediaElement, MediaEvent, MutationWatcher, PageContext, PageSignal
from pynowplaying.observer.metadata import PageMetadata, extract_page_metadata
from pynowplaying.observer.session import ObserverSession, ObserverState

__all__ = [
    "MediaElement",
    "MediaEvent",
    "MutationWatcher",
    "Observer",
    "ObserverSession",
    "ObserverState",
    "PageContext",
    "PageMetadata",
    "PageSignal",
    "extract_page_metadata",
]
