"""pynowplaying - Keep a now-playing overlay in sync with a browser video tab."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pynowplaying")
except PackageNotFoundError:
    __version__ = "0+local"

from pynowplaying.config import NowPlayingConfig, ObserverTiming
from pynowplaying.exceptions import (
    ChannelClosedError,
    InvalidPayloadError,
    NowPlayingConfigError,
    NowPlayingError,
    StoreTransportError,
)
from pynowplaying.models import PlaybackSnapshot, RelayMessage, SharedStateRecord, SnapshotPatch
from pynowplaying.observer import Observer, ObserverSession, ObserverState
from pynowplaying.reader import NowPlayingView, StateReader, build_view
from pynowplaying.relay import Channel, Relay
from pynowplaying.server import create_app, run_server
from pynowplaying.state.store import StateStore

__all__ = [
    "__version__",
    "Channel",
    "ChannelClosedError",
    "InvalidPayloadError",
    "NowPlayingConfig",
    "NowPlayingConfigError",
    "NowPlayingError",
    "NowPlayingView",
    "Observer",
    "ObserverSession",
    "ObserverState",
    "ObserverTiming",
    "PlaybackSnapshot",
    "Relay",
    "RelayMessage",
    "SharedStateRecord",
    "SnapshotPatch",
    "StateReader",
    "StateStore",
    "StoreTransportError",
    "build_view",
    "create_app",
    "run_server",
]
