"""Custom exception hierarchy for pynowplaying."""

from __future__ import annotations


class NowPlayingError(Exception):
    """Base exception for all pynowplaying errors."""


class NowPlayingConfigError(NowPlayingError):
    """Invalid or missing configuration."""


class InvalidPayloadError(NowPlayingError):
    """Ingest payload is not a JSON object."""


class StoreTransportError(NowPlayingError):
    """HTTP-level failure talking to the state store (network, non-2xx)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ChannelClosedError(NowPlayingError):
    """The delivery channel is gone.

    Raised synchronously by :meth:`pynowplaying.relay.Relay.send` once the
    relay has been closed.  The observer treats this as terminal and stops
    transmitting for the rest of its session.
    """
