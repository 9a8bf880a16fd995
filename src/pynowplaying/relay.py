"""Best-effort relay from the observer to the state store.

Each snapshot gets exactly one delivery attempt.  Failures are dropped:
a newer snapshot is at most one heartbeat away, and replaying an old one
after the fact would only move the display backwards.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import aiohttp

from pynowplaying._redact import summarize_for_log
from pynowplaying._transport import HttpStoreTransport, StoreTransport
from pynowplaying.config import NowPlayingConfig
from pynowplaying.exceptions import ChannelClosedError, StoreTransportError
from pynowplaying.models.message import RelayMessage

_logger = logging.getLogger(__name__)


class Channel(Protocol):
    """Delivery primitive used by the observer.

    ``send`` must return immediately.  Raising means the channel is gone
    for good.
    """

    def send(self, message: RelayMessage) -> None: ...


class Relay:
    """Stateless forwarder implementing :class:`Channel`.

    Usage::

        async with Relay.from_config(config) as relay:
            Observer(page, relay).start()
    """

    def __init__(
        self,
        transport: StoreTransport,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        http_session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._transport = transport
        self._loop = loop
        self._owned_session = http_session
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @classmethod
    def from_config(cls, config: NowPlayingConfig) -> Relay:
        """Relay posting to ``config.base_url`` over its own HTTP session.

        Must be called from a running event loop.
        """
        session = aiohttp.ClientSession()
        transport = HttpStoreTransport(config.base_url, session, timeout=config.relay_timeout)
        return cls(transport, http_session=session)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._tasks)

    async def __aenter__(self) -> Relay:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    def send(self, message: RelayMessage) -> None:
        """Schedule one delivery attempt for *message*.

        Raises
        ------
        ChannelClosedError
            If the relay has been closed.
        """
        if self._closed:
            raise ChannelClosedError("relay is closed")
        if not isinstance(message, RelayMessage):
            _logger.debug("Ignoring non-playback message %r", summarize_for_log(message))
            return
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._deliver(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, message: RelayMessage) -> None:
        payload = message.payload.to_wire()
        try:
            await self._transport.post_update(payload)
        except StoreTransportError as exc:
            # Store might be down; the next snapshot supersedes this one.
            _logger.debug("Dropped snapshot: %s", exc)
        except Exception:
            _logger.debug("Dropped snapshot after unexpected delivery failure", exc_info=True)

    def close(self) -> None:
        """Refuse further messages and cancel in-flight deliveries."""
        self._closed = True
        for task in list(self._tasks):
            task.cancel()

    async def aclose(self) -> None:
        self.close()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._owned_session is not None:
            await self._owned_session.close()
            self._owned_session = None
