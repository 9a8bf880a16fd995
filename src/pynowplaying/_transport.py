"""HTTP transport from the relay to the state store."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pynowplaying._constants import UPDATE_PATH
from pynowplaying.exceptions import StoreTransportError

_logger = logging.getLogger(__name__)


class StoreTransport(Protocol):
    """Structural transport interface used by the relay.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpStoreTransport`) concrete.
    """

    async def post_update(self, payload: Mapping[str, Any]) -> None:
        ...


class HttpStoreTransport:
    """POSTs snapshot payloads to the store's ingest endpoint."""

    def __init__(
        self,
        base_url: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 5.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def post_update(self, payload: Mapping[str, Any]) -> None:
        """Send one payload.  The response body is ignored."""
        url = f"{self._base_url}{UPDATE_PATH}"
        _logger.debug("POST %s", url)
        try:
            async with self._http.post(url, json=dict(payload), timeout=self._timeout) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise StoreTransportError(
                        f"HTTP {resp.status} from {UPDATE_PATH}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=UPDATE_PATH,
                    )
        except StoreTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise StoreTransportError(
                f"Request to {UPDATE_PATH} failed: {exc}",
                endpoint=UPDATE_PATH,
            ) from exc
