"""Configuration for the pynowplaying store, relay and observer."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any

from pynowplaying import _constants as c
from pynowplaying.exceptions import NowPlayingConfigError


def _env_float(env: Mapping[str, str], key: str) -> float | None:
    value = env.get(key)
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise NowPlayingConfigError(f"{key} must be a number, got {value!r}") from exc


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    value = env.get(key)
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise NowPlayingConfigError(f"{key} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class ObserverTiming:
    """Timing and lookup constants used by the observer.

    These correspond to the limits that keep the delivery channel quiet
    under ``timeupdate`` floods while still refreshing the store often
    enough for it never to go stale during playback.
    """

    selector: str = c.MEDIA_SELECTOR
    rate_limit: float = c.RATE_LIMIT_SECONDS
    paused_heartbeat: float = c.PAUSED_HEARTBEAT_SECONDS
    heartbeat_interval: float = c.HEARTBEAT_INTERVAL_SECONDS
    reacquire_interval: float = c.REACQUIRE_INTERVAL_SECONDS
    navigate_pokes: tuple[float, ...] = c.NAVIGATE_POKE_DELAYS
    popstate_pokes: tuple[float, ...] = c.POPSTATE_POKE_DELAYS
    visible_pokes: tuple[float, ...] = c.VISIBLE_POKE_DELAYS
    source: str = c.DEFAULT_SOURCE


@dataclasses.dataclass(frozen=True)
class NowPlayingConfig:
    """Server, relay and reader configuration.

    Parameters
    ----------
    host : str
        Interface the store binds to.  Defaults to loopback.
    port : int
        TCP port of the store.
    stale_after : float
        Seconds after the last accepted update at which readers treat the
        record as stale.
    max_body_bytes : int
        Upper bound for ``POST /update`` bodies.
    reader_poll_interval : float
        Seconds between two ``GET /state`` polls of a reader.
    relay_timeout : float
        Total timeout of one relay delivery attempt.
    store_url : str or None
        Base URL used by the relay and reader.  Derived from *host* and
        *port* when not set.
    observer : ObserverTiming
        Observer timing constants.
    """

    host: str = c.DEFAULT_HOST
    port: int = c.DEFAULT_PORT
    stale_after: float = c.STALE_AFTER_SECONDS
    max_body_bytes: int = c.MAX_BODY_BYTES
    reader_poll_interval: float = c.READER_POLL_INTERVAL_SECONDS
    relay_timeout: float = 5.0
    store_url: str | None = None
    observer: ObserverTiming = dataclasses.field(default_factory=ObserverTiming)

    @property
    def base_url(self) -> str:
        """Base URL of the store, without trailing slash."""
        if self.store_url:
            return self.store_url.rstrip("/")
        return f"http://{self.host}:{self.port}"

    @classmethod
    def from_env(cls, **overrides: Any) -> NowPlayingConfig:
        """Create configuration from ``NOWPLAYING_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        NowPlayingConfigError
            When a numeric variable cannot be parsed.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        host = env.get("NOWPLAYING_HOST")
        if host:
            config_kwargs["host"] = host
        store_url = env.get("NOWPLAYING_STORE_URL")
        if store_url:
            config_kwargs["store_url"] = store_url

        port = _env_int(env, "NOWPLAYING_PORT")
        if port is not None:
            config_kwargs["port"] = port
        max_body = _env_int(env, "NOWPLAYING_MAX_BODY_BYTES")
        if max_body is not None:
            config_kwargs["max_body_bytes"] = max_body

        _ENV_FLOAT_MAP = {
            "NOWPLAYING_STALE_AFTER": "stale_after",
            "NOWPLAYING_POLL_INTERVAL": "reader_poll_interval",
            "NOWPLAYING_RELAY_TIMEOUT": "relay_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = _env_float(env, env_key)
            if val is not None:
                config_kwargs[field_name] = val

        selector = env.get("NOWPLAYING_SELECTOR")
        if selector and "observer" not in overrides:
            config_kwargs["observer"] = ObserverTiming(selector=selector)

        config_kwargs.update(overrides)

        config = cls(**config_kwargs)
        if not 0 < config.port < 65536:
            raise NowPlayingConfigError(f"port out of range: {config.port}")
        if config.stale_after <= 0:
            raise NowPlayingConfigError("stale_after must be positive")
        return config
