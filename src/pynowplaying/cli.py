"""Command line entry point.

``pynowplaying serve`` runs the state store and overlay page.
``pynowplaying watch`` polls a running store and prints each change.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from collections.abc import Sequence
from typing import Any

import aiohttp

from pynowplaying.config import NowPlayingConfig
from pynowplaying.exceptions import NowPlayingConfigError
from pynowplaying.reader import NowPlayingView, StateReader
from pynowplaying.server import run_server


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pynowplaying", description="Browser now-playing relay and overlay.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the state store and overlay page")
    serve.add_argument("--host", default=None, help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=None, help="TCP port (default: 27123)")

    watch = sub.add_parser("watch", help="Poll a running store and print state changes")
    watch.add_argument("--url", default=None, help="Store base URL (default: derived from host/port)")
    watch.add_argument("--interval", type=float, default=None, help="Poll interval in seconds")
    return parser


def _config_from_args(args: argparse.Namespace) -> NowPlayingConfig:
    overrides: dict[str, Any] = {}
    if getattr(args, "host", None):
        overrides["host"] = args.host
    if getattr(args, "port", None) is not None:
        overrides["port"] = args.port
    if getattr(args, "url", None):
        overrides["store_url"] = args.url
    if getattr(args, "interval", None) is not None:
        overrides["reader_poll_interval"] = args.interval
    return NowPlayingConfig.from_env(**overrides)


def _print_view(view: NowPlayingView) -> None:
    parts = [f"[{view.badge}]", view.title]
    if view.channel:
        parts.append(f"- {view.channel}")
    if view.time_text:
        parts.append(f"({view.time_text})")
    print(" ".join(parts), flush=True)


async def _watch(config: NowPlayingConfig) -> None:
    last: NowPlayingView | None = None

    def on_view(view: NowPlayingView) -> None:
        nonlocal last
        if view != last:
            _print_view(view)
            last = view

    async with aiohttp.ClientSession() as session:
        reader = StateReader(
            config.base_url,
            session,
            on_view=on_view,
            interval=config.reader_poll_interval,
            stale_after=config.stale_after,
        )
        await reader.run()


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = _config_from_args(args)
    except NowPlayingConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    coro = run_server(config) if args.command == "serve" else _watch(config)
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(coro)
    return 0
