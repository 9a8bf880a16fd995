"""aiohttp application exposing the state store.

Routes:

* ``POST /update``: merge a (partial) snapshot into the record
* ``GET /state`` (and the legacy ``GET /nowplaying``): the full record
* ``GET /``: the overlay page, which polls ``/state``

Every response allows any origin: callers are extension background pages
and kiosk browsers, not pages with a fixed origin.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable

from aiohttp import web

from pynowplaying._constants import LEGACY_STATE_PATH, STATE_PATH, UPDATE_PATH
from pynowplaying._overlay import render_overlay_html
from pynowplaying._redact import summarize_for_log
from pynowplaying.config import NowPlayingConfig
from pynowplaying.exceptions import InvalidPayloadError
from pynowplaying.ingestion.patch import ingest_payload
from pynowplaying.state.store import StateStore

_logger = logging.getLogger(__name__)

STORE_KEY = web.AppKey("store", StateStore)
CONFIG_KEY = web.AppKey("config", NowPlayingConfig)

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        return web.Response(status=200, headers=CORS_HEADERS)
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


def _bad_request(message: str) -> web.Response:
    return web.json_response({"ok": False, "error": message}, status=400)


async def handle_update(request: web.Request) -> web.Response:
    # Bodies above client_max_size raise HTTPRequestEntityTooLarge here.
    body = await request.read()
    if body.strip():
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError, RecursionError):
            _logger.debug("Rejected non-JSON update body")
            return _bad_request("body is not valid JSON")
    else:
        payload = {}

    store = request.app[STORE_KEY]
    try:
        ingest_payload(store.apply, payload)
    except InvalidPayloadError as exc:
        _logger.debug("Rejected update %s: %s", summarize_for_log(payload), exc)
        return _bad_request(str(exc))
    return web.json_response({"ok": True})


async def handle_state(request: web.Request) -> web.Response:
    record = request.app[STORE_KEY].get()
    return web.json_response(record.model_dump(mode="json", by_alias=True))


async def handle_index(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    html = render_overlay_html(
        poll_interval=config.reader_poll_interval,
        stale_after=config.stale_after,
    )
    return web.Response(text=html, content_type="text/html", charset="utf-8")


def create_app(config: NowPlayingConfig | None = None, *, store: StateStore | None = None) -> web.Application:
    """Build the store application."""
    config = config or NowPlayingConfig()
    app = web.Application(
        client_max_size=config.max_body_bytes,
        middlewares=[cors_middleware],
    )
    app[CONFIG_KEY] = config
    app[STORE_KEY] = store or StateStore()
    app.add_routes(
        [
            web.post(UPDATE_PATH, handle_update),
            web.get(STATE_PATH, handle_state),
            web.get(LEGACY_STATE_PATH, handle_state),
            web.get("/", handle_index),
        ]
    )
    return app


async def run_server(config: NowPlayingConfig) -> None:
    """Serve until cancelled."""
    app = create_app(config)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=config.host, port=config.port)
    await site.start()
    _logger.info("Now playing server: http://%s:%d/", config.host, config.port)
    try:
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
