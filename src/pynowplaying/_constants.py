"""Internal constants shared across the library."""

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 27123

MESSAGE_TYPE_PLAYBACK_UPDATE = "PLAYBACK_UPDATE"
DEFAULT_SOURCE = "youtube"

UPDATE_PATH = "/update"
STATE_PATH = "/state"
LEGACY_STATE_PATH = "/nowplaying"

# Ingest bodies above this size are rejected by the HTTP layer.
MAX_BODY_BYTES = 100 * 1024

STALE_AFTER_SECONDS = 15.0
READER_POLL_INTERVAL_SECONDS = 0.25

# ------------------------------------------------------------------
# Observer timing
# ------------------------------------------------------------------

MEDIA_SELECTOR = "video"
RATE_LIMIT_SECONDS = 0.350
PAUSED_HEARTBEAT_SECONDS = 1.5
HEARTBEAT_INTERVAL_SECONDS = 0.75
REACQUIRE_INTERVAL_SECONDS = 3.0

# The SPA fills in title/thumbnail a little after the route change, so a
# navigation is followed by several forced re-acquisitions.
NAVIGATE_POKE_DELAYS: tuple[float, ...] = (0.2, 0.9, 1.8)
POPSTATE_POKE_DELAYS: tuple[float, ...] = (0.25,)
VISIBLE_POKE_DELAYS: tuple[float, ...] = (0.15,)
