"""Best-effort page metadata extraction.

Scrapes title, channel, media id and thumbnail from a YouTube watch page.
Every field may come back empty; the observer never waits for them.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

from pynowplaying.observer.dom import PageContext

_logger = logging.getLogger(__name__)

_TITLE_SELECTOR = "h1.ytd-watch-metadata yt-formatted-string"
_CHANNEL_SELECTOR = "#channel-name #text a"
_CANONICAL_SELECTOR = 'link[rel="canonical"]'
_OG_IMAGE_SELECTOR = 'meta[property="og:image"]'

_TITLE_SUFFIX = re.compile(r"\s*-\s*YouTube\s*$", re.IGNORECASE)
_PATH_ID = re.compile(r"^/(?:shorts|embed)/([a-zA-Z0-9_-]{6,})")
_SHORTS_ID = re.compile(r"^/shorts/([a-zA-Z0-9_-]{6,})")


@dataclass(frozen=True)
class PageMetadata:
    title: str = ""
    channel: str = ""
    url: str = ""
    media_id: str = ""
    thumbnail_url: str = ""


MetadataExtractor = Callable[[PageContext], PageMetadata]


def _text(value: str | None) -> str:
    return value.strip() if value else ""


def _query_v(url: str) -> str:
    values = parse_qs(urlsplit(url).query).get("v")
    return values[0] if values else ""


def parse_media_id(url: str, canonical: str | None = None) -> str:
    """Extract the video id from a watch, shorts or embed URL.

    Falls back to the canonical link, which YouTube keeps current for
    some page types where the location does not carry the id.
    """
    if url:
        media_id = _query_v(url)
        if media_id:
            return media_id
        match = _PATH_ID.match(urlsplit(url).path)
        if match:
            return match.group(1)

    if canonical:
        media_id = _query_v(canonical)
        if media_id:
            return media_id
        match = _SHORTS_ID.match(urlsplit(canonical).path)
        if match:
            return match.group(1)
    return ""


def _title(page: PageContext) -> str:
    heading = _text(page.query_text(_TITLE_SELECTOR))
    if heading:
        return heading
    return _TITLE_SUFFIX.sub("", page.document_title or "").strip()


def _thumbnail(page: PageContext, media_id: str) -> str:
    if media_id:
        # hqdefault always exists; maxresdefault does not.
        return f"https://i.ytimg.com/vi/{media_id}/hqdefault.jpg"
    # og:image can lag behind in-app navigation.
    og_image = _text(page.query_attribute(_OG_IMAGE_SELECTOR, "content"))
    if og_image.startswith("http"):
        return og_image
    return ""


def extract_page_metadata(page: PageContext) -> PageMetadata:
    """Scrape playback metadata from *page*.  Never raises."""
    try:
        url = page.location_href or ""
        media_id = parse_media_id(url, page.query_attribute(_CANONICAL_SELECTOR, "href"))
        return PageMetadata(
            title=_title(page),
            channel=_text(page.query_text(_CHANNEL_SELECTOR)),
            url=url,
            media_id=media_id,
            thumbnail_url=_thumbnail(page, media_id),
        )
    except Exception:
        _logger.debug("Metadata extraction failed", exc_info=True)
        return PageMetadata()
