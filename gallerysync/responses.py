"""
Parsing of raw Lightroom responses: the JSON anti-script prefix and the
share page HTML. Everything here is pure and works on strings.
"""

from __future__ import annotations

import html
import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from gallerysync.errors import ResolutionError

UNTITLED_ALBUM = "Untitled Album"
TITLE_SUFFIX = " | Adobe Lightroom"

_ANTI_SCRIPT_PREFIX = re.compile(r"^\s*while\s*\(\s*1\s*\)\s*\{\s*\}")
_ALBUM_ATTR = re.compile(r'albumAttributes:\s*\{"id":"([a-f0-9]{32})"')
_ALBUM_ASSETS_URL = re.compile(r"albums/([a-f0-9]{32})/assets")
_ALBUM_NAME = re.compile(r'"name":"((?:[^"\\]|\\.)+)"')
_TITLE_TAG = re.compile(r"<title>([^<]+)</title>", re.IGNORECASE)
_SPACE_ID = re.compile(r"shares/([a-zA-Z0-9]+)")
_GALLERY_ID = re.compile(r"lightroom\.adobe\.com/shares/([a-zA-Z0-9]+)")


@dataclass
class SharePage:
    space_id: str
    album_id: Optional[str]
    title: str


def parse_vendor_response(raw: str | bytes) -> Any:
    """
    Strip the ``while (1) {}`` prefix Lightroom puts in front of JSON bodies
    and decode what is left.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    text = _ANTI_SCRIPT_PREFIX.sub("", raw, count=1).strip()
    if not text:
        raise ResolutionError("Empty response body")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ResolutionError(f"Unparsable response: {e}") from e


def extract_space_id(url: str) -> Optional[str]:
    match = _SPACE_ID.search(url)
    return match.group(1) if match else None


def extract_gallery_id(url: str) -> Optional[str]:
    """Share id of a full lightroom.adobe.com share URL."""
    match = _GALLERY_ID.search(url)
    return match.group(1) if match else None


def parse_share_page(page_html: str, share_url: str) -> SharePage:
    """
    Pull the space id, album id and album title out of a share page.

    The album id is taken from the inline ``albumAttributes`` object or, failing
    that, from an ``albums/<id>/assets`` URL. The title comes from the first
    ``"name"`` attribute, then the ``<title>`` element.
    """
    space_id = extract_space_id(share_url)
    if not space_id:
        raise ResolutionError(f"Could not extract space ID from URL: {share_url}")

    album_id = None
    match = _ALBUM_ATTR.search(page_html) or _ALBUM_ASSETS_URL.search(page_html)
    if match:
        album_id = match.group(1)

    title = UNTITLED_ALBUM
    name_match = _ALBUM_NAME.search(page_html)
    if name_match:
        title = _unescape_json_string(name_match.group(1))
    else:
        title_match = _TITLE_TAG.search(page_html)
        if title_match:
            title = html.unescape(title_match.group(1)).replace(TITLE_SUFFIX, "").strip() or UNTITLED_ALBUM

    return SharePage(space_id=space_id, album_id=album_id, title=title)


def _unescape_json_string(value: str) -> str:
    try:
        return json.loads(f'"{value}"')
    except json.JSONDecodeError:
        return value
