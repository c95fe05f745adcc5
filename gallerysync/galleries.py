import json
from pathlib import Path
from typing import List, Optional

import requests
from loguru import logger

from gallerysync.config import GALLERIES_FILE, REQUEST_TIMEOUT
from gallerysync.errors import DuplicateGallery, GalleryConfigError, InvalidGalleryUrl
from gallerysync.http import build_session
from gallerysync.models import GalleryEntry

SHARE_MARKER = "lightroom.adobe.com/shares/"
SHORT_LINK_MARKER = "adobe.ly/"


def load_galleries(path: Path = GALLERIES_FILE) -> List[GalleryEntry]:
    """
    Load the configured gallery list. Return empty if the file doesn't exist.
    """
    path = Path(path)
    if not path.exists():
        return []
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise GalleryConfigError(f"{path} must contain a JSON list")
    return [GalleryEntry.from_dict(item) for item in data]


def save_galleries(entries: List[GalleryEntry], path: Path = GALLERIES_FILE):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([e.to_dict() for e in entries], f, indent=2)


def resolve_short_url(url: str, session: Optional[requests.Session] = None) -> str:
    """
    Follow an adobe.ly short link one hop to the share URL it points at.
    Anything else is returned unchanged.
    """
    if SHORT_LINK_MARKER not in url:
        return url
    session = session or build_session()
    try:
        resp = session.head(url, allow_redirects=False, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        logger.error(f"Failed to resolve short URL {url}: {e}")
        return url
    location = resp.headers.get("Location", "")
    if SHARE_MARKER in location:
        return location
    return url


def add_gallery(
    url: Optional[str] = None,
    album_id: Optional[str] = None,
    album_name: Optional[str] = None,
    tag: Optional[str] = None,
    featured: bool = False,
    path: Path = GALLERIES_FILE,
    session: Optional[requests.Session] = None,
) -> GalleryEntry:
    """
    Add a public share URL or a private catalog album to the configuration.
    Marking a gallery featured un-features every other gallery.
    """
    entries = load_galleries(path)

    if album_id:
        if any(e.album_id == album_id for e in entries):
            raise DuplicateGallery(f"Album already added: {album_id}")
        entry = GalleryEntry(album_id=album_id, album_name=album_name, type="private", tag=tag, featured=featured)
    else:
        if not url:
            raise InvalidGalleryUrl("URL is required")
        if SHARE_MARKER not in url and SHORT_LINK_MARKER not in url:
            raise InvalidGalleryUrl(f"Invalid Lightroom share URL: {url}")
        url = resolve_short_url(url, session)
        if SHARE_MARKER not in url:
            raise InvalidGalleryUrl("Could not resolve short URL to a valid Lightroom gallery")
        if any(e.url == url for e in entries):
            raise DuplicateGallery(f"Gallery already exists: {url}")
        entry = GalleryEntry(url=url, type="public", tag=tag, featured=featured)

    if featured:
        for existing in entries:
            existing.featured = False

    entries.append(entry)
    save_galleries(entries, path)
    logger.info(f"Added gallery {entry.display_name}")
    return entry


def remove_gallery(key: str, path: Path = GALLERIES_FILE) -> Optional[GalleryEntry]:
    """
    Remove the gallery whose URL or album id equals `key`. Returns the removed entry.
    """
    entries = load_galleries(path)
    for i, entry in enumerate(entries):
        if key in (entry.url, entry.album_id):
            del entries[i]
            save_galleries(entries, path)
            logger.info(f"Removed gallery {entry.display_name}")
            return entry
    return None
