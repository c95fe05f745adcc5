"""
Resolving a configured gallery into its title, description and raw assets.

Public shares are scraped (share page, then the shares API); private albums
come straight from the authenticated catalog.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import requests
from loguru import logger

from gallerysync import lightroom_api as lr
from gallerysync.context import RunContext
from gallerysync.errors import AuthenticationUnavailable, ResolutionError
from gallerysync.metadata import adapt_private_asset, adapt_public_asset, catalog_asset_id, generate_slug
from gallerysync.models import GalleryEntry, RawAsset
from gallerysync.responses import UNTITLED_ALBUM, extract_gallery_id, parse_share_page


@dataclass
class ResolvedGallery:
    album_id: str
    title: str
    gallery_url: str
    mode: str
    assets: List[RawAsset] = field(default_factory=list)
    description: Optional[str] = None
    # (asset id, reason) for assets dropped while resolving
    skipped: List[Tuple[str, str]] = field(default_factory=list)
    # rejected by the sync tag before any asset was fetched
    filtered: bool = False


def should_sync(gallery: ResolvedGallery, entry: GalleryEntry, sync_tag: str) -> bool:
    """
    An empty tag syncs everything; otherwise the tag must appear
    (case-insensitively) in the title, description or the entry's own tag.
    """
    if gallery.filtered:
        return False
    return tag_matches(sync_tag, gallery.title, gallery.description, entry.tag)


def tag_matches(sync_tag: str, *texts: Optional[str]) -> bool:
    if not sync_tag:
        return True
    needle = sync_tag.lower()
    return any(needle in text.lower() for text in texts if text)


class GalleryResolver:
    def __init__(self, session: requests.Session):
        self.session = session

    def resolve(self, entry: GalleryEntry, context: RunContext, sync_tag: str = "") -> ResolvedGallery:
        """
        Raises ResolutionError or AuthenticationUnavailable; the caller
        decides whether to skip the gallery.

        A gallery whose title and entry tag miss `sync_tag` comes back
        `filtered` with no assets, before any asset is listed.
        """
        if entry.is_private:
            return self.resolve_private(entry, context, sync_tag)
        if entry.url:
            return self.resolve_public(entry, context, sync_tag)
        raise ResolutionError("Gallery entry has neither a URL nor an album id")

    def resolve_public(self, entry: GalleryEntry, context: RunContext, sync_tag: str = "") -> ResolvedGallery:
        logger.info(f"Fetching gallery: {entry.url}")
        page = parse_share_page(lr.fetch_share_page(self.session, entry.url), entry.url)
        logger.info(f"Space ID: {page.space_id} | Album ID: {page.album_id or 'none'} | Album: {page.title}")

        gallery = ResolvedGallery(
            album_id=extract_gallery_id(entry.url) or generate_slug(page.title),
            title=page.title,
            gallery_url=entry.url,
            mode="public",
        )
        if not tag_matches(sync_tag, page.title, entry.tag):
            gallery.filtered = True
            return gallery

        base_url, resources = lr.list_share_assets(self.session, page.space_id, page.album_id)
        logger.info(f"Found {len(resources)} assets")

        # The listing only carries ids; title, EXIF and renditions need the detail call
        for resource in resources:
            if context.cancelled:
                break
            asset_id = catalog_asset_id(resource)
            if not asset_id:
                continue
            detail = lr.get_share_asset(self.session, page.space_id, asset_id)
            if detail is None:
                gallery.skipped.append((asset_id, "asset detail unavailable"))
                continue
            asset = adapt_public_asset(detail, base_url)
            if asset is None:
                logger.info(f"No rendition URL found for asset {asset_id}")
                gallery.skipped.append((asset_id, "no rendition"))
                continue
            gallery.assets.append(asset)

        return gallery

    def resolve_private(self, entry: GalleryEntry, context: RunContext, sync_tag: str = "") -> ResolvedGallery:
        logger.info(f"Syncing private album: {entry.album_name or entry.album_id}")
        gallery = ResolvedGallery(
            album_id=entry.album_id,
            title=entry.album_name or UNTITLED_ALBUM,
            gallery_url=f"private:{entry.album_id}",
            mode="private",
        )
        if not tag_matches(sync_tag, gallery.title, entry.tag):
            gallery.filtered = True
            return gallery

        if not context.authenticated:
            raise AuthenticationUnavailable("Adobe API not authenticated - cannot sync private albums")

        catalog_id = context.ensure_catalog_id()
        resources = lr.list_album_assets(self.session, catalog_id, entry.album_id, context.auth_headers)
        logger.info(f"API returned {len(resources)} assets")
        for resource in resources:
            asset = adapt_private_asset(resource)
            if asset is None:
                gallery.skipped.append((str(resource.get("id", "?")), "malformed asset"))
                continue
            gallery.assets.append(asset)
        return gallery
