import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import requests
from loguru import logger

from gallerysync import lightroom_api as lr
from gallerysync import progress as p
from gallerysync.auth import CredentialStore
from gallerysync.config import (
    GALLERIES_FILE,
    LIGHTROOM_API,
    MANIFEST_FILE,
    OUTPUT_DIR,
    PARALLEL_MIN_REQUEST_INTERVAL,
    load_user_config,
)
from gallerysync.context import RunContext
from gallerysync.errors import GalleryConfigError, GallerySyncError, ManifestError, ResolutionError
from gallerysync.galleries import load_galleries, remove_gallery
from gallerysync.http import HostRateLimiter, build_session
from gallerysync.manifest import (
    get_album_photos,
    load_manifest,
    prune_chapters,
    remove_album,
    save_manifest,
    update_album,
    update_photos,
    utc_now_iso,
)
from gallerysync.metadata import (
    build_photo,
    catalog_asset_id,
    catalog_title_and_caption,
    derive_album_location_and_date,
    generate_slug,
    photo_display_name,
    unique_slug,
)
from gallerysync.models import GalleryEntry, PublicAsset, RawAsset, SyncAlbum, SyncManifest, SyncPhoto
from gallerysync.progress import ProgressCallback, ProgressReporter
from gallerysync.renditions import RenditionLocator, Renditions
from gallerysync.resolver import GalleryResolver, ResolvedGallery, should_sync
from gallerysync.thumbnails import ThumbnailPipeline


@dataclass
class RunSummary:
    """What a run did: album ids synced, and (item, reason) for everything skipped."""

    succeeded: List[str] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)

    def skip(self, item: str, reason: str):
        logger.warning(f"Skipped {item}: {reason}")
        self.skipped.append((item, reason))


@dataclass
class SyncResult:
    success: bool
    albums: int = 0
    photos: int = 0
    error: Optional[str] = None
    cancelled: bool = False
    summary: RunSummary = field(default_factory=RunSummary)


class GallerySync:
    """
    Main class orchestrating a sync run:
     - warm the authenticated catalog metadata (best effort)
     - resolve each configured gallery
     - locate, download and resize every asset
     - merge albums/photos into the manifest and write it once
    """

    def __init__(
        self,
        galleries_file: Path = GALLERIES_FILE,
        manifest_file: Path = MANIFEST_FILE,
        output_dir: Path = OUTPUT_DIR,
        credentials: Optional[CredentialStore] = None,
        session: Optional[requests.Session] = None,
        config: Optional[dict] = None,
        on_progress: Optional[ProgressCallback] = None,
        min_request_interval: Optional[float] = None,
    ):
        self.config = config if config is not None else load_user_config()
        self.galleries_file = Path(galleries_file)
        self.manifest_file = Path(manifest_file)
        self.credentials = credentials or CredentialStore()
        self.session = session or build_session()

        self.sync_tag = self.config.get("syncTag") or ""
        self.download_workers = max(1, int(self.config.get("downloadWorkers") or 1))

        limiter = HostRateLimiter(self._request_interval(min_request_interval))
        self.resolver = GalleryResolver(self.session)
        self.locator = RenditionLocator(self.session, limiter=limiter)
        self.pipeline = ThumbnailPipeline(output_dir, session=self.session, limiter=limiter)
        self.reporter = ProgressReporter(on_progress)

    # -----------------------------
    # 1) RUN
    # -----------------------------

    def run(self, gallery_id: Optional[str] = None, cancel_event: Optional[threading.Event] = None) -> SyncResult:
        """
        Sync every configured gallery (or only the one whose URL/album id is
        `gallery_id`). Only manifest I/O failures make the run fail.
        """
        logger.info("Starting Lightroom sync...")
        self.reporter.start()
        summary = RunSummary()

        try:
            manifest = load_manifest(self.manifest_file)
        except ManifestError as e:
            return self._fail(str(e), summary)

        galleries = self._load_entries(gallery_id)

        self.reporter.emit(phase=p.FETCHING_CREDENTIALS, message="Loading metadata...")
        context = self.build_context(cancel_event)
        self.load_authenticated_metadata(context)

        if not galleries:
            message = f"Gallery not found: {gallery_id}" if gallery_id else "No galleries configured!"
            logger.info(message)
            self.reporter.finish(message)
            return SyncResult(True, len(manifest.albums), len(manifest.photos), summary=summary)

        logger.info(f"Syncing {len(galleries)} gallery(ies)...")
        self.reporter.emit(phase=p.ITERATING_GALLERIES, total_galleries=len(galleries))

        for index, entry in enumerate(galleries):
            if context.cancelled:
                break
            name = entry.display_name
            self.reporter.emit(
                phase=p.FETCHING,
                current_gallery_index=index,
                current_gallery_name=name,
                total_photos=0,
                current_photo_index=0,
                current_photo_name="",
                message=f"Syncing {name}...",
            )
            try:
                manifest = self.sync_gallery(entry, manifest, context, summary)
            except (GallerySyncError, requests.RequestException) as e:
                summary.skip(name, str(e))
            except Exception as e:
                logger.exception(f"Unexpected error syncing {name}")
                summary.skip(name, f"unexpected error: {e}")

        if context.cancelled:
            logger.warning("Sync cancelled; manifest left untouched")
            self.reporter.fail("Sync cancelled")
            return SyncResult(False, error="Sync cancelled", cancelled=True, summary=summary)

        try:
            manifest = save_manifest(manifest, self.manifest_file)
        except ManifestError as e:
            return self._fail(str(e), summary)

        albums, photos = len(manifest.albums), len(manifest.photos)
        logger.info(f"Sync complete! Total albums: {albums} | Total photos: {photos}")
        if summary.skipped:
            logger.info(f"{len(summary.skipped)} item(s) skipped during this run")
        self.reporter.finish(f"Synced {albums} albums with {photos} photos")
        return SyncResult(True, albums, photos, summary=summary)

    def build_context(self, cancel_event: Optional[threading.Event] = None) -> RunContext:
        return RunContext(
            session=self.session,
            auth_headers=self.credentials.auth_headers(),
            cancel_event=cancel_event or threading.Event(),
        )

    def load_authenticated_metadata(self, context: RunContext):
        """
        Cache title/caption of every catalog asset so public galleries can show
        the captions the share API leaves out. Any failure leaves the cache empty.
        """
        if not context.authenticated:
            logger.info("Adobe API not authenticated - using public data only")
            return

        logger.info("Loading metadata from authenticated Adobe API...")
        try:
            self._cache_catalog_metadata(context)
        except (ResolutionError, requests.RequestException) as e:
            logger.warning(f"Failed to load authenticated metadata: {e}")
            context.catalog_metadata.clear()
        except Exception:
            logger.exception("Unexpected error loading authenticated metadata; using public data only")
            context.catalog_metadata.clear()
        else:
            logger.info(f"Cached metadata for {len(context.catalog_metadata)} assets")

    def _cache_catalog_metadata(self, context: RunContext):
        catalog_id = context.ensure_catalog_id()
        albums = lr.list_catalog_albums(context.session, catalog_id, context.auth_headers)
        logger.info(f"Catalog ID: {catalog_id} | {len(albums)} albums in catalog")

        for album in albums:
            album_id = album.get("id") if isinstance(album, dict) else None
            if not album_id:
                logger.debug(f"Skipping malformed catalog album: {album!r}")
                continue
            try:
                resources = lr.list_album_assets(context.session, catalog_id, album_id, context.auth_headers)
            except (ResolutionError, requests.RequestException) as e:
                logger.debug(f"Skipping catalog album {album_id}: {e}")
                continue
            for resource in resources:
                title, caption = catalog_title_and_caption(resource)
                asset_id = catalog_asset_id(resource)
                if asset_id and (title or caption):
                    context.catalog_metadata[asset_id] = (title, caption)

    # -----------------------------
    # 2) ONE GALLERY
    # -----------------------------

    def sync_gallery(
        self, entry: GalleryEntry, manifest: SyncManifest, context: RunContext, summary: RunSummary
    ) -> SyncManifest:
        """
        Resolve, process and merge one gallery. Returns the updated manifest;
        raises on gallery-level failures.
        """
        gallery = self.resolver.resolve(entry, context, self.sync_tag)
        for asset_id, reason in gallery.skipped:
            summary.skip(f"{gallery.title}/{asset_id}", reason)

        if not should_sync(gallery, entry, self.sync_tag):
            logger.info(f"Skipping '{gallery.title}': does not match sync tag '{self.sync_tag}'")
            summary.skip(gallery.title, f"does not match sync tag '{self.sync_tag}'")
            return manifest

        logger.info(f"Album: {gallery.title} ({len(gallery.assets)} photos)")

        existing = manifest.find_album(gallery.album_id)
        if existing and existing.slug:
            slug = existing.slug
        else:
            slug = unique_slug(generate_slug(gallery.title), (a.slug for a in manifest.albums))

        location, date = derive_album_location_and_date(gallery.title, gallery.assets)
        previous = get_album_photos(manifest, gallery.album_id)
        photos = self.process_assets(gallery, slug, location, date, context, summary, previous)

        if context.cancelled:
            return manifest

        self.reporter.emit(phase=p.PROCESSING, message=f"Saving {gallery.title}...")
        album = self.build_album(gallery, entry, existing, slug, location, date, photos, previous)
        manifest = update_album(manifest, album)
        manifest = update_photos(manifest, album.id, photos)
        manifest = prune_chapters(manifest, album.id)

        logger.info(f"Synced {album.photo_count} photos")
        summary.succeeded.append(album.id)
        return manifest

    def process_assets(
        self,
        gallery: ResolvedGallery,
        slug: str,
        album_location: str,
        album_date: str,
        context: RunContext,
        summary: RunSummary,
        previous: List[SyncPhoto],
    ) -> List[SyncPhoto]:
        """
        Turn raw assets into photos, in upstream listing order. Failed assets
        are dropped; sortOrder counts only the photos that made it.
        """
        previous_originals = {photo.id: photo.src.original for photo in previous}
        total = len(gallery.assets)

        def materialize(asset: RawAsset):
            if context.cancelled:
                return None
            try:
                return self.materialize_asset(asset, slug, context, previous_originals)
            except Exception:
                logger.exception(f"Unexpected error processing {asset.id}")
                return None

        if self.download_workers > 1:
            executor = ThreadPoolExecutor(max_workers=self.download_workers)
            outcomes = executor.map(materialize, gallery.assets)
        else:
            executor = None
            outcomes = (materialize(asset) for asset in gallery.assets)

        photos = []
        try:
            for index, (asset, outcome) in enumerate(zip(gallery.assets, outcomes)):
                if context.cancelled:
                    break
                name = photo_display_name(asset, index)
                self.reporter.emit(
                    phase=p.DOWNLOADING,
                    total_photos=total,
                    current_photo_index=index,
                    current_photo_name=name,
                    message=f"Processing {name}...",
                )
                if outcome is None:
                    summary.skip(f"{gallery.title}/{asset.id}", "rendition or thumbnail generation failed")
                    continue

                renditions, original_url = outcome
                title, caption = (None, None)
                if isinstance(asset, PublicAsset):
                    title, caption = context.catalog_override(asset.id)
                photos.append(
                    build_photo(
                        asset,
                        index,
                        gallery.album_id,
                        renditions,
                        original_url,
                        album_location,
                        album_date,
                        title_override=title,
                        caption_override=caption,
                    )
                )
                photos[-1].sort_order = len(photos) - 1
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        return photos

    def materialize_asset(
        self, asset: RawAsset, slug: str, context: RunContext, previous_originals: Dict[str, str]
    ) -> Optional[Tuple[Renditions, str]]:
        """
        (renditions, original URL) for one asset, or None if it must be skipped.
        Assets whose files already exist cost no network calls.
        """
        if self.pipeline.exists(slug, asset.id):
            logger.debug(f"Skipping {asset.id} (already exists)")
            if isinstance(asset, PublicAsset):
                original = asset.url
            else:
                original = previous_originals.get(asset.id) or (
                    f"{LIGHTROOM_API}/catalogs/{context.catalog_id}/assets/{asset.id}/renditions/2048"
                )
            return self.pipeline.relative_paths(slug, asset.id), original

        catalog_id = None if isinstance(asset, PublicAsset) else context.catalog_id
        url = self.locator.locate(asset, catalog_id, context.auth_headers)
        if not url:
            logger.info(f"No rendition URL for {asset.id}, skipping")
            return None

        auth_headers = None if isinstance(asset, PublicAsset) else context.auth_headers
        renditions = self.pipeline.materialize(url, slug, asset.id, auth_headers)
        if renditions is None:
            logger.info(f"Failed to process {asset.id}, skipping")
            return None
        return renditions, url

    def build_album(
        self,
        gallery: ResolvedGallery,
        entry: GalleryEntry,
        existing: Optional[SyncAlbum],
        slug: str,
        location: str,
        date: str,
        photos: List[SyncPhoto],
        previous: List[SyncPhoto],
    ) -> SyncAlbum:
        """
        Album record for this run. Title, subtitle, description, location and
        date already in the manifest win over derived values, as does a cover
        image someone picked by hand.
        """
        cover = photos[0].src.medium if photos else ""
        if existing and existing.cover_image:
            previous_default = previous[0].src.medium if previous else ""
            current = {path for photo in photos for path in (photo.src.thumb, photo.src.medium, photo.src.full)}
            own_dir = f"{self.pipeline.public_prefix}/{slug}/"
            hand_picked = existing.cover_image != previous_default
            still_valid = existing.cover_image in current or not existing.cover_image.startswith(own_dir)
            if hand_picked and still_valid:
                cover = existing.cover_image

        return SyncAlbum(
            id=gallery.album_id,
            slug=slug,
            title=(existing.title if existing and existing.title else gallery.title),
            subtitle=existing.subtitle if existing else None,
            description=(existing.description if existing and existing.description else gallery.description),
            location=(existing.location if existing and existing.location else location),
            date=(existing.date if existing and existing.date else date),
            cover_image=cover,
            photo_count=len(photos),
            featured=entry.featured,
            gallery_url=gallery.gallery_url,
            last_synced=utc_now_iso(),
        )

    # -----------------------------
    # 3) REMOVAL
    # -----------------------------

    def remove_synced_gallery(self, key: str) -> bool:
        """
        Drop a gallery from the configuration together with its album, photos,
        chapters and derived files. Returns False if no such gallery is configured.
        """
        entry = remove_gallery(key, self.galleries_file)
        if entry is None:
            return False

        manifest = load_manifest(self.manifest_file)
        gallery_url = f"private:{entry.album_id}" if entry.is_private else entry.url
        for album in list(manifest.albums):
            if album.gallery_url == gallery_url or (entry.is_private and album.id == entry.album_id):
                manifest = remove_album(manifest, album.id)
                self.pipeline.delete_album_files(album.slug)
        save_manifest(manifest, self.manifest_file)
        return True

    # -----------------------------
    # INTERNAL HELPERS
    # -----------------------------

    def _request_interval(self, explicit: Optional[float]) -> float:
        """
        Per-host spacing for rendition and image requests. Parallel downloads
        always get a non-zero ceiling.
        """
        interval = explicit if explicit is not None else self.config.get("minRequestInterval")
        interval = float(interval) if interval is not None else 0.0
        if self.download_workers > 1 and interval <= 0:
            logger.debug(
                f"{self.download_workers} download workers: spacing requests by {PARALLEL_MIN_REQUEST_INTERVAL}s per host"
            )
            interval = PARALLEL_MIN_REQUEST_INTERVAL
        return interval

    def _load_entries(self, gallery_id: Optional[str]) -> List[GalleryEntry]:
        try:
            galleries = load_galleries(self.galleries_file)
        except (OSError, ValueError, GalleryConfigError) as e:
            logger.error(f"Cannot read gallery configuration {self.galleries_file}: {e}")
            return []
        if gallery_id:
            galleries = [g for g in galleries if g.key == gallery_id or gallery_id in (g.url, g.album_id)]
        return galleries

    def _fail(self, error: str, summary: RunSummary) -> SyncResult:
        logger.error(f"Sync failed: {error}")
        self.reporter.fail(error)
        return SyncResult(False, error=error, summary=summary)
