import copy
import datetime
import json
import os
import tempfile
from datetime import timezone
from pathlib import Path
from typing import List

from loguru import logger

from gallerysync.config import MANIFEST_FILE
from gallerysync.errors import ManifestError
from gallerysync.models import SyncAlbum, SyncManifest, SyncPhoto


def utc_now_iso() -> str:
    return datetime.datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def empty_manifest() -> SyncManifest:
    return SyncManifest(last_updated=utc_now_iso())


def load_manifest(path: Path = MANIFEST_FILE) -> SyncManifest:
    """
    Load the manifest from disk. Return an empty one if the file doesn't exist.
    Raises ManifestError if the file exists but cannot be read or parsed.
    """
    path = Path(path)
    if not path.exists():
        return empty_manifest()
    try:
        with open(path, "r", encoding="utf-8") as f:
            return SyncManifest.from_dict(json.load(f))
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise ManifestError(f"Cannot read manifest {path}: {e}") from e


def save_manifest(manifest: SyncManifest, path: Path = MANIFEST_FILE) -> SyncManifest:
    """
    Write the whole manifest with a fresh lastUpdated. The file is replaced
    atomically, so a failure leaves the previous manifest intact.
    """
    path = Path(path)
    saved = copy.deepcopy(manifest)
    saved.last_updated = utc_now_iso()

    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(saved.to_dict(), f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name:
            Path(tmp_name).unlink(missing_ok=True)
        raise ManifestError(f"Cannot write manifest {path}: {e}") from e

    logger.info(f"Manifest saved to {path}")
    return saved


def update_album(manifest: SyncManifest, album: SyncAlbum) -> SyncManifest:
    """
    Replace the album with the same id, or append it. Other albums keep their order.
    """
    result = copy.deepcopy(manifest)
    for i, existing in enumerate(result.albums):
        if existing.id == album.id:
            result.albums[i] = copy.deepcopy(album)
            break
    else:
        result.albums.append(copy.deepcopy(album))
    return result


def update_photos(manifest: SyncManifest, album_id: str, photos: List[SyncPhoto]) -> SyncManifest:
    """
    Replace every photo of `album_id` with `photos`. Photos no longer upstream are dropped.
    """
    result = copy.deepcopy(manifest)
    result.photos = [p for p in result.photos if p.album_id != album_id]
    result.photos.extend(copy.deepcopy(photos))
    return result


def remove_album(manifest: SyncManifest, album_id: str) -> SyncManifest:
    """
    Remove an album, its photos and its chapters.
    """
    result = copy.deepcopy(manifest)
    result.albums = [a for a in result.albums if a.id != album_id]
    result.photos = [p for p in result.photos if p.album_id != album_id]
    result.chapters.pop(album_id, None)
    return result


def get_album_photos(manifest: SyncManifest, album_id: str) -> List[SyncPhoto]:
    return sorted((p for p in manifest.photos if p.album_id == album_id), key=lambda p: p.sort_order)


def prune_chapters(manifest: SyncManifest, album_id: str) -> SyncManifest:
    """
    Drop chapter photo ids that no longer belong to the album. Chapters
    themselves are kept even if they end up empty.
    """
    chapters = manifest.chapters.get(album_id)
    if not chapters:
        return manifest

    result = copy.deepcopy(manifest)
    current = {p.id for p in result.photos if p.album_id == album_id}
    for chapter in result.chapters[album_id]:
        dangling = [pid for pid in chapter.photo_ids if pid not in current]
        if dangling:
            logger.info(f"Chapter '{chapter.title}' lost {len(dangling)} photo(s) no longer in album {album_id}")
            chapter.photo_ids = [pid for pid in chapter.photo_ids if pid in current]
    return result
