"""Progress events streamed to whatever presents a running sync."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, replace
from datetime import timezone
from typing import Callable, Optional

# status
IDLE = "idle"
SYNCING = "syncing"
COMPLETED = "completed"
ERROR = "error"

# phase
INITIALIZING = "initializing"
FETCHING_CREDENTIALS = "fetching-credentials"
ITERATING_GALLERIES = "iterating-galleries"
FETCHING = "fetching"
DOWNLOADING = "downloading"
PROCESSING = "processing"
COMPLETE = "complete"


@dataclass(frozen=True)
class SyncProgress:
    status: str = IDLE
    phase: str = INITIALIZING
    total_galleries: int = 0
    current_gallery_index: int = 0
    current_gallery_name: str = ""
    total_photos: int = 0
    current_photo_index: int = 0
    current_photo_name: str = ""
    message: str = ""
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "status": self.status,
            "phase": self.phase,
            "totalGalleries": self.total_galleries,
            "currentGalleryIndex": self.current_gallery_index,
            "currentGalleryName": self.current_gallery_name,
            "totalPhotos": self.total_photos,
            "currentPhotoIndex": self.current_photo_index,
            "currentPhotoName": self.current_photo_name,
            "message": self.message,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


ProgressCallback = Callable[[SyncProgress], None]


class ProgressReporter:
    """Keeps the latest event and forwards every update to an optional callback."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.current = SyncProgress()

    def emit(self, **changes) -> SyncProgress:
        self.current = replace(self.current, **changes)
        if self.callback is not None:
            self.callback(self.current)
        return self.current

    def start(self) -> SyncProgress:
        self.current = SyncProgress()
        return self.emit(status=SYNCING, phase=INITIALIZING, message="Loading metadata...", started_at=_now())

    def finish(self, message: str) -> SyncProgress:
        return self.emit(
            status=COMPLETED,
            phase=COMPLETE,
            current_gallery_index=self.current.total_galleries,
            current_gallery_name="",
            total_photos=0,
            current_photo_index=0,
            current_photo_name="",
            message=message,
            completed_at=_now(),
        )

    def fail(self, error: str) -> SyncProgress:
        return self.emit(status=ERROR, message=error, error=error, completed_at=_now())


def _now() -> str:
    return datetime.datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def format_progress_message(progress: SyncProgress) -> str:
    if progress.status == IDLE:
        return "Ready to sync"
    if progress.status == ERROR:
        return progress.error or "Sync failed"
    if progress.status == COMPLETED:
        return "Sync completed successfully"

    parts = []
    if progress.total_galleries > 0:
        parts.append(f"Album {progress.current_gallery_index + 1}/{progress.total_galleries}")
    if progress.total_photos > 0:
        parts.append(f"Photo {progress.current_photo_index + 1}/{progress.total_photos}")
    return " - ".join(parts) if parts else progress.message


def calculate_overall_progress(progress: SyncProgress) -> float:
    """Percentage complete; capped at 99 until the run reports completion."""
    if progress.status == COMPLETED:
        return 100.0
    if progress.status != SYNCING or progress.total_galleries == 0:
        return 0.0

    gallery_weight = 100 / progress.total_galleries
    done = progress.current_gallery_index * gallery_weight
    if progress.total_photos > 0:
        done += progress.current_photo_index / progress.total_photos * gallery_weight
    return min(99.0, done)
