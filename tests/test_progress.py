from gallerysync import progress as p
from gallerysync.progress import (
    ProgressReporter,
    SyncProgress,
    calculate_overall_progress,
    format_progress_message,
)


def test_reporter_forwards_every_event():
    events = []
    reporter = ProgressReporter(events.append)

    reporter.start()
    reporter.emit(phase=p.ITERATING_GALLERIES, total_galleries=2)
    reporter.finish("Synced 2 albums with 10 photos")

    assert [e.status for e in events] == [p.SYNCING, p.SYNCING, p.COMPLETED]
    assert events[0].started_at is not None
    assert events[-1].phase == p.COMPLETE
    assert events[-1].current_gallery_index == 2
    assert events[-1].completed_at is not None


def test_fail_sets_error():
    reporter = ProgressReporter()
    reporter.start()
    event = reporter.fail("disk full")

    assert event.status == p.ERROR
    assert event.to_dict()["error"] == "disk full"
    assert "error" not in SyncProgress().to_dict()


def test_event_shape():
    data = SyncProgress(status=p.SYNCING, current_photo_name="IMG_1.jpg").to_dict()
    assert set(data) == {
        "status", "phase", "totalGalleries", "currentGalleryIndex", "currentGalleryName",
        "totalPhotos", "currentPhotoIndex", "currentPhotoName", "message", "startedAt", "completedAt",
    }
    assert data["currentPhotoName"] == "IMG_1.jpg"


def test_format_progress_message():
    assert format_progress_message(SyncProgress()) == "Ready to sync"
    assert format_progress_message(SyncProgress(status=p.ERROR, error="boom")) == "boom"
    assert format_progress_message(SyncProgress(status=p.COMPLETED)) == "Sync completed successfully"
    running = SyncProgress(status=p.SYNCING, total_galleries=3, current_gallery_index=1, total_photos=10, current_photo_index=4)
    assert format_progress_message(running) == "Album 2/3 - Photo 5/10"
    assert format_progress_message(SyncProgress(status=p.SYNCING, message="Loading metadata...")) == "Loading metadata..."


def test_calculate_overall_progress():
    assert calculate_overall_progress(SyncProgress()) == 0.0
    assert calculate_overall_progress(SyncProgress(status=p.COMPLETED)) == 100.0
    halfway = SyncProgress(status=p.SYNCING, total_galleries=2, current_gallery_index=1, total_photos=4, current_photo_index=2)
    assert calculate_overall_progress(halfway) == 75.0
    nearly = SyncProgress(status=p.SYNCING, total_galleries=1, current_gallery_index=1)
    assert calculate_overall_progress(nearly) == 99.0
