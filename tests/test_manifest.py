import json

import pytest

from gallerysync.errors import ManifestError
from gallerysync.manifest import (
    empty_manifest,
    get_album_photos,
    load_manifest,
    prune_chapters,
    remove_album,
    save_manifest,
    update_album,
    update_photos,
)
from gallerysync.models import PhotoMetadata, PhotoSource, SyncAlbum, SyncChapter, SyncManifest, SyncPhoto


def make_album(album_id, title=None, photo_count=0):
    slug = album_id.lower()
    return SyncAlbum(
        id=album_id,
        slug=slug,
        title=title or album_id,
        location="Unknown",
        date="October 2023",
        cover_image=f"/photos/{slug}/medium/p0.jpg",
        photo_count=photo_count,
        gallery_url=f"https://lightroom.adobe.com/shares/{album_id}",
        last_synced="2023-10-20T10:00:00Z",
    )


def make_photo(photo_id, album_id, sort_order=0):
    return SyncPhoto(
        id=photo_id,
        title=photo_id,
        src=PhotoSource(
            thumb=f"/photos/x/thumb/{photo_id}.jpg",
            medium=f"/photos/x/medium/{photo_id}.jpg",
            full=f"/photos/x/full/{photo_id}.jpg",
            original=f"https://photos.adobe.io/{photo_id}",
        ),
        metadata=PhotoMetadata(date="Oct 14, 2023", location="Japan"),
        album_id=album_id,
        sort_order=sort_order,
    )


@pytest.fixture
def manifest():
    return SyncManifest(
        last_updated="2023-10-20T10:00:00Z",
        albums=[make_album("A"), make_album("B")],
        photos=[make_photo("a1", "A", 0), make_photo("a2", "A", 1), make_photo("b1", "B", 0)],
        chapters={
            "A": [SyncChapter(id="c1", title="Morning", photo_ids=["a1", "a2"])],
            "B": [SyncChapter(id="c2", title="Night", photo_ids=["b1"])],
        },
    )


def test_update_album_replaces_in_place(manifest):
    result = update_album(manifest, make_album("A", title="Renamed"))

    assert [a.id for a in result.albums] == ["A", "B"]
    assert result.find_album("A").title == "Renamed"
    # input is untouched
    assert manifest.find_album("A").title == "A"


def test_update_album_appends_new(manifest):
    result = update_album(manifest, make_album("C"))
    assert [a.id for a in result.albums] == ["A", "B", "C"]
    assert len(manifest.albums) == 2


def test_update_photos_replaces_only_that_album(manifest):
    result = update_photos(manifest, "A", [make_photo("a3", "A", 0)])

    assert sorted(p.id for p in result.photos) == ["a3", "b1"]
    assert [p.id for p in get_album_photos(result, "B")] == ["b1"]
    assert result.chapters == manifest.chapters
    assert len(manifest.photos) == 3


def test_remove_album_drops_photos_and_chapters(manifest):
    result = remove_album(manifest, "A")

    assert [a.id for a in result.albums] == ["B"]
    assert [p.id for p in result.photos] == ["b1"]
    assert "A" not in result.chapters
    assert "B" in result.chapters


def test_get_album_photos_sorted(manifest):
    manifest.photos.reverse()
    assert [p.id for p in get_album_photos(manifest, "A")] == ["a1", "a2"]


def test_prune_chapters(manifest):
    result = update_photos(manifest, "A", [make_photo("a2", "A", 0)])
    result = prune_chapters(result, "A")

    assert result.chapters["A"][0].photo_ids == ["a2"]
    assert result.chapters["B"][0].photo_ids == ["b1"]
    assert prune_chapters(result, "missing") is result


def test_save_and_load(tmp_path, manifest):
    path = tmp_path / "photos" / "albums.json"
    saved = save_manifest(manifest, path)

    assert saved.last_updated != manifest.last_updated
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["albums"][0]["coverImage"] == "/photos/a/medium/p0.jpg"
    assert data["photos"][0]["albumId"] == "A"
    assert data["chapters"]["A"][0]["photoIds"] == ["a1", "a2"]

    loaded = load_manifest(path)
    assert loaded.to_dict() == saved.to_dict()
    assert not list(path.parent.glob("*.tmp"))


def test_load_missing_manifest_is_empty(tmp_path):
    loaded = load_manifest(tmp_path / "albums.json")
    assert loaded.albums == [] and loaded.photos == [] and loaded.chapters == {}


def test_load_corrupt_manifest_raises(tmp_path):
    path = tmp_path / "albums.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ManifestError):
        load_manifest(path)


def test_save_failure_raises_and_keeps_nothing(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    with pytest.raises(ManifestError):
        save_manifest(empty_manifest(), blocker / "albums.json")
