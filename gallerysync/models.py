"""Domain models: gallery configuration, raw vendor assets and the synced manifest."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class GalleryEntry:
    """One configured gallery: a public share URL or a private catalog album."""

    url: Optional[str] = None
    album_id: Optional[str] = None
    album_name: Optional[str] = None
    type: Optional[str] = None
    tag: Optional[str] = None
    featured: bool = False

    @property
    def is_private(self) -> bool:
        if self.type:
            return self.type == "private" and bool(self.album_id)
        return bool(self.album_id)

    @property
    def display_name(self) -> str:
        return self.album_name or self.url or self.album_id or "Gallery"

    @property
    def key(self) -> str:
        """Identifier used to select a single gallery from the command line."""
        return self.album_id if self.is_private else (self.url or "")

    @classmethod
    def from_dict(cls, data: dict) -> "GalleryEntry":
        return cls(
            url=data.get("url"),
            album_id=data.get("albumId"),
            album_name=data.get("albumName"),
            type=data.get("type"),
            tag=data.get("tag"),
            featured=bool(data.get("featured", False)),
        )

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "type": self.type or ("private" if self.is_private else "public"),
            "featured": self.featured,
        }
        if self.url:
            data["url"] = self.url
        if self.album_id:
            data["albumId"] = self.album_id
        if self.album_name:
            data["albumName"] = self.album_name
        if self.tag:
            data["tag"] = self.tag
        return data


# ---------------------------------------------------------------------------
# Raw vendor assets (transient, one sync pass)
# ---------------------------------------------------------------------------


@dataclass
class AssetLocation:
    name: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def label(self) -> Optional[str]:
        """'City, Country', bare country, or None."""
        if not self.country:
            return None
        if self.city:
            return f"{self.city}, {self.country}"
        return self.country


@dataclass
class AssetExif:
    camera: Optional[str] = None
    lens: Optional[str] = None
    aperture: Optional[str] = None
    shutter: Optional[str] = None
    iso: Optional[str] = None
    focal_length: Optional[str] = None


@dataclass
class PublicAsset:
    """Asset read from a public share (detail fetched with embedded renditions)."""

    id: str
    url: str
    thumbnail_url: str
    title: Optional[str] = None
    caption: Optional[str] = None
    file_name: Optional[str] = None
    width: int = 0
    height: int = 0
    capture_date: Optional[str] = None
    exif: AssetExif = field(default_factory=AssetExif)
    location: AssetLocation = field(default_factory=AssetLocation)


@dataclass
class PrivateAsset:
    """Asset read from the authenticated catalog; renditions are located later."""

    id: str
    title: Optional[str] = None
    caption: Optional[str] = None
    file_name: Optional[str] = None
    width: int = 0
    height: int = 0
    capture_date: Optional[str] = None
    exif: AssetExif = field(default_factory=AssetExif)
    location: AssetLocation = field(default_factory=AssetLocation)
    payload: Dict[str, Any] = field(default_factory=dict)


RawAsset = Union[PublicAsset, PrivateAsset]


# ---------------------------------------------------------------------------
# Manifest records
# ---------------------------------------------------------------------------


@dataclass
class PhotoSource:
    thumb: str
    medium: str
    full: str
    original: str

    def to_dict(self) -> dict:
        return {"thumb": self.thumb, "medium": self.medium, "full": self.full, "original": self.original}

    @classmethod
    def from_dict(cls, data: dict) -> "PhotoSource":
        return cls(
            thumb=data.get("thumb", ""),
            medium=data.get("medium", ""),
            full=data.get("full", ""),
            original=data.get("original", ""),
        )


@dataclass
class PhotoMetadata:
    date: str
    location: Optional[str] = None
    location_detail: Optional[str] = None
    camera: Optional[str] = None
    lens: Optional[str] = None
    aperture: Optional[str] = None
    shutter: Optional[str] = None
    iso: Optional[str] = None
    focal_length: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    gps: Optional[Dict[str, float]] = None

    _KEYS = (
        ("date", "date"),
        ("location", "location"),
        ("location_detail", "locationDetail"),
        ("camera", "camera"),
        ("lens", "lens"),
        ("aperture", "aperture"),
        ("shutter", "shutter"),
        ("iso", "iso"),
        ("focal_length", "focalLength"),
        ("width", "width"),
        ("height", "height"),
        ("gps", "gps"),
    )

    def to_dict(self) -> dict:
        data = {}
        for attr, key in self._KEYS:
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PhotoMetadata":
        kwargs = {attr: data.get(key) for attr, key in cls._KEYS}
        kwargs["date"] = kwargs["date"] or ""
        return cls(**kwargs)


@dataclass
class SyncPhoto:
    id: str
    title: str
    src: PhotoSource
    metadata: PhotoMetadata
    album_id: str
    sort_order: int
    description: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "src": self.src.to_dict(),
            "metadata": self.metadata.to_dict(),
            "albumId": self.album_id,
            "sortOrder": self.sort_order,
        }
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SyncPhoto":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            description=data.get("description"),
            src=PhotoSource.from_dict(data.get("src", {})),
            metadata=PhotoMetadata.from_dict(data.get("metadata", {})),
            album_id=data["albumId"],
            sort_order=int(data.get("sortOrder", 0)),
        )


@dataclass
class SyncAlbum:
    id: str
    slug: str
    title: str
    location: str
    date: str
    cover_image: str
    photo_count: int
    gallery_url: str
    last_synced: str
    featured: bool = False
    subtitle: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "location": self.location,
            "date": self.date,
            "coverImage": self.cover_image,
            "photoCount": self.photo_count,
            "featured": self.featured,
            "galleryUrl": self.gallery_url,
            "lastSynced": self.last_synced,
        }
        if self.subtitle:
            data["subtitle"] = self.subtitle
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SyncAlbum":
        return cls(
            id=data["id"],
            slug=data.get("slug", ""),
            title=data.get("title", ""),
            subtitle=data.get("subtitle"),
            description=data.get("description"),
            location=data.get("location", ""),
            date=data.get("date", ""),
            cover_image=data.get("coverImage", ""),
            photo_count=int(data.get("photoCount", 0)),
            featured=bool(data.get("featured", False)),
            gallery_url=data.get("galleryUrl", ""),
            last_synced=data.get("lastSynced", ""),
        )


@dataclass
class SyncChapter:
    id: str
    title: str
    photo_ids: List[str] = field(default_factory=list)
    narrative: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "title": self.title, "photoIds": list(self.photo_ids)}
        if self.narrative:
            data["narrative"] = self.narrative
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SyncChapter":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            narrative=data.get("narrative"),
            photo_ids=list(data.get("photoIds", [])),
        )


@dataclass
class SyncManifest:
    last_updated: str
    albums: List[SyncAlbum] = field(default_factory=list)
    photos: List[SyncPhoto] = field(default_factory=list)
    chapters: Dict[str, List[SyncChapter]] = field(default_factory=dict)

    def find_album(self, album_id: str) -> Optional[SyncAlbum]:
        for album in self.albums:
            if album.id == album_id:
                return album
        return None

    def to_dict(self) -> dict:
        return {
            "lastUpdated": self.last_updated,
            "albums": [a.to_dict() for a in self.albums],
            "photos": [p.to_dict() for p in self.photos],
            "chapters": {
                album_id: [c.to_dict() for c in chapters]
                for album_id, chapters in self.chapters.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SyncManifest":
        return cls(
            last_updated=data.get("lastUpdated", ""),
            albums=[SyncAlbum.from_dict(a) for a in data.get("albums", [])],
            photos=[SyncPhoto.from_dict(p) for p in data.get("photos", [])],
            chapters={
                album_id: [SyncChapter.from_dict(c) for c in chapters]
                for album_id, chapters in (data.get("chapters") or {}).items()
            },
        )
