"""
Normalization of Lightroom metadata into the manifest's photo/album shape.

The two API modes return the same information in different places and
shapes (scalars, one-element arrays, [numerator, denominator] rationals,
nested XMP). All of that digging happens in the ``adapt_*`` functions; the
rest of the module only sees ``PublicAsset`` / ``PrivateAsset``.
"""

from __future__ import annotations

import datetime
import math
import re
from collections import Counter
from typing import Any, Iterable, Optional, Sequence, Tuple

from gallerysync.models import (
    AssetExif,
    AssetLocation,
    PhotoMetadata,
    PhotoSource,
    PrivateAsset,
    PublicAsset,
    RawAsset,
    SyncPhoto,
)
from gallerysync.renditions import Renditions, public_rendition_urls

UNKNOWN_LOCATION = "Unknown"

_TITLE_PATTERNS = (
    re.compile(r"^(.+?)\s*[-–]\s*(\w+\.?\s+\d{4})$"),
    re.compile(r"^(.+?)\s*[-–]\s*(\w+\.?\s+'\d{2})$"),
    re.compile(r"^(.+?)\s+(\w+\.?\s+\d{4})$"),
    re.compile(r"^(.+?)\s+(\d{4})$"),
)


# ---------------------------------------------------------------------------
# EXIF display strings
# ---------------------------------------------------------------------------


def _to_number(value: Any) -> Optional[float]:
    """Scalar, numeric string, [x] or [numerator, denominator] -> float."""
    if isinstance(value, (list, tuple)):
        if len(value) == 2:
            numerator, denominator = _to_number(value[0]), _to_number(value[1])
            if numerator is None or not denominator:
                return None
            return numerator / denominator
        if not value:
            return None
        value = value[0]
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def format_aperture(f_number: Any) -> Optional[str]:
    num = _to_number(f_number)
    if not num:
        return None
    return f"f/{num:.1f}"


def format_shutter_speed(exposure_time: Any) -> Optional[str]:
    time = _to_number(exposure_time)
    if not time or time < 0:
        return None
    if time >= 1:
        return f"{time:g}s"
    return f"1/{int(1 / time + 0.5)}s"


def format_iso(iso: Any) -> Optional[str]:
    num = _to_number(iso)
    if not num:
        return None
    return str(int(num + 0.5))


def format_focal_length(focal_length: Any) -> Optional[str]:
    mm = _to_number(focal_length)
    if not mm:
        return None
    return f"{int(mm + 0.5)}mm"


def format_camera(make: Optional[str], model: Optional[str]) -> Optional[str]:
    """Join make and model without repeating the brand ('Canon' + 'Canon EOS R5')."""
    if not make and not model:
        return None
    if not make:
        return model
    if not model:
        return make
    if model.lower().startswith(make.lower()):
        return model
    return f"{make} {model}"


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def parse_capture_date(value: Optional[str]) -> Optional[datetime.datetime]:
    if not value or not isinstance(value, str):
        return None
    text = value.strip().replace("Z", "+00:00")
    try:
        return datetime.datetime.fromisoformat(text)
    except ValueError:
        pass
    # Trim fractional seconds or anything else fromisoformat rejects
    try:
        return datetime.datetime.fromisoformat(text[:19])
    except ValueError:
        pass
    try:
        return datetime.datetime.strptime(text[:10], "%Y-%m-%d")
    except ValueError:
        return None


def format_photo_date(value: Optional[str]) -> Optional[str]:
    """'2023-10-14T09:12:00' -> 'Oct 14, 2023'."""
    dt = parse_capture_date(value)
    if dt is None:
        return None
    return f"{dt:%b} {dt.day}, {dt.year}"


def current_month_label(today: Optional[datetime.date] = None) -> str:
    today = today or datetime.date.today()
    return today.strftime("%B %Y")


def album_date_from_photos(capture_dates: Iterable[Optional[str]]) -> Optional[str]:
    """
    Date label spanning the capture dates:
    same month -> 'October 2023', same year -> 'Oct - Nov 2023',
    otherwise 'Dec 2023 - Jan 2024'.
    """
    # Compare on local wall time; mixing naive and aware values would raise
    parsed = (parse_capture_date(v) for v in capture_dates)
    dates = sorted(d.replace(tzinfo=None) for d in parsed if d is not None)
    if not dates:
        return None
    earliest, latest = dates[0], dates[-1]

    if (earliest.year, earliest.month) == (latest.year, latest.month):
        return earliest.strftime("%B %Y")
    if earliest.year == latest.year:
        return f"{earliest:%b} - {latest:%b} {earliest.year}"
    return f"{earliest:%b %Y} - {latest:%b %Y}"


def extract_location_and_date(title: str) -> Tuple[Optional[str], Optional[str]]:
    """Split titles like 'Kyoto - October 2023' into ('Kyoto', 'October 2023')."""
    for pattern in _TITLE_PATTERNS:
        match = pattern.match(title.strip())
        if match:
            return match.group(1).strip(), match.group(2).strip()
    return None, None


# ---------------------------------------------------------------------------
# Album-level derivation
# ---------------------------------------------------------------------------


def primary_location(assets: Iterable[RawAsset]) -> Optional[str]:
    """Most frequent 'City, Country' (or country) label; ties go to the first seen."""
    counts = Counter(a.location.label for a in assets if a.location.label)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def derive_album_location_and_date(
    title: str, assets: Sequence[RawAsset], today: Optional[datetime.date] = None
) -> Tuple[str, str]:
    """Title-derived values win over photo-derived values, which win over the fallbacks."""
    title_location, title_date = extract_location_and_date(title)
    location = title_location or primary_location(assets) or UNKNOWN_LOCATION
    date = (
        title_date
        or album_date_from_photos(a.capture_date for a in assets)
        or current_month_label(today)
    )
    return location, date


def generate_slug(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug or "album"


def unique_slug(base: str, taken: Iterable[str]) -> str:
    """
    Return `base`, or `base-2`, `base-3`, ... if it is already used by another album.
    """
    taken = set(taken)
    if base not in taken:
        return base
    counter = 2
    while f"{base}-{counter}" in taken:
        counter += 1
    return f"{base}-{counter}"


# ---------------------------------------------------------------------------
# Vendor adapters
# ---------------------------------------------------------------------------


def first_of(value: Any) -> Optional[str]:
    """XMP text fields arrive as a string, a list of strings, or a lang-alt dict."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, dict):
        value = value.get("x-default") or next(iter(value.values()), None)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _dig(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _exif_from_payload(payload: dict) -> AssetExif:
    xmp = payload.get("xmp") or {}
    return AssetExif(
        camera=format_camera(_dig(xmp, "tiff", "Make"), _dig(xmp, "tiff", "Model"))
        or _dig(payload, "importSource", "cameraModel"),
        lens=_dig(xmp, "aux", "Lens") or _dig(xmp, "exifEX", "LensModel"),
        aperture=format_aperture(_dig(xmp, "exif", "FNumber")),
        shutter=format_shutter_speed(_dig(xmp, "exif", "ExposureTime")),
        iso=format_iso(_dig(xmp, "exif", "ISOSpeedRatings")),
        focal_length=format_focal_length(_dig(xmp, "exif", "FocalLength")),
    )


def _location_from_payload(payload: dict) -> AssetLocation:
    location = payload.get("location") or {}
    return AssetLocation(
        name=location.get("name"),
        city=location.get("city"),
        country=location.get("country"),
        latitude=_to_number(location.get("latitude")),
        longitude=_to_number(location.get("longitude")),
    )


def _dimensions(payload: dict) -> Tuple[int, int]:
    width = _dig(payload, "develop", "croppedWidth") or _dig(payload, "importSource", "originalWidth") or 0
    height = _dig(payload, "develop", "croppedHeight") or _dig(payload, "importSource", "originalHeight") or 0
    return int(width), int(height)


def adapt_public_asset(asset: dict, base_url: str) -> Optional[PublicAsset]:
    """
    Build a PublicAsset from a share asset detail (fetched with embed=renditions).
    Returns None when the asset has no id or no usable rendition.
    """
    asset_id = asset.get("id")
    if not asset_id:
        return None

    image_url, thumbnail_url = public_rendition_urls(asset.get("links") or {}, base_url)
    if not image_url:
        return None

    payload = asset.get("payload") or {}
    xmp = payload.get("xmp") or {}
    width, height = _dimensions(payload)

    return PublicAsset(
        id=asset_id,
        url=image_url,
        thumbnail_url=thumbnail_url,
        title=first_of(payload.get("title")) or first_of(payload.get("name")) or first_of(_dig(xmp, "dc", "title")),
        caption=first_of(payload.get("caption")) or first_of(_dig(xmp, "dc", "description")),
        file_name=_dig(payload, "importSource", "fileName"),
        width=width,
        height=height,
        capture_date=payload.get("captureDate") or _dig(xmp, "photoshop", "DateCreated"),
        exif=_exif_from_payload(payload),
        location=_location_from_payload(payload),
    )


def catalog_asset_id(resource: dict) -> Optional[str]:
    """
    Album listings return album-asset relations; the catalog asset id is on the
    nested asset when present.
    """
    return _dig(resource, "asset", "id") or resource.get("id")


def adapt_private_asset(resource: dict) -> Optional[PrivateAsset]:
    asset_id = catalog_asset_id(resource)
    if not asset_id:
        return None

    payload = _dig(resource, "asset", "payload") or resource.get("payload") or {}
    xmp = payload.get("xmp") or {}
    width, height = _dimensions(payload)

    return PrivateAsset(
        id=asset_id,
        title=first_of(_dig(xmp, "dc", "title")),
        caption=first_of(_dig(xmp, "dc", "description")),
        file_name=_dig(payload, "importSource", "fileName"),
        width=width,
        height=height,
        capture_date=payload.get("captureDate") or _dig(xmp, "photoshop", "DateCreated"),
        exif=_exif_from_payload(payload),
        location=_location_from_payload(payload),
        payload=payload,
    )


def catalog_title_and_caption(resource: dict) -> Tuple[Optional[str], Optional[str]]:
    payload = _dig(resource, "asset", "payload") or resource.get("payload") or {}
    return first_of(_dig(payload, "xmp", "dc", "title")), first_of(_dig(payload, "xmp", "dc", "description"))


# ---------------------------------------------------------------------------
# Canonical photo
# ---------------------------------------------------------------------------


def photo_display_name(asset: RawAsset, index: int) -> str:
    # catalog photos never fall back to their caption
    if isinstance(asset, PrivateAsset):
        return asset.title or asset.file_name or f"Photo {index + 1}"
    return asset.title or asset.caption or asset.file_name or f"Photo {index + 1}"


def build_photo(
    asset: RawAsset,
    index: int,
    album_id: str,
    renditions: Renditions,
    original_url: str,
    album_location: str,
    album_date: str,
    title_override: Optional[str] = None,
    caption_override: Optional[str] = None,
) -> SyncPhoto:
    """Map one raw asset plus its derived files onto a SyncPhoto."""
    location = asset.location
    gps = None
    if location.latitude is not None and location.longitude is not None:
        gps = {"lat": location.latitude, "lng": location.longitude}

    metadata = PhotoMetadata(
        date=format_photo_date(asset.capture_date) or album_date,
        location=location.country or album_location,
        location_detail=location.name or location.city,
        camera=asset.exif.camera,
        lens=asset.exif.lens,
        aperture=asset.exif.aperture,
        shutter=asset.exif.shutter,
        iso=asset.exif.iso,
        focal_length=asset.exif.focal_length,
        width=asset.width or None,
        height=asset.height or None,
        gps=gps,
    )

    return SyncPhoto(
        id=asset.id,
        title=title_override or photo_display_name(asset, index),
        description=caption_override or asset.caption,
        src=PhotoSource(
            thumb=renditions.thumb,
            medium=renditions.medium,
            full=renditions.full,
            original=original_url,
        ),
        metadata=metadata,
        album_id=album_id,
        sort_order=index,
    )
