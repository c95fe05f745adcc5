"""Downloading originals and deriving the thumb/medium/full JPEG variants."""

from __future__ import annotations

import io
import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urljoin, urlparse

import requests
from loguru import logger
from PIL import Image, ImageOps

from gallerysync.config import (
    DOWNLOAD_RETRIES,
    IMAGE_SIZES,
    JPEG_QUALITY,
    OUTPUT_DIR,
    PUBLIC_API_KEY,
    PUBLIC_PREFIX,
)
from gallerysync.http import HostRateLimiter, RetryableHTTPError, build_session, request_with_retry
from gallerysync.renditions import REDIRECT_STATUS, Renditions

MAX_REDIRECTS = 5


def is_adobe_api_host(url: str) -> bool:
    """True only for adobe.io and its subdomains, judged on the parsed hostname."""
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return False
    return host == "adobe.io" or host.endswith(".adobe.io")


class ThumbnailPipeline:
    """
    Writes ``<output_root>/<slug>/<variant>/<asset_id>.jpg`` and reports the
    matching site paths ``<public_prefix>/<slug>/<variant>/<asset_id>.jpg``.
    """

    def __init__(
        self,
        output_root: Path = OUTPUT_DIR,
        public_prefix: str = PUBLIC_PREFIX,
        sizes: Optional[Dict[str, int]] = None,
        quality: int = JPEG_QUALITY,
        session: Optional[requests.Session] = None,
        retries: int = DOWNLOAD_RETRIES,
        limiter: Optional[HostRateLimiter] = None,
    ):
        self.output_root = Path(output_root)
        self.public_prefix = public_prefix.rstrip("/")
        self.sizes = dict(IMAGE_SIZES if sizes is None else sizes)
        self.quality = quality
        self.session = session or build_session()
        self.retries = retries
        self.limiter = limiter
        self.downloads = 0

    def file_path(self, album_slug: str, variant: str, asset_id: str) -> Path:
        return self.output_root / album_slug / variant / f"{asset_id}.jpg"

    def relative_paths(self, album_slug: str, asset_id: str) -> Renditions:
        filename = f"{asset_id}.jpg"
        return Renditions(
            thumb=f"{self.public_prefix}/{album_slug}/thumb/{filename}",
            medium=f"{self.public_prefix}/{album_slug}/medium/{filename}",
            full=f"{self.public_prefix}/{album_slug}/full/{filename}",
        )

    def exists(self, album_slug: str, asset_id: str) -> bool:
        return self.file_path(album_slug, "thumb", asset_id).exists()

    def materialize(
        self,
        source_url: str,
        album_slug: str,
        asset_id: str,
        auth_headers: Optional[dict] = None,
    ) -> Optional[Renditions]:
        """
        Produce the three variants for one asset. Returns the site paths, or
        None if the download, decode or encode failed.
        """
        if self.exists(album_slug, asset_id):
            logger.debug(f"Skipping {asset_id} (already exists)")
            return self.relative_paths(album_slug, asset_id)

        try:
            logger.info(f"Downloading: {asset_id}")
            data = self.download(source_url, auth_headers)
            self._render(data, album_slug, asset_id)
        except (requests.RequestException, RetryableHTTPError, OSError, ValueError, Image.DecompressionBombError) as e:
            logger.error(f"Error generating thumbnails for {asset_id}: {e}")
            return None

        return self.relative_paths(album_slug, asset_id)

    def download(self, url: str, auth_headers: Optional[dict] = None) -> bytes:
        """
        GET the image, following redirects by hand so the API key and auth
        headers are decided again for every hop.
        """
        for _ in range(MAX_REDIRECTS + 1):
            headers = {}
            # Credentials only ever go to the Adobe API domain
            if is_adobe_api_host(url):
                headers.update(auth_headers or {"x-api-key": PUBLIC_API_KEY})

            resp = request_with_retry(
                self.session,
                "GET",
                url,
                retries=self.retries,
                limiter=self.limiter,
                headers=headers,
                allow_redirects=False,
            )
            location = resp.headers.get("Location")
            if resp.status_code in REDIRECT_STATUS and location:
                url = urljoin(url, location)
                continue
            if resp.status_code != 200:
                raise ValueError(f"Failed to download image: {resp.status_code}")
            self.downloads += 1
            return resp.content

        raise ValueError(f"Too many redirects downloading {url}")

    def delete_album_files(self, album_slug: str) -> None:
        """Remove every derived file of an album."""
        album_dir = self.output_root / album_slug
        if album_dir.exists():
            shutil.rmtree(album_dir)
            logger.info(f"Deleted thumbnails for album: {album_slug}")

    # -----------------------------
    # INTERNAL HELPERS
    # -----------------------------

    def _render(self, data: bytes, album_slug: str, asset_id: str) -> None:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            image = ImageOps.exif_transpose(source).convert("RGB")

        thumb_size = self.sizes["thumb"]
        outputs = {
            "medium": _bound_width(image, self.sizes["medium"]),
            "full": _bound_width(image, self.sizes["full"]),
            "thumb": ImageOps.fit(image, (thumb_size, thumb_size), Image.Resampling.LANCZOS),
        }
        # thumb is written last: its presence marks the asset as done
        for variant in ("medium", "full", "thumb"):
            self._write_jpeg(outputs[variant], self.file_path(album_slug, variant, asset_id))

    def _write_jpeg(self, image: Image.Image, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                image.save(f, "JPEG", quality=self.quality)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _bound_width(image: Image.Image, max_width: int) -> Image.Image:
    """Resize to at most `max_width` wide, keeping aspect ratio; never upscale."""
    width, height = image.size
    if width <= max_width:
        return image.copy()
    new_height = max(1, round(height * max_width / width))
    return image.resize((max_width, new_height), Image.Resampling.LANCZOS)
