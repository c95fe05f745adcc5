"""
Locating downloadable image URLs for Lightroom assets.

Public shares embed rendition links in each asset; the authenticated API
answers a rendition request with a redirect to signed storage, an image body,
or (less often) a JSON body carrying the URL.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional, Tuple
from urllib.parse import urljoin

import requests
from loguru import logger

from gallerysync.config import LIGHTROOM_API
from gallerysync.errors import ResolutionError
from gallerysync.http import HostRateLimiter, RetryableHTTPError, build_session, request_with_retry
from gallerysync.models import PublicAsset, RawAsset
from gallerysync.responses import parse_vendor_response

IMAGE_RELATIONS = ("/rels/rendition_type/2048", "/rels/rendition_type/1280")
THUMBNAIL_RELATIONS = ("/rels/rendition_type/640", "/rels/rendition_type/thumbnail2x")

# Renditions Lightroom generates on import, largest first
AUTO_RENDITIONS = ("2048", "1280", "640", "thumbnail2x")
GENERATED_RENDITION = "2560"

REDIRECT_STATUS = {301, 302, 303, 307, 308}


@dataclass
class Renditions:
    """Site-relative paths of the three derived JPEG variants."""

    thumb: str
    medium: str
    full: str


def _link_href(links: dict, relation: str) -> Optional[str]:
    link = links.get(relation)
    if isinstance(link, dict) and link.get("href"):
        return link["href"]
    return None


def public_rendition_urls(links: dict, base_url: str) -> Tuple[str, str]:
    """
    (image_url, thumbnail_url) from an asset's link relations. The image
    prefers 2048px then 1280px; the thumbnail prefers 640px, then the retina
    thumbnail, then the image itself. Empty strings when nothing is linked.
    """
    image_url = ""
    for relation in IMAGE_RELATIONS:
        href = _link_href(links, relation)
        if href:
            image_url = base_url + href
            break

    thumbnail_url = image_url
    for relation in THUMBNAIL_RELATIONS:
        href = _link_href(links, relation)
        if href:
            thumbnail_url = base_url + href
            break

    return image_url, thumbnail_url


class RenditionLocator:
    """Resolves the download URL for an asset in either API mode."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        api_base: str = LIGHTROOM_API,
        retries: int = 2,
        limiter: Optional[HostRateLimiter] = None,
        generate_wait: float = 30.0,
    ):
        self.session = session or build_session()
        self.api_base = api_base
        self.retries = retries
        self.limiter = limiter
        self.generate_wait = generate_wait

    def locate(self, asset: RawAsset, catalog_id: Optional[str] = None, headers: Optional[dict] = None) -> Optional[str]:
        """
        Download URL for `asset`, or None if no usable rendition exists.
        Private assets need the catalog id and authenticated headers.
        """
        if isinstance(asset, PublicAsset):
            return asset.url or None
        if not catalog_id or not headers:
            logger.warning(f"No catalog credentials to locate rendition for {asset.id}")
            return None
        return self.locate_private(catalog_id, asset.id, headers)

    def locate_private(self, catalog_id: str, asset_id: str, headers: dict) -> Optional[str]:
        for rendition_type in AUTO_RENDITIONS:
            url = self._rendition_url(catalog_id, asset_id, rendition_type)
            found = self._fetch_location(url, headers)
            if found:
                logger.debug(f"Got rendition {rendition_type} for {asset_id[:8]}...")
                return found

        logger.info(f"Generating {GENERATED_RENDITION} rendition for {asset_id[:8]}...")
        if self._request_generation(catalog_id, asset_id, headers) and self._wait_for_rendition(
            catalog_id, asset_id, headers
        ):
            found = self._fetch_location(self._rendition_url(catalog_id, asset_id, GENERATED_RENDITION), headers)
            if found:
                return found

        logger.warning(f"No rendition available for {asset_id[:8]}... (tried auto-generated + {GENERATED_RENDITION})")
        return None

    # -----------------------------
    # INTERNAL HELPERS
    # -----------------------------

    def _rendition_url(self, catalog_id: str, asset_id: str, rendition_type: str) -> str:
        return f"{self.api_base}/catalogs/{catalog_id}/assets/{asset_id}/renditions/{rendition_type}"

    def _fetch_location(self, url: str, headers: dict) -> Optional[str]:
        try:
            resp = request_with_retry(
                self.session, "GET", url,
                retries=self.retries, limiter=self.limiter,
                headers=headers, allow_redirects=False, stream=True,
            )
        except (requests.RequestException, RetryableHTTPError) as e:
            logger.debug(f"Rendition request failed for {url}: {e}")
            return None
        try:
            return interpret_rendition_response(resp, url)
        finally:
            resp.close()

    def _request_generation(self, catalog_id: str, asset_id: str, headers: dict) -> bool:
        url = f"{self.api_base}/catalogs/{catalog_id}/assets/{asset_id}/renditions"
        gen_headers = dict(headers)
        gen_headers.update({"X-Generate-Renditions": GENERATED_RENDITION, "Content-Length": "0"})
        try:
            resp = request_with_retry(
                self.session, "POST", url, retries=self.retries, limiter=self.limiter, headers=gen_headers
            )
        except (requests.RequestException, RetryableHTTPError) as e:
            logger.debug(f"Rendition generation request failed for {asset_id}: {e}")
            return False
        # 202 Accepted: generation started; 201 Created: already there
        return resp.status_code in (201, 202) or resp.ok

    def _wait_for_rendition(self, catalog_id: str, asset_id: str, headers: dict) -> bool:
        """Poll with exponential backoff until the generated rendition exists."""
        url = self._rendition_url(catalog_id, asset_id, GENERATED_RENDITION)
        deadline = time.monotonic() + self.generate_wait
        delay = 1.0
        while time.monotonic() < deadline:
            try:
                resp = self.session.head(url, headers=headers, timeout=10)
                if resp.ok:
                    return True
            except requests.RequestException as e:
                logger.debug(f"Polling rendition for {asset_id} failed: {e}")
            time.sleep(delay)
            delay = min(delay * 1.5, 5.0)
        return False


def interpret_rendition_response(resp: requests.Response, request_url: str) -> Optional[str]:
    """
    Turn a rendition endpoint response into a download URL: a redirect target,
    the request URL itself for an image body, or a URL carried in a JSON body.
    """
    if resp.status_code in REDIRECT_STATUS:
        location = resp.headers.get("Location")
        return urljoin(request_url, location) if location else None

    if not resp.ok:
        return None

    content_type = resp.headers.get("Content-Type", "")
    if "image" in content_type:
        return request_url

    try:
        body = parse_vendor_response(resp.text)
    except ResolutionError:
        return None
    if not isinstance(body, dict):
        return None
    href = body.get("href") or body.get("url") or (((body.get("links") or {}).get("self") or {}).get("href"))
    if not href:
        return None
    return urljoin(body.get("base") or request_url, href)
