from typing import List, Optional, Tuple
from urllib.parse import urljoin

import requests
from loguru import logger

from gallerysync.config import ADOBE_PHOTOS_API, LIGHTROOM_API, LIGHTROOM_SHARES_API, PUBLIC_API_KEY, REQUEST_TIMEOUT
from gallerysync.errors import ResolutionError
from gallerysync.http import RetryableHTTPError, request_with_retry
from gallerysync.responses import parse_vendor_response

MAX_PAGES = 50


def public_headers() -> dict:
    """
    Return headers for unauthenticated requests to the shares API.
    """
    return {"Accept": "application/json", "x-api-key": PUBLIC_API_KEY}


def _get_json(session: requests.Session, url: str, headers: dict, retries: int = 1, params: dict = None):
    """
    GET `url` and decode the (possibly prefixed) JSON body.
    Raises ResolutionError on network errors, non-200 status or bad JSON.
    """
    try:
        resp = request_with_retry(session, "GET", url, retries=retries, headers=headers, params=params)
    except (requests.RequestException, RetryableHTTPError) as e:
        raise ResolutionError(f"Request to {url} failed: {e}") from e
    if resp.status_code != 200:
        raise ResolutionError(f"Request to {url} failed: {resp.status_code}")
    return parse_vendor_response(resp.text)


# -----------------------------
# PUBLIC SHARES
# -----------------------------


def fetch_share_page(session: requests.Session, share_url: str) -> str:
    """
    Fetch the HTML of a public share page.
    """
    headers = {"Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"}
    try:
        resp = session.get(share_url, headers=headers, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise ResolutionError(f"Failed to fetch gallery {share_url}: {e}") from e
    if resp.status_code != 200:
        raise ResolutionError(f"Failed to fetch gallery: {resp.status_code}")
    return resp.text


def list_share_assets(
    session: requests.Session, space_id: str, album_id: Optional[str] = None
) -> Tuple[str, List[dict]]:
    """
    List the image assets of a share. Returns (rendition base URL, resources).

    Some shares expose their assets without an album subdivision, so a failed
    album-scoped query is retried once against the space.
    """
    if album_id:
        url = f"{LIGHTROOM_SHARES_API}/spaces/{space_id}/albums/{album_id}/assets"
    else:
        url = f"{LIGHTROOM_SHARES_API}/spaces/{space_id}/assets"

    try:
        data = _get_json(session, url, public_headers(), params={"subtype": "image", "limit": 1000})
    except ResolutionError as e:
        if album_id:
            logger.info(f"Album API failed ({e}), trying space-level assets...")
            return list_share_assets(session, space_id, None)
        raise

    if not isinstance(data, dict):
        raise ResolutionError("Unexpected asset listing shape")
    base_url = data.get("base") or f"{ADOBE_PHOTOS_API}/spaces/{space_id}/"
    resources = data.get("resources") or data.get("assets") or []
    return base_url, resources


def get_share_asset(session: requests.Session, space_id: str, asset_id: str) -> Optional[dict]:
    """
    Retrieve one shared asset with embedded renditions. Returns dict or None.
    """
    url = f"{LIGHTROOM_SHARES_API}/spaces/{space_id}/assets/{asset_id}"
    try:
        data = _get_json(session, url, public_headers(), retries=2, params={"embed": "renditions"})
    except ResolutionError as e:
        logger.warning(f"Failed to fetch asset {asset_id}: {e}")
        return None
    return data if isinstance(data, dict) else None


# -----------------------------
# AUTHENTICATED CATALOG
# -----------------------------


def get_catalog(session: requests.Session, headers: dict) -> dict:
    data = _get_json(session, f"{LIGHTROOM_API}/catalog", headers)
    if not isinstance(data, dict) or not data.get("id"):
        raise ResolutionError("Could not fetch catalog")
    return data


def _paged_resources(session: requests.Session, url: str, headers: dict, params: dict = None) -> List[dict]:
    """
    Follow `links.next` through a paged catalog listing.
    """
    resources = []
    for _ in range(MAX_PAGES):
        data = _get_json(session, url, headers, params=params)
        if not isinstance(data, dict):
            raise ResolutionError("Unexpected catalog listing shape")
        resources.extend(data.get("resources") or [])

        next_href = ((data.get("links") or {}).get("next") or {}).get("href")
        if not next_href:
            break
        url = urljoin(data.get("base") or url, next_href)
        params = None
    return resources


def list_catalog_albums(session: requests.Session, catalog_id: str, headers: dict) -> List[dict]:
    return _paged_resources(session, f"{LIGHTROOM_API}/catalogs/{catalog_id}/albums", headers)


def list_album_assets(session: requests.Session, catalog_id: str, album_id: str, headers: dict) -> List[dict]:
    """
    Album-asset relations with the full asset payload embedded.
    """
    url = f"{LIGHTROOM_API}/catalogs/{catalog_id}/albums/{album_id}/assets"
    return _paged_resources(session, url, headers, params={"embed": "asset", "subtype": "image"})
