import json
import os
from pathlib import Path

from loguru import logger

# === PATH CONFIGURATION ===
DATA_DIR = Path(os.environ.get("GALLERYSYNC_DATA_DIR", "data"))
OUTPUT_DIR = Path(os.environ.get("GALLERYSYNC_OUTPUT_DIR", "public/photos"))
MANIFEST_FILE = Path(os.environ.get("GALLERYSYNC_MANIFEST", str(OUTPUT_DIR / "albums.json")))
GALLERIES_FILE = Path(os.environ.get("GALLERYSYNC_GALLERIES_FILE", str(DATA_DIR / "galleries.json")))
TOKENS_FILE = Path(os.environ.get("GALLERYSYNC_TOKENS_FILE", str(DATA_DIR / "adobe-tokens.json")))

CONFIG_FILE = Path(os.environ.get("GALLERYSYNC_CONFIG", "sync_config.json"))

# URL prefix under which the rendering layer serves OUTPUT_DIR
PUBLIC_PREFIX = "/photos"

# === LIGHTROOM ENDPOINTS ===
LIGHTROOM_SHARES_API = "https://lightroom.adobe.com/v2"
ADOBE_PHOTOS_API = "https://photos.adobe.io/v2"
LIGHTROOM_API = "https://lr.adobe.io/v2"

# Key the Lightroom web viewer uses for public share requests
PUBLIC_API_KEY = "LightroomMobileWeb1"
ADOBE_CLIENT_ID = os.environ.get("ADOBE_CLIENT_ID", "")

USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"

# === IMAGE OUTPUT ===
IMAGE_SIZES = {
    "thumb": 400,   # square grid thumbnail
    "medium": 1200,  # album view
    "full": 2400,   # photo detail view
}
JPEG_QUALITY = 85

# === SYNC DEFAULTS ===
SYNC_INTERVAL_MINUTES = 30
REQUEST_TIMEOUT = 30
DOWNLOAD_RETRIES = 3
# Per-host spacing (seconds) applied whenever downloads run in parallel
PARALLEL_MIN_REQUEST_INTERVAL = 0.25


def load_user_config() -> dict:
    """
    Load the user's sync_config.json (syncTag, downloadWorkers, minRequestInterval,
    syncInterval, logDir).
    Fallback to defaults for anything not set.
    """
    defaults = {
        "syncTag": os.environ.get("GALLERYSYNC_SYNC_TAG", ""),
        "downloadWorkers": 1,
        "minRequestInterval": None,
        "syncInterval": SYNC_INTERVAL_MINUTES,
        "logDir": None,
    }
    if not CONFIG_FILE.exists():
        logger.debug(f"Config file '{CONFIG_FILE}' not found. Using defaults.")
        return defaults

    with open(CONFIG_FILE, "r", encoding="utf-8") as f:
        user_config = json.load(f)
    defaults.update({k: v for k, v in user_config.items() if v is not None})
    return defaults
