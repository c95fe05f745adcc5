import datetime
import json
from dataclasses import dataclass
from datetime import timezone
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidTag
from google.oauth2.credentials import Credentials
from loguru import logger

from gallerysync import crypto
from gallerysync.config import ADOBE_CLIENT_ID, TOKENS_FILE


@dataclass
class StoredTokens:
    access_token: str
    refresh_token: str
    expires_at: datetime.datetime  # aware, UTC

    def is_expired(self, now: Optional[datetime.datetime] = None) -> bool:
        now = now or datetime.datetime.now(timezone.utc)
        return now >= self.expires_at


class CredentialStore:
    """
    Reads the Adobe OAuth tokens written by the admin OAuth callback.

    Tokens may be stored encrypted (iv:tag:ciphertext) or in the legacy
    plaintext form. No refresh is attempted here: an expired token simply
    makes private albums unavailable for the run.
    """

    def __init__(self, token_file: Path = TOKENS_FILE, client_id: str = ADOBE_CLIENT_ID):
        self.token_file = Path(token_file)
        self.client_id = client_id

    def load(self) -> Optional[StoredTokens]:
        """
        Load and decrypt tokens. Returns None if the file is missing or unreadable.
        """
        if not self.token_file.exists():
            return None

        try:
            raw = self.token_file.read_text(encoding="utf-8").strip()
            if crypto.is_encrypted(raw):
                raw = crypto.decrypt(raw)
            data = json.loads(raw)

            access_token = self._reveal(data.get("access_token") or data.get("accessToken") or "")
            refresh_token = self._reveal(data.get("refresh_token") or data.get("refreshToken") or "")
            expires_at = _parse_expiry(data.get("expires_at") or data.get("expiresAt"))
        except (OSError, ValueError, TypeError, InvalidTag) as e:
            logger.warning(f"Token file {self.token_file} unreadable: {e}")
            return None

        if not access_token or expires_at is None:
            return None
        return StoredTokens(access_token, refresh_token, expires_at)

    def is_available(self, now: Optional[datetime.datetime] = None) -> bool:
        """True iff tokens exist and have not yet expired."""
        tokens = self.load()
        return bool(tokens and tokens.access_token and not tokens.is_expired(now))

    def credentials(self) -> Optional[Credentials]:
        """
        Bearer credentials for the authenticated catalog API, or None if unavailable.
        """
        tokens = self.load()
        if not tokens or tokens.is_expired():
            return None
        # google-auth expects a naive UTC expiry
        expiry = tokens.expires_at.astimezone(timezone.utc).replace(tzinfo=None)
        return Credentials(token=tokens.access_token, refresh_token=tokens.refresh_token or None, expiry=expiry)

    def auth_headers(self) -> dict:
        """
        Headers for lr.adobe.io requests. Empty if no usable credentials.
        """
        creds = self.credentials()
        if creds is None:
            return {}
        headers = {"X-API-Key": self.client_id}
        creds.apply(headers)
        return headers

    @staticmethod
    def _reveal(value: str) -> str:
        if value and crypto.is_encrypted(value):
            return crypto.decrypt(value)
        return value


def _parse_expiry(value) -> Optional[datetime.datetime]:
    """
    Accepts epoch milliseconds (as written by the OAuth callback), epoch seconds,
    or an ISO-8601 string.
    """
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e11 else value
        return datetime.datetime.fromtimestamp(seconds, tz=timezone.utc)
    dt = datetime.datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
