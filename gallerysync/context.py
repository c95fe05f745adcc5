"""State shared by every component for the duration of one sync run."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import requests

from gallerysync import lightroom_api as lr


@dataclass
class RunContext:
    """
    Populated once at the start of a run and only read afterwards, except for
    the catalog id which is fetched lazily the first time a private album needs it.
    """

    session: requests.Session
    auth_headers: Dict[str, str] = field(default_factory=dict)
    catalog_id: Optional[str] = None
    # asset id -> (title, caption) from the authenticated catalog
    catalog_metadata: Dict[str, Tuple[Optional[str], Optional[str]]] = field(default_factory=dict)
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def authenticated(self) -> bool:
        return bool(self.auth_headers)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def ensure_catalog_id(self) -> str:
        if self.catalog_id is None:
            self.catalog_id = lr.get_catalog(self.session, self.auth_headers)["id"]
        return self.catalog_id

    def catalog_override(self, asset_id: str) -> Tuple[Optional[str], Optional[str]]:
        return self.catalog_metadata.get(asset_id, (None, None))
