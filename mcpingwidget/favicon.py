"""On-disk cache of the last favicon each server sent."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .constants import FAVICON_PREFIX
from .models import CachedFavicon
from .storage import ServerStorage, decode_or_default, write_json

logger = logging.getLogger(__name__)


def normalize_favicon(favicon: str) -> str:
    """Trim the media-type prefix so only the base64 payload is kept."""
    if favicon.startswith(FAVICON_PREFIX):
        return favicon[len(FAVICON_PREFIX):]
    return favicon


def _decode_record(raw: Any) -> CachedFavicon:
    if not isinstance(raw, dict):
        raise TypeError(f"expected an object, got {type(raw).__name__}")
    favicon = raw["favicon"]
    if favicon is not None and not isinstance(favicon, str):
        raise TypeError(f"favicon must be a string or null, got {type(favicon).__name__}")
    return CachedFavicon(favicon=favicon)


class FaviconCache:
    """One small ``cached_favicon`` record per server identity.

    A corrupt record reads as if it were absent: the server then has no
    cached icon and is treated as never seen before.
    """

    def load(self, storage: ServerStorage) -> Optional[CachedFavicon]:
        return decode_or_default(storage.cached_favicon_path, _decode_record, lambda: None)

    def store(self, storage: ServerStorage, favicon: Optional[str]) -> CachedFavicon:
        """Overwrite the record with whatever the live probe just returned.

        A server that stopped sending an icon replaces the cached one with
        "no icon".
        """
        record = CachedFavicon(favicon=normalize_favicon(favicon) if favicon is not None else None)
        write_json(storage.cached_favicon_path, record.as_dict())
        logger.debug(
            "Cached favicon for %s (%s)",
            storage.identity.address,
            "present" if record.favicon is not None else "none",
        )
        return record
