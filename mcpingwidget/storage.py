"""Persistence helpers for per-server cached state."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar, Union
from urllib.parse import quote

from . import constants
from .errors import StorageFault
from .models import ProtocolType

__all__ = [
    "IdentityKey",
    "ServerStorage",
    "decode_or_default",
    "ensure_directory",
    "write_json",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")
PathLike = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class IdentityKey:
    """Normalized (address, protocol) pair that keys all per-server state.

    The address is lowercased so ``MC.Example.COM`` and ``mc.example.com``
    share a cache. The port stays part of the address, so ``host`` and
    ``host:25565`` are still two identities.
    """

    address: str
    protocol_type: ProtocolType

    @classmethod
    def for_server(cls, address: str, protocol_type: ProtocolType) -> "IdentityKey":
        return cls(address.lower(), protocol_type)

    @property
    def folder_name(self) -> str:
        # Quoting keeps ports and path separators inside a single folder name.
        name = quote(self.address, safe="-_.")
        if not name.strip("."):
            name = name.replace(".", "%2E")
        return name


class ServerStorage:
    """File-system layout for one server identity under the data root."""

    def __init__(self, app_data_root: PathLike, identity: IdentityKey) -> None:
        self.identity = identity
        self.base_dir = (
            Path(app_data_root)
            / constants.SERVER_DATA_DIRNAME
            / identity.protocol_type.value
            / identity.folder_name
        )

    @property
    def cached_favicon_path(self) -> Path:
        return self.base_dir / constants.CACHED_FAVICON_FILENAME

    @property
    def week_stats_path(self) -> Path:
        return self.base_dir / constants.WEEK_STATS_FILENAME

    def ensure(self) -> None:
        """Create the server folder(s) if they are missing."""
        ensure_directory(self.base_dir)


def ensure_directory(path: PathLike) -> None:
    """Create a directory if it does not already exist."""
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as exc:
        raise StorageFault(f"creating server folder(s) {path}: {exc}", path=str(path)) from exc


def decode_or_default(path: PathLike, decode: Callable[[Any], T], default: Callable[[], T]) -> T:
    """Read a JSON document from ``path`` and hand it to ``decode``.

    Cached state is an enrichment, never a reason to fail a call: a missing
    file, an unreadable or truncated one, or a document ``decode`` rejects
    (by raising ``KeyError``, ``TypeError``, ``ValueError`` or
    ``AttributeError``) all yield ``default()``.
    """
    try:
        with open(path, "r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except FileNotFoundError:
        return default()
    except (OSError, ValueError) as exc:
        logger.warning("Discarding unreadable state file %s: %s", path, exc)
        return default()

    try:
        return decode(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        logger.warning("Discarding malformed state file %s: %s", path, exc)
        return default()


def write_json(path: PathLike, payload: Any) -> None:
    """Fully overwrite ``path`` with ``payload`` serialized as JSON.

    The document is written to a sibling temporary file first and moved into
    place, so readers see either the old or the new record, never half of one.
    """
    target = Path(path)
    try:
        data = json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise StorageFault(f"serializing {target.name}: {exc}", path=str(target)) from exc

    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(data)
        os.replace(tmp_name, target)
    except OSError as exc:
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
        raise StorageFault(f"writing {target}: {exc}", path=str(target)) from exc
