"""Value types shared by the probes, the caches and the resolution service."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from .constants import WEEK_BUCKETS
from .errors import ProbeError, StatusError

__all__ = [
    "ProtocolType",
    "Version",
    "Player",
    "Players",
    "ServerInfo",
    "CachedFavicon",
    "HistoryEntry",
    "RangeStats",
    "WeekStats",
    "FaviconKind",
    "Favicon",
    "Online",
    "Offline",
    "Unreachable",
    "Outcome",
]


class ProtocolType(Enum):
    """Which ping protocol(s) to use."""

    JAVA = "java"
    BEDROCK = "bedrock"
    AUTO = "auto"

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: str) -> "ProtocolType":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"unknown protocol type: {value!r}") from None


@dataclass(frozen=True)
class Version:
    name: str
    # See https://wiki.vg/Protocol_version_numbers
    protocol: Optional[int] = None


@dataclass(frozen=True)
class Player:
    name: str
    id: str


@dataclass(frozen=True)
class Players:
    online: int
    max: int
    sample: Tuple[Player, ...] = ()


@dataclass(frozen=True)
class ServerInfo:
    """A parsed status response from one successful probe."""

    protocol_type: ProtocolType
    latency: int
    version: Version
    players: Players
    description: str = ""
    # Raw, e.g. ``data:image/png;base64,<data>``
    favicon: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "protocol_type": self.protocol_type.value,
            "latency": self.latency,
            "version": {"name": self.version.name, "protocol": self.version.protocol},
            "players": {
                "online": self.players.online,
                "max": self.players.max,
                "sample": [{"name": p.name, "id": p.id} for p in self.players.sample],
            },
            "description": self.description,
        }


@dataclass
class CachedFavicon:
    """On-disk record of the last favicon a server sent (bare base64)."""

    favicon: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"favicon": self.favicon}


@dataclass
class HistoryEntry:
    online: int = 0
    max: int = 0

    def update(self, online: int, max_: int) -> None:
        self.online = online
        self.max = max_


@dataclass(frozen=True)
class RangeStats:
    average_online: int = 0
    peak_online: int = 0
    peak_max: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "average_online": self.average_online,
            "peak_online": self.peak_online,
            "peak_max": self.peak_max,
        }


@dataclass(frozen=True)
class WeekStats:
    """Stats for the seven full local days before today plus today so far."""

    daily_stats: Tuple[RangeStats, ...] = field(default_factory=lambda: (RangeStats(),) * WEEK_BUCKETS)
    peak_online: int = 0
    peak_max: int = 0

    def __post_init__(self) -> None:
        if len(self.daily_stats) != WEEK_BUCKETS:
            raise ValueError(f"expected {WEEK_BUCKETS} daily buckets, got {len(self.daily_stats)}")

    def as_dict(self) -> Dict[str, Any]:
        return {
            "daily_stats": [stats.as_dict() for stats in self.daily_stats],
            "peak_online": self.peak_online,
            "peak_max": self.peak_max,
        }


class FaviconKind(Enum):
    SERVER = "server"
    GENERATED = "generated"
    NONE = "none"


@dataclass(frozen=True)
class Favicon:
    """The favicon picked for a response."""

    kind: FaviconKind
    data: Optional[str] = None

    @classmethod
    def missing(cls) -> "Favicon":
        return cls(FaviconKind.NONE)

    def as_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "data": self.data}


@dataclass(frozen=True)
class Online:
    """The server answered a live probe."""

    info: ServerInfo
    favicon: Favicon
    week_stats: WeekStats

    status = "online"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "info": self.info.as_dict(),
            "favicon": self.favicon.as_dict(),
            "week_stats": self.week_stats.as_dict(),
        }


@dataclass(frozen=True)
class Offline:
    """The live probe failed, but the server has been seen before."""

    favicon: Favicon
    week_stats: WeekStats

    status = "offline"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "favicon": self.favicon.as_dict(),
            "week_stats": self.week_stats.as_dict(),
        }


@dataclass(frozen=True)
class Unreachable:
    """Nothing usable: the probe failed with no cache, or something broke."""

    message: str
    error: Optional[StatusError] = None

    status = "unreachable"

    @property
    def transient(self) -> bool:
        """Whether trying again later may help."""
        return isinstance(self.error, ProbeError) and self.error.transient

    def as_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "error": type(self.error).__name__ if self.error is not None else None,
            "transient": self.transient,
        }


Outcome = Union[Online, Offline, Unreachable]

