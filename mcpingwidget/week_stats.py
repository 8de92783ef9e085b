"""Week stats backend.

Collects, stores and hands out player-count stats about a server over the
last week or so. Every call ingests one sample into a per-server history
file, drops entries older than ten days and recomputes the eight daily
buckets from scratch.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from .constants import HISTORY_RETENTION_DAYS, SECONDS_PER_DAY, WEEK_BUCKETS
from .models import HistoryEntry, RangeStats, WeekStats
from .storage import ServerStorage, decode_or_default, write_json

__all__ = ["PingHistory", "WeekStatsEngine", "local_day_starts"]

logger = logging.getLogger(__name__)


def _as_int(value: Any, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an integer, got {value!r}")
    return value


class PingHistory:
    """Ping history entries keyed by unix timestamp (seconds, UTC epoch)."""

    def __init__(self, entries: Optional[Dict[int, HistoryEntry]] = None) -> None:
        self.entries: Dict[int, HistoryEntry] = dict(entries or {})

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, timestamp: object) -> bool:
        return timestamp in self.entries

    @classmethod
    def from_json(cls, raw: Any) -> "PingHistory":
        history = raw["ping_history"]
        if not isinstance(history, dict):
            raise TypeError("ping_history must be an object")
        entries: Dict[int, HistoryEntry] = {}
        for key, value in history.items():
            entries[int(key)] = HistoryEntry(
                online=_as_int(value["online"], "online"),
                max=_as_int(value["max"], "max"),
            )
        return cls(entries)

    def to_json(self) -> Dict[str, Any]:
        return {
            "ping_history": {
                str(ts): {"online": entry.online, "max": entry.max}
                for ts, entry in sorted(self.entries.items())
            }
        }

    def trim_outdated(self, now_ts: int) -> None:
        """Drop entries older than the retention window (ten days)."""
        cutoff = now_ts - HISTORY_RETENTION_DAYS * SECONDS_PER_DAY
        self.entries = {ts: entry for ts, entry in self.entries.items() if ts >= cutoff}

    def add_sample(self, timestamp: int, online: int, max_: int) -> None:
        self.entries.setdefault(timestamp, HistoryEntry()).update(online, max_)

    def range_stats(self, start: int, end: int, *, inclusive: bool = False) -> RangeStats:
        """Return stats for entries in ``[start, end)`` (or ``[start, end]``)."""
        num_entries = 0
        total_online = 0
        peak_online = 0
        peak_max = 0

        for ts, entry in self.entries.items():
            if ts < start or ts > end or (ts == end and not inclusive):
                continue
            num_entries += 1
            total_online += entry.online
            peak_online = max(peak_online, entry.online)
            peak_max = max(peak_max, entry.max)

        return RangeStats(
            average_online=total_online // num_entries if num_entries else 0,
            peak_online=peak_online,
            peak_max=peak_max,
        )

    def week_stats(self, now_ts: int, day_starts: Sequence[int]) -> WeekStats:
        """Build ``WeekStats`` from the current entries.

        ``day_starts`` holds the epoch timestamps of the eight most recent
        local midnights in ascending order, the last one being today's.
        """
        if len(day_starts) != WEEK_BUCKETS:
            raise ValueError(f"expected {WEEK_BUCKETS} day starts, got {len(day_starts)}")

        daily_stats: List[RangeStats] = [
            self.range_stats(day_starts[i], day_starts[i + 1]) for i in range(WEEK_BUCKETS - 1)
        ]
        daily_stats.append(self.range_stats(day_starts[-1], now_ts, inclusive=True))

        return WeekStats(
            daily_stats=tuple(daily_stats),
            peak_online=max(stats.peak_online for stats in daily_stats),
            peak_max=max(stats.peak_max for stats in daily_stats),
        )


def local_day_starts(now: datetime) -> List[int]:
    """Epoch timestamps of the local midnights starting each week bucket.

    Computed per calendar day in the local time zone, so a DST switch inside
    the week still yields true calendar-day boundaries.
    """
    today = now.astimezone().date()
    return [
        int(time.mktime((today - timedelta(days=WEEK_BUCKETS - 1 - i)).timetuple()))
        for i in range(WEEK_BUCKETS)
    ]


class WeekStatsEngine:
    """Durable time-series store feeding the week stats."""

    def record(
        self,
        storage: ServerStorage,
        observed_online: int,
        observed_max: int,
        now: Optional[datetime] = None,
    ) -> WeekStats:
        now = now or datetime.now(timezone.utc)
        now_ts = int(now.timestamp())

        # A corrupt file starts the history over instead of failing the call.
        history = decode_or_default(storage.week_stats_path, PingHistory.from_json, PingHistory)
        history.trim_outdated(now_ts)
        history.add_sample(now_ts, observed_online, observed_max)
        write_json(storage.week_stats_path, history.to_json())

        logger.debug(
            "Recorded %s/%s players for %s (%d history entries)",
            observed_online,
            observed_max,
            storage.identity.address,
            len(history),
        )
        return history.week_stats(now_ts, local_day_starts(now))
