import json
import time
from datetime import datetime, timedelta, timezone

import pytest

from mcpingwidget.constants import SECONDS_PER_DAY
from mcpingwidget.models import ProtocolType, RangeStats
from mcpingwidget.storage import IdentityKey, ServerStorage
from mcpingwidget.week_stats import PingHistory, WeekStatsEngine, local_day_starts

MOMENT = datetime(2021, 2, 14, 8, 12, 43, tzinfo=timezone.utc)


def ts(moment):
    return int(moment.timestamp())


def day_starts(now, seconds_from_midnight):
    midnight = ts(now) - seconds_from_midnight
    return [midnight - SECONDS_PER_DAY * (7 - i) for i in range(8)]


@pytest.fixture
def history():
    data = PingHistory()
    samples = [
        (MOMENT - timedelta(days=12, hours=3), 20, 70),
        (MOMENT - timedelta(days=10, hours=3), 20, 70),
        (MOMENT - timedelta(days=10) + timedelta(hours=4), 20, 40),
        (MOMENT - timedelta(days=9), 20, 40),
        (MOMENT - timedelta(days=6, minutes=12), 13, 40),
        (MOMENT - timedelta(days=6) + timedelta(hours=5), 40, 40),
        (MOMENT - timedelta(days=1, hours=1), 4, 30),
        (MOMENT - timedelta(days=1, minutes=30), 3, 50),
        (MOMENT - timedelta(days=1), 20, 30),
        (MOMENT - timedelta(hours=2), 15, 30),
        (MOMENT - timedelta(minutes=15), 5, 30),
        (MOMENT, 10, 30),
    ]
    for moment, online, max_ in samples:
        data.add_sample(ts(moment), online, max_)
    return data


@pytest.fixture
def storage(tmp_path):
    store = ServerStorage(tmp_path, IdentityKey.for_server("mc.example.com", ProtocolType.JAVA))
    store.ensure()
    return store


def test_trim_outdated_drops_entries_older_than_ten_days(history):
    original_length = len(history)

    history.trim_outdated(ts(MOMENT))

    assert len(history) < original_length
    assert ts(MOMENT - timedelta(days=12, hours=3)) not in history
    assert ts(MOMENT - timedelta(days=10, hours=3)) not in history
    assert ts(MOMENT - timedelta(days=10) + timedelta(hours=4)) in history
    assert ts(MOMENT - timedelta(days=1)) in history
    assert ts(MOMENT) in history


def test_week_stats_buckets_by_local_day(history):
    seconds_from_midnight = 8 * 3600 + 12 * 60 + 43

    stats = history.week_stats(ts(MOMENT), day_starts(MOMENT, seconds_from_midnight))

    assert stats.peak_online == 40
    assert stats.peak_max == 50
    assert stats.daily_stats == (
        RangeStats(),
        RangeStats(average_online=26, peak_online=40, peak_max=40),
        RangeStats(),
        RangeStats(),
        RangeStats(),
        RangeStats(),
        RangeStats(average_online=9, peak_online=20, peak_max=50),
        RangeStats(average_online=10, peak_online=15, peak_max=30),
    )


def test_week_stats_shifted_midnight(history):
    stats = history.week_stats(ts(MOMENT), day_starts(MOMENT, 300))

    assert stats.peak_online == 40
    assert stats.peak_max == 50
    assert stats.daily_stats == (
        RangeStats(average_online=13, peak_online=13, peak_max=40),
        RangeStats(average_online=40, peak_online=40, peak_max=40),
        RangeStats(),
        RangeStats(),
        RangeStats(),
        RangeStats(average_online=3, peak_online=4, peak_max=50),
        RangeStats(average_online=13, peak_online=20, peak_max=30),
        RangeStats(average_online=10, peak_online=10, peak_max=30),
    )


def test_today_bucket_includes_now_and_excludes_future():
    data = PingHistory()
    now = ts(MOMENT)
    data.add_sample(now, 7, 10)
    data.add_sample(now + 1, 99, 99)

    stats = data.week_stats(now, day_starts(MOMENT, 60))

    assert stats.daily_stats[7] == RangeStats(average_online=7, peak_online=7, peak_max=10)


def test_range_stats_empty_range_is_all_zero():
    assert PingHistory().range_stats(0, 100) == RangeStats(0, 0, 0)


def test_range_stats_allows_online_above_max():
    data = PingHistory()
    data.add_sample(10, 60, 50)
    assert data.range_stats(0, 100) == RangeStats(average_online=60, peak_online=60, peak_max=50)


def test_same_second_overwrites():
    data = PingHistory()
    data.add_sample(100, 1, 10)
    data.add_sample(100, 5, 20)
    assert len(data) == 1
    assert data.range_stats(100, 100, inclusive=True) == RangeStats(5, 5, 20)


def test_week_stats_requires_eight_day_starts():
    with pytest.raises(ValueError):
        PingHistory().week_stats(0, [0] * 7)


def test_local_day_starts_are_local_midnights():
    starts = local_day_starts(MOMENT)

    assert starts == day_starts(MOMENT, 8 * 3600 + 12 * 60 + 43)
    assert starts == sorted(starts)


def test_json_document_round_trips():
    data = PingHistory()
    data.add_sample(200, 3, 8)
    data.add_sample(100, 1, 4)

    document = json.loads(json.dumps(data.to_json()))
    restored = PingHistory.from_json(document)

    assert list(document["ping_history"]) == ["100", "200"]
    assert restored.entries == data.entries


def test_record_creates_and_updates_history_file(storage):
    engine = WeekStatsEngine()
    assert not storage.week_stats_path.exists()

    engine.record(storage, 10, 40, now=MOMENT)
    assert storage.week_stats_path.exists()

    stats = engine.record(storage, 20, 50, now=MOMENT + timedelta(minutes=5))
    assert stats.peak_online == 20
    assert stats.peak_max == 50
    assert stats.daily_stats[7] == RangeStats(average_online=15, peak_online=20, peak_max=50)


def test_record_recovers_from_corrupt_file(storage):
    engine = WeekStatsEngine()
    engine.record(storage, 30, 40, now=MOMENT - timedelta(hours=1))

    storage.week_stats_path.write_text("getrekt", encoding="utf-8")

    stats = engine.record(storage, 10, 40, now=MOMENT)
    assert stats.peak_online == 10

    persisted = json.loads(storage.week_stats_path.read_text(encoding="utf-8"))
    assert persisted == {"ping_history": {str(ts(MOMENT)): {"online": 10, "max": 40}}}


@pytest.mark.parametrize(
    "content",
    [
        "",
        "[]",
        "null",
        '{"ping_history": []}',
        '{"ping_history": {"abc": {"online": 1, "max": 2}}}',
        '{"ping_history": {"100": {"online": "1", "max": 2}}}',
        '{"ping_history": {"100": {"online": 1}}}',
        '{"ping_hist',
    ],
)
def test_record_treats_malformed_history_as_empty(storage, content):
    storage.week_stats_path.write_text(content, encoding="utf-8")

    stats = WeekStatsEngine().record(storage, 4, 8, now=MOMENT)

    assert stats.peak_online == 4
    assert stats.daily_stats[:7] == (RangeStats(),) * 7


def test_record_evicts_entries_older_than_ten_days(storage):
    old = ts(MOMENT - timedelta(days=12))
    recent = ts(MOMENT - timedelta(days=2))
    seeded = PingHistory()
    seeded.add_sample(old, 5, 10)
    seeded.add_sample(recent, 6, 10)
    storage.week_stats_path.write_text(json.dumps(seeded.to_json()), encoding="utf-8")

    WeekStatsEngine().record(storage, 1, 10, now=MOMENT)

    persisted = PingHistory.from_json(json.loads(storage.week_stats_path.read_text(encoding="utf-8")))
    assert old not in persisted
    assert recent in persisted
    assert ts(MOMENT) in persisted


def test_record_buckets_same_day_samples_together(storage):
    seeded = PingHistory()
    seeded.add_sample(ts(MOMENT - timedelta(days=6, minutes=12)), 13, 40)
    seeded.add_sample(ts(MOMENT - timedelta(days=6) + timedelta(hours=5)), 40, 40)
    seeded.add_sample(ts(MOMENT - timedelta(days=1)), 20, 30)
    storage.week_stats_path.write_text(json.dumps(seeded.to_json()), encoding="utf-8")

    stats = WeekStatsEngine().record(storage, 10, 30, now=MOMENT)

    assert stats.daily_stats[6].peak_online == 20
    assert stats.daily_stats[1] == RangeStats(average_online=26, peak_online=40, peak_max=40)
    assert stats.daily_stats[7] == RangeStats(average_online=10, peak_online=10, peak_max=30)
    assert stats.peak_online == 40


# US Eastern with its DST rules spelled out, so no tz database is needed.
NEW_YORK_TZ = "EST5EDT,M3.2.0,M11.1.0"


@pytest.fixture
def new_york_tz(monkeypatch):
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", NEW_YORK_TZ)
    time.tzset()


def utc(*args):
    return ts(datetime(*args, tzinfo=timezone.utc))


def test_local_day_starts_follow_local_date_not_utc(new_york_tz):
    # 03:00 UTC on the 14th is still the evening of the 13th in New York.
    now = datetime(2021, 2, 14, 3, 0, tzinfo=timezone.utc)

    starts = local_day_starts(now)

    assert starts[-1] == utc(2021, 2, 13, 5, 0)
    assert starts[0] == utc(2021, 2, 6, 5, 0)
    assert all(b - a == SECONDS_PER_DAY for a, b in zip(starts, starts[1:]))


def test_local_day_starts_across_dst_switch(new_york_tz):
    # Clocks go forward on 2021-03-14, so that local day is 23 hours long.
    now = datetime(2021, 3, 16, 12, 0, tzinfo=timezone.utc)

    starts = local_day_starts(now)

    assert starts == [utc(2021, 3, day, 5, 0) for day in range(9, 15)] + [
        utc(2021, 3, 15, 4, 0),
        utc(2021, 3, 16, 4, 0),
    ]
    assert starts[6] - starts[5] == SECONDS_PER_DAY - 3600


def test_record_buckets_by_local_midnight(new_york_tz, storage):
    now = datetime(2021, 2, 14, 3, 0, tzinfo=timezone.utc)
    seeded = PingHistory()
    # 23:00 local on the 12th, the same UTC date as the next sample.
    seeded.add_sample(utc(2021, 2, 13, 4, 0), 7, 10)
    # 01:00 local on the 13th, which is local "today".
    seeded.add_sample(utc(2021, 2, 13, 6, 0), 3, 10)
    storage.week_stats_path.write_text(json.dumps(seeded.to_json()), encoding="utf-8")

    stats = WeekStatsEngine().record(storage, 5, 10, now=now)

    assert stats.daily_stats[6] == RangeStats(average_online=7, peak_online=7, peak_max=10)
    assert stats.daily_stats[7] == RangeStats(average_online=4, peak_online=5, peak_max=10)
