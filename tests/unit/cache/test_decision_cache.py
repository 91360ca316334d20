from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from instant_decision.cache import CACHE_SCHEMA_VERSION, DecisionCache


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_get_counts_hits_on_live_entries() -> None:
    clock = FakeClock()
    cache = DecisionCache(clock=clock)
    cache.put("k", "config", "matched", 0.9, ttl=60)

    first = cache.get("k")
    second = cache.get("k")

    assert first is not None and first.hit_count == 1
    assert second is not None and second.hit_count == 2
    assert second.decision == "config"
    assert second.expires_at == 1_060.0


def test_expired_entry_is_a_miss_but_stays_stored() -> None:
    clock = FakeClock()
    cache = DecisionCache(clock=clock)
    cache.put("k", "config", "matched", 0.9, ttl=60)

    clock.now += 60

    assert cache.get("k") is None
    assert len(cache) == 1
    stored = cache.peek("k")
    assert stored is not None and stored.hit_count == 0


def test_overwrite_keeps_hit_count_and_refreshes_expiry() -> None:
    clock = FakeClock()
    cache = DecisionCache(clock=clock)
    cache.put("k", "old", "first", 0.5, ttl=10)
    cache.get("k")
    cache.get("k")

    clock.now += 5
    updated = cache.put("k", "new", "second", 0.8, ttl=10)

    assert updated.hit_count == 2
    assert updated.decision == "new"
    assert updated.created_at == 1_005.0
    assert updated.expires_at == 1_015.0


def test_sweep_removes_only_expired_entries() -> None:
    clock = FakeClock()
    cache = DecisionCache(clock=clock)
    cache.put("short", "a", "r", 0.5, ttl=5)
    cache.put("long", "b", "r", 0.5, ttl=500)

    clock.now += 10

    assert cache.sweep() == 1
    assert cache.peek("short") is None
    assert cache.peek("long") is not None
    assert cache.sweep() == 0


def test_evict_reports_whether_key_existed() -> None:
    cache = DecisionCache(clock=FakeClock())
    cache.put("k", "a", "r", 0.5, ttl=5)

    assert cache.evict("k") is True
    assert cache.evict("k") is False
    assert len(cache) == 0


def test_stats_cover_live_entries_only_for_hits_and_confidence() -> None:
    clock = FakeClock()
    cache = DecisionCache(clock=clock)
    cache.put("a", "x", "r", 0.6, ttl=100)
    cache.put("b", "y", "r", 1.0, ttl=100)
    cache.put("c", "z", "r", 0.1, ttl=1)
    cache.get("a")
    cache.get("c")

    clock.now += 2
    stats = cache.stats()

    assert stats.total_entries == 3
    assert stats.live_entries == 2
    assert stats.expired_entries == 1
    assert stats.total_hits == 1
    assert stats.average_confidence == pytest.approx(0.8)


def test_empty_stats() -> None:
    stats = DecisionCache(clock=FakeClock()).stats()

    assert stats.total_entries == 0
    assert stats.average_confidence == 0.0


@pytest.mark.parametrize(("confidence", "ttl"), [(0.5, 0), (0.5, -1), (1.5, 10), (-0.1, 10)])
def test_put_rejects_invalid_ttl_or_confidence(confidence: float, ttl: float) -> None:
    cache = DecisionCache(clock=FakeClock())

    with pytest.raises(ValueError):
        cache.put("k", "a", "r", confidence, ttl=ttl)
    assert len(cache) == 0


def test_entries_survive_reload(tmp_path: Path) -> None:
    path = tmp_path / "cache" / "decisions.json"
    clock = FakeClock()
    cache = DecisionCache(path, clock=clock)
    cache.put("k", "config", "matched", 0.9, ttl=60)
    cache.get("k")

    reloaded = DecisionCache(path, clock=clock)
    entry = reloaded.get("k")

    assert entry is not None
    assert entry.hit_count == 2
    assert reloaded.load_warnings == ()
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["schema_version"] == CACHE_SCHEMA_VERSION
    assert [row["key"] for row in payload["entries"]] == ["k"]


def test_corrupt_store_resets_to_empty_with_warning(tmp_path: Path) -> None:
    path = tmp_path / "decisions.json"
    path.write_text("{broken", encoding="utf-8")

    cache = DecisionCache(path, clock=FakeClock())

    assert len(cache) == 0
    assert len(cache.load_warnings) == 1
    assert "unreadable" in cache.load_warnings[0]


def test_unknown_schema_resets_to_empty(tmp_path: Path) -> None:
    path = tmp_path / "decisions.json"
    path.write_text(json.dumps({"schema_version": 99, "entries": []}), encoding="utf-8")

    cache = DecisionCache(path, clock=FakeClock())

    assert len(cache) == 0
    assert "unsupported" in cache.load_warnings[0]


def test_malformed_rows_are_skipped_with_warning(tmp_path: Path) -> None:
    path = tmp_path / "decisions.json"
    good = {
        "key": "ok",
        "decision": "a",
        "rationale": "r",
        "confidence": 0.5,
        "created_at": 1.0,
        "expires_at": 2.0,
        "hit_count": 0,
    }
    bad = dict(good, key="bad", confidence=3.0)
    payload = {"schema_version": CACHE_SCHEMA_VERSION, "entries": [good, bad, "junk"]}
    path.write_text(json.dumps(payload), encoding="utf-8")

    cache = DecisionCache(path, clock=FakeClock(0.0))

    assert cache.peek("ok") is not None
    assert cache.peek("bad") is None
    assert cache.load_warnings == ("Skipped 2 malformed decision cache entries.",)


def test_concurrent_gets_on_one_key_keep_every_hit(tmp_path: Path) -> None:
    path = tmp_path / "cache" / "decisions.json"
    cache = DecisionCache(path, clock=FakeClock())
    cache.put("k", "config", "matched", 0.9, ttl=60)
    start = threading.Barrier(8)
    misses: list[int] = []

    def worker() -> None:
        start.wait()
        for attempt in range(50):
            if cache.get("k") is None:
                misses.append(attempt)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert misses == []
    stored = cache.peek("k")
    assert stored is not None and stored.hit_count == 400
    reloaded = DecisionCache(path, clock=FakeClock()).peek("k")
    assert reloaded is not None and reloaded.hit_count == 400
    assert not path.with_suffix(".json.tmp").exists()


def test_peek_does_not_wait_for_a_disk_write(tmp_path: Path) -> None:
    writing = threading.Event()
    release = threading.Event()

    class SlowDiskCache(DecisionCache):
        def _write(self, path: Path, rows: list[dict[str, object]]) -> None:
            writing.set()
            release.wait(5)
            super()._write(path, rows)

    path = tmp_path / "decisions.json"
    cache = SlowDiskCache(path, clock=FakeClock())
    writer = threading.Thread(target=cache.put, args=("k", "config", "matched", 0.9, 60))
    writer.start()
    try:
        assert writing.wait(5)
        entry = cache.peek("k")
        stats = cache.stats()
    finally:
        release.set()
        writer.join()

    assert entry is not None and entry.decision == "config"
    assert stats.live_entries == 1
    assert json.loads(path.read_text(encoding="utf-8"))["entries"][0]["key"] == "k"
