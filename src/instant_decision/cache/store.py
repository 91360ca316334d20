"""Durable, TTL-bound decision cache keyed by context fingerprint."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import asdict, replace
from pathlib import Path
from threading import Lock

from instant_decision.cache.models import CacheEntry, CacheStats

CACHE_SCHEMA_VERSION = 1

Clock = Callable[[], float]

logger = logging.getLogger(__name__)


class DecisionCache:
    """Stores resolved decisions with expiry and hit counting.

    Expired entries stay on disk until an explicit ``sweep``, ``evict`` or an
    overwrite of the same key; a lookup miss never removes anything.
    """

    def __init__(self, path: Path | None = None, clock: Clock = time.time) -> None:
        self._path = path
        self._clock = clock
        self._store_lock = Lock()
        self._write_lock = Lock()
        self._version = 0
        self._written_version = 0
        self._key_locks_guard = Lock()
        self._key_locks: dict[str, Lock] = {}
        self._load_warnings: list[str] = []
        self._entries: dict[str, CacheEntry] = self._load()

    @property
    def path(self) -> Path | None:
        """Return on-disk store path, or None for an in-memory cache."""
        return self._path

    @property
    def load_warnings(self) -> tuple[str, ...]:
        """Warnings recorded while loading the persisted store."""
        return tuple(self._load_warnings)

    def put(
        self,
        key: str,
        decision: str,
        rationale: str,
        confidence: float,
        ttl: float,
    ) -> CacheEntry:
        """Store a decision for ``ttl`` seconds, keeping any prior hit count."""
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        if not 0.0 <= confidence <= 1.0:
            raise ValueError("confidence must be within [0, 1]")
        with self._lock_for(key):
            now = self._clock()
            with self._store_lock:
                existing = self._entries.get(key)
                entry = CacheEntry(
                    key=key,
                    decision=decision,
                    rationale=rationale,
                    confidence=confidence,
                    created_at=now,
                    expires_at=now + ttl,
                    hit_count=existing.hit_count if existing is not None else 0,
                )
                self._entries[key] = entry
                self._version += 1
            self._flush()
        return entry

    def get(self, key: str) -> CacheEntry | None:
        """Return a live entry with its hit count incremented, else None."""
        with self._lock_for(key):
            now = self._clock()
            with self._store_lock:
                entry = self._entries.get(key)
                if entry is None or not entry.is_live(now):
                    return None
                refreshed = replace(entry, hit_count=entry.hit_count + 1)
                self._entries[key] = refreshed
                self._version += 1
            self._flush()
        return refreshed

    def peek(self, key: str) -> CacheEntry | None:
        """Return the stored entry, live or expired, without counting a hit."""
        with self._store_lock:
            return self._entries.get(key)

    def evict(self, key: str) -> bool:
        """Remove one entry; return whether it existed."""
        with self._lock_for(key):
            with self._store_lock:
                if self._entries.pop(key, None) is None:
                    return False
                self._version += 1
            self._flush()
        return True

    def sweep(self) -> int:
        """Remove every expired entry and return how many were removed."""
        now = self._clock()
        with self._store_lock:
            expired = [key for key, entry in self._entries.items() if not entry.is_live(now)]
            for key in expired:
                del self._entries[key]
            if expired:
                self._version += 1
        if expired:
            self._flush()
        return len(expired)

    def stats(self) -> CacheStats:
        """Summarize stored entries; hit and confidence totals cover live entries."""
        now = self._clock()
        with self._store_lock:
            entries = list(self._entries.values())
        live = [entry for entry in entries if entry.is_live(now)]
        average = sum(entry.confidence for entry in live) / len(live) if live else 0.0
        return CacheStats(
            total_entries=len(entries),
            live_entries=len(live),
            expired_entries=len(entries) - len(live),
            total_hits=sum(entry.hit_count for entry in live),
            average_confidence=average,
        )

    def __len__(self) -> int:
        with self._store_lock:
            return len(self._entries)

    def _lock_for(self, key: str) -> Lock:
        with self._key_locks_guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = Lock()
                self._key_locks[key] = lock
            return lock

    def _load(self) -> dict[str, CacheEntry]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as error:
            return self._reset(f"Decision cache unreadable, starting empty: {error}")
        if not isinstance(payload, dict):
            return self._reset("Decision cache payload is not an object, starting empty.")
        schema = payload.get("schema_version")
        if schema != CACHE_SCHEMA_VERSION:
            return self._reset(
                f"Decision cache schema {schema!r} is unsupported, starting empty."
            )
        rows = payload.get("entries")
        if not isinstance(rows, list):
            return self._reset("Decision cache entries are not a list, starting empty.")

        output: dict[str, CacheEntry] = {}
        skipped = 0
        for row in rows:
            entry = _entry_from_row(row)
            if entry is None:
                skipped += 1
                continue
            output[entry.key] = entry
        if skipped:
            message = f"Skipped {skipped} malformed decision cache entries."
            logger.warning(message)
            self._load_warnings.append(message)
        return output

    def _reset(self, message: str) -> dict[str, CacheEntry]:
        logger.warning(message)
        self._load_warnings.append(message)
        return {}

    def _flush(self) -> None:
        """Write the newest state unless a concurrent flush already covered it.

        The store lock is never held across disk I/O, so ``peek`` and ``stats``
        do not wait on a write. A writer queued behind the write lock skips
        its write when an earlier writer already saved a newer state.
        """
        if self._path is None:
            return
        with self._write_lock:
            with self._store_lock:
                if self._written_version == self._version:
                    return
                version = self._version
                rows = [asdict(self._entries[key]) for key in sorted(self._entries)]
            self._write(self._path, rows)
            self._written_version = version

    def _write(self, path: Path, rows: list[dict[str, object]]) -> None:
        payload = {"schema_version": CACHE_SCHEMA_VERSION, "entries": rows}
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(path.suffix + ".tmp")
            with tmp.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, sort_keys=True)
                handle.write("\n")
            tmp.replace(path)
        except OSError as error:
            logger.warning("Decision cache could not be written, keeping it in memory: %s", error)


def _entry_from_row(row: object) -> CacheEntry | None:
    if not isinstance(row, dict):
        return None
    key = row.get("key")
    decision = row.get("decision")
    rationale = row.get("rationale")
    confidence = row.get("confidence")
    created_at = row.get("created_at")
    expires_at = row.get("expires_at")
    hit_count = row.get("hit_count")
    if not isinstance(key, str) or not isinstance(decision, str):
        return None
    if not isinstance(rationale, str):
        return None
    if not isinstance(confidence, (int, float)) or not 0.0 <= confidence <= 1.0:
        return None
    if not isinstance(created_at, (int, float)) or not isinstance(expires_at, (int, float)):
        return None
    if expires_at <= created_at:
        return None
    if not isinstance(hit_count, int) or hit_count < 0:
        return None
    return CacheEntry(
        key=key,
        decision=decision,
        rationale=rationale,
        confidence=float(confidence),
        created_at=float(created_at),
        expires_at=float(expires_at),
        hit_count=hit_count,
    )
