"""Modification-aware in-memory cache, one instance per project root.

File entries remember the ``(mtime_ns, size)`` stamp of their source file and
are only served while the file on disk still carries that stamp.  Scan
entries are only bounded by their TTL.  A daemon thread sweeps expired
entries; its lifetime is explicit (:meth:`ScanCache.start` /
:meth:`ScanCache.close`).
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from context_collector.domain.entities import CacheStats, FileStamp

logger = logging.getLogger(__name__)

# Bump when the payload layout changes; old keys then never match.
CACHE_VERSION = "1"
FILE_NAMESPACE = "file"
SCAN_NAMESPACE = "scan"


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: str
    payload: Any
    created_at: float
    ttl: float
    source: str | None = None
    stamp: FileStamp | None = None

    def expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl


def file_key(path: str, fingerprint: str) -> str:
    return f"{CACHE_VERSION}:{FILE_NAMESPACE}:{fingerprint}:{path}"


def scan_key(fingerprint: str) -> str:
    return f"{CACHE_VERSION}:{SCAN_NAMESPACE}:{fingerprint}"


def _namespace(key: str) -> str | None:
    parts = key.split(":", 2)
    return parts[1] if len(parts) >= 2 else None


class ScanCache:
    """Thread-safe TTL cache with stamp validation and a size ceiling.

    Parameters
    ----------
    root:
        Project root; ``source`` paths given to :meth:`set` are relative to it.
    ttl_seconds:
        Lifetime of every entry.
    max_entries:
        Ceiling on the entry count; overflow evicts oldest entries first.
    sweep_interval_seconds:
        Period of the background sweep once :meth:`start` has been called.
    clock:
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        root: Path,
        *,
        ttl_seconds: float = 300.0,
        max_entries: int = 1000,
        sweep_interval_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0 or max_entries <= 0 or sweep_interval_seconds <= 0:
            raise ValueError("Cache TTL, size and sweep interval must be positive.")
        self._root = Path(root)
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock

        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

    # ── Keys ────────────────────────────────────────────────────────────

    file_key = staticmethod(file_key)
    scan_key = staticmethod(scan_key)

    # ── Core operations ─────────────────────────────────────────────────

    def get(self, key: str) -> Any | None:
        """Return the cached payload, or ``None`` on a miss.

        File entries are re-stamped first; any mismatch (or a failed stat)
        removes the entry and counts as a miss.
        """
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            self._record(hit=False)
            return None

        if entry.expired(self._clock()):
            self._discard(entry)
            self._record(hit=False)
            return None

        if entry.source is not None and entry.stamp != self._stat(entry.source):
            logger.debug("Cache entry for %s is stale", entry.source)
            self._discard(entry)
            self._record(hit=False)
            return None

        self._record(hit=True)
        return entry.payload

    def set(
        self,
        key: str,
        value: Any,
        *,
        source: str | None = None,
        stamp: FileStamp | None = None,
    ) -> None:
        """Store *value*; with *source*, tie its validity to that file's stamp.

        Pass the *stamp* captured before the file was read so a write racing
        the read is detected on the next :meth:`get`.
        """
        if source is not None and stamp is None:
            stamp = self._stat(source)
            if stamp is None:
                logger.warning("Not caching %s: file could not be stat'ed", source)
                return

        entry = CacheEntry(
            key=key,
            payload=value,
            created_at=self._clock(),
            ttl=self._ttl,
            source=source,
            stamp=stamp,
        )
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = entry
            self._evict_overflow()

    def sweep(self) -> int:
        """Remove every TTL-expired entry.  Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expired(now)]
            for k in expired:
                del self._entries[k]
        if expired:
            logger.debug("Cache sweep removed %d expired entr(ies)", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            namespaces = [_namespace(k) for k in self._entries]
            return CacheStats(
                entry_count=len(namespaces),
                file_entry_count=namespaces.count(FILE_NAMESPACE),
                scan_entry_count=namespaces.count(SCAN_NAMESPACE),
                hits=self._hits,
                misses=self._misses,
            )

    # ── Lifetime ────────────────────────────────────────────────────────

    def start(self) -> ScanCache:
        """Start the background sweep thread (idempotent)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return self
        self._stop.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name=f"scan-cache-sweep:{self._root.name}",
            daemon=True,
        )
        self._sweeper.start()
        return self

    def close(self) -> None:
        """Stop the sweep thread and drop every entry."""
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=5)
            self._sweeper = None
        self.clear()

    def __enter__(self) -> ScanCache:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ── Internals ───────────────────────────────────────────────────────

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self._sweep_interval):
            self.sweep()

    def _stat(self, source: str) -> FileStamp | None:
        try:
            st = (self._root / source).stat()
        except OSError as exc:
            logger.warning("Cache could not stat %s: %s", source, exc)
            return None
        return FileStamp(mtime_ns=st.st_mtime_ns, size=st.st_size)

    def _discard(self, entry: CacheEntry) -> None:
        with self._lock:
            if self._entries.get(entry.key) is entry:
                del self._entries[entry.key]

    def _record(self, *, hit: bool) -> None:
        with self._lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    def _evict_overflow(self) -> None:
        # Caller holds the lock.  Dict order is insertion order, so the
        # first keys are the oldest.
        overflow = len(self._entries) - self._max_entries
        if overflow <= 0:
            return
        for key in list(self._entries)[:overflow]:
            del self._entries[key]
        logger.debug("Cache evicted %d oldest entr(ies)", overflow)
