from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future

import numpy as np

from waveraster.aggregation import aggregate, bucket_edges
from waveraster.models import CacheEntry, SampleBuffer

logger = logging.getLogger(__name__)

_EntryKey = tuple[str, int]
_BuildKey = tuple[str, int, int]


class SummaryCache:
    """Per-buffer min/max summaries at a fixed base resolution.

    Entries are keyed by ``(buffer identity, base resolution)`` and tagged with
    the buffer version they were built from. Reading a current entry takes no
    lock; a missing or stale entry is built once per version and concurrent
    requesters wait on the same build.

    With ``max_entries`` set, the entries stored first are dropped first.
    Reads take no lock and so do not refresh an entry's position.
    """

    def __init__(self, max_entries: int | None = None, max_workers: int = 1) -> None:
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._entries: dict[_EntryKey, CacheEntry] = {}
        self._pending: dict[_BuildKey, Future[CacheEntry]] = {}
        self._lock = threading.Lock()
        self._max_entries = max_entries
        self._max_workers = max(1, int(max_workers))
        self.build_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get_or_build(self, buffer: SampleBuffer, base_resolution: int) -> CacheEntry:
        if base_resolution <= 0:
            raise ValueError(f"base resolution must be positive, got {base_resolution}")
        samples, version = buffer.snapshot()
        key = (buffer.identity, int(base_resolution))

        entry = self._entries.get(key)
        if entry is not None and entry.version == version:
            return entry

        build_key = (key[0], key[1], version)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.version == version:
                return entry
            future = self._pending.get(build_key)
            is_owner = future is None
            if future is None:
                future = Future()
                self._pending[build_key] = future

        if not is_owner:
            return future.result()

        try:
            entry = self._build(key, samples, version)
        except BaseException as exc:
            logger.exception("failed to build summary for %s at base resolution %d", key[0], key[1])
            future.set_exception(exc)
            raise
        else:
            with self._lock:
                self.build_count += 1
                self._store(key, entry)
            future.set_result(entry)
            return entry
        finally:
            with self._lock:
                self._pending.pop(build_key, None)

    def evict(self, buffer: SampleBuffer | str) -> int:
        identity = buffer if isinstance(buffer, str) else buffer.identity
        with self._lock:
            keys = [key for key in self._entries if key[0] == identity]
            for key in keys:
                del self._entries[key]
        if keys:
            logger.debug("evicted %d summary entries for %s", len(keys), identity)
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries = {}
        logger.debug("cleared %d summary entries", count)

    def _build(self, key: _EntryKey, samples: np.ndarray, version: int) -> CacheEntry:
        identity, base_resolution = key
        total = int(samples.shape[0])
        t0 = time.perf_counter()
        extents = aggregate(samples, 0, total, base_resolution, max_workers=self._max_workers)
        extents.flags.writeable = False
        elapsed_ms = (time.perf_counter() - t0) * 1000.0
        logger.info(
            "built summary for %s: %d samples into %d buckets (version %d) in %.1f ms",
            identity,
            total,
            base_resolution,
            version,
            elapsed_ms,
        )
        return CacheEntry(
            identity=identity,
            base_resolution=base_resolution,
            version=version,
            total_samples=total,
            extents=extents,
        )

    def _store(self, key: _EntryKey, entry: CacheEntry) -> None:
        current = self._entries.get(key)
        if current is not None and current.version > entry.version:
            return
        self._entries.pop(key, None)
        self._entries[key] = entry
        if self._max_entries is None:
            return
        while len(self._entries) > self._max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug("dropped summary entry %s to stay within %d entries", oldest, self._max_entries)


def render_from_cache(entry: CacheEntry, start_idx: int, end_idx: int, num_columns: int) -> np.ndarray:
    """Re-bucket cached extents to a window and width.

    Every output column merges all cached buckets its samples fall in, so the
    result always contains the exact extent. It equals the exact extent when
    the output buckets line up with the cached ones, e.g. ``num_columns`` equal
    to the base resolution over the whole buffer.
    """
    if num_columns <= 0:
        return np.empty((0, 2), dtype=np.float64)
    if num_columns > entry.base_resolution:
        raise ValueError(f"cannot render {num_columns} columns from {entry.base_resolution} cached buckets")
    total = entry.total_samples
    if start_idx < 0 or start_idx > end_idx or end_idx > total:
        raise ValueError(f"invalid index range [{start_idx}, {end_idx}) for {total} cached samples")
    if total == 0:
        return np.zeros((num_columns, 2), dtype=np.float64)

    cached_edges = bucket_edges(0, total, entry.base_resolution)
    edges = bucket_edges(start_idx, end_idx, num_columns)
    lo = edges[:-1]
    hi = edges[1:]
    empty = hi <= lo
    first_sample = np.where(empty, np.minimum(lo, total - 1), lo)
    last_sample = np.where(empty, first_sample, hi - 1)
    first_bucket = np.searchsorted(cached_edges, first_sample, side="right") - 1
    last_bucket = np.searchsorted(cached_edges, last_sample, side="right") - 1

    pairs = np.empty(num_columns * 2, dtype=np.intp)
    pairs[0::2] = first_bucket
    pairs[1::2] = last_bucket + 1
    mins = entry.extents[:, 0]
    maxs = entry.extents[:, 1]
    result = np.empty((num_columns, 2), dtype=np.float64)
    result[:, 0] = np.minimum.reduceat(np.append(mins, mins[-1:]), pairs)[0::2]
    result[:, 1] = np.maximum.reduceat(np.append(maxs, maxs[-1:]), pairs)[0::2]
    return result
