from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import numpy as np

logger = logging.getLogger(__name__)

_MIN_COLUMNS_PER_CHUNK = 64


def bucket_edges(start_idx: int, end_idx: int, num_columns: int) -> np.ndarray:
    """Return the ``num_columns + 1`` bucket boundaries partitioning ``[start_idx, end_idx)``.

    Column ``i`` covers ``[edges[i], edges[i + 1])``. Integer arithmetic keeps
    the partition exact when the range length is not a multiple of the
    column count.
    """
    if num_columns <= 0:
        return np.array([start_idx], dtype=np.int64)
    length = np.int64(max(0, end_idx - start_idx))
    steps = np.arange(num_columns + 1, dtype=np.int64)
    return np.int64(start_idx) + (steps * length) // np.int64(num_columns)


def aggregate(
    samples: np.ndarray,
    start_idx: int,
    end_idx: int,
    num_columns: int,
    max_workers: int = 1,
) -> np.ndarray:
    """Compute the exact ``(min, max)`` extent of every column.

    Returns a float64 array of shape ``(num_columns, 2)``. A column whose
    bucket holds no samples repeats the nearest sample, ``samples[min(lo, total - 1)]``,
    as both min and max.
    """
    if num_columns <= 0:
        return np.empty((0, 2), dtype=np.float64)
    data = np.asarray(samples)
    if start_idx < 0 or start_idx > end_idx or end_idx > data.shape[0]:
        raise ValueError(f"invalid index range [{start_idx}, {end_idx}) for {data.shape[0]} samples")
    edges = bucket_edges(start_idx, end_idx, num_columns)
    if max_workers <= 1 or num_columns < 2 * _MIN_COLUMNS_PER_CHUNK:
        return _aggregate_columns(data, edges)

    chunk_count = min(max_workers, num_columns // _MIN_COLUMNS_PER_CHUNK)
    bounds = np.linspace(0, num_columns, chunk_count + 1, dtype=np.int64)
    chunks = [edges[int(bounds[index]) : int(bounds[index + 1]) + 1] for index in range(chunk_count)]
    logger.debug("aggregating %d columns in %d chunks", num_columns, chunk_count)
    with ThreadPoolExecutor(max_workers=chunk_count, thread_name_prefix="waveraster-aggregate") as executor:
        parts = list(executor.map(lambda chunk: _aggregate_columns(data, chunk), chunks))
    return np.concatenate(parts, axis=0)


def _aggregate_columns(data: np.ndarray, edges: np.ndarray) -> np.ndarray:
    lo = edges[:-1]
    hi = edges[1:]
    extents = np.zeros((lo.size, 2), dtype=np.float64)
    total = int(data.shape[0])
    if total == 0 or lo.size == 0:
        return extents

    filled = hi > lo
    if np.any(filled):
        window_start = int(lo[0])
        window = data[window_start : int(hi[-1])]
        offsets = (lo[filled] - window_start).astype(np.intp)
        # Interleaved (start, end) offsets: even reduceat slots are the buckets, odd slots are discarded.
        ends = (hi[filled] - window_start).astype(np.intp)
        pairs = np.empty(offsets.size * 2, dtype=np.intp)
        pairs[0::2] = offsets
        pairs[1::2] = ends
        padded = np.append(window, window[-1:]) if window.size else window
        extents[filled, 0] = np.minimum.reduceat(padded, pairs)[0::2]
        extents[filled, 1] = np.maximum.reduceat(padded, pairs)[0::2]

    empty = ~filled
    if np.any(empty):
        nearest = np.minimum(lo[empty], total - 1).astype(np.intp)
        values = data[nearest].astype(np.float64)
        extents[empty, 0] = values
        extents[empty, 1] = values
    return extents
