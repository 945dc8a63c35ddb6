import numpy as np
import pytest

from waveraster.aggregation import aggregate, bucket_edges


def _brute_force(samples: np.ndarray, start: int, end: int, num_columns: int) -> np.ndarray:
    length = end - start
    result = np.empty((num_columns, 2), dtype=np.float64)
    for index in range(num_columns):
        lo = start + (index * length) // num_columns
        hi = start + ((index + 1) * length) // num_columns
        if hi > lo:
            chunk = samples[lo:hi]
            result[index] = (chunk.min(), chunk.max())
        else:
            value = samples[min(lo, samples.size - 1)]
            result[index] = (value, value)
    return result


@pytest.mark.parametrize(
    ("start", "end", "num_columns"),
    [(0, 6, 3), (0, 7, 3), (3, 1000, 7), (10, 11, 5), (5, 5, 4), (0, 44100, 800), (17, 9973, 1024)],
)
def test_bucket_edges_partition_range_exactly(start: int, end: int, num_columns: int) -> None:
    edges = bucket_edges(start, end, num_columns)

    assert edges.size == num_columns + 1
    assert edges[0] == start
    assert edges[-1] == end
    assert np.all(np.diff(edges) >= 0)
    assert int(np.diff(edges).sum()) == end - start
    sizes = np.diff(edges)
    if end - start >= num_columns:
        assert sizes.max() - sizes.min() <= 1


def test_aggregate_concrete_buckets() -> None:
    samples = np.array([0.0, 1.0, -1.0, 0.5, -0.5, 0.0])

    extents = aggregate(samples, 0, 6, 3)

    assert extents.tolist() == [[0.0, 1.0], [-1.0, 0.5], [-0.5, 0.0]]


def test_aggregate_matches_brute_force_on_uneven_buckets() -> None:
    rng = np.random.default_rng(7)
    samples = rng.uniform(-1.0, 1.0, 10_007)

    for start, end, num_columns in [(0, 10_007, 640), (123, 9_000, 333), (4_000, 4_019, 7)]:
        expected = _brute_force(samples, start, end, num_columns)
        np.testing.assert_array_equal(aggregate(samples, start, end, num_columns), expected)


def test_aggregate_min_never_exceeds_max() -> None:
    rng = np.random.default_rng(11)
    samples = rng.normal(0.0, 0.5, 50_000).astype(np.float32)

    extents = aggregate(samples, 1_000, 49_000, 999)

    assert extents.shape == (999, 2)
    assert np.all(extents[:, 0] <= extents[:, 1])


def test_aggregate_more_columns_than_samples_repeats_nearest_sample() -> None:
    samples = np.array([0.25, -0.75, 0.5])

    extents = aggregate(samples, 0, 3, 8)

    assert extents.shape == (8, 2)
    np.testing.assert_array_equal(extents, _brute_force(samples, 0, 3, 8))
    assert np.all(extents[:, 0] == extents[:, 1])


def test_aggregate_zero_length_range_uses_nearest_sample() -> None:
    samples = np.array([0.1, 0.2, 0.3])

    at_end = aggregate(samples, 3, 3, 2)
    inside = aggregate(samples, 1, 1, 2)

    assert at_end.tolist() == [[0.3, 0.3], [0.3, 0.3]]
    assert inside.tolist() == [[0.2, 0.2], [0.2, 0.2]]


def test_aggregate_zero_columns_returns_empty() -> None:
    extents = aggregate(np.ones(16), 0, 16, 0)

    assert extents.shape == (0, 2)


def test_aggregate_empty_buffer_returns_silent_extents() -> None:
    extents = aggregate(np.zeros(0, dtype=np.float32), 0, 0, 4)

    assert extents.tolist() == [[0.0, 0.0]] * 4


def test_aggregate_rejects_range_outside_samples() -> None:
    with pytest.raises(ValueError):
        aggregate(np.zeros(8), 0, 9, 2)
    with pytest.raises(ValueError):
        aggregate(np.zeros(8), 5, 4, 2)


def test_parallel_aggregate_matches_serial() -> None:
    rng = np.random.default_rng(3)
    samples = rng.uniform(-1.0, 1.0, 200_003)

    serial = aggregate(samples, 17, 199_999, 1_000)
    parallel = aggregate(samples, 17, 199_999, 1_000, max_workers=4)

    np.testing.assert_array_equal(serial, parallel)
