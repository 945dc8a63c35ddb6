from __future__ import annotations

import math

import numpy as np

from waveraster.errors import InvalidRange, InvalidSampleRate
from waveraster.models import Samples, Seconds, TimeRange


def resolve(time_range: TimeRange, sample_rate: float, total_samples: int) -> tuple[int, int]:
    """Resolve a time window into a clamped ``[start, end)`` sample index range.

    Ordering is checked on the unclamped indices so that a reversed window is
    reported even when both ends fall outside the buffer.
    """
    match time_range:
        case Samples(start=start, end=end):
            start_idx, end_idx = int(start), int(end)
        case Seconds(start=start, end=end):
            if not math.isfinite(sample_rate) or sample_rate <= 0.0:
                raise InvalidSampleRate(f"sample rate must be positive, got {sample_rate}")
            if not (math.isfinite(start) and math.isfinite(end)):
                raise InvalidRange(f"time range must be finite, got ({start}, {end})")
            start_idx = int(np.rint(start * sample_rate))
            end_idx = int(np.rint(end * sample_rate))
        case _:
            raise TypeError(f"unsupported time range: {time_range!r}")

    if start_idx > end_idx:
        raise InvalidRange(f"range start {start_idx} exceeds end {end_idx}")
    total = max(0, int(total_samples))
    return _clamp(start_idx, total), _clamp(end_idx, total)


def _clamp(index: int, total: int) -> int:
    return max(0, min(index, total))
