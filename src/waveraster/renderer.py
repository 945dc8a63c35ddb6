from __future__ import annotations

import logging
from dataclasses import replace

import numpy as np

from waveraster.aggregation import aggregate
from waveraster.errors import InvalidDimensions, WaveformError
from waveraster.models import ColumnSummary, PixelBuffer, RendererSettings, RenderSpec, SampleBuffer, TimeRange
from waveraster.output import parse_format
from waveraster.rasterizer import background_frame, draw, draw_into, fill_background_into
from waveraster.summary_cache import SummaryCache, render_from_cache
from waveraster.time_range import resolve

logger = logging.getLogger(__name__)


class WaveformRenderer:
    """Render sample buffers into waveform pixel buffers.

    The renderer itself is stateless. Attaching a ``SummaryCache`` lets long
    windows be drawn from precomputed extents, which can widen column extents
    slightly when the window does not line up with the cached buckets; pass
    ``exact=True`` to always scan the raw samples.
    """

    def __init__(self, settings: RendererSettings | None = None, cache: SummaryCache | None = None) -> None:
        self.settings = settings or RendererSettings()
        self.cache = cache

    def render(
        self,
        buffer: SampleBuffer,
        time_range: TimeRange,
        spec: RenderSpec,
        *,
        exact: bool = False,
    ) -> PixelBuffer:
        spec = _validated_spec(spec)
        extents = self._extents_or_none(buffer, time_range, spec.width, exact=exact)
        if extents is None:
            return background_frame(spec)
        return draw(extents, spec)

    def render_into(
        self,
        buffer: SampleBuffer,
        time_range: TimeRange,
        spec: RenderSpec,
        target: np.ndarray,
        offset: tuple[int, int] = (0, 0),
        *,
        exact: bool = False,
    ) -> None:
        spec = _validated_spec(spec)
        extents = self._extents_or_none(buffer, time_range, spec.width, exact=exact)
        if extents is None:
            fill_background_into(spec, target, offset)
            return
        draw_into(extents, spec, target, offset)

    def column_extents(
        self,
        buffer: SampleBuffer,
        time_range: TimeRange,
        width: int,
        *,
        exact: bool = False,
    ) -> np.ndarray:
        if width < 1:
            raise InvalidDimensions(f"width must be at least 1, got {width}")
        extents = self._extents_or_none(buffer, time_range, width, exact=exact)
        if extents is None:
            return np.zeros((width, 2), dtype=np.float64)
        return extents

    def column_summaries(
        self,
        buffer: SampleBuffer,
        time_range: TimeRange,
        width: int,
        *,
        exact: bool = False,
    ) -> list[ColumnSummary]:
        return ColumnSummary.from_extents(self.column_extents(buffer, time_range, width, exact=exact))

    def _extents_or_none(
        self,
        buffer: SampleBuffer,
        time_range: TimeRange,
        width: int,
        *,
        exact: bool,
    ) -> np.ndarray | None:
        samples, version = buffer.snapshot()
        total = int(samples.shape[0])
        start_idx, end_idx = resolve(time_range, buffer.sample_rate, total)
        if total == 0 or start_idx == end_idx:
            return None

        length = end_idx - start_idx
        cache = self.cache
        if cache is not None and not exact and self._should_use_cache(total, length, width):
            entry = cache.get_or_build(buffer, self.settings.base_resolution)
            if entry.version == version:
                logger.debug("rendering %d columns of [%d, %d) from summary", width, start_idx, end_idx)
                return render_from_cache(entry, start_idx, end_idx, width)
            # The buffer was mutated after the snapshot; fall back to the snapshot samples.

        workers = self.settings.max_workers if length >= self.settings.parallel_min_samples else 1
        logger.debug("rendering %d columns of [%d, %d) directly (workers=%d)", width, start_idx, end_idx, workers)
        return aggregate(samples, start_idx, end_idx, width, max_workers=workers)

    def _should_use_cache(self, total: int, length: int, width: int) -> bool:
        base = self.settings.base_resolution
        if width > base or base > total:
            return False
        return length >= base * self.settings.cache_min_samples_per_bucket


def render_waveform(
    buffer: SampleBuffer,
    time_range: TimeRange,
    spec: RenderSpec,
    cache: SummaryCache | None = None,
    settings: RendererSettings | None = None,
    *,
    exact: bool = False,
) -> PixelBuffer:
    return WaveformRenderer(settings=settings, cache=cache).render(buffer, time_range, spec, exact=exact)


def _validated_spec(spec: RenderSpec) -> RenderSpec:
    if spec.width < 1 or spec.height < 1:
        raise InvalidDimensions(f"width and height must be at least 1, got {spec.width}x{spec.height}")
    fmt = parse_format(spec.format).value
    if not (np.isfinite(spec.amp_min) and np.isfinite(spec.amp_max)) or spec.amp_min >= spec.amp_max:
        raise WaveformError(f"invalid amplitude domain [{spec.amp_min}, {spec.amp_max}]")
    if type(spec.format) is str and spec.format == fmt:
        return spec
    return replace(spec, format=fmt)
