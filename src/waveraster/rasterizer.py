from __future__ import annotations

import numpy as np

from waveraster.errors import InvalidDimensions
from waveraster.models import PixelBuffer, RenderSpec
from waveraster.output import PixelFormat, channels, parse_format, pixel_value


def amplitude_rows(amplitudes: np.ndarray, height: int, amp_min: float = -1.0, amp_max: float = 1.0) -> np.ndarray:
    """Map amplitudes to row indices, top row for ``amp_max`` and bottom row for ``amp_min``."""
    values = np.nan_to_num(np.asarray(amplitudes, dtype=np.float64), nan=0.0)
    values = np.clip(values, amp_min, amp_max)
    normalized = (values - amp_min) / (amp_max - amp_min)
    rows = np.rint((1.0 - normalized) * (height - 1))
    return np.clip(rows, 0, height - 1).astype(np.int64)


def column_mask(extents: np.ndarray, spec: RenderSpec) -> np.ndarray:
    """Boolean ``(height, width)`` mask of the foreground run of every column."""
    extents = np.asarray(extents, dtype=np.float64).reshape(-1, 2)
    top = amplitude_rows(extents[:, 1], spec.height, spec.amp_min, spec.amp_max)
    bottom = amplitude_rows(extents[:, 0], spec.height, spec.amp_min, spec.amp_max)
    rows = np.arange(spec.height, dtype=np.int64)[:, None]
    return (rows >= top[None, :]) & (rows <= bottom[None, :])


def draw(extents: np.ndarray, spec: RenderSpec) -> PixelBuffer:
    fmt = parse_format(spec.format)
    extents = np.asarray(extents, dtype=np.float64).reshape(-1, 2)
    if extents.shape[0] != spec.width:
        raise InvalidDimensions(f"expected {spec.width} column extents, got {extents.shape[0]}")
    image = _fill(column_mask(extents, spec), spec, fmt)
    return PixelBuffer(data=image.tobytes(), width=spec.width, height=spec.height, format=fmt.value)


def draw_into(
    extents: np.ndarray,
    spec: RenderSpec,
    target: np.ndarray,
    offset: tuple[int, int] = (0, 0),
) -> None:
    """Write the columns into the ``spec.width`` x ``spec.height`` region of ``target`` at ``offset``.

    ``target`` is a caller-owned uint8 array of shape ``(H, W, C)`` (or ``(H, W)``
    for ``gray``) whose channel count matches ``spec.format``.
    """
    fmt = parse_format(spec.format)
    extents = np.asarray(extents, dtype=np.float64).reshape(-1, 2)
    if extents.shape[0] != spec.width:
        raise InvalidDimensions(f"expected {spec.width} column extents, got {extents.shape[0]}")
    region = _target_region(target, spec, fmt, offset)
    region[...] = _fill(column_mask(extents, spec), spec, fmt).reshape(region.shape)


def background_frame(spec: RenderSpec) -> PixelBuffer:
    fmt = parse_format(spec.format)
    mask = np.zeros((spec.height, spec.width), dtype=bool)
    image = _fill(mask, spec, fmt)
    return PixelBuffer(data=image.tobytes(), width=spec.width, height=spec.height, format=fmt.value)


def fill_background_into(spec: RenderSpec, target: np.ndarray, offset: tuple[int, int] = (0, 0)) -> None:
    fmt = parse_format(spec.format)
    region = _target_region(target, spec, fmt, offset)
    region[...] = pixel_value(spec.background, fmt)


def _fill(mask: np.ndarray, spec: RenderSpec, fmt: PixelFormat) -> np.ndarray:
    foreground = pixel_value(spec.foreground, fmt)
    background = pixel_value(spec.background, fmt)
    image = np.where(mask[..., None], foreground, background).astype(np.uint8, copy=False)
    return np.ascontiguousarray(image)


def _target_region(target: np.ndarray, spec: RenderSpec, fmt: PixelFormat, offset: tuple[int, int]) -> np.ndarray:
    if target.dtype != np.uint8:
        raise InvalidDimensions(f"target must be uint8, got {target.dtype}")
    expected_channels = channels(fmt)
    target_channels = 1 if target.ndim == 2 else (target.shape[2] if target.ndim == 3 else -1)
    if target_channels != expected_channels:
        raise InvalidDimensions(f"target has {target_channels} channels, {fmt} needs {expected_channels}")
    off_x, off_y = offset
    full_height, full_width = target.shape[:2]
    if off_x < 0 or off_y < 0 or off_x + spec.width > full_width or off_y + spec.height > full_height:
        raise InvalidDimensions(
            f"{spec.width}x{spec.height} region at ({off_x}, {off_y}) exceeds target of {full_width}x{full_height}"
        )
    return target[off_y : off_y + spec.height, off_x : off_x + spec.width]
