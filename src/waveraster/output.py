from __future__ import annotations

from enum import Enum

import numpy as np

from waveraster.errors import UnsupportedFormat
from waveraster.models import Color


class PixelFormat(str, Enum):
    RGBA = "rgba"
    GRAY = "gray"


PIXEL_FORMATS: dict[PixelFormat, int] = {PixelFormat.RGBA: 4, PixelFormat.GRAY: 1}

# ITU-R BT.601 luma weights.
_LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def parse_format(tag: str | PixelFormat) -> PixelFormat:
    if isinstance(tag, PixelFormat):
        return tag
    normalized = str(tag).strip().lower()
    try:
        return PixelFormat(normalized)
    except ValueError:
        raise UnsupportedFormat(f"unsupported pixel format: {tag!r}") from None


def channels(fmt: str | PixelFormat) -> int:
    return PIXEL_FORMATS[parse_format(fmt)]


def pixel_value(color: Color, fmt: str | PixelFormat) -> np.ndarray:
    """Bytes written for one pixel of ``color``.

    ``gray`` stores the color's intensity premultiplied by its alpha, so an
    opaque foreground over a transparent background yields a 255/0 mask.
    """
    fmt = parse_format(fmt)
    if fmt is PixelFormat.RGBA:
        return np.asarray(color.as_tuple(), dtype=np.uint8)
    luma = sum(weight * channel for weight, channel in zip(_LUMA_WEIGHTS, (color.r, color.g, color.b), strict=True))
    value = np.rint(luma * (color.a / 255.0))
    return np.asarray([np.clip(value, 0, 255)], dtype=np.uint8)
