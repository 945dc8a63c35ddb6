from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image

from waveraster.models import PixelBuffer

logger = logging.getLogger(__name__)

_PIL_MODES = {"rgba": "RGBA", "gray": "L"}


def to_image(pixels: PixelBuffer) -> Image.Image:
    mode = _PIL_MODES.get(pixels.format)
    if mode is None:
        raise ValueError(f"no image mode for pixel format {pixels.format!r}")
    expected = pixels.width * pixels.height * pixels.channels
    if len(pixels.data) != expected:
        raise ValueError(f"invalid pixel data length: expected={expected} got={len(pixels.data)}")
    return Image.frombytes(mode, (pixels.width, pixels.height), pixels.data)


def save_image(pixels: PixelBuffer, path: Path, format: str | None = None) -> Path:  # noqa: A002
    image = to_image(pixels)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, format=format)
    logger.debug("wrote %dx%d %s waveform to %s", pixels.width, pixels.height, pixels.format, path)
    return path
