from __future__ import annotations


class WaveformError(ValueError):
    """Base class for caller input errors raised by the renderer."""


class InvalidRange(WaveformError):
    pass


class InvalidSampleRate(WaveformError):
    pass


class InvalidDimensions(WaveformError):
    pass


class UnsupportedFormat(WaveformError):
    pass
