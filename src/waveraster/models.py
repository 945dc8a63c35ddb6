from __future__ import annotations

import threading
import uuid
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np


@dataclass(frozen=True)
class Seconds:
    start: float
    end: float


@dataclass(frozen=True)
class Samples:
    start: int
    end: int


TimeRange = Seconds | Samples


@dataclass(frozen=True)
class Color:
    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self) -> None:
        for name in ("r", "g", "b", "a"):
            value = getattr(self, name)
            if not 0 <= int(value) <= 255:
                raise ValueError(f"color channel {name} out of range: {value}")

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)

    def to_hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}{self.a:02x}"

    @classmethod
    def from_hex(cls, value: str) -> Color:
        text = value.strip().lstrip("#")
        if len(text) not in (6, 8):
            raise ValueError(f"invalid hex color: {value!r}")
        try:
            channels = [int(text[index : index + 2], 16) for index in range(0, len(text), 2)]
        except ValueError as exc:
            raise ValueError(f"invalid hex color: {value!r}") from exc
        return cls(*channels)


TRANSPARENT = Color(0, 0, 0, 0)
OPAQUE_WHITE = Color(255, 255, 255, 255)


@dataclass(frozen=True)
class RenderSpec:
    width: int
    height: int
    foreground: Color = OPAQUE_WHITE
    background: Color = TRANSPARENT
    format: str = "rgba"  # rgba | gray, or an output.PixelFormat
    amp_min: float = -1.0
    amp_max: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["foreground"] = list(self.foreground.as_tuple())
        payload["background"] = list(self.background.as_tuple())
        return payload


@dataclass(frozen=True)
class ColumnSummary:
    min: float
    max: float

    @classmethod
    def from_extents(cls, extents: np.ndarray) -> list[ColumnSummary]:
        return [cls(min=float(lo), max=float(hi)) for lo, hi in np.asarray(extents).reshape(-1, 2)]


@dataclass(frozen=True)
class PixelBuffer:
    data: bytes
    width: int
    height: int
    format: str

    @property
    def channels(self) -> int:
        return 4 if self.format == "rgba" else 1

    def to_array(self) -> np.ndarray:
        flat = np.frombuffer(self.data, dtype=np.uint8)
        if self.channels == 1:
            return flat.reshape((self.height, self.width))
        return flat.reshape((self.height, self.width, self.channels))

    def to_dict(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "format": self.format,
            "data": list(self.data),
        }


@dataclass(frozen=True)
class RendererSettings:
    base_resolution: int = 4096
    cache_min_samples_per_bucket: int = 4
    parallel_min_samples: int = 4_000_000
    max_workers: int = 4

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SampleBuffer:
    """Caller-owned mono sample buffer with a stable identity and a version counter.

    Readers only ever see read-only arrays. Every mutation installs a fresh
    array and bumps ``version``, so a ``snapshot()`` stays consistent with the
    version it was taken at.
    """

    def __init__(self, samples: Sequence[float] | np.ndarray, sample_rate: float) -> None:
        self.identity = uuid.uuid4().hex
        self.sample_rate = float(sample_rate)
        self._lock = threading.Lock()
        self._version = 0
        self._samples = _frozen_array(samples)

    def __len__(self) -> int:
        return int(self._samples.shape[0])

    @property
    def version(self) -> int:
        return self._version

    @property
    def samples(self) -> np.ndarray:
        return self._samples

    @property
    def duration_sec(self) -> float:
        if self.sample_rate <= 0.0:
            return 0.0
        return len(self) / self.sample_rate

    def snapshot(self) -> tuple[np.ndarray, int]:
        with self._lock:
            return self._samples, self._version

    def replace(self, samples: Sequence[float] | np.ndarray) -> int:
        array = _frozen_array(samples)
        with self._lock:
            self._samples = array
            self._version += 1
            return self._version

    def write(self, offset: int, values: Sequence[float] | np.ndarray) -> int:
        incoming = np.asarray(values, dtype=np.float64).ravel()
        with self._lock:
            length = self._samples.shape[0]
            if offset < 0 or offset + incoming.size > length:
                raise IndexError(f"write of {incoming.size} samples at {offset} exceeds buffer of {length}")
            updated = self._samples.copy()
            updated[offset : offset + incoming.size] = incoming
            updated.flags.writeable = False
            self._samples = updated
            self._version += 1
            return self._version

    def append(self, values: Sequence[float] | np.ndarray) -> int:
        incoming = np.asarray(values, dtype=self._samples.dtype).ravel()
        with self._lock:
            updated = np.concatenate([self._samples, incoming])
            updated.flags.writeable = False
            self._samples = updated
            self._version += 1
            return self._version


def _frozen_array(samples: Sequence[float] | np.ndarray) -> np.ndarray:
    array = np.array(samples, copy=True)
    if array.ndim != 1:
        raise ValueError(f"expected mono samples, got array of shape {array.shape}")
    if not np.issubdtype(array.dtype, np.floating):
        array = array.astype(np.float64)
    array.flags.writeable = False
    return array


@dataclass(frozen=True)
class CacheEntry:
    identity: str
    base_resolution: int
    version: int
    total_samples: int
    extents: np.ndarray = field(repr=False)
