import numpy as np
import pytest

from waveraster.models import Color, ColumnSummary, PixelBuffer, RenderSpec, SampleBuffer


def test_sample_buffer_exposes_read_only_copy() -> None:
    source = np.array([0.1, 0.2, 0.3], dtype=np.float32)
    buffer = SampleBuffer(source, sample_rate=48000)

    source[0] = 9.0

    assert buffer.samples[0] == pytest.approx(0.1)
    assert buffer.samples.dtype == np.float32
    with pytest.raises(ValueError):
        buffer.samples[0] = 1.0


def test_sample_buffer_converts_integer_samples() -> None:
    buffer = SampleBuffer([0, 1, -1], sample_rate=1)

    assert buffer.samples.dtype == np.float64
    assert len(buffer) == 3
    assert buffer.duration_sec == 3.0


def test_sample_buffer_rejects_multichannel_input() -> None:
    with pytest.raises(ValueError, match="mono"):
        SampleBuffer(np.zeros((10, 2)), sample_rate=44100)


def test_mutations_bump_version_and_keep_snapshots_stable() -> None:
    buffer = SampleBuffer([0.0, 0.0, 0.0], sample_rate=10)
    snapshot, version = buffer.snapshot()
    assert version == 0

    assert buffer.write(1, [0.5]) == 1
    assert buffer.append([0.25, -0.25]) == 2
    assert buffer.replace([1.0]) == 3

    assert buffer.version == 3
    assert snapshot.tolist() == [0.0, 0.0, 0.0]
    assert buffer.samples.tolist() == [1.0]


def test_write_out_of_bounds_keeps_version() -> None:
    buffer = SampleBuffer([0.0, 0.0], sample_rate=10)

    with pytest.raises(IndexError):
        buffer.write(1, [0.1, 0.2])

    assert buffer.version == 0


def test_buffers_have_distinct_identities() -> None:
    first = SampleBuffer([0.0], sample_rate=1)
    second = SampleBuffer([0.0], sample_rate=1)

    assert first.identity != second.identity


def test_color_from_hex() -> None:
    assert Color.from_hex("#ff8000") == Color(255, 128, 0, 255)
    assert Color.from_hex("10203040") == Color(16, 32, 48, 64)
    assert Color(1, 2, 3, 4).to_hex() == "#01020304"


@pytest.mark.parametrize("value", ["#fff", "#gg0000", ""])
def test_color_from_hex_rejects_bad_values(value: str) -> None:
    with pytest.raises(ValueError):
        Color.from_hex(value)


def test_color_rejects_out_of_range_channel() -> None:
    with pytest.raises(ValueError):
        Color(256, 0, 0)


def test_column_summary_from_extents() -> None:
    summaries = ColumnSummary.from_extents(np.array([[-0.5, 0.25], [0.0, 0.0]]))

    assert summaries == [ColumnSummary(min=-0.5, max=0.25), ColumnSummary(min=0.0, max=0.0)]


def test_pixel_buffer_to_dict_and_array() -> None:
    pixels = PixelBuffer(data=bytes([0, 255, 255, 0]), width=2, height=2, format="gray")

    assert pixels.channels == 1
    assert pixels.to_array().tolist() == [[0, 255], [255, 0]]
    assert pixels.to_dict() == {"width": 2, "height": 2, "format": "gray", "data": [0, 255, 255, 0]}


def test_render_spec_to_dict_lists_colors() -> None:
    spec = RenderSpec(width=10, height=4, foreground=Color(1, 2, 3), format="gray")

    payload = spec.to_dict()

    assert payload["foreground"] == [1, 2, 3, 255]
    assert payload["background"] == [0, 0, 0, 0]
    assert payload["format"] == "gray"
