import numpy as np
import pytest

from linguaplayer.engine.audio import SampleBuffer
from linguaplayer.engine.subtitle import decode
from linguaplayer.engine.waveform import (
    TimeWindow,
    WaveformRenderer,
    build_envelope,
    segment_window,
)


@pytest.fixture
def segments(sample_srt):
    return decode(sample_srt)


@pytest.mark.parametrize(
    "current_id, expected",
    [
        (1, TimeWindow(1.0, 20.0)),   # segments 1..5
        (2, TimeWindow(1.0, 20.0)),
        (3, TimeWindow(1.0, 20.0)),   # centred: 1..5
        (4, TimeWindow(5.0, 24.0)),   # centred: 2..6
        (6, TimeWindow(5.0, 24.0)),   # shifted inwards at the end
    ],
)
def test_window_centres_and_shifts(segments, current_id, expected):
    assert segment_window(segments, current_id) == expected


def test_window_uses_all_segments_when_fewer_than_count(segments):
    assert segment_window(segments[:3], 2) == TimeWindow(1.0, 12.0)
    assert segment_window(segments[:1], 1) == TimeWindow(1.0, 4.0)


def test_window_empty_document():
    assert segment_window([], None) is None


def test_envelope_keeps_short_transient_visible():
    rate = 1000
    samples = np.zeros(10 * rate, dtype=np.float32)
    samples[5003] = 0.9
    samples[5004] = -0.8
    mins, maxs = build_envelope(samples, rate, TimeWindow(0.0, 10.0), 100)

    assert len(mins) == len(maxs) == 100
    assert maxs[50] == pytest.approx(0.9)
    assert mins[50] == pytest.approx(-0.8)
    assert maxs[49] == 0.0 and maxs[51] == 0.0


def test_envelope_buckets_past_audio_end_are_flat():
    rate = 100
    samples = np.full(5 * rate, 0.5, dtype=np.float32)
    mins, maxs = build_envelope(samples, rate, TimeWindow(0.0, 10.0), 10)
    assert np.allclose(maxs[:5], 0.5)
    assert np.all(maxs[5:] == 0.0)
    assert np.all(mins[5:] == 0.0)


def test_envelope_zero_width():
    mins, maxs = build_envelope(np.ones(10, dtype=np.float32), 10, TimeWindow(0, 1), 0)
    assert len(mins) == 0 and len(maxs) == 0


def test_time_window_mapping():
    window = TimeWindow(10.0, 20.0)
    assert window.time_to_x(15.0, 200) == pytest.approx(100.0)
    assert window.x_to_fraction(300, 200) == 1.0
    assert window.x_to_fraction(-5, 200) == 0.0
    assert window.contains(10.0) and not window.contains(20.5)


def _renderer(segments, current_id, width=190):
    renderer = WaveformRenderer()
    renderer.set_samples(SampleBuffer(np.zeros(30 * 100, dtype=np.float32), 100))
    renderer.update_window(segments, current_id)
    renderer.resize(width)
    return renderer


def test_frame_markers_band_and_cursor(segments):
    renderer = _renderer(segments, 3)
    frame = renderer.frame(segments, 3, playback_time=10.0)

    # window 1..20 over 190px: 10px per second
    assert frame.band == (pytest.approx(80.0), pytest.approx(110.0))
    assert frame.cursor == pytest.approx(90.0)
    assert pytest.approx(0.0) in frame.markers
    assert pytest.approx(190.0) in frame.markers
    assert len(frame.markers) == 10
    assert not frame.editing


def test_frame_cursor_hidden_outside_window(segments):
    frame = _renderer(segments, 3).frame(segments, 3, playback_time=25.0)
    assert frame.cursor is None


def test_frame_while_editing_shows_provisional_band_without_cursor(segments):
    frame = _renderer(segments, 3).frame(
        segments, 3, playback_time=10.0, provisional=(8.5, 12.5)
    )
    assert frame.editing
    assert frame.cursor is None
    assert frame.band == (pytest.approx(75.0), pytest.approx(115.0))


def test_frame_requires_window_and_width(segments):
    renderer = WaveformRenderer()
    assert renderer.frame(segments, 1, 0.0) is None
    renderer.update_window(segments, 1)
    assert renderer.frame(segments, 1, 0.0) is None


def test_redraw_triggers(segments):
    renderer = WaveformRenderer()
    buffer = SampleBuffer(np.zeros(100, dtype=np.float32), 10)
    assert renderer.set_samples(buffer) is True
    assert renderer.set_samples(buffer) is False
    assert renderer.update_window(segments, 1) is True
    assert renderer.update_window(segments, 2) is False  # same window
    assert renderer.update_window(segments, 4) is True
    assert renderer.resize(300) is True
    assert renderer.resize(300) is False


def test_envelope_is_cached_per_window_and_width(segments):
    renderer = _renderer(segments, 1)
    first = renderer.envelope()
    assert renderer.envelope() is first
    renderer.resize(100)
    assert renderer.envelope() is not first


def test_envelope_without_samples_is_flat(segments):
    renderer = WaveformRenderer()
    renderer.update_window(segments, 1)
    renderer.resize(50)
    mins, maxs = renderer.envelope()
    assert len(mins) == 50
    assert not maxs.any()
