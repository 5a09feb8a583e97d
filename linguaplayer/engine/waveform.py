"""
Waveform envelope rendering for LinguaPlayer.
Downsamples decoded audio into per-pixel min/max buckets over a window of
segments centred on the current one, plus the overlay geometry the widget
paints on top.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from linguaplayer.engine.audio import SampleBuffer
from linguaplayer.engine.subtitle import Segment
from linguaplayer.utils.json_logger import get_logger


WINDOW_SEGMENTS = 5


@dataclass(frozen=True)
class TimeWindow:
    """Half-open time range [start, end) in seconds."""

    start: float
    end: float

    @property
    def span(self) -> float:
        return max(0.0, self.end - self.start)

    def contains(self, t: float) -> bool:
        return self.start <= t <= self.end

    def time_to_fraction(self, t: float) -> float:
        if self.span <= 0:
            return 0.0
        return (t - self.start) / self.span

    def time_to_x(self, t: float, width: int) -> float:
        return self.time_to_fraction(t) * width

    def x_to_fraction(self, x: float, width: int) -> float:
        if width <= 0:
            return 0.0
        return min(1.0, max(0.0, x / width))


def segment_window(
    segments: Sequence[Segment],
    current_id: Optional[int],
    count: int = WINDOW_SEGMENTS,
) -> Optional[TimeWindow]:
    """
    Window spanning min(count, total) consecutive segments centred on the
    current one, shifted inwards at either end of the document.
    """
    total = len(segments)
    if total == 0 or count <= 0:
        return None

    current = next((i for i, seg in enumerate(segments) if seg.id == current_id), 0)
    size = min(count, total)
    first = current - size // 2
    first = max(0, min(first, total - size))
    last = first + size - 1
    return TimeWindow(segments[first].start_time, segments[last].end_time)


def build_envelope(
    samples: np.ndarray, sample_rate: int, window: TimeWindow, width: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Partition the window's sample range into `width` buckets and return the
    per-bucket (mins, maxs). Buckets with no samples are 0.
    """
    if width <= 0:
        return np.array([], dtype=np.float32), np.array([], dtype=np.float32)

    mins = np.zeros(width, dtype=np.float32)
    maxs = np.zeros(width, dtype=np.float32)

    start_idx = max(0, int(window.start * sample_rate))
    end_idx = min(len(samples), int(window.end * sample_rate))
    if end_idx <= start_idx:
        return mins, maxs

    data = samples[start_idx:end_idx]
    # Bucket edges are laid out over the whole window so audio that ends
    # early leaves the trailing buckets flat instead of stretching.
    window_len = max(1, int(window.end * sample_rate) - int(window.start * sample_rate))
    edges = np.linspace(0, window_len, width + 1).astype(int)
    for i in range(width):
        lo, hi = edges[i], min(edges[i + 1], len(data))
        if hi <= lo:
            continue
        bucket = data[lo:hi]
        mins[i] = float(np.min(bucket))
        maxs[i] = float(np.max(bucket))
    return mins, maxs


@dataclass(frozen=True)
class WaveformFrame:
    """Everything needed to paint one frame, in pixel coordinates."""

    width: int
    window: TimeWindow
    mins: np.ndarray
    maxs: np.ndarray
    markers: Tuple[float, ...]  # dashed boundary lines
    band: Optional[Tuple[float, float]]  # highlighted current (or provisional) segment
    cursor: Optional[float]  # live playback position, hidden while editing
    editing: bool = False  # band edges are draggable handles


class WaveformRenderer:
    """
    Caches the envelope per (window, width) and builds overlay frames.
    set_samples / set_window / resize return True when a redraw is needed.
    """

    def __init__(self, window_segments: int = WINDOW_SEGMENTS):
        self._logger = get_logger("waveform")
        self._window_segments = window_segments
        self._buffer: Optional[SampleBuffer] = None
        self._window: Optional[TimeWindow] = None
        self._width = 0
        self._cache_key: Optional[Tuple[TimeWindow, int]] = None
        self._cache: Tuple[np.ndarray, np.ndarray] = (
            np.array([], dtype=np.float32),
            np.array([], dtype=np.float32),
        )

    @property
    def has_samples(self) -> bool:
        return self._buffer is not None

    @property
    def window(self) -> Optional[TimeWindow]:
        return self._window

    @property
    def window_segments(self) -> int:
        return self._window_segments

    def set_samples(self, buffer: Optional[SampleBuffer]) -> bool:
        changed = buffer is not self._buffer
        self._buffer = buffer
        self._cache_key = None
        if buffer is not None:
            self._logger.debug(
                "Samples available",
                extra={"data": {"samples": len(buffer.samples), "sample_rate": buffer.sample_rate}},
            )
        return changed

    def set_window(self, window: Optional[TimeWindow]) -> bool:
        if window == self._window:
            return False
        self._window = window
        return True

    def update_window(self, segments: Sequence[Segment], current_id: Optional[int]) -> bool:
        return self.set_window(segment_window(segments, current_id, self._window_segments))

    def resize(self, width: int) -> bool:
        width = max(0, int(width))
        if width == self._width:
            return False
        self._width = width
        return True

    def envelope(self) -> Tuple[np.ndarray, np.ndarray]:
        if self._buffer is None or self._window is None or self._width <= 0:
            empty = np.zeros(max(0, self._width), dtype=np.float32)
            return empty, empty
        key = (self._window, self._width)
        if key != self._cache_key:
            self._cache = build_envelope(
                self._buffer.samples, self._buffer.sample_rate, self._window, self._width
            )
            self._cache_key = key
        return self._cache

    def frame(
        self,
        segments: Sequence[Segment],
        current_id: Optional[int],
        playback_time: Optional[float],
        provisional: Optional[Tuple[float, float]] = None,
    ) -> Optional[WaveformFrame]:
        """
        Build a frame for the current width. While `provisional` is given the
        band shows the provisional bounds and the cursor is hidden.
        """
        window = self._window
        if window is None or self._width <= 0:
            return None
        width = self._width
        mins, maxs = self.envelope()

        markers: List[float] = []
        for seg in segments:
            for t in (seg.start_time, seg.end_time):
                if window.contains(t):
                    markers.append(window.time_to_x(t, width))

        band = None
        editing = provisional is not None
        if editing:
            band = (
                window.time_to_x(provisional[0], width),
                window.time_to_x(provisional[1], width),
            )
        else:
            current = next((seg for seg in segments if seg.id == current_id), None)
            if current is not None:
                band = (
                    window.time_to_x(current.start_time, width),
                    window.time_to_x(current.end_time, width),
                )

        cursor = None
        if not editing and playback_time is not None and window.contains(playback_time):
            cursor = window.time_to_x(playback_time, width)

        return WaveformFrame(
            width=width,
            window=window,
            mins=mins,
            maxs=maxs,
            markers=tuple(sorted(set(markers))),
            band=band,
            cursor=cursor,
            editing=editing,
        )
