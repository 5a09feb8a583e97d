"""
Interactive editing of a single segment: clamped boundary drags and text edits.
Provisional values live here until commit; the store only sees committed edits.
"""

import math
from typing import Callable, Optional, Tuple

from linguaplayer.engine.navigation import MediaPlayback
from linguaplayer.engine.store import SegmentStore
from linguaplayer.engine.subtitle import Segment
from linguaplayer.engine.waveform import TimeWindow
from linguaplayer.utils.json_logger import get_logger


MIN_DURATION = 2.0  # seconds
BOUNDS_EPSILON = 1e-9  # float slack for values produced by clamping

SaveCallback = Callable[[Tuple[Segment, ...]], None]


class EditModeError(RuntimeError):
    """Raised when an edit operation is used outside edit mode."""


class InvalidBoundsError(ValueError):
    """Raised when provisional bounds cannot be committed."""


class BoundaryEditor:
    """Start/end handle editing for one segment, clamped to its neighbours."""

    HANDLE_START = "start"
    HANDLE_END = "end"

    def __init__(
        self,
        store: SegmentStore,
        playback: MediaPlayback,
        on_save: Optional[SaveCallback] = None,
        min_duration: float = MIN_DURATION,
    ):
        self._logger = get_logger("boundary_editor")
        self._store = store
        self._playback = playback
        self._on_save = on_save
        self._min_duration = min_duration

        self._segment_id: Optional[int] = None
        self._temp_start = 0.0
        self._temp_end = 0.0

    @property
    def active(self) -> bool:
        return self._segment_id is not None

    @property
    def segment_id(self) -> Optional[int]:
        return self._segment_id

    @property
    def provisional(self) -> Optional[Tuple[float, float]]:
        if not self.active:
            return None
        return self._temp_start, self._temp_end

    def set_on_save(self, callback: Optional[SaveCallback]):
        self._on_save = callback

    def enter(self, segment_id: Optional[int] = None):
        if segment_id is None:
            segment_id = self._store.current_id
        seg = self._store.get_segment(segment_id)
        if seg is None:
            raise KeyError(f"Unknown segment id: {segment_id}")

        self._segment_id = seg.id
        self._temp_start = seg.start_time
        self._temp_end = seg.end_time
        self._playback.pause()
        self._logger.debug(
            "Boundary edit started",
            extra={"data": {"segment_id": seg.id, "start": seg.start_time, "end": seg.end_time}},
        )

    def _document_end(self) -> float:
        duration = self._playback.duration
        if duration is None or math.isnan(duration) or duration <= 0:
            return math.inf
        return float(duration)

    def bounds_for(self, handle: str) -> Tuple[float, float]:
        """Allowed [low, high] range for a handle given the provisional band."""
        prev_seg, next_seg = self._store.neighbors(self._segment_id)
        if handle == self.HANDLE_START:
            low = prev_seg.end_time if prev_seg else 0.0
            high = self._temp_end - self._min_duration
        elif handle == self.HANDLE_END:
            low = self._temp_start + self._min_duration
            high = next_seg.start_time if next_seg else self._document_end()
        else:
            raise ValueError(f"Unknown handle: {handle!r}")
        return low, high

    def drag(self, handle: str, fraction: float, window: TimeWindow) -> Tuple[float, float]:
        """
        Move a handle to a 0..1 position inside the render window, clamped.
        Returns the provisional (start, end).
        """
        if not self.active:
            raise EditModeError("drag() called outside boundary edit mode")

        fraction = min(1.0, max(0.0, fraction))
        target = window.start + fraction * window.span
        low, high = self.bounds_for(handle)
        if low > high:
            # No legal position: the handle stays put
            return self._temp_start, self._temp_end

        value = min(high, max(low, target))
        if handle == self.HANDLE_START:
            self._temp_start = value
        else:
            self._temp_end = value
        return self._temp_start, self._temp_end

    def _check_bounds(self, start: float, end: float):
        """Raise InvalidBoundsError unless (start, end) fits between the neighbours."""
        prev_seg, next_seg = self._store.neighbors(self._segment_id)
        if prev_seg is not None and start < prev_seg.end_time - BOUNDS_EPSILON:
            raise InvalidBoundsError(
                f"Start {start:.3f}s overlaps the previous sentence (ends {prev_seg.end_time:.3f}s)"
            )
        if next_seg is not None and end > next_seg.start_time + BOUNDS_EPSILON:
            raise InvalidBoundsError(
                f"End {end:.3f}s overlaps the next sentence (starts {next_seg.start_time:.3f}s)"
            )
        if end - start < self._min_duration - BOUNDS_EPSILON:
            raise InvalidBoundsError(
                f"Sentence must last at least {self._min_duration:g}s "
                f"(currently {end - start:.3f}s)"
            )

    def commit(self) -> Tuple[Segment, ...]:
        """
        Write the provisional bounds to the store.

        Raises:
            InvalidBoundsError: if the bounds overlap a neighbour or are shorter
                than min_duration; edit mode stays open and the store is untouched.
        """
        if not self.active:
            raise EditModeError("commit() called outside boundary edit mode")

        segment_id = self._segment_id
        self._check_bounds(self._temp_start, self._temp_end)
        segments = self._store.replace_bounds(segment_id, self._temp_start, self._temp_end)
        self._segment_id = None
        if self._on_save:
            self._on_save(segments)
        return segments

    def cancel(self):
        if self.active:
            self._logger.debug(
                "Boundary edit cancelled", extra={"data": {"segment_id": self._segment_id}}
            )
        self._segment_id = None


class TextEditor:
    """Single-segment text editing with commit/cancel."""

    def __init__(self, store: SegmentStore, on_save: Optional[SaveCallback] = None):
        self._store = store
        self._on_save = on_save
        self._segment_id: Optional[int] = None

    @property
    def active(self) -> bool:
        return self._segment_id is not None

    @property
    def segment_id(self) -> Optional[int]:
        return self._segment_id

    def set_on_save(self, callback: Optional[SaveCallback]):
        self._on_save = callback

    def begin(self, segment_id: Optional[int] = None) -> str:
        """Enter text edit mode; returns the text to pre-fill the editor with."""
        if segment_id is None:
            segment_id = self._store.current_id
        seg = self._store.get_segment(segment_id)
        if seg is None:
            raise KeyError(f"Unknown segment id: {segment_id}")
        self._segment_id = seg.id
        return seg.text

    def commit(self, text: str) -> Tuple[Segment, ...]:
        if not self.active:
            raise EditModeError("commit() called outside text edit mode")
        # ValueError on empty text keeps edit mode open
        segments = self._store.update_text(self._segment_id, text)
        self._segment_id = None
        if self._on_save:
            self._on_save(segments)
        return segments

    def cancel(self):
        self._segment_id = None
