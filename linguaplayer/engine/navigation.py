"""
Playback/selection state machine for LinguaPlayer.
Drives an external media-playback primitive and keeps the current selection
resolved by id inside whichever view is active.
"""

import math
from enum import Enum
from typing import Callable, Optional, Protocol

from linguaplayer.engine.store import SegmentStore
from linguaplayer.engine.subtitle import Segment
from linguaplayer.utils.json_logger import get_logger


REPLAY_THRESHOLD = 0.1  # seconds before end that count as "finished"


class PlaybackRejectedError(RuntimeError):
    """Raised by a playback primitive when the platform refuses to play."""


class MediaPlayback(Protocol):
    """The media-playback primitive the controller drives."""

    current_time: float

    @property
    def duration(self) -> float: ...

    @property
    def paused(self) -> bool: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...


class PlaybackState(Enum):
    IDLE = "idle"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"


class Direction(Enum):
    PREVIOUS = -1
    NEXT = 1


# Key name -> controller operation
KEY_BINDINGS = {
    "Space": "toggle_play_pause",
    "ArrowLeft": "previous",
    "ArrowRight": "next",
    "ArrowUp": "select_previous",
    "ArrowDown": "select_next",
    "Enter": "replay",
}


def _as_direction(direction) -> Direction:
    if isinstance(direction, Direction):
        return direction
    if direction in ("next", 1):
        return Direction.NEXT
    if direction in ("previous", "prev", -1):
        return Direction.PREVIOUS
    raise ValueError(f"Unknown direction: {direction!r}")


class NavigationController:
    """
    IDLE (no document) -> READY -> PLAYING <-> PAUSED; every load returns to READY.
    """

    def __init__(
        self,
        store: SegmentStore,
        playback: MediaPlayback,
        replay_threshold: float = REPLAY_THRESHOLD,
    ):
        self._logger = get_logger("navigation")
        self._store = store
        self._playback = playback
        self._replay_threshold = replay_threshold

        self._state = PlaybackState.IDLE
        self._progress = 0.0

        self._on_change: Optional[Callable[[], None]] = None

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------
    def set_on_change(self, callback: Callable[[], None]):
        """Set callback fired after selection, state or progress changes."""
        self._on_change = callback

    def _notify(self):
        if self._on_change:
            self._on_change()

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def current_id(self) -> Optional[int]:
        return self._store.current_id

    @property
    def store(self) -> SegmentStore:
        return self._store

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------
    def load(self, document: str):
        """Load a document; ParseError propagates with the state untouched."""
        self._store.load(document)
        if not self._playback.paused:
            self._playback.pause()
        self._state = PlaybackState.READY
        self._progress = 0.0
        self._notify()

    def set_filter(self, on: bool):
        self._store.set_filter(on)
        self._refresh_progress()
        self._notify()

    def toggle_star(self, segment_id: Optional[int] = None) -> bool:
        if segment_id is None:
            segment_id = self._store.current_id
        starred = self._store.toggle_star(segment_id)
        self._notify()
        return starred

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _safe_play(self):
        try:
            self._playback.play()
        except PlaybackRejectedError as e:
            self._logger.warning(
                "Playback request rejected",
                extra={"data": {"error": str(e), "segment_id": self.current_id}},
            )

    def select_and_play(self, segment_id: int):
        self._store.select(segment_id)
        seg = self._store.current_segment()
        self._playback.current_time = seg.start_time
        self._progress = 0.0
        if self._playback.paused:
            self._safe_play()
        self._notify()

    def toggle_play_pause(self):
        if self._state is PlaybackState.IDLE:
            return

        seg = self._store.current_segment()
        if seg is None:
            view = self._store.active_view()
            if view:
                self.select_and_play(view[0].id)
            return

        if self._playback.paused:
            if self._playback.current_time >= seg.end_time - self._replay_threshold:
                self.select_and_play(seg.id)
            else:
                self._safe_play()
        else:
            self._playback.pause()
        self._notify()

    def replay(self):
        if self._store.current_id is not None:
            self.select_and_play(self._store.current_id)

    def _neighbor(self, direction) -> Optional[Segment]:
        step = _as_direction(direction).value
        pos = self._store.position_of(self._store.current_id)
        if pos is None:
            return None
        view = self._store.active_view()
        target = pos + step
        if target < 0 or target >= len(view):
            return None
        return view[target]

    def advance(self, direction):
        """Move one slot in the active view and play; no-op at either end."""
        target = self._neighbor(direction)
        if target is None:
            return
        self.select_and_play(target.id)

    def move_selection(self, direction):
        """Move one slot in the active view without seeking or playing."""
        target = self._neighbor(direction)
        if target is None:
            return
        self._store.select(target.id)
        self._refresh_progress()
        self._notify()

    # ------------------------------------------------------------------
    # Primitive notifications
    # ------------------------------------------------------------------
    @staticmethod
    def compute_progress(t: float, seg: Segment) -> float:
        length = seg.end_time - seg.start_time
        if length <= 0:
            return 0.0
        value = (t - seg.start_time) / length * 100.0
        if math.isnan(value):
            return 0.0
        return min(100.0, max(0.0, value))

    def _refresh_progress(self):
        seg = self._store.current_segment()
        self._progress = (
            self.compute_progress(self._playback.current_time, seg) if seg else 0.0
        )

    def on_time_update(self, t: float):
        seg = self._store.current_segment()
        if seg is None:
            return
        self._progress = self.compute_progress(t, seg)
        if self._state is PlaybackState.PLAYING and t >= seg.end_time:
            self._playback.pause()
            self._state = PlaybackState.PAUSED
        self._notify()

    def on_play(self):
        if self._state is not PlaybackState.IDLE:
            self._state = PlaybackState.PLAYING
            self._notify()

    def on_pause(self):
        if self._state is PlaybackState.PLAYING:
            self._state = PlaybackState.PAUSED
            self._notify()

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------
    def handle_key(self, key: str, editing: bool = False) -> bool:
        """
        Dispatch a transport key. Returns True when the key was consumed.
        Keys are ignored while editing or when no document is loaded.
        """
        action = KEY_BINDINGS.get(key)
        if action is None or editing or not self._store.state.loaded:
            return False

        if action == "toggle_play_pause":
            self.toggle_play_pause()
        elif action == "previous":
            self.advance(Direction.PREVIOUS)
        elif action == "next":
            self.advance(Direction.NEXT)
        elif action == "select_previous":
            self.move_selection(Direction.PREVIOUS)
        elif action == "select_next":
            self.move_selection(Direction.NEXT)
        elif action == "replay":
            self.replay()
        return True
