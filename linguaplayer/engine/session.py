"""
Player session: one document, one playback primitive, and the editors and
renderer that operate on them.
"""

from typing import Callable, Optional, Tuple

from linguaplayer.engine.audio import SampleBuffer
from linguaplayer.engine.editing import MIN_DURATION, BoundaryEditor, TextEditor
from linguaplayer.engine.navigation import (
    REPLAY_THRESHOLD,
    MediaPlayback,
    NavigationController,
    PlaybackState,
)
from linguaplayer.engine.store import SegmentStore
from linguaplayer.engine.subtitle import Segment
from linguaplayer.engine.waveform import (
    WINDOW_SEGMENTS,
    WaveformFrame,
    WaveformRenderer,
)
from linguaplayer.utils.json_logger import get_logger


class PlayerSession:
    """Facade the GUI talks to."""

    def __init__(
        self,
        playback: MediaPlayback,
        min_duration: float = MIN_DURATION,
        window_segments: int = WINDOW_SEGMENTS,
        replay_threshold: float = REPLAY_THRESHOLD,
        save_callback: Optional[Callable[[Tuple[Segment, ...]], None]] = None,
    ):
        self._logger = get_logger("session")
        self.playback = playback
        self.store = SegmentStore()
        self.navigation = NavigationController(
            self.store, playback, replay_threshold=replay_threshold
        )
        self.boundary_editor = BoundaryEditor(
            self.store, playback, on_save=self._on_commit, min_duration=min_duration
        )
        self.text_editor = TextEditor(self.store, on_save=self._on_commit)
        self.renderer = WaveformRenderer(window_segments=window_segments)
        self._save_callback = save_callback

    def set_save_callback(self, callback: Optional[Callable[[Tuple[Segment, ...]], None]]):
        self._save_callback = callback

    def _on_commit(self, segments: Tuple[Segment, ...]):
        self.renderer.update_window(segments, self.store.current_id)
        if self._save_callback:
            self._save_callback(segments)

    # ------------------------------------------------------------------
    # Exposed state
    # ------------------------------------------------------------------
    @property
    def loaded(self) -> bool:
        return self.store.state.loaded

    @property
    def current_id(self) -> Optional[int]:
        return self.store.current_id

    @property
    def playback_state(self) -> PlaybackState:
        return self.navigation.state

    @property
    def progress(self) -> float:
        return self.navigation.progress

    @property
    def editing(self) -> bool:
        return self.boundary_editor.active or self.text_editor.active

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def load(self, document: str):
        """Load a subtitle document. SubtitleError propagates; state stays intact."""
        self.navigation.load(document)
        self.boundary_editor.cancel()
        self.text_editor.cancel()
        self.renderer.update_window(self.store.segments, self.store.current_id)

    def set_samples(self, buffer: Optional[SampleBuffer]) -> bool:
        return self.renderer.set_samples(buffer)

    def set_filter(self, on: bool):
        self.navigation.set_filter(on)
        self.renderer.update_window(self.store.segments, self.store.current_id)

    def handle_key(self, key: str) -> bool:
        handled = self.navigation.handle_key(key, editing=self.editing)
        if handled:
            self.renderer.update_window(self.store.segments, self.store.current_id)
        return handled

    def sync_window(self) -> bool:
        """Recentre the waveform window on the current selection."""
        return self.renderer.update_window(self.store.segments, self.store.current_id)

    def current_frame(self, width: int) -> Optional[WaveformFrame]:
        """Frame for the given (freshly measured) surface width."""
        self.renderer.resize(width)
        self.sync_window()
        return self.renderer.frame(
            self.store.segments,
            self.store.current_id,
            None if self.boundary_editor.active else self.playback.current_time,
            provisional=self.boundary_editor.provisional,
        )
