"""
QMediaPlayer adapter implementing the MediaPlayback protocol.
"""

import math
import os
from typing import Optional

from PySide6.QtCore import QObject, QUrl, Signal
from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer

from linguaplayer.engine.navigation import PlaybackRejectedError
from linguaplayer.utils.json_logger import get_logger


class QtMediaPlayback(QObject):
    """
    Wraps QMediaPlayer with seconds-based accessors.
    Re-emits time updates in seconds and play/pause transitions.
    """

    time_updated = Signal(float)
    played = Signal()
    paused_changed = Signal()

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._logger = get_logger("player")

        os.environ.setdefault("QT_FFMPEG_HWACCEL", "none")

        self._audio = QAudioOutput(self)
        self._player = QMediaPlayer(self)
        self._player.setAudioOutput(self._audio)
        self._source: Optional[str] = None

        self._player.positionChanged.connect(
            lambda ms: self.time_updated.emit(ms / 1000.0)
        )
        self._player.playbackStateChanged.connect(self._on_state_changed)
        self._player.errorOccurred.connect(self._on_error)

    def set_source(self, path: str):
        self._player.stop()
        self._source = path
        self._player.setSource(QUrl.fromLocalFile(path))
        self._logger.info("Audio source set", extra={"data": {"path": path}})

    @property
    def source(self) -> Optional[str]:
        return self._source

    # MediaPlayback protocol
    @property
    def current_time(self) -> float:
        return self._player.position() / 1000.0

    @current_time.setter
    def current_time(self, seconds: float):
        self._player.setPosition(int(round(max(0.0, seconds) * 1000)))

    @property
    def duration(self) -> float:
        ms = self._player.duration()
        if ms <= 0:
            return math.nan
        return ms / 1000.0

    @property
    def paused(self) -> bool:
        return (
            self._player.playbackState() != QMediaPlayer.PlaybackState.PlayingState
        )

    def play(self):
        if self._source is None:
            raise PlaybackRejectedError("No audio source loaded")
        if self._player.mediaStatus() == QMediaPlayer.MediaStatus.InvalidMedia:
            raise PlaybackRejectedError(f"Media cannot be played: {self._source}")
        self._player.play()

    def pause(self):
        self._player.pause()

    # Notifications
    def _on_state_changed(self, state):
        if state == QMediaPlayer.PlaybackState.PlayingState:
            self.played.emit()
        else:
            self.paused_changed.emit()

    def _on_error(self, error, message: str = ""):
        self._logger.warning(
            "Media player error",
            extra={"data": {"error": str(error), "message": message, "source": self._source}},
        )
