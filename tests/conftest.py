import math

import pytest

from linguaplayer.engine.navigation import NavigationController, PlaybackRejectedError
from linguaplayer.engine.store import SegmentStore


SAMPLE_SRT = (
    "1\n00:00:01,000 --> 00:00:04,000\nFirst sentence\n\n"
    "2\n00:00:05,000 --> 00:00:08,000\nSecond sentence\n\n"
    "3\n00:00:09,000 --> 00:00:12,000\nThird sentence\n\n"
    "4\n00:00:13,000 --> 00:00:16,000\nFourth sentence\n\n"
    "5\n00:00:17,000 --> 00:00:20,000\nFifth sentence\n\n"
    "6\n00:00:21,000 --> 00:00:24,000\nSixth sentence\n\n"
)


class FakePlayback:
    """In-memory stand-in for the media-playback primitive."""

    def __init__(self, duration=30.0, reject_play=False):
        self.current_time = 0.0
        self._duration = duration
        self._paused = True
        self.reject_play = reject_play
        self.play_calls = 0
        self.pause_calls = 0
        self.controller = None  # receives play/pause notifications when set

    @property
    def duration(self):
        return self._duration if self._duration is not None else math.nan

    @property
    def paused(self):
        return self._paused

    def play(self):
        self.play_calls += 1
        if self.reject_play:
            raise PlaybackRejectedError("autoplay blocked")
        self._paused = False
        if self.controller:
            self.controller.on_play()

    def pause(self):
        self.pause_calls += 1
        self._paused = True
        if self.controller:
            self.controller.on_pause()


@pytest.fixture
def playback():
    return FakePlayback()


@pytest.fixture
def store():
    s = SegmentStore()
    s.load(SAMPLE_SRT)
    return s


@pytest.fixture
def controller(store, playback):
    nav = NavigationController(store, playback)
    playback.controller = nav
    nav.load(SAMPLE_SRT)
    return nav


@pytest.fixture
def make_playback():
    return FakePlayback


@pytest.fixture
def sample_srt():
    return SAMPLE_SRT
