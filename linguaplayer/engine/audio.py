"""
Audio decoding for the waveform view.
Decoding runs once per audio resource on a background thread; playback never
waits for it, and results for a superseded resource are dropped.
"""

import os
import shutil
import subprocess
import threading
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from scipy.io import wavfile

from linguaplayer.utils.json_logger import get_logger, generate_request_id


FFMPEG_SAMPLE_RATE = 16000


@dataclass(frozen=True)
class SampleBuffer:
    """Decoded mono audio, float32 in [-1, 1]."""

    samples: np.ndarray
    sample_rate: int

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / float(self.sample_rate)


class AudioDecodeError(RuntimeError):
    """Raised when an audio resource cannot be decoded into samples."""


def to_mono_float(data: np.ndarray) -> np.ndarray:
    """Average channels and scale integer PCM into [-1, 1] float32."""
    if np.issubdtype(data.dtype, np.integer):
        info = np.iinfo(data.dtype)
        if info.min == 0:
            # Unsigned 8-bit PCM is centred on 128
            offset = (info.max + 1) / 2.0
            data = (data.astype(np.float32) - offset) / offset
        else:
            data = data.astype(np.float32) / float(-info.min)
    else:
        data = data.astype(np.float32)

    if data.ndim > 1:
        data = data.mean(axis=1)
    return np.clip(data, -1.0, 1.0).astype(np.float32)


def ffmpeg_bin() -> str:
    return os.environ.get("FFMPEG_BIN", "ffmpeg")


def _decode_wav(path: str) -> SampleBuffer:
    try:
        sample_rate, data = wavfile.read(path)
    except (ValueError, OSError) as e:
        raise AudioDecodeError(f"Unreadable WAV file {path}: {e}") from e
    return SampleBuffer(samples=to_mono_float(data), sample_rate=int(sample_rate))


def _decode_ffmpeg(path: str) -> SampleBuffer:
    binary = ffmpeg_bin()
    if shutil.which(binary) is None:
        raise AudioDecodeError(f"ffmpeg not found ({binary}); cannot decode {path}")

    cmd = [
        binary,
        "-i",
        path,
        "-f",
        "f32le",
        "-ac",
        "1",
        "-ar",
        str(FFMPEG_SAMPLE_RATE),
        "-vn",
        "-hide_banner",
        "-loglevel",
        "error",
        "pipe:1",
    ]
    try:
        proc = subprocess.run(cmd, capture_output=True)
    except OSError as e:
        raise AudioDecodeError(f"Could not run {binary} for {path}: {e}") from e
    if proc.returncode != 0:
        err = proc.stderr.decode(errors="ignore").strip()
        raise AudioDecodeError(f"ffmpeg failed for {path}: {err}")

    samples = np.frombuffer(proc.stdout, dtype=np.float32).copy()
    return SampleBuffer(samples=samples, sample_rate=FFMPEG_SAMPLE_RATE)


def decode_audio(path: str) -> SampleBuffer:
    """Decode an audio file into a mono sample buffer."""
    if not os.path.exists(path):
        raise AudioDecodeError(f"Audio file not found: {path}")
    if path.lower().endswith(".wav"):
        return _decode_wav(path)
    return _decode_ffmpeg(path)


# (path, generation, buffer or None on failure)
LoadedCallback = Callable[[str, int, Optional[SampleBuffer]], None]


class WaveformLoader:
    """
    Starts one background decode per audio resource.
    The result callback only fires if that resource is still current.
    """

    def __init__(
        self,
        decoder: Callable[[str], SampleBuffer] = decode_audio,
    ):
        self._logger = get_logger("audio")
        self._decoder = decoder
        self._lock = threading.Lock()
        self._current_path: Optional[str] = None
        self._generation = 0
        self._thread: Optional[threading.Thread] = None

        self._on_loaded: Optional[LoadedCallback] = None

    def set_on_loaded(self, callback: LoadedCallback):
        """
        Callback(path, generation, buffer_or_None), invoked from the worker
        thread. Receivers on another thread should re-check is_current(generation).
        """
        self._on_loaded = callback

    @property
    def current_path(self) -> Optional[str]:
        return self._current_path

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def load(self, path: str) -> threading.Thread:
        with self._lock:
            self._current_path = path
            self._generation += 1
            generation = self._generation
        request_id = generate_request_id()
        self._logger.info(
            "Waveform decode started",
            extra={"request_id": request_id, "data": {"path": path}},
        )
        thread = threading.Thread(
            target=self._worker, args=(path, generation, request_id), daemon=True
        )
        self._thread = thread
        thread.start()
        return thread

    def clear(self):
        with self._lock:
            self._current_path = None
            self._generation += 1

    def _worker(self, path: str, generation: int, request_id: str):
        buffer: Optional[SampleBuffer] = None
        try:
            buffer = self._decoder(path)
        except (AudioDecodeError, OSError) as e:
            self._logger.error(
                "Waveform decode failed",
                extra={"request_id": request_id, "data": {"path": path, "error": str(e)}},
            )

        if not self.is_current(generation):
            self._logger.info(
                "Discarding decode result for superseded audio",
                extra={"request_id": request_id, "data": {"path": path}},
            )
            return

        if buffer is not None:
            self._logger.info(
                "Waveform decode finished",
                extra={
                    "request_id": request_id,
                    "data": {"path": path, "duration": round(buffer.duration, 3)},
                },
            )
        if self._on_loaded:
            self._on_loaded(path, generation, buffer)
