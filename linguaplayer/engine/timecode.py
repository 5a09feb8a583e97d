"""
Timestamp codec for SRT-style subtitle documents.
Accepts H:MM:SS,mmm / HH:MM:SS.mmm on read, always writes HH:MM:SS,mmm.
"""

import re


TIMESTAMP_RE = re.compile(r"^(\d{1,2}):(\d{2}):(\d{2})[,.](\d{3})$")


class SubtitleError(ValueError):
    """Base class for document-level load failures."""


class FormatError(SubtitleError):
    """Raised when a timestamp does not match H[H]:MM:SS[,.]mmm."""


def parse_timestamp(text: str) -> float:
    """Convert a timestamp string to seconds."""
    match = TIMESTAMP_RE.match(text.strip())
    if not match:
        raise FormatError(f"Invalid timestamp: {text!r}")

    hours, minutes, seconds, millis = (int(part) for part in match.groups())
    if minutes > 59 or seconds > 59:
        raise FormatError(f"Timestamp field out of range: {text!r}")
    return hours * 3600 + minutes * 60 + seconds + millis / 1000.0


def format_timestamp(seconds: float) -> str:
    """Convert seconds to the canonical comma-separated form."""
    total_ms = int(round(max(0.0, seconds) * 1000))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, millis = divmod(rem, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"
