"""
Subtitle segment model with SRT decoding and encoding.
Malformed blocks are dropped; only an empty result fails the document.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from linguaplayer.engine.timecode import (
    FormatError,
    SubtitleError,
    format_timestamp,
    parse_timestamp,
)
from linguaplayer.utils.json_logger import get_logger


ARROW = "-->"

logger = get_logger("subtitle")


class ParseError(SubtitleError):
    """Raised when a readable document yields zero segments."""


@dataclass(frozen=True)
class Segment:
    """One subtitle entry. Instances are never mutated in place."""

    id: int
    start_time: float
    end_time: float
    text: str
    starred: bool = False

    @property
    def duration(self) -> float:
        return max(0.0, self.end_time - self.start_time)


def _parse_int(line: str) -> Optional[int]:
    try:
        return int(line.strip())
    except ValueError:
        return None


def _split_blocks(document: str) -> List[List[str]]:
    blocks: List[List[str]] = []
    current: List[str] = []
    for line in document.split("\n"):
        if line.strip():
            current.append(line)
        elif current:
            blocks.append(current)
            current = []
    if current:
        blocks.append(current)
    return blocks


def _decode_block(lines: List[str], position: int) -> Optional[Segment]:
    if len(lines) < 2:
        return None

    boundary = next((i for i, line in enumerate(lines) if ARROW in line), None)
    if boundary is None:
        return None

    seg_id = _parse_int(lines[boundary - 1]) if boundary > 0 else None
    if seg_id is None:
        seg_id = position

    start_str, _, end_str = lines[boundary].partition(ARROW)
    # Tolerate positional cues after the end timestamp (e.g. "X1:40 X2:600")
    end_fields = end_str.split()
    if not end_fields:
        return None
    start = parse_timestamp(start_str)
    end = parse_timestamp(end_fields[0])

    text = " ".join(line.strip() for line in lines[boundary + 1 :]).strip()
    if not text:
        return None

    return Segment(id=seg_id, start_time=start, end_time=end, text=text)


def decode(document: str) -> List[Segment]:
    """
    Parse a subtitle document into an ordered segment list.

    Raises:
        ParseError: if no block survives decoding.
    """
    normalized = document.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")

    segments: List[Segment] = []
    dropped = 0
    for position, lines in enumerate(_split_blocks(normalized), start=1):
        try:
            segment = _decode_block(lines, position)
        except FormatError as e:
            logger.debug(
                "Dropping block with bad timestamp",
                extra={"data": {"position": position, "error": str(e)}},
            )
            segment = None
        if segment is None:
            dropped += 1
            continue
        segments.append(segment)

    if not segments:
        raise ParseError(
            "No subtitles found in the document. Please check the SRT format."
        )

    logger.debug(
        "Document decoded",
        extra={"data": {"segments": len(segments), "dropped_blocks": dropped}},
    )
    return segments


def encode(segments: Iterable[Segment]) -> str:
    """Serialize segments to SRT text, renumbering from 1."""
    records = []
    for index, seg in enumerate(segments, start=1):
        records.append(
            f"{index}\n"
            f"{format_timestamp(seg.start_time)} {ARROW} {format_timestamp(seg.end_time)}\n"
            f"{seg.text}\n\n"
        )
    return "".join(records)


def export_plain_text(segments: Sequence[Segment]) -> str:
    """Join segment texts line by line."""
    return "\n".join(seg.text for seg in segments)
