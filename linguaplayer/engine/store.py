"""
Segment store for LinguaPlayer.
Owns the canonical segment list inside an immutable PlayerState record and
derives the active (optionally starred-only) view.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple

from linguaplayer.engine.subtitle import (
    Segment,
    decode,
    encode,
    export_plain_text,
)
from linguaplayer.utils.json_logger import get_logger, log_with_request_id


def _build_index(segments: Tuple[Segment, ...]) -> Dict[int, int]:
    """Map id -> position; duplicate ids resolve to the first occurrence."""
    index: Dict[int, int] = {}
    for pos, seg in enumerate(segments):
        index.setdefault(seg.id, pos)
    return index


@dataclass(frozen=True)
class PlayerState:
    """Immutable snapshot of everything the store owns."""

    segments: Tuple[Segment, ...] = ()
    current_id: Optional[int] = None
    filter_on: bool = False
    remembered_id: Optional[int] = None  # one-shot snapshot taken at filter-on
    document: str = ""

    view: Tuple[Segment, ...] = field(init=False, repr=False, compare=False)
    canonical_index: Dict[int, int] = field(init=False, repr=False, compare=False)
    view_index: Dict[int, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.filter_on and any(seg.starred for seg in self.segments):
            view = tuple(seg for seg in self.segments if seg.starred)
        else:
            view = self.segments
        object.__setattr__(self, "view", view)
        object.__setattr__(self, "canonical_index", _build_index(self.segments))
        object.__setattr__(self, "view_index", _build_index(view))

    @property
    def loaded(self) -> bool:
        return bool(self.segments)


class SegmentStore:
    """
    Holds the current PlayerState and replaces it wholesale on every change.
    Readers never observe a partially updated list.
    """

    def __init__(self):
        self._logger = get_logger("store")
        self._state = PlayerState()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def state(self) -> PlayerState:
        return self._state

    @property
    def segments(self) -> Tuple[Segment, ...]:
        return self._state.segments

    @property
    def current_id(self) -> Optional[int]:
        return self._state.current_id

    @property
    def filter_on(self) -> bool:
        return self._state.filter_on

    @property
    def document(self) -> str:
        return self._state.document

    @property
    def has_starred(self) -> bool:
        return any(seg.starred for seg in self._state.segments)

    def active_view(self) -> Tuple[Segment, ...]:
        return self._state.view

    def get_segment(self, segment_id: Optional[int]) -> Optional[Segment]:
        pos = self._state.canonical_index.get(segment_id)
        if pos is None:
            return None
        return self._state.segments[pos]

    def current_segment(self) -> Optional[Segment]:
        return self.get_segment(self._state.current_id)

    def canonical_position(self, segment_id: Optional[int]) -> Optional[int]:
        return self._state.canonical_index.get(segment_id)

    def position_of(self, segment_id: Optional[int]) -> Optional[int]:
        """Position of segment_id inside the active view, or None."""
        return self._state.view_index.get(segment_id)

    def neighbors(self, segment_id: int) -> Tuple[Optional[Segment], Optional[Segment]]:
        """Canonical previous/next segments of segment_id."""
        pos = self._state.canonical_index.get(segment_id)
        if pos is None:
            return None, None
        segs = self._state.segments
        prev_seg = segs[pos - 1] if pos > 0 else None
        next_seg = segs[pos + 1] if pos + 1 < len(segs) else None
        return prev_seg, next_seg

    # ------------------------------------------------------------------
    # Mutations (whole-state replacement)
    # ------------------------------------------------------------------
    def _replace(self, **changes) -> PlayerState:
        self._state = replace(self._state, **changes)
        return self._state

    def load(self, document: str) -> PlayerState:
        """
        Decode document and replace the state atomically.
        On ParseError the prior state is left untouched.
        """
        segments = tuple(decode(document))
        self._state = PlayerState(
            segments=segments,
            current_id=segments[0].id,
            filter_on=False,
            remembered_id=None,
            document=document,
        )
        log_with_request_id(
            self._logger,
            "Document loaded",
            data={"segments": len(segments), "first_id": segments[0].id},
        )
        return self._state

    def select(self, segment_id: int) -> None:
        if segment_id not in self._state.canonical_index:
            raise KeyError(f"Unknown segment id: {segment_id}")
        if segment_id != self._state.current_id:
            self._replace(current_id=segment_id)

    def set_starred(self, segment_id: int, value: bool) -> None:
        pos = self._state.canonical_index.get(segment_id)
        if pos is None:
            raise KeyError(f"Unknown segment id: {segment_id}")

        segs = list(self._state.segments)
        segs[pos] = replace(segs[pos], starred=bool(value))
        segments = tuple(segs)

        changes = {"segments": segments}
        if self._state.filter_on:
            if not any(seg.starred for seg in segments):
                changes["filter_on"] = False
                changes["remembered_id"] = None
                self._logger.info(
                    "Filter cleared: no starred segments left",
                    extra={"data": {"segment_id": segment_id}},
                )
            elif not segments[self._state.canonical_index[self._state.current_id]].starred:
                changes["current_id"] = self._nearest_starred(
                    segments, self._state.canonical_index[self._state.current_id]
                )
        self._replace(**changes)

    def toggle_star(self, segment_id: int) -> bool:
        seg = self.get_segment(segment_id)
        if seg is None:
            raise KeyError(f"Unknown segment id: {segment_id}")
        self.set_starred(segment_id, not seg.starred)
        return not seg.starred

    @staticmethod
    def _nearest_starred(segments: Tuple[Segment, ...], from_pos: int) -> int:
        for seg in segments[from_pos:]:
            if seg.starred:
                return seg.id
        return [seg for seg in segments[:from_pos] if seg.starred][-1].id

    def set_filter(self, on: bool) -> None:
        """
        Toggle the starred-only filter.

        Turning it on snapshots the current selection once and jumps to the
        first starred segment; turning it off restores that snapshot.
        """
        on = bool(on)
        state = self._state
        if on == state.filter_on:
            return

        if on:
            first_starred = next((seg for seg in state.segments if seg.starred), None)
            self._replace(
                filter_on=True,
                remembered_id=state.current_id,
                current_id=first_starred.id if first_starred else state.current_id,
            )
        else:
            restored = state.remembered_id
            if restored is None or restored not in state.canonical_index:
                restored = state.current_id
            self._replace(filter_on=False, remembered_id=None, current_id=restored)

        self._logger.debug(
            "Filter toggled",
            extra={"data": {"filter_on": on, "current_id": self._state.current_id}},
        )

    def update_text(self, segment_id: int, text: str) -> Tuple[Segment, ...]:
        text = " ".join(text.split())
        if not text:
            raise ValueError("Subtitle text cannot be empty")
        pos = self._state.canonical_index.get(segment_id)
        if pos is None:
            raise KeyError(f"Unknown segment id: {segment_id}")
        return self._commit_segment(pos, replace(self._state.segments[pos], text=text))

    def replace_bounds(
        self, segment_id: int, start_time: float, end_time: float
    ) -> Tuple[Segment, ...]:
        if not start_time < end_time:
            raise ValueError(
                f"Start time must precede end time ({start_time} >= {end_time})"
            )
        pos = self._state.canonical_index.get(segment_id)
        if pos is None:
            raise KeyError(f"Unknown segment id: {segment_id}")
        seg = replace(self._state.segments[pos], start_time=start_time, end_time=end_time)
        return self._commit_segment(pos, seg)

    def _commit_segment(self, pos: int, seg: Segment) -> Tuple[Segment, ...]:
        segs = list(self._state.segments)
        segs[pos] = seg
        segments = tuple(segs)
        self._replace(segments=segments, document=encode(segments))
        self._logger.info(
            "Segment committed",
            extra={
                "data": {
                    "segment_id": seg.id,
                    "start": seg.start_time,
                    "end": seg.end_time,
                }
            },
        )
        return segments

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------
    def export_document(self) -> str:
        """SRT text of the active view."""
        return encode(self.active_view())

    def export_text(self) -> str:
        """Plain text of the active view, one sentence per line."""
        return export_plain_text(self.active_view())
