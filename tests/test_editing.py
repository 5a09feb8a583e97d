import pytest

from linguaplayer.engine.editing import (
    BoundaryEditor,
    EditModeError,
    InvalidBoundsError,
    TextEditor,
)
from linguaplayer.engine.store import SegmentStore
from linguaplayer.engine.subtitle import decode
from linguaplayer.engine.waveform import TimeWindow


WINDOW = TimeWindow(0.0, 30.0)


def frac(t, window=WINDOW):
    return (t - window.start) / window.span


@pytest.fixture
def saved():
    return []


@pytest.fixture
def editor(store, playback, saved):
    return BoundaryEditor(store, playback, on_save=saved.append)


def test_enter_snapshots_bounds_and_pauses(editor, playback):
    playback._paused = False
    editor.enter(2)
    assert editor.active
    assert editor.provisional == (5.0, 8.0)
    assert playback.paused


def test_end_handle_clamps_at_next_start(editor):
    editor.enter(2)
    assert editor.drag("end", frac(20.0), WINDOW) == (5.0, 9.0)


def test_start_handle_clamps_at_previous_end(editor):
    editor.enter(2)
    assert editor.drag("start", 0.0, WINDOW) == (4.0, 8.0)


def test_start_handle_keeps_minimum_duration(editor):
    editor.enter(2)
    start, end = editor.drag("start", frac(7.5), WINDOW)
    assert (start, end) == (6.0, 8.0)
    assert end - start >= 2.0


def test_end_handle_keeps_minimum_duration(editor):
    editor.enter(2)
    start, end = editor.drag("end", frac(5.5), WINDOW)
    assert (start, end) == (5.0, 7.0)


def test_first_segment_start_clamps_at_zero(editor):
    editor.enter(1)
    assert editor.drag("start", 0.0, TimeWindow(-5.0, 10.0)) == (0.0, 4.0)


def test_last_segment_end_clamps_at_media_duration(store, make_playback):
    ed = BoundaryEditor(store, make_playback(duration=30.0))
    ed.enter(6)
    assert ed.drag("end", 1.0, TimeWindow(0.0, 100.0)) == (21.0, 30.0)


def test_last_segment_end_unbounded_without_duration(store, make_playback):
    ed = BoundaryEditor(store, make_playback(duration=None))
    ed.enter(6)
    assert ed.drag("end", 1.0, TimeWindow(0.0, 100.0)) == (21.0, 100.0)


def test_handle_stays_put_when_no_legal_position(make_playback):
    store = SegmentStore()
    store.load(
        "1\n00:00:01,000 --> 00:00:04,000\nA\n\n"
        "2\n00:00:04,500 --> 00:00:05,500\nB\n\n"
        "3\n00:00:06,000 --> 00:00:08,000\nC\n"
    )
    ed = BoundaryEditor(store, make_playback())
    ed.enter(2)
    assert ed.drag("start", 0.0, WINDOW) == (4.5, 5.5)
    assert ed.drag("end", 1.0, WINDOW) == (4.5, 5.5)


def test_commit_rejects_bounds_shorter_than_minimum(make_playback):
    store = SegmentStore()
    store.load(
        "1\n00:00:01,000 --> 00:00:04,000\nA\n\n"
        "2\n00:00:04,500 --> 00:00:05,500\nB\n\n"
        "3\n00:00:06,000 --> 00:00:08,000\nC\n"
    )
    saved = []
    ed = BoundaryEditor(store, make_playback(), on_save=saved.append)
    before = store.state
    ed.enter(2)

    with pytest.raises(InvalidBoundsError):
        ed.commit()
    assert ed.active
    assert ed.segment_id == 2
    assert store.state is before
    assert saved == []

    ed.cancel()
    assert not ed.active


def test_commit_rejects_overlap_with_neighbour(store, make_playback):
    # neighbours moved after the edit started
    ed = BoundaryEditor(store, make_playback())
    ed.enter(2)
    ed.drag("end", frac(9.0), WINDOW)
    store.replace_bounds(3, 8.5, 12.0)
    with pytest.raises(InvalidBoundsError):
        ed.commit()
    assert store.get_segment(2).end_time == 8.0


def test_commit_accepts_exact_minimum(editor, store):
    editor.enter(2)
    editor.drag("start", frac(7.5), WINDOW)  # clamped to end - 2.0
    editor.commit()
    seg = store.get_segment(2)
    assert seg.end_time - seg.start_time == pytest.approx(2.0)


def test_drag_outside_edit_mode_fails(editor):
    with pytest.raises(EditModeError):
        editor.drag("end", 0.5, WINDOW)


def test_unknown_handle_fails(editor):
    editor.enter(2)
    with pytest.raises(ValueError):
        editor.drag("middle", 0.5, WINDOW)


def test_drag_does_not_touch_store_until_commit(editor, store):
    editor.enter(2)
    editor.drag("end", frac(8.9), WINDOW)
    assert store.get_segment(2).end_time == 8.0


def test_commit_saves_once_and_reencodes(editor, store, saved):
    editor.enter(2)
    editor.drag("start", frac(4.5), WINDOW)
    editor.drag("end", frac(8.75), WINDOW)
    segments = editor.commit()

    assert not editor.active
    assert len(saved) == 1
    assert saved[0] is segments
    seg = store.get_segment(2)
    assert seg.start_time == pytest.approx(4.5)
    assert seg.end_time == pytest.approx(8.75)
    reparsed = decode(store.document)[1]
    assert reparsed.start_time == pytest.approx(4.5)
    assert reparsed.end_time == pytest.approx(8.75)


def test_cancel_discards_provisional_bounds(editor, store, saved):
    before = store.state
    editor.enter(2)
    editor.drag("end", frac(8.9), WINDOW)
    editor.cancel()
    assert not editor.active
    assert editor.provisional is None
    assert store.state is before
    assert saved == []

    editor.enter(2)
    assert editor.provisional == (5.0, 8.0)


def test_commit_outside_edit_mode_fails(editor):
    with pytest.raises(EditModeError):
        editor.commit()


def test_text_edit_commit(store, saved):
    ed = TextEditor(store, on_save=saved.append)
    assert ed.begin(3) == "Third sentence"
    ed.commit("A new\nline")
    assert not ed.active
    assert store.get_segment(3).text == "A new line"
    assert len(saved) == 1


def test_text_edit_empty_keeps_mode_open(store, saved):
    ed = TextEditor(store, on_save=saved.append)
    ed.begin(3)
    with pytest.raises(ValueError):
        ed.commit("   ")
    assert ed.active
    assert store.get_segment(3).text == "Third sentence"
    assert saved == []


def test_text_edit_cancel(store):
    ed = TextEditor(store)
    ed.begin()
    assert ed.segment_id == 1
    ed.cancel()
    assert not ed.active
    with pytest.raises(EditModeError):
        ed.commit("x")
