import pytest

from linguaplayer.engine.store import SegmentStore
from linguaplayer.engine.subtitle import ParseError, decode


THREE = (
    "1\n00:00:01,000 --> 00:00:04,000\nA\n\n"
    "2\n00:00:05,000 --> 00:00:08,000\nB\n\n"
    "3\n00:00:09,000 --> 00:00:12,000\nC\n\n"
)


def test_load_selects_first_and_clears_filter(store, sample_srt):
    assert store.current_id == 1
    assert not store.filter_on
    assert len(store.active_view()) == 6
    assert store.document == sample_srt


def test_failed_load_keeps_prior_state(store):
    before = store.state
    with pytest.raises(ParseError):
        store.load("nothing to see")
    assert store.state is before


def test_load_replaces_prior_document_and_filter(sample_srt):
    s = SegmentStore()
    s.load(THREE)
    s.set_starred(2, True)
    s.set_filter(True)
    s.load(sample_srt)
    assert not s.filter_on
    assert s.current_id == 1
    assert not s.has_starred


def test_filter_on_selects_first_starred_and_off_restores_snapshot():
    s = SegmentStore()
    s.load(THREE)
    s.set_starred(1, True)
    s.set_starred(3, True)
    s.select(2)

    s.set_filter(True)
    assert s.current_id == 1
    assert [seg.id for seg in s.active_view()] == [1, 3]

    # selection changes while filtered are not remembered
    s.select(3)
    s.set_filter(False)
    assert s.current_id == 2
    assert len(s.active_view()) == 3


def test_filter_on_without_starred_keeps_selection(store):
    store.select(4)
    store.set_filter(True)
    assert store.current_id == 4
    assert len(store.active_view()) == 6
    store.set_filter(False)
    assert store.current_id == 4


def test_repeated_filter_on_does_not_overwrite_snapshot():
    s = SegmentStore()
    s.load(THREE)
    s.set_starred(3, True)
    s.select(1)
    s.set_filter(True)
    s.set_filter(True)
    s.set_filter(False)
    assert s.current_id == 1


def test_unstarring_last_starred_clears_filter():
    s = SegmentStore()
    s.load(THREE)
    s.set_starred(2, True)
    s.set_filter(True)
    assert s.current_id == 2

    s.set_starred(2, False)
    assert not s.filter_on
    assert s.current_id == 2
    assert len(s.active_view()) == 3


def test_unstarring_current_while_filtered_moves_to_next_starred(sample_srt):
    s = SegmentStore()
    s.load(sample_srt)
    for seg_id in (2, 4, 6):
        s.set_starred(seg_id, True)
    s.set_filter(True)
    s.select(4)

    s.set_starred(4, False)
    assert s.filter_on
    assert s.current_id == 6

    s.set_starred(6, False)
    assert s.current_id == 2


def test_star_toggle_replaces_list_without_mutating_old_one(store):
    old_segments = store.segments
    assert store.toggle_star(3) is True
    assert store.segments is not old_segments
    assert not old_segments[2].starred
    assert store.segments[2].starred
    assert store.toggle_star(3) is False


def test_position_of_resolves_in_active_view(store):
    store.set_starred(2, True)
    store.set_starred(5, True)
    assert store.position_of(5) == 4
    store.set_filter(True)
    assert store.position_of(5) == 1
    assert store.position_of(3) is None


def test_duplicate_ids_resolve_to_first_occurrence():
    s = SegmentStore()
    s.load(
        "5\n00:00:01,000 --> 00:00:02,000\nFirst\n\n"
        "5\n00:00:03,000 --> 00:00:04,000\nSecond\n"
    )
    assert s.get_segment(5).text == "First"
    s.set_starred(5, True)
    assert [seg.starred for seg in s.segments] == [True, False]


def test_update_text_reencodes_document(store):
    segments = store.update_text(2, "  Edited   text ")
    assert segments[1].text == "Edited text"
    assert "Edited text" in store.document
    assert [s.text for s in decode(store.document)][1] == "Edited text"


def test_update_text_rejects_empty(store):
    before = store.state
    with pytest.raises(ValueError):
        store.update_text(2, "   ")
    assert store.state is before


def test_replace_bounds_rejects_inverted(store):
    with pytest.raises(ValueError):
        store.replace_bounds(2, 6.0, 6.0)


def test_select_unknown_id_raises(store):
    with pytest.raises(KeyError):
        store.select(99)


def test_exports_follow_active_view(store):
    store.set_starred(2, True)
    store.set_starred(4, True)
    assert store.export_text().count("\n") == 5

    store.set_filter(True)
    assert store.export_text() == "Second sentence\nFourth sentence"
    exported = decode(store.export_document())
    assert [s.text for s in exported] == ["Second sentence", "Fourth sentence"]
    assert [s.id for s in exported] == [1, 2]
