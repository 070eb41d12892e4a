import pytest

from transcript_bridge.rewind import find_rewind_boundary, rewind_to_index, rewind_to_sequence, rewind_to_timestamp
from transcript_bridge.transcript import Turn


def _transcript():
    return [
        Turn.user("one", ts=100.0, seq=0),
        Turn.assistant("a", ts=250.0, seq=1),
        Turn.user("two", ts=200.0, seq=2),
        Turn.assistant("b", ts=300.0, seq=3),
    ]


def test_boundary_is_first_user_turn_at_or_after_cutoff():
    transcript = _transcript()
    # the assistant turn's late timestamp does not count as the boundary
    assert find_rewind_boundary(transcript, 200.0) == 2
    assert [t.text() for t in rewind_to_timestamp(transcript, 200.0)] == ["one", "a"]


def test_filter_when_no_user_boundary():
    transcript = _transcript()
    kept = rewind_to_timestamp(transcript, 280.0)
    assert find_rewind_boundary(transcript, 280.0) is None
    assert [t.text() for t in kept] == ["one", "a", "two"]
    untimed = [Turn.user("x"), Turn.assistant("y", ts=500.0)]
    assert [t.text() for t in rewind_to_timestamp(untimed, 400.0)] == ["x"]


def test_rewind_to_sequence_and_index():
    transcript = _transcript()
    assert [t.seq for t in rewind_to_sequence(transcript, 2)] == [0, 1]
    assert rewind_to_index(transcript, 1) == transcript[:1]
    assert rewind_to_index(transcript, 4) == transcript
    with pytest.raises(IndexError):
        rewind_to_index(transcript, 5)
