from conftest import make_fragments

from scribe.services.transcript_utils import (
    filter_by_speakers,
    filter_by_time_range,
    group_consecutive_by_speaker,
    search_fragments,
    unique_speakers,
)


def test_group_consecutive_by_speaker():
    fragments = make_fragments([("A", "1"), ("A", "2"), ("B", "3"), ("A", "4")])
    groups = group_consecutive_by_speaker(fragments)
    assert [(speaker, [f.content for f in items]) for speaker, items in groups] == [
        ("A", ["1", "2"]),
        ("B", ["3"]),
        ("A", ["4"]),
    ]
    assert group_consecutive_by_speaker([]) == []


def test_unique_speakers_first_appearance():
    fragments = make_fragments([("B", "1"), ("A", "2"), ("B", "3")])
    assert unique_speakers(fragments) == ["B", "A"]


def test_search_ranks_by_occurrences():
    fragments = make_fragments(
        [("Alice", "budget"), ("Bob", "budget budget budget"), ("Carol", "nothing"), ("Budget Bot", "hello")]
    )
    results = search_fragments(fragments, "BUDGET")
    assert [(f.speaker, relevance) for f, relevance in results] == [
        ("Bob", 3),
        ("Alice", 1),
        ("Budget Bot", 0),
    ]
    assert search_fragments(fragments, "") == []


def test_filter_by_time_range_is_inclusive():
    fragments = make_fragments([("A", "0"), ("A", "1"), ("A", "2"), ("A", "3")])
    kept = filter_by_time_range(fragments, "2025-03-14T09:01:00Z", "2025-03-14T09:02:00Z")
    assert [f.content for f in kept] == ["1", "2"]
    assert len(filter_by_time_range(fragments, start="2025-03-14T09:02:00Z")) == 2
    assert len(filter_by_time_range(fragments)) == 4


def test_filter_by_speakers_case_insensitive():
    fragments = make_fragments([("Alice", "1"), ("Bob", "2"), ("alice", "3")])
    assert [f.content for f in filter_by_speakers(fragments, ["ALICE"])] == ["1", "3"]
    assert len(filter_by_speakers(fragments, [])) == 3
    assert len(filter_by_speakers(fragments, None)) == 3
