"""Utilities for transcript grouping, search and filtering."""

from typing import Iterable, Optional, Sequence

from scribe.services.ingestion import Fragment


def group_consecutive_by_speaker(fragments: Sequence[Fragment]) -> list[tuple[str, list[Fragment]]]:
    """
    Split an ordered fragment list into runs of the same speaker.

    A new group starts whenever the speaker differs from the previous
    fragment's speaker, so ``A, A, B, A`` yields three groups, not two.

    Returns:
        List of ``(speaker, fragments)`` tuples in transcript order
    """
    groups: list[tuple[str, list[Fragment]]] = []
    current_speaker: Optional[str] = None
    current: list[Fragment] = []

    for fragment in fragments:
        if current and fragment.speaker == current_speaker:
            current.append(fragment)
            continue
        if current:
            groups.append((current_speaker, current))
        current_speaker = fragment.speaker
        current = [fragment]

    if current:
        groups.append((current_speaker, current))
    return groups


def unique_speakers(fragments: Iterable[Fragment]) -> list[str]:
    """Distinct speakers in order of first appearance."""
    seen: dict[str, None] = {}
    for fragment in fragments:
        seen.setdefault(fragment.speaker, None)
    return list(seen)


def search_fragments(fragments: Iterable[Fragment], keyword: str) -> list[tuple[Fragment, int]]:
    """
    Case-insensitive keyword search over content and speaker names.

    Results are ranked by how often the keyword occurs in the content; ties
    keep transcript order. A speaker-only match ranks with relevance 0.
    """
    if not keyword:
        return []
    term = keyword.lower()
    matches = []
    for fragment in fragments:
        content = fragment.content.lower()
        if term in content or term in fragment.speaker.lower():
            matches.append((fragment, content.count(term)))
    return sorted(matches, key=lambda match: match[1], reverse=True)


def filter_by_time_range(
    fragments: Iterable[Fragment],
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> list[Fragment]:
    """Keep fragments whose timestamp falls within ``[start, end]`` (string comparison)."""
    return [
        fragment
        for fragment in fragments
        if (not start or fragment.timestamp >= start) and (not end or fragment.timestamp <= end)
    ]


def filter_by_speakers(fragments: Iterable[Fragment], speakers: Optional[Iterable[str]]) -> list[Fragment]:
    wanted = {speaker.lower() for speaker in speakers or [] if speaker}
    if not wanted:
        return list(fragments)
    return [fragment for fragment in fragments if fragment.speaker.lower() in wanted]
