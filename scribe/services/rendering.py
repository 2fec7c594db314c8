"""Markdown transcript and summary documents built from ordered fragments.

Both renderers are pure apart from the generation-time footer, which comes from
the injected ``clock``. Pass ``clock=None`` to leave the footer out and get
byte-for-byte reproducible output.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Sequence

from scribe.services.ingestion import Fragment
from scribe.services.transcript_utils import group_consecutive_by_speaker, unique_speakers

Clock = Callable[[], datetime]

EMPTY_TRANSCRIPT = "# Meeting Transcript\n\nNo transcript content yet.\n"
EMPTY_SUMMARY = "# Meeting Summary\n\nNo transcript content to summarize yet.\n"

HIGHLIGHT_MIN_LENGTH = 50
HIGHLIGHT_LIMIT = 5


def local_now() -> datetime:
    return datetime.now().astimezone()


def _format_generated_at(clock: Clock) -> str:
    return clock().strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def _header_lines(meeting_info: Optional[dict], default_title: str, title_suffix: str = "") -> list[str]:
    info = meeting_info or {}
    title = info.get("title")
    lines = [f"# {title}{title_suffix}" if title else f"# {default_title}", ""]
    if info.get("date"):
        lines.extend([f"**Date:** {info['date']}", ""])
    if info.get("description"):
        lines.extend([f"**Description:** {info['description']}", ""])
    return lines


def _time_span(fragments: Sequence[Fragment]) -> str:
    return f"{fragments[0].timestamp} ~ {fragments[-1].timestamp}"


def render_markdown(
    fragments: Sequence[Fragment],
    meeting_info: Optional[dict] = None,
    *,
    clock: Optional[Clock] = local_now,
) -> str:
    if not fragments:
        return EMPTY_TRANSCRIPT

    lines = _header_lines(meeting_info, "Meeting Transcript")
    lines.extend(["---", ""])

    for speaker, group in group_consecutive_by_speaker(fragments):
        lines.extend([f"## {speaker}", ""])
        for fragment in group:
            lines.extend([f"**{fragment.timestamp}**", "", fragment.content, ""])
        lines.extend(["---", ""])

    speakers = unique_speakers(fragments)
    lines.extend(
        [
            "## Statistics",
            "",
            f"- **Total entries:** {len(fragments)}",
            f"- **Speakers:** {len(speakers)}",
            f"- **Speaker list:** {', '.join(speakers)}",
            f"- **Time range:** {_time_span(fragments)}",
        ]
    )
    if clock is not None:
        lines.append(f"- **Generated at:** {_format_generated_at(clock)}")
    lines.append("")
    return "\n".join(lines)


def select_highlights(
    fragments: Sequence[Fragment],
    min_length: int = HIGHLIGHT_MIN_LENGTH,
    limit: int = HIGHLIGHT_LIMIT,
) -> list[Fragment]:
    """Longest fragments above ``min_length`` characters, longest first.

    ``sorted`` is stable, so equal lengths keep their transcript order.
    """
    candidates = [fragment for fragment in fragments if len(fragment.content) > min_length]
    return sorted(candidates, key=lambda fragment: len(fragment.content), reverse=True)[:limit]


def speaker_statistics(fragments: Sequence[Fragment]) -> list[tuple[str, int, int]]:
    """``(speaker, entries, average_length)`` per speaker in first-appearance order."""
    totals: dict[str, list[int]] = {}
    for fragment in fragments:
        entry = totals.setdefault(fragment.speaker, [0, 0])
        entry[0] += 1
        entry[1] += len(fragment.content)
    # Round half up so 2.5 becomes 3.
    return [(speaker, count, int(length / count + 0.5)) for speaker, (count, length) in totals.items()]


def render_summary(
    fragments: Sequence[Fragment],
    meeting_info: Optional[dict] = None,
    *,
    clock: Optional[Clock] = local_now,
) -> str:
    if not fragments:
        return EMPTY_SUMMARY

    lines = _header_lines(meeting_info, "Meeting Summary", title_suffix=" - Meeting Summary")

    speakers = unique_speakers(fragments)
    lines.extend(
        [
            "## Overview",
            "",
            f"- **Participants:** {len(speakers)}",
            f"- **Speakers:** {', '.join(speakers)}",
            f"- **Total entries:** {len(fragments)}",
            f"- **Time range:** {_time_span(fragments)}",
            "",
            "## Speaker Statistics",
            "",
        ]
    )
    for speaker, count, average in speaker_statistics(fragments):
        lines.append(f"- **{speaker}:** {count} entries, average {average} characters")
    lines.extend(["", "## Highlights", ""])

    highlights = select_highlights(fragments)
    if not highlights:
        lines.extend(["_No entries long enough to highlight._", ""])
    for fragment in highlights:
        lines.extend([f"### {fragment.speaker} ({fragment.timestamp})", "", fragment.content, ""])

    if clock is not None:
        lines.extend(["---", "", f"*Generated at: {_format_generated_at(clock)}*", ""])
    return "\n".join(lines)
