"""Batch ingestion of raw transcript fragments.

Turns the loosely-typed items posted by the client into ``Fragment`` records:
validate, normalize, fingerprint, assign ordering. A bad item is reported in
``BatchResult.errors`` and never stops its siblings. Nothing here touches
storage; callers persist ``processed`` themselves.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from scribe.services.fingerprint import fingerprint
from scribe.services.normalization import normalize_speaker

_logger = logging.getLogger("scribe.ingestion")

REQUIRED_FIELDS = ("meeting_id", "speaker", "content", "timestamp")
# Accepted spellings for each field, first match wins.
_FIELD_ALIASES = {
    "meeting_id": ("meeting_id", "meetingId"),
    "speaker": ("speaker",),
    "content": ("content",),
    "timestamp": ("timestamp",),
}


class FragmentValidationError(ValueError):
    pass


@dataclass
class Fragment:
    id: str
    meeting_id: str
    speaker: str
    content: str
    timestamp: str
    sequence: int
    fingerprint: str
    created_at: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BatchError:
    index: int
    reason: str
    raw: Any

    def to_dict(self) -> dict:
        return {"index": self.index, "reason": self.reason, "raw": self.raw}


@dataclass
class BatchResult:
    processed: list[Fragment] = field(default_factory=list)
    errors: list[BatchError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "processed": [fragment.to_dict() for fragment in self.processed],
            "errors": [error.to_dict() for error in self.errors],
        }


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z`` for UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _field(raw: Mapping, name: str) -> Any:
    for key in _FIELD_ALIASES[name]:
        if key in raw:
            return raw[key]
    return None


def validate_fragment(raw: Any) -> list[str]:
    """Return every problem with ``raw``; an empty list means it is usable."""
    if not isinstance(raw, Mapping):
        return [f"fragment must be an object, got {type(raw).__name__}"]

    problems: list[str] = []
    for name in REQUIRED_FIELDS:
        value = _field(raw, name)
        if value is None:
            problems.append(f"{name} is required")
        elif not isinstance(value, str):
            problems.append(f"{name} must be a string")
        elif not value.strip():
            problems.append(f"{name} must not be empty")

    timestamp = _field(raw, "timestamp")
    if isinstance(timestamp, str) and timestamp.strip():
        try:
            parse_timestamp(timestamp)
        except ValueError:
            problems.append(f"invalid timestamp format: {timestamp!r}")

    sequence = raw.get("sequence")
    if sequence is not None and (isinstance(sequence, bool) or not isinstance(sequence, int)):
        problems.append("sequence must be an integer")
    return problems


def process_fragment(raw: Mapping, sequence: int) -> Fragment:
    """Validate and normalize one raw item into a ``Fragment``.

    ``sequence`` is used unless the item carries its own integer ``sequence``.
    Raises ``FragmentValidationError`` when the item is unusable.
    """
    problems = validate_fragment(raw)
    if problems:
        raise FragmentValidationError("; ".join(problems))

    meeting_id = _field(raw, "meeting_id").strip()
    speaker = normalize_speaker(_field(raw, "speaker"))
    content = _field(raw, "content").strip()
    timestamp = _field(raw, "timestamp").strip()
    if not speaker:
        raise FragmentValidationError("speaker is empty after normalization")

    explicit = raw.get("sequence")
    return Fragment(
        id=str(uuid.uuid4()),
        meeting_id=meeting_id,
        speaker=speaker,
        content=content,
        timestamp=timestamp,
        sequence=explicit if explicit is not None else sequence,
        fingerprint=fingerprint(meeting_id, speaker, content, timestamp),
    )


def batch_process(raw_fragments: Iterable[Any], start_sequence: int = 0) -> BatchResult:
    """Process a batch, separating usable fragments from per-item failures.

    Item ``i`` gets ``sequence = start_sequence + i`` by default. Order of
    ``processed`` follows the order of the valid inputs.
    """
    result = BatchResult()
    for index, raw in enumerate(raw_fragments):
        try:
            fragment = process_fragment(raw, start_sequence + index)
        except FragmentValidationError as exc:
            result.errors.append(BatchError(index=index, reason=str(exc), raw=raw))
            continue
        except Exception as exc:
            _logger.exception("Fragment processing failed: index=%s", index)
            result.errors.append(BatchError(index=index, reason=str(exc), raw=raw))
            continue
        result.processed.append(fragment)

    _logger.info(
        "Batch processed: received=%s processed=%s errors=%s",
        len(result.processed) + len(result.errors),
        len(result.processed),
        len(result.errors),
    )
    return result
