from __future__ import annotations

import json
import logging
from datetime import date
from typing import Optional

from scribe.services.blob_store import BlobStore
from scribe.services.meeting_store import MeetingStore
from scribe.services.rendering import Clock, local_now, render_markdown, render_summary

_ROOT_PREFIX = "meetings/"

DOCUMENT_FILES = {
    "transcript": ("transcription.md", "text/markdown; charset=utf-8"),
    "json": ("transcription.json", "application/json; charset=utf-8"),
    "summary": ("summary.md", "text/markdown; charset=utf-8"),
    "outline": ("outline.md", "text/markdown; charset=utf-8"),
}


def _date_part(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        return None


def meeting_prefix(meeting: dict, clock: Clock = local_now) -> str:
    """Blob prefix for a meeting, ``meetings/<YYYY-MM-DD>/<id>/``.

    The date comes from the meeting itself (its ``date``, else ``created_at``)
    so re-rendering on a later day overwrites the same objects. The clock is
    only consulted for meetings carrying neither.
    """
    day = _date_part(meeting.get("date")) or _date_part(meeting.get("created_at"))
    if day is None:
        day = clock().date().isoformat()
    return f"{_ROOT_PREFIX}{day}/{meeting['id']}/"


def document_key(meeting: dict, kind: str, clock: Clock = local_now) -> str:
    filename, _ = DOCUMENT_FILES[kind]
    return f"{meeting_prefix(meeting, clock)}{filename}"


class DocumentService:
    """Renders a meeting's fragments and keeps the derived blobs current."""

    def __init__(self, store: MeetingStore, blobs: BlobStore, clock: Clock = local_now) -> None:
        self._store = store
        self._blobs = blobs
        self._clock = clock
        self._logger = logging.getLogger("scribe.documents")

    def _write(self, meeting: dict, kind: str, content: str, extra: Optional[dict] = None) -> str:
        key = document_key(meeting, kind, self._clock)
        _, content_type = DOCUMENT_FILES[kind]
        metadata = {"meeting_id": meeting["id"], "generated_at": self._clock().isoformat()}
        metadata.update(extra or {})
        self._blobs.put(key, content, metadata=metadata, content_type=content_type)
        return key

    def regenerate(self, meeting_id: str) -> Optional[dict[str, str]]:
        """Re-render transcript, summary and JSON export; returns kind -> key.

        Returns ``None`` when the meeting does not exist. Concurrent calls for
        the same meeting race on the final writes and the last one wins.
        """
        meeting = self._store.get_meeting(meeting_id)
        if meeting is None:
            return None
        fragments = self._store.get_fragments(meeting_id)
        extra = {"fragment_count": len(fragments)}

        keys = {
            "transcript": self._write(
                meeting, "transcript", render_markdown(fragments, meeting, clock=self._clock), extra
            ),
            "summary": self._write(
                meeting, "summary", render_summary(fragments, meeting, clock=self._clock), extra
            ),
            "json": self._write(
                meeting,
                "json",
                json.dumps(
                    {"meeting": meeting, "transcriptions": [f.to_dict() for f in fragments]},
                    ensure_ascii=False,
                    indent=2,
                ),
                extra,
            ),
        }
        self._logger.info(
            "Documents regenerated: meeting=%s fragments=%s", meeting_id, len(fragments)
        )
        return keys

    def read(self, meeting: dict, kind: str) -> Optional[str]:
        blob = self._blobs.get(document_key(meeting, kind, self._clock))
        return blob.content if blob else None

    def save_outline(self, meeting: dict, outline: str) -> str:
        return self._write(meeting, "outline", outline)

    def list_files(self, meeting: dict) -> list[str]:
        """Every blob under ``meetings/*/<id>/``, including prefixes left by earlier dates."""
        keys = []
        for key in self._blobs.list(_ROOT_PREFIX):
            parts = key.split("/")
            if len(parts) == 4 and parts[2] == meeting["id"]:
                keys.append(key)
        return keys

    def delete_all(self, meeting: dict) -> int:
        keys = self.list_files(meeting)
        for key in keys:
            self._blobs.delete(key)
        self._logger.info("Documents deleted: meeting=%s count=%s", meeting["id"], len(keys))
        return len(keys)
