from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Iterable, Iterator, Optional

from scribe.services.ingestion import Fragment

_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS meetings (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    date TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'active',
    description TEXT,
    created_at TEXT NOT NULL DEFAULT ({_NOW_SQL}),
    updated_at TEXT NOT NULL DEFAULT ({_NOW_SQL})
);

CREATE TABLE IF NOT EXISTS transcriptions (
    id TEXT PRIMARY KEY,
    meeting_id TEXT NOT NULL REFERENCES meetings (id),
    speaker TEXT NOT NULL,
    content TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    sequence INTEGER NOT NULL,
    hash TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL DEFAULT ({_NOW_SQL})
);

CREATE INDEX IF NOT EXISTS idx_transcriptions_meeting_id ON transcriptions (meeting_id);
CREATE INDEX IF NOT EXISTS idx_transcriptions_sequence ON transcriptions (meeting_id, sequence);
"""


class StoreError(RuntimeError):
    pass


@dataclass
class InsertResult:
    fragment_id: str
    duplicate: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class InsertSummary:
    results: list[InsertResult] = field(default_factory=list)

    @property
    def inserted(self) -> int:
        return sum(1 for result in self.results if not result.duplicate)

    @property
    def duplicates(self) -> int:
        return sum(1 for result in self.results if result.duplicate)

    def to_dict(self) -> dict:
        return {
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "results": [result.to_dict() for result in self.results],
        }


@dataclass
class MeetingStats:
    total_transcriptions: int
    unique_speakers: int
    start_time: Optional[str]
    end_time: Optional[str]

    def to_dict(self) -> dict:
        return asdict(self)


class MeetingStore:
    """Meetings and their transcript fragments in a sqlite database.

    Each call opens its own connection, so the store can be shared across
    request threads. Any ``sqlite3.Error`` surfaces as ``StoreError``; the
    fingerprint conflict on insert is the one outcome that is not an error.
    """

    def __init__(self, database_path: str) -> None:
        self._database_path = database_path
        self._logger = logging.getLogger("scribe.store")
        parent = os.path.dirname(database_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    @contextmanager
    def _connect(self, operation: str, write: bool = False) -> Iterator[sqlite3.Connection]:
        # Writers lock up front; a deferred SHARED->RESERVED upgrade can fail
        # with SQLITE_BUSY without consulting the busy timeout.
        try:
            conn = sqlite3.connect(self._database_path, timeout=10.0, isolation_level=None)
        except sqlite3.Error as exc:
            self._logger.error("Store connect failed: op=%s error=%s", operation, exc)
            raise StoreError(f"{operation} failed: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            if write:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            if conn.in_transaction:
                conn.execute("COMMIT")
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.rollback()
            self._logger.error("Store operation failed: op=%s error=%s", operation, exc)
            raise StoreError(f"{operation} failed: {exc}") from exc
        finally:
            conn.close()

    @staticmethod
    def _row_to_fragment(row: sqlite3.Row) -> Fragment:
        return Fragment(
            id=row["id"],
            meeting_id=row["meeting_id"],
            speaker=row["speaker"],
            content=row["content"],
            timestamp=row["timestamp"],
            sequence=row["sequence"],
            fingerprint=row["hash"],
            created_at=row["created_at"],
        )

    def initialize(self) -> None:
        with self._connect("initialize") as conn:
            conn.executescript(_SCHEMA)
        self._logger.info("Database initialized: %s", self._database_path)

    # ── meetings ──────────────────────────────────────────────────────

    def upsert_meeting(self, meeting: dict) -> dict:
        meeting_id = meeting.get("id")
        with self._connect("upsert_meeting", write=True) as conn:
            conn.execute(
                f"""
                INSERT INTO meetings (id, title, date, status, description, updated_at)
                VALUES (?, ?, ?, ?, ?, {_NOW_SQL})
                ON CONFLICT (id) DO UPDATE SET
                    title = excluded.title,
                    date = excluded.date,
                    status = excluded.status,
                    description = excluded.description,
                    updated_at = excluded.updated_at
                """,
                (
                    meeting_id,
                    meeting.get("title"),
                    meeting.get("date"),
                    meeting.get("status") or "active",
                    meeting.get("description"),
                ),
            )
            row = conn.execute("SELECT * FROM meetings WHERE id = ?", (meeting_id,)).fetchone()
        self._logger.info("Meeting upserted: id=%s", meeting_id)
        return dict(row)

    def get_meeting(self, meeting_id: str) -> Optional[dict]:
        with self._connect("get_meeting") as conn:
            row = conn.execute("SELECT * FROM meetings WHERE id = ?", (meeting_id,)).fetchone()
        return dict(row) if row else None

    def list_meetings(self, limit: int = 50, offset: int = 0) -> list[dict]:
        with self._connect("list_meetings") as conn:
            rows = conn.execute(
                """
                SELECT m.*,
                       (SELECT COUNT(*) FROM transcriptions t WHERE t.meeting_id = m.id)
                           AS transcription_count
                FROM meetings m
                ORDER BY m.date DESC, m.created_at DESC
                LIMIT ? OFFSET ?
                """,
                (limit, offset),
            ).fetchall()
        return [dict(row) for row in rows]

    def delete_meeting(self, meeting_id: str) -> bool:
        """Remove a meeting and all of its fragments, children first."""
        with self._connect("delete_meeting", write=True) as conn:
            removed = conn.execute(
                "DELETE FROM transcriptions WHERE meeting_id = ?", (meeting_id,)
            ).rowcount
            deleted = conn.execute("DELETE FROM meetings WHERE id = ?", (meeting_id,)).rowcount
        self._logger.info(
            "Meeting deleted: id=%s found=%s fragments=%s", meeting_id, bool(deleted), removed
        )
        return bool(deleted)

    # ── fragments ─────────────────────────────────────────────────────

    def insert_fragment(self, fragment: Fragment) -> InsertResult:
        """Insert ``fragment`` unless its fingerprint is already stored.

        The check and the write are one statement guarded by ``UNIQUE(hash)``,
        so concurrent submissions of the same fragment create at most one row.
        """
        with self._connect("insert_fragment", write=True) as conn:
            cursor = conn.execute(
                """
                INSERT INTO transcriptions
                    (id, meeting_id, speaker, content, timestamp, sequence, hash)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (hash) DO NOTHING
                """,
                (
                    fragment.id,
                    fragment.meeting_id,
                    fragment.speaker,
                    fragment.content,
                    fragment.timestamp,
                    fragment.sequence,
                    fragment.fingerprint,
                ),
            )
            if cursor.rowcount:
                return InsertResult(fragment_id=fragment.id, duplicate=False)
            existing = conn.execute(
                "SELECT id FROM transcriptions WHERE hash = ?", (fragment.fingerprint,)
            ).fetchone()
        if existing is None:
            raise StoreError(f"insert_fragment failed: no row for hash {fragment.fingerprint}")
        self._logger.debug(
            "Duplicate fragment skipped: meeting=%s existing=%s", fragment.meeting_id, existing["id"]
        )
        return InsertResult(fragment_id=existing["id"], duplicate=True)

    def insert_fragments(self, fragments: Iterable[Fragment]) -> InsertSummary:
        """Insert fragments one by one; earlier inserts survive a later failure."""
        summary = InsertSummary()
        for fragment in fragments:
            summary.results.append(self.insert_fragment(fragment))
        self._logger.info(
            "Fragments stored: inserted=%s duplicates=%s", summary.inserted, summary.duplicates
        )
        return summary

    def get_fragments(self, meeting_id: str) -> list[Fragment]:
        with self._connect("get_fragments") as conn:
            rows = conn.execute(
                """
                SELECT * FROM transcriptions
                WHERE meeting_id = ?
                ORDER BY sequence ASC, created_at ASC, rowid ASC
                """,
                (meeting_id,),
            ).fetchall()
        return [self._row_to_fragment(row) for row in rows]

    def get_meeting_stats(self, meeting_id: str) -> MeetingStats:
        # Timestamps compare as strings, so they must be stored in a sortable form.
        with self._connect("get_meeting_stats") as conn:
            row = conn.execute(
                """
                SELECT COUNT(*) AS total_transcriptions,
                       COUNT(DISTINCT speaker) AS unique_speakers,
                       MIN(timestamp) AS start_time,
                       MAX(timestamp) AS end_time
                FROM transcriptions
                WHERE meeting_id = ?
                """,
                (meeting_id,),
            ).fetchone()
        return MeetingStats(
            total_transcriptions=row["total_transcriptions"],
            unique_speakers=row["unique_speakers"],
            start_time=row["start_time"],
            end_time=row["end_time"],
        )
