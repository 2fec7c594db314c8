import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from scribe.routers.meetings import UpsertMeetingRequest
from scribe.services.documents import DocumentService
from scribe.services.ingestion import batch_process
from scribe.services.meeting_store import MeetingStore
from scribe.services.transcript_utils import (
    filter_by_speakers,
    filter_by_time_range,
    search_fragments,
)


class BatchTranscriptionRequest(BaseModel):
    # Items stay untyped so one malformed entry is reported, not rejected with the batch.
    transcriptions: list[Any] = Field(default_factory=list)
    meeting: Optional[UpsertMeetingRequest] = None
    start_sequence: int = Field(0, ge=0)


def create_transcriptions_router(
    meeting_store: MeetingStore, documents: DocumentService
) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("scribe.api.transcriptions")

    def _require_meeting(meeting_id: str) -> dict:
        meeting = meeting_store.get_meeting(meeting_id)
        if not meeting:
            raise HTTPException(status_code=404, detail="Meeting not found")
        return meeting

    @router.post("/api/transcriptions")
    def submit_transcriptions(payload: BatchTranscriptionRequest) -> dict:
        if payload.meeting is not None:
            meeting_store.upsert_meeting(payload.meeting.model_dump())

        batch = batch_process(payload.transcriptions, start_sequence=payload.start_sequence)

        meeting_ids = list(dict.fromkeys(fragment.meeting_id for fragment in batch.processed))
        missing = [mid for mid in meeting_ids if meeting_store.get_meeting(mid) is None]
        if missing:
            logger.warning("Batch references unknown meetings: %s", missing)
            raise HTTPException(
                status_code=404,
                detail={"error": "Meeting not found", "meeting_ids": missing},
            )

        stored = meeting_store.insert_fragments(batch.processed)
        regenerated = {mid: documents.regenerate(mid) for mid in meeting_ids}

        logger.info(
            "Batch stored: received=%s new=%s duplicates=%s errors=%s meetings=%s",
            len(payload.transcriptions),
            stored.inserted,
            stored.duplicates,
            len(batch.errors),
            meeting_ids,
        )
        return {
            "received": len(payload.transcriptions),
            "processed": len(batch.processed),
            "inserted": stored.inserted,
            "duplicates": stored.duplicates,
            "errored": len(batch.errors),
            "results": [result.to_dict() for result in stored.results],
            "errors": [error.to_dict() for error in batch.errors],
            "documents": regenerated,
        }

    @router.get("/api/meetings/{meeting_id}/transcriptions")
    def list_transcriptions(
        meeting_id: str,
        speaker: Optional[list[str]] = Query(None),
        start: Optional[str] = None,
        end: Optional[str] = None,
        q: Optional[str] = None,
    ) -> dict:
        _require_meeting(meeting_id)
        fragments = meeting_store.get_fragments(meeting_id)
        fragments = filter_by_speakers(fragments, speaker)
        fragments = filter_by_time_range(fragments, start, end)
        if q:
            items = [
                {**fragment.to_dict(), "relevance": relevance}
                for fragment, relevance in search_fragments(fragments, q)
            ]
        else:
            items = [fragment.to_dict() for fragment in fragments]
        return {"meeting_id": meeting_id, "count": len(items), "transcriptions": items}

    def _document(meeting_id: str, kind: str) -> PlainTextResponse:
        meeting = _require_meeting(meeting_id)
        content = documents.read(meeting, kind)
        if content is None:
            documents.regenerate(meeting_id)
            content = documents.read(meeting, kind) or ""
        return PlainTextResponse(content, media_type="text/markdown")

    @router.get("/api/meetings/{meeting_id}/transcript.md")
    def get_transcript_markdown(meeting_id: str) -> PlainTextResponse:
        return _document(meeting_id, "transcript")

    @router.get("/api/meetings/{meeting_id}/summary.md")
    def get_summary_markdown(meeting_id: str) -> PlainTextResponse:
        return _document(meeting_id, "summary")

    return router
