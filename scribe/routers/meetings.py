import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from scribe.services.documents import DocumentService
from scribe.services.meeting_store import MeetingStore


class UpsertMeetingRequest(BaseModel):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    status: str = "active"
    description: Optional[str] = None


def create_meetings_router(meeting_store: MeetingStore, documents: DocumentService) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("scribe.api.meetings")

    def _require_meeting(meeting_id: str) -> dict:
        meeting = meeting_store.get_meeting(meeting_id)
        if not meeting:
            raise HTTPException(status_code=404, detail="Meeting not found")
        return meeting

    @router.post("/api/meetings")
    def upsert_meeting(payload: UpsertMeetingRequest) -> dict:
        logger.info("Meeting upsert: id=%s", payload.id)
        return meeting_store.upsert_meeting(payload.model_dump())

    @router.get("/api/meetings")
    def list_meetings(
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ) -> list[dict]:
        return meeting_store.list_meetings(limit=limit, offset=offset)

    @router.get("/api/meetings/{meeting_id}")
    def get_meeting(meeting_id: str) -> dict:
        meeting = _require_meeting(meeting_id)
        return {**meeting, "stats": meeting_store.get_meeting_stats(meeting_id).to_dict()}

    @router.get("/api/meetings/{meeting_id}/stats")
    def get_meeting_stats(meeting_id: str) -> dict:
        _require_meeting(meeting_id)
        return meeting_store.get_meeting_stats(meeting_id).to_dict()

    @router.get("/api/meetings/{meeting_id}/files")
    def list_meeting_files(meeting_id: str) -> dict:
        meeting = _require_meeting(meeting_id)
        return {"meeting_id": meeting_id, "files": documents.list_files(meeting)}

    @router.delete("/api/meetings/{meeting_id}")
    def delete_meeting(meeting_id: str) -> dict:
        meeting = _require_meeting(meeting_id)
        meeting_store.delete_meeting(meeting_id)
        removed = documents.delete_all(meeting)
        logger.info("Meeting removed: id=%s files=%s", meeting_id, removed)
        return {"status": "ok", "files_deleted": removed}

    return router
