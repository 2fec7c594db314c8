import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from scribe.services.documents import DocumentService
from scribe.services.llm.base import LLMProviderError
from scribe.services.meeting_store import MeetingStore
from scribe.services.outline import OutlineService


class OutlineRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Transcript text to outline")


def _transcript_text(fragments) -> str:
    return "\n".join(f"{fragment.speaker}: {fragment.content}" for fragment in fragments)


def create_outline_router(
    meeting_store: MeetingStore, documents: DocumentService, outline_service: OutlineService
) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("scribe.api.outline")

    @router.post("/api/outline")
    def outline_text(payload: OutlineRequest) -> dict:
        try:
            outline = outline_service.generate(payload.text)
        except LLMProviderError as exc:
            logger.warning("Outline failed: %s", exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {"outline": outline}

    @router.post("/api/meetings/{meeting_id}/outline")
    def outline_meeting(meeting_id: str) -> dict:
        meeting = meeting_store.get_meeting(meeting_id)
        if not meeting:
            raise HTTPException(status_code=404, detail="Meeting not found")
        fragments = meeting_store.get_fragments(meeting_id)
        if not fragments:
            raise HTTPException(status_code=400, detail="Transcript not found")
        try:
            outline = outline_service.generate(_transcript_text(fragments))
        except LLMProviderError as exc:
            logger.warning("Outline failed: meeting=%s error=%s", meeting_id, exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        key = documents.save_outline(meeting, outline)
        return {"meeting_id": meeting_id, "outline": outline, "key": key}

    return router
