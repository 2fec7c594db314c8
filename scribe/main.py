import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from scribe.config import AppConfig, load_config
from scribe.context import AppContext
from scribe.routers.jitsi import create_jitsi_router
from scribe.routers.meetings import create_meetings_router
from scribe.routers.outline import create_outline_router
from scribe.routers.transcriptions import create_transcriptions_router
from scribe.services.blob_store import BlobStore, LocalBlobStore
from scribe.services.documents import DocumentService
from scribe.services.logging_setup import configure_logging
from scribe.services.meeting_store import MeetingStore, StoreError
from scribe.services.outline import OutlineService
from scribe.services.rendering import Clock, local_now

VERSION = "0.1.0"


def create_app(
    config: Optional[AppConfig] = None,
    *,
    cwd: Optional[str] = None,
    clock: Clock = local_now,
    blob_store: Optional[BlobStore] = None,
    outline_service: Optional[OutlineService] = None,
) -> FastAPI:
    cwd = cwd or os.getcwd()
    if config is None:
        config = load_config(os.path.join(cwd, "data", "config.json"), os.environ)

    ctx = AppContext(cwd=cwd, config=config)
    ctx.ensure_dirs()
    configure_logging(ctx.logs_dir)
    logger = logging.getLogger("scribe.boot")
    logger.info("Boot: starting create_app data_dir=%s", ctx.data_dir)

    meeting_store = MeetingStore(ctx.database_path)
    meeting_store.initialize()
    logger.info("Boot: meeting_store ready path=%s", ctx.database_path)

    blobs = blob_store or LocalBlobStore(ctx.blobs_dir)
    documents = DocumentService(meeting_store, blobs, clock=clock)
    outline_service = outline_service or OutlineService(config.llm)
    if not outline_service.configured:
        logger.warning("Boot: no AI model configured, outline endpoints will fail")

    app = FastAPI(title="Scribe", version=VERSION)
    app.state.ctx = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )
    logger.info("Boot: CORS origins=%s", config.allowed_origins)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store failure: path=%s error=%s", request.url.path, exc)
        return JSONResponse({"detail": str(exc)}, status_code=500)

    app.include_router(create_meetings_router(meeting_store, documents))
    app.include_router(create_transcriptions_router(meeting_store, documents))
    app.include_router(create_outline_router(meeting_store, documents, outline_service))
    app.include_router(create_jitsi_router(config))
    logger.info("Boot: routers mounted")

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "version": VERSION}

    logger.info("Boot: create_app complete")
    return app
