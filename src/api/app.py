"""Skill Matcher HTTP API - FastAPI over the request lifecycle manager."""

import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from lifecycle.request_manager import RequestLifecycleManager
from models.api_model import (
    CreateRequest,
    CreateRequestResponse,
    ExtractSearchRequest,
    ExtractSearchResponse,
    IngestCandidateRequest,
    IngestCandidateResponse,
    ProcessResponse,
)
from models.request_model import RequestModel
from utils.errors import InvalidTransition, PersistenceError, RequestNotFound, ResolutionError

logger = logging.getLogger(__name__)


def create_app(manager: Optional[RequestLifecycleManager] = None) -> FastAPI:
    """
    Build the API around a manager.

    Without one, a manager is wired against the configured MongoDB when
    the app is created.
    """
    if manager is None:
        from database.mongo import create_indexes, get_database
        from lifecycle.request_manager import build_manager
        from parsers.llm_extractor import LLMSkillExtractor

        db = get_database()
        create_indexes(db)
        manager = build_manager(db, llm_extractor=LLMSkillExtractor.from_settings())

    app = FastAPI(title="Skill Matcher API", version="1.0.0")
    app.state.manager = manager

    # ---- Error mapping ----
    @app.exception_handler(RequestNotFound)
    async def not_found(request: Request, exc: RequestNotFound):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": f"Request {exc} not found"})

    @app.exception_handler(InvalidTransition)
    async def conflict(request: Request, exc: InvalidTransition):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc), "status": exc.status})

    @app.exception_handler(ResolutionError)
    async def unresolvable(request: Request, exc: ResolutionError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(PersistenceError)
    async def store_unavailable(request: Request, exc: PersistenceError):
        logger.error("Persistence failure on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Candidate store unavailable"},
        )

    # ---- Routes ----
    @app.get("/health")
    async def health():
        count = await manager.candidates.count()
        return {
            "status": "healthy",
            "candidates": count,
            "llm_fallback": manager.llm_extractor is not None,
        }

    @app.post("/requests", response_model=CreateRequestResponse)
    async def create_request(payload: CreateRequest):
        request = await manager.create(payload)
        return CreateRequestResponse(request_id=request.request_id, status=request.status)

    @app.post("/requests/{request_id}/process", response_model=ProcessResponse)
    async def process_request(request_id: str):
        return await manager.process(request_id)

    @app.post("/requests/{request_id}/retry", response_model=ProcessResponse)
    async def retry_request(request_id: str):
        return await manager.retry(request_id)

    @app.get("/requests/{request_id}", response_model=RequestModel)
    async def get_request(request_id: str):
        return await manager.get(request_id)

    @app.post("/extract/search", response_model=ExtractSearchResponse)
    async def extract_and_search(payload: ExtractSearchRequest):
        return await manager.extract_and_search(payload)

    @app.post("/candidates/ingest", response_model=IngestCandidateResponse)
    async def ingest_candidate(payload: IngestCandidateRequest):
        return await manager.ingest_candidate(payload)

    return app
