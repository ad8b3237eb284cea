"""FastAPI application exposing the content archive over HTTP."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from archive.errors import CompileError, StorageError
from archive.query_compiler import compile_query
from archive.retrieval import RetrievalEngine
from archive.store import EntryStore

from .models import (
    EntryCreatedResponse,
    EntryFormRequest,
    EntryModel,
    TextsPageResponse,
    VocabularyItem,
)

LOGGER = logging.getLogger("archive.api")


@dataclass(slots=True)
class APIServerConfig:
    """Runtime configuration for the FastAPI application."""

    store: EntryStore
    cors_origins: Sequence[str]
    app_version: str = "dev"


def create_app(config: APIServerConfig) -> FastAPI:
    """Create a FastAPI application bound to an opened :class:`EntryStore`."""

    app = FastAPI(
        title="Content Archive API",
        version=config.app_version,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )

    allowed_origins: List[str] = [origin for origin in config.cors_origins if origin]
    if allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allowed_origins,
            allow_methods=["OPTIONS", "GET", "PUT", "POST", "DELETE"],
            allow_headers=["*"],
        )

    store = config.store
    engine = RetrievalEngine(store)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):  # type: ignore[override]
        start = time.perf_counter()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            status_code = response.status_code if response is not None else 500
            LOGGER.info(
                "%s %s%s -> %s (%.1f ms)",
                request.method,
                request.url.path,
                f"?{request.url.query}" if request.url.query else "",
                status_code,
                duration_ms,
            )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(_request: Request, exc: HTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "invalid parameters", "details": jsonable_errors(exc)},
        )

    @app.exception_handler(StorageError)
    async def storage_exception_handler(request: Request, exc: StorageError):
        LOGGER.error("Storage failure while serving %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "internal server error"},
        )

    def require_found(found: bool) -> Response:
        if not found:
            raise HTTPException(status_code=404, detail="entry not found")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @app.get("/api/texts", response_model=TextsPageResponse)
    def list_texts(request: Request) -> TextsPageResponse:
        try:
            query = compile_query(request.url.query)
        except CompileError as exc:
            LOGGER.info("Rejecting filter %r: %s", request.url.query, exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        page = engine.retrieve(query)
        return TextsPageResponse(**page.as_dict())

    @app.post("/api/texts", response_model=EntryCreatedResponse)
    def create_text(payload: EntryFormRequest) -> EntryCreatedResponse:
        entry_id = store.insert_entry(payload.to_form())
        return EntryCreatedResponse(id=entry_id, link=f"/api/texts/{entry_id}")

    @app.get("/api/texts/{entry_id}", response_model=EntryModel)
    def get_text(entry_id: int) -> EntryModel:
        entry = engine.get_entry(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="entry not found")
        return EntryModel(**entry.as_dict())

    @app.put("/api/texts/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
    def replace_text(entry_id: int, payload: EntryFormRequest) -> Response:
        return require_found(store.update_entry(entry_id, payload.to_form()))

    @app.delete("/api/texts/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_text(entry_id: int) -> Response:
        return require_found(store.delete_entry(entry_id))

    @app.get("/api/categories", response_model=List[str])
    def categories() -> List[str]:
        return store.list_categories()

    def vocabulary(kind: str) -> List[VocabularyItem]:
        return [VocabularyItem(value=value, category=category) for value, category in store.list_vocabulary(kind)]

    @app.get("/api/authors", response_model=List[VocabularyItem])
    def authors() -> List[VocabularyItem]:
        return vocabulary("authors")

    @app.get("/api/themes", response_model=List[VocabularyItem])
    def themes() -> List[VocabularyItem]:
        return vocabulary("themes")

    @app.get("/api/works", response_model=List[VocabularyItem])
    def works() -> List[VocabularyItem]:
        return vocabulary("works")

    @app.get("/api/tags", response_model=List[VocabularyItem])
    def tags() -> List[VocabularyItem]:
        return vocabulary("tags")

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    """Return validation errors stripped of non-serialisable context."""

    errors = []
    for error in exc.errors():
        errors.append({key: error[key] for key in ("loc", "msg", "type") if key in error})
    return errors
