"""autodesc: front-matter description generator.

FastAPI application entry-point for editor integrations.  The editor posts
the full document text and receives the rewritten text back.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request

from config import SettingsStore, configure_logging
from engine.document import TextDocument
from engine.pipeline import run_pipeline
from engine.selection import PresetSelectionPrompt
from schemas.request import CategoryRequest, GenerateRequest
from schemas.response import CategoriesResponse, ErrorResponse, GenerateResponse

logger = logging.getLogger("autodesc")

VERSION = "0.1.0"

_STATUS_BY_ERROR_KIND = {
    "precondition": 422,
    "configuration": 400,
    "upstream": 502,
    "io": 500,
}


# ── Lifespan ───────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    store = SettingsStore()
    settings = store.load()
    configure_logging(settings.log_level)
    app.state.store = store
    app.state.settings = settings
    logger.info(
        "autodesc starting: provider=%s model=%s settings=%s",
        settings.api_provider,
        settings.model,
        store.path,
    )
    yield
    logger.info("autodesc shutting down.")


# ── App ────────────────────────────────────────────────────────────────

app = FastAPI(
    title="autodesc",
    description="Generates description, tags and category front matter for Markdown documents.",
    version=VERSION,
    lifespan=lifespan,
)


def _add_category(request: Request, name: str) -> list[str]:
    state = request.app.state
    state.settings = state.store.add_category(state.settings, name)
    return state.settings.categories


# ── Routes ─────────────────────────────────────────────────────────────

@app.get("/health")
async def health(request: Request):
    settings = request.app.state.settings
    return {
        "status": "ok",
        "engine": "autodesc",
        "version": VERSION,
        "provider": settings.api_provider,
        "api_key_configured": bool(settings.api_key),
    }


@app.post(
    "/generate",
    response_model=GenerateResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Generate front matter for a document",
)
async def generate(payload: GenerateRequest, request: Request) -> GenerateResponse:
    selector = PresetSelectionPrompt(
        category=payload.category,
        tags=payload.tags,
        on_create=lambda name: _add_category(request, name),
    )
    document = TextDocument(payload.content)
    outcome = await run_pipeline(document, settings=request.app.state.settings, selector=selector)

    if not outcome.ok or outcome.result is None:
        status = _STATUS_BY_ERROR_KIND.get(outcome.error_kind or "", 500)
        raise HTTPException(status_code=status, detail=outcome.error)

    return GenerateResponse(
        content=document.text,
        description=outcome.result.description,
        tags=outcome.result.tags,
        categories=outcome.result.categories,
    )


@app.get("/categories", response_model=CategoriesResponse)
async def list_categories(request: Request) -> CategoriesResponse:
    return CategoriesResponse(categories=request.app.state.settings.categories)


@app.post("/categories", response_model=CategoriesResponse, status_code=201)
async def create_category(payload: CategoryRequest, request: Request) -> CategoriesResponse:
    try:
        categories = _add_category(request, payload.name)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return CategoriesResponse(categories=categories)


# ── Dev runner ─────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    _settings = SettingsStore().load()
    uvicorn.run(
        "main:app",
        host=_settings.host,
        port=_settings.port,
        log_level=_settings.log_level,
        reload=True,
    )
