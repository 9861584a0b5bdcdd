"""
FastAPI application — cached GitHub repository stats.

Endpoints:
    GET  /health              → {"status": "ok"}
    GET  /stats?url=<repo>    → StatsResponse
    POST /stats/batch         → BatchStatsResponse
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from repostats.cache_key import make_cache_key
from repostats.formatting import format_stats, preview_image_url
from repostats.github_client import GitHubClient
from repostats.logging_config import new_request_id, request_id_ctx, setup_logging
from repostats.models import (
    BatchStatsRequest,
    BatchStatsResponse,
    ErrorResponse,
    StatsResponse,
)
from repostats.settings import settings
from repostats.stats_cache import StatsCacheManager
from repostats.store import InMemoryStatsStore, JSONFileStatsStore, StatsStore

logger = logging.getLogger("repostats.main")


# ── Shared state ───────────────────────────────────────────────
class _State:
    """Mutable container so lifespan and endpoints share instances."""
    github_client: GitHubClient | None = None
    store: StatsStore | None = None
    manager: StatsCacheManager | None = None


state = _State()


def _build_store() -> StatsStore:
    if settings.stats_store_dir:
        return JSONFileStatsStore(settings.stats_store_dir)
    return InMemoryStatsStore()


def _reset_state() -> None:
    state.github_client = None
    state.store = None
    state.manager = None


def _ensure_state() -> StatsCacheManager:
    """Lazily initialise client, store + manager for TestClient compatibility."""
    if state.github_client is None:
        state.github_client = GitHubClient()
    if state.store is None:
        state.store = _build_store()
    if state.manager is None:
        state.manager = StatsCacheManager(
            state.store,
            state.github_client,
            ttl_seconds=settings.stats_cache_ttl_seconds,
            batch_delay_seconds=settings.stats_batch_delay_seconds,
            max_staleness_seconds=settings.stats_max_staleness_seconds,
        )
    return state.manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage client, store and manager lifetime."""
    setup_logging(settings.log_level)
    _reset_state()
    _ensure_state()

    logger.info(
        "Application started (github_token=%s, store=%s, ttl=%ss)",
        bool(settings.github_token),
        type(state.store).__name__,
        settings.stats_cache_ttl_seconds,
    )
    if not settings.github_token:
        logger.warning(
            "GITHUB_TOKEN is not set — unauthenticated GitHub limits apply "
            "(60 requests/hour). Stale cache entries will be served when hit."
        )
    yield

    if state.github_client:
        await state.github_client.aclose()
    _reset_state()
    logger.info("Application shutdown")


app = FastAPI(
    title="GitHub Repository Stats",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Middleware: request_id + timing ────────────────────────────
@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    rid = new_request_id()
    request_id_ctx.set(rid)
    t0 = time.perf_counter()
    response = await call_next(request)
    elapsed = round((time.perf_counter() - t0) * 1000, 1)
    response.headers["X-Request-Id"] = rid
    logger.info(
        "%s %s → %s (%.1f ms)",
        request.method, request.url.path, response.status_code, elapsed,
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "elapsed_ms": elapsed,
        },
    )
    return response


# ── Error helper ───────────────────────────────────────────────
def _error_response(status: int, message: str) -> JSONResponse:
    """Return error as {"status": "error", "message": "..."}"""
    body = ErrorResponse(message=message)
    return JSONResponse(status_code=status, content=body.model_dump())


# ── Endpoints ──────────────────────────────────────────────────
@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/stats", response_model=StatsResponse)
async def get_stats(url: str = Query(..., description="GitHub repository URL")):
    manager = _ensure_state()

    key = make_cache_key(url)
    if not key:
        return _error_response(
            400,
            f"Invalid GitHub repository URL: '{url}'. "
            "Expected format: https://github.com/owner/repo",
        )

    stats = await manager.get_stats(url)
    return StatsResponse(
        url=url,
        key=key,
        stats=stats,
        display=format_stats(stats),
        preview_image=preview_image_url(url),
    )


@app.post("/stats/batch", response_model=BatchStatsResponse)
async def get_stats_batch(body: BatchStatsRequest):
    manager = _ensure_state()
    results = await manager.get_stats_batch(
        body.urls, body.concurrency or settings.stats_batch_size,
    )
    return BatchStatsResponse(results=results)
