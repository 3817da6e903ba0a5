"""Trace-API  –  Manufacturing traceability over a Neo4j graph."""

from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .admin import GraphAdmin
from .config import Settings, init_settings
from .errors import SerialNotFound, StoreError
from .models import AdminResult, SerialSample, SerialTrace, SupplierQuality
from .quality import QualityAnalytics
from .sampler import RandomSampler
from .seed import SeedGenerator
from .store import GraphStore
from .trace import TraceResolver

logger = logging.getLogger(__name__)

# ────────────────────────────────────────────────────────────────────
# App, config & Neo4j
# ────────────────────────────────────────────────────────────────────

app = FastAPI(title="Trace-API", version="0.1.0")

_settings = init_settings()

# Created lazily on first query, so a missing URI never stops startup.
_store = GraphStore.from_settings(_settings)


def get_settings() -> Settings:
    return _settings


def get_store() -> GraphStore:
    return _store


@app.on_event("shutdown")
def _close_store() -> None:
    _store.close()


# ────────────────────────────────────────────────────────────────────
# CORS & error envelopes
# ────────────────────────────────────────────────────────────────────

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status)


@app.middleware("http")
async def cors(request: Request, call_next):
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=CORS_HEADERS)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Error handling request %s %s", request.method, request.url.path)
        response = _error(500, "Internal server error")
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # A known path with the wrong method is just another unknown route.
    if exc.status_code in (404, 405):
        return _error(404, "Not found")
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(SerialNotFound)
async def _serial_not_found(request: Request, exc: SerialNotFound) -> JSONResponse:
    return _error(404, "Serial not found")


@app.exception_handler(StoreError)
async def _store_error(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(
        "Store failure on %s %s: %s", request.method, request.url.path, exc,
        exc_info=exc,
    )
    return _error(500, "Internal server error")


# ────────────────────────────────────────────────────────────────────
# Endpoints
# ────────────────────────────────────────────────────────────────────

@app.get("/api/health")
def health() -> dict:
    """Liveness only: does not touch the database."""
    return {"ok": True}


@app.get("/api/suppliers/quality", response_model=list[SupplierQuality])
def suppliers_quality(store: GraphStore = Depends(get_store)) -> list[SupplierQuality]:
    return QualityAnalytics(store).supplier_quality()


@app.get("/api/serial/random", response_model=SerialSample)
def random_serials(
    store: GraphStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> SerialSample:
    return SerialSample(serials=RandomSampler(store, settings.sample_size).sample())


@app.get("/api/serial/{serial:path}/trace", response_model=SerialTrace)
def serial_trace(serial: str, store: GraphStore = Depends(get_store)) -> SerialTrace:
    return TraceResolver(store).trace(serial)


@app.post("/api/admin/clear", response_model=AdminResult)
def admin_clear(store: GraphStore = Depends(get_store)) -> AdminResult:
    return GraphAdmin(store).clear()


@app.post("/api/admin/seed", response_model=AdminResult)
def admin_seed(store: GraphStore = Depends(get_store)) -> AdminResult:
    report = SeedGenerator(store).seed()
    return AdminResult(ok=report.ok, message=report.message)
