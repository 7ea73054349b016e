import logging
import uuid
from typing import Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from catalog_indexer.config import Settings
from catalog_indexer.errors import IndexNotFoundError, SearchEngineError
from catalog_indexer.lifecycle import IndexLifecycleManager
from catalog_indexer.opensearch import OpenSearchClient
from catalog_indexer.schemas import (
    AliasListResponse,
    HealthResponse,
    IndexActionResponse,
    IndexListResponse,
    PromoteRequest,
    ReindexRequest,
)

settings = Settings.from_env()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger("index-admin")

client = OpenSearchClient(settings)
manager = IndexLifecycleManager(client)

app = FastAPI(title="catalog-index-admin")


def request_context(request: Request) -> Dict[str, str]:
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    trace_id = request.headers.get("x-trace-id") or uuid.uuid4().hex
    return {"request_id": request_id, "trace_id": trace_id}


def error_payload(request: Request, code: str, message: str, status_code: int) -> JSONResponse:
    ctx = request_context(request)
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {"code": code, "message": message},
            "trace_id": ctx["trace_id"],
            "request_id": ctx["request_id"],
        },
    )


@app.exception_handler(HTTPException)
async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    code = str(exc.detail or "http_error")
    return error_payload(request, code, code, exc.status_code)


@app.exception_handler(RequestValidationError)
async def handle_validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_payload(request, "invalid_request", "invalid_request", 400)


@app.exception_handler(IndexNotFoundError)
async def handle_index_not_found(request: Request, exc: IndexNotFoundError) -> JSONResponse:
    return error_payload(request, "index_not_found", str(exc), 404)


@app.exception_handler(SearchEngineError)
async def handle_search_engine_error(request: Request, exc: SearchEngineError) -> JSONResponse:
    logger.warning("Search engine rejected request: %s", exc)
    return error_payload(request, "search_engine_error", str(exc), 502)


@app.exception_handler(Exception)
async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", exc)
    return error_payload(request, "internal_error", "internal_error", 500)


@app.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    ctx = request_context(request)
    return HealthResponse(status="ok", trace_id=ctx["trace_id"], request_id=ctx["request_id"])


@app.get("/internal/index/indices", response_model=IndexListResponse)
def list_indices(request: Request) -> IndexListResponse:
    ctx = request_context(request)
    return IndexListResponse(trace_id=ctx["trace_id"], request_id=ctx["request_id"], indices=manager.list_indices())


@app.get("/internal/index/aliases", response_model=AliasListResponse)
def list_aliases(request: Request) -> AliasListResponse:
    ctx = request_context(request)
    return AliasListResponse(trace_id=ctx["trace_id"], request_id=ctx["request_id"], aliases=manager.list_aliases())


@app.delete("/internal/index/indices/{index_name}", response_model=IndexActionResponse)
def delete_index(index_name: str, request: Request) -> IndexActionResponse:
    ctx = request_context(request)
    manager.delete(index_name)
    return IndexActionResponse(trace_id=ctx["trace_id"], request_id=ctx["request_id"], index=index_name)


@app.post("/internal/index/promote", response_model=IndexActionResponse)
def promote_index(request: Request, payload: PromoteRequest) -> IndexActionResponse:
    ctx = request_context(request)
    previous = manager.promote(payload.index, payload.alias)
    return IndexActionResponse(
        trace_id=ctx["trace_id"],
        request_id=ctx["request_id"],
        index=payload.index,
        alias=payload.alias,
        previous=previous,
    )


@app.post("/internal/index/reindex", response_model=IndexActionResponse)
def reindex(request: Request, payload: ReindexRequest) -> IndexActionResponse:
    ctx = request_context(request)
    count = manager.reindex(payload.source, payload.destination)
    return IndexActionResponse(
        trace_id=ctx["trace_id"],
        request_id=ctx["request_id"],
        index=payload.destination,
        count=count,
    )
