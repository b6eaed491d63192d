# reportar/main.py
from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from reportar.config import get_settings, parse_origins
from reportar.db.mongo import IncidenciaStore
from reportar.errors import (
    GENERIC_INTERNAL_MESSAGE,
    GENERIC_STORE_MESSAGE,
    ConfigError,
    IncidenciaInvalida,
    MalformedRequest,
    StoreError,
)
from reportar.models.incidencia import ErrorOut, ReportErrors
from reportar.services.alerts import AlertPublisher

log = logging.getLogger("uvicorn.error")

DEFAULT_MAX_BODY_MB = 20


# ---------------- Lifecycle ----------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings

    # a store injected beforehand (tests, embedding) is left to its owner
    owns_store = getattr(app.state, "store", None) is None
    if owns_store:
        store = IncidenciaStore.from_settings(settings)
        await run_in_threadpool(store.connect)  # StoreUnavailable here aborts startup
        app.state.store = store

    if getattr(app.state, "alerts", None) is None and settings.alerts_topic_arn:
        app.state.alerts = AlertPublisher(settings.alerts_topic_arn, region=settings.aws_region)
        log.info("Incidencia alerts enabled: %s", settings.alerts_topic_arn)

    try:
        yield
    finally:
        # uvicorn has already stopped accepting and drained in-flight requests
        if owns_store:
            await run_in_threadpool(app.state.store.close)
            app.state.store = None


app = FastAPI(
    title="Reportar API",
    version="1.0.0",
    description="Ingestion of incidencia reports (panic / dead-man) with inline Base64 photo.",
    lifespan=lifespan,
)


# ---------------- Admission ----------------
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Reject bodies whose declared Content-Length exceeds the ceiling.
    Bodies without a length are capped while streaming in the route.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = getattr(request.app.state, "settings", None)
        max_bytes = settings.max_body_bytes if settings is not None else DEFAULT_MAX_BODY_MB * 1024 * 1024

        content_length = request.headers.get("Content-Length")
        if content_length:
            try:
                declared = int(content_length)
            except ValueError:
                return _error(400, "Content-Length inválido")
            if declared > max_bytes:
                log.warning("Rejected body of %d bytes (limit %d)", declared, max_bytes)
                return _error(400, f"El cuerpo supera el límite de {max_bytes // (1024 * 1024)}MB")

        return await call_next(request)


app.add_middleware(RequestSizeLimitMiddleware)

# ---------------- CORS ----------------
# CORS_ORIGINS="https://app.example.com,https://staging.example.com"; any origin otherwise
cors_origins = parse_origins(os.getenv("CORS_ORIGINS"))
cors_kwargs = dict(allow_methods=["*"], allow_headers=["*"])

if cors_origins:
    cors_kwargs.update(
        allow_origins=list(cors_origins),
        allow_credentials=True,
    )
else:
    cors_kwargs.update(allow_origins=["*"])

app.add_middleware(CORSMiddleware, **cors_kwargs)
log.info("CORS configured: %s", cors_kwargs)


# ---------------- Error envelope ----------------
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorOut(error=message).model_dump())


@app.exception_handler(MalformedRequest)
async def malformed_request_handler(request: Request, exc: MalformedRequest):
    return _error(400, exc.message)


@app.exception_handler(IncidenciaInvalida)
async def invalid_incidencia_handler(request: Request, exc: IncidenciaInvalida):
    body = ReportErrors(errors=exc.messages())
    return JSONResponse(status_code=422, content=body.model_dump())


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    # details stay in the server log
    log.error("Error al guardar (%s): %s", type(exc).__name__, exc)
    return _error(500, GENERIC_STORE_MESSAGE)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorOut(error=str(exc.detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error(500, GENERIC_INTERNAL_MESSAGE)


# ---------------- Routers ----------------
from reportar.routes.incidencia import router as incidencia_router  # noqa: E402
from reportar.routes.status import router as status_router  # noqa: E402

app.include_router(incidencia_router)
app.include_router(status_router)


# ---------------- Meta/utility ----------------
@app.get("/", include_in_schema=False, response_class=PlainTextResponse)
def root() -> str:
    return "Servidor de incidencias funcionando"


# ---------------- Entrypoint ----------------
def run() -> None:
    import uvicorn

    try:
        settings = get_settings()
    except ConfigError as e:
        log.error("%s", e)
        sys.exit(1)

    uvicorn.run(
        "reportar.main:app",
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
        # the query-string shape carries the photo in the request line
        h11_max_incomplete_event_size=settings.max_body_bytes,
    )


if __name__ == "__main__":
    run()
