import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from reportar.db.mongo import isoformat_utc
from reportar.errors import MalformedRequest, StoreUnavailable
from reportar.models.incidencia import InsertResult, ReportOk
from reportar.services.normalize import normalize_body, normalize_query
from reportar.services.submission import submit

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api", tags=["incidencia"])

DEFAULT_MAX_BODY_BYTES = 20 * 1024 * 1024


# ----------------------------
# helpers
# ----------------------------

def _settings(request: Request):
    return getattr(request.app.state, "settings", None)


def _default_incidencia(request: Request):
    settings = _settings(request)
    return settings.default_incidencia if settings is not None else None


def _max_body_bytes(request: Request) -> int:
    settings = _settings(request)
    return settings.max_body_bytes if settings is not None else DEFAULT_MAX_BODY_BYTES


def _store(request: Request):
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise StoreUnavailable("store not initialised")
    return store


def _is_json(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


async def _read_body(request: Request, limit: int) -> bytes:
    # Stop as soon as the ceiling is crossed; never buffer an oversized body
    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > limit:
            raise MalformedRequest(f"El cuerpo supera el límite de {limit // (1024 * 1024)}MB")
        chunks.append(chunk)
    return b"".join(chunks)


def _created(result: InsertResult) -> JSONResponse:
    body = ReportOk(id=result.id, fecha=isoformat_utc(result.created_at))
    return JSONResponse(status_code=201, content=body.model_dump())


async def _submit(request: Request, candidate: dict) -> JSONResponse:
    log.info(
        "Datos recibidos: fotoRecibida=%s longitudFoto=%s",
        bool(candidate.get("foto")),
        len(candidate["foto"]) if isinstance(candidate.get("foto"), str) else None,
    )
    store = _store(request)
    alerts = getattr(request.app.state, "alerts", None)
    result = await run_in_threadpool(submit, candidate, store, alerts)
    return _created(result)


# ----------------------------
# routes
# ----------------------------

@router.post("/reportar", status_code=201, summary="Submit an incidencia (JSON body)")
async def reportar(request: Request):
    """
    Structured submission:
    {bellota, localizacion: {latitud, longitud}, incidencias (or legacy incidencia), foto, activo?}
    """
    if not _is_json(request.headers.get("content-type", "")):
        raise MalformedRequest("Content-Type debe ser application/json")

    raw = await _read_body(request, _max_body_bytes(request))
    try:
        data = json.loads(raw)
    except ValueError:
        # JSONDecodeError, bad UTF-8, and integer literals past the int-string limit
        raise MalformedRequest("El cuerpo no es JSON válido") from None
    if not isinstance(data, dict):
        raise MalformedRequest("El cuerpo debe ser un objeto JSON")

    candidate = normalize_body(data, default_incidencia=_default_incidencia(request))
    return await _submit(request, candidate)


@router.get("/reportarData", status_code=201, summary="Submit an incidencia (query string)")
async def reportar_data(request: Request):
    """For constrained clients that can't POST a body: ?bellota=&latitud=&longitud=&incidencias=&foto="""
    candidate = normalize_query(request.query_params, default_incidencia=_default_incidencia(request))
    return await _submit(request, candidate)
