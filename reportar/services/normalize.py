"""
Reduce the two inbound submission shapes to one canonical candidate.

Structured body (POST /api/reportar):
    {bellota, localizacion: {latitud, longitud}, incidencias | incidencia, foto, activo?}
Flat query (GET /api/reportarData):
    bellota, latitud, longitud, incidencias, foto

Values are NOT coerced here; the validator does that so a bad value becomes
a field error instead of a server error.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

FLAT_KEYS = ("bellota", "latitud", "longitud", "incidencias", "incidencia", "foto")


def _absent(data: Mapping[str, Any], key: str) -> bool:
    return data.get(key) is None


def normalize_body(
    body: Mapping[str, Any],
    *,
    default_incidencia: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Return a new dict holding only the canonical keys. The input is never mutated
    and unknown keys are dropped.

    `default_incidencia` is the bug-compatible toggle for old clients that omit
    the incident kind. Leave it None to have such submissions rejected.
    """
    candidate: Dict[str, Any] = {}

    if "bellota" in body:
        candidate["bellota"] = body["bellota"]

    # localizacion: nested wins; otherwise synthesize from flat latitud/longitud
    if not _absent(body, "localizacion"):
        loc = body["localizacion"]
        candidate["localizacion"] = dict(loc) if isinstance(loc, Mapping) else loc
    elif not _absent(body, "latitud") or not _absent(body, "longitud"):
        loc = {}
        if "latitud" in body:
            loc["latitud"] = body["latitud"]
        if "longitud" in body:
            loc["longitud"] = body["longitud"]
        candidate["localizacion"] = loc

    # incidencias: legacy singular `incidencia` from the first client generation
    if not _absent(body, "incidencias"):
        candidate["incidencias"] = body["incidencias"]
    elif not _absent(body, "incidencia"):
        candidate["incidencias"] = body["incidencia"]
    elif default_incidencia is not None:
        candidate["incidencias"] = default_incidencia

    if "foto" in body:
        candidate["foto"] = body["foto"]

    if "activo" in body:
        candidate["activo"] = body["activo"]

    return candidate


def normalize_query(
    params: Mapping[str, Any],
    *,
    default_incidencia: Optional[int] = None,
) -> Dict[str, Any]:
    flat = {k: params[k] for k in FLAT_KEYS if k in params}
    return normalize_body(flat, default_incidencia=default_incidencia)
