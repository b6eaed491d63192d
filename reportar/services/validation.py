# reportar/services/validation.py
from __future__ import annotations

import math
from typing import Any, List, Mapping, Optional, Tuple

from reportar.models.incidencia import (
    FieldError,
    Incidencia,
    Localizacion,
    MIN_FOTO_LENGTH,
    TipoIncidencia,
)

TIPOS_VALIDOS = {int(t) for t in TipoIncidencia}

# BSON stores integers as signed 64-bit
BSON_INT64_MAX = 2**63 - 1


# ----------------------------
# Coercion helpers
# ----------------------------

def _missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_int(value: Any) -> Optional[int]:
    # bool is an int subclass; a JSON true is not a beacon number
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            out = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            out = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return out if math.isfinite(out) else None


# ----------------------------
# Per-field rules
# ----------------------------

def _check_bellota(candidate: Mapping[str, Any], errors: List[FieldError]) -> Optional[int]:
    raw = candidate.get("bellota")
    if _missing(raw):
        errors.append(FieldError(field="bellota", message="es obligatoria"))
        return None
    value = _to_int(raw)
    if value is None:
        errors.append(FieldError(field="bellota", message="debe ser un número entero"))
        return None
    if value < 0:
        errors.append(FieldError(field="bellota", message="debe ser mayor o igual que 0"))
        return None
    if value > BSON_INT64_MAX:
        errors.append(FieldError(field="bellota", message=f"debe ser menor o igual que {BSON_INT64_MAX}"))
        return None
    return value


def _check_coordinate(
    loc: Mapping[str, Any], key: str, limit: float, errors: List[FieldError]
) -> Optional[float]:
    path = f"localizacion.{key}"
    raw = loc.get(key)
    if _missing(raw):
        errors.append(FieldError(field=path, message="es obligatoria"))
        return None
    value = _to_float(raw)
    if value is None:
        errors.append(FieldError(field=path, message="debe ser un número"))
        return None
    if not -limit <= value <= limit:
        errors.append(FieldError(field=path, message=f"debe estar entre -{limit:g} y {limit:g}"))
        return None
    return value


def _check_localizacion(
    candidate: Mapping[str, Any], errors: List[FieldError]
) -> Optional[Localizacion]:
    loc = candidate.get("localizacion")
    if loc is None:
        errors.append(FieldError(field="localizacion", message="es obligatoria (latitud y longitud)"))
        return None
    if not isinstance(loc, Mapping):
        errors.append(FieldError(field="localizacion", message="debe ser un objeto con latitud y longitud"))
        return None
    lat = _check_coordinate(loc, "latitud", 90, errors)
    lng = _check_coordinate(loc, "longitud", 180, errors)
    if lat is None or lng is None:
        return None
    return Localizacion(latitud=lat, longitud=lng)


def _check_incidencias(
    candidate: Mapping[str, Any], errors: List[FieldError]
) -> Optional[TipoIncidencia]:
    raw = candidate.get("incidencias")
    if _missing(raw):
        errors.append(FieldError(field="incidencias", message="es obligatoria"))
        return None
    value = _to_int(raw)
    if value is None:
        errors.append(FieldError(field="incidencias", message="debe ser un número entero"))
        return None
    if value not in TIPOS_VALIDOS:
        errors.append(FieldError(field="incidencias", message="debe ser 1 (pánico) o 2 (hombre muerto)"))
        return None
    return TipoIncidencia(value)


def _check_foto(candidate: Mapping[str, Any], errors: List[FieldError]) -> Optional[str]:
    raw = candidate.get("foto")
    if raw is None or raw == "":
        errors.append(FieldError(field="foto", message="es obligatoria"))
        return None
    if not isinstance(raw, str):
        errors.append(FieldError(field="foto", message="debe ser un texto Base64"))
        return None
    # Liveness floor only; the payload is never decoded
    if len(raw) < MIN_FOTO_LENGTH:
        errors.append(
            FieldError(field="foto", message=f"debe tener al menos {MIN_FOTO_LENGTH} caracteres")
        )
        return None
    return raw


def _check_activo(candidate: Mapping[str, Any], errors: List[FieldError]) -> Optional[bool]:
    raw = candidate.get("activo")
    if raw is None:
        return True
    if not isinstance(raw, bool):
        errors.append(FieldError(field="activo", message="debe ser booleano"))
        return None
    return raw


# ----------------------------
# Entry point
# ----------------------------

def validate(candidate: Mapping[str, Any]) -> Tuple[Optional[Incidencia], List[FieldError]]:
    """
    Check a normalized candidate against every field rule.

    Returns (record, []) on success or (None, errors) with one entry per defect.
    All rules run; nothing short-circuits. Pure: no I/O, the input is not touched.
    """
    errors: List[FieldError] = []

    bellota = _check_bellota(candidate, errors)
    localizacion = _check_localizacion(candidate, errors)
    tipo = _check_incidencias(candidate, errors)
    foto = _check_foto(candidate, errors)
    activo = _check_activo(candidate, errors)

    if errors:
        return None, errors

    record = Incidencia(
        bellota=bellota,
        localizacion=localizacion,
        incidencias=tipo,
        foto=foto,
        activo=activo,
    )
    return record, []
