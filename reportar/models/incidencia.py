# reportar/models/incidencia.py
from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

MIN_FOTO_LENGTH = 100


class TipoIncidencia(IntEnum):
    PANICO = 1       # panic button
    HOMBRE_MUERTO = 2  # dead-man's switch


class Localizacion(BaseModel):
    latitud: float = Field(..., ge=-90, le=90, description="WGS-84 latitude")
    longitud: float = Field(..., ge=-180, le=180, description="WGS-84 longitude")


# Canonical record as it is stored (id / createdAt / updatedAt are added by the store)
class Incidencia(BaseModel):
    bellota: int = Field(..., ge=0, description="Beacon identifier of the submitter")
    localizacion: Localizacion
    incidencias: TipoIncidencia = Field(..., description="1 = panic, 2 = dead-man")
    foto: str = Field(..., min_length=MIN_FOTO_LENGTH, description="Base64 photo, stored verbatim")
    activo: bool = True

    def to_document(self) -> Dict[str, Any]:
        return {
            "bellota": self.bellota,
            "localizacion": {
                "latitud": self.localizacion.latitud,
                "longitud": self.localizacion.longitud,
            },
            "incidencias": int(self.incidencias),
            "activo": self.activo,
            "foto": self.foto,
        }


class FieldError(BaseModel):
    field: str
    message: str

    def render(self) -> str:
        return f"{self.field}: {self.message}"


class InsertResult(BaseModel):
    id: str
    created_at: datetime


# ---------- RESPONSE BODIES ----------

class ReportOk(BaseModel):
    success: Literal[True] = True
    id: str
    fecha: str


class ReportErrors(BaseModel):
    success: Literal[False] = False
    errors: List[str]


class ErrorOut(BaseModel):
    success: Literal[False] = False
    error: str


class StatusOut(BaseModel):
    db: Literal["connected", "disconnected"]
    memory: Dict[str, int]
    uptime: float
