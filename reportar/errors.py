# reportar/errors.py
from __future__ import annotations

from typing import List

from reportar.models.incidencia import FieldError

GENERIC_STORE_MESSAGE = "Error al guardar la incidencia"
GENERIC_INTERNAL_MESSAGE = "Error interno del servidor"


class ReportarError(Exception):
    """Base class for every error the service raises on purpose."""


class ConfigError(ReportarError):
    """Startup configuration is missing or unusable. Fatal."""


class MalformedRequest(ReportarError):
    """Body unparseable, too large, or sent with the wrong content type (400)."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IncidenciaInvalida(ReportarError):
    """One or more field rules failed (422). Carries every failure, not just the first."""

    def __init__(self, errors: List[FieldError]):
        super().__init__(f"{len(errors)} validation error(s)")
        self.errors = list(errors)

    def messages(self) -> List[str]:
        return [e.render() for e in self.errors]


class StoreError(ReportarError):
    retriable = False


class StoreUnavailable(StoreError):
    """Timeout, lost connection, election in progress. Client may retry with backoff."""

    retriable = True


class StoreRejected(StoreError):
    """Duplicate key or schema rejection. Retrying will not help."""


class StoreInternal(StoreError):
    pass
