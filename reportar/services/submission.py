from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from reportar.errors import IncidenciaInvalida
from reportar.models.incidencia import InsertResult
from reportar.services.validation import validate

log = logging.getLogger("uvicorn.error")


def submit(candidate: Mapping[str, Any], store, alerts: Optional[Any] = None) -> InsertResult:
    """
    Validate a normalized candidate and hand it to the store.

    Raises IncidenciaInvalida with every field error, or a StoreError from the
    store. Store-assigned fields (id, createdAt, updatedAt) only ever come back
    from `store.insert`.
    """
    record, errors = validate(candidate)
    if errors:
        log.info("Incidencia rechazada: %d error(es) de validación", len(errors))
        raise IncidenciaInvalida(errors)

    result = store.insert(record)
    log.info("Incidencia guardada: id=%s tipo=%d", result.id, int(record.incidencias))

    if alerts is not None:
        alerts.notify(record, result.id)

    return result
