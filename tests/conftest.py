import threading
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from reportar.errors import StoreUnavailable
from reportar.main import app
from reportar.models.incidencia import InsertResult

FOTO = "A" * 150


class MemoryStore:
    """In-process stand-in for IncidenciaStore: assigns ids and timestamps like the real one."""

    def __init__(self):
        self.documents = []
        self._lock = threading.Lock()

    def insert(self, record):
        now = datetime.now(timezone.utc)
        doc = record.to_document()
        doc.update({"_id": ObjectId(), "createdAt": now, "updatedAt": now})
        with self._lock:
            self.documents.append(doc)
        return InsertResult(id=str(doc["_id"]), created_at=now)

    def ping(self):
        return True

    def close(self):
        pass


class DownStore:
    def insert(self, record):
        raise StoreUnavailable("No servers found yet, Timeout: 5.0s")

    def ping(self):
        return False

    def close(self):
        pass


def _reset_state():
    for attr in ("store", "settings", "alerts"):
        if hasattr(app.state, attr):
            delattr(app.state, attr)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def client(store):
    _reset_state()
    app.state.store = store
    try:
        yield TestClient(app)
    finally:
        _reset_state()


@pytest.fixture
def down_client():
    _reset_state()
    app.state.store = DownStore()
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        _reset_state()


@pytest.fixture
def valid_body():
    return {
        "bellota": 7,
        "localizacion": {"latitud": 40.0, "longitud": -3.0},
        "incidencias": 1,
        "foto": FOTO,
    }
