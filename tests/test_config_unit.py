import pytest
from fastapi.testclient import TestClient

from reportar.config import get_settings, parse_origins
from reportar.errors import ConfigError, StoreUnavailable
from reportar.main import app

ENV_VARS = (
    "MONGO_URI",
    "MONGO_DB",
    "MONGO_COLLECTION",
    "MONGO_TIMEOUT_MS",
    "PORT",
    "HOST",
    "MAX_BODY_MB",
    "CORS_ORIGINS",
    "DEFAULT_INCIDENCIA",
    "ALERTS_TOPIC_ARN",
    "SHUTDOWN_GRACE_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_missing_mongo_uri_is_fatal() -> None:
    with pytest.raises(ConfigError, match="MONGO_URI"):
        get_settings()


def test_defaults(monkeypatch) -> None:
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017")
    settings = get_settings()

    assert settings.port == 3000
    assert settings.mongo_collection == "incidencias"
    assert settings.mongo_db == "reportar"
    assert settings.mongo_timeout_ms == 5000
    assert settings.max_body_bytes == 20 * 1024 * 1024
    assert settings.default_incidencia is None
    assert settings.alerts_topic_arn is None


def test_overrides(monkeypatch) -> None:
    monkeypatch.setenv("MONGO_URI", "mongodb://db:27017/prod")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("MAX_BODY_MB", "25")
    monkeypatch.setenv("DEFAULT_INCIDENCIA", "1")
    settings = get_settings()

    assert settings.port == 8080
    assert settings.max_body_bytes == 25 * 1024 * 1024
    assert settings.default_incidencia == 1


@pytest.mark.parametrize("name, value", [("PORT", "http"), ("MONGO_TIMEOUT_MS", "5s"), ("MAX_BODY_MB", "0")])
def test_bad_numeric_settings_raise(monkeypatch, name, value) -> None:
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost")
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        get_settings()


def test_default_kind_must_name_a_real_kind(monkeypatch) -> None:
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost")
    monkeypatch.setenv("DEFAULT_INCIDENCIA", "3")
    with pytest.raises(ConfigError):
        get_settings()


def test_lifespan_connects_and_closes_store(monkeypatch) -> None:
    events = []

    class FakeStore:
        @classmethod
        def from_settings(cls, settings):
            return cls()

        def connect(self):
            events.append("connect")

        def close(self):
            events.append("close")

        def ping(self):
            return True

    monkeypatch.setenv("MONGO_URI", "mongodb://localhost")
    monkeypatch.setattr("reportar.main.IncidenciaStore", FakeStore)

    with TestClient(app) as client:
        assert client.get("/api/status").json()["db"] == "connected"
        assert events == ["connect"]
    assert events == ["connect", "close"]
    assert app.state.store is None
    del app.state.store
    del app.state.settings


def test_lifespan_fails_when_store_is_unreachable(monkeypatch) -> None:
    class UnreachableStore:
        @classmethod
        def from_settings(cls, settings):
            return cls()

        def connect(self):
            raise StoreUnavailable("Failed to connect to MongoDB: timeout")

    monkeypatch.setenv("MONGO_URI", "mongodb://localhost")
    monkeypatch.setattr("reportar.main.IncidenciaStore", UnreachableStore)

    with pytest.raises(StoreUnavailable):
        with TestClient(app):
            pass
    del app.state.settings


def test_lifespan_fails_without_mongo_uri() -> None:
    with pytest.raises(ConfigError):
        with TestClient(app):
            pass


def test_parse_origins_strips_and_drops_empties() -> None:
    assert parse_origins(" https://a.example, ,https://b.example ") == ("https://a.example", "https://b.example")
    assert parse_origins(None) == ()
