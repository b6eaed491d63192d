# reportar/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

# --- Load .env early so os.getenv works everywhere ---
from dotenv import load_dotenv

from reportar.errors import ConfigError

load_dotenv()


@dataclass(frozen=True)
class Settings:
    mongo_uri: str
    mongo_db: str = "reportar"
    mongo_collection: str = "incidencias"
    mongo_timeout_ms: int = 5000
    host: str = "0.0.0.0"
    port: int = 3000
    max_body_mb: int = 20
    default_incidencia: Optional[int] = None
    alerts_topic_arn: Optional[str] = None
    aws_region: str = "eu-north-1"
    shutdown_grace_seconds: int = 10

    @property
    def max_body_bytes(self) -> int:
        return self.max_body_mb * 1024 * 1024


def parse_origins(raw: Optional[str]) -> Tuple[str, ...]:
    return tuple(o.strip() for o in (raw or "").split(",") if o.strip())


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def get_settings() -> Settings:
    """
    Read the process environment into Settings.
    MONGO_URI is required; everything else has a default.
    """
    mongo_uri = os.getenv("MONGO_URI", "").strip()
    if not mongo_uri:
        raise ConfigError(
            "MONGO_URI is not set. Define it in the environment or in a .env file."
        )

    default_kind: Optional[int] = None
    if os.getenv("DEFAULT_INCIDENCIA", "").strip():
        default_kind = _int_env("DEFAULT_INCIDENCIA", 0)
        if default_kind not in (1, 2):
            raise ConfigError("DEFAULT_INCIDENCIA must be 1 (panic) or 2 (dead-man)")

    max_body_mb = _int_env("MAX_BODY_MB", 20)
    if max_body_mb <= 0:
        raise ConfigError("MAX_BODY_MB must be positive")

    return Settings(
        mongo_uri=mongo_uri,
        mongo_db=os.getenv("MONGO_DB", "reportar").strip() or "reportar",
        mongo_collection=os.getenv("MONGO_COLLECTION", "incidencias").strip() or "incidencias",
        mongo_timeout_ms=_int_env("MONGO_TIMEOUT_MS", 5000),
        host=os.getenv("HOST", "0.0.0.0").strip() or "0.0.0.0",
        port=_int_env("PORT", 3000),
        max_body_mb=max_body_mb,
        default_incidencia=default_kind,
        alerts_topic_arn=os.getenv("ALERTS_TOPIC_ARN", "").strip() or None,
        aws_region=os.getenv("AWS_REGION", "eu-north-1"),
        shutdown_grace_seconds=_int_env("SHUTDOWN_GRACE_SECONDS", 10),
    )
