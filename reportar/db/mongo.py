import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from bson import ObjectId
from bson.errors import InvalidDocument
from pymongo import MongoClient, ReturnDocument
from pymongo.errors import (
    ConnectionFailure,
    ExecutionTimeout,
    PyMongoError,
    WriteError,
    WTimeoutError,
)

from reportar.errors import StoreInternal, StoreRejected, StoreUnavailable
from reportar.models.incidencia import Incidencia, InsertResult

log = logging.getLogger("uvicorn.error")

# Transient: lost connection, election, selection/operation timeout
_UNAVAILABLE = (ConnectionFailure, ExecutionTimeout, WTimeoutError)


class IncidenciaStore:
    """
    Owns the process-wide MongoClient (and its connection pool) and the
    `incidencias` collection. Create once at startup, close on shutdown.
    """

    def __init__(
        self,
        uri: str,
        *,
        database: str = "reportar",
        collection: str = "incidencias",
        timeout_ms: int = 5000,
        client_factory: Callable[..., Any] = MongoClient,
    ):
        self.uri = uri
        self.database_name = database
        self.collection_name = collection
        self.timeout_ms = timeout_ms
        self._client_factory = client_factory
        self.client: Optional[Any] = None
        self.collection: Optional[Any] = None

    @classmethod
    def from_settings(cls, settings) -> "IncidenciaStore":
        return cls(
            settings.mongo_uri,
            database=settings.mongo_db,
            collection=settings.mongo_collection,
            timeout_ms=settings.mongo_timeout_ms,
        )

    def connect(self) -> None:
        """Open the client and ping. Raises StoreUnavailable if the server can't be reached."""
        try:
            self.client = self._client_factory(
                self.uri,
                serverSelectionTimeoutMS=self.timeout_ms,
                tz_aware=True,
            )
            # database from the URI path wins; MONGO_DB is only the fallback
            db = self.client.get_default_database(default=self.database_name)
            self.collection = db[self.collection_name]
            self.client.admin.command("ping")
        except PyMongoError as e:
            self.close()
            raise StoreUnavailable(f"Failed to connect to MongoDB: {e}") from e
        log.info("MongoDB conectado (db=%s, collection=%s)", db.name, self.collection_name)

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            log.info("MongoDB desconectado")
        self.client = None
        self.collection = None

    def ping(self) -> bool:
        if self.client is None:
            return False
        # the driver's monitors keep this current; answer without waiting
        # out serverSelectionTimeoutMS when no primary is known
        if not self.client.topology_description.has_writable_server():
            return False
        try:
            self.client.admin.command("ping")
            return True
        except PyMongoError:
            return False

    def insert(self, record: Incidencia) -> InsertResult:
        """
        Persist a validated record. The id is generated here and both timestamps
        are stamped by the server in the same write, so createdAt == updatedAt
        on insert.
        """
        if self.collection is None:
            raise StoreUnavailable("MongoDB connection is not ready")

        oid = ObjectId()
        try:
            stored = self.collection.find_one_and_update(
                {"_id": oid},
                {
                    "$setOnInsert": record.to_document(),
                    "$currentDate": {"createdAt": True, "updatedAt": True},
                },
                upsert=True,
                projection={"createdAt": True, "updatedAt": True},
                return_document=ReturnDocument.AFTER,
            )
        except _UNAVAILABLE as e:
            log.warning("MongoDB unavailable during insert: %s", e)
            raise StoreUnavailable(str(e)) from e
        except WriteError as e:
            # DuplicateKeyError and document validation failures (code 121)
            log.error("MongoDB rejected incidencia: %s", e)
            raise StoreRejected(str(e)) from e
        except (InvalidDocument, OverflowError) as e:
            # raised client-side while encoding, e.g. ints beyond 8 bytes
            log.error("Incidencia could not be encoded as BSON: %s", e)
            raise StoreRejected(str(e)) from e
        except PyMongoError as e:
            log.error("MongoDB error during insert: %s", e)
            raise StoreInternal(str(e)) from e

        created_at = (stored or {}).get("createdAt")
        if created_at is None:
            raise StoreInternal("insert acknowledged without createdAt")
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return InsertResult(id=str(oid), created_at=created_at)


def isoformat_utc(value: datetime) -> str:
    """ISO-8601 with a trailing Z, millisecond precision (what BSON dates carry)."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
