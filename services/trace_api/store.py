"""Neo4j access for the traceability graph.

Every call is either one auto-commit query or one explicit transaction.
Managed transaction functions (``execute_read``/``execute_write``) are not
used: they retry transient failures, and a failed database call
must fail the request once.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable

import neo4j
from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from .config import Settings
from .errors import StoreError

logger = logging.getLogger(__name__)

Row = dict[str, Any]

LABELS = ("Supplier", "Material", "ProductModel", "Batch", "Serial", "Inspection")

SCHEMA_STATEMENTS = (
    "CREATE CONSTRAINT supplier_supplierId_unique IF NOT EXISTS "
    "FOR (n:Supplier) REQUIRE n.supplierId IS UNIQUE",
    "CREATE CONSTRAINT material_materialId_unique IF NOT EXISTS "
    "FOR (n:Material) REQUIRE n.materialId IS UNIQUE",
    "CREATE CONSTRAINT productmodel_modelId_unique IF NOT EXISTS "
    "FOR (n:ProductModel) REQUIRE n.modelId IS UNIQUE",
    "CREATE CONSTRAINT batch_batchId_unique IF NOT EXISTS "
    "FOR (n:Batch) REQUIRE n.batchId IS UNIQUE",
    # Serial keys may repeat across seed runs, so index only.
    "CREATE INDEX serial_serialNumber IF NOT EXISTS FOR (n:Serial) ON (n.serialNumber)",
    "CREATE INDEX inspection_status IF NOT EXISTS FOR (n:Inspection) ON (n.status)",
)


def _val(v):
    """Unwrap neo4j temporal values into plain Python ones."""
    if v is None:
        return None
    if isinstance(v, list):
        return [_val(x) for x in v]
    if hasattr(v, "to_native"):
        return v.to_native()
    return v


def _rows(result) -> list[Row]:
    return [{k: _val(rec[k]) for k in rec.keys()} for rec in result]


class GraphStore:
    """Shared connection to the property graph, safe to use from many threads."""

    def __init__(
        self,
        uri: str,
        auth: tuple[str, str],
        database: str = "neo4j",
        driver=None,
    ):
        self.uri = uri
        self.database = database
        self._auth = auth
        self._driver = driver
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "GraphStore":
        return cls(
            settings.neo4j_uri,
            (settings.neo4j_username, settings.neo4j_password),
            database=settings.neo4j_database,
        )

    def _get_driver(self):
        if self._driver is not None:
            return self._driver
        with self._lock:
            if self._driver is None:
                if not self.uri:
                    raise StoreError("NEO4J_URI is not configured")
                try:
                    self._driver = GraphDatabase.driver(self.uri, auth=self._auth)
                except (ValueError, DriverError) as exc:
                    raise StoreError(f"cannot create driver for {self.uri}: {exc}") from exc
        return self._driver

    def _session(self, access_mode: str):
        return self._get_driver().session(
            database=self.database, default_access_mode=access_mode
        )

    def read(self, query: str, **params) -> list[Row]:
        try:
            with self._session(neo4j.READ_ACCESS) as session:
                return _rows(session.run(query, params))
        except (Neo4jError, DriverError) as exc:
            raise StoreError(f"read query failed: {exc}") from exc

    def write(self, query: str, **params) -> list[Row]:
        try:
            with self._session(neo4j.WRITE_ACCESS) as session:
                return _rows(session.run(query, params))
        except (Neo4jError, DriverError) as exc:
            raise StoreError(f"write query failed: {exc}") from exc

    def write_many(self, statements: Iterable[tuple[str, dict]]) -> list[list[Row]]:
        """Run several statements in one transaction, returning each one's rows."""
        try:
            with self._session(neo4j.WRITE_ACCESS) as session:
                with session.begin_transaction() as tx:
                    results = [_rows(tx.run(query, params)) for query, params in statements]
                    tx.commit()
            return results
        except (Neo4jError, DriverError) as exc:
            raise StoreError(f"transaction failed: {exc}") from exc

    def ensure_schema(self) -> None:
        for statement in SCHEMA_STATEMENTS:
            self.write(statement)
        logger.debug("schema constraints and indexes ensured")

    def verify(self) -> None:
        try:
            self._get_driver().verify_connectivity()
        except (Neo4jError, DriverError) as exc:
            raise StoreError(f"Neo4j unreachable at {self.uri}: {exc}") from exc

    def close(self) -> None:
        with self._lock:
            if self._driver is not None:
                self._driver.close()
                self._driver = None
