"""
In-memory source store.

A source is three things kept together: its metadata (SourceMeta), its
schema and its rows. They are written and removed as a unit under one lock;
readers get copies of row lists so a query never sees a half-replaced source.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Protocol

from bankquery.errors import SourceNotFoundError
from bankquery.models import Schema, SourceMeta

logger = logging.getLogger(__name__)


class SourceStore(Protocol):
    """Read interface the mapper and query engine depend on."""

    def get_schema(self, source_id: str) -> Schema | None: ...

    def get_all_rows(self, source_id: str) -> list[dict[str, Any]]: ...

    def list_sources(self) -> list[SourceMeta]: ...


class MemoryStore:
    def __init__(self) -> None:
        self._meta: dict[str, SourceMeta] = {}
        self._schemas: dict[str, Schema] = {}
        self._rows: dict[str, list[dict[str, Any]]] = {}
        self._lock = threading.Lock()

    # ── Reads ─────────────────────────────────────────────────────────────────

    def get_schema(self, source_id: str) -> Schema | None:
        with self._lock:
            return self._schemas.get(source_id)

    def get_all_rows(self, source_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._rows.get(source_id, []))

    def list_sources(self) -> list[SourceMeta]:
        with self._lock:
            return list(self._meta.values())

    def get_source(self, source_id: str) -> SourceMeta | None:
        with self._lock:
            return self._meta.get(source_id)

    def __contains__(self, source_id: str) -> bool:
        with self._lock:
            return source_id in self._meta

    # ── Writes ────────────────────────────────────────────────────────────────

    def put_source(self, meta: SourceMeta, schema: Schema, rows: list[dict[str, Any]]) -> None:
        if schema.source_id != meta.source_id:
            raise ValueError(f"Schema belongs to {schema.source_id}, not {meta.source_id}")
        with self._lock:
            self._meta[meta.source_id] = meta
            self._schemas[meta.source_id] = schema
            self._rows[meta.source_id] = list(rows)
        logger.info("Stored source %s (%d rows, %d fields)", meta.source_id, len(rows), len(schema.fields))

    def replace_source(self, meta: SourceMeta, schema: Schema, rows: list[dict[str, Any]]) -> None:
        """Swap schema and rows of an existing source, keeping its id."""
        with self._lock:
            if meta.source_id not in self._meta:
                raise SourceNotFoundError(meta.source_id)
        self.put_source(meta, schema, rows)

    def delete_source(self, source_id: str) -> None:
        with self._lock:
            if source_id not in self._meta:
                raise SourceNotFoundError(source_id)
            del self._meta[source_id]
            self._schemas.pop(source_id, None)
            self._rows.pop(source_id, None)
        logger.info("Deleted source %s", source_id)
