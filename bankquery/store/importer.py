"""
Import CSV / JSON files into a source store.

CSV is read with pandas as raw strings (no NA coercion, so "" stays "" and
"00123" keeps its zeros); JSON must be an array of objects. Each import
builds a schema from the first rows, stores the source, and registers a
translator when the file is an id<->name lookup table.

Usage:
    importer = DataImporter(store, translators)
    imported = importer.import_files(["loans.csv", "checking.json"])
"""

from __future__ import annotations

import io
import json
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from bankquery.config import Settings, get_settings
from bankquery.errors import ImportFailedError
from bankquery.models import Schema, SchemaField, SourceMeta
from bankquery.store.memory_store import MemoryStore
from bankquery.store.type_inference import HeuristicTypeInference, TypeInference
from bankquery.translators.detector import build_translator_map, detect_translator
from bankquery.translators.registry import TranslatorRegistry

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".csv", ".json")
_ENCODINGS = ("utf-8-sig", "utf-8", "latin-1", "cp1252")


class ImportedSource(BaseModel):
    source_id:  str
    name:       str
    fields:     list[SchemaField] = Field(default_factory=list)
    row_count:  int = 0
    translator: str | None = None


# ── Parsing ───────────────────────────────────────────────────────────────────

def parse_csv_text(text: str) -> tuple[list[str], list[dict[str, Any]]]:
    """Parse CSV text into (headers, rows) with every value kept as a stripped string."""
    import pandas as pd

    if not text.strip():
        return [], []
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise ImportFailedError("<csv>", str(exc)) from exc

    df.columns = [str(c).strip() for c in df.columns]
    for col in df.columns:
        df[col] = df[col].str.strip()
    headers = list(df.columns)
    rows = df.to_dict(orient="records")
    return headers, rows


def parse_json_text(text: str, file_name: str = "<json>") -> tuple[list[str], list[dict[str, Any]]]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportFailedError(file_name, f"invalid JSON: {exc}") from exc
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise ImportFailedError(file_name, "JSON must be an array of objects")
    headers = list(data[0].keys()) if data else []
    return headers, data


def _read_text(path: Path) -> str:
    raw = path.read_bytes()
    for enc in _ENCODINGS:
        try:
            return raw.decode(enc)
        except UnicodeDecodeError:
            continue
    raise ImportFailedError(path.name, "could not decode with any supported encoding")


def load_file(path: str | Path) -> tuple[list[str], list[dict[str, Any]]]:
    """Read a .csv or .json file into (headers, rows)."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ImportFailedError(path.name, f"unsupported file type '{suffix or '?'}'")
    if not path.exists():
        raise ImportFailedError(path.name, "file not found")
    text = _read_text(path)
    if suffix == ".csv":
        try:
            return parse_csv_text(text)
        except ImportFailedError as exc:
            raise ImportFailedError(path.name, exc.reason) from exc
    return parse_json_text(text, path.name)


# ── Schema building ───────────────────────────────────────────────────────────

def build_schema(
    source_id: str,
    headers: list[str],
    rows: list[dict[str, Any]],
    inference: TypeInference | None = None,
    settings: Settings | None = None,
) -> Schema:
    settings = settings or get_settings()
    inference = inference or HeuristicTypeInference(threshold=settings.type_threshold)
    sample_rows = rows[: settings.schema_sample_rows]
    fields = []
    for header in headers:
        values = [r.get(header) for r in sample_rows]
        fields.append(SchemaField(
            id=header,
            name=header,
            data_type=inference.detect_type(values),
            role_guess=inference.guess_role(header),
            sample=values[: settings.sample_values],
        ))
    return Schema(source_id=source_id, fields=fields)


def make_source_id(file_name: str, existing: set[str] | None = None, now_ms: int | None = None) -> str:
    """Sanitised file name + "_" + millisecond timestamp, with a counter on collision."""
    base = re.sub(r"[^a-zA-Z0-9_-]", "_", file_name)
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    source_id = f"{base}_{stamp}"
    existing = existing or set()
    counter = 1
    candidate = source_id
    while candidate in existing:
        candidate = f"{source_id}_{counter}"
        counter += 1
    return candidate


# ── Importer ──────────────────────────────────────────────────────────────────

class DataImporter:
    def __init__(
        self,
        store: MemoryStore,
        translators: TranslatorRegistry | None = None,
        inference: TypeInference | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.translators = translators
        self.settings = settings or get_settings()
        self.inference = inference or HeuristicTypeInference(threshold=self.settings.type_threshold)

    def import_files(self, paths: list[str | Path]) -> list[ImportedSource]:
        """Import every supported file; unsupported types are skipped with a warning."""
        if not paths:
            raise ImportFailedError("<none>", "no files selected")
        imported = []
        for p in paths:
            path = Path(p)
            if path.suffix.lower() not in SUPPORTED_SUFFIXES:
                logger.warning("Unsupported file type, skipping: %s", path.name)
                continue
            headers, rows = load_file(path)
            imported.append(self.import_rows(path.name, headers, rows))
        return imported

    def import_rows(self, file_name: str, headers: list[str], rows: list[dict[str, Any]]) -> ImportedSource:
        existing = {s.source_id for s in self.store.list_sources()}
        source_id = make_source_id(file_name, existing)
        schema = build_schema(source_id, headers, rows, self.inference, self.settings)
        self.store.put_source(self._meta(source_id, file_name), schema, rows)
        translator = self._register_translator(schema, rows)
        logger.info("Imported %s as %s (%d rows)", file_name, source_id, len(rows))
        return ImportedSource(
            source_id=source_id,
            name=file_name,
            fields=schema.fields,
            row_count=len(rows),
            translator=translator,
        )

    def update_source(self, source_id: str, path: str | Path) -> ImportedSource:
        """Replace an existing source's schema and rows from a new file, keeping its id."""
        path = Path(path)
        headers, rows = load_file(path)
        schema = build_schema(source_id, headers, rows, self.inference, self.settings)
        self.store.replace_source(self._meta(source_id, path.name), schema, rows)
        logger.info("Updated source %s from %s (%d rows)", source_id, path.name, len(rows))
        return ImportedSource(source_id=source_id, name=path.name, fields=schema.fields, row_count=len(rows))

    def delete_source(self, source_id: str) -> None:
        self.store.delete_source(source_id)

    # ── Internals ─────────────────────────────────────────────────────────────

    @staticmethod
    def _meta(source_id: str, file_name: str) -> SourceMeta:
        return SourceMeta(
            source_id=source_id,
            name=re.sub(r"\.[^.]+$", "", file_name),
            original_file_name=file_name,
            last_updated=datetime.now(timezone.utc).isoformat(),
        )

    def _register_translator(self, schema: Schema, rows: list[dict[str, Any]]) -> str | None:
        if self.translators is None:
            return None
        info = detect_translator(schema.fields)
        if info is None:
            return None
        mapping = build_translator_map(info, rows)
        if not mapping:
            return None
        self.translators.register(info.type, mapping)
        return info.type
