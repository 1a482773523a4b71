"""
Detect id<->name lookup datasets at import time.

A source with an integer column and a text column whose names mention
"branch" (or "name") becomes a `branches` translator; officer / relationship
manager pairs become an `officer` translator.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple

from bankquery.models import DataType, SchemaField
from bankquery.shared.numbers import to_number

logger = logging.getLogger(__name__)


class TranslatorInfo(NamedTuple):
    type: str
    id_field: str
    name_field: str


def detect_translator(fields: list[SchemaField]) -> TranslatorInfo | None:
    if not fields or len(fields) < 2:
        return None
    integer_field = next((f for f in fields if f.data_type == DataType.integer), None)
    string_field = next((f for f in fields if f.data_type != DataType.integer), None)
    if integer_field is None or string_field is None:
        return None

    int_name, int_id = integer_field.name.lower(), integer_field.id.lower()
    str_name, str_id = string_field.name.lower(), string_field.id.lower()

    if ("branch" in int_name or "branch" in int_id) and (
        "branch" in str_name or "branch" in str_id or "name" in str_name
    ):
        return TranslatorInfo("branches", integer_field.id, string_field.id)

    if any(k in int_name or k in int_id for k in ("officer", "rm")) or "id" in int_name:
        if "officer" in str_name or "officer" in str_id or "name" in str_name:
            return TranslatorInfo("officer", integer_field.id, string_field.id)

    return None


def build_translator_map(info: TranslatorInfo, rows: list[dict[str, Any]]) -> dict[str, int | float]:
    """Lowercased display name -> numeric code, skipping blank names and bad codes."""
    mapping: dict[str, int | float] = {}
    for row in rows or []:
        raw_name = row.get(info.name_field)
        key = "" if raw_name is None else str(raw_name).strip().lower()
        code = to_number(row.get(info.id_field))
        if key and code is not None:
            mapping[key] = int(code) if code.is_integer() else code
    logger.debug("Translator detected [%s]: %d entries", info.type, len(mapping))
    return mapping
