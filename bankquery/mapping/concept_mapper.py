"""
ConceptMapper — binds each condition's concept ("branch", "rate") to a field
id of one source's schema.

Resolution order for a condition:
  1. function-tagged conditions pass through untouched
  2. translated conditions: the translator type ("branches") is singularised,
     its semantic group is looked up and the first group term naming a schema
     field wins (translator synonyms are tried after the group terms)
  3. exact field-name match on the concept with any trailing noun adjunct
     removed ("branch number" -> "Branch"), respecting the value type
  4. semantic-group scoring over type-compatible fields; best positive
     score wins, first field on ties
  5. direct case-insensitive match on field name or id

Conditions that resolve nowhere are returned unchanged with field=None.
Mapping never mutates its input: resolved conditions are copies.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from bankquery.models import DataType, Schema, SchemaField
from bankquery.vocabulary.semantic_groups import (
    extract_base_noun,
    group_containing,
    score_field_for_concept,
    stem_plural,
)

if TYPE_CHECKING:
    from bankquery.models import Condition
    from bankquery.store.memory_store import SourceStore
    from bankquery.translators.registry import TranslatorRegistry

logger = logging.getLogger(__name__)

_NUMERIC = {DataType.number, DataType.integer, DataType.currency, DataType.percentage}


def is_type_compatible(field: SchemaField, value_type: str | None) -> bool:
    """Numbers need a numeric field, dates a date field; strings match anything."""
    if value_type == "number":
        return field.data_type in _NUMERIC
    if value_type == "date":
        return field.data_type == DataType.date
    return True


class ConceptMapper:
    def __init__(
        self,
        store: "SourceStore | None" = None,
        translators: "TranslatorRegistry | None" = None,
    ):
        self.store = store
        self.translators = translators

    # ── Public API ────────────────────────────────────────────────────────────

    def map_concepts_to_fields(self, source_id: str, conditions: list["Condition"]) -> list["Condition"]:
        """Map *conditions* against the schema of *source_id*.

        An unknown source or an empty schema leaves every condition as given.
        """
        schema = self.store.get_schema(source_id) if self.store is not None else None
        if schema is None or not schema.fields:
            return list(conditions)
        return self.map_conditions(schema, conditions)

    def map_conditions(self, schema: Schema, conditions: list["Condition"]) -> list["Condition"]:
        return [self.map_condition(schema, cond) for cond in conditions]

    def map_condition(self, schema: Schema, cond: "Condition") -> "Condition":
        if cond.function:
            return cond
        if cond.translated and cond.translation_source:
            field_id = self._map_translated(schema, cond.translation_source)
        elif cond.concept:
            field_id = self.map_concept(schema, cond.concept, cond.value_type)
        else:
            field_id = None

        if field_id is None:
            logger.debug("No field for concept %r in %s", cond.concept, schema.source_id)
            return cond.model_copy(update={"field": None})
        logger.debug("Concept %r -> %s.%s", cond.concept, schema.source_id, field_id)
        return cond.model_copy(update={"field": field_id})

    def map_concept(self, schema: Schema, concept: str, value_type: str | None = None) -> str | None:
        """Field id for *concept* in *schema*, or None (rules 3 to 5)."""
        if not concept:
            return None
        base = extract_base_noun(concept).lower()
        for f in schema.fields:
            if f.name.lower() == base and is_type_compatible(f, value_type):
                return f.id

        best: SchemaField | None = None
        best_score = 0
        for f in schema.fields:
            if not is_type_compatible(f, value_type):
                continue
            score = score_field_for_concept(f.name, concept)
            if score > best_score:
                best, best_score = f, score
        if best is not None:
            return best.id

        direct = schema.find_field(concept)
        return direct.id if direct else None

    # ── Internals ─────────────────────────────────────────────────────────────

    def _map_translated(self, schema: Schema, translation_source: str) -> str | None:
        stemmed = stem_plural(translation_source)
        terms = list(group_containing(stemmed) or [])
        if self.translators is not None:
            meta = self.translators.meta(translation_source)
            if meta is not None:
                terms.extend(s.lower() for s in meta.synonyms)
        for term in terms:
            for f in schema.fields:
                if f.name.lower() == term.lower():
                    return f.id
        return None
