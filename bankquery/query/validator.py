"""
Structural validation of query plans before execution.

validate_query_plan() accepts a QueryPlan or a plain dict (as a caller might
build by hand) and returns a ValidationReport. Each violation category
lowers the confidence to a fixed ceiling:

    missing intent / no target entities       0.0   invalid
    unknown target entity                     0.3   invalid
    no source for an entity (sources given)   0.5   invalid
    condition concept not found in a source   0.6   still valid
    bad statistical op / missing stat field   0.7   invalid
    statistical op together with a function   0.7   invalid
    condition missing concept / op / type     0.8   invalid

When source metadata is supplied the confidence never exceeds 0.8.
Invalid plans must not be executed.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from bankquery.functions.statistical import STATISTICAL_OPERATIONS
from bankquery.mapping.concept_mapper import ConceptMapper
from bankquery.models import Condition, QueryPlan, SourceMeta, ValidationReport
from bankquery.query.sources import VALID_ENTITIES, pick_source_for_entity

logger = logging.getLogger(__name__)

VALID_VALUE_TYPES = ("number", "date", "string")
SOURCES_CONFIDENCE_CEILING = 0.8

_condition_adapter: TypeAdapter = TypeAdapter(Condition)


def _entity_name(entity: Any) -> str:
    if isinstance(entity, str):
        return entity
    if isinstance(entity, dict) and entity.get("entity"):
        return str(entity["entity"])
    return str(entity)


def _infer_kind(cond: dict[str, Any]) -> str:
    op = cond.get("op")
    if op == "between":
        return "range"
    if op in ("before", "after") or cond.get("value_type") == "date":
        return "date"
    if cond.get("value_type") == "string":
        return "text"
    return "numeric"


def _as_condition(cond: dict[str, Any]) -> Condition | None:
    data = dict(cond)
    data.setdefault("kind", _infer_kind(data))
    try:
        return _condition_adapter.validate_python(data)
    except ValidationError as exc:
        logger.debug("Condition %r is not well formed: %s", cond, exc)
        return None


def _condition_maps_somewhere(
    cond: dict[str, Any],
    entities: list[str],
    sources: list[SourceMeta],
    mapper: ConceptMapper,
) -> bool:
    typed = _as_condition(cond)
    if typed is None:
        return False
    for entity in entities:
        source = pick_source_for_entity(entity, sources)
        if source is None:
            continue
        try:
            mapped = mapper.map_concepts_to_fields(source.source_id, [typed])
        except Exception as exc:
            logger.debug("Mapping %s against %s failed: %s", typed.concept, source.source_id, exc)
            continue
        if mapped and mapped[0].field:
            return True
    return False


def validate_query_plan(
    plan: QueryPlan | dict[str, Any],
    sources: list[SourceMeta] | None = None,
    mapper: ConceptMapper | None = None,
) -> ValidationReport:
    """Check *plan* for structural problems; with *sources*, also check it can run against them.

    Condition field checks need a mapper and are skipped without one.
    """
    data = plan.model_dump() if isinstance(plan, QueryPlan) else dict(plan or {})
    issues: list[str] = []
    is_valid = True
    confidence = 1.0

    def fail(issue: str, ceiling: float, invalid: bool = True) -> None:
        nonlocal is_valid, confidence
        issues.append(issue)
        if invalid:
            is_valid = False
        confidence = min(confidence, ceiling)

    if not data.get("intent"):
        fail("Missing intent", 0.0)

    entities = [_entity_name(e) for e in data.get("target_entities") or []]
    if not entities:
        fail("No target entities specified", 0.0)
    else:
        unknown = [e for e in entities if e not in VALID_ENTITIES]
        if unknown:
            fail(f"Unknown entities: {', '.join(unknown)}", 0.3)
        if sources is not None and is_valid:
            for entity in entities:
                if pick_source_for_entity(entity, sources) is None:
                    fail(f"No data source found for entity: {entity}", 0.5)

    stat_op = data.get("statistical_op")
    if stat_op:
        if not any(stat in stat_op.lower() for stat in STATISTICAL_OPERATIONS):
            fail(f"Unknown statistical operation: {stat_op}", 0.7)
        if not data.get("statistical_field"):
            fail("Statistical operation specified but no field provided", 0.7)

    for cond in data.get("conditions") or []:
        if not cond.get("concept"):
            fail("Condition missing concept", 0.8)
        if not cond.get("op"):
            fail("Condition missing operator", 0.8)
        value_type = cond.get("value_type")
        if value_type and value_type not in VALID_VALUE_TYPES:
            fail(f"Invalid condition value type: {value_type}", 0.8)

        if sources is not None and mapper is not None and cond.get("concept") and entities:
            if not _condition_maps_somewhere(cond, entities, sources, mapper):
                fail(f'Condition field "{cond["concept"]}" not found in data sources', 0.6, invalid=False)

    if stat_op and data.get("function_call"):
        fail("Cannot specify both statistical operation and function call", 0.7)

    if sources is not None:
        confidence = min(confidence, SOURCES_CONFIDENCE_CEILING)

    return ValidationReport(is_valid=is_valid, issues=issues, confidence=confidence)


def calculate_plan_confidence(plan: QueryPlan) -> float:
    """Rough plan confidence from entity count and condition complexity, floored at 0.1."""
    confidence = 1.0
    entities = plan.target_entities
    if not entities:
        confidence *= 0.3
    invalid = sum(1 for e in entities if e not in VALID_ENTITIES)
    if invalid:
        confidence *= max(0.2, 1 - invalid * 0.3)
    if len(plan.conditions) > 3:
        confidence *= 0.8
    if len(entities) > 2:
        confidence *= 0.7
    return max(0.1, confidence)
