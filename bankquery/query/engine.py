"""
QueryEngine — executes a validated QueryPlan against the source store.

Single-source plans filter the one source matching the target entity with
conditions already mapped to its fields. Multi-source plans (more than one
target entity, or a plan carrying unique_id + columns) remap the shared
conditions per source, drop any source with an unmapped condition, filter,
and merge rows by unique identifier.

Usage:
    engine = QueryEngine(store, ConceptMapper(store, translators))
    result = engine.execute_query_plan(plan, store.list_sources())
"""

from __future__ import annotations

import logging
import re
from datetime import datetime

from bankquery.errors import RowFetchError
from bankquery.mapping.concept_mapper import ConceptMapper
from bankquery.models import QueryPlan, QueryResult, RoleGuess, SourceMeta
from bankquery.query.aggregation import combine_multi_source_results
from bankquery.query.predicates import filter_rows
from bankquery.query.sources import pick_source_for_entity
from bankquery.store.memory_store import SourceStore

logger = logging.getLogger(__name__)

UNIQUE_ID_CANDIDATES = ["Portfolio", "Portfolio_ID", "ID", "Customer_ID", "Account_ID", "Reference"]
DEFAULT_UNIQUE_ID = "Portfolio"

# (pattern, score, exact words earning a +1 bonus)
VALUATION_HEURISTICS: list[tuple[re.Pattern, int, tuple[str, ...]]] = [
    (re.compile(r"principal", re.IGNORECASE),     5, ("principal",)),
    (re.compile(r"outstanding", re.IGNORECASE),   3, ("outstanding",)),
    (re.compile(r"average|avg", re.IGNORECASE),   3, ("average", "avg")),
    (re.compile(r"balance", re.IGNORECASE),       5, ("balance",)),
    (re.compile(r"amount", re.IGNORECASE),        2, ("amount",)),
    (re.compile(r"value", re.IGNORECASE),         1, ("value",)),
]


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(i for i in items if i))


class QueryEngine:
    def __init__(self, store: SourceStore, mapper: ConceptMapper | None = None, now: datetime | None = None):
        self.store = store
        self.mapper = mapper or ConceptMapper(store)
        self.now = now

    # ── Dispatch ──────────────────────────────────────────────────────────────

    def execute_query_plan(self, plan: QueryPlan, sources: list[SourceMeta]) -> QueryResult:
        if plan is None or not plan.target_entities:
            return QueryResult()
        if plan.is_multi_source:
            return self.execute_multi_source_query(plan, sources)
        return self.execute_single_source_query(plan, sources)

    def execute_single_source_query(self, plan: QueryPlan, sources: list[SourceMeta]) -> QueryResult:
        source = pick_source_for_entity(plan.target_entities[0], sources)
        if source is None:
            logger.info("No source for entity %s", plan.target_entities[0])
            return QueryResult()
        rows = self.store.get_all_rows(source.source_id)
        if not rows:
            return QueryResult()
        matched = filter_rows(rows, plan.conditions, plan.logical_op, self.now)
        logger.info("Source %s: %d of %d rows matched", source.source_id, len(matched), len(rows))
        return QueryResult(rows=matched, used_source=source, used_sources=[source])

    # ── Multi-source ──────────────────────────────────────────────────────────

    def selected_sources(self, plan: QueryPlan, sources: list[SourceMeta]) -> list[SourceMeta]:
        """One source per target entity, skipping entities with no source."""
        selected: list[SourceMeta] = []
        for entity in plan.target_entities:
            source = pick_source_for_entity(entity, sources)
            if source is not None and source not in selected:
                selected.append(source)
        return selected

    def execute_multi_source_query(self, plan: QueryPlan, sources: list[SourceMeta]) -> QueryResult:
        selected = self.selected_sources(plan, sources)
        if not selected:
            return QueryResult()

        unique_id = plan.unique_id or self.find_unique_identifier_field(selected)
        valuation_fields = (
            plan.valuation_fields if plan.valuation_fields is not None
            else self.identify_valuation_fields(selected)
        )
        columns = plan.columns or []

        source_results = []
        for source in selected:
            if self.store.get_schema(source.source_id) is None:
                continue
            conditions = self.mapper.map_concepts_to_fields(source.source_id, plan.conditions)
            if any(not c.field for c in conditions):
                logger.info("Source %s has unmapped conditions, excluding all rows", source.source_id)
                source_results.append((source, []))
                continue
            try:
                rows = self.store.get_all_rows(source.source_id)
            except Exception as exc:
                raise RowFetchError(source.source_id, exc) from exc
            matched = filter_rows(rows, conditions, plan.logical_op, self.now)
            tagged = [{**row, "_sourceId": source.source_id} for row in matched]
            source_results.append((source, tagged))

        combined = combine_multi_source_results(source_results, unique_id, columns, valuation_fields)
        return QueryResult(
            rows=combined,
            used_sources=selected,
            unique_id=unique_id,
            columns=columns,
            valuation_fields=valuation_fields,
        )

    def find_unique_identifier_field(self, sources: list[SourceMeta]) -> str:
        """First candidate-id field across *sources*, else a well-known id name, else "Portfolio"."""
        schemas = [self.store.get_schema(s.source_id) for s in sources]
        schemas = [s for s in schemas if s is not None]
        for schema in schemas:
            for f in schema.fields:
                if f.role_guess == RoleGuess.candidate_id:
                    return f.id
        for candidate in UNIQUE_ID_CANDIDATES:
            for schema in schemas:
                if any(f.id == candidate or f.name == candidate for f in schema.fields):
                    return candidate
        return DEFAULT_UNIQUE_ID

    def identify_valuation_fields(self, sources: list[SourceMeta]) -> list[str]:
        """Best-scoring valuation field of each source, unioned in source order."""
        winners: list[str] = []
        for source in sources:
            schema = self.store.get_schema(source.source_id)
            if schema is None:
                continue
            best_id, best_score = None, 0
            for f in schema.fields:
                name, fid = f.name.lower(), f.id.lower()
                score = 0
                for pattern, points, exact_words in VALUATION_HEURISTICS:
                    if pattern.search(name) or pattern.search(fid):
                        score += points
                        if name in exact_words or fid in exact_words:
                            score += 1
                if score > best_score:
                    best_id, best_score = f.id, score
            if best_id is not None:
                winners.append(best_id)
        return _dedupe(winners)

    def plan_multi_source_columns(self, plan: QueryPlan, sources: list[SourceMeta]) -> QueryPlan:
        """Copy of *plan* with unique_id, columns and valuation_fields filled in.

        Columns are the unique id, then the first field each condition maps to
        in any selected source, then the valuation fields.
        """
        selected = self.selected_sources(plan, sources)
        unique_id = self.find_unique_identifier_field(selected)
        valuation_fields = self.identify_valuation_fields(selected)

        condition_fields: list[str] = []
        for cond in plan.conditions:
            for source in selected:
                mapped = self.mapper.map_concepts_to_fields(source.source_id, [cond])
                if mapped and mapped[0].field:
                    condition_fields.append(mapped[0].field)
                    break

        columns = _dedupe([unique_id] + condition_fields + valuation_fields)
        return plan.model_copy(update={
            "unique_id": unique_id,
            "columns": columns,
            "valuation_fields": valuation_fields,
        })
