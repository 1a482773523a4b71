"""
QueryPipeline — runs one prompt end to end.

    parse -> validate -> plan columns (multi) / map conditions (single)
          -> execute -> function enrichment -> statistic -> log

Invalid plans are refused: the outcome carries the validation issues as a
single error message and no rows. Execution errors (a failing row fetch in
a multi-source query) are reported the same way. Every run, refused or
not, is recorded in the pipeline's PromptLog.

Usage:
    pipeline = QueryPipeline(store, translators, functions)
    outcome = pipeline.run("show loans over $5,000 in branch 4")
    if outcome.ok:
        for row in outcome.rows: ...
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from bankquery.config import Settings, get_settings
from bankquery.errors import BankQueryError, PlanValidationError
from bankquery.functions.registry import FunctionRegistry, default_function_registry, display_name
from bankquery.functions.statistical import (
    apply_statistical_operation,
    format_statistical_result,
    summarize_columns,
)
from bankquery.mapping.concept_mapper import ConceptMapper
from bankquery.models import QueryPlan, QueryResult, SourceMeta, StatisticalResult, ValidationReport
from bankquery.nlp.prompt_parser import PromptParser
from bankquery.query.engine import QueryEngine
from bankquery.query.sources import pick_source_for_entity
from bankquery.query.validator import validate_query_plan
from bankquery.store.memory_store import SourceStore
from bankquery.translators.registry import TranslatorRegistry, default_registry

logger = logging.getLogger(__name__)

PROMPT_LOG_SIZE = 50


# ── Outcome & prompt log ──────────────────────────────────────────────────────

class PipelineOutcome(BaseModel):
    prompt:           str
    plan:             QueryPlan
    report:           ValidationReport
    rows:             list[dict[str, Any]] = Field(default_factory=list)
    columns:          list[str] = Field(default_factory=list)
    used_sources:     list[SourceMeta] = Field(default_factory=list)
    unique_id:        str | None = None
    valuation_fields: list[str] = Field(default_factory=list)
    function_column:  str | None = None
    statistic:        StatisticalResult | None = None
    summary:          dict[str, tuple[str, Any]] = Field(default_factory=dict)
    error:            str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PromptLogEntry(BaseModel):
    id:            str
    timestamp:     float
    prompt:        str
    plan:          QueryPlan
    report:        ValidationReport
    success:       bool
    rows_returned: int = 0
    error:         str | None = None
    category:      str


class PromptStats(BaseModel):
    total:         int = 0
    success_count: int = 0
    warning_count: int = 0
    error_count:   int = 0
    success_rate:  float = 0.0


def categorize_prompt(report: ValidationReport, success: bool, warning_threshold: float = 0.8) -> str:
    if not report.is_valid or not success:
        return "error"
    if report.confidence >= warning_threshold:
        return "success"
    if report.confidence >= 0.5:
        return "warning"
    return "error"


class PromptLog:
    """Most recent prompts first, capped at *max_entries*."""

    def __init__(self, max_entries: int = PROMPT_LOG_SIZE, warning_threshold: float = 0.8):
        self.max_entries = max_entries
        self.warning_threshold = warning_threshold
        self._entries: list[PromptLogEntry] = []
        self._lock = threading.Lock()

    def record(self, outcome: PipelineOutcome) -> PromptLogEntry:
        entry = PromptLogEntry(
            id=f"prompt_{uuid.uuid4().hex[:12]}",
            timestamp=time.time(),
            prompt=outcome.prompt,
            plan=outcome.plan,
            report=outcome.report,
            success=outcome.ok,
            rows_returned=len(outcome.rows),
            error=outcome.error,
            category=categorize_prompt(outcome.report, outcome.ok, self.warning_threshold),
        )
        with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self.max_entries:]
        return entry

    def entries(self) -> list[PromptLogEntry]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> PromptStats:
        entries = self.entries()
        total = len(entries)
        counts = {c: sum(1 for e in entries if e.category == c) for c in ("success", "warning", "error")}
        return PromptStats(
            total=total,
            success_count=counts["success"],
            warning_count=counts["warning"],
            error_count=counts["error"],
            success_rate=round(counts["success"] / total * 100, 1) if total else 0.0,
        )

    def __len__(self) -> int:
        return len(self._entries)


# ── Pipeline ──────────────────────────────────────────────────────────────────

class QueryPipeline:
    def __init__(
        self,
        store: SourceStore,
        translators: TranslatorRegistry | None = None,
        functions: FunctionRegistry | None = None,
        settings: Settings | None = None,
        now: datetime | None = None,
    ):
        self.store = store
        self.translators = translators if translators is not None else default_registry()
        self.functions = functions if functions is not None else default_function_registry()
        self.settings = settings or get_settings()
        self.parser = PromptParser(self.translators, self.functions, settings=self.settings)
        self.mapper = ConceptMapper(store, self.translators)
        self.engine = QueryEngine(store, self.mapper, now=now)
        self.log = PromptLog(warning_threshold=self.settings.confidence_warning)

    def run(self, prompt: str) -> PipelineOutcome:
        plan = self.parser.parse(prompt)
        sources = self.store.list_sources()
        report = validate_query_plan(plan, sources, self.mapper)
        outcome = PipelineOutcome(prompt=prompt, plan=plan, report=report)

        if not report.is_valid:
            outcome.error = "Query validation failed: " + "; ".join(report.issues)
            logger.info("Refused %r: %s", prompt, outcome.error)
        else:
            if report.confidence < self.settings.confidence_warning:
                logger.warning("Low confidence plan (%.0f%%) for %r", report.confidence * 100, prompt)
            try:
                self._execute(plan, sources, outcome)
            except BankQueryError as exc:
                outcome.rows = []
                outcome.error = f"Error executing query: {exc}"
                logger.error("Query %r failed: %s", prompt, exc)

        self.log.record(outcome)
        return outcome

    def execute_plan(self, plan: QueryPlan) -> PipelineOutcome:
        """Validate and run a plan built outside the parser.

        Unlike run(), an invalid plan raises PlanValidationError and execution
        errors propagate. Nothing is written to the prompt log.
        """
        sources = self.store.list_sources()
        report = validate_query_plan(plan, sources, self.mapper)
        if not report.is_valid:
            raise PlanValidationError(report)
        outcome = PipelineOutcome(prompt=plan.raw, plan=plan, report=report)
        self._execute(plan, sources, outcome)
        return outcome

    # ── Steps ─────────────────────────────────────────────────────────────────

    def prepare_plan(self, plan: QueryPlan, sources: list[SourceMeta]) -> QueryPlan:
        """Multi-entity plans get columns planned; single-entity plans get conditions mapped."""
        if len(plan.target_entities) > 1:
            return self.engine.plan_multi_source_columns(plan, sources)
        if plan.target_entities and sources:
            source = pick_source_for_entity(plan.target_entities[0], sources)
            if source is not None:
                mapped = self.mapper.map_concepts_to_fields(source.source_id, plan.conditions)
                return plan.model_copy(update={"conditions": mapped})
        return plan

    def _execute(self, plan: QueryPlan, sources: list[SourceMeta], outcome: PipelineOutcome) -> None:
        prepared = self.prepare_plan(plan, sources)
        outcome.plan = prepared
        result = self.engine.execute_query_plan(prepared, sources)

        outcome.rows = result.rows
        outcome.used_sources = result.used_sources
        outcome.unique_id = result.unique_id or prepared.unique_id
        outcome.valuation_fields = list(result.valuation_fields or [])
        outcome.columns = list(result.columns or prepared.columns or self._source_columns(result))

        if prepared.function_call is not None and result.rows and result.used_sources:
            self._apply_function(prepared, result, outcome)

        if prepared.statistical_op and prepared.statistical_field:
            outcome.statistic = self._apply_statistic(prepared, result, outcome.rows)

        schemas = [s for s in (self.store.get_schema(src.source_id) for src in outcome.used_sources) if s]
        outcome.summary = summarize_columns(outcome.columns, outcome.rows, schemas)
        logger.info("Prompt %r returned %d rows", outcome.prompt, len(outcome.rows))

    def _source_columns(self, result: QueryResult) -> list[str]:
        if result.used_source is None:
            return []
        schema = self.store.get_schema(result.used_source.source_id)
        return [f.id for f in schema.fields] if schema else []

    def _apply_function(self, plan: QueryPlan, result: QueryResult, outcome: PipelineOutcome) -> None:
        call = plan.function_call
        spec = self.functions.get(call.library, call.function_name)
        if spec is None:
            logger.warning("Function %s.%s is not registered", call.library, call.function_name)
            return
        source = result.used_sources[0]
        schema = self.store.get_schema(source.source_id)
        mapping = self.functions.map_function_parameters(schema, spec, self.mapper)
        column = display_name(spec.name)
        unique_id = outcome.unique_id or self.engine.find_unique_identifier_field(result.used_sources)

        def enrich(row: dict[str, Any]) -> dict[str, Any]:
            enriched = dict(row)
            value = self.functions.execute_on_row(row, spec, mapping)
            if value is not None:
                enriched[column] = value
            return enriched

        rows = []
        for row in result.rows:
            enriched = enrich(row)
            if row.get("_subRows"):
                enriched["_subRows"] = [enrich(sub) for sub in row["_subRows"]]
            rows.append(enriched)

        columns = [unique_id] if unique_id else []
        columns += [mapping[p] for p in spec.parameter_names if p in mapping]
        columns.append(column)

        outcome.rows = rows
        outcome.unique_id = unique_id
        outcome.columns = list(dict.fromkeys(columns))
        outcome.valuation_fields = [column]
        outcome.function_column = column

    def _apply_statistic(
        self, plan: QueryPlan, result: QueryResult, rows: list[dict[str, Any]]
    ) -> StatisticalResult | None:
        field = self.resolve_statistical_field(plan.statistical_field, result.used_sources)
        value = apply_statistical_operation(rows, field, plan.statistical_op)
        return format_statistical_result(plan.statistical_op, value, field)

    def resolve_statistical_field(self, concept: str, used_sources: list[SourceMeta]) -> str:
        """Map a statistic's field word to a field id of the first used source.

        The concept mapper is tried first, then a substring match on field
        name or id; the word itself is returned when neither finds a field.
        """
        if not used_sources:
            return concept
        schema = self.store.get_schema(used_sources[0].source_id)
        if schema is None or not schema.fields:
            return concept
        field_id = self.mapper.map_concept(schema, concept, "number")
        if field_id:
            return field_id
        lower = concept.lower()
        direct = next((f for f in schema.fields if lower in f.name.lower() or lower in f.id.lower()), None)
        return direct.id if direct else concept
