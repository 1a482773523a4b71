"""Query execution: source selection, row predicates, multi-source aggregation, validation."""

from bankquery.query.aggregation import combine_multi_source_results
from bankquery.query.engine import QueryEngine
from bankquery.query.predicates import build_predicate, combine, filter_rows
from bankquery.query.sources import VALID_ENTITIES, detect_entity_types, pick_source_for_entity
from bankquery.query.validator import calculate_plan_confidence, validate_query_plan

__all__ = [
    "QueryEngine",
    "VALID_ENTITIES",
    "build_predicate",
    "calculate_plan_confidence",
    "combine",
    "combine_multi_source_results",
    "detect_entity_types",
    "filter_rows",
    "pick_source_for_entity",
    "validate_query_plan",
]
