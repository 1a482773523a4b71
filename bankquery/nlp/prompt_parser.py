"""
PromptParser — turns a natural-language banking prompt into a QueryPlan.

Usage:
    from bankquery.nlp import PromptParser
    plan = PromptParser().parse("show loans over $5,000 in branch 4")
    plan.target_entities   # ["loans"]
    plan.conditions        # [branch = 4, principal > 5000] (unresolved fields)

Steps:
  1. statistical operation ("standard deviation of loan rates")
  2. intent and intent confidence
  3. conditions: ranges, fragment conditions, translator names, dates
  4. target entities (exact, then fuzzy)
  5. function call, only for prompts that ask for a calculation

Parsing is a pure function of the text and the registries passed in;
the same text always yields the same plan.
"""

from __future__ import annotations

import logging
import re

from bankquery.config import Settings, get_settings
from bankquery.functions.registry import STOPWORDS, FunctionRegistry, default_function_registry
from bankquery.models import EntityMatch, FunctionCall, LogicalOp, QueryPlan
from bankquery.nlp.concept_resolver import ConceptResolver
from bankquery.nlp.conditions import (
    IN_BRANCH_RE,
    extract_date_conditions,
    extract_fragment_conditions,
    extract_range_conditions,
    extract_translator_conditions,
)
from bankquery.nlp.entities import extract_entities
from bankquery.translators.registry import TranslatorRegistry, default_registry

logger = logging.getLogger(__name__)

ACTION_WORDS = ["show", "find", "list", "share", "calculate", "compute", "get"]

STATISTICAL_OPERATIONS = [
    "mean", "average", "avg",
    "standard deviation", "std dev", "stddev", "std",
    "median",
    "min", "minimum",
    "max", "maximum",
    "sum",
    "count",
    "variance",
    "mode",
]

DATA_WORDS = ["loan", "customer", "checking", "account", "branch", "balance", "rate"]

EXPLICIT_FUNCTION_WORDS = ["calculate", "compute", "determine", "measure", "estimate"]
AGGREGATION_WORDS = ["average", "mean", "total", "sum", "count", "minimum", "maximum", "standard deviation"]

_FIELD_SYNONYMS = [
    (("rate",), "rate"),
    (("balance",), "balance"),
    (("principal",), "principal"),
    (("amount",), "amount"),
    (("payment",), "payment"),
    (("charge",), "charge"),
]
_FIELD_STOPLIST = {"loan", "loans", "checking", "account", "accounts"}

_STAT_PATTERNS = [
    (op, re.compile(rf"\b{re.escape(op)}\s+of\s+(.+)", re.IGNORECASE)) for op in STATISTICAL_OPERATIONS
]


def extract_field_from_phrase(phrase: str) -> str:
    """"loan rates" -> "rate", "checking balances" -> "balance"."""
    lower = phrase.lower()
    for triggers, field in _FIELD_SYNONYMS:
        if any(t in lower for t in triggers):
            return field
    for word in lower.split():
        if word not in _FIELD_STOPLIST:
            return word
    return phrase


def detect_statistical_operation(text: str) -> tuple[str | None, str | None]:
    for op, pattern in _STAT_PATTERNS:
        m = pattern.search(text)
        if m:
            return op, extract_field_from_phrase(m.group(1))
    return None, None


def classify_intent(lower: str) -> tuple[str, float]:
    intent, confidence = "show", 0.5
    for action in ACTION_WORDS:
        if lower.startswith(action + " ") or lower.startswith(action + "s "):
            intent = "show" if action in ("calculate", "compute") else action
            confidence = 0.95
            break
    if lower.startswith("customers with"):
        intent, confidence = "show", 0.9
    if confidence < 0.8 and any(w in lower for w in DATA_WORDS):
        intent, confidence = "show", 0.8
    return intent, confidence


def detect_logical_op(lower: str) -> LogicalOp:
    if " and " in lower:
        return LogicalOp.AND
    if " or " in lower:
        return LogicalOp.OR
    return LogicalOp.AND


class PromptParser:
    def __init__(
        self,
        translators: TranslatorRegistry | None = None,
        functions: FunctionRegistry | None = None,
        resolver: ConceptResolver | None = None,
        settings: Settings | None = None,
    ):
        self.translators = translators if translators is not None else default_registry()
        self.functions = functions if functions is not None else default_function_registry()
        self.resolver = resolver or ConceptResolver()
        self.settings = settings or get_settings()

    def parse(self, prompt: str | None) -> QueryPlan:
        text = (prompt or "").strip()
        if not text:
            return QueryPlan(intent="show", intent_confidence=0.5, raw=text)

        lower = text.lower()
        stat_op, stat_field = detect_statistical_operation(text)
        intent, intent_confidence = classify_intent(lower)
        logical_op = detect_logical_op(lower)

        range_conds, remaining = extract_range_conditions(text, self.resolver)
        conditions = (
            range_conds
            + extract_fragment_conditions(remaining, self.resolver)
            + extract_translator_conditions(text, self.translators)
            + extract_date_conditions(text)
        )

        branch_is_filter = (
            any(c.concept == "branch" for c in conditions) or bool(IN_BRANCH_RE.search(text))
        )
        details = extract_entities(
            lower,
            branch_is_filter,
            min_similarity=self.settings.fuzzy_similarity,
            max_distance=self.settings.fuzzy_max_distance,
        )
        if not details and branch_is_filter:
            details = [EntityMatch(entity="branches", confidence=0.9, match_type="condition_fallback")]
        entities = list(dict.fromkeys(d.entity for d in details))

        function_call = None
        if stat_op is None and self._wants_function(lower) and len(entities) <= 1:
            function_call, function_entities = self._detect_function(lower, entities)
            if function_call is not None and not entities and function_entities:
                entities = [function_entities[0]]
                details.append(EntityMatch(
                    entity=function_entities[0], confidence=0.7, match_type="function_default",
                ))

        plan = QueryPlan(
            intent=intent,
            intent_confidence=intent_confidence,
            target_entities=entities,
            conditions=conditions,
            logical_op=logical_op,
            statistical_op=stat_op,
            statistical_field=stat_field,
            function_call=function_call,
            raw=text,
            entity_details=details,
        )
        logger.debug("Parsed %r -> entities=%s conditions=%d", text, entities, len(conditions))
        return plan

    # ── Function detection ────────────────────────────────────────────────────

    @staticmethod
    def _wants_function(lower: str) -> bool:
        if any(w in lower for w in EXPLICIT_FUNCTION_WORDS):
            return True
        return any(w in lower for w in AGGREGATION_WORDS) and ("find" in lower or "get" in lower)

    def _detect_function(self, lower: str, entities: list[str]) -> tuple[FunctionCall | None, list[str]]:
        scope = entities or None
        match = self.functions.find_best_function_by_prompt(lower, scope)
        if match is None:
            for keyword in self.functions.all_function_keywords():
                if keyword in lower:
                    match = self.functions.find_function_by_description(keyword, scope)
                    if match is not None:
                        break
        if match is None:
            words = [w for w in lower.split() if w not in STOPWORDS]
            for first, second in zip(words, words[1:]):
                match = self.functions.find_function_by_description(f"{first} {second}", scope)
                if match is not None:
                    break
        if match is None:
            return None, []
        call = FunctionCall(
            library=match.library,
            function_name=match.function_name,
            description=match.function.description,
        )
        return call, match.entities


_default_parser: PromptParser | None = None


def parse_prompt(text: str | None) -> QueryPlan:
    """Parse with the process-wide registries."""
    global _default_parser
    if _default_parser is None:
        _default_parser = PromptParser()
    return _default_parser.parse(text)
