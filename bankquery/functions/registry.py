"""
FunctionRegistry — named row-level computations grouped into libraries.

Functions are looked up three ways:
  - by (library, name)
  - by a keyword found in the prompt (find_function_by_description, used by
    the prompt parser's keyword scan)
  - by scoring the whole prompt against a keyword index
    (find_best_function_by_prompt)

The keyword index is built lazily and cached until the next registration or
an explicit invalidate_index() call.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import TYPE_CHECKING, Any

from bankquery.functions.models import FunctionMatch, FunctionSpec
from bankquery.vocabulary.semantic_groups import in_semantic_group, tokenize_field_name

if TYPE_CHECKING:
    from bankquery.mapping.concept_mapper import ConceptMapper
    from bankquery.models import Schema

logger = logging.getLogger(__name__)


STOPWORDS: frozenset[str] = frozenset({
    "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "an", "a", "is", "are", "was", "were", "be", "been", "being", "have", "has",
    "had", "do", "does", "did", "will", "would", "could", "should", "may", "might",
    "must", "can", "this", "that", "these", "those", "i", "you", "he", "she", "it",
    "we", "they", "me", "him", "her", "us", "them", "my", "your", "his", "its",
    "our", "their", "what", "which", "who", "when", "where", "why", "how",
    "calculate", "compute", "find", "get", "determine", "measure", "estimate",
})

SYNONYMS: dict[str, list[str]] = {
    "profit":    ["earnings"],
    "earnings":  ["profit"],
    "interest":  ["rate"],
    "rate":      ["interest"],
    "balance":   ["principal"],
    "principal": ["balance"],
}

_CAMEL_BOUNDARY = re.compile(r"([A-Z])")


def split_camel(name: str) -> list[str]:
    """"averagePrincipal" -> ["average", "principal"]."""
    return [t.lower() for t in _CAMEL_BOUNDARY.sub(r" \1", name).split()]


def display_name(name: str) -> str:
    """Column header for a function result: "averagePrincipal" -> "average Principal"."""
    return _CAMEL_BOUNDARY.sub(r" \1", name).strip()


def _words(text: str) -> list[str]:
    return re.sub(r"[^\w\s]", " ", text.lower()).split()


def _variants(word: str) -> set[str]:
    out = {word}
    if word.endswith("s") and len(word) > 3:
        out.add(word[:-1])
    else:
        out.add(word + "s")
    for syn in SYNONYMS.get(word, []):
        out.add(syn)
    return out


class _IndexEntry:
    __slots__ = ("library", "spec", "phrases", "declared_tokens", "description_tokens")

    def __init__(self, library: str, spec: FunctionSpec):
        self.library = library
        self.spec = spec
        self.phrases = [k.lower() for k in spec.keywords if k.strip()]
        declared: set[str] = set()
        for phrase in self.phrases:
            declared.update(phrase.split())
        declared.add(spec.name.lower())
        declared.update(split_camel(spec.name))
        self.declared_tokens = declared
        desc: set[str] = set()
        for word in _words(spec.description):
            if len(word) >= 3 and word not in STOPWORDS:
                desc |= {v for v in _variants(word) if v not in STOPWORDS}
        self.description_tokens = desc


class FunctionRegistry:
    """Libraries of FunctionSpec objects, keyed by library then function name."""

    def __init__(self) -> None:
        self._libraries: dict[str, dict[str, FunctionSpec]] = {}
        self._lock = threading.Lock()
        self._index: list[_IndexEntry] | None = None

    # ── Registration ──────────────────────────────────────────────────────────

    def register(self, library: str, spec: FunctionSpec) -> None:
        spec = spec.model_copy(update={"library": library})
        with self._lock:
            self._libraries.setdefault(library, {})[spec.name] = spec
            self._index = None
        logger.debug("Registered function %s.%s", library, spec.name)

    def register_library(self, library: str, specs: list[FunctionSpec]) -> None:
        for spec in specs:
            self.register(library, spec)
        logger.info("Function library '%s' registered (%d functions)", library, len(specs))

    def invalidate_index(self) -> None:
        with self._lock:
            self._index = None

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get(self, library: str, name: str) -> FunctionSpec | None:
        with self._lock:
            return self._libraries.get(library, {}).get(name)

    def all(self) -> list[FunctionSpec]:
        with self._lock:
            return [spec for lib in self._libraries.values() for spec in lib.values()]

    def libraries(self) -> list[str]:
        with self._lock:
            return list(self._libraries)

    @staticmethod
    def parameter_names(spec: FunctionSpec) -> list[str]:
        return spec.parameter_names

    def find_function_by_description(
        self, search_text: str, entities: list[str] | None = None
    ) -> FunctionMatch | None:
        """First function whose description or name pieces contain a search word.

        Words shorter than 3 characters are ignored. With *entities*, functions
        declaring a disjoint entity list are skipped.
        """
        words = [w for w in search_text.lower().split() if len(w) >= 3]
        if not words:
            return None
        for spec in self.all():
            if not _entities_compatible(spec, entities):
                continue
            description = spec.description.lower()
            name_tokens = split_camel(spec.name)
            for word in words:
                if word in description or word in name_tokens:
                    return _to_match(spec)
        return None

    def all_function_keywords(self) -> list[str]:
        """Keyword phrases for every function, longest first.

        Drawn from description words (stopwords removed) and their two- and
        three-word runs, declared keywords, and name variants.
        """
        keywords: dict[str, None] = {}
        for spec in self.all():
            desc_words = [w for w in _words(spec.description) if len(w) >= 3 and w not in STOPWORDS]
            for i, word in enumerate(desc_words):
                keywords[word] = None
                if i + 1 < len(desc_words):
                    keywords[f"{word} {desc_words[i + 1]}"] = None
                if i + 2 < len(desc_words):
                    keywords[f"{word} {desc_words[i + 1]} {desc_words[i + 2]}"] = None
            for phrase in spec.keywords:
                keywords[phrase.lower()] = None
            name = spec.name.lower()
            keywords[name] = None
            for variation in (f"average {name}", f"mean {name}", f"calculate {name}",
                              f"{name} of", f"find {name}"):
                keywords[variation] = None
        return sorted(keywords, key=len, reverse=True)

    # ── Prompt scoring ────────────────────────────────────────────────────────

    def _get_index(self) -> list[_IndexEntry]:
        with self._lock:
            if self._index is None:
                self._index = [
                    _IndexEntry(lib, spec)
                    for lib, specs in self._libraries.items()
                    for spec in specs.values()
                ]
            return self._index

    def find_best_function_by_prompt(
        self, text: str, entities: list[str] | None = None
    ) -> FunctionMatch | None:
        """Highest-scoring function for *text*; None when nothing scores above 0.

        Scoring per function:
          +3 for each declared keyword phrase contained in the prompt
          +2 for each prompt token that is a declared keyword token
          +1 for each prompt token found only among description words
          +3 once if the function name contains a prompt token longer than 3
        """
        lower = (text or "").lower()
        tokens = _words(lower)
        if not tokens:
            return None

        best: _IndexEntry | None = None
        best_score = 0
        for entry in self._get_index():
            if not _entities_compatible(entry.spec, entities):
                continue
            score = 3 * sum(1 for phrase in entry.phrases if phrase in lower)
            for token in tokens:
                if token in entry.declared_tokens:
                    score += 2
                elif token in entry.description_tokens:
                    score += 1
            name = entry.spec.name.lower()
            if any(len(t) > 3 and t in name for t in tokens):
                score += 3
            if score > best_score:
                best, best_score = entry, score

        if best is None:
            return None
        logger.debug("Best function for %r: %s (score %d)", text, best.spec.name, best_score)
        return _to_match(best.spec)

    # ── Parameter mapping & execution ─────────────────────────────────────────

    def map_function_parameters(
        self, schema: "Schema | None", spec: FunctionSpec, mapper: "ConceptMapper"
    ) -> dict[str, str]:
        """Map each declared parameter to a field id of *schema*.

        Known aliases are tried first, then the concept mapper, then a direct
        case-insensitive name match. The concept mapper is only consulted for
        parameters with a name token listed verbatim in a semantic group.
        Unmapped parameters are left out.
        """
        if schema is None or not schema.fields:
            return {}
        mapping: dict[str, str] = {}
        for param in spec.parameters:
            field_id = _alias_field(schema, param.name)
            if field_id is None and any(in_semantic_group(t) for t in tokenize_field_name(param.name)):
                lower = param.name.lower()
                value_type = "date" if ("maturity" in lower or "date" in lower) else "number"
                field_id = mapper.map_concept(schema, lower, value_type)
            if field_id is None:
                direct = schema.find_field(param.name)
                field_id = direct.id if direct else None
            if field_id is not None:
                mapping[param.name] = field_id
        logger.debug("Parameter mapping for %s on %s: %s", spec.name, schema.source_id, mapping)
        return mapping

    @staticmethod
    def execute_on_row(row: dict[str, Any], spec: FunctionSpec, mapping: dict[str, str]) -> Any:
        """Call *spec* with the row values its parameters map to; None on failure."""
        args = []
        for name in spec.parameter_names:
            field_id = mapping.get(name)
            args.append(row.get(field_id) if field_id else None)
        try:
            return spec.implementation(*args)
        except Exception as exc:
            logger.warning("Function %s failed on row: %s", spec.name, exc)
            return None


def _entities_compatible(spec: FunctionSpec, entities: list[str] | None) -> bool:
    if not entities or not spec.entities:
        return True
    return bool(set(spec.entities) & set(entities))


def _to_match(spec: FunctionSpec) -> FunctionMatch:
    return FunctionMatch(
        library=spec.library,
        function_name=spec.name,
        function=spec,
        entities=list(spec.entities),
        return_type=spec.return_type,
    )


def _alias_field(schema: "Schema", param: str) -> str | None:
    p = param.lower()
    fields = schema.fields
    if p == "principal":
        hit = next((f for f in fields if f.name.lower() == "principal" or f.id.lower() == "principal"), None)
    elif p == "payment":
        hit = next((f for f in fields if "payment" in f.name.lower() or "payment" in f.id.lower()), None)
    elif p == "rate":
        hit = next((f for f in fields if f.name.lower() == "rate" or f.id.lower() == "rate"), None)
    elif p == "maturity":
        hit = next((f for f in fields if "maturity" in f.name.lower() or "maturity" in f.id.lower()), None)
    elif p in ("term", "term_months", "termmonths"):
        hit = next((f for f in fields if f.name.lower() in ("months", "term") or f.id.lower() in ("months", "term")), None)
    else:
        hit = None
    return hit.id if hit else None


_default: FunctionRegistry | None = None
_default_lock = threading.Lock()


def default_function_registry() -> FunctionRegistry:
    """Process-wide registry preloaded with the financial library."""
    global _default
    with _default_lock:
        if _default is None:
            from bankquery.functions.financial import FINANCIAL_FUNCTIONS

            registry = FunctionRegistry()
            registry.register_library("financial", FINANCIAL_FUNCTIONS)
            _default = registry
        return _default
