"""
ConceptResolver — guesses which attribute a condition fragment talks about.

Given the words around a comparison ("checking accounts with balance over
$500") it returns a concept word ("balance") for the concept mapper to bind
to a real field later. Layers are tried in order and the first that answers
wins:

  1. explicit attribute noun near the comparison   ("with balance over")
  2. domain pattern: entity word + trigger word    ("loans over" -> principal)
  3. noun adjunct                                  ("branch number" -> branch)
  4. preposition hint                              ("in" -> branch)
  5. weighted context keywords / numeric context
  6. keyword fallback, default "balance"

Results are memoised per fragment. The memo only ever stores what the
layers compute, so a cached and an uncached call return the same concept.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import NamedTuple

from bankquery.vocabulary.banking_knowledge import (
    ATTRIBUTE_NOUNS,
    CONTEXT_HINTS,
    DEFAULT_CONCEPT,
    DOMAIN_PATTERNS,
    FALLBACK_KEYWORDS,
    NON_NOUNS,
    NOUN_ADJECTIVES,
    PREPOSITION_HINTS,
    hint_to_concept,
)

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[a-z]+")
_NUMERIC_CONTEXT = re.compile(r"\$\d|\d+\.?\d*")


class Resolution(NamedTuple):
    concept: str
    confidence: float
    method: str


def _explicit_attribute(fragment: str) -> Resolution | None:
    for word in reversed(_WORD.findall(fragment)):
        if word in ATTRIBUTE_NOUNS:
            return Resolution(ATTRIBUTE_NOUNS[word], 0.9, "explicit_attribute")
    return None


def _domain_pattern(fragment: str) -> Resolution | None:
    for entity, patterns in DOMAIN_PATTERNS:
        if entity not in fragment:
            continue
        for triggers, concept in patterns:
            if re.search(rf"\b({triggers})\b", fragment):
                return Resolution(concept, 0.85, "domain_pattern")
    return None


def _noun_adjunct(fragment: str) -> Resolution | None:
    words = fragment.split()
    for current, following in zip(words, words[1:]):
        if following in NOUN_ADJECTIVES and current.isalpha() and current not in NON_NOUNS:
            return Resolution(current, 0.75, "noun_adjunct")
    return None


def _preposition_hint(fragment: str) -> Resolution | None:
    for triggers, hint in PREPOSITION_HINTS:
        if re.search(rf"\b({triggers})\b", fragment):
            concept = hint_to_concept(hint, fragment)
            if concept:
                return Resolution(concept, 0.65, "preposition_hint")
    return None


def _context_analysis(fragment: str) -> Resolution | None:
    hints: list[tuple[str, float]] = []
    for triggers, concept, weight in CONTEXT_HINTS:
        if any(t in fragment for t in triggers):
            hints.append((concept, weight))
    if _NUMERIC_CONTEXT.search(fragment):
        hints.append(("principal" if "loan" in fragment else "balance", 0.6))
    if not hints:
        return None
    concept, weight = max(hints, key=lambda h: h[1])
    return Resolution(concept, weight, "context_analysis")


def _fallback(fragment: str) -> Resolution:
    for triggers, concept in FALLBACK_KEYWORDS:
        if any(t in fragment for t in triggers):
            return Resolution(concept, 0.2, "fallback")
    return Resolution(DEFAULT_CONCEPT, 0.2, "fallback")


_LAYERS = (_explicit_attribute, _domain_pattern, _noun_adjunct, _preposition_hint, _context_analysis)


class ConceptResolver:
    """Layered, deterministic concept guesser with a per-fragment memo."""

    def __init__(self) -> None:
        self._memo: dict[str, Resolution] = {}
        self._lock = threading.Lock()

    def resolve(self, fragment: str) -> Resolution:
        key = (fragment or "").lower().strip()
        with self._lock:
            cached = self._memo.get(key)
        if cached is not None:
            return cached

        result = None
        for layer in _LAYERS:
            result = layer(key)
            if result is not None:
                break
        if result is None:
            result = _fallback(key)
        logger.debug("Concept for %r: %s (%s, %.2f)", key, result.concept, result.method, result.confidence)

        with self._lock:
            self._memo.setdefault(key, result)
        return result

    def guess_concept(self, fragment: str) -> str:
        return self.resolve(fragment).concept

    def clear(self) -> None:
        with self._lock:
            self._memo.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._memo)
