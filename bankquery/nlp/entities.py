"""
Entity extraction: which datasets a prompt is about.

Exact substring matches score 1.0. Words that are within a small edit
distance of an entity word ("laons", "cheking") score similarity x 0.8.
"branch" is treated as a filter rather than a target whenever the prompt
has a branch condition.
"""

from __future__ import annotations

import re

from rapidfuzz.distance import Levenshtein

from bankquery.models import EntityMatch

ENTITY_WORDS: list[str] = [
    "loan", "loans",
    "customer", "customers",
    "checking", "accounts",
    "deposits",
    "branch", "branches",
]

FUZZY_CONFIDENCE_FACTOR = 0.8
_PUNCT = re.compile(r"[^\w]")


def normalize_entity(word: str) -> str:
    lower = word.lower()
    if lower in ("loan", "loans"):
        return "loans"
    if lower in ("customer", "customers"):
        return "customers"
    if lower in ("checking", "accounts"):
        return "checking"
    if lower in ("branch", "branches"):
        return "branches"
    return lower


def similarity(a: str, b: str) -> float:
    """(max_len - edit distance) / max_len; 1.0 for two empty strings."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(a, b)) / longest


def find_fuzzy_matches(
    prompt_words: list[str],
    entity_word: str,
    min_similarity: float = 0.8,
    max_distance: int = 2,
) -> list[tuple[str, float]]:
    matches = []
    for word in prompt_words:
        distance = Levenshtein.distance(word, entity_word)
        sim = similarity(word, entity_word)
        if sim >= min_similarity and distance <= max_distance:
            matches.append((word, sim))
    return matches


def extract_entities(
    lower: str,
    branch_is_filter: bool,
    min_similarity: float = 0.8,
    max_distance: int = 2,
) -> list[EntityMatch]:
    """Entity matches for a lowercased prompt, best confidence per entity, stable order."""
    matches: list[EntityMatch] = []
    for word in ENTITY_WORDS:
        if word in lower:
            if branch_is_filter and word in ("branch", "branches"):
                continue
            matches.append(EntityMatch(
                entity=normalize_entity(word), confidence=1.0, match_type="exact", matched_word=word,
            ))

    found = {m.entity for m in matches}
    prompt_words = [w for w in (_PUNCT.sub("", t) for t in lower.split()) if w]
    for word in ENTITY_WORDS:
        entity = normalize_entity(word)
        if entity in found:
            continue
        if branch_is_filter and entity == "branches":
            continue
        for matched, sim in find_fuzzy_matches(prompt_words, word, min_similarity, max_distance):
            matches.append(EntityMatch(
                entity=entity,
                confidence=sim * FUZZY_CONFIDENCE_FACTOR,
                match_type="fuzzy",
                matched_word=matched,
            ))

    best: dict[str, EntityMatch] = {}
    for m in sorted(matches, key=lambda m: m.confidence, reverse=True):
        best.setdefault(m.entity, m)
    # Keep first-appearance order among the winners
    ordered: list[EntityMatch] = []
    for m in matches:
        if best.get(m.entity) is m:
            ordered.append(m)
    return ordered
