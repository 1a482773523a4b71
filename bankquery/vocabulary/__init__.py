"""
Concept vocabulary: semantic groups of interchangeable banking terms and the
domain knowledge used to guess which attribute a prompt fragment refers to.

Usage:
    from bankquery.vocabulary import score_field_for_concept
    score_field_for_concept("Branch_Number", "branch")   # > 0
"""

from bankquery.vocabulary.semantic_groups import (
    NOUN_ADJUNCTS,
    SEMANTIC_GROUPS,
    extract_base_noun,
    find_semantic_groups,
    score_field_for_concept,
    stem_plural,
    tokenize_field_name,
)

__all__ = [
    "NOUN_ADJUNCTS",
    "SEMANTIC_GROUPS",
    "extract_base_noun",
    "find_semantic_groups",
    "score_field_for_concept",
    "stem_plural",
    "tokenize_field_name",
]
