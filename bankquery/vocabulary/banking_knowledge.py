"""
Banking knowledge base used by the concept resolver.

DOMAIN_PATTERNS maps an entity word seen in a prompt fragment to the
attribute implied by a comparison or preposition word next to it
("loans over 5000" -> principal, "accounts in branch 3" -> branch).
Patterns are ordered; the first entity/pattern pair present wins.
"""

from __future__ import annotations

# Entity word -> ordered (alternation of trigger words, concept) pairs
_RAW_DOMAIN_PATTERNS: list[tuple[str, list[tuple[str, str]]]] = [
    ("loan", [
        ("over|above|greater", "principal"),
        ("under|below|less",   "principal"),
        ("in|at",              "branch"),
        ("with",               "rate"),
        ("from",               "branch"),
    ]),
    ("account|checking|savings", [
        ("over|above|greater", "balance"),
        ("under|below|less",   "balance"),
        ("in|at",              "branch"),
        ("with",               "rate"),
        ("type",               "class"),
    ]),
    ("customer", [
        ("with", "id"),
        ("in",   "branch"),
        ("from", "branch"),
    ]),
    ("branch", [
        ("number", "branch"),
        ("with",   "location"),
    ]),
]


def _expand(raw: list[tuple[str, list[tuple[str, str]]]]) -> list[tuple[str, list[tuple[str, str]]]]:
    expanded: list[tuple[str, list[tuple[str, str]]]] = []
    for entity_alts, patterns in raw:
        for entity in entity_alts.split("|"):
            expanded.append((entity, patterns))
    return expanded


DOMAIN_PATTERNS: list[tuple[str, list[tuple[str, str]]]] = _expand(_RAW_DOMAIN_PATTERNS)

# Words that, following a noun, mark that noun as the attribute ("branch number")
NOUN_ADJECTIVES: frozenset[str] = frozenset(
    {"number", "id", "code", "rate", "balance", "amount", "principal"}
)

# Words that cannot themselves be the noun in a noun-adjunct pair
NON_NOUNS: frozenset[str] = frozenset({
    "a", "an", "the", "of", "in", "at", "by", "for", "to", "from", "with", "having",
    "and", "or", "over", "under", "above", "below", "than", "between", "show", "find",
    "list", "get", "all", "any", "their", "whose", "where",
})

# Trigger words -> hint kind, checked in order
PREPOSITION_HINTS: list[tuple[str, str]] = [
    ("over|above|greater|more",   "numeric_increasing"),
    ("under|below|less|fewer",    "numeric_decreasing"),
    ("in|at|from",                "location_reference"),
    ("with|having",               "attribute_reference"),
    ("number|id|code",            "identifier_reference"),
]

# An attribute named outright next to a comparison ("with balance over 500")
ATTRIBUTE_NOUNS: dict[str, str] = {
    "balance":   "balance",
    "balances":  "balance",
    "principal": "principal",
    "rate":      "rate",
    "rates":     "rate",
    "interest":  "rate",
    "apr":       "rate",
    "amount":    "amount",
    "payment":   "payment",
    "payments":  "payment",
    "charge":    "charge",
    "charges":   "charge",
}

# (trigger substrings, concept, weight) for context analysis
CONTEXT_HINTS: list[tuple[tuple[str, ...], str, float]] = [
    (("principal", "loan"),    "principal", 0.8),
    (("balance", "account"),   "balance",   0.8),
    (("branch", "location"),   "branch",    0.8),
    (("rate", "interest"),     "rate",      0.7),
]

# (trigger substrings, concept) for the last-resort keyword fallback
FALLBACK_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("branch",),              "branch"),
    (("balance", "account"),   "balance"),
    (("principal", "loan"),    "principal"),
    (("rate",),                "rate"),
    (("amount",),              "amount"),
]
DEFAULT_CONCEPT = "balance"


def hint_to_concept(hint: str, fragment: str) -> str | None:
    if hint in ("numeric_increasing", "numeric_decreasing"):
        return "principal" if "loan" in fragment else "balance"
    if hint == "location_reference":
        return "branch"
    if hint == "attribute_reference":
        return "rate" if "rate" in fragment else "balance"
    if hint == "identifier_reference":
        return "id"
    return None
