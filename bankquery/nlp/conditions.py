"""
Condition extraction from prompt text.

    extract_range_conditions   "between 500 and 5000", "from $500 to $5,000"
    parse_condition_fragment   branch / type equality, > and <, "last N months"
    extract_translator_conditions   registered names ("at Lakeside")
    extract_date_conditions    "opened after 01/15/2020 and before 2021-06-30"

Comparison concepts are guessed from the three words before the match plus
the match itself; the concept mapper binds them to fields per source.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from bankquery.models import (
    DateCondition,
    NumericCondition,
    RangeCondition,
    RelativeTime,
    TextCondition,
    TimeUnit,
)
from bankquery.shared.dates import parse_date
from bankquery.shared.numbers import parse_amount, to_number
from bankquery.vocabulary.semantic_groups import stem_plural

if TYPE_CHECKING:
    from bankquery.models import Condition
    from bankquery.nlp.concept_resolver import ConceptResolver
    from bankquery.translators.registry import TranslatorRegistry

_AMOUNT = r"\$?([\d,\.]+)"

BETWEEN_RE = re.compile(rf"\bbetween\s+{_AMOUNT}\s+and\s+{_AMOUNT}", re.IGNORECASE)
FROM_TO_RE = re.compile(rf"\bfrom\s+{_AMOUNT}\s+to\s+{_AMOUNT}", re.IGNORECASE)

IN_BRANCH_RE = re.compile(r"\b(?:in|at)\s+branch\s+(?:number\s+|no\.?\s+|#\s*)?(\d+)", re.IGNORECASE)
BRANCH_RE = re.compile(r"\bbranch\s+(?:number\s+|no\.?\s+|#\s*)?(\d+)", re.IGNORECASE)
TYPE_RE = re.compile(r"\b(?:of\s+)?type\s+(\d+)", re.IGNORECASE)
GT_RE = re.compile(
    rf"\b(?:greater than|over|above|more than|higher than|bigger than|larger than)\s+{_AMOUNT}",
    re.IGNORECASE,
)
LT_RE = re.compile(
    rf"\b(?:less than|under|below|fewer than|smaller than|lower than)\s+{_AMOUNT}",
    re.IGNORECASE,
)
LAST_PERIOD_RE = re.compile(r"\blast\s+(\d+)\s+(month|months|year|years|day|days)\b", re.IGNORECASE)

DATE_RE = re.compile(
    r"\b(?:(opened|open|closed|close|matured|maturity)\s+)?(before|after)\s+"
    r"([0-9a-zA-Z/\-.,\s]+?)(?=\s+(?:and|or)\b|$)",
    re.IGNORECASE,
)

SPLIT_RE = re.compile(r"\b(?:and|or)\b")


def extract_condition_context(fragment: str, start: int, end: int, words_before: int = 3) -> str:
    """Last few words before a match plus the match text."""
    before = fragment[:start].split()
    return " ".join(before[-words_before:] + [fragment[start:end]]).strip()


# ── Ranges ────────────────────────────────────────────────────────────────────

def extract_range_conditions(text: str, resolver: "ConceptResolver") -> tuple[list["Condition"], str]:
    """Range conditions plus the text with those clauses removed.

    Ranges are pulled out first so the "and" inside "between X and Y" does
    not split the prompt into fragments.
    """
    conds: list[Condition] = []
    lower = text.lower()
    spans: list[tuple[int, int]] = []
    for pattern in (BETWEEN_RE, FROM_TO_RE):
        for m in pattern.finditer(lower):
            lo, hi = parse_amount(m.group(1)), parse_amount(m.group(2))
            if lo is None or hi is None:
                continue
            context = extract_condition_context(lower, m.start(), m.end())
            conds.append(RangeCondition(
                concept=resolver.guess_concept(context),
                value_min=min(lo, hi),
                value_max=max(lo, hi),
            ))
            spans.append(m.span())

    remaining = text
    for start, end in sorted(spans, reverse=True):
        remaining = remaining[:start] + " " + remaining[end:]
    return conds, re.sub(r"\s+", " ", remaining).strip()


# ── Fragments ─────────────────────────────────────────────────────────────────

def guess_date_concept(fragment: str) -> str:
    if "closed" in fragment or "close" in fragment:
        return "close"
    if "opened" in fragment or "open" in fragment:
        return "open"
    if "maturity" in fragment:
        return "maturity"
    return "date"


def parse_condition_fragment(fragment: str, resolver: "ConceptResolver") -> list["Condition"]:
    """Conditions found in one and/or-separated fragment (lowercased)."""
    conds: list[Condition] = []

    branch = IN_BRANCH_RE.search(fragment) or BRANCH_RE.search(fragment)
    if branch:
        conds.append(NumericCondition(concept="branch", op="=", value=float(branch.group(1))))

    type_match = TYPE_RE.search(fragment)
    if type_match:
        conds.append(NumericCondition(concept="type", op="=", value=float(type_match.group(1))))

    for pattern, op in ((GT_RE, ">"), (LT_RE, "<")):
        m = pattern.search(fragment)
        if not m:
            continue
        value = parse_amount(m.group(1))
        if value is None:
            continue
        context = extract_condition_context(fragment, m.start(), m.end())
        conds.append(NumericCondition(concept=resolver.guess_concept(context), op=op, value=value))

    period = LAST_PERIOD_RE.search(fragment)
    if period:
        unit_word = period.group(2).lower()
        unit = TimeUnit.years if unit_word.startswith("year") else (
            TimeUnit.days if unit_word.startswith("day") else TimeUnit.months
        )
        conds.append(DateCondition(
            concept=guess_date_concept(fragment),
            op="after",
            relative_time=RelativeTime(unit=unit, value=int(period.group(1))),
        ))

    return conds


def extract_fragment_conditions(text: str, resolver: "ConceptResolver") -> list["Condition"]:
    parts = [p.strip() for p in SPLIT_RE.split(text.lower())]
    conds: list[Condition] = []
    for part in parts:
        if part:
            conds.extend(parse_condition_fragment(part, resolver))
    return conds


# ── Translators ───────────────────────────────────────────────────────────────

def extract_translator_conditions(text: str, translators: "TranslatorRegistry | None") -> list["Condition"]:
    """Equality conditions for registered display names mentioned in *text*."""
    if translators is None:
        return []
    conds: list[Condition] = []
    for hit in translators.find_all_names_in_text(text):
        common = dict(concept=stem_plural(hit.type), translated=True, translation_source=hit.type)
        code = to_number(hit.code)
        if code is None:
            conds.append(TextCondition(value=str(hit.code), **common))
        else:
            conds.append(NumericCondition(op="=", value=code, **common))
    return conds


# ── Absolute dates ────────────────────────────────────────────────────────────

def _parse_leading_date(text: str):
    """Parse the longest leading run of words that forms a date."""
    words = text.split()
    for n in range(len(words), 0, -1):
        parsed = parse_date(" ".join(words[:n]).rstrip(".,"))
        if parsed is not None:
            return parsed
    return None


def extract_date_conditions(text: str) -> list["Condition"]:
    """before/after conditions on open, close or maturity dates.

    A clause without its own field word ("and before 2021") reuses the
    previous clause's field word; a clause with neither is skipped, as is
    one whose date does not parse.
    """
    conds: list[Condition] = []
    last_field: str | None = None
    for m in DATE_RE.finditer(text or ""):
        field_word = m.group(1).lower() if m.group(1) else last_field
        if not field_word:
            continue
        if m.group(1):
            last_field = field_word
        parsed = _parse_leading_date(m.group(3).strip())
        if parsed is None:
            continue
        if "open" in field_word:
            concept = "open"
        elif "close" in field_word:
            concept = "close"
        else:
            concept = "maturity"
        conds.append(DateCondition(concept=concept, op=m.group(2).lower(), absolute_date=parsed))
    return conds
