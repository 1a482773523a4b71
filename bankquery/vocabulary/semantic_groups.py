"""
Semantic groups: sets of words that name the same banking attribute.

A field name and a concept word are compared token by token; tokens that
fall into a shared group score higher than tokens that merely overlap as
substrings. A field whose tokens share no group with the concept scores 0
and is never chosen by semantic matching.
"""

from __future__ import annotations

import re

SEMANTIC_GROUPS: list[list[str]] = [
    ["branch", "branch_number", "branchnumber", "location", "office", "branch_id"],
    ["officer", "officer_id", "officerid", "rm", "rm_id", "relationship_manager",
     "relationshipmanager", "relationship_mgr", "relationship", "manager", "owner",
     "owner_id", "ownerid", "owner_code", "ownercode"],
    ["class", "type", "category", "group", "classification", "class_code", "classcode", "kind"],
    ["principal", "loan_amount", "amount", "balance", "origination", "loan_balance", "principal_amount"],
    ["checking", "checking_balance", "checking_account", "checking_amount"],
    ["deposit", "deposit_balance", "deposit_amount", "deposit_account"],
    ["rate", "rates", "interest_rate", "interest", "apr", "apy"],
    ["close", "closed", "maturity", "paid", "off", "close_date", "maturity_date", "paid_off"],
    ["open", "opened", "origination", "start", "open_date", "date_opened", "origination_date"],
    ["customer", "customer_id", "member", "member_id", "client", "client_id"],
    ["portfolio", "portfolio_id", "account", "account_id", "reference", "id"],
]

# Trailing words that qualify a preceding noun ("branch number" -> "branch")
NOUN_ADJUNCTS: frozenset[str] = frozenset(
    {"number", "id", "code", "key", "reference", "identifier"}
)


def tokenize_field_name(name: str) -> list[str]:
    """Split on underscores, hyphens and whitespace; lowercase."""
    return re.sub(r"[_\-]", " ", name or "").lower().split()


def stem_plural(word: str) -> str:
    """Crude English singular: -ies -> y, -es -> drop, -s -> drop."""
    w = (word or "").lower()
    if w.endswith("ies") and len(w) > 3:
        return w[:-3] + "y"
    if w.endswith("es") and len(w) > 2:
        return w[:-2]
    if w.endswith("s") and len(w) > 1:
        return w[:-1]
    return w


def extract_base_noun(text: str) -> str:
    """Strip a trailing noun adjunct: "branch number" -> "branch".

    Text without a trailing adjunct is returned unchanged.
    """
    tokens = tokenize_field_name(text)
    if len(tokens) > 1 and tokens[-1] in NOUN_ADJUNCTS:
        return " ".join(tokens[:-1])
    return text


def find_semantic_groups(token: str) -> set[int]:
    """Indices of every group the token belongs to, by exact or substring membership."""
    t = token.lower()
    found: set[int] = set()
    if not t:
        return found
    for idx, group in enumerate(SEMANTIC_GROUPS):
        for item in group:
            if t == item or item in t or t in item:
                found.add(idx)
                break
    return found


def _groups_for_tokens(tokens: list[str]) -> set[int]:
    groups: set[int] = set()
    for t in tokens:
        groups |= find_semantic_groups(t)
    return groups


def score_field_for_concept(field_name: str, concept: str) -> int:
    """Score how well *field_name* matches *concept*.

    0 when no token of the field shares a semantic group with any token of
    the concept. Otherwise, per (field token, concept token) pair:
      +3 identical tokens that share a group
      +2 different tokens that share a group
      +1 no shared group, but one token contains the other
    """
    field_tokens = tokenize_field_name(field_name)
    concept_tokens = tokenize_field_name(concept)
    if not field_tokens or not concept_tokens:
        return 0
    if not _groups_for_tokens(field_tokens) & _groups_for_tokens(concept_tokens):
        return 0

    score = 0
    for ft in field_tokens:
        f_groups = find_semantic_groups(ft)
        for ct in concept_tokens:
            if f_groups & find_semantic_groups(ct):
                score += 3 if ft == ct else 2
            elif ft in ct or ct in ft:
                score += 1
    return score


def group_containing(term: str) -> list[str] | None:
    """First group listing *term* verbatim (used for translated conditions)."""
    t = term.lower()
    for group in SEMANTIC_GROUPS:
        if t in group:
            return group
    return None


def in_semantic_group(token: str) -> bool:
    """True when *token* is listed verbatim in some group."""
    return group_containing(token) is not None
