"""Unit tests for the concept vocabulary: semantic groups and the banking knowledge base."""
import pytest

from bankquery.vocabulary.banking_knowledge import DOMAIN_PATTERNS, hint_to_concept
from bankquery.vocabulary.semantic_groups import (
    SEMANTIC_GROUPS,
    extract_base_noun,
    find_semantic_groups,
    group_containing,
    in_semantic_group,
    score_field_for_concept,
    stem_plural,
    tokenize_field_name,
)


@pytest.mark.unit
class TestTokenizeAndStem:

    def test_tokenize_splits_underscores_hyphens_spaces(self):
        assert tokenize_field_name("Open_Date-Time x") == ["open", "date", "time", "x"]

    def test_tokenize_empty(self):
        assert tokenize_field_name("") == []

    @pytest.mark.parametrize("word,expected", [
        ("branches", "branch"),
        ("categories", "category"),
        ("loans", "loan"),
        ("rate", "rate"),
    ])
    def test_stem_plural(self, word, expected):
        assert stem_plural(word) == expected

    def test_extract_base_noun_strips_trailing_adjunct(self):
        assert extract_base_noun("branch number") == "branch"
        assert extract_base_noun("Branch_ID") == "branch"

    def test_extract_base_noun_without_adjunct_is_unchanged(self):
        assert extract_base_noun("balance") == "balance"
        assert extract_base_noun("number") == "number"


@pytest.mark.unit
class TestSemanticScoring:

    def test_eleven_groups(self):
        assert len(SEMANTIC_GROUPS) == 11

    def test_find_groups_exact_and_substring(self):
        assert 0 in find_semantic_groups("branch")
        assert 1 in find_semantic_groups("rm")
        assert find_semantic_groups("zzz") == set()

    def test_identical_token_scores_three(self):
        assert score_field_for_concept("Branch", "branch") == 3

    def test_same_group_tokens_add_up(self):
        # "interest" shares the rate group with "rate" (+2), "rate" is identical (+3)
        assert score_field_for_concept("Interest_Rate", "rate") == 5

    def test_no_shared_group_scores_zero(self):
        assert score_field_for_concept("Balance", "rate") == 0

    def test_balance_matches_principal_group(self):
        assert score_field_for_concept("Principal", "balance") == 2

    def test_group_containing(self):
        assert group_containing("branch") == SEMANTIC_GROUPS[0]
        assert group_containing("zzz") is None

    def test_in_semantic_group_is_verbatim(self):
        assert in_semantic_group("Officer")
        assert in_semantic_group("rm")
        assert not in_semantic_group("term")
        assert not in_semantic_group("months")
        assert find_semantic_groups("term")


@pytest.mark.unit
class TestBankingKnowledge:

    def test_account_alternatives_are_separate_entries(self):
        entities = [entity for entity, _ in DOMAIN_PATTERNS]
        assert {"account", "checking", "savings"} <= set(entities)

    def test_hint_to_concept(self):
        assert hint_to_concept("numeric_increasing", "loans over") == "principal"
        assert hint_to_concept("numeric_decreasing", "accounts under") == "balance"
        assert hint_to_concept("location_reference", "in") == "branch"
        assert hint_to_concept("attribute_reference", "with rate") == "rate"
        assert hint_to_concept("identifier_reference", "id") == "id"
        assert hint_to_concept("unknown", "") is None
