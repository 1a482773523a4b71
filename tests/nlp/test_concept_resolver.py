"""Unit tests for the layered concept resolver."""
import pytest

from bankquery.nlp.concept_resolver import ConceptResolver


@pytest.mark.unit
class TestConceptResolverLayers:

    def test_explicit_attribute_wins(self):
        r = ConceptResolver().resolve("accounts with balance over $500")
        assert (r.concept, r.method, r.confidence) == ("balance", "explicit_attribute", 0.9)

    def test_interest_means_rate(self):
        assert ConceptResolver().guess_concept("loans with interest above 5") == "rate"

    def test_domain_pattern_for_loans(self):
        r = ConceptResolver().resolve("show loans over $5,000")
        assert (r.concept, r.method, r.confidence) == ("principal", "domain_pattern", 0.85)

    def test_domain_pattern_for_checking(self):
        assert ConceptResolver().guess_concept("checking under 100") == "balance"

    def test_noun_adjunct(self):
        r = ConceptResolver().resolve("customer number")
        assert (r.concept, r.method) == ("customer", "noun_adjunct")

    def test_preposition_hint(self):
        r = ConceptResolver().resolve("deposits in 5")
        assert (r.concept, r.method) == ("branch", "preposition_hint")

    def test_numeric_context(self):
        r = ConceptResolver().resolve("something 123")
        assert (r.concept, r.method) == ("balance", "context_analysis")

    def test_fallback_default(self):
        r = ConceptResolver().resolve("")
        assert (r.concept, r.method, r.confidence) == ("balance", "fallback", 0.2)


@pytest.mark.unit
class TestConceptResolverMemo:

    def test_memo_does_not_change_results(self):
        resolver = ConceptResolver()
        first = resolver.resolve("Show Loans over $5,000")
        again = resolver.resolve("show loans over $5,000")
        assert first == again
        assert len(resolver) == 1

    def test_fresh_resolver_agrees(self):
        cached = ConceptResolver()
        cached.resolve("checking under 100")
        assert cached.resolve("checking under 100") == ConceptResolver().resolve("checking under 100")

    def test_clear(self):
        resolver = ConceptResolver()
        resolver.resolve("x")
        resolver.clear()
        assert len(resolver) == 0
