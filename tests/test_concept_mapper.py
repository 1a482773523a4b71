"""Unit tests for ConceptMapper: binding condition concepts to schema fields."""
import pytest

from bankquery.mapping.concept_mapper import ConceptMapper, is_type_compatible
from bankquery.models import DataType, DateCondition, NumericCondition, RangeCondition, TextCondition
from bankquery.store.memory_store import MemoryStore
from bankquery.translators.registry import TranslatorRegistry

from helpers import LOAN_FIELDS, add_source, make_field  # type: ignore[import]


def _num(concept: str, **kw) -> NumericCondition:
    return NumericCondition(concept=concept, op=kw.pop("op", "="), value=kw.pop("value", 1), **kw)


@pytest.mark.unit
class TestTypeCompatibility:

    def test_number_needs_numeric(self):
        assert is_type_compatible(make_field("a", DataType.currency), "number")
        assert is_type_compatible(make_field("a", DataType.percentage), "number")
        assert not is_type_compatible(make_field("a", DataType.date), "number")

    def test_date_needs_date(self):
        assert is_type_compatible(make_field("a", DataType.date), "date")
        assert not is_type_compatible(make_field("a", DataType.integer), "date")

    def test_string_matches_anything(self):
        assert is_type_compatible(make_field("a", DataType.date), "string")


@pytest.mark.unit
class TestConceptMapper:

    def test_exact_name(self, mapper):
        [c] = mapper.map_concepts_to_fields("loans_1", [_num("branch", value=4)])
        assert c.field == "Branch"

    def test_semantic_group(self, mapper):
        [c] = mapper.map_concepts_to_fields("loans_1", [_num("balance", op=">", value=5)])
        assert c.field == "Principal"

    def test_adjunct_is_stripped(self, mapper):
        [c] = mapper.map_concepts_to_fields("loans_1", [_num("branch number")])
        assert c.field == "Branch"

    def test_value_type_respected(self, mapper):
        from datetime import datetime
        cond = DateCondition(concept="maturity", op="after", absolute_date=datetime(2026, 1, 1))
        [c] = mapper.map_concepts_to_fields("loans_1", [cond])
        assert c.field == "Maturity"

    def test_date_concept_by_group(self, mapper):
        from datetime import datetime
        cond = DateCondition(concept="open", op="after", absolute_date=datetime(2021, 1, 1))
        [c] = mapper.map_concepts_to_fields("checking_1", [cond])
        assert c.field == "Open_Date"

    def test_range_maps_like_numeric(self, mapper):
        cond = RangeCondition(concept="balance", value_min=1, value_max=2)
        [c] = mapper.map_concepts_to_fields("checking_1", [cond])
        assert c.field == "Balance"

    def test_unmapped_condition_has_no_field(self, mapper):
        original = _num("rate", op=">", value=5)
        [c] = mapper.map_concepts_to_fields("checking_1", [original])
        assert c.field is None

    def test_input_not_mutated(self, mapper):
        original = _num("branch", value=4)
        mapper.map_concepts_to_fields("loans_1", [original])
        assert original.field is None

    def test_order_preserved(self, mapper):
        conds = [_num("rate", op=">", value=1), _num("branch", value=4), _num("principal", op="<", value=9)]
        mapped = mapper.map_concepts_to_fields("loans_1", conds)
        assert [c.field for c in mapped] == ["Rate", "Branch", "Principal"]

    def test_function_tagged_passthrough(self, mapper):
        cond = _num("whatever", function="financial.loanProfit")
        [c] = mapper.map_concepts_to_fields("loans_1", [cond])
        assert c is cond

    def test_unknown_source_returns_conditions_unchanged(self, mapper):
        cond = _num("branch")
        assert mapper.map_concepts_to_fields("nope", [cond]) == [cond]

    def test_direct_name_fallback_for_text(self, mapper):
        cond = TextCondition(concept="portfolio", value="P100")
        [c] = mapper.map_concepts_to_fields("loans_1", [cond])
        assert c.field == "Portfolio"


@pytest.mark.unit
class TestTranslatedConditions:

    def test_group_term(self, mapper):
        cond = _num("branch", value=4, translated=True, translation_source="branches")
        [c] = mapper.map_concepts_to_fields("loans_1", [cond])
        assert c.field == "Branch"

    def test_translator_synonyms(self):
        store = MemoryStore()
        add_source(store, "sites_1", "loans", [make_field("Site", DataType.integer)], [])
        reg = TranslatorRegistry()
        reg.register("branches", {"Lakeside": 4}, synonyms=["Site"])
        cond = _num("branch", value=4, translated=True, translation_source="branches")
        [c] = ConceptMapper(store, reg).map_concepts_to_fields("sites_1", [cond])
        assert c.field == "Site"

    def test_synonyms_ignored_for_untranslated_concepts(self):
        store = MemoryStore()
        add_source(store, "sites_1", "loans", [make_field("Site", DataType.integer)], [])
        reg = TranslatorRegistry()
        reg.register("branches", {"Lakeside": 4}, synonyms=["Site"])
        [c] = ConceptMapper(store, reg).map_concepts_to_fields("sites_1", [_num("branch", value=4)])
        assert c.field is None

    def test_map_concept_on_schema(self, mapper, store):
        schema = store.get_schema("loans_1")
        assert mapper.map_concept(schema, "interest", "number") == "Rate"
        assert mapper.map_concept(schema, "", "number") is None
        assert len(schema.fields) == len(LOAN_FIELDS)
