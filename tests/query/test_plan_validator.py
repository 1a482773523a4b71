"""Unit tests for query plan validation and plan confidence."""
import pytest

from bankquery.models import NumericCondition, QueryPlan
from bankquery.query.validator import calculate_plan_confidence, validate_query_plan


def _plan(**overrides):
    data = {"intent": "show", "target_entities": ["loans"]}
    data.update(overrides)
    return data


@pytest.mark.unit
class TestStructuralValidation:

    def test_valid_plan(self):
        report = validate_query_plan(_plan())
        assert report.is_valid
        assert report.issues == []
        assert report.confidence == 1.0

    def test_accepts_query_plan_model(self):
        assert validate_query_plan(QueryPlan(target_entities=["loans"])).is_valid

    def test_empty_plan(self):
        report = validate_query_plan({})
        assert not report.is_valid
        assert report.issues == ["Missing intent", "No target entities specified"]
        assert report.confidence == 0.0

    def test_unknown_entities(self):
        report = validate_query_plan(_plan(target_entities=["widgets", "loans", "gizmos"]))
        assert not report.is_valid
        assert report.issues == ["Unknown entities: widgets, gizmos"]
        assert report.confidence == 0.3

    def test_entity_dicts_accepted(self):
        assert validate_query_plan(_plan(target_entities=[{"entity": "loans"}])).is_valid

    @pytest.mark.parametrize("op", ["standard deviation", "Mean", "avg rate"])
    def test_known_statistical_ops(self, op):
        assert validate_query_plan(_plan(statistical_op=op, statistical_field="rate")).is_valid

    def test_unknown_statistical_op(self):
        report = validate_query_plan(_plan(statistical_op="percentile", statistical_field="rate"))
        assert not report.is_valid
        assert report.confidence == 0.7

    def test_statistical_op_without_field(self):
        report = validate_query_plan(_plan(statistical_op="mean"))
        assert report.issues == ["Statistical operation specified but no field provided"]
        assert not report.is_valid

    def test_statistic_and_function_conflict(self):
        report = validate_query_plan(_plan(
            statistical_op="mean",
            statistical_field="rate",
            function_call={"library": "financial", "function_name": "loanProfit"},
        ))
        assert report.issues == ["Cannot specify both statistical operation and function call"]
        assert report.confidence == 0.7

    @pytest.mark.parametrize("cond,issue", [
        ({"op": ">", "value": 5, "value_type": "number"}, "Condition missing concept"),
        ({"concept": "rate", "value": 5, "value_type": "number"}, "Condition missing operator"),
        ({"concept": "rate", "op": ">", "value": 5, "value_type": "money"}, "Invalid condition value type: money"),
    ])
    def test_malformed_conditions(self, cond, issue):
        report = validate_query_plan(_plan(conditions=[cond]))
        assert not report.is_valid
        assert report.issues == [issue]
        assert report.confidence == 0.8

    def test_lowest_ceiling_wins(self):
        report = validate_query_plan(_plan(
            target_entities=["widgets"],
            conditions=[{"op": ">", "value": 1}],
        ))
        assert report.confidence == 0.3
        assert len(report.issues) == 2


@pytest.mark.unit
class TestValidationAgainstSources:

    def test_sources_cap_confidence(self, sources, mapper):
        report = validate_query_plan(_plan(), sources, mapper)
        assert report.is_valid
        assert report.confidence == 0.8

    def test_entity_without_source(self, sources):
        report = validate_query_plan(_plan(target_entities=["customers"]), sources)
        assert not report.is_valid
        assert report.issues == ["No data source found for entity: customers"]
        assert report.confidence == 0.5

    def test_unmapped_condition_warns_but_stays_valid(self, sources, mapper):
        cond = {"concept": "colour", "op": ">", "value": 5, "value_type": "number"}
        report = validate_query_plan(_plan(conditions=[cond]), sources, mapper)
        assert report.is_valid
        assert report.issues == ['Condition field "colour" not found in data sources']
        assert report.confidence == 0.6

    def test_mapped_condition_passes(self, sources, mapper):
        plan = QueryPlan(
            target_entities=["loans"],
            conditions=[NumericCondition(concept="rate", op=">", value=5)],
        )
        report = validate_query_plan(plan, sources, mapper)
        assert report.issues == []

    def test_field_check_skipped_without_mapper(self, sources):
        cond = {"concept": "colour", "op": ">", "value": 5, "value_type": "number"}
        assert validate_query_plan(_plan(conditions=[cond]), sources).issues == []


@pytest.mark.unit
class TestPlanConfidence:

    def test_simple_plan(self):
        assert calculate_plan_confidence(QueryPlan(target_entities=["loans"])) == 1.0

    def test_no_entities(self):
        assert calculate_plan_confidence(QueryPlan()) == pytest.approx(0.3)

    def test_many_entities_and_conditions(self):
        conds = [NumericCondition(concept="rate", op=">", value=i) for i in range(4)]
        plan = QueryPlan(target_entities=["loans", "checking", "deposits"], conditions=conds)
        assert calculate_plan_confidence(plan) == pytest.approx(0.8 * 0.7)

    def test_unknown_entity(self):
        assert calculate_plan_confidence(QueryPlan(target_entities=["widgets"])) == pytest.approx(0.7)
