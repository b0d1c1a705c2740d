"""
Unit tests for condition expressions.

Tests operator parsing, Condition validation and compilation of condition
lists into expression strings with placeholder maps.
"""

import re

import pytest
from pydantic import ValidationError as PydanticValidationError

from dynahelpers.conditions import (
    QUERY_OPERATORS,
    CompiledExpression,
    Condition,
    Operator,
    compile_conditions,
    merge_request_params,
    to_request_params,
)
from dynahelpers.exceptions import InvalidOperatorError
from dynahelpers.serializer import DynamoSerializer


@pytest.mark.unit
class TestOperator:
    def test_parse_by_value(self):
        assert Operator.parse("BeginsWith") is Operator.BEGINS_WITH

    def test_parse_snake_case(self):
        assert Operator.parse("attribute_not_exists") is Operator.ATTRIBUTE_NOT_EXISTS
        assert Operator.parse("greater_than_equal") is Operator.GREATER_THAN_EQUAL

    def test_parse_member(self):
        assert Operator.parse(Operator.BETWEEN) is Operator.BETWEEN

    def test_parse_unknown(self):
        with pytest.raises(InvalidOperatorError) as exc_info:
            Operator.parse("Contains")
        assert exc_info.value.operator == "Contains"

    def test_query_operators_exclude_exists_family(self):
        assert Operator.ATTRIBUTE_EXISTS not in QUERY_OPERATORS
        assert Operator.ATTRIBUTE_NOT_EXISTS not in QUERY_OPERATORS
        assert Operator.BETWEEN in QUERY_OPERATORS
        assert len(QUERY_OPERATORS) == 8


@pytest.mark.unit
class TestConditionValidation:
    def test_from_mapping_with_camel_case_alias(self):
        condition = Condition.model_validate(
            {"operator": "Between", "field": "age", "value": 1, "betweenSecondValue": 9}
        )
        assert condition.between_second_value == 9

    def test_unknown_operator_is_not_wrapped(self):
        with pytest.raises(InvalidOperatorError):
            Condition(operator="Like", field="name", value="x")

    def test_between_requires_second_value(self):
        with pytest.raises(PydanticValidationError):
            Condition(operator=Operator.BETWEEN, field="age", value=1)

    def test_exists_takes_no_value(self):
        with pytest.raises(PydanticValidationError):
            Condition(operator=Operator.ATTRIBUTE_EXISTS, field="id", value="x")

    def test_comparison_requires_value(self):
        with pytest.raises(PydanticValidationError):
            Condition(operator=Operator.EQUAL, field="id")

    def test_explicit_none_is_a_value(self):
        condition = Condition(operator=Operator.NOT_EQUAL, field="deleted_at", value=None)
        assert condition.value is None

    def test_comparison_rejects_second_value(self):
        with pytest.raises(PydanticValidationError):
            Condition(operator=Operator.LESS_THAN, field="age", value=1, between_second_value=2)

    def test_condition_is_frozen(self):
        condition = Condition(operator=Operator.EQUAL, field="id", value="1")
        with pytest.raises(PydanticValidationError):
            condition.field = "other"


@pytest.mark.unit
class TestCompileConditions:
    @pytest.mark.parametrize("conditions", [None, []])
    def test_empty_returns_none(self, conditions):
        assert compile_conditions(conditions) is None

    @pytest.mark.parametrize(
        ("operator", "expected"),
        [
            (Operator.BEGINS_WITH, "begins_with(#field0, :val0)"),
            (Operator.EQUAL, "#field0 = :val0"),
            (Operator.NOT_EQUAL, "#field0 <> :val0"),
            (Operator.GREATER_THAN, "#field0 > :val0"),
            (Operator.GREATER_THAN_EQUAL, "#field0 >= :val0"),
            (Operator.LESS_THAN, "#field0 < :val0"),
            (Operator.LESS_THAN_EQUAL, "#field0 <= :val0"),
        ],
    )
    def test_single_comparison(self, operator, expected):
        compiled = compile_conditions([Condition(operator=operator, field="f", value=1)])
        assert compiled == CompiledExpression(
            expression=expected,
            attribute_names={"#field0": "f"},
            attribute_values={":val0": 1},
        )

    def test_between_uses_odd_placeholder(self):
        compiled = compile_conditions(
            [
                {"operator": "Equal", "field": "type", "value": "order"},
                {"operator": "Between", "field": "age", "value": 18, "betweenSecondValue": 65},
            ]
        )
        assert compiled.expression == "#field0 = :val0 AND #field2 BETWEEN :val2 AND :val3"
        assert compiled.attribute_values == {":val0": "order", ":val2": 18, ":val3": 65}

    def test_none_value_compiles_to_placeholder(self):
        compiled = compile_conditions([{"operator": "Equal", "field": "parent", "value": None}])
        assert compiled == CompiledExpression(
            expression="#field0 = :val0",
            attribute_names={"#field0": "parent"},
            attribute_values={":val0": None},
        )

    def test_between_rejects_none_bounds(self):
        with pytest.raises(PydanticValidationError):
            Condition(operator=Operator.BETWEEN, field="age", value=None, between_second_value=5)

    def test_exists_family_has_no_values(self):
        compiled = compile_conditions(
            [
                {"operator": "AttributeExists", "field": "email"},
                {"operator": "attribute_not_exists", "field": "deleted_at"},
            ]
        )
        assert compiled.expression == (
            "attribute_exists(#field0) AND attribute_not_exists(#field2)"
        )
        assert compiled.attribute_names == {"#field0": "email", "#field2": "deleted_at"}
        assert compiled.attribute_values is None

    def test_placeholders_are_all_used(self):
        conditions = [
            {"operator": "Equal", "field": "a", "value": 1},
            {"operator": "Between", "field": "b", "value": 1, "between_second_value": 5},
            {"operator": "AttributeExists", "field": "c"},
            {"operator": "BeginsWith", "field": "d", "value": "x"},
        ]
        compiled = compile_conditions(conditions)

        assert len(compiled.attribute_names) == len(conditions)
        assert len(compiled.attribute_values) == 4
        used = set(re.findall(r"[#:][a-z]+\d+", compiled.expression))
        assert used == set(compiled.attribute_names) | set(compiled.attribute_values)

    def test_custom_prefixes(self):
        compiled = compile_conditions(
            [{"operator": "GreaterThan", "field": "likes", "value": 3}],
            name_prefix="#filter",
            value_prefix=":filterval",
        )
        assert compiled.expression == "#filter0 > :filterval0"
        assert compiled.attribute_names == {"#filter0": "likes"}

    def test_unknown_operator_in_mapping(self):
        with pytest.raises(InvalidOperatorError):
            compile_conditions([{"operator": "Contains", "field": "a", "value": 1}])

    def test_rejects_non_condition(self):
        with pytest.raises(TypeError):
            compile_conditions(["a = 1"])


@pytest.mark.unit
class TestRequestParams:
    def test_none_gives_empty_params(self):
        assert to_request_params(None, "ConditionExpression", DynamoSerializer()) == {}

    def test_values_are_marshalled(self):
        compiled = compile_conditions([{"operator": "Equal", "field": "score", "value": 9.5}])
        params = to_request_params(compiled, "FilterExpression", DynamoSerializer())
        assert params == {
            "FilterExpression": "#field0 = :val0",
            "ExpressionAttributeNames": {"#field0": "score"},
            "ExpressionAttributeValues": {":val0": {"N": "9.5"}},
        }

    def test_none_value_is_sent_as_null(self):
        compiled = compile_conditions([{"operator": "NotEqual", "field": "parent", "value": None}])
        params = to_request_params(compiled, "ConditionExpression", DynamoSerializer())
        assert params["ExpressionAttributeValues"] == {":val0": {"NULL": True}}

    def test_merge_combines_placeholder_maps(self):
        base = {
            "KeyConditionExpression": "#a = :b",
            "ExpressionAttributeNames": {"#a": "pk"},
            "ExpressionAttributeValues": {":b": {"S": "x"}},
        }
        merge_request_params(
            base,
            {
                "FilterExpression": "#filter0 > :filterval0",
                "ExpressionAttributeNames": {"#filter0": "likes"},
                "ExpressionAttributeValues": {":filterval0": {"N": "1"}},
            },
        )
        assert base["ExpressionAttributeNames"] == {"#a": "pk", "#filter0": "likes"}
        assert set(base["ExpressionAttributeValues"]) == {":b", ":filterval0"}
        assert base["FilterExpression"] == "#filter0 > :filterval0"
