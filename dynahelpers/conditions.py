"""
Condition expressions for dynahelpers.

This module turns a flat list of conditions into a DynamoDB expression
string plus the placeholder maps that go with it. Field names and values are
never written into the expression directly: every field becomes ``#field{i}``
and every value ``:val{i}``, which keeps reserved words (``name``,
``status``, ...) and user supplied values out of the expression text.

Conditions are always combined with AND.

Usage:
    from dynahelpers import Condition, Operator, compile_conditions

    compiled = compile_conditions([
        Condition(operator=Operator.ATTRIBUTE_NOT_EXISTS, field="id"),
        {"operator": "GreaterThan", "field": "age", "value": 18},
    ])
    compiled.expression
    # 'attribute_not_exists(#field0) AND #field2 > :val2'
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import InvalidOperatorError

if TYPE_CHECKING:
    from .serializer import DynamoSerializer


class Operator(str, Enum):
    """Comparison operators supported in condition and key expressions."""

    BEGINS_WITH = "BeginsWith"
    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    GREATER_THAN = "GreaterThan"
    GREATER_THAN_EQUAL = "GreaterThanEqual"
    LESS_THAN = "LessThan"
    LESS_THAN_EQUAL = "LessThanEqual"
    BETWEEN = "Between"
    ATTRIBUTE_EXISTS = "AttributeExists"
    ATTRIBUTE_NOT_EXISTS = "AttributeNotExists"

    @classmethod
    def parse(cls, value: Any) -> Operator:
        """
        Resolves an operator from an enum member, its value ("BeginsWith")
        or its snake_case name ("begins_with").

        Raises:
            InvalidOperatorError: If the value names no known operator
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
            member = cls.__members__.get(value.upper())
            if member is not None:
                return member
        raise InvalidOperatorError(value)


# Key conditions cannot use the attribute_exists family
QUERY_OPERATORS = frozenset(
    op for op in Operator if op not in (Operator.ATTRIBUTE_EXISTS, Operator.ATTRIBUTE_NOT_EXISTS)
)

_EXISTS_OPERATORS = frozenset({Operator.ATTRIBUTE_EXISTS, Operator.ATTRIBUTE_NOT_EXISTS})


class Condition(BaseModel):
    """
    A single comparison against one attribute.

    Attributes:
        operator: The comparison to apply
        field: Attribute name in DynamoDB
        value: Value to compare with (absent for the attribute_exists family).
            An explicit None compares against a DynamoDB NULL.
        between_second_value: Upper bound, only for Between
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    operator: Operator
    field: str
    value: Any = None
    between_second_value: Any = Field(default=None, alias="betweenSecondValue")

    @field_validator("operator", mode="before")
    @classmethod
    def _parse_operator(cls, value: Any) -> Operator:
        # InvalidOperatorError is not a ValueError, so pydantic lets it propagate
        return Operator.parse(value)

    @model_validator(mode="after")
    def _check_values(self) -> Condition:
        if self.operator is Operator.BETWEEN:
            if self.value is None or self.between_second_value is None:
                raise ValueError(f"Between on '{self.field}' requires a value and a second value")
        elif self.operator in _EXISTS_OPERATORS:
            if self.value is not None or self.between_second_value is not None:
                raise ValueError(f"{self.operator.value} on '{self.field}' takes no value")
        else:
            if "value" not in self.model_fields_set:
                raise ValueError(f"{self.operator.value} on '{self.field}' requires a value")
            if self.between_second_value is not None:
                raise ValueError(
                    f"{self.operator.value} on '{self.field}' does not take a second value"
                )
        return self


ConditionLike = Union[Condition, Mapping[str, Any]]


@dataclass(frozen=True)
class CompiledExpression:
    """
    Result of compiling a list of conditions.

    The placeholder maps are None rather than empty so callers can skip the
    corresponding request parameter. Values are native Python values; they
    are marshalled to wire format by ``to_request_params``.
    """

    expression: str
    attribute_names: dict[str, str] | None
    attribute_values: dict[str, Any] | None


def to_condition(condition: ConditionLike) -> Condition:
    """Accepts a Condition or a plain mapping and returns a validated Condition."""
    if isinstance(condition, Condition):
        return condition
    if isinstance(condition, Mapping):
        if "operator" in condition:
            # Resolve eagerly so an unknown operator is reported as such
            Operator.parse(condition["operator"])
        return Condition.model_validate(dict(condition))
    raise TypeError(f"Expected Condition or mapping, got {type(condition).__name__}")


def build_condition(operator: Operator, field: str, value: str, second_value: str) -> str:
    """
    Renders one condition using placeholder names.

    The match is exhaustive over Operator: adding an operator without a case
    here fails loudly instead of falling through.
    """
    match operator:
        case Operator.BEGINS_WITH:
            return f"begins_with({field}, {value})"
        case Operator.EQUAL:
            return f"{field} = {value}"
        case Operator.NOT_EQUAL:
            return f"{field} <> {value}"
        case Operator.GREATER_THAN:
            return f"{field} > {value}"
        case Operator.GREATER_THAN_EQUAL:
            return f"{field} >= {value}"
        case Operator.LESS_THAN:
            return f"{field} < {value}"
        case Operator.LESS_THAN_EQUAL:
            return f"{field} <= {value}"
        case Operator.BETWEEN:
            return f"{field} BETWEEN {value} AND {second_value}"
        case Operator.ATTRIBUTE_EXISTS:
            return f"attribute_exists({field})"
        case Operator.ATTRIBUTE_NOT_EXISTS:
            return f"attribute_not_exists({field})"
        case _:
            raise InvalidOperatorError(operator)


def compile_conditions(
    conditions: Iterable[ConditionLike] | None,
    *,
    name_prefix: str = "#field",
    value_prefix: str = ":val",
) -> CompiledExpression | None:
    """
    Compiles conditions into an expression joined with AND.

    Each condition at position i uses index 2*i, reserving 2*i + 1 for the
    upper bound of a Between. Returns None when there is nothing to compile
    because DynamoDB rejects empty expressions.

    Args:
        conditions: Conditions (or mappings) to combine
        name_prefix: Prefix for attribute name placeholders
        value_prefix: Prefix for attribute value placeholders

    Raises:
        InvalidOperatorError: If a condition uses an unknown operator
    """
    if not conditions:
        return None

    parts: list[str] = []
    names: dict[str, str] = {}
    values: dict[str, Any] = {}

    for position, raw in enumerate(conditions):
        condition = to_condition(raw)
        index = position * 2
        name_ph = f"{name_prefix}{index}"
        value_ph = f"{value_prefix}{index}"
        second_ph = f"{value_prefix}{index + 1}"

        parts.append(build_condition(condition.operator, name_ph, value_ph, second_ph))
        names[name_ph] = condition.field

        if condition.operator not in _EXISTS_OPERATORS:
            values[value_ph] = condition.value
        if condition.operator is Operator.BETWEEN:
            values[second_ph] = condition.between_second_value

    if not parts:
        return None

    return CompiledExpression(
        expression=" AND ".join(parts),
        attribute_names=names or None,
        attribute_values=values or None,
    )


def to_request_params(
    compiled: CompiledExpression | None,
    expression_key: str,
    serializer: DynamoSerializer,
) -> dict[str, Any]:
    """
    Converts a compiled expression into DynamoDB request parameters.

    Returns a dict with ``expression_key`` (e.g. "ConditionExpression") and,
    only when non-empty, ExpressionAttributeNames and marshalled
    ExpressionAttributeValues. Returns an empty dict for None.
    """
    if compiled is None:
        return {}

    result: dict[str, Any] = {expression_key: compiled.expression}
    if compiled.attribute_names:
        result["ExpressionAttributeNames"] = dict(compiled.attribute_names)
    if compiled.attribute_values:
        result["ExpressionAttributeValues"] = {
            placeholder: serializer.to_dynamo_value(value)
            for placeholder, value in compiled.attribute_values.items()
        }
    return result


def merge_request_params(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    """
    Merges request parameters in place, combining the placeholder maps
    instead of overwriting them. Returns ``base``.
    """
    for key, value in extra.items():
        if key in ("ExpressionAttributeNames", "ExpressionAttributeValues"):
            base[key] = {**base.get(key, {}), **value}
        else:
            base[key] = value
    return base
