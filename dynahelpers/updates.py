"""
Update expressions for dynahelpers.

Builds ``SET ... REMOVE ...`` expressions from a mapping of fields to set and
a list of fields to remove. Key attributes can never be part of an update in
DynamoDB ("This attribute is part of the key"), so they are dropped silently.

Usage:
    update = build_update(
        key={"id": "user-1"},
        fields={"name": "Alice", "age": 30},
        remove_fields=["legacy"],
    )
    update.expression
    # 'SET #attr0=:attr0, #attr1=:attr1 REMOVE #attr2'
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SetAction:
    """A SET clause entry: ``#attrN=:attrN``."""

    field_name: str
    name_placeholder: str
    value_placeholder: str
    value: Any


@dataclass(frozen=True)
class RemoveAction:
    """A REMOVE clause entry: ``#attrN``."""

    field_name: str
    name_placeholder: str


@dataclass(frozen=True)
class UpdateExpression:
    expression: str
    attribute_names: dict[str, str]
    attribute_values: dict[str, Any] | None
    set_actions: tuple[SetAction, ...]
    remove_actions: tuple[RemoveAction, ...]


def build_update(
    key: Mapping[str, Any],
    fields: Mapping[str, Any] | None = None,
    remove_fields: Iterable[str] | None = None,
) -> UpdateExpression | None:
    """
    Compiles fields to set and fields to remove into an update expression.

    - Fields named in ``key`` are dropped from both lists.
    - A field set to None is removed instead (DynamoDB has no "unset" value).
    - Placeholders are numbered across SET then REMOVE entries.

    Returns None when nothing is left to update.
    """
    key_names = set(key)

    set_fields: list[tuple[str, Any]] = []
    remove_names: list[str] = []

    for field_name, value in (fields or {}).items():
        if field_name in key_names:
            continue
        if value is None:
            remove_names.append(field_name)
        else:
            set_fields.append((field_name, value))

    for field_name in remove_fields or ():
        if field_name is None or field_name in key_names or field_name in remove_names:
            continue
        remove_names.append(field_name)

    if not set_fields and not remove_names:
        return None

    count = 0
    set_actions: list[SetAction] = []
    for field_name, value in set_fields:
        set_actions.append(SetAction(field_name, f"#attr{count}", f":attr{count}", value))
        count += 1

    remove_actions: list[RemoveAction] = []
    for field_name in remove_names:
        remove_actions.append(RemoveAction(field_name, f"#attr{count}"))
        count += 1

    parts = []
    if set_actions:
        parts.append(
            "SET "
            + ", ".join(f"{a.name_placeholder}={a.value_placeholder}" for a in set_actions)
        )
    if remove_actions:
        parts.append("REMOVE " + ", ".join(a.name_placeholder for a in remove_actions))

    names = {a.name_placeholder: a.field_name for a in set_actions}
    names.update({a.name_placeholder: a.field_name for a in remove_actions})
    values = {a.value_placeholder: a.value for a in set_actions}

    return UpdateExpression(
        expression=" ".join(parts),
        attribute_names=names,
        attribute_values=values or None,
        set_actions=tuple(set_actions),
        remove_actions=tuple(remove_actions),
    )
