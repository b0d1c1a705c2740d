import pytest

from dynahelpers.updates import RemoveAction, SetAction, build_update


def test_set_only():
    update = build_update({"id": "1"}, {"name": "Alice"})

    assert update.expression == "SET #attr0=:attr0"
    assert update.attribute_names == {"#attr0": "name"}
    assert update.attribute_values == {":attr0": "Alice"}
    assert update.set_actions == (SetAction("name", "#attr0", ":attr0", "Alice"),)
    assert update.remove_actions == ()


def test_set_and_remove_numbering_continues():
    update = build_update({"id": "1"}, {"name": "Alice", "age": 30}, ["nickname"])

    assert update.expression == "SET #attr0=:attr0, #attr1=:attr1 REMOVE #attr2"
    assert update.attribute_names == {"#attr0": "name", "#attr1": "age", "#attr2": "nickname"}
    assert update.attribute_values == {":attr0": "Alice", ":attr1": 30}


def test_remove_only_has_no_values():
    update = build_update({"id": "1"}, remove_fields=["a", "b"])

    assert update.expression == "REMOVE #attr0, #attr1"
    assert update.attribute_values is None
    assert update.remove_actions == (RemoveAction("a", "#attr0"), RemoveAction("b", "#attr1"))


def test_none_value_is_removed():
    update = build_update({"id": "1"}, {"name": "Alice", "nickname": None})

    assert update.expression == "SET #attr0=:attr0 REMOVE #attr1"
    assert update.attribute_names["#attr1"] == "nickname"


def test_key_attributes_are_stripped():
    update = build_update(
        {"room_id": "general", "timestamp": "t1"},
        {"room_id": "other", "timestamp": "t2", "content": "hi"},
        ["room_id"],
    )

    assert update.expression == "SET #attr0=:attr0"
    assert update.attribute_names == {"#attr0": "content"}


def test_duplicate_removes_are_collapsed():
    update = build_update({"id": "1"}, {"nickname": None}, ["nickname", "nickname"])

    assert update.expression == "REMOVE #attr0"


@pytest.mark.parametrize(
    ("fields", "remove_fields"),
    [
        (None, None),
        ({}, []),
        ({"id": "other"}, ["id"]),
    ],
)
def test_nothing_to_update_returns_none(fields, remove_fields):
    assert build_update({"id": "1"}, fields, remove_fields) is None
