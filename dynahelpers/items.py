from collections.abc import Sequence
from typing import Any

from ._logging import logger, redact_key
from .conditions import ConditionLike, compile_conditions, merge_request_params, to_request_params
from .connection import get_connection
from .exceptions import ConditionalCheckFailedError, handle_dynamo_errors
from .serializer import DynamoSerializer, default_serializer
from .updates import build_update


def _condition_params(
    conditions: Sequence[ConditionLike] | None, serializer: DynamoSerializer
) -> dict[str, Any]:
    compiled = compile_conditions(conditions)
    return to_request_params(compiled, "ConditionExpression", serializer)


def _attach_old_item(error: ConditionalCheckFailedError, serializer: DynamoSerializer) -> None:
    # ALL_OLD hands back the wire-format item that failed the check
    if error.item:
        error.item = serializer.from_dynamo(error.item)


def get_item(
    table: str,
    key: dict[str, Any],
    *,
    consistent_read: bool = False,
    projection: Sequence[str] | None = None,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
) -> dict[str, Any] | None:
    """
    Fetches a single item by key.
    Returns the item as a Python dict, or None when it does not exist.

    Args:
        table: Table name
        key: Partition key (and sort key if the table has one)
        consistent_read: Use a strongly consistent read
        projection: Attribute names to return
        client: DynamoDB client (defaults to the shared connection)
    """
    client = client or get_connection()

    kwargs: dict[str, Any] = {"TableName": table, "Key": serializer.to_dynamo(key)}
    if consistent_read:
        kwargs["ConsistentRead"] = True
    if projection:
        kwargs["ProjectionExpression"] = ",".join(projection)

    logger.debug(
        "Fetching item",
        extra={"table": table, "key_hash": redact_key(key), "operation": "get"},
    )

    with handle_dynamo_errors(table_name=table, operation="get"):
        response = client.get_item(**kwargs)

    if "Item" not in response:
        logger.info("Item not found", extra={"table": table, "operation": "get"})
        return None

    logger.info("Item found", extra={"table": table, "operation": "get"})
    return serializer.from_dynamo(response["Item"])


def put_item(
    table: str,
    item: dict[str, Any],
    *,
    conditions: Sequence[ConditionLike] | None = None,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
) -> dict[str, Any]:
    """
    Creates or replaces an item.

    Args:
        table: Table name
        item: The record to write
        conditions: Conditions that must hold for the write, combined with AND

    Raises:
        ConditionalCheckFailedError: If the conditions are not satisfied

    Usage:
        # Create-if-not-exists
        put_item(
            "users",
            {"id": "1", "name": "Alice"},
            conditions=[{"operator": "AttributeNotExists", "field": "id"}],
        )
    """
    client = client or get_connection()

    kwargs: dict[str, Any] = {
        "TableName": table,
        "Item": serializer.to_dynamo(item),
        "ReturnValuesOnConditionCheckFailure": "ALL_OLD",
    }
    merge_request_params(kwargs, _condition_params(conditions, serializer))

    logger.info(
        "Saving item",
        extra={
            "table": table,
            "operation": "put",
            "has_condition": "ConditionExpression" in kwargs,
        },
    )
    if "ConditionExpression" in kwargs:
        logger.debug(
            "Put condition details",
            extra={
                "table": table,
                "operation": "put",
                "condition_expression": kwargs["ConditionExpression"],
            },
        )

    try:
        with handle_dynamo_errors(table_name=table, operation="put"):
            client.put_item(**kwargs)
    except ConditionalCheckFailedError as e:
        _attach_old_item(e, serializer)
        raise

    logger.info("Save successful", extra={"table": table, "operation": "put"})
    return item


def update_item(
    table: str,
    key: dict[str, Any],
    *,
    fields: dict[str, Any] | None = None,
    remove_fields: Sequence[str] | None = None,
    conditions: Sequence[ConditionLike] | None = None,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
) -> dict[str, Any] | None:
    """
    Updates attributes on an item and returns the item as it is after the update.

    Attributes that are part of the key are ignored. A field whose value is
    None is removed from the item. Returns None without calling DynamoDB
    when nothing is left to set or remove.

    Args:
        table: Table name
        key: Key of the item to update
        fields: Attributes to set
        remove_fields: Attributes to remove
        conditions: Conditions that must hold for the update, combined with AND

    Raises:
        ConditionalCheckFailedError: If the conditions are not satisfied

    Usage:
        update_item("users", {"id": "1"}, fields={"name": "Bob"}, remove_fields=["nickname"])
    """
    update = build_update(key, fields, remove_fields)
    if update is None:
        logger.info("Nothing to update", extra={"table": table, "operation": "update"})
        return None

    client = client or get_connection()

    kwargs: dict[str, Any] = {
        "TableName": table,
        "Key": serializer.to_dynamo(key),
        "UpdateExpression": update.expression,
        "ExpressionAttributeNames": dict(update.attribute_names),
        "ReturnValues": "ALL_NEW",
        "ReturnValuesOnConditionCheckFailure": "ALL_OLD",
    }
    if update.attribute_values:
        kwargs["ExpressionAttributeValues"] = {
            placeholder: serializer.to_dynamo_value(value)
            for placeholder, value in update.attribute_values.items()
        }
    merge_request_params(kwargs, _condition_params(conditions, serializer))

    logger.info(
        "Executing update",
        extra={
            "table": table,
            "key_hash": redact_key(key),
            "operation": "update",
            "set_count": len(update.set_actions),
            "remove_count": len(update.remove_actions),
            "has_condition": "ConditionExpression" in kwargs,
        },
    )
    logger.debug(
        "Update expression details",
        extra={
            "table": table,
            "operation": "update",
            "update_expression": kwargs["UpdateExpression"],
            "condition_expression": kwargs.get("ConditionExpression"),
        },
    )

    try:
        with handle_dynamo_errors(table_name=table, operation="update"):
            response = client.update_item(**kwargs)
    except ConditionalCheckFailedError as e:
        _attach_old_item(e, serializer)
        raise

    logger.info("Update successful", extra={"table": table, "operation": "update"})
    attributes = response.get("Attributes")
    return serializer.from_dynamo(attributes) if attributes else None


def delete_item(
    table: str,
    key: dict[str, Any],
    *,
    conditions: Sequence[ConditionLike] | None = None,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
) -> bool:
    """
    Deletes an item by key. Returns True once DynamoDB accepted the delete.

    Raises:
        ConditionalCheckFailedError: If the conditions are not satisfied

    Usage:
        delete_item("users", {"id": "1"})

        # Delete only if version matches
        delete_item("users", {"id": "1"}, conditions=[
            {"operator": "Equal", "field": "version", "value": 3},
        ])
    """
    client = client or get_connection()

    kwargs: dict[str, Any] = {
        "TableName": table,
        "Key": serializer.to_dynamo(key),
        "ReturnValuesOnConditionCheckFailure": "ALL_OLD",
    }
    merge_request_params(kwargs, _condition_params(conditions, serializer))

    logger.info(
        "Deleting item",
        extra={
            "table": table,
            "operation": "delete",
            "key_hash": redact_key(key),
            "has_condition": "ConditionExpression" in kwargs,
        },
    )

    try:
        with handle_dynamo_errors(table_name=table, operation="delete"):
            client.delete_item(**kwargs)
    except ConditionalCheckFailedError as e:
        _attach_old_item(e, serializer)
        raise

    logger.info("Delete successful", extra={"table": table, "operation": "delete"})
    return True
