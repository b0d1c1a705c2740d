from collections.abc import Sequence
from typing import Any

from ._logging import logger, redact_key
from .conditions import (
    QUERY_OPERATORS,
    Condition,
    ConditionLike,
    Operator,
    compile_conditions,
    merge_request_params,
    to_condition,
    to_request_params,
)
from .connection import get_connection
from .exceptions import InvalidOperatorError, handle_dynamo_errors
from .pagination import PageResult, paginate
from .serializer import DynamoSerializer, default_serializer

FILTER_NAME_PREFIX = "#filter"
FILTER_VALUE_PREFIX = ":filterval"


def build_query_request(
    table: str,
    key_name: str,
    key_value: Any,
    *,
    index_name: str | None = None,
    scan_index_forward: bool = True,
    consistent_read: bool = False,
    limit: int | None = None,
    range_condition: ConditionLike | None = None,
    filter_conditions: Sequence[ConditionLike] | None = None,
    projection: Sequence[str] | None = None,
    serializer: DynamoSerializer = default_serializer,
) -> dict[str, Any]:
    """
    Builds the Query request parameters, without ExclusiveStartKey.

    The key condition is always ``#a = :b`` on the partition key. A range
    condition on the sort key is appended with AND; filter conditions use
    their own placeholders so they never collide with the key condition.

    Raises:
        InvalidOperatorError: If the range condition uses an attribute_exists operator
    """
    kwargs: dict[str, Any] = {
        "TableName": table,
        "KeyConditionExpression": "#a = :b",
        "ExpressionAttributeNames": {"#a": key_name},
        "ExpressionAttributeValues": {":b": serializer.to_dynamo_value(key_value)},
    }

    if index_name:
        kwargs["IndexName"] = index_name
    if consistent_read:
        kwargs["ConsistentRead"] = True
    if scan_index_forward is False:
        kwargs["ScanIndexForward"] = False
    if limit:
        kwargs["Limit"] = limit
    if projection:
        kwargs["ProjectionExpression"] = ",".join(projection)

    if range_condition is not None:
        condition = to_condition(range_condition)
        if condition.operator not in QUERY_OPERATORS:
            raise InvalidOperatorError(condition.operator.value)

        range_params = to_request_params(
            compile_conditions([condition]), "KeyConditionExpression", serializer
        )
        range_expression = range_params.pop("KeyConditionExpression")
        kwargs["KeyConditionExpression"] = f"{kwargs['KeyConditionExpression']} AND {range_expression}"
        merge_request_params(kwargs, range_params)

    filter_params = to_request_params(
        compile_conditions(
            filter_conditions,
            name_prefix=FILTER_NAME_PREFIX,
            value_prefix=FILTER_VALUE_PREFIX,
        ),
        "FilterExpression",
        serializer,
    )
    merge_request_params(kwargs, filter_params)

    return kwargs


def query_items(
    table: str,
    key_name: str,
    key_value: Any,
    *,
    index_name: str | None = None,
    scan_index_forward: bool = True,
    consistent_read: bool = False,
    limit: int | None = None,
    range_condition: ConditionLike | None = None,
    filter_conditions: Sequence[ConditionLike] | None = None,
    projection: Sequence[str] | None = None,
    exclusive_start_key: dict[str, Any] | None = None,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
) -> list[dict[str, Any]]:
    """
    Queries items sharing a partition key, following every page.

    Args:
        table: Table name
        key_name: Partition key attribute of the table or index
        key_value: Partition key value
        index_name: GSI or LSI to query
        scan_index_forward: False to read in descending sort key order
        consistent_read: Strongly consistent read (table or LSI only)
        limit: Stop fetching pages once this many items are collected.
            The last page is kept whole, so more items may be returned.
        range_condition: Condition on the sort key
        filter_conditions: Conditions on non-key attributes, combined with AND
        projection: Attribute names to return
        exclusive_start_key: Key to start after, as a Python dict
        client: DynamoDB client (defaults to the shared connection)

    Usage:
        query_items("messages", "room_id", "general", scan_index_forward=False, limit=50)
    """
    client = client or get_connection()
    kwargs = build_query_request(
        table,
        key_name,
        key_value,
        index_name=index_name,
        scan_index_forward=scan_index_forward,
        consistent_read=consistent_read,
        limit=limit,
        range_condition=range_condition,
        filter_conditions=filter_conditions,
        projection=projection,
        serializer=serializer,
    )

    logger.info(
        "Starting query",
        extra={
            "table": table,
            "index": index_name,
            "operation": "query",
            "pk_hash": redact_key(key_value),
            "key_condition": kwargs["KeyConditionExpression"],
            "has_filter": "FilterExpression" in kwargs,
            "limit": limit,
        },
    )

    def fetch_page(start_key: dict[str, Any] | None) -> dict[str, Any]:
        request = dict(kwargs)
        if start_key:
            request["ExclusiveStartKey"] = start_key
        with handle_dynamo_errors(table_name=table, operation="query"):
            return client.query(**request)

    start_key = serializer.to_dynamo(exclusive_start_key) if exclusive_start_key else None
    items = paginate(fetch_page, limit=limit, start_key=start_key)

    logger.info(
        "Query complete",
        extra={"table": table, "operation": "query", "item_count": len(items)},
    )
    return [serializer.from_dynamo(item) for item in items]


def query_items_range(
    table: str,
    key_name: str,
    key_value: Any,
    range_key_name: str,
    range_key_value: Any,
    *,
    fuzzy: bool = False,
    **kwargs: Any,
) -> list[dict[str, Any]]:
    """
    Queries with an equality or prefix condition on the sort key.

    ``fuzzy=True`` uses ``begins_with``, otherwise the sort key must equal
    ``range_key_value``. Accepts the same keyword arguments as ``query_items``.

    Usage:
        query_items_range("events", "pk", "user-1", "sk", "2024-", fuzzy=True)
    """
    condition = Condition(
        operator=Operator.BEGINS_WITH if fuzzy else Operator.EQUAL,
        field=range_key_name,
        value=range_key_value,
    )
    return query_items(table, key_name, key_value, range_condition=condition, **kwargs)


def query_items_range_between(
    table: str,
    key_name: str,
    key_value: Any,
    range_key_name: str,
    range_key_value_min: Any,
    range_key_value_max: Any,
    **kwargs: Any,
) -> list[dict[str, Any]]:
    """
    Queries with a BETWEEN condition (inclusive) on the sort key.
    Accepts the same keyword arguments as ``query_items``.
    """
    condition = Condition(
        operator=Operator.BETWEEN,
        field=range_key_name,
        value=range_key_value_min,
        between_second_value=range_key_value_max,
    )
    return query_items(table, key_name, key_value, range_condition=condition, **kwargs)


def query_page(
    table: str,
    key_name: str,
    key_value: Any,
    *,
    start_key: dict[str, Any] | None = None,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
    **kwargs: Any,
) -> PageResult[dict[str, Any]]:
    """
    Executes a single Query request and returns one page with its cursor.

    Args:
        start_key: The last_evaluated_key from a previous page. None for the first page.
        **kwargs: Same request options as ``query_items`` (limit, range_condition, ...)

    Usage:
        page1 = query_page("messages", "room_id", "general", limit=10)
        if page1.has_more:
            page2 = query_page(
                "messages", "room_id", "general", limit=10, start_key=page1.last_evaluated_key
            )
    """
    client = client or get_connection()
    request = build_query_request(table, key_name, key_value, serializer=serializer, **kwargs)
    if start_key:
        request["ExclusiveStartKey"] = serializer.deserialize_cursor(start_key)

    logger.info(
        "Executing query page",
        extra={
            "table": table,
            "index": kwargs.get("index_name"),
            "operation": "query_page",
            "pk_hash": redact_key(key_value),
            "limit": kwargs.get("limit"),
            "has_cursor": start_key is not None,
        },
    )

    with handle_dynamo_errors(table_name=table, operation="query_page"):
        response = client.query(**request)

    items = [serializer.from_dynamo(item) for item in response.get("Items", [])]
    raw_key = response.get("LastEvaluatedKey")
    cursor = serializer.serialize_cursor(raw_key) if raw_key else None

    return PageResult(items=items, last_evaluated_key=cursor, count=len(items))
