"""
DynamoDB Scan operations.

Scans read every item of a table or index. Filters are applied by DynamoDB
after items are read, so they reduce the result but not the consumed capacity.
"""

from collections.abc import Sequence
from typing import Any

from ._logging import logger
from .conditions import ConditionLike, compile_conditions, merge_request_params, to_request_params
from .connection import get_connection
from .exceptions import handle_dynamo_errors
from .pagination import PageResult, paginate
from .serializer import DynamoSerializer, default_serializer


def build_scan_request(
    table: str,
    *,
    index_name: str | None = None,
    consistent_read: bool = False,
    limit: int | None = None,
    filter_conditions: Sequence[ConditionLike] | None = None,
    projection: Sequence[str] | None = None,
    serializer: DynamoSerializer = default_serializer,
) -> dict[str, Any]:
    """Builds the Scan request parameters, without ExclusiveStartKey."""
    kwargs: dict[str, Any] = {"TableName": table}

    if index_name:
        kwargs["IndexName"] = index_name
    if consistent_read:
        kwargs["ConsistentRead"] = True
    if limit:
        kwargs["Limit"] = limit
    if projection:
        kwargs["ProjectionExpression"] = ",".join(projection)

    merge_request_params(
        kwargs,
        to_request_params(compile_conditions(filter_conditions), "FilterExpression", serializer),
    )
    return kwargs


def get_all_items(
    table: str,
    *,
    limit: int | None = None,
    consistent_read: bool = False,
    filter_conditions: Sequence[ConditionLike] | None = None,
    projection: Sequence[str] | None = None,
    exclusive_start_key: dict[str, Any] | None = None,
    index_name: str | None = None,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
) -> list[dict[str, Any]]:
    """
    Scans the whole table (or index), following every page.

    Args:
        table: Table name
        limit: Stop fetching pages once this many items are collected.
            The last page is kept whole, so more items may be returned.
        consistent_read: Strongly consistent read
        filter_conditions: Conditions applied after the read, combined with AND
        projection: Attribute names to return
        exclusive_start_key: Key to start after, as a Python dict
        index_name: GSI or LSI to scan instead of the table

    Warning:
        Scans are expensive on large tables. Prefer query_items when the
        partition key is known.

    Usage:
        active = get_all_items("users", filter_conditions=[
            {"operator": "Equal", "field": "status", "value": "active"},
        ])
    """
    client = client or get_connection()
    kwargs = build_scan_request(
        table,
        index_name=index_name,
        consistent_read=consistent_read,
        limit=limit,
        filter_conditions=filter_conditions,
        projection=projection,
        serializer=serializer,
    )

    logger.info(
        "Starting scan",
        extra={
            "table": table,
            "index": index_name,
            "operation": "scan",
            "has_filter": "FilterExpression" in kwargs,
            "limit": limit,
        },
    )

    def fetch_page(start_key: dict[str, Any] | None) -> dict[str, Any]:
        request = dict(kwargs)
        if start_key:
            request["ExclusiveStartKey"] = start_key
        with handle_dynamo_errors(table_name=table, operation="scan"):
            return client.scan(**request)

    start_key = serializer.to_dynamo(exclusive_start_key) if exclusive_start_key else None
    items = paginate(fetch_page, limit=limit, start_key=start_key)

    logger.info(
        "Scan complete",
        extra={"table": table, "operation": "scan", "item_count": len(items)},
    )
    return [serializer.from_dynamo(item) for item in items]


def scan_page(
    table: str,
    *,
    start_key: dict[str, Any] | None = None,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
    **kwargs: Any,
) -> PageResult[dict[str, Any]]:
    """
    Executes a single Scan request and returns one page with its cursor.

    Args:
        start_key: The last_evaluated_key from a previous page. None for the first page.
        **kwargs: Same request options as ``get_all_items`` (limit, filter_conditions, ...)

    Usage:
        page = scan_page("users", limit=100)
        while page.has_more:
            page = scan_page("users", limit=100, start_key=page.last_evaluated_key)
    """
    client = client or get_connection()
    request = build_scan_request(table, serializer=serializer, **kwargs)
    if start_key:
        request["ExclusiveStartKey"] = serializer.deserialize_cursor(start_key)

    logger.info(
        "Executing scan page",
        extra={
            "table": table,
            "index": kwargs.get("index_name"),
            "operation": "scan_page",
            "limit": kwargs.get("limit"),
            "has_cursor": start_key is not None,
        },
    )

    with handle_dynamo_errors(table_name=table, operation="scan_page"):
        response = client.scan(**request)

    items = [serializer.from_dynamo(item) for item in response.get("Items", [])]
    raw_key = response.get("LastEvaluatedKey")
    cursor = serializer.serialize_cursor(raw_key) if raw_key else None

    return PageResult(items=items, last_evaluated_key=cursor, count=len(items))
